# jobtracker/blueprints/storage/routes.py
import mimetypes

from flask import abort, send_file

from ...services import storage_service
from ...services.storage_service import StorageError
from . import storage_bp


@storage_bp.get("/object/public/<bucket>/<path:object_path>")
def public_object(bucket, object_path):
    try:
        target = storage_service.object_abs_path(bucket, object_path)
    except StorageError:
        abort(404)

    mime = mimetypes.guess_type(target.name)[0] or "application/octet-stream"
    as_attachment = not mime.startswith(("text/", "application/pdf"))
    resp = send_file(
        target,
        mimetype=mime,
        as_attachment=as_attachment,
        download_name=target.name,
        conditional=True,
        max_age=3600,
    )
    resp.headers["Cache-Control"] = "public, max-age=3600"
    return resp

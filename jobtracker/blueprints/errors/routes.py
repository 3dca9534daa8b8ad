from flask import current_app, jsonify, redirect, render_template, request, url_for
from werkzeug.exceptions import HTTPException
from flask_wtf.csrf import CSRFError
from ...extensions import db
from ..utils import notify_error
from . import errors_bp

JSON_PREFIXES = ("/api/", "/functions/")


def _wants_json():
    return request.path.startswith(JSON_PREFIXES)


def _render(code, title, description):
    if _wants_json():
        return jsonify({"error": description or title}), code
    return render_template("errors/error.html", code=code, title=title, description=description), code


# 404 – Not Found
@errors_bp.app_errorhandler(404)
def err_404(e):
    return _render(404, "Page not found", "We couldn't find %s." % request.path)


# 413 – Payload Too Large
@errors_bp.app_errorhandler(413)
def err_413(e):
    max_mb = current_app.config.get("MAX_DOCUMENT_MB", 10)
    if _wants_json():
        return jsonify({"error": "File too large"}), 413
    notify_error("File too large", f"Please upload a file smaller than {max_mb}MB.")
    return redirect(request.referrer or url_for("main.dashboard"))


# CSRF – typically treated as 400 Bad Request
@errors_bp.app_errorhandler(CSRFError)
def err_csrf(e):
    return _render(400, "Session expired", e.description)


# 500 – Internal Server Error
@errors_bp.app_errorhandler(500)
def err_500(e):
    # a failed flush leaves the session unusable until rolled back
    db.session.rollback()
    return _render(500, "Something went wrong", "Please try again in a moment.")


# Fallback for uncaught HTTPException
@errors_bp.app_errorhandler(HTTPException)
def err_http(e: HTTPException):
    return _render(e.code, e.name, e.description)


# Last-resort: any other Exception
@errors_bp.app_errorhandler(Exception)
def err_unexpected(e):
    if current_app.testing:
        raise e
    db.session.rollback()
    current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
    return _render(500, "Something went wrong", "Please try again in a moment.")

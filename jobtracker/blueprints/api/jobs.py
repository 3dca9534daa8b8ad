# jobtracker/blueprints/api/jobs.py
from flask import jsonify, request
from flask_login import current_user

from ...extensions import db
from ...services import job_service
from ...services.job_service import JobValidationError
from . import api_bp


@api_bp.before_request
def _require_session():
    if request.method == "OPTIONS":
        return None
    if not current_user.is_authenticated:
        return jsonify({"error": "Not authenticated"}), 401


@api_bp.get("/api/jobs")
def list_jobs():
    jobs = job_service.list_jobs(
        current_user.id,
        search=request.args.get("q"),
        status=request.args.get("status"),
    )
    return jsonify([j.to_dict() for j in jobs])


@api_bp.post("/api/jobs")
def upsert_job():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Expected a JSON object"}), 400

    job_id = data.pop("id", None)
    try:
        job = job_service.save_job(current_user.id, data, job_id=int(job_id) if job_id else None)
    except (JobValidationError, ValueError) as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    return jsonify(job.to_dict()), (200 if job_id else 201)


@api_bp.delete("/api/jobs/<int:job_id>")
def delete_job(job_id):
    job_service.delete_job(current_user.id, job_id)
    return jsonify({"ok": True})

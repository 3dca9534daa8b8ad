# jobtracker/blueprints/api/functions.py
import logging

from flask import jsonify, request

from ...services import cv_service
from ...services.cv_service import CvParseError
from . import api_bp

log = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def _json(body, status: int = 200):
    resp = jsonify(body)
    resp.status_code = status
    resp.headers.update(CORS_HEADERS)
    return resp


@api_bp.route("/functions/v1/parse-cv", methods=["POST", "OPTIONS"])
def parse_cv():
    if request.method == "OPTIONS":
        return "", 200, CORS_HEADERS

    data = request.get_json(silent=True) or {}
    resume_text = data.get("resumeText") if isinstance(data, dict) else None
    if not resume_text or not isinstance(resume_text, str):
        return _json({"error": "resumeText is required"}, 400)

    try:
        parsed = cv_service.parse_resume_text(resume_text)
    except CvParseError as e:
        if e.status_code >= 500:
            log.error("parse-cv error: %s", e)
        return _json({"error": e.message}, e.status_code)

    return _json(parsed)

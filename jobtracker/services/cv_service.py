# jobtracker/services/cv_service.py
from __future__ import annotations

import io
import json
import logging
import re
import zipfile
from typing import Optional

import requests
from flask import current_app
from pypdf import PdfReader

log = logging.getLogger(__name__)

MAX_RESUME_CHARS = 15000
MIN_RESUME_CHARS = 50

SYSTEM_PROMPT = """You are a CV/resume parser. Extract education and work experience from the provided resume text. Return ONLY valid JSON using this exact schema, no markdown, no explanation:
{
  "experience": [
    { "company": "string", "role": "string", "start": "YYYY-MM-DD or empty", "end": "YYYY-MM-DD or empty" }
  ],
  "education": [
    { "school": "string", "degree": "string", "start": "YYYY-MM-DD or empty", "end": "YYYY-MM-DD or empty" }
  ]
}
If dates are partial (e.g. "2020"), use "2020-01-01". If "Present" or ongoing, leave end as empty string. If no entries found, return empty arrays."""


def _entry_schema(*keys: str) -> dict:
    return {
        "type": "object",
        "properties": {k: {"type": "string"} for k in keys},
        "required": list(keys),
        "additionalProperties": False,
    }


EXTRACT_CV_TOOL = {
    "type": "function",
    "function": {
        "name": "extract_cv_data",
        "description": "Extract structured education and experience from a CV",
        "parameters": {
            "type": "object",
            "properties": {
                "experience": {"type": "array", "items": _entry_schema("company", "role", "start", "end")},
                "education": {"type": "array", "items": _entry_schema("school", "degree", "start", "end")},
            },
            "required": ["experience", "education"],
            "additionalProperties": False,
        },
    },
}


class CvParseError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class RateLimitError(CvParseError):
    status_code = 429


class QuotaExceededError(CvParseError):
    status_code = 402


# -----------------
# Text extraction
# -----------------

def _pdf_text(data: bytes) -> str:
    reader = PdfReader(io.BytesIO(data))
    chunks = []
    for page in reader.pages:
        page_text = page.extract_text() or ""
        if page_text:
            chunks.append(page_text)
    return "\n".join(chunks)


def _docx_text(data: bytes) -> str:
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        if "word/document.xml" not in zf.namelist():
            return ""
        xml = zf.read("word/document.xml").decode("utf-8", errors="ignore")
    text = re.sub(r"<[^>]+>", " ", xml)
    return re.sub(r"\s+", " ", text)


def _printable_text(data: bytes) -> str:
    text = data.decode("utf-8", errors="ignore")
    text = re.sub(r"[^\x20-\x7E\n\r\t]", " ", text)
    return re.sub(r"\s{3,}", " ", text)


def extract_text(filename: str, data: bytes) -> str:
    """Best-effort plain text of an uploaded CV, capped at MAX_RESUME_CHARS."""
    name = (filename or "").lower()
    text = ""
    try:
        if name.endswith(".pdf") or data[:4] == b"%PDF":
            text = _pdf_text(data)
        elif name.endswith(".docx"):
            text = _docx_text(data)
    except Exception as e:
        log.warning("text extraction failed for %s: %s", filename, e)
        text = ""
    if not text.strip():
        text = _printable_text(data)
    return text.strip()[:MAX_RESUME_CHARS]


def has_enough_text(text: str) -> bool:
    return len((text or "").strip()) >= MIN_RESUME_CHARS


# -----------------
# Completion API
# -----------------

def _first(value) -> dict:
    """First element of a list when it is an object, else an empty dict."""
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0]
    return {}


def _extract_payload(result) -> dict:
    if not isinstance(result, dict):
        raise CvParseError("Unexpected AI response format")
    message = _first(result.get("choices")).get("message")
    if not isinstance(message, dict):
        message = {}
    function = _first(message.get("tool_calls")).get("function")
    arguments = function.get("arguments") if isinstance(function, dict) else None

    try:
        if arguments:
            parsed = json.loads(arguments) if isinstance(arguments, str) else arguments
        else:
            content = message.get("content")
            match = re.search(r"\{.*\}", content, re.DOTALL) if isinstance(content, str) else None
            if not match:
                return {"experience": [], "education": []}
            parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise CvParseError(f"Could not parse AI response: {e}")

    if not isinstance(parsed, dict):
        raise CvParseError("Unexpected AI response format")
    return parsed


def _entries(parsed: dict, key: str) -> list:
    value = parsed.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(e, dict) for e in value):
        raise CvParseError(f"Unexpected AI response format: {key} must be a list of objects")
    return value


def parse_resume_text(resume_text: str) -> dict:
    """Send resume text to the completion API and return ``{experience, education}``."""
    api_key = current_app.config.get("AI_API_KEY")
    if not api_key:
        raise CvParseError("AI_API_KEY is not configured")

    payload = {
        "model": current_app.config.get("AI_MODEL"),
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": resume_text},
        ],
        "tools": [EXTRACT_CV_TOOL],
        "tool_choice": {"type": "function", "function": {"name": "extract_cv_data"}},
    }
    try:
        r = requests.post(
            current_app.config["AI_API_URL"],
            json=payload,
            headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
            timeout=current_app.config.get("AI_TIMEOUT_SECONDS", 60),
        )
    except requests.RequestException as e:
        log.exception("AI gateway request failed: %s", e)
        raise CvParseError("AI gateway error")

    log.info("AI gateway status=%s", r.status_code)
    if r.status_code == 429:
        raise RateLimitError("Rate limit exceeded, please try again later.")
    if r.status_code == 402:
        raise QuotaExceededError("AI usage limit reached. Please add credits.")
    if r.status_code >= 400:
        log.error("AI gateway error %s | body=%s", r.status_code, r.text[:2000])
        raise CvParseError("AI gateway error")

    try:
        body = r.json()
    except ValueError:
        log.error("AI gateway returned non-JSON body: %s", r.text[:2000])
        raise CvParseError("AI gateway error")

    parsed = _extract_payload(body)
    return {
        "experience": _entries(parsed, "experience"),
        "education": _entries(parsed, "education"),
    }

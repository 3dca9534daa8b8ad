import json

import pytest
import requests

from jobtracker.services import cv_service

URL = "/functions/v1/parse-cv"
RESUME = "Jane Doe. Software engineer at Initech 2019-2023. BSc Computer Science, MIT 2015-2019."


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload if payload is not None else {}
        self.text = text or (json.dumps(self._payload) if not isinstance(self._payload, Exception) else "")

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def _tool_call(args):
    return {"choices": [{"message": {"tool_calls": [{"function": {"name": "extract_cv_data", "arguments": args}}]}}]}


@pytest.fixture
def gateway(monkeypatch):
    calls = []

    def install(response):
        def fake_post(url, json=None, headers=None, timeout=None):
            calls.append({"url": url, "json": json, "headers": headers})
            if isinstance(response, Exception):
                raise response
            return response
        monkeypatch.setattr(cv_service.requests, "post", fake_post)
        return calls
    return install


def test_preflight_returns_cors_headers(client):
    resp = client.options(URL)
    assert resp.status_code == 200
    assert resp.headers["Access-Control-Allow-Origin"] == "*"


def test_requires_login(client):
    resp = client.post(URL, json={"resumeText": RESUME})
    assert resp.status_code == 401


def test_resume_text_is_required(auth_client):
    resp = auth_client.post(URL, json={})
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "resumeText is required"}
    assert resp.headers["Access-Control-Allow-Origin"] == "*"


def test_missing_api_key(app, auth_client):
    app.config["AI_API_KEY"] = ""
    resp = auth_client.post(URL, json={"resumeText": RESUME})
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "AI_API_KEY is not configured"}


def test_parses_tool_call_arguments(auth_client, gateway):
    args = {
        "experience": [{"company": "Initech", "role": "Engineer", "start": "2019-01-01", "end": "2023-01-01"}],
        "education": [{"school": "MIT", "degree": "BSc", "start": "2015-01-01", "end": "2019-01-01"}],
    }
    calls = gateway(FakeResponse(payload=_tool_call(json.dumps(args))))

    resp = auth_client.post(URL, json={"resumeText": RESUME})
    assert resp.status_code == 200
    assert resp.get_json() == args

    sent = calls[0]
    assert sent["headers"]["Authorization"] == "Bearer test-key"
    assert sent["json"]["tool_choice"]["function"]["name"] == "extract_cv_data"
    assert sent["json"]["messages"][1]["content"] == RESUME


def test_falls_back_to_json_in_message_content(auth_client, gateway):
    content = 'Here you go: {"experience": [], "education": [{"school": "MIT", "degree": "BSc", "start": "", "end": ""}]}'
    gateway(FakeResponse(payload={"choices": [{"message": {"content": content}}]}))
    resp = auth_client.post(URL, json={"resumeText": RESUME})
    assert resp.get_json()["education"][0]["school"] == "MIT"


def test_empty_reply_gives_empty_lists(auth_client, gateway):
    gateway(FakeResponse(payload={"choices": [{"message": {"content": "nothing found"}}]}))
    assert auth_client.post(URL, json={"resumeText": RESUME}).get_json() == {"experience": [], "education": []}


@pytest.mark.parametrize("status, code, message", [
    (429, 429, "Rate limit exceeded, please try again later."),
    (402, 402, "AI usage limit reached. Please add credits."),
    (503, 500, "AI gateway error"),
])
def test_gateway_errors(auth_client, gateway, status, code, message):
    gateway(FakeResponse(status_code=status, text="upstream says no"))
    resp = auth_client.post(URL, json={"resumeText": RESUME})
    assert resp.status_code == code
    assert resp.get_json() == {"error": message}


def test_network_failure_is_gateway_error(auth_client, gateway):
    gateway(requests.ConnectionError("boom"))
    resp = auth_client.post(URL, json={"resumeText": RESUME})
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "AI gateway error"}


# -----------------
# Text extraction
# -----------------

def test_extract_text_from_docx(docx):
    text = cv_service.extract_text("cv.docx", docx("Senior engineer with ten years of experience"))
    assert "Senior engineer with ten years of experience" in text


def test_extract_text_falls_back_to_printable_bytes():
    data = b"\x00\x01Jane Doe\x00\x02 Engineer at Initech"
    text = cv_service.extract_text("cv.doc", data)
    assert "Jane Doe" in text and "Initech" in text


def test_extract_text_is_capped():
    text = cv_service.extract_text("cv.doc", b"x" * (cv_service.MAX_RESUME_CHARS + 500))
    assert len(text) == cv_service.MAX_RESUME_CHARS


def test_has_enough_text():
    assert not cv_service.has_enough_text("too short")
    assert cv_service.has_enough_text("y" * cv_service.MIN_RESUME_CHARS)


@pytest.mark.parametrize("payload", [
    _tool_call("[]"),
    _tool_call(json.dumps({"experience": {"company": "Initech"}, "education": []})),
    _tool_call(json.dumps({"experience": ["Initech"], "education": []})),
    {"choices": [{"message": {"content": '{"education": "MIT"}'}}]},
    ["not", "an", "object"],
])
def test_malformed_reply_is_an_error_with_cors(auth_client, gateway, payload):
    gateway(FakeResponse(payload=payload))
    resp = auth_client.post(URL, json={"resumeText": RESUME})
    assert resp.status_code == 500
    assert "error" in resp.get_json()
    assert resp.headers["Access-Control-Allow-Origin"] == "*"


def test_non_json_body_is_gateway_error(auth_client, gateway):
    gateway(FakeResponse(payload=ValueError("no json"), text="<html>oops</html>"))
    resp = auth_client.post(URL, json={"resumeText": RESUME})
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "AI gateway error"}
    assert resp.headers["Access-Control-Allow-Origin"] == "*"


def test_truncated_tool_arguments_report_parse_error(auth_client, gateway):
    gateway(FakeResponse(payload=_tool_call('{"experience": [')))
    resp = auth_client.post(URL, json={"resumeText": RESUME})
    assert resp.status_code == 500
    assert resp.get_json()["error"].startswith("Could not parse AI response")


def test_reply_without_choices_gives_empty_lists(auth_client, gateway):
    gateway(FakeResponse(payload={"choices": "nope"}))
    assert auth_client.post(URL, json={"resumeText": RESUME}).get_json() == {"experience": [], "education": []}

import pytest

from jobtracker.extensions import db
from jobtracker.models.job import Job


def test_api_requires_session(client):
    resp = client.get("/api/jobs")
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Not authenticated"}


def test_create_list_update_delete(app, auth_client):
    resp = auth_client.post("/api/jobs", json={
        "company": "Initech",
        "title": "SRE",
        "platform": "company",
        "tags": ["ops", "ops", " linux "],
    })
    assert resp.status_code == 201
    created = resp.get_json()
    assert created["status"] == "not_submitted"
    assert created["tags"] == ["ops", "linux"]

    listed = auth_client.get("/api/jobs").get_json()
    assert [j["id"] for j in listed] == [created["id"]]

    resp = auth_client.post("/api/jobs", json={"id": created["id"], "notes": "Recruiter called"})
    assert resp.status_code == 200
    updated = resp.get_json()
    assert updated["notes"] == "Recruiter called"
    assert updated["company"] == "Initech"

    resp = auth_client.delete(f"/api/jobs/{created['id']}")
    assert resp.status_code == 200
    with app.app_context():
        assert db.session.get(Job, created["id"]) is None


def test_update_without_status_keeps_stored_status(auth_client):
    job = auth_client.post("/api/jobs", json={"company": "A", "title": "B", "status": "interview"}).get_json()
    updated = auth_client.post("/api/jobs", json={"id": job["id"], "title": "C"}).get_json()
    assert updated["status"] == "interview"


def test_submission_date_promotes_status(auth_client):
    job = auth_client.post("/api/jobs", json={
        "company": "A", "title": "B", "date_submitted": "2026-01-15",
    }).get_json()
    assert job["status"] == "submitted"
    assert job["date_submitted"] == "2026-01-15"


def test_validation_errors(auth_client):
    resp = auth_client.post("/api/jobs", json={"company": "Only company"})
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Title is required."}

    resp = auth_client.post("/api/jobs", json={"company": "A", "title": "B", "deadline": "soon"})
    assert resp.status_code == 400
    assert "Invalid date" in resp.get_json()["error"]

    resp = auth_client.post("/api/jobs", data="not json", content_type="text/plain")
    assert resp.status_code == 400


def test_missing_or_foreign_job_is_json_404(auth_client, make_user, make_job):
    assert auth_client.delete("/api/jobs/9999").status_code == 404

    other = make_user(email="eve@example.com")
    job_id = make_job(other)
    resp = auth_client.post("/api/jobs", json={"id": job_id, "notes": "mine now"})
    assert resp.status_code == 404
    assert "error" in resp.get_json()


def test_list_filters(auth_client, user, make_job):
    make_job(user, company="Acme", title="Dev")
    make_job(user, company="Globex", title="PM", status="rejected")
    assert [j["company"] for j in auth_client.get("/api/jobs?q=glob").get_json()] == ["Globex"]
    assert [j["company"] for j in auth_client.get("/api/jobs?status=rejected").get_json()] == ["Globex"]


def test_created_job_reads_back_unchanged(auth_client):
    payload = {
        "company": "Umbrella",
        "title": "Research Engineer",
        "link": "https://umbrella.example.com/jobs/42",
        "platform": "glassdoor",
        "description": "Vaccines",
        "deadline": "2099-12-31",
        "date_submitted": None,
        "status": "interview",
        "notes": "Second round on Friday",
        "tags": ["bio", "python"],
    }
    created = auth_client.post("/api/jobs", json=payload).get_json()
    fetched = next(j for j in auth_client.get("/api/jobs").get_json() if j["id"] == created["id"])
    for key, value in payload.items():
        assert fetched[key] == value


def test_closed_job_cannot_be_edited(app, auth_client, user, make_job):
    job_id = make_job(user, deadline="2000-01-01")
    with app.app_context():
        assert db.session.get(Job, job_id).status == "closed"

    resp = auth_client.post("/api/jobs", json={"id": job_id, "company": "Changed", "status": "interview"})
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Closed jobs are read-only."}
    with app.app_context():
        job = db.session.get(Job, job_id)
        assert job.company == "Acme"
        assert job.status == "closed"


@pytest.mark.parametrize("payload, message", [
    ({"company": 123, "title": "B"}, "Company must be a string."),
    ({"company": "A", "title": ["B"]}, "Title must be a string."),
    ({"company": "A", "title": "B", "notes": {"x": 1}}, "Notes must be a string."),
    ({"company": "A", "title": "B", "platform": 7}, "Platform must be a string."),
    ({"company": "A", "title": "B", "tags": 5}, "Tags must be a list of strings."),
    ({"company": "A", "title": "B", "tags": ["ok", 2]}, "Tags must be a list of strings."),
])
def test_wrongly_typed_fields_are_rejected(auth_client, payload, message):
    resp = auth_client.post("/api/jobs", json=payload)
    assert resp.status_code == 400
    assert resp.get_json() == {"error": message}
    assert auth_client.get("/api/jobs").get_json() == []


def test_numeric_deadline_is_rejected(auth_client):
    resp = auth_client.post("/api/jobs", json={"company": "A", "title": "B", "deadline": 20260101})
    assert resp.status_code == 400
    assert "Invalid date" in resp.get_json()["error"]

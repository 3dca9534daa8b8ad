import io
import zipfile

import pytest

from jobtracker import create_app
from jobtracker.config import Config
from jobtracker.extensions import db
from jobtracker.models.user import User
from jobtracker.services import job_service


def make_config(tmp_path):
    class TestConfig(Config):
        TESTING = True
        SECRET_KEY = "test-secret"
        SQLALCHEMY_DATABASE_URI = "sqlite://"
        WTF_CSRF_ENABLED = False
        SESSION_COOKIE_SECURE = False
        SERVER_NAME = None
        PREFERRED_URL_SCHEME = "http"

        UPLOAD_FOLDER = str(tmp_path / "storage")
        STORAGE_CREATE_BUCKETS = True
        MAX_DOCUMENT_MB = 10

        LOG_DIR = str(tmp_path / "logs")
        LOG_JSON = False
        SENTRY_DSN = ""

        MAIL_SUPPRESS_SEND = True
        MAIL_DEFAULT_SENDER = "noreply@example.com"

        AI_API_KEY = "test-key"
        AI_API_URL = "https://ai.example.com/v1/chat/completions"

        GOOGLE_CLIENT_ID = None
        GOOGLE_CLIENT_SECRET = None
        LINKEDIN_CLIENT_ID = None
        LINKEDIN_CLIENT_SECRET = None

    return TestConfig


@pytest.fixture
def app(tmp_path):
    app = create_app(make_config(tmp_path))
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make(email="ada@example.com", password="secret123", display_name="Ada Lovelace"):
        with app.app_context():
            u = User(email=email, display_name=display_name, is_email_verified=True)
            u.set_password(password)
            db.session.add(u)
            db.session.commit()
            return u.id
    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def login(client):
    def _login(email="ada@example.com", password="secret123"):
        return client.post("/auth/login", data={"email": email, "password": password})
    return _login


@pytest.fixture
def auth_client(client, user, login):
    resp = login()
    assert resp.status_code == 302
    return client


@pytest.fixture
def make_job(app):
    def _make(user_id, **fields):
        data = {"company": "Acme", "title": "Backend Engineer"}
        data.update(fields)
        with app.app_context():
            return job_service.save_job(user_id, data).id
    return _make


def docx_bytes(text: str) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        zf.writestr(
            "word/document.xml",
            '<w:document><w:body><w:p><w:r><w:t>%s</w:t></w:r></w:p></w:body></w:document>' % text,
        )
    return buf.getvalue()


@pytest.fixture
def docx():
    return docx_bytes

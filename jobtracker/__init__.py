import os
import logging
from logging.handlers import RotatingFileHandler
from datetime import datetime
from pathlib import Path

from flask import Flask, request

from .extensions import db, migrate, login_manager, csrf, mail, babel, oauth
from .config import Config
from .models.user import User
from .services import job_service
from .services.oauth_service import register_providers
from .services.storage_service import ensure_buckets

# Blueprints
from .blueprints.errors import errors_bp
from .blueprints.auth import auth_bp
from .blueprints.main import main_bp
from .blueprints.profile import profile_bp
from .blueprints.api import api_bp
from .blueprints.storage import storage_bp


# Optional: Sentry
def _init_sentry(app):
    dsn = app.config.get("SENTRY_DSN")
    if not dsn:
        return
    try:
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration
        from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

        sentry_sdk.init(
            dsn=dsn,
            integrations=[FlaskIntegration(), SqlalchemyIntegration()],
            traces_sample_rate=app.config.get("SENTRY_TRACES_SAMPLE_RATE", 0.0),
            environment=os.getenv("ENV", "development"),
            release=os.getenv("GIT_COMMIT", None),
            send_default_pii=False,
        )
        app.logger.info("Sentry initialized.")
    except Exception as e:
        app.logger.warning(f"Sentry init failed: {e}")

def _init_logging(app):
    level_name = app.config.get("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    app.logger.setLevel(level)

    log_dir = Path(app.config.get("LOG_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / app.config.get("LOG_FILENAME", "jobtracker.log")

    # Formatter: text or JSON
    if app.config.get("LOG_JSON", False):
        import json_log_formatter
        formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("[%(asctime)s] %(levelname)s in %(module)s: %(message)s")

    # Rotating file handler (5MB x 5)
    file_handler = RotatingFileHandler(
        log_path, maxBytes=5_000_000, backupCount=5, encoding="utf-8"
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)

    # Stream to stdout as well (useful on dev/heroku/docker)
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)

    # app.logger is the "jobtracker" logger, so service modules log through it.
    # Drop handlers left by an earlier create_app() in the same process.
    for h in list(app.logger.handlers):
        app.logger.removeHandler(h)
        if isinstance(h, RotatingFileHandler):
            h.close()
    app.logger.addHandler(file_handler)
    app.logger.addHandler(stream_handler)

    app.logger.info("Logging initialized.")

def _register_template_helpers(app):
    @app.template_filter("deadline_label")
    def _deadline_label(deadline):
        return job_service.deadline_label(job_service.days_remaining(deadline))

    @app.template_filter("deadline_color")
    def _deadline_color(deadline):
        return job_service.deadline_color(job_service.days_remaining(deadline))

    @app.context_processor
    def inject_now():
        return {"now": datetime.utcnow, "app_name": app.config.get("APP_NAME", "JobTracker")}

def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object or Config)

    app.config.setdefault(
        "SQLALCHEMY_DATABASE_URI",
        "sqlite:///" + os.path.join(app.instance_path, "jobtracker.db"),
    )
    Path(app.instance_path).mkdir(parents=True, exist_ok=True)
    app.config.from_pyfile("config.py", silent=True)

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    mail.init_app(app)
    oauth.init_app(app)

    def _select_locale():
        return request.accept_languages.best_match(app.config.get("LANGUAGES", ["en"])) or "en"
    babel.init_app(app, locale_selector=_select_locale)

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    login_manager.login_view = "auth.login"
    login_manager.login_message_category = "info"

    # Logging must come before blueprints so errors during register are captured
    _init_logging(app)
    _init_sentry(app)

    register_providers(app)
    _register_template_helpers(app)

    if app.config.get("STORAGE_CREATE_BUCKETS"):
        with app.app_context():
            ensure_buckets(app.config["RESUMES_BUCKET"], app.config["DOCUMENTS_BUCKET"])

    # Blueprints
    app.register_blueprint(errors_bp)  # error handlers
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(main_bp)
    app.register_blueprint(profile_bp, url_prefix="/profile")
    app.register_blueprint(api_bp)
    app.register_blueprint(storage_bp, url_prefix="/storage/v1")

    return app

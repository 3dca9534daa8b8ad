# jobtracker/blueprints/profile/routes.py
import logging
import re
from typing import Optional

from email_validator import validate_email, EmailNotValidError
from flask import render_template, redirect, url_for, request, current_app
from flask_login import login_required, current_user

from ...extensions import db
from ...models.profile import Profile, EXPERIENCE_KEYS, EDUCATION_KEYS
from ...models.user import User
from ...services import cv_service, storage_service
from ...services.cv_service import CvParseError
from ...services.storage_service import StorageError, UploadValidationError
from ..auth.forms import ChangePasswordForm
from ..auth.routes import send_verification_email
from ..utils import notify, notify_error
from . import profile_bp

log = logging.getLogger(__name__)


# -----------------
# Helpers
# -----------------

def initials(value: str) -> str:
    parts = [p for p in re.split(r"\s+|@|\.", value or "") if p]
    if not parts:
        return "U"
    if len(parts) == 1:
        return parts[0][:2].upper()
    return f"{parts[0][0]}{parts[-1][0]}".upper()


def _get_profile() -> Optional[Profile]:
    return Profile.query.filter_by(user_id=current_user.id).first()


def _get_or_create_profile() -> Profile:
    prof = _get_profile()
    if prof is None:
        prof = Profile(user_id=current_user.id, display_name=current_user.display_name,
                       experience=[], education=[])
        db.session.add(prof)
    return prof


def _rows(prefix: str, keys) -> list[dict]:
    """Rebuild list-of-dict rows from parallel ``<prefix>_<key>`` form lists."""
    columns = {k: request.form.getlist(f"{prefix}_{k}") for k in keys}
    removed = set(request.form.getlist(f"{prefix}_remove"))
    count = max((len(v) for v in columns.values()), default=0)
    rows = []
    for i in range(count):
        if str(i) in removed:
            continue
        row = {k: (columns[k][i] if i < len(columns[k]) else "").strip() for k in keys}
        if any(row.values()):
            rows.append(row)
    return rows


def _discover_resume(prof: Optional[Profile]) -> Optional[str]:
    """Newest object in the resumes bucket for this user, persisted on the profile."""
    bucket = current_app.config["RESUMES_BUCKET"]
    uid = current_user.id
    try:
        latest = storage_service.latest_object(bucket, [str(uid), f"resumes/{uid}"])
    except StorageError as e:
        if storage_service.is_bucket_not_found_error(e):
            log.warning(storage_service.bucket_not_found_message(bucket))
            return None
        raise
    if latest is None:
        return None

    url = storage_service.public_url(bucket, latest.path)
    if prof is None:
        prof = _get_or_create_profile()
    prof.resume_url = url
    db.session.commit()
    return url


def _render_profile(prof: Optional[Profile], password_form=None, status: int = 200):
    display_name = (prof.display_name if prof else None) or current_user.display_name or ""
    resume_url = prof.resume_url if prof else None
    return render_template(
        "profile/profile.html",
        profile=prof,
        display_name=display_name,
        initials=initials(display_name.strip() or current_user.email or "User"),
        resume_url=resume_url,
        resume_file_name=storage_service.file_name_from_url(resume_url),
        experience=list(prof.experience or []) if prof else [],
        education=list(prof.education or []) if prof else [],
        experience_keys=EXPERIENCE_KEYS,
        education_keys=EDUCATION_KEYS,
        password_form=password_form or ChangePasswordForm(),
        max_mb=current_app.config.get("MAX_DOCUMENT_MB", 10),
    ), status


# -----------------
# View / Save
# -----------------

@profile_bp.route("", methods=["GET"])
@login_required
def view():
    prof = _get_profile()
    if not (prof and prof.resume_url):
        _discover_resume(prof)
        prof = _get_profile()
    return _render_profile(prof)


@profile_bp.post("")
@login_required
def save():
    prof = _get_or_create_profile()
    prof.display_name = (request.form.get("display_name") or "").strip()[:120] or None
    prof.experience = _rows("experience", EXPERIENCE_KEYS)
    prof.education = _rows("education", EDUCATION_KEYS)

    email = (request.form.get("email") or "").strip().lower()
    email_changed = bool(email) and email != current_user.email
    if email_changed:
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError:
            db.session.rollback()
            notify_error("Save error", "Enter a valid email address.")
            return redirect(url_for("profile.view"))
        if User.query.filter(User.email == email, User.id != current_user.id).first():
            db.session.rollback()
            notify_error("Save error", "That email is already in use.")
            return redirect(url_for("profile.view"))
        current_user.email = email
        current_user.is_email_verified = False

    db.session.commit()

    if email_changed:
        send_verification_email(current_user)
        notify("Email updated", "We updated your sign-in email. Please confirm it from your inbox.", "info")
    notify("Saved", "Your profile has been updated.")
    return redirect(url_for("profile.view"))


# -----------------
# Resume upload + CV parsing
# -----------------

def _autofill_from_cv(prof: Profile, filename: str, data: bytes) -> None:
    resume_text = cv_service.extract_text(filename, data)
    if not cv_service.has_enough_text(resume_text):
        notify_error("Could not extract text",
                     "The CV text could not be read. Please fill in the fields manually.")
        return

    try:
        parsed = cv_service.parse_resume_text(resume_text)
    except CvParseError as e:
        log.warning("CV parse error: %s", e)
        notify_error("CV parsing failed", e.message or "Could not parse CV. Fill in fields manually.")
        return

    if parsed["experience"]:
        prof.experience = parsed["experience"]
    if parsed["education"]:
        prof.education = parsed["education"]

    if parsed["experience"] or parsed["education"]:
        db.session.commit()
        notify("CV parsed!", "Education and experience were filled in from your CV and saved. Edit them below if anything is off.")
    else:
        notify("No data extracted", "Could not extract education or experience. You can fill them in manually.", "info")


@profile_bp.post("/resume")
@login_required
def upload_resume():
    f = request.files.get("resume")
    try:
        storage_service.validate_document(f)
    except UploadValidationError as e:
        notify_error(e.title, e.description)
        return redirect(url_for("profile.view"))

    bucket = current_app.config["RESUMES_BUCKET"]
    path = storage_service.object_path_for(current_user.id, filename=f.filename)
    try:
        storage_service.upload(bucket, path, f)
    except StorageError as e:
        description = (storage_service.bucket_not_found_message(bucket)
                       if storage_service.is_bucket_not_found_error(e) else str(e))
        notify_error("Upload error", description)
        return redirect(url_for("profile.view"))

    prof = _get_or_create_profile()
    prof.resume_url = storage_service.public_url(bucket, path)
    db.session.commit()
    notify("Resume uploaded", "Parsing your CV to autofill profile...", "info")

    f.stream.seek(0)
    _autofill_from_cv(prof, f.filename, f.stream.read())
    return redirect(url_for("profile.view"))


# -----------------
# Change password
# -----------------

@profile_bp.post("/password")
@login_required
def change_password():
    form = ChangePasswordForm()
    if not form.validate_on_submit():
        for errors in form.errors.values():
            for msg in errors:
                notify_error("Password", msg)
        return _render_profile(_get_profile(), password_form=form, status=400)

    current_user.set_password(form.password.data)
    db.session.commit()
    notify("Password changed", "Your password was updated successfully.")
    return redirect(url_for("profile.view"))

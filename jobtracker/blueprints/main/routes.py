# jobtracker/blueprints/main/routes.py
import logging
from datetime import date

from flask import render_template, redirect, url_for, request, current_app
from flask_login import login_required, current_user

from ...extensions import db
from ...models.job import STATUSES, STATUS_LABELS
from ...services import job_service, storage_service
from ...services.job_service import JobValidationError
from ...services.storage_service import StorageError, UploadValidationError
from ..utils import notify, notify_error
from . import main_bp
from .forms import JobForm, SubmitApplicationForm

log = logging.getLogger(__name__)

VIEWS = ("table", "kanban")


def _storage_error_message(err: Exception, bucket: str) -> str:
    if storage_service.is_bucket_not_found_error(err):
        return storage_service.bucket_not_found_message(bucket)
    return str(err)


# -----------------
# Landing / Dashboard
# -----------------

@main_bp.route("/")
def index():
    if current_user.is_authenticated:
        return redirect(url_for("main.dashboard"))
    return render_template("index.html")


@main_bp.route("/dashboard")
@login_required
def dashboard():
    view = request.args.get("view", "table")
    if view not in VIEWS:
        view = "table"
    search = (request.args.get("q") or "").strip()
    status = request.args.get("status") or "all"
    if status != "all" and status not in STATUSES:
        status = "all"

    all_jobs = job_service.list_jobs(current_user.id)
    jobs = job_service.list_jobs(current_user.id, search=search, status=status)

    return render_template(
        "dashboard.html",
        jobs=jobs,
        total=len(all_jobs),
        stats=job_service.status_counts(all_jobs),
        columns=job_service.group_by_status(jobs) if view == "kanban" else None,
        view=view,
        q=search,
        status_filter=status,
        status_labels=STATUS_LABELS,
    )


# -----------------
# Add / Edit
# -----------------

@main_bp.route("/jobs/new", methods=["GET", "POST"])
@login_required
def job_new():
    form = JobForm()
    if form.validate_on_submit():
        try:
            job_service.save_job(current_user.id, form.job_data())
        except JobValidationError as e:
            db.session.rollback()
            notify_error("Error", str(e))
            return render_template("jobs/form.html", form=form, job=None), 400
        notify("Job saved")
        return redirect(url_for("main.dashboard"))

    return render_template("jobs/form.html", form=form, job=None)


@main_bp.route("/jobs/<int:job_id>/edit", methods=["GET", "POST"])
@login_required
def job_edit(job_id):
    job = job_service.get_job_or_404(current_user.id, job_id)
    form = JobForm()

    if request.method == "POST":
        if job.is_read_only:
            notify_error("Error", "Closed jobs are read-only.")
            return redirect(url_for("main.job_edit", job_id=job.id))
        if form.validate_on_submit():
            try:
                job_service.save_job(current_user.id, form.job_data(), job_id=job.id)
            except JobValidationError as e:
                db.session.rollback()
                notify_error("Error", str(e))
                return render_template("jobs/form.html", form=form, job=job), 400
            notify("Job saved")
            return redirect(url_for("main.dashboard"))
        return render_template("jobs/form.html", form=form, job=job)

    form.company.data = job.company
    form.title.data = job.title
    form.link.data = job.link or ""
    form.platform.data = job.platform or "other"
    form.status.data = job.status
    form.deadline.data = job.deadline
    form.date_submitted.data = job.date_submitted
    form.description.data = job.description or ""
    form.notes.data = job.notes or ""
    form.tags.data = ", ".join(job.tags or [])
    return render_template("jobs/form.html", form=form, job=job)


@main_bp.post("/jobs/<int:job_id>/delete")
@login_required
def job_delete(job_id):
    job_service.delete_job(current_user.id, job_id)
    notify("Job deleted")
    return redirect(url_for("main.dashboard", view=request.args.get("view", "table")))


# -----------------
# Submit application (documents used)
# -----------------

@main_bp.route("/jobs/<int:job_id>/submit", methods=["GET", "POST"])
@login_required
def job_submit(job_id):
    job = job_service.get_job_or_404(current_user.id, job_id)
    if not job.can_submit_application:
        notify_error("Error", "This application was already submitted.")
        return redirect(url_for("main.dashboard"))

    form = SubmitApplicationForm()
    if request.method == "GET" and job.date_submitted:
        form.submitted_date.data = job.date_submitted

    if form.validate_on_submit():
        cv = form.cv_file.data
        cover = form.cover_letter_file.data if form.cover_letter_file.data and form.cover_letter_file.data.filename else None
        bucket = current_app.config["DOCUMENTS_BUCKET"]

        # Validate everything before the first upload
        try:
            storage_service.validate_document(cv)
            if cover is not None:
                storage_service.validate_document(cover)
        except UploadValidationError as e:
            notify_error(e.title, e.description)
            return render_template("jobs/submit.html", form=form, job=job), 400

        try:
            cv_path = storage_service.upload(
                bucket, storage_service.object_path_for(current_user.id, job.id, filename=cv.filename), cv)
            cover_url = None
            if cover is not None:
                cover_path = storage_service.upload(
                    bucket, storage_service.object_path_for(current_user.id, job.id, filename=cover.filename), cover)
                cover_url = storage_service.public_url(bucket, cover_path)
        except StorageError as e:
            log.warning("application upload failed for job %s: %s", job.id, e)
            notify_error("Upload error", _storage_error_message(e, bucket))
            return render_template("jobs/submit.html", form=form, job=job), 400

        job_service.save_job(current_user.id, {
            "date_submitted": form.submitted_date.data,
            "submitted_cv_url": storage_service.public_url(bucket, cv_path),
            "submitted_cover_letter_url": cover_url,
        }, job_id=job.id)
        notify("Application submitted", f"{job.company} - {job.title}")
        return redirect(url_for("main.dashboard"))

    if request.method == "GET" and not form.submitted_date.data:
        form.submitted_date.data = date.today()
    return render_template("jobs/submit.html", form=form, job=job)

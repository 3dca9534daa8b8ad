# jobtracker/services/job_service.py
from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import date, datetime
from typing import Iterable, Mapping, Optional

from ..extensions import db
from ..models.job import Job, STATUSES, STATUS_LABELS, PLATFORMS

log = logging.getLogger(__name__)

TEXT_FIELDS = ("link", "description", "notes", "submitted_cv_url", "submitted_cover_letter_url")
DATE_FIELDS = ("deadline", "date_submitted")


class JobValidationError(ValueError):
    pass


# -----------------
# Deadline / status rules
# -----------------

def days_remaining(deadline: Optional[date], today: Optional[date] = None) -> Optional[int]:
    """Whole days from ``today`` until ``deadline`` (negative once it has passed)."""
    if deadline is None:
        return None
    if isinstance(deadline, datetime):
        deadline = deadline.date()
    today = today or date.today()
    return (deadline - today).days


def deadline_label(days: Optional[int]) -> str:
    if days is None:
        return "—"
    if days < 0:
        return f"{abs(days)}d overdue"
    if days == 0:
        return "Today"
    return f"{days}d left"


def deadline_color(days: Optional[int]) -> str:
    if days is None:
        return ""
    if days < 0:
        return "text-status-red"
    if days <= 3:
        return "text-status-yellow"
    return "text-status-green"


def derive_status(status: Optional[str], date_submitted: Optional[date],
                  deadline: Optional[date], today: Optional[date] = None) -> str:
    """Status a job is stored with after a save.

    A submission date promotes ``not_submitted`` to ``submitted``; otherwise a
    deadline strictly before today closes it. Any other status is kept.
    """
    status = status or "not_submitted"
    if date_submitted and status == "not_submitted":
        status = "submitted"
    if deadline and status == "not_submitted":
        today = today or date.today()
        if today > deadline:
            status = "closed"
    return status


# -----------------
# Field cleaning
# -----------------

def parse_date(val) -> Optional[date]:
    if val is None or val == "":
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    if not isinstance(val, str):
        raise JobValidationError(f"Invalid date: {val!r} (expected YYYY-MM-DD).")
    try:
        return datetime.strptime(val.strip(), "%Y-%m-%d").date()
    except ValueError:
        raise JobValidationError(f"Invalid date: {val!r} (expected YYYY-MM-DD).")


def normalize_tags(value) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    elif not isinstance(value, (list, tuple)):
        raise JobValidationError("Tags must be a list of strings.")
    tags: list[str] = []
    for raw in value:
        if not isinstance(raw, str):
            raise JobValidationError("Tags must be a list of strings.")
        t = raw.strip()
        if t and t not in tags:
            tags.append(t)
    return tags


def _text(data: Mapping, key: str) -> str:
    val = data.get(key)
    if val is None:
        return ""
    if not isinstance(val, str):
        raise JobValidationError(f"{key.capitalize()} must be a string.")
    return val.strip()


def clean_job_fields(data: Mapping) -> dict:
    """Validate the keys present in ``data`` and coerce them to column types."""
    fields: dict = {}

    for key in ("company", "title"):
        if key in data:
            val = _text(data, key)
            if not val:
                raise JobValidationError(f"{key.capitalize()} is required.")
            fields[key] = val

    if "platform" in data:
        platform = _text(data, "platform") or "other"
        if platform not in PLATFORMS:
            raise JobValidationError(f"Unknown platform: {platform}.")
        fields["platform"] = platform

    if "status" in data:
        status = _text(data, "status") or None
        if status is not None and status not in STATUSES:
            raise JobValidationError(f"Unknown status: {status}.")
        fields["status"] = status

    for key in TEXT_FIELDS:
        if key in data:
            fields[key] = _text(data, key) or None

    for key in DATE_FIELDS:
        if key in data:
            fields[key] = parse_date(data.get(key))

    if "tags" in data:
        fields["tags"] = normalize_tags(data.get("tags"))

    return fields


# -----------------
# Queries (always scoped to the owner)
# -----------------

def list_jobs(user_id: int, search: Optional[str] = None, status: Optional[str] = None) -> list[Job]:
    qry = Job.query.filter(Job.user_id == user_id)
    if search:
        like = f"%{search.strip()}%"
        qry = qry.filter(db.or_(Job.company.ilike(like), Job.title.ilike(like)))
    if status and status != "all":
        qry = qry.filter(Job.status == status)
    return qry.order_by(Job.created_at.desc(), Job.id.desc()).all()


def get_job_or_404(user_id: int, job_id: int) -> Job:
    return Job.query.filter_by(id=job_id, user_id=user_id).first_or_404()


def status_counts(jobs: Iterable[Job]) -> list[dict]:
    jobs = list(jobs)
    return [
        {"status": s, "label": STATUS_LABELS[s], "count": sum(1 for j in jobs if j.status == s)}
        for s in STATUSES
    ]


def group_by_status(jobs: Iterable[Job]) -> "OrderedDict[str, list[Job]]":
    grouped: OrderedDict[str, list[Job]] = OrderedDict((s, []) for s in STATUSES)
    for j in jobs:
        grouped.setdefault(j.status, []).append(j)
    return grouped


# -----------------
# Mutations
# -----------------

def save_job(user_id: int, data: Mapping, job_id: Optional[int] = None,
             today: Optional[date] = None) -> Job:
    """Create or update a job owned by ``user_id`` and apply the status rules.

    On update only the keys present in ``data`` are written; a missing status
    keeps the stored one.
    """
    fields = clean_job_fields(data)

    if job_id is None:
        for key in ("company", "title"):
            if key not in fields:
                raise JobValidationError(f"{key.capitalize()} is required.")
        job = Job(user_id=user_id, platform="other", tags=[])
        db.session.add(job)
    else:
        job = get_job_or_404(user_id, job_id)
        if job.is_read_only:
            raise JobValidationError("Closed jobs are read-only.")

    for key, val in fields.items():
        if key == "status":
            continue
        setattr(job, key, val)

    requested = fields.get("status") if "status" in fields else job.status
    job.status = derive_status(requested, job.date_submitted, job.deadline, today=today)
    if requested and job.status != requested:
        log.info("job %s status %s -> %s on save", job.id or "(new)", requested, job.status)

    db.session.commit()
    return job


def delete_job(user_id: int, job_id: int) -> None:
    job = get_job_or_404(user_id, job_id)
    db.session.delete(job)
    db.session.commit()

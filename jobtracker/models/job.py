# jobtracker/models/job.py
from datetime import datetime
from ..extensions import db


# Column order on the dashboard stats bar and the kanban board
STATUSES = ("not_submitted", "submitted", "interview", "offer", "rejected", "closed")

STATUS_LABELS = {
    "not_submitted": "Not Submitted",
    "submitted": "Submitted",
    "interview": "Interview",
    "offer": "Offer",
    "rejected": "Rejected",
    "closed": "Closed",
}

PLATFORMS = ("linkedin", "indeed", "company", "glassdoor", "other")

PLATFORM_LABELS = {
    "linkedin": "LinkedIn",
    "indeed": "Indeed",
    "company": "Company",
    "glassdoor": "Glassdoor",
    "other": "Other",
}


class Job(db.Model):
    __tablename__ = "job"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)

    company = db.Column(db.String(255), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False, index=True)
    link = db.Column(db.Text)
    platform = db.Column(db.String(20), default="other")  # linkedin|indeed|company|glassdoor|other
    description = db.Column(db.Text)

    deadline = db.Column(db.Date, index=True)
    date_submitted = db.Column(db.Date)
    status = db.Column(db.String(20), default="not_submitted", nullable=False, index=True)

    notes = db.Column(db.Text)
    tags = db.Column(db.JSON, default=list, nullable=False)

    submitted_cv_url = db.Column(db.Text)
    submitted_cover_letter_url = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def status_label(self) -> str:
        return STATUS_LABELS.get(self.status, self.status)

    @property
    def platform_label(self) -> str:
        return PLATFORM_LABELS.get(self.platform or "other", PLATFORM_LABELS["other"])

    @property
    def is_read_only(self) -> bool:
        return self.status == "closed"

    @property
    def can_submit_application(self) -> bool:
        return self.status == "not_submitted"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "company": self.company,
            "title": self.title,
            "link": self.link,
            "platform": self.platform,
            "description": self.description,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "date_submitted": self.date_submitted.isoformat() if self.date_submitted else None,
            "status": self.status,
            "notes": self.notes,
            "tags": list(self.tags or []),
            "submitted_cv_url": self.submitted_cv_url,
            "submitted_cover_letter_url": self.submitted_cover_letter_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

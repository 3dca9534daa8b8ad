# jobtracker/models/profile.py
from datetime import datetime
from ..extensions import db


EXPERIENCE_KEYS = ("company", "role", "start", "end")
EDUCATION_KEYS = ("school", "degree", "start", "end")


class Profile(db.Model):
    __tablename__ = "profile"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), unique=True, nullable=False, index=True)

    display_name = db.Column(db.String(120))
    resume_url = db.Column(db.Text)

    # [{company, role, start, end}] / [{school, degree, start, end}]
    experience = db.Column(db.JSON, default=list, nullable=False)
    education = db.Column(db.JSON, default=list, nullable=False)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "display_name": self.display_name,
            "resume_url": self.resume_url,
            "experience": list(self.experience or []),
            "education": list(self.education or []),
        }

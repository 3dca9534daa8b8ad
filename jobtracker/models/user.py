# jobtracker/models/user.py
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
from ..extensions import db


class User(UserMixin, db.Model):
    __tablename__ = "user"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    # None for accounts that only ever signed in through an OAuth provider
    password_hash = db.Column(db.String(255))

    # signup metadata
    display_name = db.Column(db.String(120))

    is_email_verified = db.Column(db.Boolean, default=False)
    last_login_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    profile = db.relationship(
        "Profile",
        backref="user",
        uselist=False,
        cascade="all, delete-orphan",
    )
    identities = db.relationship(
        "OAuthIdentity",
        backref="user",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )
    jobs = db.relationship(
        "Job",
        backref="owner",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )

    # --- Auth helpers ---
    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    def mark_login(self):
        self.last_login_at = datetime.utcnow()


class OAuthIdentity(db.Model):
    __tablename__ = "oauth_identity"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)

    # google | linkedin_oidc | linkedin
    provider = db.Column(db.String(40), nullable=False)
    subject = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("provider", "subject", name="uq_oauth_identity_provider_subject"),
    )

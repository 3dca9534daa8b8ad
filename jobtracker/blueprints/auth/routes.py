# jobtracker/blueprints/auth/routes.py
import logging
from datetime import datetime
from typing import Optional
from urllib.parse import urlparse

from flask import render_template, request, redirect, url_for, current_app
from flask_login import login_user, logout_user, login_required, current_user
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired

from ...extensions import db
from ...models.user import User
from ...services.email_service import send_account_email
from ...services import oauth_service
from ..utils import notify, notify_error
from . import auth_bp
from .forms import RegisterForm, LoginForm, ForgotPasswordForm, ResetPasswordForm

log = logging.getLogger(__name__)

RESET_MAX_AGE = 60 * 60 * 24
VERIFY_MAX_AGE = 60 * 60 * 24 * 3

# -----------------
# Utilities
# -----------------

def _ts(salt_key: str = "SECURITY_PASSWORD_SALT", default_salt: str = "pwd-reset") -> URLSafeTimedSerializer:
    secret_key = current_app.config.get("SECRET_KEY")
    salt = current_app.config.get(salt_key, default_salt)
    return URLSafeTimedSerializer(secret_key=secret_key, salt=salt)


def _verify_ts() -> URLSafeTimedSerializer:
    return _ts("SECURITY_VERIFY_SALT", "email-verify")


def _issue_token(serializer: URLSafeTimedSerializer, user: User) -> str:
    return serializer.dumps({"uid": user.id, "email": user.email, "ts": datetime.utcnow().isoformat()})


def _verify_token(serializer: URLSafeTimedSerializer, token: str, max_age: int) -> Optional[User]:
    try:
        data = serializer.loads(token, max_age=max_age)
        user = db.session.get(User, int(data.get("uid")))
    except (BadSignature, SignatureExpired, ValueError, TypeError):
        return None
    # a token issued before an email change is no longer valid
    if user is None or user.email != data.get("email"):
        return None
    return user


def _redirect_next(default_endpoint: str):
    nxt = request.args.get("next") or request.form.get("next")
    # only same-site relative paths
    if nxt and not urlparse(nxt).netloc and nxt.startswith("/"):
        return nxt
    return url_for(default_endpoint)


def send_verification_email(user: User) -> bool:
    token = _issue_token(_verify_ts(), user)
    link = url_for("auth.verify_email", token=token, _external=True)
    return send_account_email("verify_email", user=user, link=link)


def send_password_reset_email(user: User) -> bool:
    token = _issue_token(_ts(), user)
    link = url_for("auth.reset_password", token=token, _external=True)
    return send_account_email("password_reset", user=user, link=link)

# -----------------
# Register
# -----------------

@auth_bp.route("/register", methods=["GET", "POST"])
def register():
    if current_user.is_authenticated:
        return redirect(url_for("main.dashboard"))

    form = RegisterForm()
    if form.validate_on_submit():
        user = User(
            email=form.email.data.strip().lower(),
            display_name=(form.display_name.data or "").strip() or None,
        )
        user.set_password(form.password.data)
        db.session.add(user)
        db.session.commit()

        send_verification_email(user)
        notify("Check your email", "We sent you a verification link to confirm your account.", "info")
        return redirect(url_for("auth.login"))

    return render_template("auth/register.html", form=form)


# -----------------
# Login / Logout
# -----------------

@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    if current_user.is_authenticated:
        return redirect(url_for("main.dashboard"))

    form = LoginForm()
    if form.validate_on_submit():
        email = form.email.data.strip().lower()
        user = User.query.filter_by(email=email).first()
        if not user or not user.check_password(form.password.data):
            notify_error("Error", "Invalid email or password.")
            return render_template("auth/login.html", form=form), 401

        login_user(user, remember=bool(form.remember.data))
        user.mark_login()
        db.session.commit()
        return redirect(_redirect_next("main.dashboard"))

    form.next.data = request.args.get("next", "")
    return render_template("auth/login.html", form=form)


@auth_bp.route("/logout")
@login_required
def logout():
    logout_user()
    notify("Signed out", None, "info")
    return redirect(url_for("auth.login"))


# -----------------
# OAuth
# -----------------

@auth_bp.route("/oauth/<provider>")
def oauth_login(provider):
    name, client = oauth_service.resolve_client(provider)
    if client is None:
        notify_error("OAuth Error", f"Sign in with {provider} is not enabled.")
        return redirect(url_for("auth.login"))
    redirect_uri = url_for("auth.oauth_callback", provider=name, _external=True)
    return client.authorize_redirect(redirect_uri)


@auth_bp.route("/oauth/<provider>/callback")
def oauth_callback(provider):
    name, client = oauth_service.resolve_client(provider)
    if client is None or name != provider:
        notify_error("OAuth Error", f"Sign in with {provider} is not enabled.")
        return redirect(url_for("auth.login"))

    try:
        token = client.authorize_access_token()
        info = oauth_service.fetch_identity(provider, client, token)
        user = oauth_service.link_or_create_user(provider, info)
    except Exception as e:
        db.session.rollback()
        log.warning("oauth callback failed for %s: %s", provider, e)
        notify_error("OAuth Error", str(e) or "Sign in failed.")
        return redirect(url_for("auth.login"))

    login_user(user)
    user.mark_login()
    db.session.commit()

    if provider in oauth_service.LINKEDIN_VARIANTS:
        try:
            if oauth_service.import_linkedin_profile(user, info):
                notify("Imported from LinkedIn", "We pre-filled some profile fields. Please review and save.", "info")
        except Exception as e:
            db.session.rollback()
            log.warning("LinkedIn import failed: %s", e)

    return redirect(url_for("main.dashboard"))


# -----------------
# Forgot / Reset Password
# -----------------

@auth_bp.route("/forgot-password", methods=["GET", "POST"])
def forgot_password():
    form = ForgotPasswordForm()
    if form.validate_on_submit():
        email = form.email.data.strip().lower()
        user = User.query.filter_by(email=email).first()
        # mask whether email exists
        if user:
            send_password_reset_email(user)
        notify("Reset link sent", "If that email is registered, you will receive a reset link shortly.", "info")
        return redirect(url_for("auth.login"))

    return render_template("auth/forgot_password.html", form=form)


@auth_bp.route("/reset-password/<token>", methods=["GET", "POST"])
def reset_password(token):
    user = _verify_token(_ts(), token, RESET_MAX_AGE)
    if not user:
        notify_error("Reset failed", "The reset link is invalid or has expired.")
        return redirect(url_for("auth.forgot_password"))

    form = ResetPasswordForm()
    if form.validate_on_submit():
        user.set_password(form.password.data)
        db.session.commit()
        notify("Password updated", "You can now sign in with your new password.")
        return redirect(url_for("auth.login"))

    return render_template("auth/reset_password.html", form=form)


# -----------------
# Email Verification
# -----------------

@auth_bp.route("/verify/<token>")
def verify_email(token):
    user = _verify_token(_verify_ts(), token, VERIFY_MAX_AGE)
    if not user:
        notify_error("Verification failed", "Verification link invalid or expired.")
        return redirect(url_for("auth.login"))

    user.is_email_verified = True
    db.session.commit()
    notify("Email verified", "Your email address is confirmed.")
    return redirect(url_for("main.dashboard") if current_user.is_authenticated else url_for("auth.login"))

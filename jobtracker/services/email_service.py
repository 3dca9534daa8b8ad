# jobtracker/services/email_service.py
import logging
from typing import Optional

from flask import current_app, render_template
from flask_mail import Message
from jinja2 import TemplateNotFound

from ..extensions import mail

log = logging.getLogger(__name__)

# kind -> subject; the bodies live in email/<kind>.html and email/<kind>.txt
ACCOUNT_EMAILS = {
    "verify_email": "Confirm your {app_name} email",
    "password_reset": "Reset your {app_name} password",
}


def _render_bodies(kind: str, ctx: dict) -> tuple[str, Optional[str]]:
    html = render_template(f"email/{kind}.html", **ctx)
    try:
        txt = render_template(f"email/{kind}.txt", **ctx)
    except TemplateNotFound:
        txt = None
    return html, txt


def _sender() -> Optional[str]:
    cfg = current_app.config
    return cfg.get("MAIL_DEFAULT_SENDER") or cfg.get("MAIL_USERNAME")


def send_account_email(kind: str, *, user, link: str) -> bool:
    """Mail ``user`` a verification or password-reset ``link``.

    Returns False instead of raising when the message cannot be built or
    delivered; callers keep going and show their usual toast.
    """
    if kind not in ACCOUNT_EMAILS:
        raise ValueError(f"Unknown account email: {kind}")
    if not user.email:
        log.warning("%s mail skipped: user %s has no email", kind, user.id)
        return False

    sender = _sender()
    if not sender:
        log.error("%s mail to %s not sent: no sender configured", kind, user.email)
        return False

    app_name = current_app.config.get("APP_NAME", "JobTracker")
    try:
        html, txt = _render_bodies(kind, {"user": user, "link": link, "app_name": app_name})
        msg = Message(
            subject=ACCOUNT_EMAILS[kind].format(app_name=app_name),
            recipients=[user.email],
            sender=sender,
            body=txt,
            html=html,
        )
        if current_app.config.get("MAIL_SUPPRESS_SEND"):
            log.info("[MAIL_SUPPRESS_SEND=1] would send %s mail to %s", kind, user.email)
            return True
        mail.send(msg)
    except Exception as e:
        log.exception("%s mail to %s failed: %s", kind, user.email, e)
        return False

    log.info("%s mail sent to %s", kind, user.email)
    return True

# jobtracker/services/oauth_service.py
from __future__ import annotations

import logging
from typing import Optional

from ..extensions import db, oauth
from ..models.user import User, OAuthIdentity
from ..models.profile import Profile

log = logging.getLogger(__name__)

LINKEDIN_VARIANTS = ("linkedin_oidc", "linkedin")

GOOGLE_METADATA_URL = "https://accounts.google.com/.well-known/openid-configuration"
LINKEDIN_METADATA_URL = "https://www.linkedin.com/oauth/.well-known/openid-configuration"


def register_providers(app) -> None:
    """Register the OAuth clients whose credentials are configured."""
    cfg = app.config
    if cfg.get("GOOGLE_CLIENT_ID") and cfg.get("GOOGLE_CLIENT_SECRET"):
        oauth.register(
            "google",
            client_id=cfg["GOOGLE_CLIENT_ID"],
            client_secret=cfg["GOOGLE_CLIENT_SECRET"],
            server_metadata_url=GOOGLE_METADATA_URL,
            client_kwargs={"scope": "openid email profile"},
            overwrite=True,
        )

    if cfg.get("LINKEDIN_CLIENT_ID") and cfg.get("LINKEDIN_CLIENT_SECRET"):
        variant = cfg.get("LINKEDIN_PROVIDER") or "linkedin_oidc"
        if variant == "linkedin":
            oauth.register(
                "linkedin",
                client_id=cfg["LINKEDIN_CLIENT_ID"],
                client_secret=cfg["LINKEDIN_CLIENT_SECRET"],
                authorize_url="https://www.linkedin.com/oauth/v2/authorization",
                access_token_url="https://www.linkedin.com/oauth/v2/accessToken",
                api_base_url="https://api.linkedin.com/v2/",
                client_kwargs={
                    "scope": "r_liteprofile r_emailaddress",
                    "token_endpoint_auth_method": "client_secret_post",
                },
                overwrite=True,
            )
        else:
            oauth.register(
                "linkedin_oidc",
                client_id=cfg["LINKEDIN_CLIENT_ID"],
                client_secret=cfg["LINKEDIN_CLIENT_SECRET"],
                server_metadata_url=LINKEDIN_METADATA_URL,
                client_kwargs={
                    "scope": "openid profile email",
                    "token_endpoint_auth_method": "client_secret_post",
                },
                overwrite=True,
            )


def resolve_client(provider: str):
    """Return ``(name, client)``; LinkedIn falls back to the other registered variant."""
    candidates = [provider]
    if provider in LINKEDIN_VARIANTS:
        candidates += [v for v in LINKEDIN_VARIANTS if v != provider]
    for name in candidates:
        client = oauth.create_client(name)
        if client is not None:
            if name != provider:
                log.info("oauth provider %s unavailable, falling back to %s", provider, name)
            return name, client
    return provider, None


def _localized(value) -> str:
    if isinstance(value, dict):
        loc = value.get("localized") or {}
        return loc.get("en_US") or next(iter(loc.values()), "") if loc else ""
    return value or ""


def fetch_identity(provider: str, client, token: dict) -> dict:
    """Normalise provider user info into ``{subject, email, email_verified, name, headline}``.

    The legacy LinkedIn email endpoint only returns the member's primary
    address, which LinkedIn has already confirmed.
    """
    if provider == "linkedin":
        me = client.get("me", token=token).json()
        email = ""
        resp = client.get("emailAddress?q=members&projection=(elements*(handle~))", token=token)
        if resp.ok:
            elements = resp.json().get("elements") or [{}]
            email = (elements[0].get("handle~") or {}).get("emailAddress", "")
        first = me.get("localizedFirstName") or _localized(me.get("firstName"))
        last = me.get("localizedLastName") or _localized(me.get("lastName"))
        return {
            "subject": str(me.get("id") or ""),
            "email": email,
            "email_verified": bool(email),
            "name": f"{first} {last}".strip(),
            "headline": _localized(me.get("headline")),
        }

    info = token.get("userinfo") or client.userinfo(token=token)
    return {
        "subject": str(info.get("sub") or ""),
        "email": info.get("email") or "",
        "email_verified": info.get("email_verified") in (True, "true"),
        "name": (info.get("name")
                 or f"{info.get('given_name', '')} {info.get('family_name', '')}".strip()),
        "headline": "",
    }


def link_or_create_user(provider: str, info: dict) -> User:
    """Identity match first, then an existing account with the same verified email, else a new user."""
    subject = info.get("subject")
    email = (info.get("email") or "").strip().lower()
    if not subject:
        raise ValueError("Provider did not return a user id.")

    ident = OAuthIdentity.query.filter_by(provider=provider, subject=subject).first()
    if ident:
        return ident.user

    verified = bool(info.get("email_verified"))
    user = User.query.filter_by(email=email).first() if email else None
    if user is not None and not verified:
        log.warning("refusing to link %s identity %s: email %s is not verified", provider, subject, email)
        raise ValueError("Your email address is not verified with this provider, so it cannot be linked to an existing account.")
    if user is None:
        if not email:
            raise ValueError("Provider did not return an email address.")
        user = User(email=email, display_name=info.get("name") or None, is_email_verified=verified)
        db.session.add(user)
        db.session.flush()

    db.session.add(OAuthIdentity(user_id=user.id, provider=provider, subject=subject))
    db.session.commit()
    return user


def import_linkedin_profile(user: User, info: dict) -> Optional[Profile]:
    """Pre-fill an empty profile from LinkedIn data. Existing values are left alone."""
    name = (info.get("name") or "").strip()
    headline = (info.get("headline") or "").strip()
    if not name and not headline:
        return None

    prof = Profile.query.filter_by(user_id=user.id).first()
    if prof is None:
        prof = Profile(user_id=user.id, experience=[], education=[])
        db.session.add(prof)

    if name and not prof.display_name:
        prof.display_name = name
    if headline and not any((e or {}).get("role") == headline for e in (prof.experience or [])):
        prof.experience = [{"company": "", "role": headline, "start": "", "end": ""}] + list(prof.experience or [])

    db.session.commit()
    return prof

# storefront/auth/tokens.py
from __future__ import annotations

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer


def _s():
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt="access-token")


def make_access_token(user) -> str:
    return _s().dumps({"uid": user.id, "role": user.role})


def load_access_token(token: str, max_age_seconds: int | None = None) -> int | None:
    """Return the user id carried by a valid token, else None."""
    if not token:
        return None
    if max_age_seconds is None:
        max_age_seconds = current_app.config.get("ACCESS_TOKEN_MAX_AGE", 3600)
    try:
        data = _s().loads(token, max_age=max_age_seconds)
    except SignatureExpired:
        current_app.logger.info("access token expired")
        return None
    except BadSignature:
        return None
    try:
        return int(data.get("uid"))
    except (AttributeError, TypeError, ValueError):
        return None


def bearer_token(header_value: str | None) -> str | None:
    """Extract the token from an `Authorization: Bearer <token>` header."""
    raw = (header_value or "").strip()
    if not raw:
        return None
    scheme, _, token = raw.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None

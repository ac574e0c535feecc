# Overview: Gift tokens and signed, expiring gift links (HS256 JWT).

"""
Gift Links

Every gift (and plugin) order gets an opaque gift_token of the form
``gift-{epoch_ms}-{9 base36 chars}``. The token itself is never put in a URL:
the shareable link carries a signed JWT whose ``sub`` is the gift token and
``oid`` the order id, expiring at the order's gift_expires_at.

resolve_gift_link() is the only way a link is turned back into a gift token.
"""

from __future__ import annotations

import secrets
import string
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

from ..errors import GiftLinkExpiredError, NotFoundError
from giftbox.time_utils import epoch_ms, utcnow


JWT_ALGORITHM = "HS256"
BASE36_ALPHABET = string.digits + string.ascii_lowercase


def generate_gift_token(now: datetime | None = None) -> str:
    suffix = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(9))
    return f"gift-{epoch_ms(now)}-{suffix}"


def gift_expiry(now: datetime | None = None) -> datetime:
    days = current_app.config["GIFT_LINK_TTL_DAYS"]
    return (now or utcnow()) + timedelta(days=days)


def _epoch_seconds(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def issue_link_token(gift_token: str, order_id: int, expires_at: datetime) -> str:
    claims = {
        "sub": gift_token,
        "oid": order_id,
        "iat": _epoch_seconds(utcnow()),
        "exp": _epoch_seconds(expires_at),
    }
    return jwt.encode(claims, current_app.config["SECRET_KEY"], algorithm=JWT_ALGORITHM)


def build_gift_link(link_token: str) -> str:
    site_url = current_app.config["SITE_URL"].rstrip("/")
    return f"{site_url}/gift-receiver/{link_token}"


def link_for_order(gift_token: str, order_id: int, expires_at: datetime) -> str:
    return build_gift_link(issue_link_token(gift_token, order_id, expires_at))


def resolve_gift_link(link_token: str) -> str:
    """
    Verify a link token and return the gift token it names.

    Raises GiftLinkExpiredError (410) once past expiry and NotFoundError for
    anything malformed or signed with another key.
    """
    try:
        claims = jwt.decode(
            link_token,
            current_app.config["SECRET_KEY"],
            algorithms=[JWT_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise GiftLinkExpiredError("This gift link has expired")
    except jwt.InvalidTokenError:
        raise NotFoundError("Gift not found")
    return claims["sub"]

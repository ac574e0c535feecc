"""
Login Throttling Service

Failed sign-ins are written to security_events (event_type LOGIN_FAILED,
identifier in action). MAX_FAILED_ATTEMPTS failures inside LOCKOUT_WINDOW
lock the identifier for LOCKOUT_DURATION, counted from the latest failure.
"""

from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import SecurityEvent, User
from giftbox.time_utils import as_utc_naive, utcnow


MAX_FAILED_ATTEMPTS = 10
LOCKOUT_WINDOW = timedelta(minutes=15)
LOCKOUT_DURATION = timedelta(minutes=15)

LOGIN_RESOURCE = "/api/auth/login"


def normalize_identifier(identifier: str) -> str:
    return (identifier or "").strip().lower()


def _failures_since(identifier: str, cutoff):
    return db.session.query(SecurityEvent).filter(
        SecurityEvent.event_type == "LOGIN_FAILED",
        SecurityEvent.action == normalize_identifier(identifier),
        SecurityEvent.occurred_at >= cutoff,
    )


def get_recent_failed_attempts(identifier: str) -> int:
    return _failures_since(identifier, utcnow() - LOCKOUT_WINDOW).count()


def is_account_locked(identifier: str) -> tuple[bool, int | None]:
    """
    Returns (True, seconds_remaining) while locked, else (False, None).
    """
    if get_recent_failed_attempts(identifier) < MAX_FAILED_ATTEMPTS:
        return False, None

    most_recent = (
        _failures_since(identifier, utcnow() - LOCKOUT_WINDOW)
        .order_by(SecurityEvent.occurred_at.desc())
        .first()
    )
    if not most_recent:
        return False, None

    lockout_end = as_utc_naive(most_recent.occurred_at) + LOCKOUT_DURATION
    now = utcnow()
    if now < lockout_end:
        return True, int((lockout_end - now).total_seconds())
    return False, None


def _record(event_type: str, identifier: str, *, user_id, success: bool, reason, ip_address, user_agent) -> None:
    db.session.add(SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=LOGIN_RESOURCE,
        action=normalize_identifier(identifier),
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    ))
    db.session.commit()


def record_failed_attempt(
    identifier: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
    reason: str = "Invalid credentials",
) -> int:
    """Record a failure and return the failure count inside the window."""
    user = db.session.query(User).filter_by(email=normalize_identifier(identifier)).first()
    _record(
        "LOGIN_FAILED", identifier,
        user_id=user.id if user else None,
        success=False,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    return get_recent_failed_attempts(identifier)


def record_successful_login(
    user_id: int,
    identifier: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    _record(
        "LOGIN_SUCCESS", identifier,
        user_id=user_id,
        success=True,
        reason=None,
        ip_address=ip_address,
        user_agent=user_agent,
    )

# Overview: Service-layer operations for sessions; bearer tokens and the per-request SessionContext.

"""
Session Token Management

Tokens are 32 random bytes handed to the client as hex; the database keeps
only their SHA-256. A session dies after SESSION_ABSOLUTE_TIMEOUT, after
SESSION_IDLE_TIMEOUT without use, on logout, or when the account is
deactivated.

validate_session() resolves the caller's role (and vendor id, for vendors)
once, so routes read a single typed SessionContext instead of re-fetching
the profile.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from ..extensions import db
from ..models import Role, SessionToken, User, Vendor
from giftbox.time_utils import as_utc_naive, utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=2)


@dataclass
class SessionContext:
    user: User
    session: SessionToken
    role: Role
    vendor_id: int | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_vendor(self) -> bool:
        return self.role is Role.VENDOR


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """SHA-256 is enough here: tokens are high-entropy, unlike passwords."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Create a session for an active user.

    Returns (session_record, plaintext_token). Only the hash is persisted.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise ValueError("User not found")
    if not user.is_active:
        raise ValueError("User account is deactivated")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason


def validate_session(token: str) -> SessionContext | None:
    """
    Return the SessionContext for a live token, or None.

    Idle or deactivated sessions are revoked on the way out. A valid call
    refreshes last_used_at.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return None

    now = utcnow()

    if as_utc_naive(session.expires_at) < now:
        return None

    if now - as_utc_naive(session.last_used_at) > SESSION_IDLE_TIMEOUT:
        _revoke(session, "Idle timeout")
        db.session.commit()
        return None

    user = session.user
    if not user or not user.is_active:
        _revoke(session, "User account deactivated")
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()

    role = user.role_enum
    vendor_id = None
    if role is Role.VENDOR:
        vendor = db.session.query(Vendor).filter_by(user_id=user.id).first()
        vendor_id = vendor.id if vendor else None

    return SessionContext(user=user, session=session, role=role, vendor_id=vendor_id)


def revoke_session(token: str, reason: str = "User logout") -> SessionToken | None:
    """Revoke a live session. Returns the revoked row, or None if not found."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return None

    _revoke(session, reason)
    db.session.commit()
    return session


def revoke_all_user_sessions(
    user_id: int,
    reason: str = "Revoke all sessions",
    *,
    except_session_id: int | None = None,
) -> int:
    """Revoke every live session of a user, optionally keeping the caller's."""
    query = db.session.query(SessionToken).filter_by(user_id=user_id, is_revoked=False)
    if except_session_id is not None:
        query = query.filter(SessionToken.id != except_session_id)

    count = 0
    for session in query.all():
        _revoke(session, reason)
        count += 1

    db.session.commit()
    return count


def cleanup_expired_sessions() -> int:
    """
    Delete expired or revoked sessions older than 30 days.

    Run periodically (see `flask sessions cleanup`).
    """
    now = utcnow()
    cutoff = now - timedelta(days=30)

    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < now,
            SessionToken.is_revoked.is_(True),
        ),
        SessionToken.created_at < cutoff,
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted

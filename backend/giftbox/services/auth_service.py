# Overview: Service-layer operations for accounts: sign-up, sign-in, sign-out, passwords.

"""
Authentication Service

Passwords are bcrypt hashed (cost 12). sign_up creates the user and, for
vendors, the Vendor profile in one transaction and returns both rows, so
callers never poll for a trigger-created profile.

sign_in applies login throttling (see login_throttle_service) and opens a
session (see session_service).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import bcrypt
from sqlalchemy.exc import IntegrityError

from ..errors import AuthenticationError, ConflictError, ThrottledError, ValidationError
from ..events import SessionChange, session_changed
from ..extensions import db
from ..models import Role, SessionToken, User, Vendor
from . import login_throttle_service, session_service
from .concurrency import run_with_retry
from giftbox.time_utils import utcnow

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
SELF_SERVICE_ROLES = (Role.USER.value, Role.VENDOR.value)


class PasswordValidationError(ValidationError):
    """Raised when a password doesn't meet the length rule."""


@dataclass
class SignUpResult:
    user: User
    vendor: Vendor | None = None


@dataclass
class SignInResult:
    user: User
    session: SessionToken
    token: str


def validate_password(password: str | None) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def normalize_email(email: str | None) -> str:
    email = (email or "").strip().lower()
    if "@" not in email:
        raise ValidationError("A valid email is required")
    return email


def hash_password(password: str) -> str:
    validate_password(password)
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=12))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in the row
        return False


def sign_up(
    email: str,
    password: str,
    name: str | None = None,
    role: str = Role.USER.value,
    vendor_name: str | None = None,
    *,
    allow_admin: bool = False,
) -> SignUpResult:
    """
    Create an account. role=vendor also creates the Vendor profile.

    Admin accounts are only created through the CLI (allow_admin=True).
    """
    email = normalize_email(email)
    validate_password(password)

    if role not in SELF_SERVICE_ROLES and not (allow_admin and role == Role.ADMIN.value):
        raise ValidationError(f"Role must be one of: {', '.join(SELF_SERVICE_ROLES)}")
    if role == Role.VENDOR.value and not (vendor_name or name or "").strip():
        raise ValidationError("vendor_name is required for vendor accounts")

    password_hash = hash_password(password)

    def _op():
        if db.session.query(User).filter_by(email=email).first():
            raise ConflictError("An account with this email already exists")

        user = User(
            email=email,
            password_hash=password_hash,
            name=(name or "").strip() or None,
            role=role,
            is_active=True,
        )
        db.session.add(user)
        db.session.flush()

        vendor = None
        if role == Role.VENDOR.value:
            vendor = Vendor(
                user_id=user.id,
                vendor_name=(vendor_name or name).strip(),
                email=email,
            )
            db.session.add(vendor)

        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError("An account with this email already exists")
        return SignUpResult(user=user, vendor=vendor)

    result = run_with_retry(_op)
    logger.info("Account created: user_id=%s role=%s", result.user.id, role)
    return result


def authenticate(email: str, password: str) -> User | None:
    """Return the active user for matching credentials, else None."""
    user = db.session.query(User).filter(
        User.email == (email or "").strip().lower(),
        User.is_active.is_(True),
    ).first()

    if not user or not verify_password(password or "", user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def sign_in(
    email: str,
    password: str,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> SignInResult:
    """
    Verify credentials and open a session.

    Raises ThrottledError while the identifier is locked out and
    AuthenticationError on bad credentials.
    """
    if not email or not password:
        raise ValidationError("email and password required")

    locked, seconds_remaining = login_throttle_service.is_account_locked(email)
    if locked:
        raise ThrottledError(
            "Account temporarily locked due to too many failed login attempts",
            {"retry_after_seconds": seconds_remaining},
        )

    user = authenticate(email, password)
    if not user:
        failed = login_throttle_service.record_failed_attempt(
            email, ip_address=ip_address, user_agent=user_agent,
        )
        remaining = login_throttle_service.MAX_FAILED_ATTEMPTS - failed
        if remaining <= 0:
            raise ThrottledError(
                "Account locked due to too many failed login attempts",
                {"retry_after_minutes": int(login_throttle_service.LOCKOUT_DURATION.total_seconds() // 60)},
            )
        details = {"attempts_remaining": remaining} if remaining <= 3 else None
        raise AuthenticationError("Invalid credentials", details)

    login_throttle_service.record_successful_login(
        user.id, email, ip_address=ip_address, user_agent=user_agent,
    )
    session, token = session_service.create_session(
        user.id, user_agent=user_agent, ip_address=ip_address,
    )

    session_changed.send(SessionChange(user_id=user.id, signed_in=True, role=user.role))
    return SignInResult(user=user, session=session, token=token)


def sign_out(token: str) -> None:
    session = session_service.revoke_session(token, reason="User logout")
    if not session:
        raise AuthenticationError("Invalid or expired token")
    session_changed.send(SessionChange(user_id=session.user_id, signed_in=False))


def update_password(user: User, current_password: str, new_password: str, *, keep_session_id: int | None = None) -> int:
    """
    Change a password after checking the current one.

    Every other session of the user is revoked; returns how many were.
    """
    if not verify_password(current_password or "", user.password_hash):
        raise AuthenticationError("Current password is incorrect")
    if current_password == new_password:
        raise PasswordValidationError("New password must differ from the current password")

    user.password_hash = hash_password(new_password)
    db.session.commit()

    revoked = session_service.revoke_all_user_sessions(
        user.id, reason="Password changed", except_session_id=keep_session_id,
    )
    logger.info("Password changed for user_id=%s; %d other sessions revoked", user.id, revoked)
    return revoked

# Overview: Health endpoint checking the database, sessions and platform settings.

"""
System health endpoint.

Returns 200 while every check is healthy or degraded, 503 once any check
is unhealthy.
"""

import time

from flask import Blueprint, current_app

from ..extensions import db
from ..models import PlatformSettings, SessionToken, Store, User
from giftbox.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def _elapsed_ms(start_time: float) -> float:
    return round((time.time() - start_time) * 1000, 2)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        store_count = db.session.query(Store).count()
        user_count = db.session.query(User).count()
        return {
            "status": "healthy",
            "latency_ms": _elapsed_ms(start_time),
            "details": {"stores": store_count, "users": user_count},
        }
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "latency_ms": _elapsed_ms(start_time), "error": "Database error"}


def check_session_service_health() -> dict:
    start_time = time.time()
    try:
        active_sessions = db.session.query(SessionToken).filter_by(is_revoked=False).count()
        expired_sessions = db.session.query(SessionToken).filter(
            SessionToken.expires_at < utcnow(),
            SessionToken.is_revoked.is_(False),
        ).count()
        return {
            "status": "healthy",
            "latency_ms": _elapsed_ms(start_time),
            "details": {
                "active_sessions": active_sessions,
                "expired_pending_cleanup": expired_sessions,
            },
        }
    except Exception:
        current_app.logger.exception("Session service health check failed")
        return {"status": "unhealthy", "latency_ms": _elapsed_ms(start_time), "error": "Session service error"}


def check_settings_health() -> dict:
    """Degraded until the settings row exists (it is created on first read)."""
    start_time = time.time()
    try:
        exists = db.session.query(PlatformSettings.id).first() is not None
        status = "healthy" if exists else "degraded"
        result = {"status": status, "latency_ms": _elapsed_ms(start_time)}
        if not exists:
            result["warning"] = "Platform settings not initialized"
        return result
    except Exception:
        current_app.logger.exception("Settings health check failed")
        return {"status": "unhealthy", "latency_ms": _elapsed_ms(start_time), "error": "Settings error"}


@system_bp.get("/health")
def health():
    start_time = time.time()

    checks = {
        "database": check_database_health(),
        "session_service": check_session_service_health(),
        "settings": check_settings_health(),
    }
    statuses = [check["status"] for check in checks.values()]

    if "unhealthy" in statuses:
        overall_status, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": _elapsed_ms(start_time),
        "checks": checks,
    }, http_status

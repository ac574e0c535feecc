# Overview: Service-layer operations for the platform settings singleton.

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from flask import current_app

from ..errors import ValidationError
from ..extensions import db
from ..models import PlatformSettings
from .concurrency import lock_for_update, run_with_retry

logger = logging.getLogger(__name__)

SETTINGS_ID = "default"


def _percent(value, field: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    try:
        pct = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not pct.is_finite() or pct < 0 or pct > 100:
        raise ValidationError(f"{field} must be between 0 and 100")
    return pct.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def get_settings() -> PlatformSettings:
    """Return the singleton, creating it from config defaults on first use."""
    settings = db.session.get(PlatformSettings, SETTINGS_ID)
    if settings is None:
        cfg = current_app.config
        settings = PlatformSettings(
            id=SETTINGS_ID,
            commission_percent=_percent(cfg["DEFAULT_COMMISSION_PERCENT"], "commission_percent"),
            tax_percent=_percent(cfg["DEFAULT_TAX_PERCENT"], "tax_percent"),
            plugin_tax=_percent(cfg["DEFAULT_PLUGIN_TAX"], "plugin_tax"),
        )
        db.session.add(settings)
        db.session.commit()
    return settings


def get_commission_percent() -> Decimal:
    return Decimal(get_settings().commission_percent)


def get_checkout_settings() -> dict:
    settings = get_settings()
    return {
        "tax_percent": float(settings.tax_percent),
        "plugin_tax": float(settings.plugin_tax),
    }


def _locked_settings() -> PlatformSettings:
    get_settings()
    return lock_for_update(db.session.query(PlatformSettings).filter_by(id=SETTINGS_ID)).one()


def update_commission(percent, admin_id: int | None) -> PlatformSettings:
    pct = _percent(percent, "commission_percent")

    def _op():
        settings = _locked_settings()
        settings.commission_percent = pct
        settings.updated_by = admin_id
        db.session.commit()
        return settings

    settings = run_with_retry(_op)
    logger.info("Commission set to %s%% by admin %s", pct, admin_id)
    return settings


def update_tax_settings(tax_percent=None, plugin_tax=None, admin_id: int | None = None) -> PlatformSettings:
    if tax_percent is None and plugin_tax is None:
        raise ValidationError("tax_percent or plugin_tax is required")
    tax = _percent(tax_percent, "tax_percent") if tax_percent is not None else None
    plugin = _percent(plugin_tax, "plugin_tax") if plugin_tax is not None else None

    def _op():
        settings = _locked_settings()
        if tax is not None:
            settings.tax_percent = tax
        if plugin is not None:
            settings.plugin_tax = plugin
        settings.updated_by = admin_id
        db.session.commit()
        return settings

    return run_with_retry(_op)


# =============================================================================
# OVERVIEW VIDEOS
# =============================================================================

OVERVIEW_VIDEO_FIELDS = {
    "gifting_video_url": "overview_video_gifting_url",
    "vendor_video_url": "overview_video_vendor_url",
}


def _video_url(value, field: str) -> str | None:
    """Blank clears the link; anything else must be an http(s) URL."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    value = value.strip()
    if not value:
        return None
    if len(value) > 1024:
        raise ValidationError(f"{field} must be at most 1024 characters")
    if not value.startswith(("http://", "https://")):
        raise ValidationError(f"{field} must be an http(s) URL")
    return value


def get_overview_videos() -> dict:
    settings = get_settings()
    return {key: getattr(settings, column) for key, column in OVERVIEW_VIDEO_FIELDS.items()}


def update_overview_videos(patch: dict, admin_id: int | None = None) -> dict:
    """Set the links present in patch; absent keys keep their value."""
    values = {
        OVERVIEW_VIDEO_FIELDS[key]: _video_url(patch[key], key)
        for key in OVERVIEW_VIDEO_FIELDS
        if key in patch
    }
    if not values:
        raise ValidationError("gifting_video_url or vendor_video_url is required")

    def _op():
        settings = _locked_settings()
        for column, value in values.items():
            setattr(settings, column, value)
        settings.updated_by = admin_id
        db.session.commit()
        return settings

    run_with_retry(_op)
    logger.info("Overview videos updated by admin %s", admin_id)
    return get_overview_videos()

# backend/giftbox/config.py
from __future__ import annotations
import os


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    # Signs gift-link tokens; override in every non-dev environment
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///giftbox.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Public origin of the storefront (gift links, onboarding return URLs)
    SITE_URL = os.environ.get("SITE_URL", "http://localhost:3000")
    GIFT_LINK_TTL_DAYS = _env_int("GIFT_LINK_TTL_DAYS", 30)

    # Connect-style payment processor
    PAYMENT_API_BASE = os.environ.get("PAYMENT_API_BASE", "https://api.stripe.com")
    PAYMENT_API_KEY = os.environ.get("PAYMENT_API_KEY", "")
    PAYMENT_CURRENCY = os.environ.get("PAYMENT_CURRENCY", "usd")
    PAYMENT_TIMEOUT_SECONDS = _env_float("PAYMENT_TIMEOUT_SECONDS", 10.0)

    # Settlement
    PAYOUT_DAYS_AFTER_DELIVERED = _env_int("PAYOUT_DAYS_AFTER_DELIVERED", 7)
    MIN_TRANSFER_CENTS = _env_int("MIN_TRANSFER_CENTS", 50)

    # Defaults for the platform settings row
    DEFAULT_COMMISSION_PERCENT = _env_float("DEFAULT_COMMISSION_PERCENT", 10.0)
    DEFAULT_TAX_PERCENT = _env_float("DEFAULT_TAX_PERCENT", 8.0)
    DEFAULT_PLUGIN_TAX = _env_float("DEFAULT_PLUGIN_TAX", 0.0)

    SHIPPING_FLAT_RATE = os.environ.get("SHIPPING_FLAT_RATE", "9.99")

    CORS_ALLOWED_ORIGINS = os.environ.get(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000",
    )

# Overview: Typed domain signals (blinker) for session, cart, order, store and payout changes.

"""
Domain events.

Each signal is sent with a single frozen dataclass as the sender, so a
receiver is written as ``def on_order_placed(event: OrderPlaced): ...``.
Services send after their transaction commits; receivers must not expect to
join the originating transaction.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal

from blinker import Namespace
from flask import current_app, has_app_context


_signals = Namespace()

session_changed = _signals.signal("session-changed")
cart_updated = _signals.signal("cart-updated")
order_placed = _signals.signal("order-placed")
order_status_changed = _signals.signal("order-status-changed")
gift_confirmed = _signals.signal("gift-confirmed")
store_status_changed = _signals.signal("store-status-changed")
payout_settled = _signals.signal("payout-settled")

ALL_SIGNALS = (
    session_changed,
    cart_updated,
    order_placed,
    order_status_changed,
    gift_confirmed,
    store_status_changed,
    payout_settled,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionChange:
    user_id: int
    signed_in: bool
    role: str | None = None


@dataclass(frozen=True)
class CartChange:
    owner_key: str
    line_count: int
    item_count: int


@dataclass(frozen=True)
class OrderPlaced:
    order_id: int
    order_number: str
    order_type: str
    status: str
    store_ids: tuple[int, ...]
    total: Decimal


@dataclass(frozen=True)
class OrderStatusChange:
    order_id: int
    vendor_order_id: int | None
    old_status: str
    new_status: str
    actor_user_id: int | None


@dataclass(frozen=True)
class GiftConfirmation:
    order_id: int
    gift_token: str
    confirmed_at: datetime


@dataclass(frozen=True)
class StoreStatusChange:
    store_id: int
    old_status: str
    new_status: str
    admin_id: int


@dataclass(frozen=True)
class PayoutSettlement:
    vendor_order_id: int
    payout_status: str
    vendor_amount: Decimal | None
    transfer_id: str | None = None
    error: str | None = None


def _audit(event) -> None:
    log = current_app.logger if has_app_context() else logger
    log.info("event %s %s", type(event).__name__, asdict(event))


def connect_audit_log() -> None:
    """Write one INFO line per domain event. Safe to call more than once."""
    for signal in ALL_SIGNALS:
        signal.connect(_audit, weak=False)

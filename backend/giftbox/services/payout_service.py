# Overview: Service-layer operations for vendor payouts: amounts, admin/vendor listings, batch settlement.

"""
Payout Service

A delivered vendor order is paid out once:

    order_total       = vendor_order.subtotal (that store's lines only)
    commission_amount = round_half_up(order_total * commission% / 100, 2)
    vendor_amount     = order_total - commission_amount - plugin_fee

A plugin order has a single vendor order, so its order_total is the whole
order total and the integration's per-order fee comes out of the vendor's
share (never below zero). For every other order plugin_fee is zero and
vendor_amount + commission_amount == order_total to the cent.

The first settlement attempt stores the split on the vendor order; later
attempts and every listing reuse it, so a retried row pays exactly what the
admin was shown. Each transfer attempt gets its own idempotency key.

Settlement (process_payouts) handles each vendor order in its own
transaction under a row lock and re-checks the row after locking, so two
overlapping batches never pay the same vendor order twice. A failure on one
row is recorded on that row and reported; the batch carries on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal

from flask import current_app

from ..errors import PaymentGatewayError, ValidationError
from ..events import PayoutSettlement, payout_settled
from ..extensions import db, get_payment_gateway
from ..models import Order, Store, Vendor, VendorOrder, VendorPayout
from . import settings_service
from .concurrency import lock_for_update
from .pagination import paginate
from giftbox.money import ZERO, money_json, percent_of, to_cents
from giftbox.time_utils import to_utc_z, utcnow

logger = logging.getLogger(__name__)

PAYOUT_FILTERS = ("pending", "paid", "failed", "all")
SETTLEABLE = ("pending", "failed")


class PayoutError(ValidationError):
    """Raised for malformed settlement requests."""


@dataclass
class BatchResult:
    processed: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": True,
            "processed": self.processed,
            "skipped": self.skipped,
            "errors": self.errors,
        }


def compute_payout_amounts(order_total, commission_percent, plugin_fee=ZERO) -> tuple[Decimal, Decimal]:
    """Return (commission_amount, vendor_amount) for a vendor order total."""
    order_total = Decimal(order_total)
    commission = percent_of(order_total, commission_percent)
    return commission, max(ZERO, order_total - commission - Decimal(plugin_fee))


def payout_base(vendor_order: VendorOrder, order: Order) -> tuple[Decimal, Decimal]:
    """(order_total, plugin_fee) the split is computed from."""
    if order.order_type == "plugin":
        return Decimal(order.total), Decimal(order.plugin_fee or 0)
    return Decimal(vendor_order.subtotal), ZERO


def payout_amounts(vendor_order: VendorOrder, commission_percent) -> tuple[Decimal, Decimal]:
    # Amounts stored by an earlier attempt win over the current rate
    if vendor_order.commission_amount is not None and vendor_order.vendor_amount is not None:
        return Decimal(vendor_order.commission_amount), Decimal(vendor_order.vendor_amount)
    order_total, plugin_fee = payout_base(vendor_order, vendor_order.order)
    return compute_payout_amounts(order_total, commission_percent, plugin_fee)


# =============================================================================
# LISTINGS
# =============================================================================

def _payout_row(vendor_order: VendorOrder, order: Order, store: Store, vendor: Vendor, commission_percent: Decimal) -> dict:
    commission, vendor_amount = payout_amounts(vendor_order, commission_percent)
    order_total, plugin_fee = payout_base(vendor_order, order)
    return {
        "vendor_order_id": vendor_order.id,
        "order_id": order.id,
        "order_number": order.order_number,
        "store_id": store.id,
        "store_name": store.name,
        "vendor_id": vendor.id,
        "vendor_name": vendor.display_name,
        "order_total": money_json(order_total),
        "commission_percent": money_json(commission_percent),
        "commission_amount": money_json(commission),
        "plugin_fee": money_json(plugin_fee),
        "vendor_amount": money_json(vendor_amount),
        "payout_status": vendor_order.payout_status,
        "payout_at": to_utc_z(vendor_order.payout_at),
        "delivered_at": to_utc_z(vendor_order.delivered_at),
        "transfer_id": vendor_order.transfer_id,
        "has_payment_account": bool(store.payment_account_id),
    }


def list_payouts(
    search: str | None = None,
    store_name: str | None = None,
    vendor_name: str | None = None,
    status: str | None = None,
    page=1,
    per_page=10,
) -> dict:
    """
    Admin view over delivered vendor orders, oldest delivery first.

    status: pending | paid | failed | all; default is pending or failed.
    """
    status = status or None
    if status is not None and status not in PAYOUT_FILTERS:
        raise ValidationError(f"status must be one of: {', '.join(PAYOUT_FILTERS)}")

    query = (
        db.session.query(VendorOrder, Order, Store, Vendor)
        .join(Order, Order.id == VendorOrder.order_id)
        .join(Store, Store.id == VendorOrder.store_id)
        .join(Vendor, Vendor.id == VendorOrder.vendor_id)
        .filter(VendorOrder.status == "delivered")
    )
    if status is None:
        query = query.filter(VendorOrder.payout_status.in_(SETTLEABLE))
    elif status != "all":
        query = query.filter(VendorOrder.payout_status == status)

    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(
            Order.order_number.ilike(pattern),
            Store.name.ilike(pattern),
            Vendor.vendor_name.ilike(pattern),
            Vendor.business_name.ilike(pattern),
        ))
    if store_name and store_name.strip():
        query = query.filter(Store.name.ilike(f"%{store_name.strip()}%"))
    if vendor_name and vendor_name.strip():
        pattern = f"%{vendor_name.strip()}%"
        query = query.filter(db.or_(Vendor.vendor_name.ilike(pattern), Vendor.business_name.ilike(pattern)))

    query = query.order_by(VendorOrder.delivered_at.asc(), VendorOrder.id.asc())
    rows, total, page, per_page = paginate(query, page, per_page, default_per_page=10)

    commission_percent = settings_service.get_commission_percent()
    return {
        "payouts": [_payout_row(vo, order, store, vendor, commission_percent) for vo, order, store, vendor in rows],
        "total": total,
        "page": page,
        "per_page": per_page,
    }


def list_vendor_payouts(vendor_id: int) -> dict:
    """A vendor's delivered-but-unpaid vendor orders and its payout ledger."""
    commission_percent = settings_service.get_commission_percent()
    pending_rows = (
        db.session.query(VendorOrder, Order, Store, Vendor)
        .join(Order, Order.id == VendorOrder.order_id)
        .join(Store, Store.id == VendorOrder.store_id)
        .join(Vendor, Vendor.id == VendorOrder.vendor_id)
        .filter(
            VendorOrder.vendor_id == vendor_id,
            VendorOrder.status == "delivered",
            VendorOrder.payout_status != "paid",
        )
        .order_by(VendorOrder.delivered_at.asc(), VendorOrder.id.asc())
        .all()
    )
    received = (
        db.session.query(VendorPayout)
        .filter(VendorPayout.vendor_id == vendor_id)
        .order_by(VendorPayout.paid_at.desc(), VendorPayout.id.desc())
        .all()
    )
    return {
        "pending": [_payout_row(vo, order, store, vendor, commission_percent) for vo, order, store, vendor in pending_rows],
        "received": [payout.to_dict() for payout in received],
    }


# =============================================================================
# SETTLEMENT
# =============================================================================

def _select_batch(vendor_order_ids) -> list[int]:
    query = db.session.query(VendorOrder.id).filter(VendorOrder.status == "delivered")
    if vendor_order_ids:
        query = query.filter(
            VendorOrder.id.in_(vendor_order_ids),
            VendorOrder.payout_status.in_(SETTLEABLE),
        )
    else:
        cutoff = utcnow() - timedelta(days=current_app.config["PAYOUT_DAYS_AFTER_DELIVERED"])
        query = query.filter(
            VendorOrder.payout_status == "pending",
            VendorOrder.delivered_at.isnot(None),
            VendorOrder.delivered_at < cutoff,
        )
    return [row.id for row in query.order_by(VendorOrder.id).all()]


def _record_paid(vendor_order: VendorOrder, commission: Decimal, vendor_amount: Decimal, transfer_id: str | None) -> None:
    now = utcnow()
    vendor_order.payout_status = "paid"
    vendor_order.payout_at = now
    vendor_order.commission_amount = commission
    vendor_order.vendor_amount = vendor_amount
    vendor_order.transfer_id = transfer_id
    db.session.add(VendorPayout(
        vendor_order_id=vendor_order.id,
        order_id=vendor_order.order_id,
        vendor_id=vendor_order.vendor_id,
        store_id=vendor_order.store_id,
        order_total=payout_base(vendor_order, vendor_order.order)[0],
        commission_amount=commission,
        vendor_amount=vendor_amount,
        transfer_id=transfer_id,
        paid_at=now,
    ))


def _record_failed(vendor_order: VendorOrder, commission: Decimal, vendor_amount: Decimal) -> None:
    vendor_order.payout_status = "failed"
    vendor_order.commission_amount = commission
    vendor_order.vendor_amount = vendor_amount


def _settle_one(vendor_order_id: int, commission_percent: Decimal, gateway) -> PayoutSettlement | None:
    """
    Settle a single vendor order in its own transaction.

    Returns None when the locked row turns out to be no longer settleable
    (for example, paid by a concurrent batch).
    """
    vendor_order = lock_for_update(db.session.query(VendorOrder).filter_by(id=vendor_order_id)).first()
    if not vendor_order or vendor_order.status != "delivered" or vendor_order.payout_status not in SETTLEABLE:
        db.session.rollback()
        return None

    commission, vendor_amount = payout_amounts(vendor_order, commission_percent)
    store = vendor_order.store

    if not store.payment_account_id:
        _record_failed(vendor_order, commission, vendor_amount)
        db.session.commit()
        return PayoutSettlement(vendor_order.id, "failed", vendor_amount, error=f"Store {store.id}: no payment account")

    amount_cents = to_cents(vendor_amount)
    if amount_cents < current_app.config["MIN_TRANSFER_CENTS"]:
        _record_paid(vendor_order, commission, vendor_amount, None)
        db.session.commit()
        return PayoutSettlement(vendor_order.id, "paid", vendor_amount)

    vendor_order.payout_attempts = (vendor_order.payout_attempts or 0) + 1
    try:
        transfer = gateway.create_transfer(
            amount_cents,
            current_app.config["PAYMENT_CURRENCY"],
            store.payment_account_id,
            f"Payout for order {vendor_order.order_id}",
            idempotency_key=f"payout-{vendor_order.id}-{vendor_order.payout_attempts}",
        )
    except PaymentGatewayError as exc:
        _record_failed(vendor_order, commission, vendor_amount)
        db.session.commit()
        return PayoutSettlement(vendor_order.id, "failed", vendor_amount, error=f"Vendor order {vendor_order.id}: {exc.message}")

    _record_paid(vendor_order, commission, vendor_amount, transfer.id)
    db.session.commit()
    return PayoutSettlement(vendor_order.id, "paid", vendor_amount, transfer_id=transfer.id)


def _parse_ids(vendor_order_ids) -> list[int] | None:
    if vendor_order_ids is None:
        return None
    if not isinstance(vendor_order_ids, (list, tuple)):
        raise PayoutError("vendor_order_ids must be a list")
    ids = []
    for value in vendor_order_ids:
        if isinstance(value, bool):
            raise PayoutError("vendor_order_ids must contain integers")
        try:
            ids.append(int(value))
        except (TypeError, ValueError):
            raise PayoutError("vendor_order_ids must contain integers")
    return ids or None


def process_payouts(vendor_order_ids=None, gateway=None) -> BatchResult:
    """
    Settle delivered vendor orders.

    With ids: exactly those that are delivered and pending or failed.
    Without: every pending one delivered more than PAYOUT_DAYS_AFTER_DELIVERED
    days ago. Never raises for a single row; see BatchResult.errors.
    """
    ids = _parse_ids(vendor_order_ids)
    gateway = gateway or get_payment_gateway()
    commission_percent = settings_service.get_commission_percent()

    result = BatchResult()
    for vendor_order_id in _select_batch(ids):
        try:
            settlement = _settle_one(vendor_order_id, commission_percent, gateway)
        except Exception as exc:
            db.session.rollback()
            logger.exception("Payout failed for vendor order %s", vendor_order_id)
            result.errors.append(f"Vendor order {vendor_order_id}: {exc}")
            continue

        if settlement is None:
            result.skipped += 1
            continue

        if settlement.payout_status == "paid":
            result.processed += 1
            logger.info("Payout settled: vendor_order=%s amount=%s transfer=%s",
                        settlement.vendor_order_id, settlement.vendor_amount, settlement.transfer_id)
        else:
            result.errors.append(settlement.error)
            logger.warning("Payout failed: %s", settlement.error)
        payout_settled.send(settlement)

    return result

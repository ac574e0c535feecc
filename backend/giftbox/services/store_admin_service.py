# Overview: Service-layer operations for admin store approval and the admin dashboard.

"""
Store Approval Workflow

    pending   --approve--> approved
    pending   --reject---> rejected
    approved  --suspend--> suspended
    suspended --approve--> approved   (reactivation)

Every transition needs the acting admin's id. Approval records approved_at
and approved_by; suspension keeps approved_by from the original approval.
"""

from __future__ import annotations

import logging

from ..errors import ConflictError, NotFoundError, PermissionDeniedError
from ..events import StoreStatusChange, store_status_changed
from ..extensions import db
from ..models import Order, Product, Service, Store, User, Vendor, VendorOrder
from .concurrency import lock_for_update, run_with_retry
from giftbox.money import ZERO
from giftbox.time_utils import utcnow

logger = logging.getLogger(__name__)


STORE_TRANSITIONS = {
    "approve": {"pending", "suspended"},
    "reject": {"pending"},
    "suspend": {"approved"},
}


class StoreApprovalError(ConflictError):
    """Raised when a store transition is not allowed from its current status."""


def _transition(store_id: int, admin_id: int | None, action: str) -> Store:
    if not admin_id:
        raise PermissionDeniedError("An admin is required to change store status")

    def _op():
        store = lock_for_update(db.session.query(Store).filter_by(id=store_id)).first()
        if not store:
            raise NotFoundError("Store not found")

        old_status = store.status
        if old_status not in STORE_TRANSITIONS[action]:
            raise StoreApprovalError(f"Cannot {action} a store that is {old_status}")

        now = utcnow()
        if action == "approve":
            store.status = "approved"
            store.approved_at = now
            store.approved_by = admin_id
            store.suspended_at = None
        elif action == "reject":
            store.status = "rejected"
            store.approved_by = admin_id
        else:
            store.status = "suspended"
            store.suspended_at = now

        db.session.commit()
        return store, old_status

    store, old_status = run_with_retry(_op)
    logger.info("Store %s: %s -> %s by admin %s", store.id, old_status, store.status, admin_id)
    store_status_changed.send(StoreStatusChange(
        store_id=store.id, old_status=old_status, new_status=store.status, admin_id=admin_id,
    ))
    return store


def approve_store(store_id: int, admin_id: int) -> Store:
    return _transition(store_id, admin_id, "approve")


def reject_store(store_id: int, admin_id: int) -> Store:
    return _transition(store_id, admin_id, "reject")


def suspend_store(store_id: int, admin_id: int) -> Store:
    return _transition(store_id, admin_id, "suspend")


def reactivate_store(store_id: int, admin_id: int) -> Store:
    store = db.session.get(Store, store_id)
    if store and store.status != "suspended":
        raise StoreApprovalError(f"Cannot reactivate a store that is {store.status}")
    return _transition(store_id, admin_id, "approve")


def list_pending_stores() -> list[Store]:
    return (
        db.session.query(Store)
        .filter(Store.status == "pending")
        .order_by(Store.created_at.asc(), Store.id.asc())
        .all()
    )


def list_all_stores(status: str | None = None) -> list[Store]:
    query = db.session.query(Store)
    if status:
        query = query.filter(Store.status == status)
    return query.order_by(Store.created_at.desc(), Store.id.desc()).all()


def get_store_detail(store_id: int) -> dict:
    store = db.session.get(Store, store_id)
    if not store:
        raise NotFoundError("Store not found")

    order_counts = dict(
        db.session.query(VendorOrder.status, db.func.count(VendorOrder.id))
        .filter(VendorOrder.store_id == store_id)
        .group_by(VendorOrder.status)
        .all()
    )

    return {
        "store": store.to_dict(include_payment=True),
        "vendor": store.vendor.to_dict() if store.vendor else None,
        "products": [p.to_dict() for p in db.session.query(Product).filter_by(store_id=store_id).order_by(Product.id).all()],
        "services": [s.to_dict() for s in db.session.query(Service).filter_by(store_id=store_id).order_by(Service.id).all()],
        "order_counts": order_counts,
        "total_orders": sum(order_counts.values()),
    }


def admin_dashboard_stats() -> dict:
    store_counts = dict(
        db.session.query(Store.status, db.func.count(Store.id)).group_by(Store.status).all()
    )
    revenue = (
        db.session.query(db.func.coalesce(db.func.sum(Order.total), 0))
        .filter(Order.status != "cancelled")
        .scalar()
    )
    return {
        "total_stores": sum(store_counts.values()),
        "pending_stores": store_counts.get("pending", 0),
        "approved_stores": store_counts.get("approved", 0),
        "total_orders": db.session.query(db.func.count(Order.id)).scalar() or 0,
        "revenue": float(revenue or ZERO),
        "total_users": db.session.query(db.func.count(User.id)).scalar() or 0,
        "total_vendors": db.session.query(db.func.count(Vendor.id)).scalar() or 0,
    }

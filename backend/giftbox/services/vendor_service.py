# Overview: Service-layer operations for vendor profiles and their stores.

"""
Vendor & Store Service

Each vendor owns at most one store. Stores are always registered as pending;
status and payment fields change only through store_admin_service and
connect_service respectively, never through update_store.
"""

from __future__ import annotations

import logging

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Store, User, Vendor, VendorOrder
from .concurrency import lock_for_update, run_with_retry

logger = logging.getLogger(__name__)


class StoreError(ConflictError):
    """Raised when a store operation breaks a business rule."""


VENDOR_FIELDS = {
    "vendor_name", "business_name", "business_type", "tax_id", "phone", "email",
    "address", "city", "state", "zip_code", "country",
}
STORE_MUTABLE_FIELDS = {
    "name", "description", "category", "logo_url", "banner_url",
    "address", "phone", "email", "website",
}


def _clean(patch: dict, allowed: set[str]) -> dict:
    cleaned = {}
    for key, value in (patch or {}).items():
        if key not in allowed:
            continue
        if isinstance(value, str):
            value = value.strip() or None
        cleaned[key] = value
    return cleaned


def create_vendor(user_id: int, patch: dict) -> Vendor:
    """Create the vendor profile for an existing user (one per user)."""
    def _op():
        user = db.session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        if db.session.query(Vendor).filter_by(user_id=user_id).first():
            raise ConflictError("Vendor profile already exists")

        fields = _clean(patch, VENDOR_FIELDS)
        if not fields.get("vendor_name"):
            raise ValidationError("vendor_name is required")

        vendor = Vendor(user_id=user_id, **fields)
        db.session.add(vendor)
        user.role = "vendor"
        db.session.commit()
        return vendor

    return run_with_retry(_op)


def get_vendor_by_user_id(user_id: int) -> Vendor | None:
    return db.session.query(Vendor).filter_by(user_id=user_id).first()


def get_store(store_id: int) -> Store | None:
    return db.session.get(Store, store_id)


def get_store_by_vendor_id(vendor_id: int) -> Store | None:
    return db.session.query(Store).filter_by(vendor_id=vendor_id).first()


def require_vendor_store(vendor_id: int | None) -> Store:
    if vendor_id is None:
        raise NotFoundError("Vendor profile not found")
    store = get_store_by_vendor_id(vendor_id)
    if not store:
        raise NotFoundError("Store not found")
    return store


def register_store(vendor_id: int, patch: dict) -> Store:
    """Register the vendor's store. New stores always start pending."""
    def _op():
        vendor = db.session.get(Vendor, vendor_id)
        if not vendor:
            raise NotFoundError("Vendor not found")
        if db.session.query(Store).filter_by(vendor_id=vendor_id).first():
            raise StoreError("Vendor already has a store")

        fields = _clean(patch, STORE_MUTABLE_FIELDS)
        if not fields.get("name"):
            raise ValidationError("Store name is required")

        store = Store(vendor_id=vendor_id, status="pending", **fields)
        db.session.add(store)
        db.session.commit()
        return store

    store = run_with_retry(_op)
    logger.info("Store registered: store_id=%s vendor_id=%s", store.id, vendor_id)
    return store


def update_store(store_id: int, patch: dict) -> Store:
    """Update descriptive fields. status and payment fields are ignored."""
    def _op():
        store = lock_for_update(db.session.query(Store).filter_by(id=store_id)).first()
        if not store:
            raise NotFoundError("Store not found")

        fields = _clean(patch, STORE_MUTABLE_FIELDS)
        if "name" in fields and not fields["name"]:
            raise ValidationError("Store name cannot be empty")
        for key, value in fields.items():
            setattr(store, key, value)

        db.session.commit()
        return store

    return run_with_retry(_op)


def list_approved_stores() -> list[Store]:
    return (
        db.session.query(Store)
        .filter(Store.status == "approved")
        .order_by(Store.name.asc())
        .all()
    )


def list_top_vendors(limit: int = 10) -> list[dict]:
    """Approved stores ranked by number of delivered vendor orders."""
    delivered = db.func.count(VendorOrder.id)
    rows = (
        db.session.query(Store, delivered)
        .outerjoin(
            VendorOrder,
            db.and_(VendorOrder.store_id == Store.id, VendorOrder.status == "delivered"),
        )
        .filter(Store.status == "approved")
        .group_by(Store.id)
        .order_by(delivered.desc(), Store.name.asc())
        .limit(limit)
        .all()
    )
    return [
        {**store.to_dict(), "delivered_orders": int(count or 0)}
        for store, count in rows
    ]

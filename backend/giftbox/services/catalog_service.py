# Overview: Service-layer operations for products and services; vendor CRUD and public listings.

"""
Catalog Service

Vendors manage their own store's products and services; admins may manage
any store's. Deletion is soft (is_active=False) so historical order items
and reviews keep resolving.

Public listings only ever include active items of approved stores.
"""

from __future__ import annotations

from ..errors import NotFoundError, PermissionDeniedError, ValidationError
from ..extensions import db
from ..models import Order, OrderItem, Product, Review, Service, Store
from .concurrency import lock_for_update, run_with_retry
from giftbox.money import to_money


PRODUCT_MUTABLE_FIELDS = {"name", "description", "price", "original_price", "category", "image_urls", "stock", "is_active"}
SERVICE_MUTABLE_FIELDS = {"name", "description", "price", "category", "duration", "location", "image_urls", "is_active"}

MAX_LIST_LIMIT = 100


def _coerce_patch(patch: dict, allowed: set[str]) -> dict:
    cleaned = {}
    for key, value in (patch or {}).items():
        if key not in allowed:
            continue
        if key in ("price", "original_price"):
            if value is None and key == "original_price":
                cleaned[key] = None
                continue
            amount = to_money(value, field=key)
            if amount < 0:
                raise ValidationError(f"{key} cannot be negative")
            cleaned[key] = amount
        elif key == "stock":
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError("stock must be an integer")
            if value < 0:
                raise ValidationError("stock cannot be negative")
            cleaned[key] = value
        elif key == "image_urls":
            if value is None:
                value = []
            if not isinstance(value, list) or not all(isinstance(url, str) for url in value):
                raise ValidationError("image_urls must be a list of URLs")
            cleaned[key] = value
        elif key == "is_active":
            cleaned[key] = bool(value)
        else:
            cleaned[key] = value.strip() if isinstance(value, str) else value
    return cleaned


def _require_store(store_id: int, vendor_id: int | None) -> Store:
    """vendor_id=None means an admin caller."""
    store = db.session.get(Store, store_id)
    if not store:
        raise NotFoundError("Store not found")
    if vendor_id is not None and store.vendor_id != vendor_id:
        raise PermissionDeniedError("You can only manage your own store's catalog")
    return store


def _rating_summary(column, item_id: int) -> dict:
    avg, count = (
        db.session.query(db.func.avg(Review.rating), db.func.count(Review.id))
        .filter(column == item_id)
        .one()
    )
    return {
        "average_rating": round(float(avg), 2) if avg is not None else None,
        "review_count": int(count or 0),
    }


# =============================================================================
# PRODUCTS
# =============================================================================

def create_product(store_id: int, patch: dict, *, vendor_id: int | None = None) -> Product:
    fields = _coerce_patch(patch, PRODUCT_MUTABLE_FIELDS)
    if not fields.get("name"):
        raise ValidationError("Product name is required")
    if "price" not in fields:
        raise ValidationError("price is required")

    def _op():
        _require_store(store_id, vendor_id)
        product = Product(store_id=store_id, **fields)
        db.session.add(product)
        db.session.commit()
        return product

    return run_with_retry(_op)


def update_product(product_id: int, patch: dict, *, vendor_id: int | None = None) -> Product:
    fields = _coerce_patch(patch, PRODUCT_MUTABLE_FIELDS)
    if "name" in fields and not fields["name"]:
        raise ValidationError("Product name cannot be empty")

    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if not product:
            raise NotFoundError("Product not found")
        _require_store(product.store_id, vendor_id)
        for key, value in fields.items():
            setattr(product, key, value)
        db.session.commit()
        return product

    return run_with_retry(_op)


def delete_product(product_id: int, *, vendor_id: int | None = None) -> Product:
    return update_product(product_id, {"is_active": False}, vendor_id=vendor_id)


def get_product(product_id: int, *, include_inactive: bool = False) -> dict:
    product = db.session.get(Product, product_id)
    if not product or (not include_inactive and not (product.is_active and product.store.is_approved)):
        raise NotFoundError("Product not found")
    data = product.to_dict()
    data.update(_rating_summary(Review.product_id, product_id))
    data["store"] = {"id": product.store.id, "name": product.store.name}
    return data


def list_products_by_store(store_id: int, *, include_inactive: bool = False) -> list[Product]:
    query = db.session.query(Product).filter(Product.store_id == store_id)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    return query.order_by(Product.created_at.desc(), Product.id.desc()).all()


def list_approved_products(limit: int = 50, category: str | None = None, search: str | None = None) -> list[Product]:
    query = (
        db.session.query(Product)
        .join(Store, Store.id == Product.store_id)
        .filter(Product.is_active.is_(True), Store.status == "approved")
    )
    if category:
        query = query.filter(Product.category == category)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))
    return query.order_by(Product.created_at.desc(), Product.id.desc()).limit(min(limit, MAX_LIST_LIMIT)).all()


# =============================================================================
# SERVICES
# =============================================================================

def create_service(store_id: int, patch: dict, *, vendor_id: int | None = None) -> Service:
    fields = _coerce_patch(patch, SERVICE_MUTABLE_FIELDS)
    if not fields.get("name"):
        raise ValidationError("Service name is required")
    if "price" not in fields:
        raise ValidationError("price is required")

    def _op():
        _require_store(store_id, vendor_id)
        service = Service(store_id=store_id, **fields)
        db.session.add(service)
        db.session.commit()
        return service

    return run_with_retry(_op)


def update_service(service_id: int, patch: dict, *, vendor_id: int | None = None) -> Service:
    fields = _coerce_patch(patch, SERVICE_MUTABLE_FIELDS)
    if "name" in fields and not fields["name"]:
        raise ValidationError("Service name cannot be empty")

    def _op():
        service = lock_for_update(db.session.query(Service).filter_by(id=service_id)).first()
        if not service:
            raise NotFoundError("Service not found")
        _require_store(service.store_id, vendor_id)
        for key, value in fields.items():
            setattr(service, key, value)
        db.session.commit()
        return service

    return run_with_retry(_op)


def delete_service(service_id: int, *, vendor_id: int | None = None) -> Service:
    return update_service(service_id, {"is_active": False}, vendor_id=vendor_id)


def get_service(service_id: int, *, include_inactive: bool = False) -> dict:
    service = db.session.get(Service, service_id)
    if not service or (not include_inactive and not (service.is_active and service.store.is_approved)):
        raise NotFoundError("Service not found")
    data = service.to_dict()
    data.update(_rating_summary(Review.service_id, service_id))
    data["store"] = {"id": service.store.id, "name": service.store.name}
    return data


def list_services_by_store(store_id: int, *, include_inactive: bool = False) -> list[Service]:
    query = db.session.query(Service).filter(Service.store_id == store_id)
    if not include_inactive:
        query = query.filter(Service.is_active.is_(True))
    return query.order_by(Service.created_at.desc(), Service.id.desc()).all()


def list_approved_services(limit: int = 50, category: str | None = None, search: str | None = None) -> list[Service]:
    query = (
        db.session.query(Service)
        .join(Store, Store.id == Service.store_id)
        .filter(Service.is_active.is_(True), Store.status == "approved")
    )
    if category:
        query = query.filter(Service.category == category)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(Service.name.ilike(pattern), Service.description.ilike(pattern)))
    return query.order_by(Service.created_at.desc(), Service.id.desc()).limit(min(limit, MAX_LIST_LIMIT)).all()


# =============================================================================
# LANDING
# =============================================================================

def landing_categories() -> list[dict]:
    """Distinct categories across public products and services, with counts."""
    counts: dict[str, dict] = {}
    for model, key in ((Product, "product_count"), (Service, "service_count")):
        rows = (
            db.session.query(model.category, db.func.count(model.id))
            .join(Store, Store.id == model.store_id)
            .filter(model.is_active.is_(True), Store.status == "approved", model.category.isnot(None))
            .group_by(model.category)
            .all()
        )
        for category, count in rows:
            entry = counts.setdefault(category, {"category": category, "product_count": 0, "service_count": 0})
            entry[key] = int(count)
    return sorted(
        counts.values(),
        key=lambda c: (-(c["product_count"] + c["service_count"]), c["category"]),
    )


def landing_trending_products(limit: int = 8) -> list[dict]:
    """Public products ranked by quantity ordered on non-cancelled orders."""
    ordered = db.func.coalesce(
        db.func.sum(db.case((Order.id.isnot(None), OrderItem.quantity), else_=0)),
        0,
    )
    rows = (
        db.session.query(Product, ordered)
        .join(Store, Store.id == Product.store_id)
        .outerjoin(OrderItem, OrderItem.product_id == Product.id)
        .outerjoin(Order, db.and_(Order.id == OrderItem.order_id, Order.status != "cancelled"))
        .filter(Product.is_active.is_(True), Store.status == "approved")
        .group_by(Product.id)
        .order_by(ordered.desc(), Product.id.desc())
        .limit(min(limit, MAX_LIST_LIMIT))
        .all()
    )
    return [{**product.to_dict(), "quantity_ordered": int(qty or 0)} for product, qty in rows]


def landing_services(limit: int = 8) -> list[Service]:
    return list_approved_services(limit=limit)

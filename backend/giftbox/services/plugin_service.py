# Overview: Service-layer operations for external storefront integrations and the gift orders they push.

"""
Plugin Integration Service

An integration lets one external storefront push already-paid gift orders
for a single store. It authenticates with an API key sent in X-API-Key; the
key is returned once by create_integration and only its SHA-256 is stored.

Plugin orders behave like gift orders: pending until the receiver confirms
an address through the gift link. Their items are free lines (name, price,
quantity) with no catalog reference and no stock.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import string
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, ValidationError
from ..events import OrderPlaced, order_placed
from ..extensions import db
from ..models import Order, OrderItem, PluginIntegration, Store, Vendor, VendorOrder
from . import gift_link_service, payout_service, settings_service
from .concurrency import run_with_retry
from .pagination import paginate
from giftbox.money import ZERO, money_json, to_money
from giftbox.time_utils import epoch_ms, to_utc_z, utcnow

logger = logging.getLogger(__name__)

API_KEY_PREFIX = "gbx_live_"
ORDER_NUMBER_ALPHABET = string.digits + string.ascii_uppercase


class PluginError(ConflictError):
    """Raised on duplicate integrations or duplicate external orders."""


def hash_api_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


def generate_plugin_order_number(now=None) -> str:
    suffix = "".join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(6))
    return f"PLUG-{epoch_ms(now)}-{suffix}"


# =============================================================================
# INTEGRATIONS
# =============================================================================

def create_integration(name: str, store_id: int, fee_per_order=0) -> tuple[PluginIntegration, str]:
    """Returns (integration, plaintext_api_key). The key is not recoverable later."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    fee = to_money(fee_per_order if fee_per_order is not None else 0, field="fee_per_order")
    if fee < ZERO:
        raise ValidationError("fee_per_order must be a non-negative number")

    store = db.session.get(Store, store_id)
    if not store:
        raise NotFoundError("Store not found")
    if db.session.query(PluginIntegration.id).filter_by(store_id=store.id).first():
        raise PluginError("This store already has a plugin integration")

    raw_key = API_KEY_PREFIX + secrets.token_hex(24)
    integration = PluginIntegration(
        name=name,
        vendor_id=store.vendor_id,
        store_id=store.id,
        api_key_hash=hash_api_key(raw_key),
        api_key_prefix=raw_key[:12] + "…",
        fee_per_order=fee,
        is_active=True,
    )
    db.session.add(integration)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise PluginError("This store already has a plugin integration")

    logger.info("Plugin integration %s created for store %s", integration.id, store.id)
    return integration, raw_key


def authenticate_api_key(raw_key: str | None) -> PluginIntegration | None:
    if not raw_key or not raw_key.strip():
        return None
    return (
        db.session.query(PluginIntegration)
        .filter_by(api_key_hash=hash_api_key(raw_key.strip()), is_active=True)
        .first()
    )


def list_integrations() -> list[dict]:
    rows = (
        db.session.query(PluginIntegration, Store)
        .join(Store, Store.id == PluginIntegration.store_id)
        .order_by(PluginIntegration.created_at.desc(), PluginIntegration.id.desc())
        .all()
    )
    return [{**integration.to_dict(), "store_name": store.name} for integration, store in rows]


def deactivate_integration(integration_id: int) -> PluginIntegration:
    integration = db.session.get(PluginIntegration, integration_id)
    if not integration:
        raise NotFoundError("Integration not found")
    integration.is_active = False
    db.session.commit()
    logger.info("Plugin integration %s deactivated", integration_id)
    return integration


# =============================================================================
# ORDERS
# =============================================================================

def _required(payload: dict, fields: tuple[str, ...]) -> dict:
    values = {}
    missing = []
    for name in fields:
        value = payload.get(name)
        value = str(value).strip() if value is not None else ""
        if not value:
            missing.append(name)
        values[name] = value
    if missing:
        raise ValidationError(f"{', '.join(missing)} required", {"missing": missing})
    return values


def _parse_items(raw) -> list[dict]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError("items must be a non-empty array")
    items = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValidationError(f"items[{index}] must be an object")
        price = to_money(entry.get("price"), field=f"items[{index}].price")
        if price < ZERO:
            raise ValidationError(f"items[{index}].price cannot be negative")
        quantity = entry.get("quantity", 1)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError(f"items[{index}].quantity must be a positive integer")
        items.append({
            "name": str(entry.get("name") or "").strip() or "Item",
            "price": price,
            "quantity": quantity,
            "image_url": str(entry.get("image_url")).strip() if entry.get("image_url") else None,
        })
    return items


def create_plugin_order(integration: PluginIntegration, payload: dict) -> Order:
    """
    Create a pending plugin order with its gift link and one vendor order
    for the integration's store.
    """
    payload = payload or {}
    external_order_id = payload.get("external_order_id")
    if not isinstance(external_order_id, str) or not external_order_id.strip():
        raise ValidationError("external_order_id is required")
    external_order_id = external_order_id.strip()

    sender = _required(payload, ("sender_name", "sender_email", "sender_phone", "sender_address"))
    receiver = _required(payload, ("receiver_name", "receiver_email"))
    items = _parse_items(payload.get("items"))

    total = to_money(payload.get("total"), field="total")
    if total <= ZERO:
        raise ValidationError("total must be a positive number")
    shipping = to_money(payload.get("shipping") or 0, field="shipping")
    tax = to_money(payload.get("tax") or 0, field="tax")
    subtotal = sum((item["price"] * item["quantity"] for item in items), ZERO)

    duplicate = (
        db.session.query(Order.id)
        .filter_by(plugin_integration_id=integration.id, external_order_id=external_order_id)
        .first()
    )
    if duplicate:
        raise PluginError("An order with this external_order_id already exists for your integration")

    receiver_phone = payload.get("receiver_phone")

    def _op():
        now = utcnow()
        order = Order(
            order_number=generate_plugin_order_number(now),
            order_type="plugin",
            user_id=None,
            status="pending",
            receiver_phone=str(receiver_phone).strip() if receiver_phone else None,
            subtotal=subtotal,
            shipping=shipping,
            tax=tax,
            total=total,
            gift_token=gift_link_service.generate_gift_token(now),
            gift_expires_at=gift_link_service.gift_expiry(now),
            plugin_integration_id=integration.id,
            external_order_id=external_order_id,
            plugin_fee=integration.fee_per_order,
            **sender,
            **receiver,
        )
        for item in items:
            order.items.append(OrderItem(item_type="external", store_id=integration.store_id, **item))
        order.vendor_orders.append(VendorOrder(
            vendor_id=integration.vendor_id,
            store_id=integration.store_id,
            status="pending",
            subtotal=subtotal,
        ))
        db.session.add(order)
        try:
            db.session.flush()
            order.gift_link = gift_link_service.link_for_order(order.gift_token, order.id, order.gift_expires_at)
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise PluginError("An order with this external_order_id already exists for your integration")
        return order

    order = run_with_retry(_op)
    logger.info("Plugin order %s from integration %s (external %s)",
                order.order_number, integration.id, external_order_id)
    order_placed.send(OrderPlaced(
        order_id=order.id,
        order_number=order.order_number,
        order_type=order.order_type,
        status=order.status,
        store_ids=(integration.store_id,),
        total=Decimal(order.total),
    ))
    return order


def get_plugin_order(integration: PluginIntegration, order_id: int | None = None, external_order_id: str | None = None) -> dict:
    """An order pushed by this integration, by id or external id."""
    if order_id is None and not (external_order_id and external_order_id.strip()):
        raise ValidationError("order_id or external_order_id is required")

    query = db.session.query(Order).filter(Order.plugin_integration_id == integration.id)
    if order_id is not None:
        query = query.filter(Order.id == order_id)
    else:
        query = query.filter(Order.external_order_id == external_order_id.strip())
    order = query.first()
    if not order:
        raise NotFoundError("Order not found or access denied")

    data = order.to_dict(include_items=False)
    return {"order": data, "order_items": [item.to_dict() for item in order.items]}


def list_plugin_orders(page=1, per_page=20, status: str | None = None) -> dict:
    """Admin view: plugin orders with their store, vendor and money split."""
    query = (
        db.session.query(Order, PluginIntegration, Store, Vendor)
        .join(PluginIntegration, PluginIntegration.id == Order.plugin_integration_id)
        .join(Store, Store.id == PluginIntegration.store_id)
        .join(Vendor, Vendor.id == PluginIntegration.vendor_id)
        .filter(Order.order_type == "plugin")
    )
    if status and status != "all":
        query = query.filter(Order.status == status)
    query = query.order_by(Order.created_at.desc(), Order.id.desc())

    rows, total, page, per_page = paginate(query, page, per_page)
    commission_percent = settings_service.get_commission_percent()

    orders = []
    for order, integration, store, vendor in rows:
        vendor_order = order.vendor_orders[0]
        order_total, plugin_fee = payout_service.payout_base(vendor_order, order)
        commission, vendor_amount = payout_service.payout_amounts(vendor_order, commission_percent)
        orders.append({
            "id": order.id,
            "order_number": order.order_number,
            "external_order_id": order.external_order_id,
            "store_name": store.name,
            "vendor_name": vendor.display_name,
            "integration_name": integration.name,
            "status": order.status,
            "total": money_json(order_total),
            "commission_percent": money_json(commission_percent),
            "commission_amount": money_json(commission),
            "plugin_fee": money_json(plugin_fee),
            "vendor_amount": money_json(vendor_amount),
            "created_at": to_utc_z(order.created_at),
            "confirmed_at": to_utc_z(order.confirmed_at),
        })
    return {"orders": orders, "total": total, "page": page, "per_page": per_page}

# Overview: Service-layer operations for orders: creation with vendor fan-out, gift confirmation, status lifecycle.

"""
Order Service

Order creation is ONE transaction: header, items, stock decrement and the
per-store VendorOrder fan-out either all commit or none do. Prices and the
owning store are resolved from the catalog under row locks; the caller's
subtotal/total are checked against them, never trusted.

Lifecycle (orders and vendor orders share the same table):

    pending -> confirmed -> dispatched -> delivered
       \\__________\\____________\\______-> cancelled

Gift and plugin orders stay pending until the receiver supplies an address
through the gift link; confirmed/dispatched are refused before that, on both
the admin and the vendor path.

The parent order's status is an aggregate of its vendor orders whenever a
vendor moves its own part (see aggregate_status).
"""

from __future__ import annotations

import logging
import secrets
from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal

from ..errors import (
    ConflictError,
    GiftLinkExpiredError,
    InsufficientStockError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from ..events import (
    GiftConfirmation,
    OrderPlaced,
    OrderStatusChange,
    gift_confirmed,
    order_placed,
    order_status_changed,
)
from ..extensions import db
from ..models import (
    ORDER_STATUSES,
    Order,
    OrderItem,
    Product,
    Service,
    Store,
    VendorOrder,
)
from . import gift_link_service
from .concurrency import lock_for_update, run_with_retry
from .pagination import paginate
from giftbox.money import ZERO, to_money
from giftbox.time_utils import as_utc_naive, epoch_ms, to_utc_z, utcnow

logger = logging.getLogger(__name__)


STATUS_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"dispatched", "cancelled"},
    "dispatched": {"delivered", "cancelled"},
    "delivered": set(),
    "cancelled": set(),
}
STATUS_RANK = {"pending": 0, "confirmed": 1, "dispatched": 2, "delivered": 3}
RANK_STATUS = {rank: status for status, rank in STATUS_RANK.items()}

ORDER_TIMESTAMPS = {
    "confirmed": "confirmed_at",
    "dispatched": "dispatched_at",
    "delivered": "delivered_at",
    "cancelled": "cancelled_at",
}

ADDRESS_REQUIRED_STATUSES = ("confirmed", "dispatched")
CUSTOMER_ORDER_TYPES = ("self", "gift")
CUSTOMER_CANCELLABLE = ("pending", "confirmed")
ITEM_TYPES = ("product", "service")


class OrderError(ConflictError):
    """Raised when an order change breaks the lifecycle rules."""


@dataclass(frozen=True)
class LineRequest:
    item_type: str
    item_id: int
    quantity: int


@dataclass
class ResolvedLine:
    item_type: str
    item: Product | Service
    store: Store
    quantity: int

    @property
    def price(self) -> Decimal:
        return Decimal(self.item.price)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


# =============================================================================
# INPUT PARSING
# =============================================================================

def _text(data: dict, field: str, *, required: bool = False) -> str | None:
    value = data.get(field)
    if value is not None and not isinstance(value, str):
        value = str(value)
    value = (value or "").strip() or None
    if required and not value:
        raise ValidationError(f"{field} is required")
    return value


def _positive_int(value, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a positive integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a positive integer")
    if number != value and not (isinstance(value, str) and value.strip().isdigit()):
        raise ValidationError(f"{field} must be a positive integer")
    if number < 1:
        raise ValidationError(f"{field} must be a positive integer")
    return number


def parse_line_requests(raw) -> list[LineRequest]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError("items must be a non-empty list")

    lines = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValidationError(f"items[{index}] must be an object")
        item_type = entry.get("item_type") or ("service" if entry.get("service_id") else "product")
        if item_type not in ITEM_TYPES:
            raise ValidationError(f"items[{index}].item_type must be product or service")
        item_id = entry.get(f"{item_type}_id") or entry.get("item_id")
        lines.append(LineRequest(
            item_type=item_type,
            item_id=_positive_int(item_id, f"items[{index}].{item_type}_id"),
            quantity=_positive_int(entry.get("quantity", 1), f"items[{index}].quantity"),
        ))
    return lines


def _parse_contacts(data: dict, order_type: str) -> dict:
    contacts = {
        "sender_name": _text(data, "sender_name", required=True),
        "sender_email": _text(data, "sender_email", required=True),
        "sender_phone": _text(data, "sender_phone"),
        "sender_address": _text(data, "sender_address", required=True),
        "receiver_name": _text(data, "receiver_name"),
        "receiver_email": _text(data, "receiver_email"),
        "receiver_phone": _text(data, "receiver_phone"),
        "shipping_address": _text(data, "shipping_address"),
    }
    if order_type == "self":
        contacts["receiver_name"] = contacts["receiver_name"] or contacts["sender_name"]
        contacts["receiver_email"] = contacts["receiver_email"] or contacts["sender_email"]
        contacts["receiver_phone"] = contacts["receiver_phone"] or contacts["sender_phone"]
        contacts["shipping_address"] = contacts["shipping_address"] or contacts["sender_address"]
        contacts["receiver_address"] = contacts["shipping_address"]
    else:
        # The receiver supplies the destination through the gift link
        contacts["shipping_address"] = None
        contacts["receiver_address"] = None
    return contacts


def _non_negative_money(data: dict, field: str) -> Decimal:
    amount = to_money(data.get(field, 0) or 0, field=field)
    if amount < ZERO:
        raise ValidationError(f"{field} cannot be negative")
    return amount


def generate_order_number(now=None) -> str:
    return f"ORD-{epoch_ms(now)}-{secrets.token_hex(2).upper()}"


# =============================================================================
# CATALOG RESOLUTION & STOCK
# =============================================================================

def _resolve_lines(lines: list[LineRequest]) -> list[ResolvedLine]:
    """
    Load every referenced item with its store, locking product rows.

    Products are locked in id order so concurrent checkouts cannot deadlock.
    Raises InsufficientStockError before anything is decremented.
    """
    product_ids = sorted({line.item_id for line in lines if line.item_type == "product"})
    service_ids = sorted({line.item_id for line in lines if line.item_type == "service"})

    products = {}
    if product_ids:
        rows = lock_for_update(
            db.session.query(Product).filter(Product.id.in_(product_ids)).order_by(Product.id)
        ).all()
        products = {p.id: p for p in rows}
    services = {}
    if service_ids:
        services = {s.id: s for s in db.session.query(Service).filter(Service.id.in_(service_ids)).all()}

    resolved = []
    for line in lines:
        item = (products if line.item_type == "product" else services).get(line.item_id)
        if item is None or not item.is_active:
            raise NotFoundError(f"{line.item_type.capitalize()} {line.item_id} is not available")
        store = item.store
        if store is None or not store.is_approved:
            raise ValidationError(f"{line.item_type.capitalize()} {line.item_id} is not available")
        resolved.append(ResolvedLine(line.item_type, item, store, line.quantity))

    requested: dict[int, int] = {}
    for line in resolved:
        if line.item_type == "product":
            requested[line.item.id] = requested.get(line.item.id, 0) + line.quantity
    if any(products[pid].stock < qty for pid, qty in requested.items()):
        raise InsufficientStockError()

    for pid, qty in requested.items():
        products[pid].stock -= qty

    return resolved


def _restore_stock(items: list[OrderItem]) -> None:
    quantities: dict[int, int] = {}
    for item in items:
        if item.product_id:
            quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity
    if not quantities:
        return
    products = lock_for_update(
        db.session.query(Product).filter(Product.id.in_(sorted(quantities))).order_by(Product.id)
    ).all()
    for product in products:
        product.stock += quantities[product.id]


def _fan_out(order: Order, now) -> list[VendorOrder]:
    """One VendorOrder per distinct store among the order's items."""
    by_store: OrderedDict[int, list[OrderItem]] = OrderedDict()
    for item in order.items:
        by_store.setdefault(item.store_id, []).append(item)

    vendor_orders = []
    for store_id, items in by_store.items():
        store = db.session.get(Store, store_id)
        vendor_order = VendorOrder(
            store_id=store_id,
            vendor_id=store.vendor_id,
            status=order.status,
            subtotal=sum((item.line_total for item in items), ZERO),
            confirmed_at=now if order.status == "confirmed" else None,
        )
        order.vendor_orders.append(vendor_order)
        vendor_orders.append(vendor_order)
    return vendor_orders


# =============================================================================
# CREATION
# =============================================================================

def create_order(data: dict, user_id: int | None = None) -> Order:
    """
    Create an order with its items and vendor orders in one transaction.

    data: order_type ('self' | 'gift'), sender_* (name, email, address
    required), receiver_* (optional), shipping_address, items
    [{item_type, product_id|service_id, quantity}], subtotal, shipping,
    tax, total.

    Self orders start confirmed; shipping_address defaults to sender_address
    and receiver_address copies it. Gift orders start pending with a gift
    token and a signed gift link.
    """
    order_type = data.get("order_type") or "self"
    if order_type not in CUSTOMER_ORDER_TYPES:
        raise ValidationError("order_type must be 'self' or 'gift'")

    contacts = _parse_contacts(data, order_type)
    lines = parse_line_requests(data.get("items"))

    shipping = _non_negative_money(data, "shipping")
    tax = _non_negative_money(data, "tax")
    claimed_subtotal = to_money(data.get("subtotal"), field="subtotal")
    claimed_total = to_money(data.get("total"), field="total")
    if claimed_total != claimed_subtotal + shipping + tax:
        raise ValidationError("total must equal subtotal + shipping + tax")

    def _op():
        try:
            resolved = _resolve_lines(lines)
            subtotal = sum((line.line_total for line in resolved), ZERO)
            if subtotal != claimed_subtotal:
                raise ValidationError(
                    "subtotal does not match current prices",
                    {"expected_subtotal": str(subtotal)},
                )

            now = utcnow()
            order = Order(
                order_number=generate_order_number(now),
                order_type=order_type,
                user_id=user_id,
                subtotal=subtotal,
                shipping=shipping,
                tax=tax,
                total=claimed_total,
                **contacts,
            )
            if order_type == "self":
                order.status = "confirmed"
                order.confirmed_at = now
            else:
                order.status = "pending"
                order.gift_token = gift_link_service.generate_gift_token(now)
                order.gift_expires_at = gift_link_service.gift_expiry(now)

            for line in resolved:
                order.items.append(OrderItem(
                    item_type=line.item_type,
                    product_id=line.item.id if line.item_type == "product" else None,
                    service_id=line.item.id if line.item_type == "service" else None,
                    store_id=line.store.id,
                    name=line.item.name,
                    price=line.price,
                    quantity=line.quantity,
                    image_url=line.item.primary_image,
                ))

            db.session.add(order)
            db.session.flush()

            if order.gift_token:
                order.gift_link = gift_link_service.link_for_order(order.gift_token, order.id, order.gift_expires_at)

            _fan_out(order, now)
            db.session.commit()
            return order
        except Exception:
            db.session.rollback()
            raise

    order = run_with_retry(_op)

    store_ids = tuple(vo.store_id for vo in order.vendor_orders)
    logger.info("Order placed: %s type=%s status=%s stores=%s total=%s",
                order.order_number, order.order_type, order.status, store_ids, order.total)
    order_placed.send(OrderPlaced(
        order_id=order.id,
        order_number=order.order_number,
        order_type=order.order_type,
        status=order.status,
        store_ids=store_ids,
        total=Decimal(order.total),
    ))
    return order


# =============================================================================
# GIFT RECEIVER
# =============================================================================

def get_order_by_gift_token(gift_token: str) -> dict:
    """Receiver's view: what is coming and from whom, without sender contact details."""
    order = db.session.query(Order).filter_by(gift_token=gift_token).first()
    if not order:
        raise NotFoundError("Gift not found")
    return {
        "order_number": order.order_number,
        "order_type": order.order_type,
        "status": order.status,
        "sender_name": order.sender_name,
        "receiver_name": order.receiver_name,
        "awaiting_address": order.awaiting_receiver,
        "items": [
            {"name": item.name, "quantity": item.quantity, "image_url": item.image_url}
            for item in order.items
        ],
        "confirmed_at": to_utc_z(order.confirmed_at),
        "gift_expires_at": to_utc_z(order.gift_expires_at),
    }


def confirm_gift_receiver(
    gift_token: str,
    receiver_address: str,
    receiver_name: str | None = None,
    receiver_phone: str | None = None,
) -> Order:
    """
    Record the receiver's address and confirm the gift order.

    Unknown token -> NotFoundError; past gift_expires_at ->
    GiftLinkExpiredError; already confirmed -> ConflictError. None of these
    mutate anything.
    """
    receiver_address = (receiver_address or "").strip()
    if not receiver_address:
        raise ValidationError("receiver_address is required")

    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(gift_token=gift_token)).first()
        if not order:
            raise NotFoundError("Gift not found")

        now = utcnow()
        if order.receiver_address or order.status != "pending":
            raise OrderError("This gift has already been confirmed")
        if order.gift_expires_at and as_utc_naive(order.gift_expires_at) < now:
            raise GiftLinkExpiredError("This gift link has expired")

        order.receiver_address = receiver_address
        order.shipping_address = receiver_address
        if receiver_name and receiver_name.strip():
            order.receiver_name = receiver_name.strip()
        if receiver_phone and receiver_phone.strip():
            order.receiver_phone = receiver_phone.strip()
        order.status = "confirmed"
        order.confirmed_at = now

        for vendor_order in order.vendor_orders:
            if vendor_order.status == "pending":
                vendor_order.status = "confirmed"
                vendor_order.confirmed_at = now

        db.session.commit()
        return order

    order = run_with_retry(_op)
    logger.info("Gift confirmed: %s", order.order_number)
    gift_confirmed.send(GiftConfirmation(order_id=order.id, gift_token=gift_token, confirmed_at=order.confirmed_at))
    order_status_changed.send(OrderStatusChange(
        order_id=order.id, vendor_order_id=None, old_status="pending", new_status="confirmed", actor_user_id=None,
    ))
    return order


def confirm_gift_link(link_token: str, receiver_address: str, **receiver) -> Order:
    gift_token = gift_link_service.resolve_gift_link(link_token)
    return confirm_gift_receiver(gift_token, receiver_address, **receiver)


# =============================================================================
# STATUS LIFECYCLE
# =============================================================================

def aggregate_status(statuses) -> str:
    """
    Parent status derived from its vendor orders.

    All cancelled -> cancelled. Otherwise, ignoring cancelled parts, the
    parent sits at the least advanced status among the rest.
    """
    statuses = list(statuses)
    if not statuses:
        return "pending"
    live = [status for status in statuses if status != "cancelled"]
    if not live:
        return "cancelled"
    return RANK_STATUS[min(STATUS_RANK[status] for status in live)]


def _check_transition(current: str, new: str) -> None:
    if new not in ORDER_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(ORDER_STATUSES)}")
    if new not in STATUS_TRANSITIONS[current]:
        raise OrderError(f"Cannot change status from {current} to {new}")


def _check_receiver_known(order: Order, new: str) -> None:
    if new in ADDRESS_REQUIRED_STATUSES and order.awaiting_receiver:
        raise OrderError(
            "The gift receiver has not provided a shipping address yet",
            {"order_id": order.id, "requested_status": new},
        )


def _advance_vendor_order(vendor_order: VendorOrder, status: str, now) -> None:
    vendor_order.status = status
    if status == "cancelled":
        vendor_order.cancelled_at = now
        return
    if vendor_order.confirmed_at is None:
        vendor_order.confirmed_at = now
    if status == "delivered":
        vendor_order.delivered_at = now


def _stamp_order(order: Order, status: str, now) -> None:
    attr = ORDER_TIMESTAMPS.get(status)
    if attr and (attr != "confirmed_at" or order.confirmed_at is None):
        setattr(order, attr, now)


def _apply_order_status(order_id: int, status: str, actor_user_id: int | None, *, allowed_from=None) -> Order:
    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise NotFoundError("Order not found")

        old_status = order.status
        if allowed_from is not None and old_status not in allowed_from:
            raise OrderError(f"Orders that are {old_status} can no longer be cancelled")
        _check_transition(old_status, status)
        _check_receiver_known(order, status)

        now = utcnow()
        order.status = status
        _stamp_order(order, status, now)

        for vendor_order in order.vendor_orders:
            if vendor_order.status == "cancelled":
                continue
            if status == "cancelled":
                if vendor_order.status == "delivered":
                    continue
                _restore_stock(vendor_order.items)
                _advance_vendor_order(vendor_order, "cancelled", now)
            elif STATUS_RANK[vendor_order.status] < STATUS_RANK[status]:
                _advance_vendor_order(vendor_order, status, now)

        db.session.commit()
        return order, old_status

    order, old_status = run_with_retry(_op)
    logger.info("Order %s: %s -> %s (actor=%s)", order.order_number, old_status, status, actor_user_id)
    order_status_changed.send(OrderStatusChange(
        order_id=order.id, vendor_order_id=None, old_status=old_status, new_status=status, actor_user_id=actor_user_id,
    ))
    return order


def update_order_status(order_id: int, status: str, actor_user_id: int | None = None) -> Order:
    """
    Admin path: move the whole order and cascade to every vendor order that
    is behind it. Cancelling restores stock for undelivered parts.
    """
    return _apply_order_status(order_id, status, actor_user_id)


def cancel_order(order_id: int, user) -> Order:
    """Customer path: the order's owner may cancel while pending or confirmed."""
    order = db.session.get(Order, order_id)
    if not order or (order.user_id != user.id and user.role != "admin"):
        raise NotFoundError("Order not found")
    return _apply_order_status(order_id, "cancelled", user.id, allowed_from=CUSTOMER_CANCELLABLE)


def update_vendor_order_status(
    order_id: int,
    vendor_id: int,
    status: str,
    actor_user_id: int | None = None,
) -> VendorOrder:
    """
    Vendor path: move this vendor's part of the order, then recompute the
    parent status from all vendor orders.
    """
    def _op():
        vendor_order = lock_for_update(
            db.session.query(VendorOrder).filter_by(order_id=order_id, vendor_id=vendor_id)
        ).first()
        if not vendor_order:
            raise NotFoundError("Order not found")
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).one()

        old_status = vendor_order.status
        _check_transition(old_status, status)
        _check_receiver_known(order, status)

        now = utcnow()
        if status == "cancelled":
            _restore_stock(vendor_order.items)
        _advance_vendor_order(vendor_order, status, now)

        old_parent = order.status
        new_parent = aggregate_status(vo.status for vo in order.vendor_orders)
        if new_parent != old_parent:
            order.status = new_parent
            _stamp_order(order, new_parent, now)

        db.session.commit()
        return vendor_order, old_status, old_parent, new_parent

    vendor_order, old_status, old_parent, new_parent = run_with_retry(_op)
    logger.info("Vendor order %s (order %s): %s -> %s; parent %s -> %s",
                vendor_order.id, order_id, old_status, status, old_parent, new_parent)
    order_status_changed.send(OrderStatusChange(
        order_id=order_id, vendor_order_id=vendor_order.id,
        old_status=old_status, new_status=status, actor_user_id=actor_user_id,
    ))
    if new_parent != old_parent:
        order_status_changed.send(OrderStatusChange(
            order_id=order_id, vendor_order_id=None,
            old_status=old_parent, new_status=new_parent, actor_user_id=actor_user_id,
        ))
    return vendor_order


# =============================================================================
# QUERIES
# =============================================================================

def get_order(order_id: int) -> Order | None:
    return db.session.get(Order, order_id)


def get_order_for_viewer(order_id: int, context) -> dict:
    """
    Serialized order as the caller may see it.

    Admins and the owner see the whole order; a vendor sees only its own
    vendor order and that store's items. Anyone else gets NotFoundError.
    """
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")

    if context.is_admin or order.user_id == context.user.id:
        return order.to_dict(include_vendor_orders=True)

    if context.is_vendor and context.vendor_id is not None:
        for vendor_order in order.vendor_orders:
            if vendor_order.vendor_id == context.vendor_id:
                return vendor_order.to_dict(include_order=True)

    raise NotFoundError("Order not found")


def list_orders_for_user(user_id: int) -> list[Order]:
    return (
        db.session.query(Order)
        .filter(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def list_orders_for_vendor(vendor_id: int, status: str | None = None) -> list[VendorOrder]:
    query = db.session.query(VendorOrder).filter(VendorOrder.vendor_id == vendor_id)
    if status:
        if status not in ORDER_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(ORDER_STATUSES)}")
        query = query.filter(VendorOrder.status == status)
    return query.order_by(VendorOrder.created_at.desc(), VendorOrder.id.desc()).all()


def list_all_orders(page=1, per_page=20, status: str | None = None, order_type: str | None = None) -> dict:
    query = db.session.query(Order)
    if status:
        query = query.filter(Order.status == status)
    if order_type:
        query = query.filter(Order.order_type == order_type)
    query = query.order_by(Order.created_at.desc(), Order.id.desc())

    orders, total, page, per_page = paginate(query, page, per_page)
    return {
        "orders": [order.to_dict(include_items=False) for order in orders],
        "total": total,
        "page": page,
        "per_page": per_page,
    }


def require_vendor_context(context) -> int:
    if not context.is_vendor or context.vendor_id is None:
        raise PermissionDeniedError("Vendor access required")
    return context.vendor_id

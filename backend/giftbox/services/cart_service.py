# Overview: Server-side cart: persistence stores, catalog repricing (quote) and checkout into an order.

"""
Cart Service

A cart is a list of lines keyed by (item_type, item_id). What the store
persists is only a hint: quote() reprices every line from the catalog, and
checkout() hands create_order the server-computed prices and totals.

Persistence is pluggable through CartStore:
- MemoryCartStore keeps carts in-process (tests, single worker)
- DatabaseCartStore keeps one JSON snapshot per owner in cart_snapshots

Every mutation emits cart_updated.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal

from flask import current_app

from ..errors import ConflictError, NotFoundError, ValidationError
from ..events import CartChange, cart_updated
from ..extensions import db
from ..models import CartSnapshot, Order, Product, Service
from . import order_service, settings_service
from giftbox.money import ZERO, money_json, percent_of, to_money

logger = logging.getLogger(__name__)

ITEM_MODELS = {"product": Product, "service": Service}


class CartError(ConflictError):
    """Raised when a cart cannot be checked out as it stands."""


@dataclass
class CartLine:
    item_type: str
    item_id: int
    quantity: int
    # Catalog price when the line was last added; used to flag price changes
    price_hint: Decimal | None = None

    @property
    def key(self) -> tuple[str, int]:
        return self.item_type, self.item_id

    def to_dict(self) -> dict:
        return {
            "item_type": self.item_type,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "price_hint": str(self.price_hint) if self.price_hint is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartLine":
        hint = data.get("price_hint")
        return cls(
            item_type=data["item_type"],
            item_id=int(data["item_id"]),
            quantity=int(data["quantity"]),
            price_hint=Decimal(hint) if hint is not None else None,
        )


@dataclass
class Cart:
    lines: list[CartLine] = field(default_factory=list)

    def find(self, item_type: str, item_id: int) -> CartLine | None:
        for line in self.lines:
            if line.key == (item_type, item_id):
                return line
        return None

    def remove(self, item_type: str, item_id: int) -> bool:
        before = len(self.lines)
        self.lines = [line for line in self.lines if line.key != (item_type, item_id)]
        return len(self.lines) != before

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def to_payload(self) -> list[dict]:
        return [line.to_dict() for line in self.lines]

    @classmethod
    def from_payload(cls, payload) -> "Cart":
        return cls(lines=[CartLine.from_dict(entry) for entry in payload or []])

    def to_dict(self) -> dict:
        return {"lines": self.to_payload(), "item_count": self.item_count}


@dataclass
class QuotedLine:
    item_type: str
    item_id: int
    name: str
    store_id: int
    price: Decimal
    quantity: int
    image_url: str | None = None

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        return {
            "item_type": self.item_type,
            "item_id": self.item_id,
            "name": self.name,
            "store_id": self.store_id,
            "price": money_json(self.price),
            "quantity": self.quantity,
            "line_total": money_json(self.line_total),
            "image_url": self.image_url,
        }


@dataclass
class CartQuote:
    lines: list[QuotedLine]
    issues: list[dict]
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal

    @property
    def can_checkout(self) -> bool:
        return bool(self.lines) and not self.issues

    def to_dict(self) -> dict:
        return {
            "lines": [line.to_dict() for line in self.lines],
            "issues": self.issues,
            "subtotal": money_json(self.subtotal),
            "shipping": money_json(self.shipping),
            "tax": money_json(self.tax),
            "total": money_json(self.total),
            "can_checkout": self.can_checkout,
        }


# =============================================================================
# STORES
# =============================================================================

class CartStore(ABC):
    @abstractmethod
    def load(self, owner_key: str) -> Cart: ...

    @abstractmethod
    def save(self, owner_key: str, cart: Cart) -> None: ...

    @abstractmethod
    def clear(self, owner_key: str) -> None: ...


class MemoryCartStore(CartStore):
    def __init__(self):
        self._carts: dict[str, list[dict]] = {}

    def load(self, owner_key: str) -> Cart:
        return Cart.from_payload(self._carts.get(owner_key))

    def save(self, owner_key: str, cart: Cart) -> None:
        self._carts[owner_key] = cart.to_payload()

    def clear(self, owner_key: str) -> None:
        self._carts.pop(owner_key, None)


class DatabaseCartStore(CartStore):
    def load(self, owner_key: str) -> Cart:
        snapshot = db.session.query(CartSnapshot).filter_by(owner_key=owner_key).first()
        return Cart.from_payload(snapshot.payload if snapshot else None)

    def save(self, owner_key: str, cart: Cart) -> None:
        snapshot = db.session.query(CartSnapshot).filter_by(owner_key=owner_key).first()
        if snapshot is None:
            snapshot = CartSnapshot(owner_key=owner_key)
            db.session.add(snapshot)
        snapshot.payload = cart.to_payload()
        db.session.commit()

    def clear(self, owner_key: str) -> None:
        db.session.query(CartSnapshot).filter_by(owner_key=owner_key).delete()
        db.session.commit()


def owner_key_for(user_id: int) -> str:
    return f"user:{user_id}"


# =============================================================================
# SERVICE
# =============================================================================

def _available(item) -> bool:
    return item is not None and item.is_active and item.store is not None and item.store.is_approved


def _quantity(value, *, allow_zero: bool = False) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("quantity must be an integer")
    if value < 0 or (value == 0 and not allow_zero):
        raise ValidationError("quantity must be positive")
    return value


def _item_type(item_type: str) -> str:
    if item_type not in ITEM_MODELS:
        raise ValidationError("item_type must be product or service")
    return item_type


class CartService:
    def __init__(self, store: CartStore):
        self.store = store

    def _changed(self, owner_key: str, cart: Cart) -> Cart:
        self.store.save(owner_key, cart)
        cart_updated.send(CartChange(owner_key=owner_key, line_count=len(cart.lines), item_count=cart.item_count))
        return cart

    def get(self, owner_key: str) -> Cart:
        return self.store.load(owner_key)

    def add_item(self, owner_key: str, item_type: str, item_id: int, quantity: int = 1) -> Cart:
        """Add to an existing line or open a new one. Refreshes the line's price hint."""
        item_type = _item_type(item_type)
        quantity = _quantity(quantity)
        item = db.session.get(ITEM_MODELS[item_type], item_id)
        if not _available(item):
            raise NotFoundError(f"{item_type.capitalize()} not available")

        cart = self.store.load(owner_key)
        line = cart.find(item_type, item_id)
        if line:
            line.quantity += quantity
            line.price_hint = Decimal(item.price)
        else:
            cart.lines.append(CartLine(item_type, item_id, quantity, Decimal(item.price)))
        return self._changed(owner_key, cart)

    def set_quantity(self, owner_key: str, item_type: str, item_id: int, quantity: int) -> Cart:
        """Quantity 0 removes the line."""
        quantity = _quantity(quantity, allow_zero=True)
        cart = self.store.load(owner_key)
        line = cart.find(_item_type(item_type), item_id)
        if not line:
            raise NotFoundError("Item is not in the cart")
        if quantity == 0:
            cart.remove(item_type, item_id)
        else:
            line.quantity = quantity
        return self._changed(owner_key, cart)

    def remove_item(self, owner_key: str, item_type: str, item_id: int) -> Cart:
        cart = self.store.load(owner_key)
        if not cart.remove(_item_type(item_type), item_id):
            raise NotFoundError("Item is not in the cart")
        return self._changed(owner_key, cart)

    def clear(self, owner_key: str) -> Cart:
        self.store.clear(owner_key)
        cart = Cart()
        cart_updated.send(CartChange(owner_key=owner_key, line_count=0, item_count=0))
        return cart

    def quote(self, cart: Cart) -> CartQuote:
        """
        Reprice the cart from the catalog.

        Lines whose item is gone, inactive or in an unapproved store are
        reported as unavailable and left out of the totals. Stock shortfalls
        and price changes since the line was added are reported but still
        priced at the current catalog price.
        """
        lines: list[QuotedLine] = []
        issues: list[dict] = []

        for line in cart.lines:
            item = db.session.get(ITEM_MODELS.get(line.item_type, Product), line.item_id)
            if line.item_type not in ITEM_MODELS or not _available(item):
                issues.append({"item_type": line.item_type, "item_id": line.item_id, "issue": "unavailable"})
                continue

            price = Decimal(item.price)
            if line.item_type == "product" and item.stock < line.quantity:
                issues.append({
                    "item_type": line.item_type,
                    "item_id": line.item_id,
                    "issue": "insufficient_stock",
                    "available": item.stock,
                })
            if line.price_hint is not None and line.price_hint != price:
                issues.append({
                    "item_type": line.item_type,
                    "item_id": line.item_id,
                    "issue": "price_changed",
                    "old_price": money_json(line.price_hint),
                    "new_price": money_json(price),
                })
            lines.append(QuotedLine(
                item_type=line.item_type,
                item_id=line.item_id,
                name=item.name,
                store_id=item.store_id,
                price=price,
                quantity=line.quantity,
                image_url=item.primary_image,
            ))

        subtotal = sum((line.line_total for line in lines), ZERO)
        shipping = to_money(current_app.config["SHIPPING_FLAT_RATE"], field="shipping") if subtotal > ZERO else ZERO
        tax = percent_of(subtotal, settings_service.get_settings().tax_percent)
        return CartQuote(
            lines=lines,
            issues=issues,
            subtotal=subtotal,
            shipping=shipping,
            tax=tax,
            total=subtotal + shipping + tax,
        )

    def checkout(self, owner_key: str, user, order_type: str, contacts: dict) -> Order:
        """
        Turn the cart into an order at server-computed prices, then empty it.

        Refuses (CartError) while the quote reports any issue.
        """
        cart = self.store.load(owner_key)
        if not cart.lines:
            raise ValidationError("Cart is empty")

        quote = self.quote(cart)
        if quote.issues:
            raise CartError("Cart needs attention before checkout", {"issues": quote.issues})

        data = dict(contacts or {})
        data.update({
            "order_type": order_type,
            "items": [
                {"item_type": line.item_type, f"{line.item_type}_id": line.item_id, "quantity": line.quantity}
                for line in quote.lines
            ],
            "subtotal": str(quote.subtotal),
            "shipping": str(quote.shipping),
            "tax": str(quote.tax),
            "total": str(quote.total),
        })
        order = order_service.create_order(data, user_id=user.id if user else None)
        self.clear(owner_key)
        logger.info("Checkout for %s produced order %s", owner_key, order.order_number)
        return order

from __future__ import annotations

from ..extensions import db
from giftbox.money import money_json
from giftbox.time_utils import to_utc_z


ORDER_TYPES = ("self", "gift", "plugin")
ORDER_STATUSES = ("pending", "confirmed", "dispatched", "delivered", "cancelled")
PAYOUT_STATUSES = ("pending", "paid", "failed")

# Order types whose shipping address arrives later through the gift link
DEFERRED_ADDRESS_TYPES = ("gift", "plugin")


class Order(db.Model):
    """
    Customer order header.

    INVARIANTS:
    - gift_token / gift_link are set iff order_type is gift or plugin
    - receiver_address is NULL until the gift receiver confirms; for self
      orders it mirrors shipping_address (or sender_address) at creation
    - items and vendor_orders are written in the same transaction
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.CheckConstraint(
            "order_type IN ('self', 'gift', 'plugin')",
            name="ck_orders_order_type",
        ),
        db.CheckConstraint(
            "status IN ('pending', 'confirmed', 'dispatched', 'delivered', 'cancelled')",
            name="ck_orders_status",
        ),
        db.UniqueConstraint("plugin_integration_id", "external_order_id", name="uq_orders_plugin_external"),
        db.Index("ix_orders_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(64), nullable=False, unique=True, index=True)
    order_type = db.Column(db.String(16), nullable=False, default="self")

    # Guests and plugin orders have no account
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    sender_name = db.Column(db.String(255), nullable=False)
    sender_email = db.Column(db.String(255), nullable=False)
    sender_phone = db.Column(db.String(32), nullable=True)
    sender_address = db.Column(db.Text, nullable=False)

    receiver_name = db.Column(db.String(255), nullable=True)
    receiver_email = db.Column(db.String(255), nullable=True)
    receiver_phone = db.Column(db.String(32), nullable=True)
    receiver_address = db.Column(db.Text, nullable=True)

    shipping_address = db.Column(db.Text, nullable=True)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    shipping = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    gift_token = db.Column(db.String(64), nullable=True, unique=True, index=True)
    gift_link = db.Column(db.String(2048), nullable=True)
    gift_expires_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Orders pushed by an external storefront integration
    plugin_integration_id = db.Column(db.Integer, db.ForeignKey("plugin_integrations.id"), nullable=True, index=True)
    external_order_id = db.Column(db.String(255), nullable=True)
    plugin_fee = db.Column(db.Numeric(12, 2), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    dispatched_at = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    user = db.relationship("User", backref=db.backref("orders", lazy=True))
    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    vendor_orders = db.relationship(
        "VendorOrder",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="VendorOrder.id",
    )

    @property
    def awaiting_receiver(self) -> bool:
        return self.order_type in DEFERRED_ADDRESS_TYPES and not self.receiver_address

    def to_dict(self, *, include_items: bool = True, include_vendor_orders: bool = False) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "order_type": self.order_type,
            "user_id": self.user_id,
            "sender_name": self.sender_name,
            "sender_email": self.sender_email,
            "sender_phone": self.sender_phone,
            "sender_address": self.sender_address,
            "receiver_name": self.receiver_name,
            "receiver_email": self.receiver_email,
            "receiver_phone": self.receiver_phone,
            "receiver_address": self.receiver_address,
            "shipping_address": self.shipping_address,
            "subtotal": money_json(self.subtotal),
            "shipping": money_json(self.shipping),
            "tax": money_json(self.tax),
            "total": money_json(self.total),
            "status": self.status,
            "gift_token": self.gift_token,
            "gift_link": self.gift_link,
            "gift_expires_at": to_utc_z(self.gift_expires_at),
            "plugin_integration_id": self.plugin_integration_id,
            "external_order_id": self.external_order_id,
            "plugin_fee": money_json(self.plugin_fee),
            "created_at": to_utc_z(self.created_at),
            "confirmed_at": to_utc_z(self.confirmed_at),
            "dispatched_at": to_utc_z(self.dispatched_at),
            "delivered_at": to_utc_z(self.delivered_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        if include_vendor_orders:
            data["vendor_orders"] = [vo.to_dict() for vo in self.vendor_orders]
        return data


class OrderItem(db.Model):
    """
    One order line. Name, price and image are copied at purchase time so
    later catalog edits never rewrite history.

    item_type is product or service for catalog lines, each with only its
    own reference. Plugin orders carry "external" lines with neither
    reference and no stock. store_id is always the owning store.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint(
            "(item_type = 'product' AND service_id IS NULL)"
            " OR (item_type = 'service' AND product_id IS NULL)"
            " OR (item_type = 'external' AND product_id IS NULL AND service_id IS NULL)",
            name="ck_order_items_single_ref",
        ),
        db.CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    item_type = db.Column(db.String(16), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=True, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    image_url = db.Column(db.String(1024), nullable=True)

    @property
    def line_total(self):
        return self.price * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "item_type": self.item_type,
            "product_id": self.product_id,
            "service_id": self.service_id,
            "store_id": self.store_id,
            "name": self.name,
            "price": money_json(self.price),
            "quantity": self.quantity,
            "image_url": self.image_url,
        }


class VendorOrder(db.Model):
    """
    Per-store projection of an order.

    One row per distinct store among the order's items; subtotal is the sum
    of that store's lines. Status moves independently of the parent; the
    parent status is recomputed as an aggregate of these rows.

    Payout fields are filled by settlement once status is delivered.
    """
    __tablename__ = "vendor_orders"
    __table_args__ = (
        db.UniqueConstraint("order_id", "store_id", name="uq_vendor_orders_order_store"),
        db.CheckConstraint(
            "status IN ('pending', 'confirmed', 'dispatched', 'delivered', 'cancelled')",
            name="ck_vendor_orders_status",
        ),
        db.CheckConstraint(
            "payout_status IN ('pending', 'paid', 'failed')",
            name="ck_vendor_orders_payout_status",
        ),
        db.Index("ix_vendor_orders_payout", "status", "payout_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default="pending")
    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    payout_status = db.Column(db.String(16), nullable=False, default="pending")
    payout_at = db.Column(db.DateTime(timezone=True), nullable=True)
    commission_amount = db.Column(db.Numeric(12, 2), nullable=True)
    vendor_amount = db.Column(db.Numeric(12, 2), nullable=True)
    transfer_id = db.Column(db.String(255), nullable=True)
    # Transfer attempts so far; part of the idempotency key
    payout_attempts = db.Column(db.Integer, nullable=False, default=0, server_default="0")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    vendor = db.relationship("Vendor", backref=db.backref("vendor_orders", lazy=True))
    store = db.relationship("Store", backref=db.backref("vendor_orders", lazy=True))

    @property
    def items(self) -> list[OrderItem]:
        return [item for item in self.order.items if item.store_id == self.store_id]

    def to_dict(self, *, include_order: bool = False) -> dict:
        data = {
            "id": self.id,
            "order_id": self.order_id,
            "vendor_id": self.vendor_id,
            "store_id": self.store_id,
            "status": self.status,
            "subtotal": money_json(self.subtotal),
            "confirmed_at": to_utc_z(self.confirmed_at),
            "delivered_at": to_utc_z(self.delivered_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
            "payout_status": self.payout_status,
            "payout_at": to_utc_z(self.payout_at),
            "commission_amount": money_json(self.commission_amount),
            "vendor_amount": money_json(self.vendor_amount),
            "transfer_id": self.transfer_id,
            "payout_attempts": self.payout_attempts,
        }
        if include_order:
            order = self.order.to_dict(include_items=False)
            order["items"] = [item.to_dict() for item in self.items]
            data["order"] = order
        return data


class VendorPayout(db.Model):
    """
    Ledger of settled payouts, one row per paid vendor order.

    IMMUTABLE: written once when settlement marks the vendor order paid.
    """
    __tablename__ = "vendor_payouts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    vendor_order_id = db.Column(db.Integer, db.ForeignKey("vendor_orders.id"), nullable=False, unique=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    order_total = db.Column(db.Numeric(12, 2), nullable=False)
    commission_amount = db.Column(db.Numeric(12, 2), nullable=False)
    vendor_amount = db.Column(db.Numeric(12, 2), nullable=False)
    transfer_id = db.Column(db.String(255), nullable=True)

    paid_at = db.Column(db.DateTime(timezone=True), nullable=False)

    vendor_order = db.relationship("VendorOrder", backref=db.backref("payout", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "vendor_order_id": self.vendor_order_id,
            "order_id": self.order_id,
            "vendor_id": self.vendor_id,
            "store_id": self.store_id,
            "order_total": money_json(self.order_total),
            "commission_amount": money_json(self.commission_amount),
            "vendor_amount": money_json(self.vendor_amount),
            "transfer_id": self.transfer_id,
            "paid_at": to_utc_z(self.paid_at),
        }

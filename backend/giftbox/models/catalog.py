from __future__ import annotations

from ..extensions import db
from giftbox.money import money_json
from giftbox.time_utils import to_utc_z


class Product(db.Model):
    """
    Physical item sold by a store.

    stock is decremented inside order creation and restored on cancellation;
    it can never go negative. Deletion is soft (is_active=False) so order
    history keeps resolving.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_nonnegative"),
        db.CheckConstraint("price >= 0", name="ck_products_price_nonnegative"),
        db.Index("ix_products_store_active", "store_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    original_price = db.Column(db.Numeric(12, 2), nullable=True)
    category = db.Column(db.String(128), nullable=True, index=True)
    image_urls = db.Column(db.JSON, nullable=False, default=list)
    stock = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    store = db.relationship("Store", backref=db.backref("products", lazy=True))

    @property
    def primary_image(self) -> str | None:
        return self.image_urls[0] if self.image_urls else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_type": "product",
            "store_id": self.store_id,
            "name": self.name,
            "description": self.description,
            "price": money_json(self.price),
            "original_price": money_json(self.original_price),
            "category": self.category,
            "image_urls": list(self.image_urls or []),
            "stock": self.stock,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Service(db.Model):
    """Bookable service sold by a store. Services carry no stock."""
    __tablename__ = "services"
    __table_args__ = (
        db.CheckConstraint("price >= 0", name="ck_services_price_nonnegative"),
        db.Index("ix_services_store_active", "store_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    category = db.Column(db.String(128), nullable=True, index=True)
    duration = db.Column(db.String(64), nullable=True)
    location = db.Column(db.String(255), nullable=True)
    image_urls = db.Column(db.JSON, nullable=False, default=list)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    store = db.relationship("Store", backref=db.backref("services", lazy=True))

    @property
    def primary_image(self) -> str | None:
        return self.image_urls[0] if self.image_urls else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_type": "service",
            "store_id": self.store_id,
            "name": self.name,
            "description": self.description,
            "price": money_json(self.price),
            "category": self.category,
            "duration": self.duration,
            "location": self.location,
            "image_urls": list(self.image_urls or []),
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }

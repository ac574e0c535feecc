from __future__ import annotations

from ..extensions import db
from giftbox.time_utils import to_utc_z


class Review(db.Model):
    """
    Rating left by an order's owner for one item of a delivered order.

    At most one review per (order, item); enforced in review_service since
    the product/service pair is nullable.
    """
    __tablename__ = "reviews"
    __table_args__ = (
        db.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
        db.CheckConstraint(
            "(product_id IS NULL) <> (service_id IS NULL)",
            name="ck_reviews_single_ref",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=True, index=True)

    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("reviews", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "reviewer_name": self.user.name if self.user else None,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "service_id": self.service_id,
            "rating": self.rating,
            "comment": self.comment,
            "created_at": to_utc_z(self.created_at),
        }


class Wishlist(db.Model):
    __tablename__ = "wishlists"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(64), nullable=True)
    is_public = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    items = db.relationship(
        "WishlistItem",
        backref="wishlist",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="WishlistItem.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "type": self.type,
            "is_public": self.is_public,
            "item_count": len(self.items),
            "created_at": to_utc_z(self.created_at),
        }


class WishlistItem(db.Model):
    __tablename__ = "wishlist_items"
    __table_args__ = (
        db.CheckConstraint(
            "(product_id IS NULL) <> (service_id IS NULL)",
            name="ck_wishlist_items_single_ref",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    wishlist_id = db.Column(db.Integer, db.ForeignKey("wishlists.id"), nullable=False, index=True)

    item_type = db.Column(db.String(16), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")
    service = db.relationship("Service")

    def to_dict(self) -> dict:
        target = self.product if self.item_type == "product" else self.service
        return {
            "id": self.id,
            "wishlist_id": self.wishlist_id,
            "item_type": self.item_type,
            "product_id": self.product_id,
            "service_id": self.service_id,
            "item": target.to_dict() if target else None,
            "created_at": to_utc_z(self.created_at),
        }

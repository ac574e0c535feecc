# Overview: Service-layer operations for reviews of delivered order items.

from __future__ import annotations

import logging

from ..errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from ..extensions import db
from ..models import Order, Review

logger = logging.getLogger(__name__)


class ReviewError(ConflictError):
    """Raised when an item has already been reviewed for an order."""


def _single_ref(product_id, service_id) -> tuple[int | None, int | None]:
    if bool(product_id) == bool(service_id):
        raise ValidationError("Exactly one of product_id or service_id is required")
    return product_id or None, service_id or None


def _rating(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise ValidationError("rating must be an integer between 1 and 5")
    return value


def get_existing_review(order_id: int, *, product_id=None, service_id=None) -> Review | None:
    product_id, service_id = _single_ref(product_id, service_id)
    query = db.session.query(Review).filter(Review.order_id == order_id)
    if product_id:
        query = query.filter(Review.product_id == product_id)
    else:
        query = query.filter(Review.service_id == service_id)
    return query.first()


def create_review(
    user_id: int,
    order_id: int,
    rating,
    comment: str | None = None,
    *,
    product_id: int | None = None,
    service_id: int | None = None,
) -> Review:
    """
    Review one item of a delivered order.

    Only the order's owner may review, only once per (order, item), and only
    for items the order actually contains.
    """
    product_id, service_id = _single_ref(product_id, service_id)
    rating = _rating(rating)

    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")
    if order.user_id != user_id:
        raise PermissionDeniedError("You can only review your own orders")
    if order.status != "delivered":
        raise ValidationError("Only delivered orders can be reviewed")

    in_order = any(
        (product_id and item.product_id == product_id) or (service_id and item.service_id == service_id)
        for item in order.items
    )
    if not in_order:
        raise ValidationError("Item is not part of this order")

    if get_existing_review(order_id, product_id=product_id, service_id=service_id):
        raise ReviewError("You have already reviewed this item for this order")

    review = Review(
        user_id=user_id,
        order_id=order_id,
        product_id=product_id,
        service_id=service_id,
        rating=rating,
        comment=(comment or "").strip() or None,
    )
    db.session.add(review)
    db.session.commit()
    logger.info("Review %s: order=%s rating=%s", review.id, order_id, rating)
    return review


def _newest_first(query) -> list[Review]:
    return query.order_by(Review.created_at.desc(), Review.id.desc()).all()


def list_reviews_for_order(order_id: int) -> list[Review]:
    return _newest_first(db.session.query(Review).filter(Review.order_id == order_id))


def list_reviews_for_product(product_id: int) -> list[Review]:
    return _newest_first(db.session.query(Review).filter(Review.product_id == product_id))


def list_reviews_for_service(service_id: int) -> list[Review]:
    return _newest_first(db.session.query(Review).filter(Review.service_id == service_id))

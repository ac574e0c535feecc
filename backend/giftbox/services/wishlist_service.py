# Overview: Service-layer operations for wishlists, scoped to their owner.

"""
Wishlist Service

Every operation takes the acting user's id. Another user's private wishlist
reads as not found; public wishlists are readable (never writable) by anyone.
"""

from __future__ import annotations

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, Service, Wishlist, WishlistItem


class WishlistError(ConflictError):
    """Raised when an item is already on the wishlist."""


WISHLIST_FIELDS = {"name", "type", "is_public"}


def _clean(patch: dict) -> dict:
    cleaned = {}
    for key, value in (patch or {}).items():
        if key not in WISHLIST_FIELDS:
            continue
        if key == "is_public":
            cleaned[key] = bool(value)
        elif isinstance(value, str):
            cleaned[key] = value.strip() or None
        else:
            cleaned[key] = value
    return cleaned


def _owned(wishlist_id: int, user_id: int) -> Wishlist:
    wishlist = db.session.get(Wishlist, wishlist_id)
    if not wishlist or wishlist.user_id != user_id:
        raise NotFoundError("Wishlist not found")
    return wishlist


def list_wishlists(user_id: int) -> list[Wishlist]:
    return (
        db.session.query(Wishlist)
        .filter(Wishlist.user_id == user_id)
        .order_by(Wishlist.created_at.desc(), Wishlist.id.desc())
        .all()
    )


def get_wishlist(wishlist_id: int, user_id: int | None) -> Wishlist:
    wishlist = db.session.get(Wishlist, wishlist_id)
    if not wishlist or (wishlist.user_id != user_id and not wishlist.is_public):
        raise NotFoundError("Wishlist not found")
    return wishlist


def create_wishlist(user_id: int, patch: dict) -> Wishlist:
    fields = _clean(patch)
    if not fields.get("name"):
        raise ValidationError("Wishlist name is required")
    wishlist = Wishlist(user_id=user_id, **fields)
    db.session.add(wishlist)
    db.session.commit()
    return wishlist


def update_wishlist(wishlist_id: int, user_id: int, patch: dict) -> Wishlist:
    fields = _clean(patch)
    if "name" in fields and not fields["name"]:
        raise ValidationError("Wishlist name cannot be empty")
    wishlist = _owned(wishlist_id, user_id)
    for key, value in fields.items():
        setattr(wishlist, key, value)
    db.session.commit()
    return wishlist


def delete_wishlist(wishlist_id: int, user_id: int) -> None:
    db.session.delete(_owned(wishlist_id, user_id))
    db.session.commit()


def list_wishlist_items(wishlist_id: int, user_id: int | None) -> list[WishlistItem]:
    return list(get_wishlist(wishlist_id, user_id).items)


def _add_item(wishlist_id: int, user_id: int, item_type: str, item_id: int) -> WishlistItem:
    wishlist = _owned(wishlist_id, user_id)
    model, column = (Product, WishlistItem.product_id) if item_type == "product" else (Service, WishlistItem.service_id)

    item = db.session.get(model, item_id)
    if not item or not item.is_active:
        raise NotFoundError(f"{item_type.capitalize()} not found")

    exists = (
        db.session.query(WishlistItem.id)
        .filter(WishlistItem.wishlist_id == wishlist.id, column == item_id)
        .first()
    )
    if exists:
        raise WishlistError(f"{item_type.capitalize()} is already on this wishlist")

    entry = WishlistItem(
        wishlist_id=wishlist.id,
        item_type=item_type,
        product_id=item_id if item_type == "product" else None,
        service_id=item_id if item_type == "service" else None,
    )
    db.session.add(entry)
    db.session.commit()
    return entry


def add_product_to_wishlist(wishlist_id: int, user_id: int, product_id: int) -> WishlistItem:
    return _add_item(wishlist_id, user_id, "product", product_id)


def add_service_to_wishlist(wishlist_id: int, user_id: int, service_id: int) -> WishlistItem:
    return _add_item(wishlist_id, user_id, "service", service_id)


def remove_wishlist_item(wishlist_id: int, user_id: int, item_id: int) -> None:
    wishlist = _owned(wishlist_id, user_id)
    entry = db.session.get(WishlistItem, item_id)
    if not entry or entry.wishlist_id != wishlist.id:
        raise NotFoundError("Wishlist item not found")
    db.session.delete(entry)
    db.session.commit()

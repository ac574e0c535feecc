# Overview: Flask API routes for reviews and wishlists.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import optional_auth, require_auth
from ..errors import GiftboxError, ValidationError, error_response
from ..services import review_service, wishlist_service


engagement_bp = Blueprint("engagement", __name__, url_prefix="/api")


# =============================================================================
# REVIEWS
# =============================================================================

@engagement_bp.post("/reviews")
@require_auth
def create_review_route():
    """Request body: {"order_id": 1, "product_id" | "service_id": 2, "rating": 1..5, "comment": "..."}"""
    try:
        data = request.get_json(silent=True) or {}
        order_id = data.get("order_id")
        if not order_id:
            return jsonify({"error": "order_id required"}), 400

        review = review_service.create_review(
            g.current_user.id,
            order_id,
            data.get("rating"),
            data.get("comment"),
            product_id=data.get("product_id"),
            service_id=data.get("service_id"),
        )
        return jsonify({"review": review.to_dict()}), 201

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create review")
        return jsonify({"error": "Internal server error"}), 500


@engagement_bp.get("/reviews")
def list_reviews_route():
    """Exactly one of order_id, product_id, service_id."""
    order_id = request.args.get("order_id", type=int)
    product_id = request.args.get("product_id", type=int)
    service_id = request.args.get("service_id", type=int)

    if order_id:
        reviews = review_service.list_reviews_for_order(order_id)
    elif product_id:
        reviews = review_service.list_reviews_for_product(product_id)
    elif service_id:
        reviews = review_service.list_reviews_for_service(service_id)
    else:
        return jsonify({"error": "order_id, product_id or service_id required"}), 400
    return jsonify({"reviews": [r.to_dict() for r in reviews]})


@engagement_bp.get("/reviews/existing")
@require_auth
def existing_review_route():
    try:
        order_id = request.args.get("order_id", type=int)
        if not order_id:
            raise ValidationError("order_id required")
        review = review_service.get_existing_review(
            order_id,
            product_id=request.args.get("product_id", type=int),
            service_id=request.args.get("service_id", type=int),
        )
        return jsonify({"review": review.to_dict() if review else None})

    except GiftboxError as e:
        return error_response(e)


# =============================================================================
# WISHLISTS
# =============================================================================

@engagement_bp.get("/wishlists")
@require_auth
def list_wishlists_route():
    wishlists = wishlist_service.list_wishlists(g.current_user.id)
    return jsonify({"wishlists": [w.to_dict() for w in wishlists]})


@engagement_bp.post("/wishlists")
@require_auth
def create_wishlist_route():
    try:
        data = request.get_json(silent=True) or {}
        wishlist = wishlist_service.create_wishlist(g.current_user.id, data)
        return jsonify({"wishlist": wishlist.to_dict()}), 201

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create wishlist")
        return jsonify({"error": "Internal server error"}), 500


@engagement_bp.get("/wishlists/<int:wishlist_id>")
@optional_auth
def get_wishlist_route(wishlist_id: int):
    try:
        user_id = g.current_user.id if g.current_user else None
        wishlist = wishlist_service.get_wishlist(wishlist_id, user_id)
        return jsonify({"wishlist": wishlist.to_dict()})

    except GiftboxError as e:
        return error_response(e)


@engagement_bp.patch("/wishlists/<int:wishlist_id>")
@require_auth
def update_wishlist_route(wishlist_id: int):
    try:
        data = request.get_json(silent=True) or {}
        wishlist = wishlist_service.update_wishlist(wishlist_id, g.current_user.id, data)
        return jsonify({"wishlist": wishlist.to_dict()}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update wishlist")
        return jsonify({"error": "Internal server error"}), 500


@engagement_bp.delete("/wishlists/<int:wishlist_id>")
@require_auth
def delete_wishlist_route(wishlist_id: int):
    try:
        wishlist_service.delete_wishlist(wishlist_id, g.current_user.id)
        return jsonify({"message": "Wishlist deleted"}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete wishlist")
        return jsonify({"error": "Internal server error"}), 500


@engagement_bp.get("/wishlists/<int:wishlist_id>/items")
@optional_auth
def list_wishlist_items_route(wishlist_id: int):
    try:
        user_id = g.current_user.id if g.current_user else None
        items = wishlist_service.list_wishlist_items(wishlist_id, user_id)
        return jsonify({"items": [item.to_dict() for item in items]})

    except GiftboxError as e:
        return error_response(e)


@engagement_bp.post("/wishlists/<int:wishlist_id>/items")
@require_auth
def add_wishlist_item_route(wishlist_id: int):
    """Request body: {"product_id": 1} or {"service_id": 1}"""
    try:
        data = request.get_json(silent=True) or {}
        product_id = data.get("product_id")
        service_id = data.get("service_id")
        if bool(product_id) == bool(service_id):
            raise ValidationError("Exactly one of product_id or service_id is required")

        if product_id:
            entry = wishlist_service.add_product_to_wishlist(wishlist_id, g.current_user.id, product_id)
        else:
            entry = wishlist_service.add_service_to_wishlist(wishlist_id, g.current_user.id, service_id)
        return jsonify({"item": entry.to_dict()}), 201

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to add wishlist item")
        return jsonify({"error": "Internal server error"}), 500


@engagement_bp.delete("/wishlists/<int:wishlist_id>/items/<int:item_id>")
@require_auth
def remove_wishlist_item_route(wishlist_id: int, item_id: int):
    try:
        wishlist_service.remove_wishlist_item(wishlist_id, g.current_user.id, item_id)
        return jsonify({"message": "Item removed"}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to remove wishlist item")
        return jsonify({"error": "Internal server error"}), 500

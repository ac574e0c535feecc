# Overview: Flask API routes for the signed-in customer's cart, its quote, and checkout.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..errors import GiftboxError, ValidationError, error_response
from ..extensions import get_cart_service
from ..services.cart_service import owner_key_for


cart_bp = Blueprint("cart", __name__, url_prefix="/api")

CONTACT_FIELDS = (
    "sender_name", "sender_email", "sender_phone", "sender_address",
    "receiver_name", "receiver_email", "receiver_phone", "shipping_address",
)


def _owner_key() -> str:
    return owner_key_for(g.current_user.id)


@cart_bp.get("/cart")
@require_auth
def get_cart_route():
    cart = get_cart_service().get(_owner_key())
    return jsonify({"cart": cart.to_dict()})


@cart_bp.post("/cart/items")
@require_auth
def add_cart_item_route():
    """Request body: {"item_type": "product|service", "item_id": 1, "quantity": 1}"""
    try:
        data = request.get_json(silent=True) or {}
        item_id = data.get("item_id")
        if not isinstance(item_id, int) or isinstance(item_id, bool):
            raise ValidationError("item_id must be an integer")
        cart = get_cart_service().add_item(
            _owner_key(),
            data.get("item_type") or "product",
            item_id,
            data.get("quantity", 1),
        )
        return jsonify({"cart": cart.to_dict()}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to add cart item")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.patch("/cart/items/<item_type>/<int:item_id>")
@require_auth
def set_cart_quantity_route(item_type: str, item_id: int):
    """Request body: {"quantity": n}; 0 removes the line."""
    try:
        data = request.get_json(silent=True) or {}
        cart = get_cart_service().set_quantity(_owner_key(), item_type, item_id, data.get("quantity"))
        return jsonify({"cart": cart.to_dict()}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update cart item")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.delete("/cart/items/<item_type>/<int:item_id>")
@require_auth
def remove_cart_item_route(item_type: str, item_id: int):
    try:
        cart = get_cart_service().remove_item(_owner_key(), item_type, item_id)
        return jsonify({"cart": cart.to_dict()}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to remove cart item")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.get("/cart/quote")
@require_auth
def quote_cart_route():
    try:
        service = get_cart_service()
        quote = service.quote(service.get(_owner_key()))
        return jsonify({"quote": quote.to_dict()})

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to quote cart")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.post("/checkout")
@require_auth
def checkout_route():
    """
    Place an order for the cart at current catalog prices.

    Request body: order_type ("self" | "gift"), sender_name, sender_email,
    sender_address (required), sender_phone, receiver_*, shipping_address.
    """
    try:
        data = request.get_json(silent=True) or {}
        contacts = {key: data.get(key) for key in CONTACT_FIELDS if key in data}
        order = get_cart_service().checkout(
            _owner_key(),
            g.current_user,
            data.get("order_type") or "self",
            contacts,
        )
        return jsonify({"order": order.to_dict()}), 201

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to check out")
        return jsonify({"error": "Internal server error"}), 500

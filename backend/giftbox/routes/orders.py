# Overview: Flask API routes for placing and viewing orders, status changes, and the gift receiver flow.

"""
Order Routes

- POST /api/orders accepts guests; a signed-in caller becomes the owner
- GET endpoints apply the viewer rules in order_service.get_order_for_viewer
- /api/gift-receiver/<link_token> takes the signed link token, never the raw
  gift token
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import optional_auth, require_auth, require_role
from ..errors import GiftboxError, error_response
from ..models import Role
from ..services import gift_link_service, order_service


orders_bp = Blueprint("orders", __name__, url_prefix="/api")


@orders_bp.post("/orders")
@optional_auth
def create_order_route():
    """
    Place an order.

    Request body:
    {
        "order_type": "self|gift",
        "sender_name": "...", "sender_email": "...", "sender_address": "...",
        "sender_phone": "...",
        "receiver_name": "...", "receiver_email": "...", "receiver_phone": "...",
        "shipping_address": "...",           // self orders
        "items": [{"item_type": "product", "product_id": 1, "quantity": 2}],
        "subtotal": 40.00, "shipping": 9.99, "tax": 3.20, "total": 53.19
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        user = g.current_user
        order = order_service.create_order(data, user_id=user.id if user else None)
        return jsonify({"order": order.to_dict(include_vendor_orders=True)}), 201

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/orders")
@require_auth
def list_my_orders_route():
    orders = order_service.list_orders_for_user(g.current_user.id)
    return jsonify({"orders": [o.to_dict() for o in orders]})


@orders_bp.get("/orders/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    try:
        return jsonify({"order": order_service.get_order_for_viewer(order_id, g.session_context)})
    except GiftboxError as e:
        return error_response(e)


@orders_bp.post("/orders/<int:order_id>/cancel")
@require_auth
def cancel_order_route(order_id: int):
    try:
        order = order_service.cancel_order(order_id, g.current_user)
        return jsonify({"order": order.to_dict(include_vendor_orders=True)}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.patch("/orders/<int:order_id>/status")
@require_auth
@require_role(Role.ADMIN)
def update_order_status_route(order_id: int):
    """Request body: {"status": "confirmed|dispatched|delivered|cancelled"}"""
    try:
        data = request.get_json(silent=True) or {}
        status = data.get("status")
        if not status:
            return jsonify({"error": "status required"}), 400

        order = order_service.update_order_status(order_id, status, actor_user_id=g.current_user.id)
        return jsonify({"order": order.to_dict(include_vendor_orders=True)}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# GIFT RECEIVER
# =============================================================================

@orders_bp.get("/gift-receiver/<link_token>")
def get_gift_route(link_token: str):
    try:
        gift_token = gift_link_service.resolve_gift_link(link_token)
        return jsonify({"gift": order_service.get_order_by_gift_token(gift_token)})
    except GiftboxError as e:
        return error_response(e)


@orders_bp.post("/gift-receiver/<link_token>/confirm")
def confirm_gift_route(link_token: str):
    """Request body: {"receiver_address": "..." (required), "receiver_name": "...", "receiver_phone": "..."}"""
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.confirm_gift_link(
            link_token,
            data.get("receiver_address"),
            receiver_name=data.get("receiver_name"),
            receiver_phone=data.get("receiver_phone"),
        )
        return jsonify({
            "message": "Gift confirmed",
            "order_number": order.order_number,
            "status": order.status,
        }), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to confirm gift")
        return jsonify({"error": "Internal server error"}), 500

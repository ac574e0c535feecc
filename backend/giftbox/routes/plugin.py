# Overview: Flask API routes for external storefronts pushing gift orders with an API key.

"""
Plugin API (v1)

Authenticated by the X-API-Key header issued from the admin console.
Every order is scoped to the calling integration; another integration's
order ids answer 404.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_plugin_key
from ..errors import GiftboxError, error_response
from ..services import plugin_service


plugin_bp = Blueprint("plugin", __name__, url_prefix="/api/plugin/v1")


@plugin_bp.post("/orders")
@require_plugin_key
def create_plugin_order_route():
    """
    Request body:
    {
        "external_order_id": "shop-1001",
        "sender_name": "...", "sender_email": "...", "sender_phone": "...", "sender_address": "...",
        "receiver_name": "...", "receiver_email": "...", "receiver_phone": "...",
        "items": [{"name": "Mug", "price": 12.5, "quantity": 2}],
        "shipping": 5, "tax": 2, "total": 32
    }

    The recipient_link is sent to the receiver, who confirms their address
    through the gift receiver flow.
    """
    try:
        order = plugin_service.create_plugin_order(g.plugin_integration, request.get_json(silent=True) or {})
        return jsonify({
            "order_id": order.id,
            "order_number": order.order_number,
            "recipient_link": order.gift_link,
            "gift_token": order.gift_token,
            "status": order.status,
        }), 201

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create plugin order")
        return jsonify({"error": "Internal server error"}), 500


@plugin_bp.get("/orders")
@require_plugin_key
def find_plugin_order_route():
    """Look up by ?external_order_id=..."""
    try:
        return jsonify(plugin_service.get_plugin_order(
            g.plugin_integration,
            external_order_id=request.args.get("external_order_id"),
        ))
    except GiftboxError as e:
        return error_response(e)


@plugin_bp.get("/orders/<int:order_id>")
@require_plugin_key
def get_plugin_order_route(order_id: int):
    try:
        return jsonify(plugin_service.get_plugin_order(g.plugin_integration, order_id=order_id))
    except GiftboxError as e:
        return error_response(e)

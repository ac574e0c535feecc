# Overview: Flask API routes for a vendor's store, its orders and payouts, plus the public store list.

"""
Vendor Routes

Everything under /api/vendor acts on the caller's own store and requires the
vendor role. GET /api/stores is public.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..errors import GiftboxError, error_response
from ..models import Role
from ..services import order_service, payout_service, vendor_service


vendors_bp = Blueprint("vendors", __name__, url_prefix="/api")


@vendors_bp.post("/vendor/store")
@require_auth
@require_role(Role.VENDOR)
def register_store_route():
    """
    Register the caller's store. It starts pending until an admin approves it.

    Request body: name (required), description, category, logo_url,
    banner_url, address, phone, email, website.
    """
    try:
        vendor_id = g.session_context.vendor_id
        if vendor_id is None:
            return jsonify({"error": "Vendor profile not found"}), 404

        data = request.get_json(silent=True) or {}
        store = vendor_service.register_store(vendor_id, data)
        return jsonify({"store": store.to_dict(include_payment=True)}), 201

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to register store")
        return jsonify({"error": "Internal server error"}), 500


@vendors_bp.get("/vendor/store")
@require_auth
@require_role(Role.VENDOR)
def get_my_store_route():
    try:
        store = vendor_service.require_vendor_store(g.session_context.vendor_id)
        return jsonify({"store": store.to_dict(include_payment=True)})

    except GiftboxError as e:
        return error_response(e)


@vendors_bp.patch("/vendor/store")
@require_auth
@require_role(Role.VENDOR)
def update_my_store_route():
    try:
        store = vendor_service.require_vendor_store(g.session_context.vendor_id)
        data = request.get_json(silent=True) or {}
        store = vendor_service.update_store(store.id, data)
        return jsonify({"store": store.to_dict(include_payment=True)}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update store")
        return jsonify({"error": "Internal server error"}), 500


@vendors_bp.get("/vendor/orders")
@require_auth
@require_role(Role.VENDOR)
def list_vendor_orders_route():
    """Vendor orders with their parent order and only this store's items."""
    try:
        vendor_id = order_service.require_vendor_context(g.session_context)
        vendor_orders = order_service.list_orders_for_vendor(vendor_id, status=request.args.get("status"))
        return jsonify({"orders": [vo.to_dict(include_order=True) for vo in vendor_orders]})

    except GiftboxError as e:
        return error_response(e)


@vendors_bp.patch("/vendor/orders/<int:order_id>/status")
@require_auth
@require_role(Role.VENDOR)
def update_vendor_order_status_route(order_id: int):
    """
    Move the caller's part of an order.

    Request body: {"status": "confirmed|dispatched|delivered|cancelled"}
    """
    try:
        data = request.get_json(silent=True) or {}
        status = data.get("status")
        if not status:
            return jsonify({"error": "status required"}), 400

        vendor_id = order_service.require_vendor_context(g.session_context)
        vendor_order = order_service.update_vendor_order_status(
            order_id, vendor_id, status, actor_user_id=g.current_user.id,
        )
        return jsonify({"vendor_order": vendor_order.to_dict(include_order=True)}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update vendor order status")
        return jsonify({"error": "Internal server error"}), 500


@vendors_bp.get("/vendor/payouts")
@require_auth
@require_role(Role.VENDOR)
def list_vendor_payouts_route():
    try:
        vendor_id = order_service.require_vendor_context(g.session_context)
        return jsonify(payout_service.list_vendor_payouts(vendor_id))

    except GiftboxError as e:
        return error_response(e)


@vendors_bp.get("/stores")
def list_stores_route():
    stores = vendor_service.list_approved_stores()
    return jsonify({"stores": [s.to_dict() for s in stores]})

# Overview: Flask API routes for platform administration: stores, orders, settings, payouts, integrations, inquiries.

"""
Admin Routes

SECURITY: Every route requires an authenticated session with role admin.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..errors import GiftboxError, error_response
from ..models import Role
from ..services import (
    inquiry_service,
    order_service,
    payout_service,
    plugin_service,
    settings_service,
    store_admin_service,
)


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@require_auth
@require_role(Role.ADMIN)
def _require_admin():
    return None


@admin_bp.before_request
def _admin_only():
    """Gate the whole blueprint; returning None lets the request through."""
    if request.method == "OPTIONS":
        return None
    return _require_admin()


def _page_args(default_per_page: int = 20) -> tuple[int, int]:
    return (
        request.args.get("page", 1, type=int),
        request.args.get("per_page", default_per_page, type=int),
    )


# =============================================================================
# STORES
# =============================================================================

@admin_bp.get("/stores")
def list_stores_route():
    status = request.args.get("status")
    stores = store_admin_service.list_all_stores(status=status)
    return jsonify({"stores": [s.to_dict(include_payment=True) for s in stores]})


@admin_bp.get("/stores/<int:store_id>")
def get_store_route(store_id: int):
    try:
        return jsonify(store_admin_service.get_store_detail(store_id))
    except GiftboxError as e:
        return error_response(e)


@admin_bp.post("/stores/<int:store_id>/approve")
def approve_store_route(store_id: int):
    try:
        store = store_admin_service.approve_store(store_id, g.current_user.id)
        return jsonify({"store": store.to_dict(include_payment=True)}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to approve store")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/stores/<int:store_id>/reject")
def reject_store_route(store_id: int):
    try:
        store = store_admin_service.reject_store(store_id, g.current_user.id)
        return jsonify({"store": store.to_dict(include_payment=True)}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to reject store")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/stores/<int:store_id>/suspend")
def suspend_store_route(store_id: int):
    """Request body: {"unsuspend": true} reactivates a suspended store."""
    try:
        data = request.get_json(silent=True) or {}
        if data.get("unsuspend"):
            store = store_admin_service.reactivate_store(store_id, g.current_user.id)
        else:
            store = store_admin_service.suspend_store(store_id, g.current_user.id)
        return jsonify({"store": store.to_dict(include_payment=True)}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to change store suspension")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/stats")
def stats_route():
    return jsonify(store_admin_service.admin_dashboard_stats())


# =============================================================================
# ORDERS
# =============================================================================

@admin_bp.get("/orders")
def list_orders_route():
    try:
        page, per_page = _page_args()
        return jsonify(order_service.list_all_orders(
            page=page,
            per_page=per_page,
            status=request.args.get("status"),
            order_type=request.args.get("order_type"),
        ))
    except GiftboxError as e:
        return error_response(e)


# =============================================================================
# SETTINGS
# =============================================================================

@admin_bp.get("/commission")
def get_commission_route():
    return jsonify({"commission_percent": float(settings_service.get_commission_percent())})


@admin_bp.patch("/commission")
def update_commission_route():
    """Request body: {"commission_percent": 0..100}"""
    try:
        data = request.get_json(silent=True) or {}
        settings = settings_service.update_commission(data.get("commission_percent"), g.current_user.id)
        return jsonify({"settings": settings.to_dict()}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update commission")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.patch("/settings")
def update_settings_route():
    """Request body: {"tax_percent": 0..100, "plugin_tax": 0..100} (either or both)"""
    try:
        data = request.get_json(silent=True) or {}
        settings = settings_service.update_tax_settings(
            tax_percent=data.get("tax_percent"),
            plugin_tax=data.get("plugin_tax"),
            admin_id=g.current_user.id,
        )
        return jsonify({"settings": settings.to_dict()}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update settings")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/overview-videos")
def get_overview_videos_route():
    return jsonify(settings_service.get_overview_videos())


@admin_bp.patch("/overview-videos")
def update_overview_videos_route():
    """Request body: {"gifting_video_url": "https://...", "vendor_video_url": ""} (either or both)"""
    try:
        data = request.get_json(silent=True) or {}
        videos = settings_service.update_overview_videos(data, g.current_user.id)
        return jsonify({"success": True, **videos}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update overview videos")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PAYOUTS
# =============================================================================

@admin_bp.get("/payouts")
def list_payouts_route():
    try:
        page, per_page = _page_args(default_per_page=10)
        return jsonify(payout_service.list_payouts(
            search=request.args.get("search"),
            store_name=request.args.get("store_name"),
            vendor_name=request.args.get("vendor_name"),
            status=request.args.get("status"),
            page=page,
            per_page=per_page,
        ))
    except GiftboxError as e:
        return error_response(e)


@admin_bp.post("/process-payouts")
def process_payouts_route():
    """
    Settle payouts now.

    Request body: {"vendor_order_ids": [1, 2]} settles exactly those;
    an empty body settles everything past the holding period.
    """
    try:
        data = request.get_json(silent=True) or {}
        result = payout_service.process_payouts(data.get("vendor_order_ids"))
        return jsonify(result.to_dict()), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to process payouts")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PLUGIN INTEGRATIONS
# =============================================================================

@admin_bp.get("/plugin-orders")
def list_plugin_orders_route():
    page, per_page = _page_args()
    return jsonify(plugin_service.list_plugin_orders(
        page=page, per_page=per_page, status=request.args.get("status"),
    ))


@admin_bp.get("/plugin-integrations")
def list_integrations_route():
    return jsonify({"integrations": plugin_service.list_integrations()})


@admin_bp.post("/plugin-integrations")
def create_integration_route():
    """
    Request body: {"name": "...", "store_id": 1, "fee_per_order": 1.50}

    The response carries the API key; it is never shown again.
    """
    try:
        data = request.get_json(silent=True) or {}
        store_id = data.get("store_id")
        if not store_id:
            return jsonify({"error": "store_id is required"}), 400

        integration, api_key = plugin_service.create_integration(
            data.get("name"), store_id, data.get("fee_per_order", 0),
        )
        return jsonify({
            **integration.to_dict(),
            "api_key": api_key,
            "message": "Store this API key securely. It will not be shown again.",
        }), 201

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create plugin integration")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/plugin-integrations/<int:integration_id>/deactivate")
def deactivate_integration_route(integration_id: int):
    try:
        integration = plugin_service.deactivate_integration(integration_id)
        return jsonify({"integration": integration.to_dict()}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to deactivate plugin integration")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# INQUIRIES
# =============================================================================

@admin_bp.get("/contact-queries")
def list_contact_queries_route():
    page, per_page = _page_args()
    return jsonify(inquiry_service.list_contact_queries(page=page, per_page=per_page))


@admin_bp.get("/plugin-queries")
def list_plugin_queries_route():
    page, per_page = _page_args()
    return jsonify(inquiry_service.list_plugin_queries(page=page, per_page=per_page))

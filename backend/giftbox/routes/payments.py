# Overview: Flask API routes linking a vendor's store to a connected payment account.

"""
Payment Account Routes

WHY: Vendors are paid by transfer to a connected account at the payment
processor. These routes drive the processor's hosted onboarding.

SECURITY:
- Vendor role required; a vendor may only act on their own store
- Processor failures surface as 502 with the processor's message
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..errors import GiftboxError, error_response
from ..models import Role
from ..services import connect_service


payments_bp = Blueprint("payments", __name__, url_prefix="/api/stripe/connect")


def _store_id() -> int | None:
    """Optional store_id from the body or query string (storeId accepted too)."""
    data = request.get_json(silent=True) or {}
    value = data.get("store_id", data.get("storeId"))
    if value is None:
        value = request.args.get("store_id") or request.args.get("storeId")
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@payments_bp.post("/onboard")
@require_auth
@require_role(Role.VENDOR)
def onboard_route():
    """Returns {"url": "..."} for the processor's hosted onboarding."""
    try:
        url = connect_service.onboard(
            g.session_context.vendor_id,
            _store_id(),
            email=g.current_user.email,
        )
        return jsonify({"url": url}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to start payment onboarding")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/complete")
@require_auth
@require_role(Role.VENDOR)
def complete_route():
    try:
        store = connect_service.complete(g.session_context.vendor_id, _store_id())
        return jsonify({"store": store.to_dict(include_payment=True)}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to complete payment onboarding")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/disconnect")
@require_auth
@require_role(Role.VENDOR)
def disconnect_route():
    try:
        store = connect_service.disconnect(g.session_context.vendor_id, _store_id())
        return jsonify({"store": store.to_dict(include_payment=True)}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to disconnect payment account")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/dashboard-link")
@require_auth
@require_role(Role.VENDOR)
def dashboard_link_route():
    try:
        url = connect_service.dashboard_link(g.session_context.vendor_id, _store_id())
        return jsonify({"url": url}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create payment dashboard link")
        return jsonify({"error": "Internal server error"}), 500

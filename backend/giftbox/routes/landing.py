# Overview: Flask API routes for the public landing page, checkout settings and overview videos.

from flask import Blueprint, request, jsonify, current_app

from ..services import catalog_service, settings_service, vendor_service


landing_bp = Blueprint("landing", __name__, url_prefix="/api")


@landing_bp.get("/landing/categories")
def categories_route():
    return jsonify({"categories": catalog_service.landing_categories()})


@landing_bp.get("/landing/trending-products")
def trending_products_route():
    limit = request.args.get("limit", 8, type=int)
    return jsonify({"products": catalog_service.landing_trending_products(limit=limit)})


@landing_bp.get("/landing/top-vendors")
def top_vendors_route():
    limit = request.args.get("limit", 10, type=int)
    return jsonify({"vendors": vendor_service.list_top_vendors(limit=max(1, min(limit, 50)))})


@landing_bp.get("/landing/services")
def landing_services_route():
    limit = request.args.get("limit", 8, type=int)
    return jsonify({"services": [s.to_dict() for s in catalog_service.landing_services(limit=limit)]})


@landing_bp.get("/settings/checkout")
def checkout_settings_route():
    """Tax settings the storefront needs to show totals before checkout."""
    try:
        settings = settings_service.get_checkout_settings()
        settings["shipping_flat_rate"] = float(current_app.config["SHIPPING_FLAT_RATE"])
        return jsonify(settings)
    except Exception:
        current_app.logger.exception("Failed to load checkout settings")
        return jsonify({"error": "Internal server error"}), 500


@landing_bp.get("/overview/videos")
def overview_videos_route():
    try:
        return jsonify(settings_service.get_overview_videos())
    except Exception:
        current_app.logger.exception("Failed to load overview videos")
        return jsonify({"error": "Internal server error"}), 500

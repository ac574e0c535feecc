# Overview: Flask API routes for catalog management (vendor/admin) and public product and service listings.

"""
Catalog Routes

Vendors manage their own store's items under /api/vendor/products and
/api/vendor/services. Admins may use the same endpoints for any store by
passing store_id. Public listings only show active items of approved stores.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..errors import GiftboxError, NotFoundError, ValidationError, error_response
from ..models import Role
from ..services import catalog_service, vendor_service


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")

ITEM_OPERATIONS = {
    "products": {
        "create": catalog_service.create_product,
        "update": catalog_service.update_product,
        "delete": catalog_service.delete_product,
        "list": catalog_service.list_products_by_store,
        "key": "product",
    },
    "services": {
        "create": catalog_service.create_service,
        "update": catalog_service.update_service,
        "delete": catalog_service.delete_service,
        "list": catalog_service.list_services_by_store,
        "key": "service",
    },
}


def _acting_scope(data: dict | None = None) -> tuple[int | None, int]:
    """
    Returns (vendor_id, store_id) for the caller.

    vendor_id is None for admins, who must name the store explicitly.
    """
    context = g.session_context
    if context.is_admin:
        store_id = (data or {}).get("store_id") or request.args.get("store_id", type=int)
        if not store_id:
            raise ValidationError("store_id required")
        return None, int(store_id)
    store = vendor_service.require_vendor_store(context.vendor_id)
    return context.vendor_id, store.id


def _vendor_scope() -> int | None:
    """None for admins; a vendor without a profile is refused."""
    context = g.session_context
    if context.is_admin:
        return None
    if context.vendor_id is None:
        raise NotFoundError("Vendor profile not found")
    return context.vendor_id


# =============================================================================
# VENDOR / ADMIN MANAGEMENT
# =============================================================================

@catalog_bp.get("/vendor/<any(products, services):kind>")
@require_auth
@require_role(Role.VENDOR, Role.ADMIN)
def list_own_items_route(kind: str):
    try:
        _, store_id = _acting_scope()
        items = ITEM_OPERATIONS[kind]["list"](store_id, include_inactive=True)
        return jsonify({kind: [item.to_dict() for item in items]})

    except GiftboxError as e:
        return error_response(e)


@catalog_bp.post("/vendor/<any(products, services):kind>")
@require_auth
@require_role(Role.VENDOR, Role.ADMIN)
def create_item_route(kind: str):
    """
    Create a product or service in the caller's store.

    Request body (products): name, price (required), description,
    original_price, category, image_urls, stock.
    Request body (services): name, price (required), description,
    category, duration, location, image_urls.
    """
    try:
        data = request.get_json(silent=True) or {}
        vendor_id, store_id = _acting_scope(data)
        ops = ITEM_OPERATIONS[kind]
        item = ops["create"](store_id, data, vendor_id=vendor_id)
        return jsonify({ops["key"]: item.to_dict()}), 201

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create %s", kind[:-1])
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.patch("/vendor/<any(products, services):kind>/<int:item_id>")
@require_auth
@require_role(Role.VENDOR, Role.ADMIN)
def update_item_route(kind: str, item_id: int):
    try:
        data = request.get_json(silent=True) or {}
        vendor_id = _vendor_scope()
        ops = ITEM_OPERATIONS[kind]
        item = ops["update"](item_id, data, vendor_id=vendor_id)
        return jsonify({ops["key"]: item.to_dict()}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update %s", kind[:-1])
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.delete("/vendor/<any(products, services):kind>/<int:item_id>")
@require_auth
@require_role(Role.VENDOR, Role.ADMIN)
def delete_item_route(kind: str, item_id: int):
    """Soft delete: the item is deactivated so past orders keep resolving."""
    try:
        vendor_id = _vendor_scope()
        ops = ITEM_OPERATIONS[kind]
        item = ops["delete"](item_id, vendor_id=vendor_id)
        return jsonify({ops["key"]: item.to_dict()}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete %s", kind[:-1])
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PUBLIC
# =============================================================================

@catalog_bp.get("/products")
def list_products_route():
    store_id = request.args.get("store_id", type=int)
    if store_id:
        store = vendor_service.get_store(store_id)
        products = catalog_service.list_products_by_store(store_id) if store and store.is_approved else []
    else:
        products = catalog_service.list_approved_products(
            limit=request.args.get("limit", 50, type=int),
            category=request.args.get("category"),
            search=request.args.get("search"),
        )
    return jsonify({"products": [p.to_dict() for p in products]})


@catalog_bp.get("/products/<int:product_id>")
def get_product_route(product_id: int):
    try:
        return jsonify({"product": catalog_service.get_product(product_id)})
    except GiftboxError as e:
        return error_response(e)


@catalog_bp.get("/services")
def list_services_route():
    store_id = request.args.get("store_id", type=int)
    if store_id:
        store = vendor_service.get_store(store_id)
        services = catalog_service.list_services_by_store(store_id) if store and store.is_approved else []
    else:
        services = catalog_service.list_approved_services(
            limit=request.args.get("limit", 50, type=int),
            category=request.args.get("category"),
            search=request.args.get("search"),
        )
    return jsonify({"services": [s.to_dict() for s in services]})


@catalog_bp.get("/services/<int:service_id>")
def get_service_route(service_id: int):
    try:
        return jsonify({"service": catalog_service.get_service(service_id)})
    except GiftboxError as e:
        return error_response(e)

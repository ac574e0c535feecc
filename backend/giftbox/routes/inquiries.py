# Overview: Flask API routes for public contact and plugin-interest forms.

from flask import Blueprint, request, jsonify, current_app

from ..errors import GiftboxError, error_response
from ..services import inquiry_service


inquiries_bp = Blueprint("inquiries", __name__, url_prefix="/api")


@inquiries_bp.post("/contact")
def contact_route():
    """Request body: {"name", "email", "phone", "subject", "message"}"""
    try:
        data = request.get_json(silent=True) or {}
        query = inquiry_service.submit_contact_query(
            data.get("name"),
            data.get("email"),
            phone=data.get("phone"),
            subject=data.get("subject"),
            message=data.get("message"),
        )
        return jsonify({"message": "Thanks, we will be in touch", "id": query.id}), 201

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to save contact query")
        return jsonify({"error": "Internal server error"}), 500


@inquiries_bp.post("/plugin-query")
def plugin_query_route():
    try:
        data = request.get_json(silent=True) or {}
        query = inquiry_service.submit_plugin_query(
            data.get("name"),
            data.get("email"),
            phone=data.get("phone"),
            query=data.get("query"),
        )
        return jsonify({"message": "Thanks, we will be in touch", "id": query.id}), 201

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to save plugin query")
        return jsonify({"error": "Internal server error"}), 500

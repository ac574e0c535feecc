# Overview: Flask API routes for the caller's profile and admin profile search.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..errors import GiftboxError, error_response
from ..models import Role
from ..services import profile_service


profile_bp = Blueprint("profile", __name__, url_prefix="/api/profile")


@profile_bp.get("")
@require_auth
def get_profile_route():
    return jsonify({"profile": g.current_user.to_dict()})


@profile_bp.patch("")
@require_auth
def update_profile_route():
    """Accepts name, phone_number, address, avatar_url; other keys are ignored."""
    try:
        data = request.get_json(silent=True) or {}
        user = profile_service.update_profile(g.current_user.id, data)
        return jsonify({"profile": user.to_dict()}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update profile")
        return jsonify({"error": "Internal server error"}), 500


@profile_bp.get("/search")
@require_auth
@require_role(Role.ADMIN)
def search_profiles_route():
    query = request.args.get("q", "")
    limit = request.args.get("limit", 10, type=int)
    users = profile_service.search_profiles(query, limit=limit)
    return jsonify({"profiles": [u.to_dict() for u in users]})

# Overview: Flask API routes for sign-up, sign-in, sign-out and password changes.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..errors import GiftboxError, error_response
from ..services import auth_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/signup")
def signup_route():
    """
    Create an account.

    Request body:
    {
        "email": "...",          // required
        "password": "...",       // required, >= 6 chars
        "name": "...",
        "role": "user|vendor",   // default user
        "vendor_name": "..."     // vendor accounts
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        result = auth_service.sign_up(
            data.get("email"),
            data.get("password"),
            name=data.get("name"),
            role=data.get("role") or "user",
            vendor_name=data.get("vendor_name"),
        )
        return jsonify({
            "user": result.user.to_dict(),
            "vendor": result.vendor.to_dict() if result.vendor else None,
        }), 201

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to sign up")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    try:
        data = request.get_json(silent=True) or {}
        result = auth_service.sign_in(
            data.get("email"),
            data.get("password"),
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        return jsonify({
            "token": result.token,
            "user": result.user.to_dict(),
            "expires_at": result.session.to_dict()["expires_at"],
        }), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to sign in")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        auth_service.sign_out(g.session_token)
        return jsonify({"message": "Logged out"}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to sign out")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    context = g.session_context
    return jsonify({
        "user": context.user.to_dict(),
        "role": context.role.value,
        "vendor_id": context.vendor_id,
    })


@auth_bp.post("/password")
@require_auth
def change_password_route():
    try:
        data = request.get_json(silent=True) or {}
        revoked = auth_service.update_password(
            g.current_user,
            data.get("current_password"),
            data.get("new_password"),
            keep_session_id=g.session_context.session.id,
        )
        return jsonify({"message": "Password updated", "sessions_revoked": revoked}), 200

    except GiftboxError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to change password")
        return jsonify({"error": "Internal server error"}), 500

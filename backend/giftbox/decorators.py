# Overview: Request decorators for API routes: bearer-token auth, role gating, plugin API keys.

from functools import wraps
from flask import request, jsonify, g

from .models import Role
from .services import plugin_service, session_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def _set_context(context) -> None:
    g.session_context = context
    g.current_user = context.user if context else None


def require_auth(f):
    """
    Require a valid session and expose it to the route.

    Sets:
    - g.session_context: SessionContext (user, session, role, vendor_id)
    - g.current_user: the authenticated User

    Returns 401 on a missing, invalid, expired or revoked token.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        _set_context(context)
        g.session_token = token
        return f(*args, **kwargs)

    return decorated_function


def optional_auth(f):
    """Resolve the session when a token is sent; anonymous callers pass with g.session_context = None."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        _set_context(session_service.validate_session(token) if token else None)
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: Role):
    """
    Require one of the given roles. Must be stacked under @require_auth.

    Admins are not implicitly granted vendor routes: vendor routes act on
    "my store", which an admin does not have.
    """
    allowed = {Role(role) for role in roles}

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            context = getattr(g, "session_context", None)
            if context is None:
                return jsonify({"error": "Authentication required"}), 401
            if context.role not in allowed:
                return jsonify({
                    "error": "Permission denied",
                    "required_role": sorted(role.value for role in allowed),
                }), 403
            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_plugin_key(f):
    """Authenticate an external integration by its X-API-Key header; sets g.plugin_integration."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        integration = plugin_service.authenticate_api_key(request.headers.get("X-API-Key"))
        if not integration:
            return jsonify({"error": "Invalid or missing API key. Use X-API-Key header."}), 401
        g.plugin_integration = integration
        return f(*args, **kwargs)

    return decorated_function

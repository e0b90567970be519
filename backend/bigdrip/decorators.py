# Overview: Actor and role decorators for API routes.

from functools import wraps

from flask import current_app, g, jsonify, request

from .extensions import db
from .models import User

ACTOR_HEADER = "X-User-Id"


def require_actor(f):
    """
    Resolve the acting user from the X-User-Id header.

    Sessions are issued by the external identity provider; the gateway in
    front of this service forwards the authenticated user's id.

    Sets g.current_user. Returns 401 if:
    - No X-User-Id header
    - Header is not an integer id
    - User does not exist or is deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = request.headers.get(ACTOR_HEADER)
        if not raw:
            return jsonify({"error": "Authentication required", "code": "AUTH_REQUIRED"}), 401

        try:
            user_id = int(raw.strip())
        except ValueError:
            return jsonify({"error": "Invalid actor id", "code": "AUTH_INVALID"}), 401

        user = db.session.get(User, user_id)
        if user is None or not user.is_active:
            return jsonify({"error": "Unknown or inactive user", "code": "AUTH_INVALID"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """Require the resolved actor to hold one of the given roles (403 otherwise)."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_actor was applied first
            user = getattr(g, "current_user", None)
            if user is None:
                return jsonify({"error": "Authentication required", "code": "AUTH_REQUIRED"}), 401

            if user.role not in roles:
                current_app.logger.warning(
                    "Role denied: user=%s role=%s path=%s required=%s",
                    user.id, user.role, request.path, ",".join(roles),
                )
                return jsonify({
                    "error": "Permission denied",
                    "code": "FORBIDDEN",
                    "required_roles": list(roles),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator

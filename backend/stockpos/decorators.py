# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import permission_service
from .services.permission_service import ActorNotFound


ACTOR_HEADER = "X-Actor-Id"


def require_actor(f):
    """
    Resolve the acting user from the X-Actor-Id header.

    Sets g.current_user. Returns 401 when the header is missing or malformed,
    or names an unknown or deactivated user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = request.headers.get(ACTOR_HEADER, "").strip()
        if not raw.isdigit():
            return jsonify({"error": "Actor required"}), 401

        try:
            g.current_user = permission_service.require_actor(int(raw))
        except ActorNotFound:
            return jsonify({"error": "Unknown or inactive actor"}), 401

        return f(*args, **kwargs)

    return decorated_function


def require_permission(action: str):
    """Require the current user to be allowed to perform action."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_actor was called first
            if not hasattr(g, "current_user"):
                return jsonify({"error": "Actor required"}), 401

            if not permission_service.can(g.current_user, action):
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": action,
                }), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator

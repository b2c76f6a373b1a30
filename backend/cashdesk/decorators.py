# Overview: Request identity and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import User


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def require_user(f):
    """
    Resolve the acting user from the X-User-Id header.

    Token handling lives in the upstream auth store; it forwards the id of the
    authenticated user with each request. Sets g.current_user.

    Returns 401 if the header is missing or malformed, the user does not exist
    or the account is deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = (request.headers.get("X-User-Id") or "").strip()
        if not raw.isdigit():
            return jsonify({"error": "Authentication required"}), 401

        user = db.session.get(User, int(raw))
        if user is None or not user.active:
            return jsonify({"error": "Unknown or inactive user"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """Require @require_user first; 403 unless the user has one of the roles."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if g.current_user.role.value not in roles:
                return jsonify({
                    "error": "Permission denied",
                    "required_role": list(roles),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator

# Overview: Flask API routes for user accounts; parses input and returns JSON responses.

"""
User administration routes.

SECURITY:
- Account management requires the admin role
- A user may read their own record
- /verify checks credentials for the upstream auth store and needs no identity
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import PosError
from ..services import auth_service
from ..validation import require_fields
from ..decorators import require_user, require_role

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_user
@require_role("admin")
def list_users_route():
    include_inactive = request.args.get("include_inactive", "true").lower() == "true"
    users = auth_service.list_users(include_inactive=include_inactive)
    return jsonify({"users": [u.to_dict() for u in users]}), 200


@users_bp.get("/<int:user_id>")
@require_user
def get_user_route(user_id: int):
    if g.current_user.id != user_id and not g.current_user.is_admin:
        return jsonify({"error": "Permission denied"}), 403
    try:
        return jsonify({"user": auth_service.get_user(user_id).to_dict()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code


@users_bp.post("")
@require_user
@require_role("admin")
def create_user_route():
    """
    Request body:
    {
        "username": "maria",
        "password": "secret",
        "full_name": "Maria Lopez",
        "role": "cashier"  (optional, default cashier)
    }
    """
    try:
        data = request.get_json() or {}
        require_fields(data, "username", "password", "full_name")
        user = auth_service.create_user(
            data["username"],
            data["password"],
            data["full_name"],
            data.get("role", "cashier"),
        )
        return jsonify({"user": user.to_dict()}), 201
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.patch("/<int:user_id>")
@require_user
@require_role("admin")
def update_user_route(user_id: int):
    try:
        data = request.get_json() or {}
        user = auth_service.update_user(user_id, data)
        return jsonify({"user": user.to_dict()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.delete("/<int:user_id>")
@require_user
@require_role("admin")
def deactivate_user_route(user_id: int):
    if g.current_user.id == user_id:
        return jsonify({"error": "Cannot deactivate your own account"}), 400
    try:
        user = auth_service.deactivate_user(user_id)
        return jsonify({"user": user.to_dict()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code


@users_bp.post("/verify")
def verify_credentials_route():
    """Check a username/password pair; 401 on any mismatch."""
    data = request.get_json() or {}
    user = auth_service.verify_credentials(data.get("username"), data.get("password"))
    if user is None:
        return jsonify({"error": "Invalid credentials"}), 401
    return jsonify({"user": user.to_dict()}), 200

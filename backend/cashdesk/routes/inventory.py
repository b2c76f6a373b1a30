# Overview: Flask API routes for inventory adjustments; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import PosError
from ..services import inventory_service
from ..validation import parse_id, require_fields
from ..decorators import require_user, require_role

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/adjustments")
@require_user
@require_role("admin")
def create_adjustment_route():
    """
    Record a manual stock change. Admin only.

    Request body:
    {
        "product_id": 3,
        "adjustment_type": "add" | "positive" | "negative",
        "quantity": "5",
        "reason": "Damaged in transit"  (optional)
    }
    """
    try:
        data = request.get_json() or {}
        require_fields(data, "product_id", "adjustment_type", "quantity")

        adjustment = inventory_service.create_adjustment(
            product_id=parse_id(data["product_id"], "product_id"),
            user_id=g.current_user.id,
            adjustment_type=data["adjustment_type"],
            quantity=data["quantity"],
            reason=data.get("reason"),
        )
        return jsonify({"adjustment": adjustment.to_dict()}), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record inventory adjustment")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/adjustments")
@require_user
@require_role("admin")
def list_adjustments_route():
    """
    Adjustment history, newest first.

    Query params (optional, mutually exclusive):
    - product_id: int
    - start, end: ISO-8601 inclusive range
    """
    product_id = request.args.get("product_id")
    start = request.args.get("start")
    end = request.args.get("end")

    try:
        if product_id is not None:
            rows = inventory_service.get_adjustments_by_product(parse_id(product_id, "product_id"))
        elif start or end:
            rows = inventory_service.get_adjustments_by_date_range(start, end)
        else:
            rows = inventory_service.list_adjustments()
        return jsonify({"adjustments": [row.to_dict() for row in rows]}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list inventory adjustments")
        return jsonify({"error": "Internal server error"}), 500

# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/cashdesk/routes/sales.py
"""Sales API routes"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import PosError
from ..services import register_service, sales_service
from ..validation import parse_id, require_fields
from ..decorators import require_user, require_role


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@sales_bp.post("/")
@require_user
def create_sale_route():
    """
    Create and commit a sale in one request.

    Request body:
    {
        "session_id": 1,
        "payment_method": "cash",
        "payment_amount": "100.00",
        "items": [{"product_id": 3, "quantity": "2"}, ...]
    }

    The sale is attributed to the session owner. Admins may record a sale on
    another user's open session; cashiers only on their own.
    """
    try:
        data = request.get_json() or {}
        require_fields(data, "session_id", "payment_method", "payment_amount", "items")
        session_id = parse_id(data["session_id"], "session_id")

        user_id = g.current_user.id
        if g.current_user.is_admin:
            user_id = register_service.get_session(session_id).user_id

        sale = sales_service.create_sale(
            session_id=session_id,
            user_id=user_id,
            payment_method=data["payment_method"],
            payment_amount=data["payment_amount"],
            items=data["items"],
        )
        return jsonify({"sale": sale.to_dict()}), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:sale_id>/cancel")
@require_user
@require_role("admin")
def cancel_sale_route(sale_id: int):
    """Cancel a completed sale and restore its stock. Admin only."""
    try:
        sale = sales_service.cancel_sale(sale_id)
        return jsonify({"sale": sale.to_dict()}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to cancel sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_user
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
        return jsonify({"sale": sale.to_dict()}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.get("")
@sales_bp.get("/")
@require_user
def list_sales_route():
    """
    List sales, newest first.

    Query params (optional, mutually exclusive):
    - session_id: int - sales of one session
    - start, end: ISO-8601 - sales created in the inclusive range
    """
    session_id = request.args.get("session_id")
    start = request.args.get("start")
    end = request.args.get("end")

    try:
        if session_id is not None:
            sales = sales_service.get_sales_by_session(parse_id(session_id, "session_id"))
        elif start or end:
            sales = sales_service.get_sales_by_date_range(start, end)
        else:
            sales = sales_service.list_sales()
        return jsonify({"sales": [sale.to_dict() for sale in sales]}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500

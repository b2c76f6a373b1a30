from flask import Blueprint, jsonify, request, current_app

from cashdesk.decorators import require_user, require_role
from cashdesk.errors import PosError
from cashdesk.services import reporting_service
from cashdesk.validation import parse_id


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/sales")
@require_user
@require_role("admin")
def sales_report():
    start = request.args.get("start")
    end = request.args.get("end")

    try:
        report = reporting_service.sales_report(start, end)
        return jsonify(report.to_dict()), 200
    except PosError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/top-products")
@require_user
@require_role("admin")
def top_products_report():
    start = request.args.get("start")
    end = request.args.get("end")

    try:
        raw_limit = request.args.get("limit")
        if raw_limit is not None:
            limit = parse_id(raw_limit, "limit")
        else:
            limit = current_app.config.get("DEFAULT_TOP_PRODUCTS_LIMIT")

        rows = reporting_service.top_products(start, end, limit)
        return jsonify({"products": [row.to_dict() for row in rows]}), 200
    except PosError as exc:
        return jsonify(exc.to_dict()), exc.status_code

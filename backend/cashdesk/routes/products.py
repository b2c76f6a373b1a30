# Overview: Flask API routes for the product catalog and categories; parses input and returns JSON responses.

# backend/cashdesk/routes/products.py
"""
Catalog routes.

SECURITY: All routes require an identified user.
- Read operations are open to every role (the sale screen needs them)
- Write operations require the admin role

Stock is read-only here: it changes through sales and inventory adjustments.
"""
from flask import Blueprint, request, jsonify, current_app

from ..errors import PosError
from ..services import products_service
from ..validation import require_fields
from ..decorators import require_user, require_role

products_bp = Blueprint("products", __name__, url_prefix="/api/products")
categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


def _flag(name: str) -> bool:
    return request.args.get(name, "false").lower() == "true"


@products_bp.get("")
@require_user
def list_products():
    """
    List products.

    Query params:
    - q: str (optional) - search active products by name or barcode
    - barcode: str (optional) - exact active-product lookup
    - active_only: true|false (optional, default false)
    """
    term = request.args.get("q")
    barcode = request.args.get("barcode")

    try:
        if barcode is not None:
            product = products_service.find_by_barcode(barcode)
            return jsonify({"products": [product.to_dict()] if product else []}), 200
        if term is not None:
            products = products_service.search_products(term)
        else:
            products = products_service.list_products(active_only=_flag("active_only"))
        return jsonify({"products": [p.to_dict() for p in products]}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.get("/low-stock")
@require_user
def low_stock():
    products = products_service.low_stock_products()
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@products_bp.get("/<int:product_id>")
@require_user
def get_product(product_id: int):
    try:
        return jsonify({"product": products_service.get_product(product_id).to_dict()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.post("")
@require_user
@require_role("admin")
def create_product():
    """Create a product with its opening stock."""
    try:
        data = request.get_json() or {}
        require_fields(data, "name", "price")

        product = products_service.create_product(
            name=data["name"],
            price=data["price"],
            unit=data.get("unit", "pieza"),
            description=data.get("description"),
            barcode=data.get("barcode"),
            category_id=data.get("category_id"),
            stock=data.get("stock", 0),
            min_stock=data.get("min_stock", 0),
        )
        return jsonify({"product": product.to_dict()}), 201
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.patch("/<int:product_id>")
@products_bp.put("/<int:product_id>")
@require_user
@require_role("admin")
def update_product(product_id: int):
    try:
        data = request.get_json() or {}
        product = products_service.update_product(product_id, data)
        return jsonify({"product": product.to_dict()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_user
@require_role("admin")
def deactivate_product(product_id: int):
    """Soft delete: the product stays referenced by its sales history."""
    try:
        product = products_service.deactivate_product(product_id)
        return jsonify({"product": product.to_dict()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code


# =============================================================================
# CATEGORIES
# =============================================================================

@categories_bp.get("")
@require_user
def list_categories():
    categories = products_service.list_categories()
    return jsonify({"categories": [c.to_dict() for c in categories]}), 200


@categories_bp.post("")
@require_user
@require_role("admin")
def create_category():
    try:
        data = request.get_json() or {}
        category = products_service.create_category(data.get("name"), data.get("description"))
        return jsonify({"category": category.to_dict()}), 201
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code


@categories_bp.patch("/<int:category_id>")
@require_user
@require_role("admin")
def update_category(category_id: int):
    try:
        data = request.get_json() or {}
        category = products_service.update_category(category_id, data)
        return jsonify({"category": category.to_dict()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code


@categories_bp.delete("/<int:category_id>")
@require_user
@require_role("admin")
def delete_category(category_id: int):
    try:
        products_service.delete_category(category_id)
        return "", 204
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code

# backend/cashdesk/services/products_service.py
"""
Catalog Service: products and categories.

STOCK OWNERSHIP: this module sets the initial stock when a product is created
and never writes it afterwards. Later stock changes go through the sale
processor or the inventory ledger so every change is accounted for.

QUERIES: dedicated active-only, by-barcode, search and low-stock queries, so
callers never filter full catalog dumps themselves.
"""
from __future__ import annotations

import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, PosError, ValidationError
from ..extensions import db
from ..models import Category, Product
from .concurrency import lock_for_update, write_transaction
from ..validation import (
    clean_optional_text,
    clean_required_text,
    parse_id,
    parse_money,
    parse_quantity,
)

logger = logging.getLogger(__name__)

PRODUCT_MUTABLE_FIELDS = {"name", "description", "barcode", "price", "unit", "category_id", "min_stock", "active"}

SEARCH_LIMIT = 20


# =============================================================================
# CATEGORIES
# =============================================================================

def get_category(category_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found", details={"category_id": category_id})
    return category


def list_categories() -> list[Category]:
    return db.session.query(Category).order_by(Category.name.asc()).all()


def create_category(name: str, description: str | None = None) -> Category:
    name = clean_required_text(name, "name", max_length=128)
    if db.session.query(Category).filter_by(name=name).first():
        raise ConflictError(f"Category '{name}' already exists")

    category = Category(name=name, description=clean_optional_text(description, "description", max_length=2000))
    db.session.add(category)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Category '{name}' already exists")
    return category


def update_category(category_id: int, patch: dict) -> Category:
    category = get_category(category_id)
    try:
        if "name" in patch:
            name = clean_required_text(patch["name"], "name", max_length=128)
            clash = db.session.query(Category).filter(Category.name == name, Category.id != category.id).first()
            if clash:
                raise ConflictError(f"Category '{name}' already exists")
            category.name = name
        if "description" in patch:
            category.description = clean_optional_text(patch["description"], "description", max_length=2000)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Category name already exists")
    except PosError:
        db.session.rollback()
        raise
    return category


def delete_category(category_id: int) -> None:
    """Delete a category; its products stay in the catalog without a category."""
    category = get_category(category_id)
    db.session.query(Product).filter_by(category_id=category.id).update(
        {Product.category_id: None}, synchronize_session=False
    )
    db.session.delete(category)
    db.session.commit()


# =============================================================================
# PRODUCTS
# =============================================================================

def _clean_barcode(value) -> str | None:
    return clean_optional_text(value, "barcode", max_length=64)


def _ensure_barcode_free(barcode: str | None, exclude_id: int | None = None) -> None:
    if barcode is None:
        return
    query = db.session.query(Product).filter(Product.barcode == barcode)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError(f"Barcode '{barcode}' is already assigned to another product")


def _resolve_category_id(value) -> int | None:
    if value is None:
        return None
    category_id = parse_id(value, "category_id")
    get_category(category_id)
    return category_id


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return product


def list_products(*, active_only: bool = False) -> list[Product]:
    query = db.session.query(Product)
    if active_only:
        query = query.filter(Product.active.is_(True))
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def find_by_barcode(barcode: str) -> Product | None:
    """Active product with this barcode, or None."""
    barcode = _clean_barcode(barcode)
    if barcode is None:
        return None
    return (
        db.session.query(Product)
        .filter(Product.barcode == barcode, Product.active.is_(True))
        .first()
    )


def search_products(term: str, limit: int = SEARCH_LIMIT) -> list[Product]:
    """Active products whose name or barcode contains the term."""
    term = (term or "").strip()
    if not term:
        return []
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"
    return (
        db.session.query(Product)
        .filter(
            Product.active.is_(True),
            or_(
                Product.name.ilike(pattern, escape="\\"),
                Product.barcode.ilike(pattern, escape="\\"),
            ),
        )
        .order_by(Product.name.asc(), Product.id.asc())
        .limit(limit)
        .all()
    )


def low_stock_products() -> list[Product]:
    """Active products at or below their minimum stock threshold."""
    return (
        db.session.query(Product)
        .filter(Product.active.is_(True), Product.stock <= Product.min_stock)
        .order_by(Product.stock.asc(), Product.name.asc())
        .all()
    )


def create_product(
    *,
    name: str,
    price,
    unit: str = "pieza",
    description: str | None = None,
    barcode: str | None = None,
    category_id: int | None = None,
    stock=0,
    min_stock=0,
) -> Product:
    """Create a product with its opening stock level."""
    product = Product(
        name=clean_required_text(name, "name"),
        description=clean_optional_text(description, "description", max_length=2000),
        barcode=_clean_barcode(barcode),
        price=parse_money(price, "price"),
        unit=clean_optional_text(unit, "unit", max_length=32) or "pieza",
        category_id=_resolve_category_id(category_id),
        stock=parse_quantity(stock, "stock", allow_zero=True),
        min_stock=parse_quantity(min_stock, "min_stock", allow_zero=True),
        active=True,
    )
    _ensure_barcode_free(product.barcode)

    db.session.add(product)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Barcode '{product.barcode}' is already assigned to another product")

    logger.info("Product %s created (stock=%s)", product.id, product.stock)
    return product


def _apply_product_patch(product: Product, patch: dict) -> None:
    if "stock" in patch:
        raise ValidationError("stock cannot be edited directly; record an inventory adjustment")

    for key, value in patch.items():
        if key not in PRODUCT_MUTABLE_FIELDS:
            continue
        if key == "name":
            product.name = clean_required_text(value, "name")
        elif key == "description":
            product.description = clean_optional_text(value, "description", max_length=2000)
        elif key == "barcode":
            barcode = _clean_barcode(value)
            _ensure_barcode_free(barcode, exclude_id=product.id)
            product.barcode = barcode
        elif key == "price":
            product.price = parse_money(value, "price")
        elif key == "unit":
            product.unit = clean_required_text(value, "unit", max_length=32)
        elif key == "category_id":
            product.category_id = _resolve_category_id(value)
        elif key == "min_stock":
            product.min_stock = parse_quantity(value, "min_stock", allow_zero=True)
        elif key == "active":
            if not isinstance(value, bool):
                raise ValidationError("active must be a boolean")
            product.active = value


def update_product(product_id: int, patch: dict) -> Product:
    """
    Partial catalog update.

    Price changes never affect existing sales: sale items carry their own
    unit_price snapshot.
    """
    try:
        with write_transaction():
            product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
            if product is None:
                raise NotFoundError("Product not found", details={"product_id": product_id})
            _apply_product_patch(product, patch)
    except IntegrityError:
        raise ConflictError("Barcode is already assigned to another product")
    return product


def deactivate_product(product_id: int) -> Product:
    """Soft delete: products referenced by history are never removed."""
    return update_product(product_id, {"active": False})

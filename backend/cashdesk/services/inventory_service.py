# Overview: Manual stock adjustments and their append-only audit ledger.

from __future__ import annotations

import logging
from decimal import Decimal

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import AdjustmentType, InventoryAdjustment, Product, User
from ..money import quantize_quantity
from ..time_utils import utcnow
from ..validation import clean_optional_text, parse_date_range, parse_enum, parse_quantity
from .concurrency import lock_for_update, write_transaction

"""
Inventory ledger invariants (authoritative):

- Every manual stock change writes exactly one InventoryAdjustment row, in the
  same transaction as the product update.
- new_stock == previous_stock + quantity for add/positive,
  new_stock == previous_stock - quantity for negative.
- previous_stock is read from the locked product row, so it always equals the
  stock in effect immediately before the change.
- A negative adjustment that would take stock below zero is rejected and
  leaves neither a ledger row nor a stock change.
- Ledger rows are never updated or deleted.
"""

logger = logging.getLogger(__name__)


def _apply_delta(adjustment_type: AdjustmentType, previous: Decimal, quantity: Decimal) -> Decimal:
    if adjustment_type in (AdjustmentType.ADD, AdjustmentType.POSITIVE):
        return quantize_quantity(previous + quantity)
    elif adjustment_type == AdjustmentType.NEGATIVE:
        return quantize_quantity(previous - quantity)
    else:
        raise ValidationError(f"Unsupported adjustment type {adjustment_type!r}")


def create_adjustment(
    *,
    product_id: int,
    user_id: int,
    adjustment_type,
    quantity,
    reason: str | None = None,
) -> InventoryAdjustment:
    """
    Record a manual stock change and apply it to the product.

    Raises:
        ValidationError: malformed input, inactive product
        NotFoundError: product or user missing
        InsufficientStockError: a negative adjustment exceeds current stock
    """
    kind = parse_enum(AdjustmentType, adjustment_type, "adjustment_type")
    qty = parse_quantity(quantity, "quantity")
    reason = clean_optional_text(reason, "reason")

    with write_transaction():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise NotFoundError("Product not found", details={"product_id": product_id})
        if not product.active:
            raise ValidationError(
                f"Product '{product.name}' is inactive",
                details={"product_id": product_id},
            )
        if db.session.get(User, user_id) is None:
            raise NotFoundError("User not found", details={"user_id": user_id})

        previous = product.stock
        new_stock = _apply_delta(kind, previous, qty)
        if new_stock < 0:
            raise InsufficientStockError(
                f"Insufficient stock for '{product.name}'",
                details={
                    "product_id": product_id,
                    "available": str(previous),
                    "requested": str(qty),
                },
            )

        product.stock = new_stock
        adjustment = InventoryAdjustment(
            product_id=product_id,
            user_id=user_id,
            adjustment_type=kind,
            quantity=qty,
            previous_stock=previous,
            new_stock=new_stock,
            reason=reason,
            created_at=utcnow(),
        )
        db.session.add(adjustment)
        db.session.flush()

    logger.info(
        "Inventory adjustment %s on product %s: %s %s (%s -> %s)",
        adjustment.id, product_id, kind.value, qty, previous, new_stock,
    )
    return adjustment


def _newest_first(query):
    return query.order_by(InventoryAdjustment.created_at.desc(), InventoryAdjustment.id.desc())


def list_adjustments() -> list[InventoryAdjustment]:
    return _newest_first(db.session.query(InventoryAdjustment)).all()


def get_adjustments_by_product(product_id: int) -> list[InventoryAdjustment]:
    return _newest_first(
        db.session.query(InventoryAdjustment).filter(InventoryAdjustment.product_id == product_id)
    ).all()


def get_adjustments_by_date_range(start, end) -> list[InventoryAdjustment]:
    """Inclusive on both ends; a bare end date covers that whole day."""
    start_dt, end_dt = parse_date_range(start, end)
    return _newest_first(
        db.session.query(InventoryAdjustment).filter(
            InventoryAdjustment.created_at >= start_dt,
            InventoryAdjustment.created_at <= end_dt,
        )
    ).all()

"""
Sales Service - atomic multi-item sale processing

WHY: A sale touches the session, every referenced product's stock and the
sale/item rows. All of it commits together or nothing changes, and two
concurrent sales can never both take the last units of a product.

INVARIANTS:
- sale.total == sum(item.subtotal); item.subtotal == unit_price x quantity
  rounded half-up to the cent (fixed-scale Decimal, never float)
- unit_price/product_name are snapshots taken from the product at sale time
- stock never goes negative; cancellation restores exactly what was taken
- no retries: a failed submission must be resubmitted explicitly by the caller
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from decimal import Decimal

from ..errors import (
    AlreadyCancelledError,
    InsufficientPaymentError,
    InsufficientStockError,
    NotFoundError,
    SessionNotOpenError,
    UnauthorizedError,
    ValidationError,
)
from ..extensions import db
from ..models import (
    CashRegisterSession,
    PaymentMethod,
    Product,
    Sale,
    SaleItem,
    SaleStatus,
    SessionStatus,
)
from ..money import ZERO_QUANTITY, line_subtotal, quantize_money, sum_money
from ..time_utils import utcnow
from ..validation import parse_date_range, parse_enum, parse_id, parse_money, parse_quantity
from .concurrency import lock_for_update, write_transaction

logger = logging.getLogger(__name__)


def _normalize_items(items) -> list[tuple[int, Decimal]]:
    """Validate the requested lines; order is preserved."""
    if not items:
        raise ValidationError("A sale needs at least one item")
    if not isinstance(items, (list, tuple)):
        raise ValidationError("items must be a list")

    lines = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        product_id = parse_id(item.get("product_id"), f"items[{index}].product_id")
        quantity = parse_quantity(item.get("quantity"), f"items[{index}].quantity")
        lines.append((product_id, quantity))
    return lines


def _requested_by_product(lines: list[tuple[int, Decimal]]) -> "OrderedDict[int, Decimal]":
    # A product listed twice is checked against stock once, for the combined quantity
    requested: OrderedDict[int, Decimal] = OrderedDict()
    for product_id, quantity in lines:
        requested[product_id] = requested.get(product_id, ZERO_QUANTITY) + quantity
    return requested


def _lock_products(product_ids) -> dict[int, Product]:
    # Ascending id order so concurrent sales lock rows in the same sequence
    rows = lock_for_update(
        db.session.query(Product).filter(Product.id.in_(sorted(product_ids))).order_by(Product.id.asc())
    ).all()
    return {product.id: product for product in rows}


def create_sale(
    *,
    session_id: int,
    user_id: int,
    payment_method,
    payment_amount,
    items,
) -> Sale:
    """
    Validate and commit a sale in one transaction.

    Preconditions: the session exists, is open and belongs to user_id; items
    is non-empty with positive quantities.

    Raises:
        NotFoundError: session or product missing
        SessionNotOpenError: session already closed
        UnauthorizedError: user_id is not the session owner
        InsufficientPaymentError: payment_amount < total
        InsufficientStockError: a product lacks stock for the requested quantity
        ValidationError: malformed input or inactive product
    """
    method = parse_enum(PaymentMethod, payment_method, "payment_method")
    payment = parse_money(payment_amount, "payment_amount")
    lines = _normalize_items(items)
    requested = _requested_by_product(lines)

    with write_transaction():
        session = lock_for_update(
            db.session.query(CashRegisterSession).filter_by(id=session_id)
        ).first()
        if session is None:
            raise NotFoundError("Cash register session not found", details={"session_id": session_id})
        if session.status != SessionStatus.OPEN:
            raise SessionNotOpenError(
                "Cash register session is not open",
                details={"session_id": session_id, "status": session.status.value},
            )
        if session.user_id != user_id:
            raise UnauthorizedError(
                "Sales can only be recorded by the owner of the cash register session",
                details={"session_id": session_id, "user_id": user_id},
            )

        products = _lock_products(requested.keys())
        missing = [pid for pid in requested if pid not in products]
        if missing:
            raise NotFoundError("Product not found", details={"product_ids": missing})

        # Price every line at the current catalog price
        sale_items = []
        for position, (product_id, quantity) in enumerate(lines):
            product = products[product_id]
            sale_items.append(
                SaleItem(
                    product_id=product.id,
                    position=position,
                    product_name=product.name,
                    quantity=quantity,
                    unit_price=product.price,
                    subtotal=line_subtotal(product.price, quantity),
                )
            )
        total = sum_money(item.subtotal for item in sale_items)

        if payment < total:
            raise InsufficientPaymentError(
                "Payment amount is less than the sale total",
                details={"total": str(total), "payment_amount": str(payment)},
            )

        for product_id, quantity in requested.items():
            product = products[product_id]
            if not product.active:
                raise ValidationError(
                    f"Product '{product.name}' is inactive",
                    details={"product_id": product.id},
                )
            if product.stock < quantity:
                raise InsufficientStockError(
                    f"Insufficient stock for '{product.name}'",
                    details={
                        "product_id": product.id,
                        "product_name": product.name,
                        "available": str(product.stock),
                        "requested": str(quantity),
                    },
                )

        for product_id, quantity in requested.items():
            products[product_id].stock = products[product_id].stock - quantity

        sale = Sale(
            cash_register_session_id=session.id,
            user_id=user_id,
            total=total,
            payment_method=method,
            payment_amount=payment,
            change_amount=quantize_money(payment - total),
            status=SaleStatus.COMPLETED,
            created_at=utcnow(),
            items=sale_items,
        )
        db.session.add(sale)
        db.session.flush()

    logger.info(
        "Sale %s committed on session %s: total=%s items=%d",
        sale.id, session_id, total, len(sale_items),
    )
    return sale


def cancel_sale(sale_id: int) -> Sale:
    """
    Cancel a completed sale and put its stock back, atomically.

    The sale stays in history with status=cancelled and drops out of
    reconciliation and reports from this point on.
    """
    with write_transaction():
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if sale is None:
            raise NotFoundError("Sale not found", details={"sale_id": sale_id})

        if sale.status == SaleStatus.CANCELLED:
            raise AlreadyCancelledError("Sale already cancelled", details={"sale_id": sale_id})
        if sale.status != SaleStatus.COMPLETED:
            raise ValidationError(f"Cannot cancel sale with status {sale.status.value}")

        restore = _requested_by_product([(item.product_id, item.quantity) for item in sale.items])
        products = _lock_products(restore.keys())
        for product_id, quantity in restore.items():
            product = products.get(product_id)
            if product is None:
                raise NotFoundError("Product not found", details={"product_id": product_id})
            product.stock = product.stock + quantity

        sale.status = SaleStatus.CANCELLED
        sale.cancelled_at = utcnow()

    logger.info("Sale %s cancelled; stock restored for %d product(s)", sale_id, len(restore))
    return sale


# =============================================================================
# QUERIES
# =============================================================================

def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("Sale not found", details={"sale_id": sale_id})
    return sale


def list_sales() -> list[Sale]:
    return db.session.query(Sale).order_by(Sale.created_at.desc(), Sale.id.desc()).all()


def get_sales_by_session(session_id: int) -> list[Sale]:
    return (
        db.session.query(Sale)
        .filter(Sale.cash_register_session_id == session_id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .all()
    )


def get_sales_by_date_range(start, end) -> list[Sale]:
    """All sales (any status) created within [start, end], newest first."""
    start_dt, end_dt = parse_date_range(start, end)
    return (
        db.session.query(Sale)
        .filter(Sale.created_at >= start_dt, Sale.created_at <= end_dt)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .all()
    )
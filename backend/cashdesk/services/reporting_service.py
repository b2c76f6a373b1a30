# Overview: Read-only sales rollups over completed sales in a date range.

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import func

from cashdesk.errors import ValidationError
from cashdesk.extensions import db
from cashdesk.models import Product, Sale, SaleItem, SaleStatus
from cashdesk.money import ZERO_MONEY, ZERO_QUANTITY, format_decimal, quantize_money, safe_average
from cashdesk.time_utils import to_utc_z
from cashdesk.validation import parse_date_range
from .concurrency import run_with_retry


@dataclass
class SalesReport:
    start: object
    end: object
    total_sales: Decimal
    total_transactions: int
    average_sale: Decimal
    sales: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "start": to_utc_z(self.start),
            "end": to_utc_z(self.end),
            "total_sales": format_decimal(self.total_sales),
            "total_transactions": self.total_transactions,
            "average_sale": format_decimal(self.average_sale),
            "sales": [sale.to_dict(include_items=False) for sale in self.sales],
        }


@dataclass
class TopProduct:
    product_id: int
    product_name: str
    total_quantity: Decimal
    total_revenue: Decimal

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "total_quantity": format_decimal(self.total_quantity),
            "total_revenue": format_decimal(self.total_revenue),
        }


def _completed_in_range(query, start_dt, end_dt):
    return query.filter(
        Sale.status == SaleStatus.COMPLETED,
        Sale.created_at >= start_dt,
        Sale.created_at <= end_dt,
    )


def sales_report(start, end) -> SalesReport:
    """
    Totals over completed sales with created_at in [start, end].

    average_sale is total_sales / total_transactions rounded half-up to the
    cent, or 0.00 when there were no sales.
    """
    start_dt, end_dt = parse_date_range(start, end)

    def _op():
        sales = (
            _completed_in_range(db.session.query(Sale), start_dt, end_dt)
            .order_by(Sale.created_at.desc(), Sale.id.desc())
            .all()
        )
        total = quantize_money(sum((sale.total for sale in sales), ZERO_MONEY))
        return SalesReport(
            start=start_dt,
            end=end_dt,
            total_sales=total,
            total_transactions=len(sales),
            average_sale=safe_average(total, len(sales)),
            sales=sales,
        )

    return run_with_retry(_op)


def top_products(start, end, limit: int | None = None) -> list[TopProduct]:
    """
    Best sellers by quantity over completed sales in [start, end].

    Ties on quantity are broken by product id, ascending.
    """
    start_dt, end_dt = parse_date_range(start, end)
    if limit is not None:
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise ValidationError("limit must be a positive integer")

    total_quantity = func.sum(SaleItem.quantity)
    total_revenue = func.sum(SaleItem.subtotal)

    def _op():
        query = _completed_in_range(
            db.session.query(
                SaleItem.product_id,
                Product.name,
                total_quantity.label("total_quantity"),
                total_revenue.label("total_revenue"),
            )
            .join(Sale, Sale.id == SaleItem.sale_id)
            .join(Product, Product.id == SaleItem.product_id),
            start_dt,
            end_dt,
        ).group_by(SaleItem.product_id, Product.name).order_by(total_quantity.desc(), SaleItem.product_id.asc())
        if limit is not None:
            query = query.limit(limit)

        return [
            TopProduct(
                product_id=row.product_id,
                product_name=row.name,
                total_quantity=row.total_quantity if row.total_quantity is not None else ZERO_QUANTITY,
                total_revenue=quantize_money(row.total_revenue if row.total_revenue is not None else ZERO_MONEY),
            )
            for row in query.all()
        ]

    return run_with_retry(_op)

from __future__ import annotations

from ..extensions import db
from cashdesk.money import format_decimal
from cashdesk.time_utils import to_utc_z
from .enums import PaymentMethod, SaleStatus, enum_column
from .types import Money, Quantity


class Sale(db.Model):
    """
    Completed sale and its payment.

    Created together with its items in one transaction by the sale processor.
    The only later mutation is cancellation (status -> cancelled), which
    restores stock in the same transaction. Cancelled sales stay in history
    but are excluded from reconciliation and reports.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_session_status", "cash_register_session_id", "status"),
        db.Index("ix_sales_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cash_register_session_id = db.Column(
        db.Integer, db.ForeignKey("cash_register_sessions.id"), nullable=False, index=True
    )
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    total = db.Column(Money(), nullable=False)
    payment_method = db.Column(enum_column(PaymentMethod), nullable=False, default=PaymentMethod.CASH)
    payment_amount = db.Column(Money(), nullable=False)
    change_amount = db.Column(Money(), nullable=False, default=0)

    status = db.Column(enum_column(SaleStatus), nullable=False, default=SaleStatus.COMPLETED, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    register_session = db.relationship("CashRegisterSession", backref=db.backref("sales", lazy=True))
    user = db.relationship("User", backref=db.backref("sales", lazy=True))
    items = db.relationship(
        "SaleItem",
        backref="sale",
        order_by="SaleItem.position",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "cash_register_session_id": self.cash_register_session_id,
            "user_id": self.user_id,
            "user_name": self.user.full_name if self.user else None,
            "total": format_decimal(self.total),
            "payment_method": self.payment_method.value,
            "payment_amount": format_decimal(self.payment_amount),
            "change_amount": format_decimal(self.change_amount),
            "status": self.status.value,
            "created_at": to_utc_z(self.created_at),
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """
    Line of a sale: a price/quantity snapshot, not a live product reference.

    unit_price and product_name are copied from the product at sale time, so
    later catalog changes never alter historical totals.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(Quantity(), nullable=False)
    unit_price = db.Column(Money(), nullable=False)
    subtotal = db.Column(Money(), nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": format_decimal(self.quantity),
            "unit_price": format_decimal(self.unit_price),
            "subtotal": format_decimal(self.subtotal),
        }

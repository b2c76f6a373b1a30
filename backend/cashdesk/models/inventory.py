from __future__ import annotations

from ..extensions import db
from cashdesk.money import format_decimal
from cashdesk.time_utils import to_utc_z
from .enums import AdjustmentType, enum_column
from .types import Quantity


class InventoryAdjustment(db.Model):
    """
    Append-only audit record of a manual stock change.

    IMMUTABLE: rows are never updated or deleted. previous_stock/new_stock
    capture the product stock on both sides of the change, written in the
    same transaction as the product update.
    """
    __tablename__ = "inventory_adjustments"
    __table_args__ = (
        db.Index("ix_inventory_adjustments_product_created", "product_id", "created_at"),
        db.CheckConstraint("quantity > 0", name="ck_inventory_adjustments_quantity_positive"),
        db.CheckConstraint("new_stock >= 0", name="ck_inventory_adjustments_new_stock_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    adjustment_type = db.Column(enum_column(AdjustmentType), nullable=False, index=True)
    quantity = db.Column(Quantity(), nullable=False)
    previous_stock = db.Column(Quantity(), nullable=False)
    new_stock = db.Column(Quantity(), nullable=False)
    reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    product = db.relationship("Product", backref=db.backref("adjustments", lazy=True))
    user = db.relationship("User", backref=db.backref("inventory_adjustments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "user_id": self.user_id,
            "user_name": self.user.full_name if self.user else None,
            "adjustment_type": self.adjustment_type.value,
            "quantity": format_decimal(self.quantity),
            "previous_stock": format_decimal(self.previous_stock),
            "new_stock": format_decimal(self.new_stock),
            "reason": self.reason,
            "created_at": to_utc_z(self.created_at),
        }

from __future__ import annotations

from ..extensions import db
from cashdesk.money import format_decimal
from cashdesk.time_utils import to_utc_z
from .types import Money, Quantity


class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Product master data with its current stock level.

    STOCK: `stock` is the authoritative on-hand quantity. It is only written by
    the sale processor (decrement on sale, restore on cancel) and by the
    inventory ledger (which records previous/new stock for every manual change).
    The catalog update path never touches it.

    BARCODE: optional, unique when present (NULLs do not collide).

    SOFT DELETE: products referenced by sales or adjustments are never deleted;
    active=False removes them from sale and search paths.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_active_name", "active", "name"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    barcode = db.Column(db.String(64), nullable=True, unique=True)

    price = db.Column(Money(), nullable=False)
    unit = db.Column(db.String(32), nullable=False, default="pieza")
    category_id = db.Column(
        db.Integer, db.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True
    )

    stock = db.Column(Quantity(), nullable=False, default=0)
    min_stock = db.Column(Quantity(), nullable=False, default=0)

    active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.min_stock

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "barcode": self.barcode,
            "price": format_decimal(self.price),
            "unit": self.unit,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else None,
            "stock": format_decimal(self.stock),
            "min_stock": format_decimal(self.min_stock),
            "low_stock": self.is_low_stock,
            "active": self.active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

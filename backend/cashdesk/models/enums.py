from __future__ import annotations

from enum import Enum

from ..extensions import db


class UserRole(str, Enum):
    ADMIN = "admin"
    CASHIER = "cashier"


class SessionStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class SaleStatus(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"


class AdjustmentType(str, Enum):
    ADD = "add"            # restock
    POSITIVE = "positive"  # count found more than recorded
    NEGATIVE = "negative"  # count found less (shrink, damage)


def enum_column(enum_cls, length: int = 16) -> db.Enum:
    """String-backed enum column storing member values ("open"), not names."""
    return db.Enum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )

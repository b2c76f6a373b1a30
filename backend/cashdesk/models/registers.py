from __future__ import annotations

from ..extensions import db
from cashdesk.money import format_decimal
from cashdesk.time_utils import to_utc_z
from .enums import SessionStatus, enum_column
from .types import Money, Rate


class CashRegisterSession(db.Model):
    """
    Cash drawer session owned by one user.

    LIFECYCLE:
    - OPEN: drawer in use, sales may reference the session
    - CLOSED: counted and reconciled; terminal

    ONE OPEN SESSION PER USER: enforced by the partial unique index below, so
    two concurrent "open" requests cannot both insert. Closing mutates the row
    exactly once (closing_amount, closed_at, status).
    """
    __tablename__ = "cash_register_sessions"
    __table_args__ = (
        db.Index(
            "uq_cash_register_sessions_open_user",
            "user_id",
            unique=True,
            sqlite_where=db.text("status = 'open'"),
            postgresql_where=db.text("status = 'open'"),
        ),
        db.Index("ix_cash_register_sessions_opened_at", "opened_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    status = db.Column(enum_column(SessionStatus), nullable=False, default=SessionStatus.OPEN, index=True)

    opening_amount = db.Column(Money(), nullable=False, default=0)
    closing_amount = db.Column(Money(), nullable=True)  # Set when closing
    exchange_rate = db.Column(Rate(), nullable=True)

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    user = db.relationship("User", backref=db.backref("cash_register_sessions", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_name": self.user.full_name if self.user else None,
            "status": self.status.value,
            "opening_amount": format_decimal(self.opening_amount),
            "closing_amount": format_decimal(self.closing_amount),
            "exchange_rate": format_decimal(self.exchange_rate),
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "version_id": self.version_id,
        }

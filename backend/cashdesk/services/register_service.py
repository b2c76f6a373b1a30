"""
Cash Register Session Service

WHY: A session is one user's period of accountability for a cash drawer.
Opening records the float, closing records the counted cash and reconciles it
against what the session's sales say should be there.

DESIGN PRINCIPLES:
- At most one open session per user (pre-check plus partial unique index)
- none -> open -> closed; closed is terminal, sessions are never reopened
- Reconciliation counts completed sales of the session only
- expected_cash = opening_amount + total of completed sales, every payment method
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError

from ..errors import (
    NotFoundError,
    SessionAlreadyOpenError,
    SessionNotOpenError,
    UnauthorizedError,
    ValidationError,
)
from ..extensions import db
from ..models import CashRegisterSession, Sale, SaleStatus, SessionStatus, User
from ..money import ZERO_MONEY, format_decimal, quantize_money
from ..time_utils import utcnow
from ..validation import parse_date_range, parse_money, parse_rate
from .concurrency import lock_for_update, write_transaction

logger = logging.getLogger(__name__)


@dataclass
class CashRegisterSummary:
    """Reconciliation of one session. total_cash/difference are None while open."""
    session: CashRegisterSession
    total_sales: Decimal
    total_transactions: int
    expected_cash: Decimal
    total_cash: Decimal | None
    difference: Decimal | None

    def to_dict(self) -> dict:
        return {
            "session": self.session.to_dict(),
            "total_sales": format_decimal(self.total_sales),
            "total_transactions": self.total_transactions,
            "expected_cash": format_decimal(self.expected_cash),
            "total_cash": format_decimal(self.total_cash),
            "difference": format_decimal(self.difference),
        }


# =============================================================================
# LIFECYCLE
# =============================================================================

def open_session(user_id: int, opening_amount, exchange_rate=None) -> CashRegisterSession:
    """
    Open a cash register session for a user.

    Args:
        user_id: Owner of the session
        opening_amount: Float placed in the drawer (>= 0)
        exchange_rate: Optional secondary-currency rate (> 0)

    Raises:
        NotFoundError: user does not exist
        ValidationError: inactive user or malformed amounts
        SessionAlreadyOpenError: the user already has an open session
    """
    opening = parse_money(opening_amount, "opening_amount")
    rate = parse_rate(exchange_rate) if exchange_rate is not None else None

    try:
        with write_transaction():
            user = db.session.get(User, user_id)
            if user is None:
                raise NotFoundError("User not found", details={"user_id": user_id})
            if not user.active:
                raise ValidationError("Inactive users cannot open a cash register", details={"user_id": user_id})

            existing = (
                db.session.query(CashRegisterSession)
                .filter_by(user_id=user_id, status=SessionStatus.OPEN)
                .first()
            )
            if existing:
                raise SessionAlreadyOpenError(
                    f"User already has an open cash register session (session {existing.id})",
                    details={"session_id": existing.id},
                )

            session = CashRegisterSession(
                user_id=user_id,
                status=SessionStatus.OPEN,
                opening_amount=opening,
                exchange_rate=rate,
                opened_at=utcnow(),
            )
            db.session.add(session)
            db.session.flush()
    except IntegrityError:
        # Lost the race against a concurrent open for the same user
        raise SessionAlreadyOpenError("User already has an open cash register session")

    logger.info("Cash register session %s opened by user %s (float=%s)", session.id, user_id, opening)
    return session


def _completed_sales_totals(session_id: int) -> tuple[Decimal, int]:
    total, count = (
        db.session.query(func.sum(Sale.total), func.count(Sale.id))
        .filter(Sale.cash_register_session_id == session_id, Sale.status == SaleStatus.COMPLETED)
        .one()
    )
    return quantize_money(total if total is not None else ZERO_MONEY), int(count or 0)


def _build_summary(session: CashRegisterSession) -> CashRegisterSummary:
    total_sales, total_transactions = _completed_sales_totals(session.id)
    expected_cash = quantize_money(session.opening_amount + total_sales)

    if session.status == SessionStatus.CLOSED:
        total_cash = session.closing_amount if session.closing_amount is not None else ZERO_MONEY
        difference = quantize_money(total_cash - expected_cash)
    else:
        total_cash = None
        difference = None

    return CashRegisterSummary(
        session=session,
        total_sales=total_sales,
        total_transactions=total_transactions,
        expected_cash=expected_cash,
        total_cash=total_cash,
        difference=difference,
    )


def close_session(session_id: int, closing_amount, actor_user_id: int | None = None) -> CashRegisterSummary:
    """
    Close a session and reconcile the drawer.

    IMMUTABLE: once closed the session cannot be reopened or modified.

    Args:
        session_id: Session to close
        closing_amount: Cash counted in the drawer (>= 0)
        actor_user_id: Who is closing; a non-owner must be an admin

    Raises:
        NotFoundError, SessionNotOpenError, UnauthorizedError, ValidationError
    """
    counted = parse_money(closing_amount, "closing_amount")

    with write_transaction():
        session = lock_for_update(db.session.query(CashRegisterSession).filter_by(id=session_id)).first()
        if session is None:
            raise NotFoundError("Cash register session not found", details={"session_id": session_id})
        if session.status != SessionStatus.OPEN:
            raise SessionNotOpenError(
                "Cash register session is already closed",
                details={"session_id": session_id},
            )

        if actor_user_id is not None and actor_user_id != session.user_id:
            actor = db.session.get(User, actor_user_id)
            if actor is None or not actor.active or not actor.is_admin:
                raise UnauthorizedError(
                    "Only the session owner or an administrator can close this session",
                    details={"session_id": session_id},
                )

        session.status = SessionStatus.CLOSED
        session.closing_amount = counted
        session.closed_at = utcnow()
        db.session.flush()

        summary = _build_summary(session)

    logger.info(
        "Cash register session %s closed: expected=%s counted=%s difference=%s",
        session_id, summary.expected_cash, summary.total_cash, summary.difference,
    )
    return summary


def get_summary(session_id: int) -> CashRegisterSummary:
    """Reconciliation without mutation; safe to call any number of times."""
    return _build_summary(get_session(session_id))


# =============================================================================
# QUERIES
# =============================================================================

def get_session(session_id: int) -> CashRegisterSession:
    session = db.session.get(CashRegisterSession, session_id)
    if session is None:
        raise NotFoundError("Cash register session not found", details={"session_id": session_id})
    return session


def list_sessions() -> list[CashRegisterSession]:
    return (
        db.session.query(CashRegisterSession)
        .order_by(CashRegisterSession.opened_at.desc(), CashRegisterSession.id.desc())
        .all()
    )


def get_open_session_for_user(user_id: int) -> CashRegisterSession | None:
    """The user's open session, if any."""
    return (
        db.session.query(CashRegisterSession)
        .filter_by(user_id=user_id, status=SessionStatus.OPEN)
        .first()
    )


def get_open_sessions() -> list[CashRegisterSession]:
    return (
        db.session.query(CashRegisterSession)
        .filter_by(status=SessionStatus.OPEN)
        .order_by(CashRegisterSession.opened_at.desc(), CashRegisterSession.id.desc())
        .all()
    )


def get_sessions_by_date_range(start, end) -> list[CashRegisterSession]:
    """
    Sessions opened within [start, end].

    A closed session must also have closed by end; an open one only needs to
    have been opened by end.
    """
    start_dt, end_dt = parse_date_range(start, end)
    return (
        db.session.query(CashRegisterSession)
        .filter(
            CashRegisterSession.opened_at >= start_dt,
            or_(
                and_(
                    CashRegisterSession.status == SessionStatus.CLOSED,
                    CashRegisterSession.closed_at <= end_dt,
                ),
                and_(
                    CashRegisterSession.status == SessionStatus.OPEN,
                    CashRegisterSession.opened_at <= end_dt,
                ),
            ),
        )
        .order_by(CashRegisterSession.opened_at.desc(), CashRegisterSession.id.desc())
        .all()
    )

"""
Cash register session lifecycle and reconciliation tests.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from cashdesk.errors import (
    NotFoundError,
    SessionAlreadyOpenError,
    SessionNotOpenError,
    UnauthorizedError,
    ValidationError,
)
from cashdesk.extensions import db
from cashdesk.models import CashRegisterSession, SessionStatus
from cashdesk.services import auth_service, register_service, sales_service


def _sell(session, user, product, quantity, method="cash"):
    return sales_service.create_sale(
        session_id=session.id,
        user_id=user.id,
        payment_method=method,
        payment_amount="1000.00",
        items=[{"product_id": product.id, "quantity": quantity}],
    )


class TestOpenSession:

    def test_open(self, cashier):
        session = register_service.open_session(cashier.id, "250.50", exchange_rate="17.2500")

        assert session.status == SessionStatus.OPEN
        assert session.opening_amount == Decimal("250.50")
        assert session.exchange_rate == Decimal("17.2500")
        assert session.opened_at is not None
        assert session.closed_at is None
        assert register_service.get_open_session_for_user(cashier.id).id == session.id

    def test_second_open_rejected(self, cashier, open_session):
        with pytest.raises(SessionAlreadyOpenError):
            register_service.open_session(cashier.id, "0")
        assert db.session.query(CashRegisterSession).count() == 1

    def test_other_user_can_open(self, open_session, other_cashier):
        session = register_service.open_session(other_cashier.id, "0")
        assert session.id != open_session.id
        assert len(register_service.get_open_sessions()) == 2

    def test_reopen_after_close_creates_new_session(self, cashier, open_session):
        register_service.close_session(open_session.id, "100.00")
        again = register_service.open_session(cashier.id, "50.00")
        assert again.id != open_session.id

    def test_negative_opening_amount(self, cashier):
        with pytest.raises(ValidationError):
            register_service.open_session(cashier.id, "-1.00")

    def test_zero_exchange_rate(self, cashier):
        with pytest.raises(ValidationError):
            register_service.open_session(cashier.id, "10.00", exchange_rate="0")

    def test_unknown_user(self, db_session):
        with pytest.raises(NotFoundError):
            register_service.open_session(999, "10.00")

    def test_inactive_user(self, cashier):
        auth_service.deactivate_user(cashier.id)
        with pytest.raises(ValidationError):
            register_service.open_session(cashier.id, "10.00")


class TestCloseSession:

    def test_close_reconciles(self, cashier, open_session, product):
        # 100.00 float + 5 x 10.00 sold = 150.00 expected
        _sell(open_session, cashier, product, 5)

        summary = register_service.close_session(open_session.id, "150.00", actor_user_id=cashier.id)

        assert summary.total_sales == Decimal("50.00")
        assert summary.total_transactions == 1
        assert summary.expected_cash == Decimal("150.00")
        assert summary.total_cash == Decimal("150.00")
        assert summary.difference == Decimal("0.00")
        assert summary.session.status == SessionStatus.CLOSED
        assert summary.session.closing_amount == Decimal("150.00")
        assert summary.session.closed_at is not None

    def test_shortfall_is_negative_difference(self, cashier, open_session, product):
        _sell(open_session, cashier, product, 2)
        summary = register_service.close_session(open_session.id, "115.25")
        assert summary.difference == Decimal("-4.75")

    def test_all_payment_methods_counted(self, cashier, open_session, product):
        _sell(open_session, cashier, product, 1, method="cash")
        _sell(open_session, cashier, product, 2, method="card")
        _sell(open_session, cashier, product, 3, method="transfer")

        summary = register_service.close_session(open_session.id, "160.00")
        assert summary.total_sales == Decimal("60.00")
        assert summary.expected_cash == Decimal("160.00")

    def test_cancelled_sales_excluded(self, cashier, open_session, product):
        kept = _sell(open_session, cashier, product, 1)
        cancelled = _sell(open_session, cashier, product, 4)
        sales_service.cancel_sale(cancelled.id)

        summary = register_service.close_session(open_session.id, "110.00")
        assert kept.id != cancelled.id
        assert summary.total_sales == Decimal("10.00")
        assert summary.total_transactions == 1
        assert summary.difference == Decimal("0.00")

    def test_close_twice(self, open_session):
        register_service.close_session(open_session.id, "100.00")
        with pytest.raises(SessionNotOpenError):
            register_service.close_session(open_session.id, "100.00")

    def test_close_missing(self, db_session):
        with pytest.raises(NotFoundError):
            register_service.close_session(77, "1.00")

    def test_non_owner_cashier_cannot_close(self, open_session, other_cashier):
        with pytest.raises(UnauthorizedError):
            register_service.close_session(open_session.id, "100.00", actor_user_id=other_cashier.id)

        db.session.expire_all()
        assert register_service.get_session(open_session.id).status == SessionStatus.OPEN

    def test_admin_can_close_any_session(self, open_session, admin_user):
        summary = register_service.close_session(open_session.id, "100.00", actor_user_id=admin_user.id)
        assert summary.session.status == SessionStatus.CLOSED

    def test_negative_closing_amount(self, open_session):
        with pytest.raises(ValidationError):
            register_service.close_session(open_session.id, "-0.01")


class TestSummary:

    def test_open_session_has_no_cash_figures(self, cashier, open_session, product):
        _sell(open_session, cashier, product, 1)

        summary = register_service.get_summary(open_session.id)
        assert summary.total_sales == Decimal("10.00")
        assert summary.expected_cash == Decimal("110.00")
        assert summary.total_cash is None
        assert summary.difference is None
        assert summary.to_dict()["difference"] is None

    def test_summary_is_idempotent(self, cashier, open_session, product):
        _sell(open_session, cashier, product, 3)
        register_service.close_session(open_session.id, "125.00")

        first = register_service.get_summary(open_session.id).to_dict()
        second = register_service.get_summary(open_session.id).to_dict()
        assert first == second
        assert first["difference"] == "-5.00"

    def test_empty_session(self, open_session):
        summary = register_service.get_summary(open_session.id)
        assert summary.total_sales == Decimal("0.00")
        assert summary.total_transactions == 0
        assert summary.expected_cash == Decimal("100.00")


class TestSessionQueries:

    def test_date_range(self, cashier, other_cashier, open_session):
        closed = register_service.open_session(other_cashier.id, "0")
        register_service.close_session(closed.id, "0")
        day = open_session.opened_at.date().isoformat()

        ids = {s.id for s in register_service.get_sessions_by_date_range(day, day)}
        assert ids == {open_session.id, closed.id}

    def test_closed_after_range_end_excluded(self, other_cashier):
        session = register_service.open_session(other_cashier.id, "0")
        register_service.close_session(session.id, "0")

        session = register_service.get_session(session.id)
        session.closed_at = session.opened_at + timedelta(days=2)
        db.session.commit()

        day = session.opened_at.date().isoformat()
        assert register_service.get_sessions_by_date_range(day, day) == []

    def test_list_and_serialize(self, open_session):
        sessions = register_service.list_sessions()
        assert [s.id for s in sessions] == [open_session.id]
        data = sessions[0].to_dict()
        assert data["user_name"] == "Carl Cashier"
        assert data["opening_amount"] == "100.00"
        assert data["status"] == "open"

    def test_no_open_session(self, cashier):
        assert register_service.get_open_session_for_user(cashier.id) is None

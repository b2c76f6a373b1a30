"""
Sale processor tests.

Verifies:
- Totals are exact fixed-scale sums of half-up rounded subtotals
- Stock is decremented atomically and never goes negative
- Failed sales leave no trace (no sale row, no stock change)
- Cancellation restores stock exactly once
"""

from decimal import Decimal

import pytest

from cashdesk.errors import (
    AlreadyCancelledError,
    InsufficientPaymentError,
    InsufficientStockError,
    NotFoundError,
    SessionNotOpenError,
    UnauthorizedError,
    ValidationError,
)
from cashdesk.extensions import db
from cashdesk.models import PaymentMethod, Product, Sale, SaleStatus
from cashdesk.services import products_service, register_service, sales_service


def _stock(product_id: int) -> Decimal:
    db.session.expire_all()
    return db.session.get(Product, product_id).stock


def _sell(session, user, items, payment="1000.00", method="cash"):
    return sales_service.create_sale(
        session_id=session.id,
        user_id=user.id,
        payment_method=method,
        payment_amount=payment,
        items=items,
    )


# =============================================================================
# CREATE
# =============================================================================


class TestCreateSale:

    def test_totals_and_change(self, cashier, open_session, product, second_product):
        sale = _sell(
            open_session,
            cashier,
            [
                {"product_id": product.id, "quantity": 2},
                {"product_id": second_product.id, "quantity": "3"},
            ],
            payment="50.00",
        )

        assert sale.status == SaleStatus.COMPLETED
        assert sale.total == Decimal("27.50")
        assert sale.change_amount == Decimal("22.50")
        assert sale.payment_method == PaymentMethod.CASH
        assert [item.subtotal for item in sale.items] == [Decimal("20.00"), Decimal("7.50")]
        assert sale.total == sum(item.subtotal for item in sale.items)

    def test_stock_decremented(self, cashier, open_session, product):
        _sell(open_session, cashier, [{"product_id": product.id, "quantity": 4}])
        assert _stock(product.id) == Decimal("6.000")

    def test_subtotal_rounds_half_up(self, cashier, open_session):
        weighed = products_service.create_product(name="Ham", price="3.33", unit="kg", stock=5)
        sale = _sell(open_session, cashier, [{"product_id": weighed.id, "quantity": "0.125"}])
        # 3.33 x 0.125 = 0.41625
        assert sale.items[0].subtotal == Decimal("0.42")
        assert sale.total == Decimal("0.42")

    def test_snapshot_survives_price_change(self, cashier, open_session, product):
        sale = _sell(open_session, cashier, [{"product_id": product.id, "quantity": 1}])
        products_service.update_product(product.id, {"price": "99.99", "name": "Renamed"})

        reloaded = sales_service.get_sale(sale.id)
        assert reloaded.items[0].unit_price == Decimal("10.00")
        assert reloaded.items[0].product_name == "Coffee 500g"
        assert reloaded.total == Decimal("10.00")

    def test_duplicate_product_lines_merged_for_stock(self, cashier, open_session, product):
        with pytest.raises(InsufficientStockError):
            _sell(
                open_session,
                cashier,
                [
                    {"product_id": product.id, "quantity": 6},
                    {"product_id": product.id, "quantity": 6},
                ],
            )
        assert _stock(product.id) == Decimal("10.000")

        sale = _sell(
            open_session,
            cashier,
            [
                {"product_id": product.id, "quantity": 4},
                {"product_id": product.id, "quantity": 6},
            ],
        )
        assert len(sale.items) == 2
        assert _stock(product.id) == Decimal("0.000")

    def test_exact_payment_gives_zero_change(self, cashier, open_session, product):
        sale = _sell(open_session, cashier, [{"product_id": product.id, "quantity": 1}], payment="10.00")
        assert sale.change_amount == Decimal("0.00")


class TestCreateSaleFailures:

    def test_insufficient_stock_leaves_no_trace(self, cashier, open_session, product, second_product):
        with pytest.raises(InsufficientStockError) as exc:
            _sell(
                open_session,
                cashier,
                [
                    {"product_id": second_product.id, "quantity": 1},
                    {"product_id": product.id, "quantity": 11},
                ],
            )

        assert exc.value.details["product_id"] == product.id
        assert db.session.query(Sale).count() == 0
        assert _stock(product.id) == Decimal("10.000")
        assert _stock(second_product.id) == Decimal("100.000")

    def test_insufficient_payment(self, cashier, open_session, product):
        with pytest.raises(InsufficientPaymentError):
            _sell(open_session, cashier, [{"product_id": product.id, "quantity": 2}], payment="19.99")
        assert _stock(product.id) == Decimal("10.000")
        assert db.session.query(Sale).count() == 0

    def test_closed_session(self, cashier, open_session, product):
        register_service.close_session(open_session.id, "100.00")
        with pytest.raises(SessionNotOpenError):
            _sell(open_session, cashier, [{"product_id": product.id, "quantity": 1}])

    def test_missing_session(self, cashier, product, db_session):
        with pytest.raises(NotFoundError):
            sales_service.create_sale(
                session_id=999,
                user_id=cashier.id,
                payment_method="cash",
                payment_amount="10.00",
                items=[{"product_id": product.id, "quantity": 1}],
            )

    def test_other_users_session(self, other_cashier, open_session, product):
        with pytest.raises(UnauthorizedError):
            _sell(open_session, other_cashier, [{"product_id": product.id, "quantity": 1}])
        assert _stock(product.id) == Decimal("10.000")

    def test_missing_product(self, cashier, open_session):
        with pytest.raises(NotFoundError):
            _sell(open_session, cashier, [{"product_id": 424242, "quantity": 1}])

    def test_inactive_product(self, cashier, open_session, product):
        products_service.deactivate_product(product.id)
        with pytest.raises(ValidationError):
            _sell(open_session, cashier, [{"product_id": product.id, "quantity": 1}])

    @pytest.mark.parametrize("items", [[], [{"product_id": 1, "quantity": 0}], [{"product_id": 1, "quantity": "-1"}]])
    def test_invalid_items(self, cashier, open_session, items):
        with pytest.raises(ValidationError):
            _sell(open_session, cashier, items)

    def test_invalid_payment_method(self, cashier, open_session, product):
        with pytest.raises(ValidationError):
            _sell(open_session, cashier, [{"product_id": product.id, "quantity": 1}], method="bitcoin")


# =============================================================================
# CANCEL
# =============================================================================


class TestCancelSale:

    def test_cancel_restores_stock(self, cashier, open_session, product, second_product):
        sale = _sell(
            open_session,
            cashier,
            [
                {"product_id": product.id, "quantity": 3},
                {"product_id": second_product.id, "quantity": "1.5"},
            ],
        )
        assert _stock(product.id) == Decimal("7.000")

        cancelled = sales_service.cancel_sale(sale.id)

        assert cancelled.status == SaleStatus.CANCELLED
        assert cancelled.cancelled_at is not None
        assert _stock(product.id) == Decimal("10.000")
        assert _stock(second_product.id) == Decimal("100.000")

    def test_cancel_twice(self, cashier, open_session, product):
        sale = _sell(open_session, cashier, [{"product_id": product.id, "quantity": 3}])
        sales_service.cancel_sale(sale.id)

        with pytest.raises(AlreadyCancelledError):
            sales_service.cancel_sale(sale.id)
        assert _stock(product.id) == Decimal("10.000")

    def test_cancel_missing(self, db_session):
        with pytest.raises(NotFoundError):
            sales_service.cancel_sale(12345)


# =============================================================================
# QUERIES
# =============================================================================


class TestSaleQueries:

    def test_by_session_newest_first(self, cashier, open_session, product):
        first = _sell(open_session, cashier, [{"product_id": product.id, "quantity": 1}])
        second = _sell(open_session, cashier, [{"product_id": product.id, "quantity": 1}])

        sales = sales_service.get_sales_by_session(open_session.id)
        assert [s.id for s in sales] == [second.id, first.id]
        assert [s.id for s in sales_service.list_sales()] == [second.id, first.id]

    def test_by_date_range_inclusive(self, cashier, open_session, product):
        sale = _sell(open_session, cashier, [{"product_id": product.id, "quantity": 1}])
        day = sale.created_at.date().isoformat()

        assert [s.id for s in sales_service.get_sales_by_date_range(day, day)] == [sale.id]
        exact = sale.created_at.isoformat()
        assert [s.id for s in sales_service.get_sales_by_date_range(exact, exact)] == [sale.id]
        assert sales_service.get_sales_by_date_range("2000-01-01", "2000-01-02") == []

    def test_range_start_after_end(self, db_session):
        with pytest.raises(ValidationError):
            sales_service.get_sales_by_date_range("2026-02-01", "2026-01-01")

    def test_get_missing(self, db_session):
        with pytest.raises(NotFoundError):
            sales_service.get_sale(5)

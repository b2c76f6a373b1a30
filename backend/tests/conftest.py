"""
Pytest fixtures for cashdesk backend tests.

Provides test database setup, user/product/session fixtures, and test client.
"""

from decimal import Decimal

import pytest
from cashdesk import create_app
from cashdesk.extensions import db
from cashdesk.models import UserRole
from cashdesk.services import products_service, register_service
from cashdesk.services.auth_service import create_user


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'BCRYPT_ROUNDS': 4,
    'DEFAULT_TOP_PRODUCTS_LIMIT': None,
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def admin_user(db_session):
    return create_user("admin", "adminpass", "Ada Admin", UserRole.ADMIN)


@pytest.fixture(scope='function')
def cashier(db_session):
    return create_user("cashier", "cashpass", "Carl Cashier", UserRole.CASHIER)


@pytest.fixture(scope='function')
def other_cashier(db_session):
    return create_user("cashier2", "cashpass", "Cora Cashier", UserRole.CASHIER)


@pytest.fixture(scope='function')
def product(db_session):
    """Active product priced 10.00 with 10 units in stock."""
    return products_service.create_product(name="Coffee 500g", price="10.00", barcode="7501000000011", stock=10)


@pytest.fixture(scope='function')
def second_product(db_session):
    return products_service.create_product(name="Sugar 1kg", price="2.50", barcode="7501000000028", stock=100)


@pytest.fixture(scope='function')
def open_session(cashier):
    """Cashier's open session with a 100.00 float."""
    return register_service.open_session(cashier.id, Decimal("100.00"))


def auth_headers(user) -> dict:
    """Helper to create identity headers for a user."""
    return {'X-User-Id': str(user.id)}


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture(scope='function')
def cashier_headers(cashier):
    return auth_headers(cashier)


@pytest.fixture(scope='function')
def other_cashier_headers(other_cashier):
    return auth_headers(other_cashier)

"""
Pytest fixtures for the sale engine tests.

Provides an in-memory database wiped per test, a test client, and a small
sneaker-shop catalog (users, products, customer).
"""

from decimal import Decimal

import pytest

from bigdrip import create_app
from bigdrip.extensions import db
from bigdrip.models import Customer, Product, User
from bigdrip.models.users import ROLE_ADMIN, ROLE_CASHIER, ROLE_STAFF


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'TAX_RATE': Decimal("0.075"),
    'CLAMP_FLAT_DISCOUNT': True,
    'COMMIT_RETRY_ATTEMPTS': 3,
    'LOG_LEVEL': 'WARNING',
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
        # Clear all data but keep schema (Core deletes bypass the write-once listeners)
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def _make_user(session, email, full_name, role, is_active=True):
    user = User(email=email, full_name=full_name, role=role, is_active=is_active)
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def admin(db_session):
    return _make_user(db_session, "admin@bigdrip.test", "Ada Admin", ROLE_ADMIN)


@pytest.fixture(scope='function')
def staff(db_session):
    return _make_user(db_session, "staff@bigdrip.test", "Sam Staff", ROLE_STAFF)


@pytest.fixture(scope='function')
def cashier(db_session):
    return _make_user(db_session, "cashier@bigdrip.test", "Cole Cashier", ROLE_CASHIER)


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory for products; stock and threshold are set directly as seed data."""
    counter = {"n": 0}

    def _make(
        *,
        name=None,
        price_cents=10000,
        stock=20,
        threshold=10,
        is_active=True,
        barcode=None,
    ):
        counter["n"] += 1
        product = Product(
            sku=f"SKU-{counter['n']:04d}",
            barcode=barcode,
            name=name or f"Sneaker {counter['n']}",
            cost_price_cents=price_cents // 2,
            selling_price_cents=price_cents,
            stock_quantity=stock,
            low_stock_threshold=threshold,
            is_active=is_active,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def customer(db_session):
    c = Customer(name="Jane Buyer", phone="+237600000000", email="jane@example.com")
    db_session.add(c)
    db_session.commit()
    return c

"""
Pytest fixtures for back-office tests.

Provides test database setup, catalog factories, and test client.
"""

import pytest

from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import Customer, Product, Stock


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'COMMIT_RETRY_ATTEMPTS': 1,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app, db_session):
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
def make_product(db_session):
    """Factory: product with its stock row."""
    def _make(name="Product", price_cents=1000, buy_price_cents=None, quantity=0):
        product = Product(name=name, price_cents=price_cents, buy_price_cents=buy_price_cents)
        product.stock = Stock(quantity=quantity)
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def product_a(make_product):
    return make_product(name="Product A", price_cents=1000, buy_price_cents=150, quantity=1)


@pytest.fixture(scope='function')
def product_b(make_product):
    return make_product(name="Product B", price_cents=2500, buy_price_cents=300, quantity=5)


@pytest.fixture(scope='function')
def customer(db_session):
    customer = Customer(name="Maria Silva", phone="555-0100")
    db_session.add(customer)
    db_session.commit()
    return customer


def quantity_on_hand(product_id: int) -> int:
    """Re-read stock straight from the database, bypassing the identity map."""
    return (
        db.session.query(Stock.quantity)
        .filter(Stock.product_id == product_id)
        .scalar()
    )


def row_count(model) -> int:
    return db.session.query(model).count()

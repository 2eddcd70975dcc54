"""
Pytest fixtures for stockpos backend tests.

Provides test database setup, users for each role, a product factory and test client.
"""

import pytest

from stockpos import create_app
from stockpos.extensions import db
from stockpos.models import Category, Product, User
from stockpos.models.auth import ROLE_ADMIN, ROLE_SALES, ROLE_VIEWER


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'ALLOW_NEGATIVE_MANUAL_STOCK': False,
    'STORE_NAME': 'Test Store',
    'CURRENCY_SYMBOL': 'S/',
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
        db.session.remove()


def _make_user(db_session, name, email, role, is_active=True):
    user = User(name=name, email=email, role=role, is_active=is_active)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin(db_session):
    return _make_user(db_session, "Super Admin", "admin@store.test", ROLE_ADMIN)


@pytest.fixture(scope='function')
def seller(db_session):
    return _make_user(db_session, "Sales Rep", "sales@store.test", ROLE_SALES)


@pytest.fixture(scope='function')
def viewer(db_session):
    return _make_user(db_session, "Guest Viewer", "viewer@store.test", ROLE_VIEWER)


@pytest.fixture(scope='function')
def category(db_session):
    category = Category(name="Electronics", description="Gadgets and devices")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def make_product(db_session, category):
    """
    Product factory.

    Seeds stock directly, the way catalog management creates an item with its
    opening quantity; everything after that goes through the ledger.
    """
    counter = {"n": 0}

    def _make(name=None, price_cents=1000, stock=10, min_stock=0, is_active=True):
        counter["n"] += 1
        product = Product(
            sku=f"SKU-{counter['n']:03d}",
            name=name or f"Product {counter['n']}",
            price_cents=price_cents,
            category_id=category.id,
            stock=stock,
            min_stock=min_stock,
            is_active=is_active,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


def actor_headers(user) -> dict:
    """Helper to create actor headers for a user."""
    return {'X-Actor-Id': str(user.id)}


def cash(amount_cents: int) -> dict:
    return {"kind": "cash", "amount_cents": amount_cents}


def qr(amount_cents: int) -> dict:
    return {"kind": "qr", "amount_cents": amount_cents}

"""
Pytest fixtures for stockbook tests.

Provides test database setup, entity factories for one tenant, and a test
client.
"""

import pytest

from stockbook import create_app
from stockbook.extensions import db
from stockbook.models import Customer, Supplier
from stockbook.services import stock_service


OWNER = "owner_a"
OTHER_OWNER = "owner_b"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

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
        # Clear all data but keep schema (Core deletes skip the immutability listeners)
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: committed product for OWNER (opening stock logged as one IN movement)."""
    counter = {"n": 0}

    def _make(name="Widget", stock=10, price_cents=1000, purchase_price_cents=600,
              product_type="PRODUCT", owner_id=OWNER, low_stock_threshold=5, sku=None):
        counter["n"] += 1
        return stock_service.create_product(
            owner_id=owner_id,
            sku=sku or f"SKU-{counter['n']:03d}",
            name=name,
            product_type=product_type,
            price_cents=price_cents,
            purchase_price_cents=purchase_price_cents,
            stock_quantity=stock,
            low_stock_threshold=low_stock_threshold,
        )

    return _make


@pytest.fixture(scope='function')
def make_customer(db_session):
    def _make(name="Rahim Traders", phone="01700000000", owner_id=OWNER):
        customer = Customer(owner_id=owner_id, name=name, phone=phone)
        db_session.add(customer)
        db_session.commit()
        return customer

    return _make


@pytest.fixture(scope='function')
def make_supplier(db_session):
    def _make(name="Dhaka Wholesale", owner_id=OWNER):
        supplier = Supplier(owner_id=owner_id, name=name)
        db_session.add(supplier)
        db_session.commit()
        return supplier

    return _make


def custom_item(unit_price_cents: int, quantity: int = 1, name: str = "Service charge") -> dict:
    """Order line with no product link (no stock effect)."""
    return {"is_custom": True, "name": name, "unit_price_cents": unit_price_cents, "quantity": quantity}


def owner_headers(owner_id: str = OWNER) -> dict:
    """Helper to create tenant headers."""
    return {'X-Owner-Id': owner_id}

"""
Pytest fixtures for ShopLedger backend tests.

Provides the app over in-memory SQLite, a per-test clean database and small
factories for products, carts and orders.
"""

import pytest

from shopledger import create_app
from shopledger.config import TestConfig
from shopledger.extensions import db
from shopledger.models import Inventory
from shopledger.services.cart_service import add_to_cart
from shopledger.services.order_service import checkout
from shopledger.services.products_service import create_product


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


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
    """Factory: create an active product with its inventory row."""
    counter = {"n": 0}

    def _make(
        *,
        item_code=None,
        name=None,
        cost_price_cents=6000,
        selling_price_cents=10000,
        initial_stock=10,
        reorder_level=10,
        category="Bags",
        brand="Acme",
    ):
        counter["n"] += 1
        return create_product(
            patch={
                "item_code": item_code or f"SKU-{counter['n']:03d}",
                "name": name or f"Product {counter['n']}",
                "brand": brand,
                "category": category,
                "cost_price_cents": cost_price_cents,
                "selling_price_cents": selling_price_cents,
            },
            initial_stock=initial_stock,
            reorder_level=reorder_level,
        )

    return _make


@pytest.fixture(scope='function')
def product(make_product):
    """Stock 10, price 100.00, cost 60.00."""
    return make_product(item_code="BAG-001", name="Canvas Tote")


@pytest.fixture(scope='function')
def stock_of(db_session):
    """Read the current stock of a product straight from the database."""
    def _stock(product_id):
        db_session.expire_all()
        return db_session.query(Inventory).filter_by(product_id=product_id).one().quantity_in_stock

    return _stock


@pytest.fixture(scope='function')
def pending_order(product):
    """Order of 3 x product with the default 50.00 shipping fee."""
    add_to_cart("sess-order", product.id, 3)
    return checkout(
        session_id="sess-order",
        customer_name="Jane Buyer",
        shipping_address="1 Market Street",
        contact_number="555-0100",
    )

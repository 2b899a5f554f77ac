"""
Pytest fixtures for lotledger backend tests.

Provides test database setup, catalog/order factories, and test client.
"""

import pytest
from lotledger import create_app
from lotledger.extensions import db
from lotledger.models import Product, Order, OrderItem
from lotledger.services import purchase_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TX_RETRY_BACKOFF_SECONDS': 0,
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
    """Factory for catalog products."""
    counter = {"n": 0}

    def _make(title=None, price_cents=1000, cost_price_cents=None, packaging_cost_cents=None):
        counter["n"] += 1
        product = Product(
            sku=f"SKU-{counter['n']:04d}",
            title=title or f"Product {counter['n']}",
            price_cents=price_cents,
            cost_price_cents=cost_price_cents,
            packaging_cost_cents=packaging_cost_cents,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def product(make_product):
    return make_product(title="Test Product", price_cents=1500)


@pytest.fixture(scope='function')
def post_purchase(db_session):
    """Create and post a purchase in one step; returns the Purchase."""

    def _post(items, supplier=None, update_cost_price=False):
        purchase = purchase_service.create_draft(items, supplier=supplier)
        purchase_service.post_purchase(purchase.id, update_cost_price=update_cost_price)
        return purchase

    return _post


@pytest.fixture(scope='function')
def make_order(db_session):
    """Factory for orders: lines are (product, qty, sale_price_cents[, packaging_cost_cents])."""

    def _make(lines, status="DONE", created_at=None):
        order = Order(status=status)
        if created_at is not None:
            order.created_at = created_at
        for line in lines:
            product, qty, price = line[0], line[1], line[2]
            packaging = line[3] if len(line) > 3 else None
            order.items.append(OrderItem(
                product_id=product.id,
                qty=qty,
                sale_price_cents=price,
                packaging_cost_cents=packaging,
            ))
        db_session.add(order)
        db_session.commit()
        return order

    return _make


@pytest.fixture(scope='function')
def file_app(tmp_path):
    """App on a file-backed SQLite database, so separate threads get separate connections."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'concurrency.sqlite3'}",
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TX_RETRY_ATTEMPTS': 10,
        'TX_RETRY_BACKOFF_SECONDS': 0.01,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()

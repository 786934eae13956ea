"""
Pytest fixtures for stockledger backend tests.

Provides test database setup, business/product fixtures, and a test client
with a signed-in session.
"""

import pytest

from stockledger import create_app
from stockledger.extensions import db
from stockledger.models import Business, Product
from stockledger.services import inventory_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test',
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
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def business(db_session):
    """Business with a 5% tax rate."""
    b = Business(name="Corner Shop", tax_rate_bps=500)
    db_session.add(b)
    db_session.commit()
    return b


@pytest.fixture(scope='function')
def other_business(db_session):
    """Second tenant, used to prove business scoping."""
    b = Business(name="Other Shop", tax_rate_bps=0)
    db_session.add(b)
    db_session.commit()
    return b


@pytest.fixture(scope='function')
def make_product(db_session, business):
    """Factory for products in the default business (prices in cents)."""
    def _make(
        name="Widget",
        cost_price_cents=600,
        sale_price_cents=1000,
        stock=10,
        low_stock_threshold=2,
        business_id=None,
    ) -> Product:
        return inventory_service.create_product(
            business_id=business_id or business.id,
            name=name,
            cost_price_cents=cost_price_cents,
            sale_price_cents=sale_price_cents,
            stock=stock,
            low_stock_threshold=low_stock_threshold,
        )
    return _make


def login(client, user_id: int = 1, business_id: int | None = None) -> None:
    """Write the signed session the authentication layer would issue."""
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        if business_id is not None:
            sess["business_id"] = business_id


@pytest.fixture(scope='function')
def auth_client(client, business):
    """Test client signed in as staff 7 of the default business."""
    login(client, user_id=7, business_id=business.id)
    return client

"""
Pytest fixtures for agripos backend tests.

Provides the application, a wiped database per test, a branch with stocked
products and the cashier actor used by service calls.
"""

from decimal import Decimal

import pytest

from agripos import create_app
from agripos.auth import ActorContext
from agripos.config import TestConfig
from agripos.extensions import db
from agripos.models import Branch, Product
from agripos.services import inventory_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    # Clear all data but keep schema
    db.session.rollback()
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    # Cleanup after test
    db.session.rollback()


@pytest.fixture(scope='function')
def branch(db_session):
    """Main branch where the cashier works."""
    b = Branch(name="Poblacion Branch", code="POB", address="Poblacion", is_active=True)
    db_session.add(b)
    db_session.commit()
    return b


@pytest.fixture(scope='function')
def other_branch(db_session):
    b = Branch(name="Highway Branch", code="HWY", is_active=True)
    db_session.add(b)
    db_session.commit()
    return b


@pytest.fixture(scope='function')
def vitamins(db_session):
    """Unit-priced product at 100.00."""
    product = Product(
        sku="VET-VITB-100",
        name="Vitamin B Complex 100ml",
        unit_of_measure="btl",
        price_cents=10000,
        is_weight_based=False,
        is_active=True,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def dewormer(db_session):
    """Unit-priced product at 95.00."""
    product = Product(
        sku="SUP-DEWORM",
        name="Dewormer Tablets (10s)",
        unit_of_measure="pack",
        price_cents=9500,
        is_weight_based=False,
        is_active=True,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def hog_feed(db_session):
    """Feed sold by weight at 48.50 per kg."""
    product = Product(
        sku="FEED-HOG-GRW",
        name="Hog Grower Feed",
        unit_of_measure="kg",
        price_cents=4850,
        is_weight_based=True,
        is_active=True,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def stock(db_session, branch):
    """Set on-hand stock: stock(product, quantity[, branch])."""
    def _stock(product, quantity, at_branch=None):
        return inventory_service.set_stock(
            branch_id=(at_branch or branch).id,
            product_id=product.id,
            quantity_on_hand=Decimal(str(quantity)),
            note="Test stock",
        )

    return _stock


@pytest.fixture(scope='function')
def actor(branch):
    """Cashier 1 working at the main branch."""
    return ActorContext(user_id=1, branch_id=branch.id, email="cashier@agripos.test")


def auth_headers(actor: ActorContext) -> dict:
    """Helper to create identity headers for an actor."""
    return {
        'X-User-Id': str(actor.user_id),
        'X-Branch-Id': str(actor.branch_id),
        'X-User-Email': actor.email or "",
    }


@pytest.fixture(scope='function')
def headers(actor):
    return auth_headers(actor)

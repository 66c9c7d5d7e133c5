"""
Pytest fixtures for the portal backend tests.

Provides an in-memory database, per-test table wipe, catalog and business
fixtures, and a Flask test client.
"""

import pytest
from portal import create_app
from portal.extensions import db
from portal.models import Business, Product
from portal.models.catalog import CATEGORY_CAN, CATEGORY_BOTTLE, CATEGORY_WATER


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'FREE_BOX_TRIGGER_BOXES': 3,
        'MONTHLY_FREE_BOX_CAP': 10,
        'FIRST_ORDER_APRON_QUANTITY': 5,
        'BUSINESS_TIMEZONE': 'Asia/Seoul',
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


def _product(db_session, **kwargs) -> Product:
    product = Product(**kwargs)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def pepsi(db_session):
    """Qualifying-family can, 17,000 per box."""
    return _product(db_session, sku="PEPSI-355", name="Pepsi 355ml x24", price=17000,
                    category=CATEGORY_CAN, is_qualifying_family=True, sort_order=1)


@pytest.fixture(scope='function')
def cider(db_session):
    """Non-qualifying can, 18,000 per box."""
    return _product(db_session, sku="CIDER-355", name="Cider 355ml x24", price=18000,
                    category=CATEGORY_CAN, sort_order=2)


@pytest.fixture(scope='function')
def milkis(db_session):
    """Non-qualifying can, 15,000 per box (cheapest soda)."""
    return _product(db_session, sku="MILKIS-250", name="Milkis 250ml x30", price=15000,
                    category=CATEGORY_CAN, sort_order=3)


@pytest.fixture(scope='function')
def pepsi_bottle(db_session):
    """Qualifying-family bottle, 16,000 per box."""
    return _product(db_session, sku="PEPSI-PET-500", name="Pepsi 500ml x20", price=16000,
                    category=CATEGORY_BOTTLE, is_qualifying_family=True, sort_order=4)


@pytest.fixture(scope='function')
def water(db_session):
    """Water, 1,000 per box; never counts toward the promotion."""
    return _product(db_session, sku="WATER-500", name="Water 500ml x20", price=1000,
                    category=CATEGORY_WATER, sort_order=5)


@pytest.fixture(scope='function')
def business(db_session):
    """Unverified business that has never ordered."""
    b = Business(
        business_number="1234567890",
        business_name="Hanok Chicken",
        phone="010-1234-5678",
        address="12 Jongno-gu, Seoul",
    )
    db_session.add(b)
    db_session.commit()
    return b


@pytest.fixture(scope='function')
def other_business(db_session):
    b = Business(
        business_number="9876543210",
        business_name="Busan Pub",
        phone="010-9999-0000",
        address="3 Haeundae-gu, Busan",
    )
    db_session.add(b)
    db_session.commit()
    return b

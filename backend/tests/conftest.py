"""
Pytest fixtures for QuoteCraft backend tests.

Provides an in-memory database, per-test table wipe, test client and a few
ready-made records.
"""

import pytest

from quotecraft import create_app
from quotecraft.extensions import db
from quotecraft.services import directory_service


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
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def acme(db_session):
    """A stored client record."""
    return directory_service.create_client({
        "name": "Innovate Corp",
        "email": "contact@innovatecorp.com",
        "phone": "+1-202-555-0149",
        "address": "123 Innovation Drive, Tech City",
    })


@pytest.fixture
def items():
    """Two lines: 1 x 150 + 4 x 55 = 370 subtotal."""
    return [
        {"id": "1", "description": "Hikvision 8-Channel DVR", "brand_name": "Hikvision", "quantity": 1, "unit_price": 150},
        {"id": "2", "description": "2MP Dome Camera", "brand_name": "Hikvision", "quantity": 4, "unit_price": 55},
    ]

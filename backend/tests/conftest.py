"""
Pytest fixtures for bevledger backend tests.

Provides the test app on an in-memory database, a test client, and a
`store` fixture that runs a test once against each Store implementation.
"""

import pytest

from bevledger import create_app
from bevledger.extensions import db
from bevledger.store import MemoryStore, SqlAlchemyStore
from bevledger.services import stock_service


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
def client(app, db_session):
    """Create test client on an empty database."""
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


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """The same service test against the in-memory fake and the database."""
    if request.param == "memory":
        return MemoryStore()
    request.getfixturevalue("db_session")
    return SqlAlchemyStore(db)


@pytest.fixture
def material(store):
    return stock_service.create_item(name="Sugar", family="material", unit="kg", store=store)


@pytest.fixture
def product(store):
    return stock_service.create_item(name="Mango Juice 500ml", family="product", store=store)

"""Shared test fixtures for the webhook playground test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite, rate limits off)
- client: Flask test client
- db_session: clean database per test (tables created/dropped)
- store: the app's EventStore
- make_event: helper that stores an event through the ingest path
"""

import pytest

from playground import create_app
from playground.extensions import db as _db
from playground.services.ingest_service import ingest_webhook


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def store(app):
    return app.extensions["event_store"]


@pytest.fixture
def make_event(store):
    """Store an event the way the capture endpoint would.

    Usage: make_event(provider="github", raw_body=b"...", headers={...})
    """

    def _make(provider="generic", raw_body=b'{"type": "test.event"}', headers=None):
        return ingest_webhook(
            store,
            provider,
            raw_body,
            headers if headers is not None else {"content-type": "application/json"},
        )

    return _make

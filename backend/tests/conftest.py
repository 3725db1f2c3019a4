"""
Pytest fixtures for BizDash backend tests.

Provides the application (in-memory SQLite), a per-test clean database,
two independent accounts for isolation tests, and a fake insight client.
"""

from dataclasses import dataclass

import pytest

from bizdash import create_app
from bizdash.extensions import db
from bizdash.services import auth_service, token_service


TEST_CONFIG = {
    'TESTING': True,
    'SECRET_KEY': 'test-secret-key-long-enough-for-hs256',
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'BCRYPT_ROUNDS': 10,
    'GEMINI_API_KEY': None,
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


@dataclass
class Account:
    id: int
    name: str
    email: str
    password: str
    token: str

    @property
    def headers(self) -> dict:
        return auth_headers(self.token)


def make_account(name: str, email: str, password: str) -> Account:
    user = auth_service.register(name, email, password)
    token = token_service.issue(user.id, user.email)
    return Account(id=user.id, name=name, email=user.email, password=password, token=token)


@pytest.fixture(scope='function')
def user_a(db_session):
    """First business owner."""
    return make_account("Alice", "alice@acme.test", "secret123")


@pytest.fixture(scope='function')
def user_b(db_session):
    """Second, unrelated business owner."""
    return make_account("Bob", "bob@beta.test", "hunter22")


class FakeCompletionClient:
    """Stands in for the Gemini client; records prompts, returns canned text."""

    def __init__(self, reply: str = "Stock up on widgets.", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.prompts: list[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture(scope='function')
def fake_insights(app):
    """Install a fake completion client for the duration of one test."""
    fake = FakeCompletionClient()
    previous = app.extensions.get("insight_client")
    app.extensions["insight_client"] = fake
    yield fake
    app.extensions["insight_client"] = previous


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def product_payload(**overrides) -> dict:
    payload = {
        "name": "Widget",
        "category": "Hardware",
        "sku": "W-1",
        "stock": 3,
        "price": 10,
        "cost": 5,
    }
    payload.update(overrides)
    return payload

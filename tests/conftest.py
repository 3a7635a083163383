"""
Pytest fixtures for ShelfGuard backend tests.

Provides an in-memory database, two independent shops (A and B) with their
owners, auth headers, and a recording push notifier.
"""

from datetime import date, timedelta

import pytest

from shelfguard import create_app
from shelfguard.extensions import db
from shelfguard.models import Product
from shelfguard.services.auth_service import register_owner
from shelfguard.services.push_service import PushNotifier
from shelfguard.services.token_service import issue_access_token

TEST_PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'JWT_SECRET': 'test-access-secret-0123456789abcdef',
        'REFRESH_TOKEN_SECRET': 'test-refresh-secret-0123456789abcdef',
        'RATE_LIMIT_MAX_REQUESTS': 100000,
        'NOTIFICATION_SCHEDULER_ENABLED': False,
        'FIREBASE_PROJECT_ID': None,
        'FIREBASE_PRIVATE_KEY': None,
        'FIREBASE_CLIENT_EMAIL': None,
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
        app.extensions["rate_limiter"].reset()

        yield db.session

        # Cleanup after test
        db.session.rollback()


class RecordingNotifier(PushNotifier):
    """Push notifier that records calls; user ids in fail_for raise."""

    def __init__(self):
        self.sent = []
        self.subscriptions = []
        self.fail_for = set()

    def send(self, user_id, title, body, data=None):
        if user_id in self.fail_for:
            raise RuntimeError(f"provider rejected user {user_id}")
        self.sent.append({"user_id": user_id, "title": title, "body": body, "data": data})
        return f"msg-{len(self.sent)}"

    def subscribe(self, token, user_id):
        self.subscriptions.append(("subscribe", token, user_id))
        return None

    def unsubscribe(self, token, user_id):
        self.subscriptions.append(("unsubscribe", token, user_id))
        return None


@pytest.fixture(scope='function')
def notifier(app):
    """Install a RecordingNotifier as the app's push notifier."""
    original = app.extensions["push_notifier"]
    recorder = RecordingNotifier()
    app.extensions["push_notifier"] = recorder
    yield recorder
    app.extensions["push_notifier"] = original


@pytest.fixture(scope='function')
def owner_a(db_session):
    """Owner of Shop A."""
    user, _ = register_owner("alice@shop-a.test", TEST_PASSWORD, "Alice", shop_name="Shop A")
    return user


@pytest.fixture(scope='function')
def owner_b(db_session):
    """Owner of Shop B."""
    user, _ = register_owner("bob@shop-b.test", TEST_PASSWORD, "Bob", shop_name="Shop B")
    return user


@pytest.fixture(scope='function')
def shop_a(owner_a):
    return owner_a.shop


@pytest.fixture(scope='function')
def shop_b(owner_b):
    return owner_b.shop


@pytest.fixture(scope='function')
def headers_a(owner_a):
    return auth_headers(issue_access_token(owner_a.id))


@pytest.fixture(scope='function')
def headers_b(owner_b):
    return auth_headers(issue_access_token(owner_b.id))


def make_product(shop, name="Milk", days=3, status="active", **extra) -> Product:
    """Insert a product expiring `days` from today."""
    product = Product(
        shop_id=shop.id,
        name=name,
        expiry_date=date.today() + timedelta(days=days),
        status=status,
        **extra,
    )
    db.session.add(product)
    db.session.commit()
    return product


@pytest.fixture(scope='function')
def product_a(shop_a):
    """Product in Shop A expiring in 3 days."""
    return make_product(shop_a, name="Product A", barcode="A-001")


@pytest.fixture(scope='function')
def product_b(shop_b):
    """Product in Shop B expiring in 3 days."""
    return make_product(shop_b, name="Product B", barcode="B-001")


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}

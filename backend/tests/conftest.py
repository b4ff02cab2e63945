"""
Pytest fixtures for repair shop backend tests.

Provides test database setup, tenant fixtures, a recording notifier and
test client.
"""

from datetime import timedelta

import pytest

from repairshop import create_app
from repairshop.extensions import db
from repairshop.models import Shop, User
from repairshop.services import plan_service, shop_service
from repairshop.services.auth_service import Actor, hash_password, issue_token
from repairshop.services.notification_service import Notifier
from repairshop.time_utils import utcnow


OWNER_PASSWORD = "Password123!"


class RecordingNotifier(Notifier):
    """Collects outbound messages instead of delivering them."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    def send_message(self, chat_id, text):
        if self.fail:
            raise RuntimeError("transport down")
        self.sent.append((chat_id, text))


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SECRET_KEY': 'test-secret',
        'TELEGRAM_BOT_TOKEN': None,
        'TELEGRAM_BOT_USERNAME': 'testbot',
        'UPLOAD_FOLDER': str(tmp_path_factory.mktemp('logos')),
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
def notifier(app):
    """Swap the app's notifier for one that records messages."""
    previous = app.extensions["notifier"]
    recording = RecordingNotifier()
    app.extensions["notifier"] = recording
    yield recording
    app.extensions["notifier"] = previous


@pytest.fixture(scope='function')
def plans(db_session):
    """Seed the default plan catalog (Basic, Pro, ProMax)."""
    plan_service.seed_default_plans()
    return {p.name: p for p in plan_service.list_active_plans()}


def make_shop(name: str, email: str, phone: str, *, plan_ref="monthly", password=OWNER_PASSWORD, **extra) -> Shop:
    fields = {
        "shop_name": name,
        "owner_name": f"{name} Owner",
        "phone": phone,
        "email": email,
    }
    fields.update(extra)
    return shop_service.create_shop(fields, plan_ref=plan_ref, password=password)


@pytest.fixture(scope='function')
def shop_a(db_session):
    """Shop A (first tenant) with an owner login."""
    return make_shop("Shop A", "owner_a@example.com", "0911111111")


@pytest.fixture(scope='function')
def shop_b(db_session):
    """Shop B (second tenant) with an owner login."""
    return make_shop("Shop B", "owner_b@example.com", "0922222222")


@pytest.fixture(scope='function')
def owner_a(db_session, shop_a):
    return db_session.query(User).filter_by(shop_id=shop_a.id).one()


@pytest.fixture(scope='function')
def owner_b(db_session, shop_b):
    return db_session.query(User).filter_by(shop_id=shop_b.id).one()


@pytest.fixture(scope='function')
def actor_a(owner_a):
    return Actor(user_id=owner_a.id, shop_id=owner_a.shop_id, name=owner_a.name, email=owner_a.email)


@pytest.fixture(scope='function')
def super_admin(db_session):
    user = User(
        email="admin@example.com",
        name="Super Admin",
        password_hash=hash_password("AdminPass1"),
        is_super_admin=True,
    )
    db_session.add(user)
    db_session.commit()
    return user


def auth_headers(user: User) -> dict:
    """Helper to create Authorization headers for a user."""
    return {'Authorization': f'Bearer {issue_token(user)}'}


@pytest.fixture(scope='function')
def owner_a_headers(owner_a):
    return auth_headers(owner_a)


@pytest.fixture(scope='function')
def owner_b_headers(owner_b):
    return auth_headers(owner_b)


@pytest.fixture(scope='function')
def admin_headers(super_admin):
    return auth_headers(super_admin)


def expire_shop(shop: Shop, days: int = 1) -> None:
    shop.subscription_expire = utcnow() - timedelta(days=days)
    db.session.commit()

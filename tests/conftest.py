# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# Every test gets a fresh app bound to an in-memory SQLite database, with an
# application context pushed so services can be called directly.
# =============================================================================

from datetime import datetime, timedelta

import pytest

from app import create_app
from config import Config
from models import db
from models.slot import Slot
from models.user import User
from security.password import hash_password


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    BCRYPT_ROUNDS = 4
    SWAP_CONFLICT_RETRIES = 2
    LOG_LEVEL = "WARNING"


BASE_TIME = datetime(2030, 1, 20, 9, 0, 0)


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make_user(name="Alice", email=None, password="correct-horse"):
        user = User(
            name=name,
            email=email or f"{name.lower()}@example.com",
            password_hash=hash_password(password),
        )
        db.session.add(user)
        db.session.commit()
        return user.id
    return _make_user


@pytest.fixture
def make_slot(app):
    def _make_slot(owner_id, status="SWAPPABLE", title="Shift", offset_hours=0):
        start = BASE_TIME + timedelta(hours=offset_hours)
        slot = Slot(
            title=title,
            start_time=start,
            end_time=start + timedelta(hours=1),
            status=status,
            owner_id=owner_id,
        )
        db.session.add(slot)
        db.session.commit()
        return slot.id
    return _make_slot


@pytest.fixture
def alice(make_user):
    return make_user("Alice")


@pytest.fixture
def bob(make_user):
    return make_user("Bob")


@pytest.fixture
def carol(make_user):
    return make_user("Carol")


def fresh(model, row_id):
    """Re-read a row from the database, bypassing anything cached in the session."""
    db.session.expire_all()
    return db.session.get(model, row_id)

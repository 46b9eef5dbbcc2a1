"""
pytest configuration for DesignDesk test suite

Every test gets its own in-memory SQLite database (StaticPool keeps the one
connection alive) and a MagicMock standing in for Redis.
"""

import os
import sys
import json
import uuid
import tempfile
from datetime import datetime

# Must be set before any src import: the engine and logging are module-level
os.environ["ENVIRONMENT"] = "testing"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="designdesk-test-logs-"))
os.environ.pop("MARKETPLACE_API_KEY", None)

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest
from unittest.mock import MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.models import Base, User, FreelancerProfile, TaskCategory, ClientArtistAffinity
from src.notifications import NotificationOutbox

# Tuesday 14:00 UTC
FIXED_NOW = datetime(2026, 3, 10, 14, 0, 0)


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    """Create a fresh database session for testing"""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


# =============================================================================
# Redis / Outbox
# =============================================================================

@pytest.fixture
def redis_mock():
    client = MagicMock()
    client.rpop.return_value = None
    client.lrange.return_value = []
    client.llen.return_value = 0
    return client


@pytest.fixture
def outbox(redis_mock):
    return NotificationOutbox(redis_client=redis_mock)


# =============================================================================
# Factories
# =============================================================================

@pytest.fixture
def make_user(db_session):
    def _make(user_id=None, name="Client", role="CLIENT", credits=0, email=None, phone=None, preferences=None):
        user_id = user_id or str(uuid.uuid4())
        user = User(
            id=user_id,
            name=name,
            email=email or f"{user_id}@example.com",
            role=role,
            credits=credits,
            phone=phone,
            notification_preferences_json=json.dumps(preferences) if preferences else None,
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow()
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture
def make_freelancer(db_session, make_user):
    def _make(user_id=None, name="Artist", status="APPROVED", skills=None, specializations=None,
              preferred_categories=None, **profile_fields):
        user = make_user(user_id=user_id, name=name, role="FREELANCER")
        fields = {
            "availability": True,
            "timezone": "UTC",
            "experience_level": "MID",
            "rating": 4.5,
            "completed_tasks": 20,
            "acceptance_rate": 0.9,
            "on_time_rate": 0.9,
            "max_concurrent_tasks": 5,
            "working_hours_start": "09:00",
            "working_hours_end": "18:00",
            "accepts_urgent_tasks": True,
            "vacation_mode": False,
        }
        fields.update(profile_fields)
        profile = FreelancerProfile(
            user_id=user.id,
            status=status,
            skills_json=json.dumps(skills or []),
            specializations_json=json.dumps(specializations or []),
            preferred_categories_json=json.dumps(preferred_categories or []),
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow(),
            **fields
        )
        db_session.add(profile)
        db_session.commit()
        return user
    return _make


@pytest.fixture
def make_category(db_session):
    def _make(slug="logo-design", name=None, base_credits=3):
        category = TaskCategory(
            id=str(uuid.uuid4()),
            name=name or slug.replace("-", " ").title(),
            slug=slug,
            base_credits=base_credits,
            is_active=True,
            created_at=datetime.utcnow()
        )
        db_session.add(category)
        db_session.commit()
        return category
    return _make


@pytest.fixture
def make_favorite(db_session):
    def _make(client_id, artist_id):
        db_session.add(ClientArtistAffinity(
            id=str(uuid.uuid4()),
            client_id=client_id,
            artist_id=artist_id,
            is_favorite=True,
            created_at=datetime.utcnow()
        ))
        db_session.commit()
    return _make


# =============================================================================
# HTTP
# =============================================================================

@pytest.fixture
def api_outbox(redis_mock):
    return NotificationOutbox(redis_client=redis_mock)


@pytest.fixture
def api(session_factory, redis_mock, api_outbox, monkeypatch):
    """TestClient wired to the per-test database and mocked Redis.

    Used without the context manager so startup hooks (schema check,
    notification loops) do not run.
    """
    from fastapi.testclient import TestClient
    from src.api import core
    from src.models import get_db

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    core.app.dependency_overrides[get_db] = override_get_db
    core.app.dependency_overrides[core.get_outbox] = lambda: api_outbox
    monkeypatch.setattr(core.outbox, "_redis", redis_mock)

    yield TestClient(core.app)

    core.app.dependency_overrides.clear()


def as_user(user_id):
    return {"X-User-Id": user_id}

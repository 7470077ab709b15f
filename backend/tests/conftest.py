"""Shared fixtures for migration tests."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.app import models  # noqa: F401
from backend.app.database import Base, enable_sqlite_foreign_keys
from backend.app.models.migration import Migration
from backend.app.models.migration_file import MigrationFile
from backend.app.models.user import User
from backend.app.services.migration_manager import MigrationManager
from backend.app.services.notifications import Notifier


class FakeClock:
    """Callable clock whose time only moves when a test says so."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class CountingFactory:
    """Wraps a session factory and counts how many sessions were opened."""

    def __init__(self, factory):
        self.factory = factory
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.factory()


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of a test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def sample_user(db):
    """A persisted test user."""
    user = User(id=str(uuid.uuid4()), email="test@example.com", password_hash="fakehash", full_name="Test User")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def other_user(db):
    user = User(id=str(uuid.uuid4()), email="other@example.com", password_hash="fakehash")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def manager(sample_user, session_factory, notifier, clock):
    return MigrationManager(
        user=sample_user,
        session_factory=session_factory,
        notifier=notifier,
        clock=clock,
    )


@pytest.fixture
def make_migration(db, sample_user, clock):
    """Insert a migration aged `age_hours` with the given file names. Returns its id."""

    def _make(age_hours: float = 0, file_names=(), user=None, project_name="Existing"):
        created_at = clock.now - timedelta(hours=age_hours)
        migration = Migration(
            id=str(uuid.uuid4()),
            user_id=(user or sample_user).id,
            project_name=project_name,
            created_at=created_at,
            updated_at=created_at,
        )
        db.add(migration)
        db.commit()
        for name in file_names:
            db.add(MigrationFile(
                migration_id=migration.id,
                file_name=name,
                file_path=name,
                file_type="table",
                original_content=f"CREATE TABLE {name.split('.')[0]} (id INT)",
                conversion_status="pending",
                created_at=created_at,
                updated_at=created_at,
            ))
        db.commit()
        return migration.id

    return _make


@pytest.fixture
def counting_factory(session_factory):
    return CountingFactory(session_factory)

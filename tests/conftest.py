import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CACHE_ENABLED", "false")
os.environ.pop("SMTP_HOST", None)

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from crewplan.main import app
from crewplan.models.entities import (
    AcceptedBooking,
    Assignment,
    AssignmentStatus,
    Availability,
    Mission,
    Technician,
    Unavailability,
)
from crewplan.notifications.mailer import NotificationError, Notifier, get_notifier
from crewplan.storage.cache import get_cache
from crewplan.storage.database import build_engine, get_db, init_db


def at(hour: int, day: int = 1, minute: int = 0) -> datetime:
    return datetime(2024, 6, day, hour, minute, tzinfo=timezone.utc)


class RecordingNotifier(Notifier):
    """Collects notifications instead of sending them; can be told to fail."""

    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    def send(self, kind, technician, mission):
        if technician.id in self.fail_for:
            raise NotificationError(f"mailbox of {technician.id} unreachable")
        self.sent.append((kind, technician.id, mission.id))


class InMemoryCache:
    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, ttl_seconds=None):
        self.store[key] = value

    def health_check(self):
        return True


@pytest.fixture
def mission_a():
    """Mission A: 2024-06-01 09:00-17:00, two people."""
    return Mission(id="A", title="Sound system setup", start=at(9), end=at(17), required_people=2, forfeit=180.0)


@pytest.fixture
def mission_b():
    """Mission B overlaps A from 10:00 to 14:00."""
    return Mission(id="B", title="Game delivery", start=at(10), end=at(14), forfeit=90.0)


@pytest.fixture
def technicians():
    return [
        Technician(id="X", name="Xavier", is_validated=True, email="x@example.com"),
        Technician(id="Y", name="Yasmine", is_validated=True, email="y@example.com"),
        Technician(id="Z", name="Zoe", is_validated=True, email="z@example.com"),
        Technician(id="W", name="Walid", email="w@example.com"),
    ]


@pytest.fixture
def example_snapshot(mission_b):
    """X unavailable 08:00-12:00, Y booked on B, Z available all day, W declared nothing."""
    unavailabilities = [Unavailability(id="u1", technician_id="X", start=at(8), end=at(12), reason="medical")]
    availabilities = [Availability(id="a1", technician_id="Z", start=at(0), end=at(0, day=2))]
    bookings = [AcceptedBooking(assignment_id="b1", technician_id="Y", mission=mission_b)]
    return availabilities, unavailabilities, bookings


@pytest.fixture
def proposed_assignment():
    return Assignment(id="as-1", mission_id="A", technician_id="Z", status=AssignmentStatus.PROPOSED,
                      assigned_at=at(8))


@pytest.fixture
def db_session():
    """Fresh in-memory SQLite database per test."""
    engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def roster_cache():
    return InMemoryCache()


@pytest.fixture
def client(db_session, notifier, roster_cache):
    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_cache] = lambda: roster_cache
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()

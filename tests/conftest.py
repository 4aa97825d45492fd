"""Shared test fixtures."""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event as sa_event
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from rsvp.core.database import get_session, set_sqlite_pragma
from rsvp.main import app
from rsvp.models import Attendee, Event, utcnow


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    sa_event.listen(engine, "connect", set_sqlite_pragma)
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    """Create a new database session for each test."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Create a test client with the test database session."""

    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="sample_event")
def sample_event_fixture(session: Session) -> Event:
    """Create a sample event for testing."""
    event = Event(
        title="Summer Party",
        description="<p>Bring a dish</p>",
        start_time=utcnow() + timedelta(days=7),
        end_time=utcnow() + timedelta(days=7, hours=4),
        timezone="America/New_York",
        location_name="Back Yard",
    )
    session.add(event)
    session.commit()
    session.refresh(event)
    return event


@pytest.fixture(name="other_event")
def other_event_fixture(session: Session) -> Event:
    """Create a second event to copy guest lists between."""
    event = Event(
        title="Winter Party",
        start_time=datetime(2026, 12, 20, 23, 0, tzinfo=UTC),
    )
    session.add(event)
    session.commit()
    session.refresh(event)
    return event


@pytest.fixture(name="sample_attendee")
def sample_attendee_fixture(session: Session, sample_event: Event) -> Attendee:
    """Create an attendee with a CC address who hasn't been invited yet."""
    attendee = Attendee(
        event_id=sample_event.id,
        name="Alice Wonder",
        email="alice@example.com",
        party_size=2,
        additional_emails='["bob@example.com"]',
    )
    session.add(attendee)
    session.commit()
    session.refresh(attendee)
    return attendee

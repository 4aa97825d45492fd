"""Tests for database models."""

import re
from datetime import UTC, datetime

import pytest
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from rsvp.models import Attendee, Event


class TestEventModel:
    """Tests for the Event model."""

    def test_create_event(self, session: Session):
        """Test creating a basic event with optional fields unset."""
        event = Event(title="Dinner", start_time=datetime(2026, 11, 1, 18, 0, tzinfo=UTC))
        session.add(event)
        session.commit()

        retrieved = session.get(Event, event.id)
        assert retrieved is not None
        assert retrieved.title == "Dinner"
        assert retrieved.end_time is None
        assert retrieved.timezone is None

    def test_delete_event_cascades_to_attendees(
        self, session: Session, sample_event: Event, sample_attendee: Attendee
    ):
        """Test that deleting an event leaves no orphan attendees."""
        attendee_id = sample_attendee.id

        session.delete(sample_event)
        session.commit()

        assert session.get(Attendee, attendee_id) is None
        assert session.exec(select(Attendee)).all() == []


class TestAttendeeModel:
    """Tests for the Attendee model."""

    def test_create_attendee_defaults(self, session: Session, sample_event: Event):
        """Test a new attendee is unsent, unanswered and has a hex token."""
        attendee = Attendee(event_id=sample_event.id, name="Bob", email="bob@example.com")
        session.add(attendee)
        session.commit()

        retrieved = session.get(Attendee, attendee.id)
        assert retrieved.party_size == 1
        assert retrieved.is_sent is False
        assert retrieved.rsvp is None
        assert retrieved.responded_at is None
        assert retrieved.additional_emails is None
        assert retrieved.last_modified is not None
        assert re.fullmatch(r"[0-9a-f]{32}", retrieved.token)

    def test_attendee_event_relationship(
        self, session: Session, sample_event: Event, sample_attendee: Attendee
    ):
        """Test attendee-event relationship."""
        session.refresh(sample_event)
        assert len(sample_event.attendees) == 1
        assert sample_event.attendees[0].email == "alice@example.com"
        assert sample_attendee.event.title == "Summer Party"

    def test_email_unique_per_event(self, session: Session, sample_event: Event):
        """Test that (event, email) must be unique."""
        session.add(Attendee(event_id=sample_event.id, name="A", email="dup@example.com"))
        session.commit()

        session.add(Attendee(event_id=sample_event.id, name="B", email="dup@example.com"))
        with pytest.raises(IntegrityError):
            session.commit()

    def test_same_email_allowed_in_different_events(
        self, session: Session, sample_event: Event, other_event: Event
    ):
        """Test the same guest can be invited to two events."""
        session.add(Attendee(event_id=sample_event.id, name="A", email="a@example.com"))
        session.add(Attendee(event_id=other_event.id, name="A", email="a@example.com"))
        session.commit()

        assert len(session.exec(select(Attendee)).all()) == 2

    def test_token_unique(self, session: Session, sample_event: Event):
        """Test that two attendees cannot share a token."""
        token = "0123456789abcdef0123456789abcdef"
        session.add(Attendee(event_id=sample_event.id, name="A", email="a@x.com", token=token))
        session.commit()

        session.add(Attendee(event_id=sample_event.id, name="B", email="b@x.com", token=token))
        with pytest.raises(IntegrityError):
            session.commit()

"""Tests for API routes."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from rsvp.core.config import settings
from rsvp.guests import responses
from rsvp.models import RSVP_YES, Attendee, Event

JSON = {"Accept": "application/json"}


@pytest.fixture(autouse=True)
def no_external_services(monkeypatch):
    """Keep route tests on the mock mailer and away from ntfy."""
    monkeypatch.setattr(settings, "smtp_user", "")
    monkeypatch.setattr(settings, "smtp_password", "")
    monkeypatch.setattr(settings, "ntfy_topic", "")


def event_attendees(session: Session, event: Event) -> list[Attendee]:
    return session.exec(select(Attendee).where(Attendee.event_id == event.id)).all()


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_check(self, client: TestClient):
        """Test the health endpoint returns OK."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestRootRedirect:
    def test_root_redirects_to_events(self, client: TestClient):
        response = client.get("/", follow_redirects=False)
        assert response.status_code == 307
        assert response.headers["location"] == "/admin/events"


class TestEventsRoutes:
    """Tests for event-related routes."""

    def test_create_event(self, client: TestClient, session: Session):
        """Test a naive start time is read in the event's timezone."""
        response = client.post(
            "/admin/events",
            data={
                "title": "  Picnic ",
                "start_time": "2026-07-04T18:00",
                "timezone": "America/New_York",
                "location_name": "Park",
            },
            follow_redirects=False,
        )
        assert response.status_code == 303

        event = session.exec(select(Event).where(Event.title == "Picnic")).one()
        assert response.headers["location"] == f"/admin/events/{event.id}"
        assert event.start_time == datetime(2026, 7, 4, 22, 0, tzinfo=UTC)
        assert event.end_time is None

    def test_create_event_unknown_timezone(self, client: TestClient):
        response = client.post(
            "/admin/events",
            data={"title": "X", "start_time": "2026-07-04T18:00", "timezone": "Nowhere/City"},
        )
        assert response.status_code == 400

    def test_list_events(self, client: TestClient, sample_event: Event, sample_attendee):
        response = client.get("/admin/events")
        assert response.status_code == 200
        data = response.json()
        assert data[0]["event"]["title"] == "Summer Party"
        assert data[0]["stats"]["potential_guests"] == 2

    def test_event_detail(
        self, client: TestClient, sample_event: Event, other_event: Event, sample_attendee
    ):
        response = client.get(f"/admin/events/{sample_event.id}")
        assert response.status_code == 200
        data = response.json()
        assert data["event"]["title"] == "Summer Party"
        assert [a["email"] for a in data["attendees"]] == ["alice@example.com"]
        assert data["stats"]["guests_not_sent"] == 2
        assert data["other_events"] == [{"id": str(other_event.id), "title": "Winter Party"}]

    def test_event_detail_not_found(self, client: TestClient):
        """Test 404 for non-existent event."""
        response = client.get(f"/admin/events/{uuid4()}")
        assert response.status_code == 404

    def test_event_stats(self, client: TestClient, sample_event: Event, sample_attendee):
        response = client.get(f"/admin/events/{sample_event.id}/stats")
        assert response.status_code == 200
        assert response.json()["potential_guests"] == 2
        assert response.json()["guests_invited"] == 0

    def test_update_event(self, client: TestClient, session: Session, sample_event: Event):
        response = client.post(
            f"/admin/events/{sample_event.id}/update",
            data={"title": "Summer Bash", "start_time": "2026-08-01T12:00:00+00:00"},
            follow_redirects=False,
        )
        assert response.status_code == 303

        session.refresh(sample_event)
        assert sample_event.title == "Summer Bash"
        assert sample_event.start_time == datetime(2026, 8, 1, 12, 0, tzinfo=UTC)
        assert sample_event.timezone is None

    def test_delete_event_removes_attendees(
        self, client: TestClient, session: Session, sample_event: Event, sample_attendee
    ):
        event_id = sample_event.id
        response = client.post(f"/admin/events/{event_id}/delete", follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/admin/events"
        assert session.get(Event, event_id) is None
        assert session.exec(select(Attendee)).all() == []


class TestAttendeeRoutes:
    """Tests for guest list management routes."""

    def test_add_attendee(self, client: TestClient, session: Session, sample_event: Event):
        response = client.post(
            f"/admin/events/{sample_event.id}/attendees",
            data={
                "name": "Dana",
                "email": "Dana@Example.com",
                "party_size": "3",
                "additional_emails": "partner@example.com\nnot-an-email, DANA@example.com",
            },
            follow_redirects=False,
        )
        assert response.status_code == 303

        attendee = event_attendees(session, sample_event)[0]
        assert attendee.email == "dana@example.com"
        assert attendee.party_size == 3
        assert attendee.additional_emails == '["partner@example.com"]'

    def test_add_attendee_without_name(
        self, client: TestClient, session: Session, sample_event: Event
    ):
        client.post(
            f"/admin/events/{sample_event.id}/attendees",
            data={"name": "  ", "email": "sam.lee@example.com"},
            follow_redirects=False,
        )
        assert event_attendees(session, sample_event)[0].name == "sam lee"

    def test_add_attendee_unknown_event(self, client: TestClient):
        response = client.post(
            f"/admin/events/{uuid4()}/attendees", data={"email": "a@example.com"}
        )
        assert response.status_code == 404

    def test_import_json(self, client: TestClient, session: Session, sample_event: Event):
        response = client.post(
            f"/admin/events/{sample_event.id}/attendees/import",
            data={"csv": "Smith Family,john@example.com,jane@example.com\nno email\n"},
            headers=JSON,
        )
        assert response.status_code == 200
        assert response.json() == {"created": 1, "updated": 0, "skipped": 1}
        assert event_attendees(session, sample_event)[0].party_size == 2

    def test_parse_emails(self, client: TestClient, session: Session, sample_event: Event):
        response = client.post(
            f"/admin/events/{sample_event.id}/attendees/parse-emails",
            data={"email_field_data": '"Alice" <alice@example.com>, bob@test.org'},
            follow_redirects=False,
        )
        assert response.status_code == 303
        assert len(event_attendees(session, sample_event)) == 2

    def test_parse_emails_malformed_redirects_with_error(
        self, client: TestClient, session: Session, sample_event: Event
    ):
        response = client.post(
            f"/admin/events/{sample_event.id}/attendees/parse-emails",
            data={"email_field_data": "good@example.com, Alice <alice@example.com"},
            follow_redirects=False,
        )
        assert response.status_code == 303
        assert "error=" in response.headers["location"]
        assert event_attendees(session, sample_event) == []

    def test_parse_emails_malformed_json(self, client: TestClient, sample_event: Event):
        response = client.post(
            f"/admin/events/{sample_event.id}/attendees/parse-emails",
            data={"email_field_data": "good@example.com, Alice <alice@example.com"},
            headers=JSON,
        )
        assert response.status_code == 400

    def test_copy_attendees(
        self,
        client: TestClient,
        session: Session,
        sample_event: Event,
        other_event: Event,
        sample_attendee: Attendee,
    ):
        response = client.post(
            f"/admin/events/{other_event.id}/attendees/copy",
            data={"from_event": str(sample_event.id)},
            headers=JSON,
        )
        assert response.json() == {"created": 1, "updated": 0, "skipped": 0}
        assert event_attendees(session, other_event)[0].additional_emails == (
            '["bob@example.com"]'
        )

    def test_update_party_size(
        self, client: TestClient, session: Session, sample_attendee: Attendee
    ):
        response = client.post(
            f"/admin/attendees/{sample_attendee.id}/update-party-size",
            data={"party_size": "5"},
            follow_redirects=False,
        )
        assert response.status_code == 303
        session.refresh(sample_attendee)
        assert sample_attendee.party_size == 5

    def test_update_party_size_invalid_is_ignored(
        self, client: TestClient, session: Session, sample_attendee: Attendee
    ):
        response = client.post(
            f"/admin/attendees/{sample_attendee.id}/update-party-size",
            data={"party_size": "lots"},
            follow_redirects=False,
        )
        assert response.status_code == 303
        session.refresh(sample_attendee)
        assert sample_attendee.party_size == 2

    def test_update_emails(self, client: TestClient, session: Session, sample_attendee: Attendee):
        response = client.post(
            f"/admin/attendees/{sample_attendee.id}/update-emails",
            data={
                "name": "Alice W",
                "primary_email": "alice.w@example.com",
                "additional_emails": "carol@example.com\n\n",
            },
            follow_redirects=False,
        )
        assert response.status_code == 303
        session.refresh(sample_attendee)
        assert sample_attendee.email == "alice.w@example.com"
        assert sample_attendee.additional_emails == '["carol@example.com"]'

    def test_update_emails_invalid_redirects_with_error(
        self, client: TestClient, sample_attendee: Attendee
    ):
        response = client.post(
            f"/admin/attendees/{sample_attendee.id}/update-emails",
            data={"name": "Alice", "primary_email": "nope"},
            follow_redirects=False,
        )
        assert response.status_code == 303
        assert "error=" in response.headers["location"]

    def test_delete_attendee(
        self, client: TestClient, session: Session, sample_event: Event, sample_attendee: Attendee
    ):
        response = client.post(
            f"/admin/attendees/{sample_attendee.id}/delete", follow_redirects=False
        )
        assert response.status_code == 303
        assert response.headers["location"] == f"/admin/events/{sample_event.id}"
        assert event_attendees(session, sample_event) == []

    def test_nonexistent_attendee(self, client: TestClient):
        response = client.post(f"/admin/attendees/{uuid4()}/delete")
        assert response.status_code == 404

    def test_send_invitation(
        self, client: TestClient, session: Session, sample_attendee: Attendee
    ):
        response = client.post(
            f"/admin/attendees/{sample_attendee.id}/send", follow_redirects=False
        )
        assert response.status_code == 303
        session.refresh(sample_attendee)
        assert sample_attendee.is_sent is True

    def test_send_pending_json(
        self, client: TestClient, session: Session, sample_event: Event, sample_attendee
    ):
        session.add(Attendee(event_id=sample_event.id, name="No Email", email=""))
        session.commit()

        response = client.post(f"/admin/events/{sample_event.id}/send-invites", headers=JSON)

        assert response.status_code == 200
        assert response.json() == {"sent": 1, "failed": 1, "all_sent": False}

    def test_send_pending_redirect_reports_failure(
        self, client: TestClient, session: Session, sample_event: Event
    ):
        session.add(Attendee(event_id=sample_event.id, name="No Email", email=""))
        session.commit()

        response = client.post(
            f"/admin/events/{sample_event.id}/send-invites", follow_redirects=False
        )
        assert response.status_code == 303
        assert "error=" in response.headers["location"]


class TestPublicRsvpRoutes:
    """Tests for the guest-facing RSVP routes."""

    def test_rsvp_details(self, client: TestClient, sample_attendee: Attendee):
        response = client.get(f"/rsvp/{sample_attendee.token}")
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Alice Wonder"
        assert data["rsvp"] is None
        assert data["event"]["title"] == "Summer Party"

    def test_malformed_token(self, client: TestClient):
        assert client.get("/rsvp/not-a-token").status_code == 400

    def test_unknown_token(self, client: TestClient):
        assert client.get(f"/rsvp/{'0' * 32}").status_code == 404

    def test_submit_yes(self, client: TestClient, session: Session, sample_attendee: Attendee):
        response = client.post(
            f"/rsvp/{sample_attendee.token}", data={"rsvp": "yes", "party_size": "3"}
        )
        assert response.status_code == 200
        assert response.json() == {"rsvp": "yes", "party_size": 3, "event_title": "Summer Party"}

        session.refresh(sample_attendee)
        assert sample_attendee.rsvp == RSVP_YES
        assert sample_attendee.responded_at is not None

    def test_submit_no(self, client: TestClient, sample_attendee: Attendee):
        response = client.post(f"/rsvp/{sample_attendee.token}", data={"rsvp": "no"})
        assert response.json()["party_size"] == 0

    def test_submit_yes_invalid_party_size(self, client: TestClient, sample_attendee: Attendee):
        response = client.post(
            f"/rsvp/{sample_attendee.token}", data={"rsvp": "yes", "party_size": "0"}
        )
        assert response.status_code == 400

    def test_submit_unknown_answer(self, client: TestClient, sample_attendee: Attendee):
        response = client.post(f"/rsvp/{sample_attendee.token}", data={"rsvp": "maybe"})
        assert response.status_code == 400

    def test_submit_notifies_organizer(
        self, client: TestClient, sample_attendee: Attendee, monkeypatch
    ):
        sent = []

        async def fake_notify(name, event_title, rsvp, party_size):
            sent.append((name, rsvp, party_size))

        monkeypatch.setattr(responses.push, "notify_admin", fake_notify)

        client.post(f"/rsvp/{sample_attendee.token}", data={"rsvp": "yes", "party_size": "2"})

        assert sent == [("Alice Wonder", "yes", 2)]

"""Guest-count rollups for the organizer dashboard."""
from uuid import UUID

from sqlalchemy import func
from sqlmodel import Session, SQLModel, select

from rsvp.models import RSVP_NO, RSVP_YES, Attendee


class AttendeeStats(SQLModel):
    """Sums of party size over an event's attendees.

    Attributes:
        potential_guests: Everyone on the list.
        guests_not_sent: Invitation not yet sent.
        guests_invited: Invitation sent.
        guests_awaiting_reply: Sent, no response yet.
        guests_attending: Sent, responded yes.
        guests_not_attending: Sent, responded no.
    """
    potential_guests: int = 0
    guests_not_sent: int = 0
    guests_invited: int = 0
    guests_awaiting_reply: int = 0
    guests_attending: int = 0
    guests_not_attending: int = 0


def _sum_party_size(session: Session, event_id: UUID, *conditions) -> int:
    statement = select(func.sum(Attendee.party_size)).where(Attendee.event_id == event_id)
    for condition in conditions:
        statement = statement.where(condition)
    return session.exec(statement).one() or 0


def get_event_attendee_stats(session: Session, event_id: UUID) -> AttendeeStats:
    """Compute the six party-size sums for an event. Read-only."""
    sent = Attendee.is_sent == True  # noqa: E712
    return AttendeeStats(
        potential_guests=_sum_party_size(session, event_id),
        guests_not_sent=_sum_party_size(session, event_id, Attendee.is_sent == False),  # noqa: E712
        guests_invited=_sum_party_size(session, event_id, sent),
        guests_awaiting_reply=_sum_party_size(session, event_id, sent, Attendee.rsvp.is_(None)),
        guests_attending=_sum_party_size(session, event_id, sent, Attendee.rsvp == RSVP_YES),
        guests_not_attending=_sum_party_size(session, event_id, sent, Attendee.rsvp == RSVP_NO),
    )

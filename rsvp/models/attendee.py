"""Attendee model for tracking invitees and their responses.

This module defines the Attendee model which represents one invitee
(possibly a whole party) of exactly one event. Rows are keyed by the
normalized primary email within their event and are only ever created or
merged through ``rsvp.guests.reconcile.reconcile_attendee``.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from rsvp.guests.addresses import generate_token

if TYPE_CHECKING:
    from rsvp.models.event import Event


RSVP_YES = "yes"
RSVP_NO = "no"


def utcnow() -> datetime:
    """Current time as timezone-aware UTC."""
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` in UTC. Naive values are taken to already be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Attendee(SQLModel, table=True):
    """A person or party invited to an event.

    Attributes:
        id: Unique identifier (UUID).
        event_id: Foreign key to the parent Event (cascade delete).
        name: Display name used in the invitation greeting.
        email: Primary email, trimmed and lowercased. Unique per event.
        party_size: Headcount for this invitee. Frozen once the guest
            has responded.
        token: 32 lowercase hex characters. The unguessable capability
            embedded in RSVP links; never regenerated.
        is_sent: Whether an invitation email has been dispatched.
        rsvp: None until the guest responds, then "yes" or "no".
        responded_at: When the RSVP was recorded.
        last_modified: Stamped on every write, including no-op touches.
        additional_emails: JSON array of CC addresses, or None when there
            are none. Never contains the primary email.
        event: Reference to the parent Event object.
    """
    __table_args__ = (
        UniqueConstraint("event_id", "email", name="uq_attendee_event_email"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    event_id: UUID = Field(foreign_key="event.id", ondelete="CASCADE", index=True)
    name: str
    email: str
    party_size: int = Field(default=1)
    token: str = Field(default_factory=generate_token, unique=True, index=True)
    is_sent: bool = Field(default=False)
    rsvp: str | None = Field(default=None)  # "yes" or "no"
    responded_at: datetime | None = None
    last_modified: datetime = Field(default_factory=utcnow)
    additional_emails: str | None = None

    # Relationship
    event: Optional["Event"] = Relationship(back_populates="attendees")

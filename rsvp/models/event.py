"""Event model for occasions that guests are invited to.

This module defines the Event model which represents a single occasion
created by an organizer. Events own their attendee list; deleting an
event deletes every attendee invited to it.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from rsvp.models.attendee import Attendee


class Event(SQLModel, table=True):
    """An occasion with a guest list.

    Attributes:
        id: Unique identifier (UUID).
        title: Event title shown in invitations.
        start_time: When the event starts (UTC).
        end_time: When the event ends, if known (UTC).
        description: Free text or HTML shown in invitations.
        timezone: IANA timezone name used only when displaying times.
        location_name: Human-readable place name.
        location_href: Link to the place (map URL, video call, ...).
        banner_image_filename: Stored banner reference, managed elsewhere.
        attendees: Invitees of this event.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str
    start_time: datetime
    end_time: datetime | None = None
    description: str | None = None
    timezone: str | None = None
    location_name: str | None = None
    location_href: str | None = None
    banner_image_filename: str | None = None

    # Relationships
    attendees: list["Attendee"] = Relationship(
        back_populates="event",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )

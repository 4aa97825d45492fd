"""Event routes for organizers to create, edit and review events."""
import logging
from datetime import UTC, datetime
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, Form, HTTPException
from fastapi.responses import RedirectResponse
from sqlmodel import Session, select

from rsvp.core.database import get_session
from rsvp.guests.stats import get_event_attendee_stats
from rsvp.models import Attendee, Event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/events", tags=["events"])


def to_utc(value: datetime | None, timezone: str | None) -> datetime | None:
    """
    Convert a submitted datetime to UTC for storage.

    Naive input (from a datetime-local field) is read in the event's
    timezone when one is set, otherwise as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        zone = UTC
        if timezone:
            try:
                zone = ZoneInfo(timezone)
            except (ZoneInfoNotFoundError, ValueError):
                raise HTTPException(status_code=400, detail=f"Unknown timezone: {timezone}")
        value = value.replace(tzinfo=zone)
    return value.astimezone(UTC)


def get_event_or_404(session: Session, event_id: UUID) -> Event:
    event = session.get(Event, event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@router.get("")
async def list_events(session: Session = Depends(get_session)):
    """List all events by start time, each with its guest-count stats."""
    events = session.exec(select(Event).order_by(Event.start_time)).all()
    return [
        {"event": event, "stats": get_event_attendee_stats(session, event.id)}
        for event in events
    ]


@router.post("")
async def create_event(
    title: str = Form(...),
    start_time: datetime = Form(...),
    end_time: datetime | None = Form(None),
    description: str | None = Form(None),
    timezone: str | None = Form(None),
    location_name: str | None = Form(None),
    location_href: str | None = Form(None),
    session: Session = Depends(get_session),
):
    """Create a new event and redirect to its admin page."""
    event = Event(
        title=title.strip(),
        start_time=to_utc(start_time, timezone),
        end_time=to_utc(end_time, timezone),
        description=description or None,
        timezone=timezone or None,
        location_name=location_name or None,
        location_href=location_href or None,
    )
    session.add(event)
    session.commit()
    logger.info(f"Created event {event.id}: {event.title}")

    return RedirectResponse(f"/admin/events/{event.id}", status_code=303)


@router.get("/{event_id}")
async def event_detail(event_id: UUID, session: Session = Depends(get_session)):
    """
    Show one event with its attendees, stats and the other events.

    Attendees are ordered by name. The other events are the choices for
    copying a guest list into this one.
    """
    event = get_event_or_404(session, event_id)

    attendees = session.exec(
        select(Attendee).where(Attendee.event_id == event_id).order_by(Attendee.name)
    ).all()
    other_events = session.exec(
        select(Event).where(Event.id != event_id).order_by(Event.title)
    ).all()

    return {
        "event": event,
        "attendees": attendees,
        "stats": get_event_attendee_stats(session, event_id),
        "other_events": [{"id": e.id, "title": e.title} for e in other_events],
    }


@router.get("/{event_id}/stats")
async def event_stats(event_id: UUID, session: Session = Depends(get_session)):
    """Guest-count rollups for one event."""
    get_event_or_404(session, event_id)
    return get_event_attendee_stats(session, event_id)


@router.post("/{event_id}/update")
async def update_event(
    event_id: UUID,
    title: str = Form(...),
    start_time: datetime = Form(...),
    end_time: datetime | None = Form(None),
    description: str | None = Form(None),
    timezone: str | None = Form(None),
    location_name: str | None = Form(None),
    location_href: str | None = Form(None),
    session: Session = Depends(get_session),
):
    """Replace an event's details. The banner is left untouched."""
    event = get_event_or_404(session, event_id)

    event.title = title.strip()
    event.start_time = to_utc(start_time, timezone)
    event.end_time = to_utc(end_time, timezone)
    event.description = description or None
    event.timezone = timezone or None
    event.location_name = location_name or None
    event.location_href = location_href or None
    session.add(event)
    session.commit()

    return RedirectResponse(f"/admin/events/{event_id}", status_code=303)


@router.post("/{event_id}/delete")
async def delete_event(event_id: UUID, session: Session = Depends(get_session)):
    """Delete an event together with its whole guest list."""
    event = get_event_or_404(session, event_id)

    session.delete(event)
    session.commit()
    logger.info(f"Deleted event {event_id} and its attendees")

    return RedirectResponse("/admin/events", status_code=303)

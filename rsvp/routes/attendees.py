"""Attendee routes for managing guest lists and sending invitations."""
import logging
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlmodel import Session

from rsvp.core.database import get_session
from rsvp.guests import invitations
from rsvp.guests.parser import GuestListParseError, parse_email_list
from rsvp.guests.reconcile import (
    AttendeeNotFoundError,
    EmailConflictError,
    copy_attendees,
    delete_attendee,
    get_attendee,
    import_address_header,
    import_guest_lines,
    parse_party_size,
    reconcile_attendee,
    update_attendee_details,
    update_party_size,
)
from rsvp.routes.events import get_event_or_404

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["attendees"])


def wants_json(request: Request) -> bool:
    """Check if the client prefers JSON response (AJAX request)."""
    accept = request.headers.get("accept", "")
    return "application/json" in accept


def event_redirect(event_id: UUID, error: str | None = None) -> RedirectResponse:
    """Redirect to the event admin page, optionally carrying an error banner."""
    url = f"/admin/events/{event_id}"
    if error:
        url += f"?error={quote(error)}"
    return RedirectResponse(url, status_code=303)


def get_attendee_or_404(session: Session, attendee_id: UUID):
    try:
        return get_attendee(session, attendee_id)
    except AttendeeNotFoundError:
        raise HTTPException(status_code=404, detail="Attendee not found")


@router.post("/events/{event_id}/attendees")
async def add_attendee(
    event_id: UUID,
    name: str = Form(""),
    email: str = Form(...),
    party_size: str | None = Form(None),
    additional_emails: str = Form(""),
    session: Session = Depends(get_session),
):
    """
    Add a single attendee, or merge into the existing one with that email.

    Additional emails may be separated by newlines or commas; entries that
    don't look like email addresses are dropped.
    """
    get_event_or_404(session, event_id)

    reconcile_attendee(
        session,
        event_id,
        name,
        email,
        parse_party_size(party_size),
        parse_email_list(additional_emails),
    )
    return event_redirect(event_id)


@router.post("/events/{event_id}/attendees/import")
async def import_attendees(
    event_id: UUID,
    request: Request,
    csv: str = Form(""),
    session: Session = Depends(get_session),
):
    """
    Import pasted CSV or TSV lines.

    Each line needs at least one email; the number of emails on a line is
    the party size. Lines without an email are skipped.
    """
    get_event_or_404(session, event_id)

    stats = import_guest_lines(session, event_id, csv)

    if wants_json(request):
        return JSONResponse(stats)
    return event_redirect(event_id)


@router.post("/events/{event_id}/attendees/parse-emails")
async def parse_emails(
    event_id: UUID,
    request: Request,
    email_field_data: str = Form(""),
    session: Session = Depends(get_session),
):
    """
    Import addresses pasted from an email "To:" field.

    Entries must be comma-separated, as in a real header; one address per
    line without commas is malformed. A malformed paste imports nothing and
    reports the error.
    """
    get_event_or_404(session, event_id)

    try:
        stats = import_address_header(session, event_id, email_field_data)
    except GuestListParseError as e:
        logger.error(f"Error parsing email field data for event {event_id}: {e}")
        if wants_json(request):
            raise HTTPException(status_code=400, detail=str(e))
        return event_redirect(event_id, "Could not parse the pasted addresses.")

    if wants_json(request):
        return JSONResponse(stats)
    return event_redirect(event_id)


@router.post("/events/{event_id}/attendees/copy")
async def copy_from_event(
    event_id: UUID,
    request: Request,
    from_event: UUID = Form(...),
    session: Session = Depends(get_session),
):
    """Copy the guest list of another event into this one."""
    get_event_or_404(session, event_id)
    get_event_or_404(session, from_event)

    stats = copy_attendees(session, from_event, event_id)

    if wants_json(request):
        return JSONResponse(stats)
    return event_redirect(event_id)


@router.post("/attendees/{attendee_id}/update-party-size")
async def change_party_size(
    attendee_id: UUID,
    party_size: str = Form(""),
    session: Session = Depends(get_session),
):
    """
    Change the party size of an attendee who hasn't responded yet.

    Once the guest has answered, their own party size wins and the change
    is ignored.
    """
    attendee = get_attendee_or_404(session, attendee_id)
    event_id = attendee.event_id

    try:
        update_party_size(session, attendee_id, parse_party_size(party_size))
    except ValueError:
        logger.warning(f"Invalid party size submitted for attendee {attendee_id}: {party_size!r}")

    return event_redirect(event_id)


@router.post("/attendees/{attendee_id}/update-emails")
async def change_emails(
    attendee_id: UUID,
    name: str = Form(""),
    primary_email: str = Form(""),
    additional_emails: str = Form(""),
    session: Session = Depends(get_session),
):
    """Replace an attendee's name, primary email and additional emails."""
    attendee = get_attendee_or_404(session, attendee_id)
    event_id = attendee.event_id

    try:
        update_attendee_details(
            session,
            attendee_id,
            name,
            primary_email,
            [e for e in additional_emails.splitlines() if e.strip()],
        )
    except (EmailConflictError, ValueError) as e:
        logger.error(f"Error updating attendee {attendee_id}: {e}")
        return event_redirect(event_id, str(e))

    return event_redirect(event_id)


@router.post("/attendees/{attendee_id}/delete")
async def remove_attendee(attendee_id: UUID, session: Session = Depends(get_session)):
    """Delete an attendee from their event."""
    get_attendee_or_404(session, attendee_id)
    event_id = delete_attendee(session, attendee_id)
    return event_redirect(event_id)


@router.post("/attendees/{attendee_id}/send")
async def send_invitation(attendee_id: UUID, session: Session = Depends(get_session)):
    """
    Send the invitation for one attendee.

    On failure the attendee stays unsent so the send can be retried.
    """
    attendee = get_attendee_or_404(session, attendee_id)
    event_id = attendee.event_id

    try:
        await invitations.send_one(session, attendee_id)
    except invitations.EventNotFoundError:
        raise HTTPException(status_code=404, detail="Associated event not found")
    except invitations.MissingRecipientError:
        return event_redirect(event_id, "Primary email missing for attendee to send invite.")
    except Exception as e:
        logger.error(f"Failed to send invitation to attendee {attendee_id}: {e}")
        return event_redirect(event_id, "Failed to send invitation. Check server logs.")

    return event_redirect(event_id)


@router.post("/events/{event_id}/send-invites")
async def send_pending_invitations(
    event_id: UUID,
    request: Request,
    session: Session = Depends(get_session),
):
    """
    Send invitations to every attendee who hasn't been sent one.

    Individual failures don't stop the batch; the response only reports
    whether everything went through.
    """
    get_event_or_404(session, event_id)

    stats = await invitations.send_all_pending(session, event_id)

    if wants_json(request):
        return JSONResponse(stats)
    if not stats["all_sent"]:
        return event_redirect(
            event_id,
            "Some invitations could not be sent. Please check server logs for details.",
        )
    return event_redirect(event_id)

"""Guest-facing routes addressed by RSVP token."""
from fastapi import APIRouter, Depends, Form, HTTPException
from sqlmodel import Session

from rsvp.core.database import get_session
from rsvp.guests.reconcile import AttendeeNotFoundError, parse_party_size
from rsvp.guests.responses import (
    InvalidResponseError,
    InvalidTokenError,
    get_attendee_by_token,
    record_response,
)
from rsvp.models import RSVP_YES

router = APIRouter(prefix="/rsvp", tags=["rsvp"])


@router.get("/{token}")
async def rsvp_details(token: str, session: Session = Depends(get_session)):
    """
    Show a guest their invitation and current response.

    Returns 400 for a malformed token and 404 for an unknown one.
    """
    try:
        attendee = get_attendee_by_token(session, token)
    except InvalidTokenError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AttendeeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {
        "name": attendee.name,
        "party_size": attendee.party_size,
        "rsvp": attendee.rsvp,
        "responded_at": attendee.responded_at,
        "event": attendee.event,
    }


@router.post("/{token}")
async def submit_rsvp(
    token: str,
    rsvp: str = Form(...),
    party_size: str | None = Form(None),
    session: Session = Depends(get_session),
):
    """Record a guest's yes/no answer and party size."""
    try:
        attendee = await record_response(session, token, rsvp, parse_party_size(party_size))
    except InvalidTokenError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AttendeeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidResponseError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "rsvp": attendee.rsvp,
        "party_size": attendee.party_size if attendee.rsvp == RSVP_YES else 0,
        "event_title": attendee.event.title if attendee.event else None,
    }

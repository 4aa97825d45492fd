"""Guest-facing RSVP lookups and responses, addressed by token."""
import logging

from sqlmodel import Session, select

from rsvp.guests.addresses import is_valid_token
from rsvp.guests.reconcile import AttendeeNotFoundError, clamp_party_size, touch
from rsvp.models import RSVP_NO, RSVP_YES, Attendee, utcnow
from rsvp.notify import push

logger = logging.getLogger(__name__)


class InvalidTokenError(ValueError):
    """Raised for tokens that are not 32 lowercase hex characters."""


class InvalidResponseError(ValueError):
    """Raised for an unknown RSVP value or a bad party size on "yes"."""


def get_attendee_by_token(session: Session, token: str) -> Attendee:
    """
    Look up an attendee by RSVP token.

    The token format is checked before touching the database.

    Raises:
        InvalidTokenError: Malformed token.
        AttendeeNotFoundError: No attendee holds this token.
    """
    if not is_valid_token(token):
        raise InvalidTokenError("Invalid token format")

    attendee = session.exec(select(Attendee).where(Attendee.token == token)).first()
    if not attendee:
        raise AttendeeNotFoundError("Invalid link")
    return attendee


async def record_response(
    session: Session, token: str, rsvp: str, party_size: int | None = None
) -> Attendee:
    """
    Record a guest's yes/no answer.

    A "yes" must carry a party size of at least 1, which replaces the
    stored one. A "no" keeps the stored party size. The organizer is
    notified afterwards; notification problems never fail the response.
    """
    attendee = get_attendee_by_token(session, token)

    if rsvp not in (RSVP_YES, RSVP_NO):
        raise InvalidResponseError(f"Unknown RSVP response: {rsvp!r}")

    if rsvp == RSVP_YES:
        if party_size is None or clamp_party_size(party_size) != party_size:
            raise InvalidResponseError('Invalid party size for RSVP "yes".')
        attendee.party_size = clamp_party_size(party_size)

    now = utcnow()
    attendee.rsvp = rsvp
    attendee.responded_at = now
    touch(attendee)
    session.add(attendee)
    session.commit()
    session.refresh(attendee)

    logger.info(f"Attendee {attendee.id} responded {rsvp!r} with party size {attendee.party_size}")

    await push.notify_admin(
        attendee.name,
        attendee.event.title if attendee.event else "",
        rsvp,
        attendee.party_size if rsvp == RSVP_YES else 0,
    )
    return attendee

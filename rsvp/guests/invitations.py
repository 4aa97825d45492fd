"""Send invitation emails to attendees and record who has been invited."""
import logging
from uuid import UUID

from sqlmodel import Session, select

from rsvp.core.config import settings
from rsvp.guests.addresses import decode_additional_emails, normalize_email
from rsvp.guests.reconcile import get_attendee, touch
from rsvp.models import Attendee, Event
from rsvp.notify import mailer

logger = logging.getLogger(__name__)


class MissingRecipientError(ValueError):
    """Raised when an attendee has no primary email to send to."""


class EventNotFoundError(LookupError):
    """Raised when an event id does not match a row."""


def get_event(session: Session, event_id: UUID) -> Event:
    event = session.get(Event, event_id)
    if not event:
        raise EventNotFoundError(f"Event {event_id} not found")
    return event


def invitation_recipients(attendee: Attendee) -> tuple[str, list[str]]:
    """
    Work out the To and Cc addresses for an attendee.

    A corrupt CC column reads as no CCs rather than failing the send.

    Raises:
        MissingRecipientError: The attendee has no primary email.
    """
    primary = normalize_email(attendee.email)
    if not primary:
        raise MissingRecipientError(f"Primary email missing for attendee ID {attendee.id}")
    return primary, decode_additional_emails(attendee.additional_emails, primary)


async def send_and_mark(
    session: Session,
    attendee: Attendee,
    event: Event,
    base_url: str,
    transport=None,
) -> None:
    """
    Send one invitation and mark the attendee as sent.

    The sent flag is committed only after the transport succeeds, so a
    failed send can be retried later.
    """
    transport = transport or mailer.send_invitation
    primary, cc_emails = invitation_recipients(attendee)

    await transport(attendee.name, primary, cc_emails, attendee.token, event, base_url)

    attendee.is_sent = True
    touch(attendee)
    session.add(attendee)
    session.commit()


async def send_one(
    session: Session,
    attendee_id: UUID,
    base_url: str | None = None,
    transport=None,
) -> Attendee:
    """
    Send the invitation for a single attendee.

    Raises:
        AttendeeNotFoundError: No such attendee.
        EventNotFoundError: The attendee's event is gone.
        MissingRecipientError: The attendee has no primary email.
        Exception: Whatever the mail transport raised; nothing is marked sent.
    """
    attendee = get_attendee(session, attendee_id)
    event = get_event(session, attendee.event_id)

    await send_and_mark(session, attendee, event, base_url or settings.base_url, transport)
    logger.info(f"Invitation sent to attendee {attendee_id}")
    return attendee


async def send_all_pending(
    session: Session,
    event_id: UUID,
    base_url: str | None = None,
    transport=None,
) -> dict:
    """
    Send invitations to every attendee of an event not yet invited.

    Sends run one after another. A failure for one attendee (no email,
    transport error) is logged and the batch moves on; attendees that
    succeed stay marked as sent regardless of later failures.

    Returns:
        dict with keys: sent, failed, all_sent
    """
    event = get_event(session, event_id)
    base_url = base_url or settings.base_url

    statement = (
        select(Attendee)
        .where(Attendee.event_id == event_id)
        .where(Attendee.is_sent == False)  # noqa: E712
        .order_by(Attendee.name)
    )
    pending = session.exec(statement).all()

    stats = {"sent": 0, "failed": 0, "all_sent": True}

    # TODO: add rate limiting and retry with backoff for large guest lists
    for attendee in pending:
        attendee_id = attendee.id
        try:
            await send_and_mark(session, attendee, event, base_url, transport)
            stats["sent"] += 1
        except MissingRecipientError as e:
            logger.warning(f"{e} during batch send. Skipping.")
            stats["failed"] += 1
        except Exception as e:
            session.rollback()
            logger.error(
                f"Failed to send batch invite for attendee {attendee_id}: {e}. "
                "Continuing with others."
            )
            stats["failed"] += 1

    stats["all_sent"] = stats["failed"] == 0
    logger.info(f"Batch send for event {event_id} completed: {stats}")
    return stats

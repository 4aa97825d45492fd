"""Attendee reconciliation: the create-or-merge write path for guest lists.

Guest records arrive from manual entry, pasted CSV/TSV lines, pasted
address headers, and copies from other events. They all funnel into
``reconcile_attendee``, which keys on (event, normalized primary email)
and merges into the existing row without clobbering what a guest has
already told us.
"""
import logging
from datetime import timedelta
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from rsvp.guests.addresses import (
    decode_additional_emails,
    derive_name,
    encode_additional_emails,
    is_valid_email,
    normalize_email,
)
from rsvp.guests.parser import GuestCandidate, parse_address_header, parse_guest_lines
from rsvp.models import Attendee, as_utc, utcnow

logger = logging.getLogger(__name__)


class AttendeeNotFoundError(LookupError):
    """Raised when an attendee id or token does not match a row."""


class EmailConflictError(ValueError):
    """Raised when an edit would reuse another attendee's primary email."""


def clamp_party_size(party_size) -> int:
    """Return the party size if it is a positive integer, else 1.

    Integral floats such as ``3.0`` count as integers.
    """
    if isinstance(party_size, float) and party_size.is_integer():
        party_size = int(party_size)
    if isinstance(party_size, bool) or not isinstance(party_size, int):
        return 1
    return party_size if party_size >= 1 else 1


def parse_party_size(raw: str | None) -> int | None:
    """Read a party size from form input. Unparseable input gives None."""
    try:
        return int((raw or "").strip())
    except ValueError:
        return None


def touch(attendee: Attendee) -> None:
    """Stamp last_modified, always moving it forward."""
    now = utcnow()
    previous = as_utc(attendee.last_modified)
    if previous is not None and now <= previous:
        now = previous + timedelta(microseconds=1)
    attendee.last_modified = now


def get_attendee(session: Session, attendee_id: UUID) -> Attendee:
    attendee = session.get(Attendee, attendee_id)
    if not attendee:
        raise AttendeeNotFoundError(f"Attendee {attendee_id} not found")
    return attendee


def find_attendee(session: Session, event_id: UUID, email: str) -> Attendee | None:
    """Look up an attendee by event and primary email (normalized here)."""
    statement = (
        select(Attendee)
        .where(Attendee.event_id == event_id)
        .where(Attendee.email == normalize_email(email))
    )
    return session.exec(statement).first()


def reconcile_attendee(
    session: Session,
    event_id: UUID,
    name: str | None,
    primary_email: str,
    party_size: int | None = None,
    additional_emails: list[str] | None = None,
) -> tuple[Attendee, bool]:
    """
    Create or merge an attendee keyed by (event, normalized primary email).

    New attendees get a fresh token, a party size of ``party_size`` when it
    is a positive integer (else 1), and the normalized CC list. A blank
    name is replaced by one derived from the email.

    Existing attendees are merged:
        - name is overwritten only by a non-blank name
        - party size changes only while the guest has not responded, and
          only when a value was passed
        - the CC list is replaced only when ``additional_emails`` is a list;
          None leaves it untouched, [] clears it
        - last_modified is stamped even when nothing else changed

    Returns:
        (attendee, created) where created is True for a new row.

    Raises:
        IntegrityError: A storage constraint was violated. The session is
            rolled back before re-raising.
    """
    email = normalize_email(primary_email)
    final_party_size = clamp_party_size(party_size)

    additional_json = None
    if additional_emails is not None:
        additional_json = encode_additional_emails(additional_emails, email)

    existing = find_attendee(session, event_id, email)

    if existing:
        if name and name.strip():
            existing.name = name

        if existing.rsvp is None:
            if party_size is not None and existing.party_size != final_party_size:
                existing.party_size = final_party_size
        elif party_size is not None and existing.party_size != final_party_size:
            logger.debug(
                f"Keeping party size {existing.party_size} for {email}: "
                f"guest already responded {existing.rsvp!r}"
            )

        if additional_emails is not None and additional_json != existing.additional_emails:
            existing.additional_emails = additional_json

        touch(existing)
        attendee = existing
        created = False
    else:
        attendee = Attendee(
            event_id=event_id,
            name=derive_name(email, name),
            email=email,
            party_size=final_party_size,
            additional_emails=additional_json,
        )
        created = True

    session.add(attendee)
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        logger.error(f"Failed to save attendee {email} for event {event_id}: {e}")
        raise

    session.refresh(attendee)
    return attendee, created


def import_candidates(
    session: Session, event_id: UUID, candidates: list[GuestCandidate]
) -> dict:
    """Reconcile parsed candidates into an event. Returns import statistics."""
    stats = {"created": 0, "updated": 0, "skipped": 0}

    for candidate in candidates:
        if not candidate.email:
            stats["skipped"] += 1
            continue
        _, created = reconcile_attendee(
            session,
            event_id,
            candidate.name,
            candidate.email,
            candidate.party_size,
            candidate.additional_emails,
        )
        if created:
            stats["created"] += 1
        else:
            stats["updated"] += 1

    logger.info(f"Imported attendees into event {event_id}: {stats}")
    return stats


def import_guest_lines(session: Session, event_id: UUID, text: str) -> dict:
    """Import pasted CSV/TSV lines. Lines without an email are skipped."""
    lines = [line for line in (text or "").splitlines() if line.strip()]
    candidates = parse_guest_lines(text)
    stats = import_candidates(session, event_id, candidates)
    stats["skipped"] += len(lines) - len(candidates)
    return stats


def import_address_header(session: Session, event_id: UUID, blob: str) -> dict:
    """
    Import a pasted address header.

    Raises:
        GuestListParseError: The header is malformed; nothing was imported.
    """
    return import_candidates(session, event_id, parse_address_header(blob))


def copy_attendees(session: Session, from_event_id: UUID, to_event_id: UUID) -> dict:
    """
    Copy every attendee of one event into another.

    Name, primary email, party size and the full CC list carry over. Guests
    already on the destination list are merged by the usual rules, so their
    responses and self-reported party sizes survive.
    """
    statement = select(Attendee).where(Attendee.event_id == from_event_id)
    sources = session.exec(statement).all()

    candidates = [
        GuestCandidate(
            name=source.name,
            email=source.email,
            party_size=source.party_size,
            additional_emails=decode_additional_emails(
                source.additional_emails, source.email
            ),
        )
        for source in sources
    ]
    return import_candidates(session, to_event_id, candidates)


def update_party_size(session: Session, attendee_id: UUID, party_size: int) -> bool:
    """
    Change an attendee's party size on behalf of the organizer.

    Returns False without writing when the guest has already responded.

    Raises:
        AttendeeNotFoundError: No such attendee.
        ValueError: party_size is not a positive integer.
    """
    attendee = get_attendee(session, attendee_id)

    if clamp_party_size(party_size) != party_size:
        raise ValueError(f"Invalid party size: {party_size!r}")

    if attendee.rsvp is not None:
        logger.warning(
            f"Not updating party size for attendee {attendee_id}: already responded"
        )
        return False

    reconcile_attendee(session, attendee.event_id, attendee.name, attendee.email, party_size)
    return True


def update_attendee_details(
    session: Session,
    attendee_id: UUID,
    name: str,
    primary_email: str,
    additional_emails: list[str],
) -> Attendee:
    """
    Replace an attendee's name, primary email and CC list.

    This is the organizer's explicit edit, so unlike reconciliation it may
    change the primary email and always replaces the CC list.

    Raises:
        AttendeeNotFoundError: No such attendee.
        ValueError: Blank name or invalid primary email.
        EmailConflictError: Another attendee of the event has that email.
    """
    attendee = get_attendee(session, attendee_id)

    new_name = (name or "").strip()
    new_email = normalize_email(primary_email)
    if not new_name:
        raise ValueError("Name cannot be empty.")
    if not is_valid_email(new_email):
        raise ValueError("Invalid or missing primary email format.")

    if new_email != attendee.email:
        conflict = find_attendee(session, attendee.event_id, new_email)
        if conflict and conflict.id != attendee.id:
            raise EmailConflictError(
                "This primary email is already in use by another attendee for this event."
            )

    attendee.name = new_name
    attendee.email = new_email
    attendee.additional_emails = encode_additional_emails(
        [e for e in additional_emails if is_valid_email(normalize_email(e))],
        new_email,
    )
    touch(attendee)

    session.add(attendee)
    session.commit()
    session.refresh(attendee)
    return attendee


def delete_attendee(session: Session, attendee_id: UUID) -> UUID:
    """Delete an attendee. Returns the event id it belonged to."""
    attendee = get_attendee(session, attendee_id)
    event_id = attendee.event_id
    session.delete(attendee)
    session.commit()
    logger.info(f"Attendee {attendee_id} deleted from event {event_id}")
    return event_id

"""Parse guest lists pasted by organizers into candidate attendees."""
import logging
import re
from dataclasses import dataclass
from email import errors as email_errors
from email.headerregistry import HeaderRegistry

from rsvp.guests.addresses import derive_name, is_valid_email

logger = logging.getLogger(__name__)

_QUOTE_CHARS = ("'", '"')
_header_registry = HeaderRegistry()
_LINE_BREAKS = re.compile(r"[\r\n]+")
_EMAIL_LIST_SEPARATORS = re.compile(r"[\r\n,]+")


class GuestListParseError(ValueError):
    """Raised when an address header blob cannot be parsed as a whole."""


@dataclass
class GuestCandidate:
    """A guest record produced by a parser, ready for reconciliation.

    ``additional_emails`` stays None unless the source really carries a CC
    list (only copy-between-events does), so reconciling the candidate
    leaves an organizer's hand-edited CC list alone.
    """
    name: str
    email: str
    party_size: int = 1
    additional_emails: list[str] | None = None


def split_fields(line: str, delimiter: str) -> list[str]:
    """
    Split one line on a delimiter, honoring single- or double-quoted spans.

    Quote characters are removed from the output and every field is
    trimmed. A quote opens a span anywhere in a field, so an apostrophe in
    an unquoted value swallows the rest of the line.
    """
    fields = []
    current = []
    quote_char = None

    for char in line:
        if quote_char is None and char in _QUOTE_CHARS:
            quote_char = char
        elif quote_char is not None and char == quote_char:
            quote_char = None
        elif quote_char is None and char == delimiter:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    fields.append("".join(current).strip())
    return fields


def parse_guest_line(line: str | None) -> GuestCandidate | None:
    """
    Parse one CSV or TSV line into a guest candidate.

    The delimiter is chosen per line: tab if the line has one, else comma.
    The first email-looking field is the guest's address, the number of
    email-looking fields is the party size (a couple listing two addresses
    is a party of two), and the first other non-empty field is the name.

    Returns None when the line holds no valid email.
    """
    if not line or not line.strip():
        return None

    delimiter = "\t" if "\t" in line else ","
    fields = split_fields(line, delimiter)

    emails = [f for f in fields if f and is_valid_email(f)]
    if not emails:
        return None

    name = next((f for f in fields if f and not is_valid_email(f)), None)
    email = emails[0]

    return GuestCandidate(
        name=name or derive_name(email),
        email=email,
        party_size=len(emails),
    )


def parse_guest_lines(text: str | None) -> list[GuestCandidate]:
    """Parse a pasted block of CSV/TSV lines, skipping lines with no email."""
    candidates = []
    for number, line in enumerate((text or "").splitlines(), start=1):
        candidate = parse_guest_line(line)
        if candidate is None:
            if line.strip():
                logger.warning(f"Skipping line {number} with no valid email: {line!r}")
            continue
        candidates.append(candidate)
    return candidates


def parse_email_list(raw: str | None) -> list[str]:
    """Split a free-text CC field on newlines and commas, keeping valid emails."""
    if not raw:
        return []
    entries = (e.strip() for e in _EMAIL_LIST_SEPARATORS.split(raw))
    return [e for e in entries if is_valid_email(e)]


def parse_address_header(blob: str | None) -> list[GuestCandidate]:
    """
    Parse the contents of a pasted "To:" style header.

    Handles ``"Display Name" <addr@host>`` entries separated by commas.
    Line breaks are folded into spaces, so entries listed one per line
    still need a comma between them or the blob is malformed. Every entry
    with an address becomes one candidate with party size 1; names fall
    back to one derived from the address.

    Raises:
        GuestListParseError: The header is malformed. Nothing is returned
            for a malformed blob, even if some entries were readable.
    """
    if not blob or not blob.strip():
        return []

    try:
        header = _header_registry("to", _LINE_BREAKS.sub(" ", blob))
        addresses = header.addresses
    except (email_errors.HeaderParseError, IndexError, ValueError) as e:
        raise GuestListParseError(f"Could not parse address list: {e}") from e

    if header.defects:
        details = "; ".join(str(d) for d in header.defects)
        raise GuestListParseError(f"Malformed address list: {details}")

    candidates = []
    for address in addresses:
        addr_spec = address.addr_spec
        if not address.username or addr_spec in ("", "<>"):
            continue
        candidates.append(
            GuestCandidate(
                name=derive_name(addr_spec, address.display_name),
                email=addr_spec,
                party_size=1,
            )
        )
    return candidates

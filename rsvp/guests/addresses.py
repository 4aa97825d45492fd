"""Email address normalization, RSVP tokens, and the CC-list codec."""
import json
import logging
import re
import secrets

logger = logging.getLogger(__name__)

# local part, "@", domain containing at least one dot. No RFC validation.
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
TOKEN_PATTERN = re.compile(r"^[0-9a-f]{32}$")

_DERIVED_NAME_STRIP = re.compile(r"[.\"']")


def normalize_email(raw: str | None) -> str:
    """Trim surrounding whitespace and lowercase."""
    return (raw or "").strip().lower()


def is_valid_email(value: str | None) -> bool:
    """Check the simplified ``local@domain.tld`` shape used for filtering."""
    return bool(value) and EMAIL_PATTERN.match(value) is not None


def derive_name(address: str | None, name: str | None = None) -> str:
    """
    Pick a display name for an address.

    A provided non-blank name is returned untouched. Otherwise the part of
    the address before the last "@" is used with periods and quotes turned
    into spaces, so ``first.last@example.com`` becomes ``first last``.
    An address without "@" is returned as-is.
    """
    if name and name.strip():
        return name
    if not address:
        return ""

    at_index = address.rfind("@")
    if at_index == -1:
        return address

    return _DERIVED_NAME_STRIP.sub(" ", address[:at_index]).strip()


def generate_token() -> str:
    """Generate a 32-character hex RSVP token from 16 random bytes."""
    return secrets.token_hex(16)


def is_valid_token(token: str | None) -> bool:
    """Check that a token is exactly 32 lowercase hex characters."""
    return bool(token) and TOKEN_PATTERN.match(token) is not None


def normalize_additional_emails(emails, primary_email: str) -> list[str]:
    """
    Normalize a CC list against its primary address.

    Entries are trimmed and lowercased, blanks and the primary address are
    dropped, and duplicates are removed keeping first-seen order.
    """
    primary = normalize_email(primary_email)
    seen = []
    for email in emails:
        normalized = normalize_email(email)
        if normalized and normalized != primary and normalized not in seen:
            seen.append(normalized)
    return seen


def encode_additional_emails(emails, primary_email: str) -> str | None:
    """Serialize a CC list for storage. An empty list is stored as None."""
    normalized = normalize_additional_emails(emails, primary_email)
    if not normalized:
        return None
    return json.dumps(normalized)


def decode_additional_emails(raw: str | None, primary_email: str = "") -> list[str]:
    """
    Read a stored CC list.

    Corrupt JSON or a non-array value is logged and read as an empty list.
    """
    if not raw:
        return []

    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.error(f"Could not parse additional emails {raw!r}: {e}")
        return []

    if not isinstance(parsed, list):
        logger.warning(f"Additional emails value is not a list: {raw!r}")
        return []

    return normalize_additional_emails(
        [e for e in parsed if isinstance(e, str)], primary_email
    )

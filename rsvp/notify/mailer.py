"""Invitation email rendering and SMTP delivery."""
import asyncio
import html
import logging
import re
import smtplib
import ssl
from datetime import UTC
from email.message import EmailMessage
from email.utils import formataddr
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from jinja2 import Environment

from rsvp.core.config import settings
from rsvp.models import Event, as_utc

logger = logging.getLogger(__name__)

_env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)

INVITATION_TEMPLATE = _env.from_string(
    """\
<p>Hi {{ name }},</p>
<p>You are invited to <strong>{{ event.title }}</strong>.</p>
<hr style="margin: 20px 0;">
<p><strong>When:</strong><br>{{ when }}</p>
{% if event.location_name or event.location_href %}
<p><strong>Where:</strong><br>
{% if event.location_href %}
<a href="{{ event.location_href }}" target="_blank">{{ event.location_name or event.location_href }}</a>
{% else %}
{{ event.location_name }}
{% endif %}
</p>
{% endif %}
{% if details %}
<p><strong>Event Details:</strong></p>
<div style="white-space: pre-wrap; padding: 10px; border: 1px solid #eeeeee;">{{ details }}</div>
{% endif %}
<hr style="margin: 20px 0;">
<p>Please RSVP here: <a href="{{ rsvp_link }}">{{ rsvp_link }}</a></p>
"""
)

_BR = re.compile(r"<br\s*/?>", re.IGNORECASE)
_PARAGRAPH_BREAK = re.compile(r"</p>\s*<p>", re.IGNORECASE)
_TAG = re.compile(r"<[^>]+>")


def html_to_plain_text(content: str | None) -> str:
    """Convert simple HTML to plain text for the text/plain email part."""
    if not content:
        return ""
    text = _BR.sub("\n", content)
    text = _PARAGRAPH_BREAK.sub("\n\n", text)
    text = _TAG.sub("", text)
    return html.unescape(text).replace("\xa0", " ").strip()


def _event_zone(event: Event):
    if not event.timezone:
        return UTC
    try:
        return ZoneInfo(event.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {event.timezone!r} on event {event.id}, using UTC")
        return UTC


def format_when(event: Event) -> str:
    """Human-readable start (and end) time in the event's timezone."""
    zone = _event_zone(event)
    start = as_utc(event.start_time).astimezone(zone)
    when = start.strftime("%A, %B %d, %Y at %I:%M %p %Z")

    if event.end_time:
        end = as_utc(event.end_time).astimezone(zone)
        if end.date() == start.date():
            when += f" to {end.strftime('%I:%M %p')}"
        else:
            when += f" to {end.strftime('%A, %B %d, %Y at %I:%M %p %Z')}"
    return when


def build_invitation(
    name: str,
    primary_email: str,
    cc_emails: list[str],
    token: str,
    event: Event,
    base_url: str,
) -> EmailMessage:
    """Build the invitation message with HTML and plain-text parts."""
    base = base_url.rstrip("/")
    body = INVITATION_TEMPLATE.render(
        name=name,
        event=event,
        when=format_when(event),
        details=html_to_plain_text(event.description),
        rsvp_link=f"{base}/rsvp/{token}",
    )

    message = EmailMessage()
    message["Subject"] = f"Invitation: {event.title}"
    message["From"] = settings.smtp_from or settings.smtp_user
    message["To"] = formataddr((name, primary_email))
    if cc_emails:
        message["Cc"] = ", ".join(cc_emails)
    message.set_content(html_to_plain_text(body))
    message.add_alternative(body, subtype="html")
    return message


def _deliver(message: EmailMessage) -> None:
    with smtplib.SMTP(
        settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout_seconds
    ) as server:
        if settings.smtp_use_tls:
            server.starttls(context=ssl.create_default_context())
        server.login(settings.smtp_user, settings.smtp_password)
        server.send_message(message)


async def send_invitation(
    name: str,
    primary_email: str,
    cc_emails: list[str],
    token: str,
    event: Event,
    base_url: str,
) -> None:
    """
    Send an invitation email.

    When SMTP credentials are not configured the message is logged instead
    of sent.

    Raises:
        smtplib.SMTPException, OSError: Delivery failed.
    """
    message = build_invitation(name, primary_email, cc_emails, token, event, base_url)
    recipients = f"To: {primary_email}" + (f", Cc: {', '.join(cc_emails)}" if cc_emails else "")
    logger.info(f'Preparing invite {recipients} for event "{event.title}"')

    if not settings.smtp_configured:
        logger.info(f"SMTP not configured. Mock sending invite {recipients}: {message['Subject']}")
        return

    try:
        await asyncio.to_thread(_deliver, message)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f'Failed to send invite {recipients} for event "{event.title}": {e}')
        raise

    logger.info(f"Invite sent {recipients}")

"""Push notifications to the organizer via ntfy."""
import asyncio
import logging

import requests

from rsvp.core.config import settings

logger = logging.getLogger(__name__)


def _post(url: str, message: str, headers: dict, auth) -> None:
    response = requests.post(
        url,
        data=message.encode("utf-8"),
        headers=headers,
        auth=auth,
        timeout=settings.ntfy_timeout_seconds,
    )
    response.raise_for_status()


async def notify_admin(name: str, event_title: str, rsvp: str, party_size: int) -> None:
    """
    Tell the organizer that a guest responded.

    Fire-and-forget: failures are logged and never raised.
    """
    if not settings.ntfy_topic:
        return

    url = f"{settings.ntfy_base_url.rstrip('/')}/{settings.ntfy_topic}"
    message = f"Event: {event_title}\nResponse: {rsvp}\nParty Size: {party_size}"
    headers = {"Title": f"RSVP: {name}"}
    auth = None
    if settings.ntfy_user and settings.ntfy_password:
        auth = (settings.ntfy_user, settings.ntfy_password)

    try:
        await asyncio.to_thread(_post, url, message, headers, auth)
    except (requests.RequestException, UnicodeError) as e:
        logger.error(f"ntfy notification failed for {name}: {e}")

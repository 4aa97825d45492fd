from rsvp.models.attendee import RSVP_NO, RSVP_YES, Attendee, as_utc, utcnow
from rsvp.models.event import Event

__all__ = ["Event", "Attendee", "RSVP_YES", "RSVP_NO", "as_utc", "utcnow"]

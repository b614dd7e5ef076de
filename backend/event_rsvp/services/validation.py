"""Form checks run before any write reaches a repository."""
import re
from datetime import datetime
from typing import Optional

from event_rsvp.errors import ValidationError
from event_rsvp.timeutil import as_utc, utcnow

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields"


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email or ""))


def check_event_form(
    title: Optional[str],
    description: Optional[str],
    event_date: Optional[datetime],
    location: Optional[str],
    end_date: Optional[datetime] = None,
    max_attendees: Optional[int] = None,
    require_future: bool = True,
    now: Optional[datetime] = None,
) -> None:
    """Required fields, start in the future, end strictly after start."""
    if not title or not description or not event_date or not location:
        raise ValidationError(REQUIRED_FIELDS_MESSAGE)

    start = as_utc(event_date)
    if require_future and start < as_utc(now or utcnow()):
        raise ValidationError("Event date must be in the future")
    if end_date and as_utc(end_date) <= start:
        raise ValidationError("End date must be after the start date")
    # 0 and None both mean no limit
    if max_attendees is not None and max_attendees < 0:
        raise ValidationError("Maximum attendees must be a positive number")


def check_rsvp_form(attendee_name: Optional[str], attendee_email: Optional[str]) -> None:
    if not attendee_name or not attendee_email:
        raise ValidationError(REQUIRED_FIELDS_MESSAGE)
    if not is_valid_email(attendee_email):
        raise ValidationError("Please enter a valid email address")

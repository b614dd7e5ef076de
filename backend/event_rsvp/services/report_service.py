"""Attendance reporting and CSV export — pure functions over RSVP records."""
import csv
import io
import math
import re
from datetime import datetime
from typing import Optional

import pytz

from event_rsvp.config import settings
from event_rsvp.models.rsvp import RSVPStatus
from event_rsvp.schemas.event import EventRecord
from event_rsvp.schemas.rsvp import AttendeeReport, EventStats, RSVPRecord
from event_rsvp.timeutil import as_utc

RECENT_RSVP_LIMIT = 5
CSV_HEADERS = ["Name", "Email", "Status", "Notes", "RSVP Date"]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def count_statuses(rsvps: list[RSVPRecord]) -> EventStats:
    statuses = [r.status for r in rsvps]
    return EventStats(
        total=len(statuses),
        confirmed=statuses.count(RSVPStatus.confirmed),
        pending=statuses.count(RSVPStatus.pending),
        declined=statuses.count(RSVPStatus.declined),
    )


def confirmation_rate(stats: EventStats) -> int:
    """Share of RSVPs that are confirmed, as a whole percentage."""
    if stats.total == 0:
        return 0
    return _round_half_up(stats.confirmed / stats.total * 100)


def capacity_used(stats: EventStats, max_attendees: int | None) -> int:
    """Confirmed RSVPs against the limit. Over-capacity events exceed 100."""
    if not max_attendees:
        return 0
    return _round_half_up(stats.confirmed / max_attendees * 100)


def generate_attendee_report(rsvps: list[RSVPRecord], event: EventRecord) -> AttendeeReport:
    stats = count_statuses(rsvps)
    recent = sorted(rsvps, key=lambda r: as_utc(r.created_at), reverse=True)[:RECENT_RSVP_LIMIT]
    return AttendeeReport(
        stats=stats,
        confirmation_rate=confirmation_rate(stats),
        capacity_used=capacity_used(stats, event.max_attendees),
        recent_rsvps=recent,
    )


def format_short_date(value: datetime, tz_name: Optional[str] = None) -> str:
    """M/D/YYYY in the display timezone."""
    local = as_utc(value).astimezone(pytz.timezone(tz_name or settings.DISPLAY_TIMEZONE))
    return f"{local.month}/{local.day}/{local.year}"


def generate_csv(rsvps: list[RSVPRecord], tz_name: Optional[str] = None) -> str:
    """Attendee list as CSV, every field quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for rsvp in rsvps:
        status = rsvp.status.value
        writer.writerow([
            rsvp.attendee_name,
            rsvp.attendee_email,
            status[:1].upper() + status[1:],
            rsvp.notes or "",
            format_short_date(rsvp.created_at, tz_name),
        ])
    return buffer.getvalue().rstrip("\n")


def export_filename(event: EventRecord) -> str:
    return re.sub(r"[^a-z0-9]", "_", event.title, flags=re.IGNORECASE).lower() + "_attendees.csv"

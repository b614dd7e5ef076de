"""Row → record mapping for events, RSVPs and user profiles."""
from event_rsvp.models.event import Event
from event_rsvp.models.profile import Profile
from event_rsvp.models.rsvp import RSVP
from event_rsvp.schemas.event import EventRecord
from event_rsvp.schemas.rsvp import RSVPRecord
from event_rsvp.schemas.user import UserRecord, UserWithStats


def to_event_record(row: Event) -> EventRecord:
    return EventRecord.model_validate(row)


def to_event_records(rows: list[Event]) -> list[EventRecord]:
    return [to_event_record(row) for row in rows]


def to_rsvp_record(row: RSVP) -> RSVPRecord:
    return RSVPRecord.model_validate(row)


def to_rsvp_records(rows: list[RSVP]) -> list[RSVPRecord]:
    return [to_rsvp_record(row) for row in rows]


def to_user_record(profile: Profile) -> UserRecord:
    return UserRecord.model_validate(profile)


def to_user_with_stats(profile: Profile, events_created: int = 0) -> UserWithStats:
    return UserWithStats(
        id=profile.id,
        email=profile.email,
        first_name=profile.first_name,
        last_name=profile.last_name,
        role=profile.role,
        events_created=events_created,
        last_login=profile.updated_at,
        created_at=profile.created_at,
    )

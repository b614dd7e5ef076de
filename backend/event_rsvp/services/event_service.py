"""Event repository — CRUD, status changes and public visibility.

Reads degrade to empty results when the events table has not been
provisioned; writes surface that as StorageNotProvisionedError. Any other
storage failure is rolled back and re-raised as OperationFailedError.
"""
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from event_rsvp.config import settings
from event_rsvp.errors import (
    InvalidStatusTransitionError,
    NotFoundError,
    wrap_write_error,
)
from event_rsvp.models.event import Event, EventStatus
from event_rsvp.schemas.event import EventCreate, EventRecord, EventUpdate
from event_rsvp.services.mapper import to_event_record, to_event_records
from event_rsvp.services.storage import degrade_or_raise
from event_rsvp.timeutil import utcnow

logger = logging.getLogger(__name__)

# Consulted only when ENFORCE_STATUS_TRANSITIONS is on.
EVENT_STATUS_TRANSITIONS: dict[EventStatus, set[EventStatus]] = {
    EventStatus.draft: {EventStatus.published, EventStatus.cancelled},
    EventStatus.published: {EventStatus.draft, EventStatus.cancelled, EventStatus.completed},
    EventStatus.cancelled: {EventStatus.draft},
    EventStatus.completed: set(),
}


def can_transition(current: EventStatus, requested: EventStatus) -> bool:
    """Whether the lifecycle table allows current → requested."""
    return current == requested or requested in EVENT_STATUS_TRANSITIONS[current]


def list_events(db: Session, owner_id: Optional[str] = None) -> list[EventRecord]:
    """All events (or one owner's), newest first."""
    try:
        query = db.query(Event)
        if owner_id:
            query = query.filter(Event.created_by == owner_id)
        rows = query.order_by(Event.created_at.desc()).all()
    except SQLAlchemyError as exc:
        degrade_or_raise(db, exc, "fetch events", "events")
        return []
    return to_event_records(rows)


def get_event(db: Session, event_id: str) -> Optional[EventRecord]:
    """Single event, or None when it does not exist."""
    try:
        row = db.query(Event).filter(Event.id == event_id).first()
    except SQLAlchemyError as exc:
        degrade_or_raise(db, exc, "fetch event", "events")
        return None
    return to_event_record(row) if row else None


def list_public_events(db: Session) -> list[EventRecord]:
    """Public, published events in start order."""
    try:
        rows = (
            db.query(Event)
            .filter(Event.is_public.is_(True), Event.status == EventStatus.published)
            .order_by(Event.event_date.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        degrade_or_raise(db, exc, "fetch public events", "events")
        return []
    return to_event_records(rows)


def create_event(db: Session, data: EventCreate, owner_id: str) -> EventRecord:
    """Persist a new event. Status is always draft, whatever the input says."""
    event = Event(
        title=data.title,
        description=data.description,
        event_date=data.event_date,
        end_date=data.end_date or None,
        location=data.location,
        max_attendees=data.max_attendees or None,
        is_public=data.is_public,
        status=EventStatus.draft,
        created_by=owner_id,
    )
    try:
        db.add(event)
        db.commit()
        db.refresh(event)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to create event '%s'", data.title)
        raise wrap_write_error("create event", exc) from exc
    logger.info("Created event '%s' (%s) by owner %s", event.title, event.id, owner_id)
    return to_event_record(event)


def _load_for_write(db: Session, event_id: str, operation: str) -> Event:
    try:
        event = db.query(Event).filter(Event.id == event_id).first()
    except SQLAlchemyError as exc:
        db.rollback()
        raise wrap_write_error(operation, exc) from exc
    if not event:
        raise NotFoundError("Event not found")
    return event


def update_event(db: Session, event_id: str, data: EventUpdate) -> EventRecord:
    """Write only the fields present in the partial input."""
    event = _load_for_write(db, event_id, "update event")
    updates = data.model_dump(exclude_unset=True)

    for field in ("title", "description", "event_date", "location"):
        # Blank values leave the stored field untouched
        if updates.get(field):
            setattr(event, field, updates[field])
    if "end_date" in updates:
        event.end_date = updates["end_date"] or None
    if "max_attendees" in updates:
        event.max_attendees = updates["max_attendees"] or None
    if updates.get("is_public") is not None:
        event.is_public = updates["is_public"]
    event.updated_at = utcnow()

    try:
        db.commit()
        db.refresh(event)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to update event %s", event_id)
        raise wrap_write_error("update event", exc) from exc
    logger.info("Updated event %s (%s)", event_id, ", ".join(sorted(updates)) or "no fields")
    return to_event_record(event)


def update_event_status(db: Session, event_id: str, new_status: EventStatus) -> EventRecord:
    """Overwrite the status; the lifecycle table applies only when enforced."""
    event = _load_for_write(db, event_id, "update event status")
    new_status = EventStatus(new_status)
    if settings.ENFORCE_STATUS_TRANSITIONS and not can_transition(event.status, new_status):
        raise InvalidStatusTransitionError(
            f"Cannot change event status from {event.status.value} to {new_status.value}"
        )

    previous = event.status
    event.status = new_status
    event.updated_at = utcnow()
    try:
        db.commit()
        db.refresh(event)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to update status of event %s", event_id)
        raise wrap_write_error("update event status", exc) from exc
    logger.info("Event %s status %s -> %s", event_id, previous.value, new_status.value)
    return to_event_record(event)


def delete_event(db: Session, event_id: str) -> None:
    """Remove the event row. RSVPs are left to the store's own rules."""
    event = _load_for_write(db, event_id, "delete event")
    try:
        db.delete(event)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to delete event %s", event_id)
        raise wrap_write_error("delete event", exc) from exc
    logger.info("Deleted event %s", event_id)

"""RSVP repository — registrations against one event.

Duplicate detection and the capacity limit are check-then-act: two
concurrent submissions can both pass the checks. The unique
(event_id, attendee_email) constraint on the table catches the duplicate
case at insert time; capacity has no storage-level guard.
"""
import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from event_rsvp.errors import (
    AlreadyRegisteredError,
    CapacityReachedError,
    NotFoundError,
    wrap_write_error,
)
from event_rsvp.models.event import EventStatus
from event_rsvp.models.rsvp import RSVP, RSVPStatus
from event_rsvp.schemas.event import EventRecord
from event_rsvp.schemas.rsvp import EventStats, RSVPCreate, RSVPRecord
from event_rsvp.services import event_service
from event_rsvp.services.mapper import to_rsvp_record, to_rsvp_records
from event_rsvp.services.storage import degrade_or_raise
from event_rsvp.services.validation import check_rsvp_form
from event_rsvp.timeutil import utcnow

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL_CONSTRAINT = "uq_rsvps_event_email"


def _is_duplicate_email(exc: IntegrityError) -> bool:
    text = str(exc.orig)
    return DUPLICATE_EMAIL_CONSTRAINT in text or "rsvps.attendee_email" in text


def list_rsvps_for_event(db: Session, event_id: str) -> list[RSVPRecord]:
    """All RSVPs for an event, newest first."""
    try:
        rows = (
            db.query(RSVP)
            .filter(RSVP.event_id == event_id)
            .order_by(RSVP.created_at.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        degrade_or_raise(db, exc, "fetch RSVPs", "rsvps")
        return []
    return to_rsvp_records(rows)


def find_rsvp_by_email(db: Session, event_id: str, email: str) -> Optional[RSVPRecord]:
    try:
        row = (
            db.query(RSVP)
            .filter(RSVP.event_id == event_id, RSVP.attendee_email == email)
            .first()
        )
    except SQLAlchemyError as exc:
        degrade_or_raise(db, exc, "fetch RSVP", "rsvps")
        return None
    return to_rsvp_record(row) if row else None


def create_rsvp(db: Session, event_id: str, data: RSVPCreate) -> RSVPRecord:
    """Register an attendee. New RSVPs are confirmed immediately."""
    if find_rsvp_by_email(db, event_id, data.attendee_email):
        raise AlreadyRegisteredError()

    rsvp = RSVP(
        event_id=event_id,
        attendee_name=data.attendee_name,
        attendee_email=data.attendee_email,
        status=RSVPStatus.confirmed,
        notes=data.notes or None,
    )
    try:
        db.add(rsvp)
        db.commit()
        db.refresh(rsvp)
    except IntegrityError as exc:
        db.rollback()
        if not _is_duplicate_email(exc):
            logger.exception("Failed to create RSVP for event %s", event_id)
            raise wrap_write_error("create RSVP", exc) from exc
        # Lost the race against a concurrent submission for the same email
        logger.info("Duplicate RSVP rejected by storage for event %s", event_id)
        raise AlreadyRegisteredError() from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to create RSVP for event %s", event_id)
        raise wrap_write_error("create RSVP", exc) from exc
    logger.info("RSVP %s created for event %s", rsvp.id, event_id)
    return to_rsvp_record(rsvp)


def _load_for_write(db: Session, rsvp_id: str, operation: str) -> RSVP:
    try:
        rsvp = db.query(RSVP).filter(RSVP.id == rsvp_id).first()
    except SQLAlchemyError as exc:
        db.rollback()
        raise wrap_write_error(operation, exc) from exc
    if not rsvp:
        raise NotFoundError("RSVP not found")
    return rsvp


def get_rsvp(db: Session, rsvp_id: str) -> Optional[RSVPRecord]:
    try:
        row = db.query(RSVP).filter(RSVP.id == rsvp_id).first()
    except SQLAlchemyError as exc:
        degrade_or_raise(db, exc, "fetch RSVP", "rsvps")
        return None
    return to_rsvp_record(row) if row else None


def update_rsvp_status(db: Session, rsvp_id: str, new_status: RSVPStatus) -> RSVPRecord:
    rsvp = _load_for_write(db, rsvp_id, "update RSVP status")
    rsvp.status = RSVPStatus(new_status)
    rsvp.updated_at = utcnow()
    try:
        db.commit()
        db.refresh(rsvp)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to update RSVP %s", rsvp_id)
        raise wrap_write_error("update RSVP status", exc) from exc
    logger.info("RSVP %s status set to %s", rsvp_id, rsvp.status.value)
    return to_rsvp_record(rsvp)


def delete_rsvp(db: Session, rsvp_id: str) -> None:
    rsvp = _load_for_write(db, rsvp_id, "delete RSVP")
    try:
        db.delete(rsvp)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to delete RSVP %s", rsvp_id)
        raise wrap_write_error("delete RSVP", exc) from exc
    logger.info("Deleted RSVP %s", rsvp_id)


def event_stats(db: Session, event_id: str) -> EventStats:
    """Counts by status. All zero when the table is missing."""
    try:
        statuses = [
            status for (status,) in db.query(RSVP.status).filter(RSVP.event_id == event_id).all()
        ]
    except SQLAlchemyError as exc:
        degrade_or_raise(db, exc, "fetch event stats", "rsvps")
        return EventStats()
    return EventStats(
        total=len(statuses),
        confirmed=statuses.count(RSVPStatus.confirmed),
        pending=statuses.count(RSVPStatus.pending),
        declined=statuses.count(RSVPStatus.declined),
    )


def count_rsvps(db: Session) -> int:
    """RSVPs across every event in one count. Zero when the table is missing."""
    try:
        return db.query(func.count(RSVP.id)).scalar() or 0
    except SQLAlchemyError as exc:
        degrade_or_raise(db, exc, "count RSVPs", "rsvps")
        return 0


def filter_rsvps(
    rsvps: list[RSVPRecord],
    search: Optional[str] = None,
    status: Optional[RSVPStatus] = None,
) -> list[RSVPRecord]:
    """Case-insensitive name/email search plus an optional status filter."""
    result = rsvps
    if search:
        needle = search.lower()
        result = [
            r for r in result
            if needle in r.attendee_name.lower() or needle in r.attendee_email.lower()
        ]
    if status:
        result = [r for r in result if r.status == status]
    return result


def get_public_event(db: Session, event_id: str) -> Optional[EventRecord]:
    """The event if it may be shown on the public page, else None."""
    event = event_service.get_event(db, event_id)
    if not event or not event.is_public or event.status != EventStatus.published:
        return None
    return event


def submit_public_rsvp(db: Session, event_id: str, data: RSVPCreate) -> RSVPRecord:
    """Public registration: form checks, visibility, capacity, then create."""
    check_rsvp_form(data.attendee_name, data.attendee_email)

    event = get_public_event(db, event_id)
    if not event:
        raise NotFoundError("Event not found or not available")

    if event.max_attendees:
        stats = event_stats(db, event_id)
        if stats.confirmed >= event.max_attendees:
            logger.info("Event %s is full (%d/%d)", event_id, stats.confirmed, event.max_attendees)
            raise CapacityReachedError()

    return create_rsvp(db, event_id, data)

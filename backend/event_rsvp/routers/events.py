"""Event API routes for signed-in organisers — events and their attendees."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from event_rsvp.database import get_db
from event_rsvp.dependencies import check_event_access, get_current_user
from event_rsvp.errors import NotFoundError
from event_rsvp.models.event import EventStatus
from event_rsvp.models.rsvp import RSVPStatus
from event_rsvp.schemas.event import EventCreate, EventRecord, EventStatusUpdate, EventUpdate
from event_rsvp.schemas.rsvp import AttendeeReport, EventStats, RSVPRecord
from event_rsvp.schemas.user import UserRecord
from event_rsvp.services import event_service, report_service, rsvp_service
from event_rsvp.services.validation import check_event_form

logger = logging.getLogger(__name__)
router = APIRouter()


def _managed_event(db: Session, event_id: str, user: UserRecord) -> EventRecord:
    event = event_service.get_event(db, event_id)
    if not event:
        raise NotFoundError("Event not found")
    check_event_access(event, user)
    return event


@router.get("/", response_model=list[EventRecord])
def list_my_events(db: Session = Depends(get_db), user: UserRecord = Depends(get_current_user)):
    """Events owned by the signed-in user, newest first."""
    return event_service.list_events(db, owner_id=user.id)


@router.post("/", response_model=EventRecord, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    db: Session = Depends(get_db),
    user: UserRecord = Depends(get_current_user),
):
    check_event_form(
        payload.title, payload.description, payload.event_date, payload.location,
        end_date=payload.end_date,
        max_attendees=payload.max_attendees,
    )
    return event_service.create_event(db, payload, owner_id=user.id)


@router.get("/{event_id}", response_model=EventRecord)
def get_event(event_id: str, db: Session = Depends(get_db), user: UserRecord = Depends(get_current_user)):
    return _managed_event(db, event_id, user)


@router.put("/{event_id}", response_model=EventRecord)
def update_event(
    event_id: str,
    payload: EventUpdate,
    db: Session = Depends(get_db),
    user: UserRecord = Depends(get_current_user),
):
    """Edit an event. The future-date rule only applies while it is a draft."""
    event = _managed_event(db, event_id, user)
    fields = payload.model_dump(exclude_unset=True)
    check_event_form(
        fields.get("title", event.title),
        fields.get("description", event.description),
        fields.get("event_date", event.event_date),
        fields.get("location", event.location),
        end_date=fields.get("end_date", event.end_date),
        max_attendees=fields.get("max_attendees"),
        require_future=event.status == EventStatus.draft,
    )
    return event_service.update_event(db, event_id, payload)


@router.patch("/{event_id}/status", response_model=EventRecord)
def update_event_status(
    event_id: str,
    payload: EventStatusUpdate,
    db: Session = Depends(get_db),
    user: UserRecord = Depends(get_current_user),
):
    _managed_event(db, event_id, user)
    return event_service.update_event_status(db, event_id, payload.status)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(event_id: str, db: Session = Depends(get_db), user: UserRecord = Depends(get_current_user)):
    _managed_event(db, event_id, user)
    event_service.delete_event(db, event_id)


@router.get("/{event_id}/rsvps", response_model=list[RSVPRecord])
def list_event_rsvps(
    event_id: str,
    search: Optional[str] = Query(None),
    status_filter: Optional[RSVPStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    user: UserRecord = Depends(get_current_user),
):
    """Attendees of an event, optionally searched and filtered by status."""
    _managed_event(db, event_id, user)
    rsvps = rsvp_service.list_rsvps_for_event(db, event_id)
    return rsvp_service.filter_rsvps(rsvps, search=search, status=status_filter)


@router.get("/{event_id}/stats", response_model=EventStats)
def get_event_stats(event_id: str, db: Session = Depends(get_db), user: UserRecord = Depends(get_current_user)):
    _managed_event(db, event_id, user)
    return rsvp_service.event_stats(db, event_id)


@router.get("/{event_id}/report", response_model=AttendeeReport)
def get_attendee_report(event_id: str, db: Session = Depends(get_db), user: UserRecord = Depends(get_current_user)):
    event = _managed_event(db, event_id, user)
    rsvps = rsvp_service.list_rsvps_for_event(db, event_id)
    return report_service.generate_attendee_report(rsvps, event)


@router.get("/{event_id}/export")
def export_attendees(
    event_id: str,
    search: Optional[str] = Query(None),
    status_filter: Optional[RSVPStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    user: UserRecord = Depends(get_current_user),
):
    """Download the (filtered) attendee list as CSV."""
    event = _managed_event(db, event_id, user)
    rsvps = rsvp_service.filter_rsvps(
        rsvp_service.list_rsvps_for_event(db, event_id), search=search, status=status_filter,
    )
    filename = report_service.export_filename(event)
    logger.info("Exporting %d attendees of event %s", len(rsvps), event_id)
    return Response(
        content=report_service.generate_csv(rsvps),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

"""Public routes — no session required. Browse published events and RSVP."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from event_rsvp.database import get_db
from event_rsvp.errors import NotFoundError
from event_rsvp.schemas.event import EventRecord
from event_rsvp.schemas.public import PublicEventOut, RegistrationLookup
from event_rsvp.schemas.rsvp import RSVPCreate, RSVPRecord
from event_rsvp.services import event_service, rsvp_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _matches(event: EventRecord, search: str) -> bool:
    needle = search.lower()
    return any(needle in (value or "").lower() for value in (event.title, event.description, event.location))


@router.get("/events", response_model=list[PublicEventOut])
def list_public_events(search: Optional[str] = Query(None), db: Session = Depends(get_db)):
    """Published public events in start order, each with its RSVP counts."""
    events = event_service.list_public_events(db)
    if search:
        events = [e for e in events if _matches(e, search)]
    return [
        PublicEventOut(**e.model_dump(), stats=rsvp_service.event_stats(db, e.id))
        for e in events
    ]


@router.get("/events/{event_id}", response_model=PublicEventOut)
def get_public_event(event_id: str, db: Session = Depends(get_db)):
    event = rsvp_service.get_public_event(db, event_id)
    if not event:
        raise NotFoundError("Event not found or not available")
    return PublicEventOut(**event.model_dump(), stats=rsvp_service.event_stats(db, event_id))


@router.post("/events/{event_id}/rsvp", response_model=RSVPRecord, status_code=status.HTTP_201_CREATED)
def submit_rsvp(event_id: str, payload: RSVPCreate, db: Session = Depends(get_db)):
    """Register for a public event. Rejected when full or already registered."""
    return rsvp_service.submit_public_rsvp(db, event_id, payload)


@router.get("/events/{event_id}/rsvp", response_model=RegistrationLookup)
def lookup_rsvp(event_id: str, email: str = Query(...), db: Session = Depends(get_db)):
    """Whether an email is already registered for the event."""
    if not rsvp_service.get_public_event(db, event_id):
        raise NotFoundError("Event not found or not available")
    rsvp = rsvp_service.find_rsvp_by_email(db, event_id, email)
    return RegistrationLookup(registered=rsvp is not None, rsvp=rsvp)

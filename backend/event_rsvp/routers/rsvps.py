"""RSVP management routes — status changes and removal by event managers."""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from event_rsvp.database import get_db
from event_rsvp.dependencies import check_event_access, get_current_user
from event_rsvp.errors import NotFoundError
from event_rsvp.schemas.rsvp import RSVPRecord, RSVPStatusUpdate
from event_rsvp.schemas.user import UserRecord
from event_rsvp.services import event_service, rsvp_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _check_manages_rsvp(db: Session, rsvp_id: str, user: UserRecord) -> None:
    rsvp = rsvp_service.get_rsvp(db, rsvp_id)
    if not rsvp:
        raise NotFoundError("RSVP not found")
    event = event_service.get_event(db, rsvp.event_id)
    if not event:
        raise NotFoundError("Event not found")
    check_event_access(event, user)


@router.patch("/{rsvp_id}/status", response_model=RSVPRecord)
def update_rsvp_status(
    rsvp_id: str,
    payload: RSVPStatusUpdate,
    db: Session = Depends(get_db),
    user: UserRecord = Depends(get_current_user),
):
    _check_manages_rsvp(db, rsvp_id, user)
    return rsvp_service.update_rsvp_status(db, rsvp_id, payload.status)


@router.delete("/{rsvp_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_rsvp(rsvp_id: str, db: Session = Depends(get_db), user: UserRecord = Depends(get_current_user)):
    _check_manages_rsvp(db, rsvp_id, user)
    rsvp_service.delete_rsvp(db, rsvp_id)

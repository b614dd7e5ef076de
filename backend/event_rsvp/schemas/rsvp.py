"""Pydantic schemas for RSVPs and attendance reporting."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from event_rsvp.models.rsvp import RSVPStatus
from event_rsvp.schemas.event import CAMEL_CONFIG


class RSVPCreate(BaseModel):
    attendee_name: str = ""
    attendee_email: str = ""
    notes: Optional[str] = None

    model_config = CAMEL_CONFIG


class RSVPStatusUpdate(BaseModel):
    status: RSVPStatus


class RSVPRecord(BaseModel):
    id: str
    event_id: str
    attendee_name: str
    attendee_email: str
    status: RSVPStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {**CAMEL_CONFIG, "from_attributes": True}


class EventStats(BaseModel):
    total: int = 0
    confirmed: int = 0
    pending: int = 0
    declined: int = 0


class AttendeeReport(BaseModel):
    stats: EventStats
    confirmation_rate: int
    capacity_used: int
    recent_rsvps: list[RSVPRecord]

    model_config = CAMEL_CONFIG

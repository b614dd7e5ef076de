"""Pydantic schemas for Events — camelCase on the wire."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from event_rsvp.models.event import EventStatus

CAMEL_CONFIG = {"alias_generator": to_camel, "populate_by_name": True}


class EventCreate(BaseModel):
    # Required fields are checked by validation.check_event_form so the
    # caller gets a single readable message instead of a 422.
    title: str = ""
    description: str = ""
    event_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: str = ""
    max_attendees: Optional[int] = None
    is_public: bool = True
    status: Optional[str] = None  # accepted but ignored: new events are drafts

    model_config = CAMEL_CONFIG


class EventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    event_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: Optional[str] = None
    max_attendees: Optional[int] = None
    is_public: Optional[bool] = None

    model_config = CAMEL_CONFIG


class EventStatusUpdate(BaseModel):
    status: EventStatus


class EventRecord(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    event_date: datetime
    end_date: Optional[datetime] = None
    location: Optional[str] = None
    max_attendees: Optional[int] = None
    is_public: bool
    status: EventStatus
    created_by: str
    created_at: datetime
    updated_at: datetime

    model_config = {**CAMEL_CONFIG, "from_attributes": True}

"""Pydantic schemas for the public event pages."""
from typing import Optional
from pydantic import BaseModel

from event_rsvp.schemas.event import CAMEL_CONFIG, EventRecord
from event_rsvp.schemas.rsvp import EventStats, RSVPRecord


class PublicEventOut(EventRecord):
    stats: EventStats


class RegistrationLookup(BaseModel):
    registered: bool
    rsvp: Optional[RSVPRecord] = None

    model_config = CAMEL_CONFIG

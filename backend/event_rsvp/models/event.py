"""Event ORM model."""
import uuid
import enum
from sqlalchemy import Column, String, Text, Boolean, DateTime, Integer, Enum as SAEnum
from event_rsvp.database import Base
from event_rsvp.timeutil import utcnow


class EventStatus(str, enum.Enum):
    draft = "draft"
    published = "published"
    cancelled = "cancelled"
    completed = "completed"


class Event(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    event_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=True)
    location = Column(String(500), nullable=True)
    max_attendees = Column(Integer, nullable=True)
    is_public = Column(Boolean, nullable=False, default=True)
    status = Column(SAEnum(EventStatus, name="event_status"), nullable=False, default=EventStatus.draft)
    # Plain reference: deleting the owner orphans its events
    created_by = Column(String(36), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

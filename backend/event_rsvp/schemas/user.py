"""Pydantic schemas for Users, profiles and admin statistics."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from event_rsvp.models.profile import UserRole
from event_rsvp.schemas.event import CAMEL_CONFIG


class UserRecord(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    role: UserRole

    model_config = {**CAMEL_CONFIG, "from_attributes": True}


class UserWithStats(UserRecord):
    events_created: int = 0
    last_login: datetime  # profile updated_at, not a real sign-in time
    created_at: datetime


class UserCreate(BaseModel):
    email: str
    password: str
    first_name: str
    last_name: str
    role: UserRole = UserRole.event_owner

    model_config = CAMEL_CONFIG


class UserUpdate(BaseModel):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[UserRole] = None

    model_config = CAMEL_CONFIG


class SystemStats(BaseModel):
    total_users: int = 0
    admin_count: int = 0
    staff_count: int = 0
    owner_count: int = 0
    active_users: int = 0

    model_config = CAMEL_CONFIG


class AdminOverview(SystemStats):
    total_events: int = 0
    published_events: int = 0
    draft_events: int = 0
    total_rsvps: int = 0

"""Pydantic schemas for the session endpoints."""
from pydantic import BaseModel

from event_rsvp.models.profile import UserRole
from event_rsvp.schemas.event import CAMEL_CONFIG
from event_rsvp.schemas.user import UserRecord


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    email: str
    password: str
    first_name: str
    last_name: str
    role: UserRole = UserRole.event_owner

    model_config = CAMEL_CONFIG


class SessionOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRecord

    model_config = CAMEL_CONFIG

"""Identity provider tables — accounts and revoked session tokens."""
import uuid
from sqlalchemy import Column, String, DateTime, JSON
from event_rsvp.database import Base
from event_rsvp.timeutil import utcnow


class AuthIdentity(Base):
    __tablename__ = "auth_identities"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    user_metadata = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    last_sign_in_at = Column(DateTime(timezone=True), nullable=True)


class RevokedToken(Base):
    __tablename__ = "revoked_tokens"

    jti = Column(String(36), primary_key=True)
    identity_id = Column(String(36), nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

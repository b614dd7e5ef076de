"""Profile ORM model — one row per identity, carries the role."""
import enum
from sqlalchemy import Column, String, DateTime, ForeignKey, Enum as SAEnum
from event_rsvp.database import Base
from event_rsvp.timeutil import utcnow


class UserRole(str, enum.Enum):
    admin = "admin"
    staff = "staff"
    event_owner = "event_owner"


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), ForeignKey("auth_identities.id", ondelete="CASCADE"), primary_key=True)
    email = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    role = Column(SAEnum(UserRole, name="user_role"), nullable=False, default=UserRole.event_owner)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

"""User repository — profiles, roles and admin statistics.

``eventsCreated`` comes from one grouped count over the events table per
listing, not one count per user.
"""
import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from event_rsvp.auth.provider import IdentityProvider
from event_rsvp.config import settings
from event_rsvp.errors import NotFoundError, OperationFailedError, wrap_write_error
from event_rsvp.models.event import Event
from event_rsvp.models.profile import Profile, UserRole
from event_rsvp.schemas.user import SystemStats, UserCreate, UserUpdate, UserWithStats
from event_rsvp.services.mapper import to_user_with_stats
from event_rsvp.timeutil import as_utc, utcnow

logger = logging.getLogger(__name__)


def _read_failed(db: Session, operation: str, exc: SQLAlchemyError) -> OperationFailedError:
    db.rollback()
    logger.exception("Failed to %s", operation)
    return OperationFailedError(operation, getattr(exc, "orig", None) or exc)


def events_created_by(db: Session, user_ids: list[str]) -> dict[str, int]:
    """Event counts per owner in a single grouped query."""
    if not user_ids:
        return {}
    try:
        rows = (
            db.query(Event.created_by, func.count(Event.id))
            .filter(Event.created_by.in_(user_ids))
            .group_by(Event.created_by)
            .all()
        )
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Could not count events per user; reporting zero")
        return {}
    return {owner: count for owner, count in rows}


def _with_stats(db: Session, profiles: list[Profile]) -> list[UserWithStats]:
    counts = events_created_by(db, [p.id for p in profiles])
    return [to_user_with_stats(p, counts.get(p.id, 0)) for p in profiles]


def list_users(db: Session) -> list[UserWithStats]:
    try:
        profiles = db.query(Profile).order_by(Profile.created_at.desc()).all()
    except SQLAlchemyError as exc:
        raise _read_failed(db, "fetch users", exc) from exc
    return _with_stats(db, profiles)


def list_users_by_role(db: Session, role: UserRole) -> list[UserWithStats]:
    try:
        profiles = (
            db.query(Profile)
            .filter(Profile.role == UserRole(role))
            .order_by(Profile.created_at.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        raise _read_failed(db, "fetch users by role", exc) from exc
    return _with_stats(db, profiles)


def _get_profile(db: Session, user_id: str) -> Optional[Profile]:
    try:
        return db.query(Profile).filter(Profile.id == user_id).first()
    except SQLAlchemyError as exc:
        raise _read_failed(db, "fetch user", exc) from exc


def get_user(db: Session, user_id: str) -> Optional[UserWithStats]:
    profile = _get_profile(db, user_id)
    if not profile:
        return None
    return _with_stats(db, [profile])[0]


def create_user(db: Session, provider: IdentityProvider, data: UserCreate) -> UserWithStats:
    """Create the identity; the provider provisions the profile row."""
    identity = provider.sign_up(
        data.email,
        data.password,
        {"first_name": data.first_name, "last_name": data.last_name, "role": data.role.value},
    )
    profile = _get_profile(db, identity.id)
    if profile:
        logger.info("Admin created user %s (%s) as %s", identity.id, identity.email, profile.role.value)
        return to_user_with_stats(profile)

    logger.warning("No profile row for new user %s; returning sign-up data", identity.id)
    now = utcnow()
    return UserWithStats(
        id=identity.id,
        email=identity.email,
        first_name=data.first_name,
        last_name=data.last_name,
        role=data.role,
        events_created=0,
        last_login=now,
        created_at=now,
    )


def update_user(db: Session, user_id: str, data: UserUpdate) -> UserWithStats:
    """Partial profile update; blank values leave fields untouched."""
    profile = _get_profile(db, user_id)
    if not profile:
        raise NotFoundError("User not found")

    updates = data.model_dump(exclude_unset=True)
    for field in ("email", "first_name", "last_name", "role"):
        if updates.get(field):
            setattr(profile, field, updates[field])
    profile.updated_at = utcnow()
    try:
        db.commit()
        db.refresh(profile)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to update user %s", user_id)
        raise wrap_write_error("update user", exc) from exc
    logger.info("Updated user %s", user_id)
    return _with_stats(db, [profile])[0]


def delete_user(provider: IdentityProvider, user_id: str) -> None:
    """Delete the identity; its profile goes with it, its events stay."""
    provider.delete_identity(user_id)
    logger.info("Deleted user %s", user_id)


def system_stats(db: Session, now=None) -> SystemStats:
    """Totals per role plus users created inside the activity window.

    "Active" is approximated by account creation date; sign-ins are not
    tracked here.
    """
    try:
        rows = db.query(Profile.role, Profile.created_at).all()
    except SQLAlchemyError as exc:
        raise _read_failed(db, "fetch system stats", exc) from exc

    cutoff = as_utc(now or utcnow()) - timedelta(days=settings.ACTIVE_USER_WINDOW_DAYS)
    roles = [role for role, _ in rows]
    return SystemStats(
        total_users=len(rows),
        admin_count=roles.count(UserRole.admin),
        staff_count=roles.count(UserRole.staff),
        owner_count=roles.count(UserRole.event_owner),
        active_users=sum(1 for _, created_at in rows if as_utc(created_at) > cutoff),
    )

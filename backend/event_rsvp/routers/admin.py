"""Admin API routes — user management and system overview (admins only)."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from event_rsvp.auth.provider import IdentityProvider
from event_rsvp.database import get_db
from event_rsvp.dependencies import get_identity_provider, require_roles
from event_rsvp.errors import NotFoundError
from event_rsvp.models.event import EventStatus
from event_rsvp.models.profile import UserRole
from event_rsvp.schemas.user import AdminOverview, UserCreate, UserUpdate, UserWithStats
from event_rsvp.services import event_service, rsvp_service, user_service

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(require_roles(UserRole.admin))])


@router.get("/users", response_model=list[UserWithStats])
def list_users(role: Optional[UserRole] = Query(None), db: Session = Depends(get_db)):
    """All users with their event counts, optionally restricted to one role."""
    if role:
        return user_service.list_users_by_role(db, role)
    return user_service.list_users(db)


@router.post("/users", response_model=UserWithStats, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    return user_service.create_user(db, provider, payload)


@router.get("/users/{user_id}", response_model=UserWithStats)
def get_user(user_id: str, db: Session = Depends(get_db)):
    user = user_service.get_user(db, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


@router.patch("/users/{user_id}", response_model=UserWithStats)
def update_user(user_id: str, payload: UserUpdate, db: Session = Depends(get_db)):
    return user_service.update_user(db, user_id, payload)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: str, provider: IdentityProvider = Depends(get_identity_provider)):
    user_service.delete_user(provider, user_id)


@router.get("/stats", response_model=AdminOverview)
def get_overview(db: Session = Depends(get_db)):
    """System stats plus event and RSVP totals across every owner."""
    stats = user_service.system_stats(db)
    events = event_service.list_events(db)
    return AdminOverview(
        **stats.model_dump(),
        total_events=len(events),
        published_events=sum(1 for e in events if e.status == EventStatus.published),
        draft_events=sum(1 for e in events if e.status == EventStatus.draft),
        total_rsvps=rsvp_service.count_rsvps(db),
    )

"""FastAPI dependencies — session resolution and role guards."""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from event_rsvp.auth.provider import IdentityProvider
from event_rsvp.errors import AuthError, PermissionDeniedError
from event_rsvp.models.profile import UserRole
from event_rsvp.schemas.event import EventRecord
from event_rsvp.schemas.user import UserRecord
from event_rsvp.services.auth_service import SessionGate

bearer_scheme = HTTPBearer(auto_error=False)

MANAGER_ROLES = (UserRole.admin, UserRole.staff)


def get_session_gate(request: Request) -> SessionGate:
    return request.app.state.session_gate


def get_identity_provider(gate: SessionGate = Depends(get_session_gate)) -> IdentityProvider:
    return gate.provider


def get_access_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    return credentials.credentials if credentials else None


def get_current_user(
    token: Optional[str] = Depends(get_access_token),
    gate: SessionGate = Depends(get_session_gate),
) -> UserRecord:
    """The signed-in user; 401 without a valid session."""
    user = gate.current_user(token)
    if not user:
        raise AuthError("Not authenticated")
    return user


def require_roles(*allowed: UserRole):
    """Route guard: the current user's role must be in the allow-list."""

    def guard(user: UserRecord = Depends(get_current_user)) -> UserRecord:
        if user.role not in allowed:
            raise PermissionDeniedError("You do not have permission to access this page")
        return user

    return guard


def check_event_access(event: EventRecord, user: UserRecord) -> None:
    """Owners manage their own events; admins and staff manage all of them."""
    if event.created_by != user.id and user.role not in MANAGER_ROLES:
        raise PermissionDeniedError("Only the event owner may manage this event")

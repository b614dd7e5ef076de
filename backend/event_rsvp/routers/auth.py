"""Session API routes — register, login, logout, current user."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, status

from event_rsvp.dependencies import get_access_token, get_current_user, get_session_gate
from event_rsvp.errors import AuthError
from event_rsvp.schemas.auth import LoginRequest, RegisterRequest, SessionOut
from event_rsvp.schemas.user import UserRecord
from event_rsvp.services.auth_service import SessionGate

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/register", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, gate: SessionGate = Depends(get_session_gate)):
    """Create an account and sign it in."""
    session, user = gate.register(
        payload.email, payload.password, payload.first_name, payload.last_name, payload.role,
    )
    return SessionOut(access_token=session.access_token, user=user)


@router.post("/login", response_model=SessionOut)
def login(payload: LoginRequest, gate: SessionGate = Depends(get_session_gate)):
    session, user = gate.login(payload.email, payload.password)
    return SessionOut(access_token=session.access_token, user=user)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    token: Optional[str] = Depends(get_access_token),
    gate: SessionGate = Depends(get_session_gate),
):
    if not token:
        raise AuthError("Not authenticated")
    gate.logout(token)


@router.get("/me", response_model=UserRecord)
def me(user: UserRecord = Depends(get_current_user)):
    return user

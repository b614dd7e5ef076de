"""Session gate — login, registration and identity resolution.

The gate is an explicit object (one per application, kept on
``app.state``) rather than ambient global state. It listens to the identity
provider's session changes, re-resolves the identity on each change and
passes the resolved user to its own subscribers.
"""
import logging
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from event_rsvp.auth.provider import AuthSession, Identity, IdentityProvider
from event_rsvp.errors import AuthError
from event_rsvp.models.profile import Profile, UserRole
from event_rsvp.schemas.user import UserRecord
from event_rsvp.services.mapper import to_user_record

logger = logging.getLogger(__name__)

UserListener = Callable[[str, Optional[UserRecord]], None]


class SessionGate:

    def __init__(self, provider: IdentityProvider, session_factory: sessionmaker):
        self.provider = provider
        self._session_factory = session_factory
        self._subscribers: list[UserListener] = []
        self._unsubscribe_provider = provider.on_session_change(self._handle_session_change)

    def close(self) -> None:
        self._unsubscribe_provider()
        self._subscribers.clear()

    # -- subscription --------------------------------------------------------

    def subscribe(self, callback: UserListener) -> Callable[[], None]:
        """Register for (event, user) notifications; returns an unsubscribe callable."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _handle_session_change(self, event: str, session: Optional[AuthSession]) -> None:
        user = self.resolve_identity(session.identity) if session else None
        for callback in list(self._subscribers):
            callback(event, user)

    # -- identity resolution ---------------------------------------------------

    def _load_profile(self, identity_id: str) -> Optional[Profile]:
        try:
            with self._session_factory() as db:
                return db.query(Profile).filter(Profile.id == identity_id).first()
        except SQLAlchemyError:
            # Missing or unreachable profiles table: fall back to metadata
            logger.warning("Could not load profile for %s; using session metadata", identity_id)
            return None

    def resolve_identity(self, identity: Identity) -> UserRecord:
        """Prefer the stored profile, else the metadata attached at sign-up."""
        profile = self._load_profile(identity.id)
        if profile:
            return to_user_record(profile)

        metadata = identity.user_metadata or {}
        try:
            role = UserRole(metadata.get("role") or UserRole.event_owner.value)
        except ValueError:
            role = UserRole.event_owner
        return UserRecord(
            id=identity.id,
            email=identity.email or "",
            first_name=metadata.get("first_name") or "User",
            last_name=metadata.get("last_name") or "",
            role=role,
        )

    # -- operations ------------------------------------------------------------

    def login(self, email: str, password: str) -> tuple[AuthSession, UserRecord]:
        session = self.provider.sign_in(email, password)
        return session, self.resolve_identity(session.identity)

    def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: UserRole = UserRole.event_owner,
    ) -> tuple[AuthSession, UserRecord]:
        """Create the identity, then sign it in."""
        self.provider.sign_up(
            email,
            password,
            {"first_name": first_name, "last_name": last_name, "role": UserRole(role).value},
        )
        return self.login(email, password)

    def logout(self, access_token: str) -> None:
        self.provider.sign_out(access_token)

    def current_user(self, access_token: Optional[str]) -> Optional[UserRecord]:
        if not access_token:
            return None
        session = self.provider.get_session(access_token)
        if not session:
            return None
        return self.resolve_identity(session.identity)

    def require_user(self, access_token: Optional[str]) -> UserRecord:
        user = self.current_user(access_token)
        if not user:
            raise AuthError("Not authenticated")
        return user

"""Identity provider boundary and its local implementation.

The service only talks to identities through ``IdentityProvider``. The
local provider keeps accounts in ``auth_identities``, hashes passwords with
werkzeug and issues HS256 access tokens with PyJWT. Signing out revokes the
token's ``jti``. Signing up provisions the matching ``profiles`` row from
the sign-up metadata.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import jwt
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from werkzeug.security import check_password_hash, generate_password_hash

from event_rsvp.errors import AuthError, NotFoundError, is_missing_table
from event_rsvp.models.identity import AuthIdentity, RevokedToken
from event_rsvp.models.profile import Profile, UserRole
from event_rsvp.timeutil import utcnow

logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"

MIN_PASSWORD_LENGTH = 6


@dataclass
class Identity:
    id: str
    email: str
    user_metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class AuthSession:
    access_token: str
    identity: Identity
    expires_at: datetime


SessionListener = Callable[[str, Optional[AuthSession]], None]


class IdentityProvider:
    """What the application needs from an identity service."""

    def sign_in(self, email: str, password: str) -> AuthSession:
        raise NotImplementedError

    def sign_up(self, email: str, password: str, metadata: dict[str, Any]) -> Identity:
        raise NotImplementedError

    def sign_out(self, access_token: str) -> None:
        raise NotImplementedError

    def get_session(self, access_token: str) -> Optional[AuthSession]:
        raise NotImplementedError

    def delete_identity(self, identity_id: str) -> None:
        raise NotImplementedError

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        raise NotImplementedError


class LocalIdentityProvider(IdentityProvider):

    def __init__(
        self,
        session_factory: sessionmaker,
        secret: str,
        algorithm: str = "HS256",
        token_ttl_minutes: int = 60,
    ):
        self._session_factory = session_factory
        self._secret = secret
        self._algorithm = algorithm
        self._token_ttl = timedelta(minutes=token_ttl_minutes)
        self._listeners: list[SessionListener] = []

    # -- change notification -------------------------------------------------

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: str, session: Optional[AuthSession]) -> None:
        for listener in list(self._listeners):
            listener(event, session)

    # -- tokens --------------------------------------------------------------

    def _issue_token(self, identity: AuthIdentity) -> AuthSession:
        now = utcnow()
        expires_at = now + self._token_ttl
        payload = {
            "sub": identity.id,
            "email": identity.email,
            "jti": str(uuid.uuid4()),
            "iat": now,
            "exp": expires_at,
        }
        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        return AuthSession(access_token=token, identity=_to_identity(identity), expires_at=expires_at)

    def _decode(self, access_token: str) -> Optional[dict]:
        try:
            return jwt.decode(access_token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            return None

    # -- operations ----------------------------------------------------------

    def _email_taken(self, db: Session, email: str) -> bool:
        return db.query(AuthIdentity.id).filter(AuthIdentity.email == email).first() is not None

    def sign_up(self, email: str, password: str, metadata: dict[str, Any]) -> Identity:
        """Create the identity and its profile row in one transaction."""
        email = (email or "").strip().lower()
        if not email or not password:
            raise AuthError("Email and password are required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AuthError(f"Password should be at least {MIN_PASSWORD_LENGTH} characters")

        with self._session_factory() as db:
            if self._email_taken(db, email):
                raise AuthError("User already registered")

            values = {
                "id": str(uuid.uuid4()),
                "email": email,
                "password_hash": generate_password_hash(password),
                "user_metadata": dict(metadata),
            }
            identity = AuthIdentity(**values)
            try:
                db.add(identity)
                db.flush()
            except IntegrityError as exc:
                # Another registration for this email committed first
                db.rollback()
                raise AuthError("User already registered") from exc

            try:
                db.add(self._profile_for(identity))
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                if not is_missing_table(exc):
                    raise
                logger.warning("Profiles table does not exist yet; identity %s has no profile", values["id"])
                identity = self._insert_identity_only(db, values)

            logger.info("Registered identity %s (%s)", identity.id, email)
            return _to_identity(identity)

    def _insert_identity_only(self, db: Session, values: dict[str, Any]) -> AuthIdentity:
        identity = AuthIdentity(**values)
        try:
            db.add(identity)
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise AuthError("User already registered") from exc
        db.refresh(identity)
        return identity

    @staticmethod
    def _profile_for(identity: AuthIdentity) -> Profile:
        """The profile row a sign-up trigger would create."""
        metadata = identity.user_metadata or {}
        try:
            role = UserRole(metadata.get("role") or UserRole.event_owner.value)
        except ValueError:
            role = UserRole.event_owner
        return Profile(
            id=identity.id,
            email=identity.email,
            first_name=metadata.get("first_name") or "",
            last_name=metadata.get("last_name") or "",
            role=role,
        )

    def sign_in(self, email: str, password: str) -> AuthSession:
        email = (email or "").strip().lower()
        with self._session_factory() as db:
            identity = db.query(AuthIdentity).filter(AuthIdentity.email == email).first()
            if not identity or not check_password_hash(identity.password_hash, password or ""):
                logger.info("Failed sign-in for %s", email)
                raise AuthError("Invalid login credentials")
            identity.last_sign_in_at = utcnow()
            db.commit()
            db.refresh(identity)
            session = self._issue_token(identity)

        logger.info("Identity %s signed in", session.identity.id)
        self._emit(SIGNED_IN, session)
        return session

    def get_session(self, access_token: str) -> Optional[AuthSession]:
        if not access_token:
            return None
        claims = self._decode(access_token)
        if not claims:
            return None
        with self._session_factory() as db:
            if db.get(RevokedToken, claims["jti"]):
                return None
            identity = db.get(AuthIdentity, claims["sub"])
            if not identity:
                return None
            return AuthSession(
                access_token=access_token,
                identity=_to_identity(identity),
                expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
            )

    def sign_out(self, access_token: str) -> None:
        claims = self._decode(access_token)
        if not claims:
            raise AuthError("Invalid or expired session")
        with self._session_factory() as db:
            if not db.get(RevokedToken, claims["jti"]):
                db.add(RevokedToken(jti=claims["jti"], identity_id=claims["sub"]))
                db.commit()
        logger.info("Identity %s signed out", claims["sub"])
        self._emit(SIGNED_OUT, None)

    def delete_identity(self, identity_id: str) -> None:
        """Remove the identity and, with it, its profile."""
        with self._session_factory() as db:
            identity = db.get(AuthIdentity, identity_id)
            if not identity:
                raise NotFoundError("User not found")
            try:
                db.query(Profile).filter(Profile.id == identity_id).delete()
            except SQLAlchemyError as exc:
                db.rollback()
                if not is_missing_table(exc):
                    raise
                identity = db.get(AuthIdentity, identity_id)
            db.delete(identity)
            db.commit()
        logger.info("Deleted identity %s", identity_id)


def _to_identity(row: AuthIdentity) -> Identity:
    return Identity(id=row.id, email=row.email, user_metadata=dict(row.user_metadata or {}))

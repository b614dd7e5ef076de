"""Tests for the identity provider, the session gate and the session routes."""
import jwt
import pytest
from sqlalchemy.exc import IntegrityError

from event_rsvp.auth.provider import SIGNED_IN, SIGNED_OUT, LocalIdentityProvider
from event_rsvp.errors import AuthError
from event_rsvp.models.identity import AuthIdentity
from event_rsvp.models.profile import Profile, UserRole
from tests.conftest import TEST_SECRET, auth_headers, register_user


class TestSessionRoutes:

    def test_register_signs_in(self, client):
        data = register_user(client, email="new@example.com", first_name="Grace", last_name="Hopper")
        assert data["tokenType"] == "bearer"
        assert data["accessToken"]
        assert data["user"]["email"] == "new@example.com"
        assert data["user"]["firstName"] == "Grace"
        assert data["user"]["role"] == "event_owner"

    def test_register_keeps_chosen_role(self, client):
        data = register_user(client, email="boss@example.com", role="admin")
        assert data["user"]["role"] == "admin"

    def test_register_duplicate(self, client):
        register_user(client, email="dup@example.com")
        resp = client.post("/api/auth/register", json={
            "email": "dup@example.com", "password": "secret123",
            "firstName": "Dup", "lastName": "User",
        })
        assert resp.status_code == 401
        assert resp.json()["detail"] == "User already registered"

    def test_register_short_password(self, client):
        resp = client.post("/api/auth/register", json={
            "email": "short@example.com", "password": "abc",
            "firstName": "Short", "lastName": "Pw",
        })
        assert resp.status_code == 401

    def test_login_and_me(self, client):
        register_user(client, email="Mixed@Example.com")
        resp = client.post("/api/auth/login", json={"email": "mixed@example.com", "password": "secret123"})
        assert resp.status_code == 200
        token = resp.json()["accessToken"]

        me = client.get("/api/auth/me", headers=auth_headers(token))
        assert me.status_code == 200
        assert me.json()["email"] == "mixed@example.com"

    def test_login_wrong_password(self, client):
        register_user(client, email="user@example.com")
        resp = client.post("/api/auth/login", json={"email": "user@example.com", "password": "nope-nope"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid login credentials"

    def test_me_requires_session(self, client):
        assert client.get("/api/auth/me").status_code == 401
        assert client.get("/api/auth/me", headers=auth_headers("garbage")).status_code == 401

    def test_logout_revokes_token(self, client):
        token = register_user(client)["accessToken"]
        resp = client.post("/api/auth/logout", headers=auth_headers(token))
        assert resp.status_code == 204
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401

    def test_logout_without_token(self, client):
        assert client.post("/api/auth/logout").status_code == 401


class TestIdentityProvider:

    def test_expired_token_has_no_session(self, session_factory):
        provider = LocalIdentityProvider(session_factory, secret=TEST_SECRET, token_ttl_minutes=-1)
        provider.sign_up("late@example.com", "secret123", {})
        session = provider.sign_in("late@example.com", "secret123")
        assert provider.get_session(session.access_token) is None

    def test_foreign_signature_rejected(self, gate):
        identity = gate.provider.sign_up("x@example.com", "secret123", {})
        forged = jwt.encode({"sub": identity.id, "jti": "abc"}, "other-secret", algorithm="HS256")
        assert gate.provider.get_session(forged) is None

    def test_sign_up_provisions_profile(self, gate, db):
        identity = gate.provider.sign_up(
            "p@example.com", "secret123", {"first_name": "Pat", "last_name": "Lee", "role": "staff"},
        )
        profile = db.query(Profile).filter(Profile.id == identity.id).one()
        assert profile.first_name == "Pat"
        assert profile.role == UserRole.staff

    def test_unknown_role_falls_back_to_owner(self, gate, db):
        identity = gate.provider.sign_up("r@example.com", "secret123", {"role": "superuser"})
        profile = db.query(Profile).filter(Profile.id == identity.id).one()
        assert profile.role == UserRole.event_owner

    def test_concurrent_sign_up_same_email(self, gate, db, monkeypatch):
        # Both registrations pass the existence check before either commits
        monkeypatch.setattr(gate.provider, "_email_taken", lambda session, email: False)
        gate.provider.sign_up("race@example.com", "secret123", {})
        with pytest.raises(AuthError, match="User already registered"):
            gate.provider.sign_up("race@example.com", "secret123", {})
        assert db.query(AuthIdentity).filter(AuthIdentity.email == "race@example.com").count() == 1

    def test_failed_profile_insert_keeps_no_identity(self, gate, db, monkeypatch):
        monkeypatch.setattr(gate.provider, "_profile_for", lambda identity: Profile(id=identity.id, email=None))
        with pytest.raises(IntegrityError):
            gate.provider.sign_up("half@example.com", "secret123", {})
        assert db.query(AuthIdentity).count() == 0

    def test_sign_out_invalid_token(self, gate):
        with pytest.raises(AuthError):
            gate.provider.sign_out("not-a-token")


class TestSessionGate:

    def test_subscribers_see_sign_in_and_out(self, gate):
        seen = []
        gate.subscribe(lambda event, user: seen.append((event, user)))

        session, user = gate.register("sub@example.com", "secret123", "Sam", "Sub", UserRole.staff)
        gate.logout(session.access_token)

        assert [event for event, _ in seen] == [SIGNED_IN, SIGNED_OUT]
        assert seen[0][1].id == user.id
        assert seen[0][1].role == UserRole.staff
        assert seen[1][1] is None

    def test_unsubscribe(self, gate):
        seen = []
        unsubscribe = gate.subscribe(lambda event, user: seen.append(event))
        unsubscribe()
        gate.register("quiet@example.com", "secret123", "Q", "Uiet")
        assert seen == []

    def test_close_detaches_from_provider(self, gate):
        seen = []
        gate.subscribe(lambda event, user: seen.append(event))
        gate.close()
        gate.provider.sign_up("c@example.com", "secret123", {})
        gate.provider.sign_in("c@example.com", "secret123")
        assert seen == []

    def test_profile_wins_over_metadata(self, gate, db):
        session, _ = gate.register("edit@example.com", "secret123", "Old", "Name")
        profile = db.query(Profile).filter(Profile.id == session.identity.id).one()
        profile.first_name = "New"
        db.commit()

        assert gate.current_user(session.access_token).first_name == "New"

    def test_metadata_fallback_without_profiles_table(self, gate, db_engine):
        Profile.__table__.drop(db_engine)

        session, user = gate.register("meta@example.com", "secret123", "", "", UserRole.admin)
        assert user.first_name == "User"
        assert user.last_name == ""
        assert user.role == UserRole.admin
        assert gate.current_user(session.access_token).email == "meta@example.com"

    def test_require_user(self, gate):
        with pytest.raises(AuthError):
            gate.require_user(None)

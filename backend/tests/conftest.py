"""Pytest fixtures — SQLite database and a TestClient wired to it."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from event_rsvp.auth.provider import LocalIdentityProvider  # noqa: E402
from event_rsvp.database import Base, get_db  # noqa: E402
from event_rsvp.main import app  # noqa: E402
from event_rsvp.services.auth_service import SessionGate  # noqa: E402

# Import all models so they register with Base.metadata
from event_rsvp.models.identity import AuthIdentity, RevokedToken  # noqa: F401,E402
from event_rsvp.models.profile import Profile  # noqa: F401,E402
from event_rsvp.models.event import Event  # noqa: F401,E402
from event_rsvp.models.rsvp import RSVP  # noqa: F401,E402

SQLITE_URL = "sqlite:///./test.db"
TEST_SECRET = "test-secret"


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session, closed after the test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def gate(session_factory):
    """Session gate over a local identity provider on the test database."""
    provider = LocalIdentityProvider(session_factory, secret=TEST_SECRET, token_ttl_minutes=30)
    session_gate = SessionGate(provider, session_factory)
    yield session_gate
    session_gate.close()


@pytest.fixture(scope="function")
def client(session_factory, gate):
    """FastAPI TestClient with the database and session gate pointed at SQLite."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    original_gate = app.state.session_gate
    app.state.session_gate = gate
    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    app.state.session_gate = original_gate


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def register_user(client: TestClient, email: str = "owner@example.com", role: str = "event_owner",
                  first_name: str = "Test", last_name: str = "User", password: str = "secret123") -> dict:
    """Helper — POST /api/auth/register and return response JSON (accessToken + user)."""
    resp = client.post("/api/auth/register", json={
        "email": email,
        "password": password,
        "firstName": first_name,
        "lastName": last_name,
        "role": role,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def future(days: int = 7, hours: int = 0) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days, hours=hours)).isoformat()


def create_test_event(client: TestClient, token: str, **overrides) -> dict:
    """Helper — POST /api/events and return response JSON."""
    payload = {
        "title": "Launch",
        "description": "Product launch party",
        "eventDate": future(),
        "location": "HQ",
        "isPublic": True,
    }
    payload.update(overrides)
    resp = client.post("/api/events/", json=payload, headers=auth_headers(token))
    assert resp.status_code == 201, resp.text
    return resp.json()


def publish(client: TestClient, token: str, event_id: str) -> dict:
    resp = client.patch(f"/api/events/{event_id}/status", json={"status": "published"},
                        headers=auth_headers(token))
    assert resp.status_code == 200, resp.text
    return resp.json()


def submit_rsvp(client: TestClient, event_id: str, name: str = "Ada", email: str = "ada@example.com",
                notes: str = None):
    """Helper — public RSVP submission, returns the raw response."""
    payload = {"attendeeName": name, "attendeeEmail": email}
    if notes is not None:
        payload["notes"] = notes
    return client.post(f"/api/public/events/{event_id}/rsvp", json=payload)

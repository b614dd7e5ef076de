"""Tests for the user repository and the admin routes."""
from datetime import timedelta

import pytest

from event_rsvp.models.profile import Profile
from event_rsvp.services import rsvp_service, user_service
from event_rsvp.timeutil import utcnow
from tests.conftest import auth_headers, create_test_event, register_user


@pytest.fixture
def admin(client):
    return register_user(client, email="admin@example.com", role="admin", first_name="Root")


class TestAdminGuard:

    def test_requires_session(self, client):
        assert client.get("/api/admin/users").status_code == 401

    def test_non_admin_forbidden(self, client):
        staff = register_user(client, email="staff@example.com", role="staff")
        resp = client.get("/api/admin/users", headers=auth_headers(staff["accessToken"]))
        assert resp.status_code == 403


class TestUserCRUD:
    """Admin create / get / update / list / delete."""

    def test_create_user(self, client, admin):
        resp = client.post("/api/admin/users", json={
            "email": "alice@example.com", "password": "secret123",
            "firstName": "Alice", "lastName": "Smith", "role": "staff",
        }, headers=auth_headers(admin["accessToken"]))
        assert resp.status_code == 201
        data = resp.json()
        assert data["email"] == "alice@example.com"
        assert data["role"] == "staff"
        assert data["eventsCreated"] == 0

        # The new account can sign in
        login = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret123"})
        assert login.status_code == 200
        assert login.json()["user"]["firstName"] == "Alice"

    def test_create_duplicate_email(self, client, admin):
        resp = client.post("/api/admin/users", json={
            "email": "admin@example.com", "password": "secret123",
            "firstName": "Again", "lastName": "Admin", "role": "admin",
        }, headers=auth_headers(admin["accessToken"]))
        assert resp.status_code == 401
        assert resp.json()["detail"] == "User already registered"

    def test_get_user_with_event_count(self, client, admin):
        owner = register_user(client, email="owner@example.com")
        create_test_event(client, owner["accessToken"])
        create_test_event(client, owner["accessToken"], title="Second")

        resp = client.get(f"/api/admin/users/{owner['user']['id']}", headers=auth_headers(admin["accessToken"]))
        assert resp.status_code == 200
        assert resp.json()["eventsCreated"] == 2

    def test_get_user_not_found(self, client, admin):
        resp = client.get("/api/admin/users/00000000-0000-0000-0000-000000000000",
                          headers=auth_headers(admin["accessToken"]))
        assert resp.status_code == 404

    def test_update_user(self, client, admin):
        owner = register_user(client, email="owner@example.com")
        resp = client.patch(f"/api/admin/users/{owner['user']['id']}", json={
            "firstName": "Renamed", "role": "staff", "lastName": "",
        }, headers=auth_headers(admin["accessToken"]))
        assert resp.status_code == 200
        data = resp.json()
        assert data["firstName"] == "Renamed"
        assert data["lastName"] == "User"
        assert data["role"] == "staff"

    def test_list_and_filter_by_role(self, client, admin):
        register_user(client, email="o1@example.com")
        register_user(client, email="o2@example.com")
        headers = auth_headers(admin["accessToken"])

        everyone = client.get("/api/admin/users", headers=headers).json()
        assert {u["email"] for u in everyone} == {"admin@example.com", "o1@example.com", "o2@example.com"}
        owners = client.get("/api/admin/users?role=event_owner", headers=headers).json()
        assert {u["email"] for u in owners} == {"o1@example.com", "o2@example.com"}

    def test_delete_user_orphans_events(self, client, admin, db):
        owner = register_user(client, email="owner@example.com")
        event = create_test_event(client, owner["accessToken"])
        headers = auth_headers(admin["accessToken"])

        resp = client.delete(f"/api/admin/users/{owner['user']['id']}", headers=headers)
        assert resp.status_code == 204
        assert db.query(Profile).filter(Profile.id == owner["user"]["id"]).first() is None
        assert client.get(f"/api/admin/users/{owner['user']['id']}", headers=headers).status_code == 404
        # The event row survives its owner
        assert client.get(f"/api/events/{event['id']}", headers=headers).status_code == 200
        # And the old session no longer resolves
        assert client.get("/api/auth/me", headers=auth_headers(owner["accessToken"])).status_code == 401

    def test_delete_unknown_user(self, client, admin):
        resp = client.delete("/api/admin/users/missing", headers=auth_headers(admin["accessToken"]))
        assert resp.status_code == 404


class TestSystemStats:

    def test_counts_by_role(self, client, admin, db):
        register_user(client, email="staff@example.com", role="staff")
        register_user(client, email="o1@example.com")
        register_user(client, email="o2@example.com")

        stats = user_service.system_stats(db)
        assert stats.total_users == 4
        assert (stats.admin_count, stats.staff_count, stats.owner_count) == (1, 1, 2)
        assert stats.active_users == 4

    def test_active_window_uses_creation_date(self, client, admin, db):
        old = register_user(client, email="old@example.com")
        profile = db.query(Profile).filter(Profile.id == old["user"]["id"]).one()
        profile.created_at = utcnow() - timedelta(days=30)
        db.commit()

        stats = user_service.system_stats(db)
        assert stats.total_users == 2
        assert stats.active_users == 1

    def test_overview(self, client, admin):
        owner = register_user(client, email="owner@example.com")
        token = owner["accessToken"]
        published = create_test_event(client, token)
        create_test_event(client, token, title="Draft")
        client.patch(f"/api/events/{published['id']}/status", json={"status": "published"},
                     headers=auth_headers(token))
        client.post(f"/api/public/events/{published['id']}/rsvp",
                    json={"attendeeName": "Ada", "attendeeEmail": "ada@example.com"})

        resp = client.get("/api/admin/stats", headers=auth_headers(admin["accessToken"]))
        assert resp.status_code == 200
        data = resp.json()
        assert data["totalUsers"] == 2
        assert data["adminCount"] == 1
        assert data["ownerCount"] == 1
        assert (data["totalEvents"], data["publishedEvents"], data["draftEvents"]) == (2, 1, 1)
        assert data["totalRsvps"] == 1

    def test_overview_counts_rsvps_in_one_query(self, client, admin, monkeypatch):
        owner = register_user(client, email="owner@example.com")
        token = owner["accessToken"]
        for title in ("First", "Second"):
            event = create_test_event(client, token, title=title)
            client.patch(f"/api/events/{event['id']}/status", json={"status": "published"},
                         headers=auth_headers(token))
            client.post(f"/api/public/events/{event['id']}/rsvp",
                        json={"attendeeName": "Ada", "attendeeEmail": "ada@example.com"})

        def _per_event_stats(*args, **kwargs):
            raise AssertionError("overview must not count RSVPs event by event")

        monkeypatch.setattr(rsvp_service, "event_stats", _per_event_stats)
        resp = client.get("/api/admin/stats", headers=auth_headers(admin["accessToken"]))
        assert resp.status_code == 200
        assert resp.json()["totalRsvps"] == 2

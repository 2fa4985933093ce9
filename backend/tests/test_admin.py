"""Operator API: login, listings, manual sync, deactivation, revocation."""

from uuid import uuid4

import pytest

from config import get_settings
from models import ConnectionStatus, ProviderConnection, Sponsorship, SponsorshipStatus
from services.auth_service import AuthService

settings = get_settings()


@pytest.fixture()
def admin_password(monkeypatch):
    password = "correct horse battery staple"
    monkeypatch.setattr(settings, "admin_password_hash", AuthService.hash_password(password))
    return password


@pytest.fixture()
def auth_headers():
    token, _ = AuthService.create_admin_token()
    return {"Authorization": f"Bearer {token}"}


class TestLogin:
    async def test_login_returns_token(self, client, admin_password):
        response = await client.post("/api/admin/login", json={"password": admin_password})

        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["expires_in"] == settings.admin_token_expire_minutes * 60
        assert AuthService.verify_admin_token(body["access_token"])

    async def test_wrong_password(self, client, admin_password):
        response = await client.post("/api/admin/login", json={"password": "guess"})

        assert response.status_code == 401

    async def test_no_password_configured(self, client):
        response = await client.post("/api/admin/login", json={"password": ""})

        assert response.status_code == 401


class TestAccess:
    async def test_requires_token(self, client):
        response = await client.get("/api/admin/startups")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_rejects_oauth_state_as_token(self, client):
        state = AuthService.create_oauth_state(str(uuid4()))

        response = await client.get(
            "/api/admin/startups", headers={"Authorization": f"Bearer {state}"}
        )

        assert response.status_code == 401


class TestStartups:
    async def test_lists_with_metrics_and_connections(
        self, client, auth_headers, make_startup, make_connection
    ):
        older = await make_startup("Older", mrr=100)
        newer = await make_startup("Newer")
        await make_connection(older, "acct_1")

        response = await client.get("/api/admin/startups", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert [s["slug"] for s in body] == ["newer", "older"]
        assert body[0]["metrics"] is None
        assert body[0]["connections"] == []
        assert body[1]["metrics"]["mrr"] == 100
        assert body[1]["connections"][0]["provider"] == "stripe"
        assert body[1]["connections"][0]["status"] == "connected"
        assert newer.id == body[0]["id"]

    async def test_manual_sync(self, client, auth_headers, make_startup, make_connection, fake_stripe):
        startup = await make_startup("Acme Inc.")
        await make_connection(startup, "acct_1")

        response = await client.post(f"/api/admin/sync/{startup.id}", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["metrics"]["mrr"] == 500

    async def test_manual_sync_without_connection(self, client, auth_headers, make_startup):
        startup = await make_startup("Acme Inc.")

        response = await client.post(f"/api/admin/sync/{startup.id}", headers=auth_headers)

        assert response.status_code == 404

    async def test_manual_sync_provider_failure(
        self, client, auth_headers, make_startup, make_connection, fake_stripe
    ):
        startup = await make_startup("Acme Inc.")
        await make_connection(startup, "acct_1")
        fake_stripe.failing.add("acct_1")

        response = await client.post(f"/api/admin/sync/{startup.id}", headers=auth_headers)

        assert response.status_code == 502

    async def test_manual_sync_unknown_startup(self, client, auth_headers):
        response = await client.post(f"/api/admin/sync/{uuid4()}", headers=auth_headers)

        assert response.status_code == 404


class TestSponsorships:
    async def test_list_and_deactivate(self, client, auth_headers, make_startup, session_factory):
        await make_startup("Acme Inc.", sponsorship=SponsorshipStatus.ACTIVE)

        listing = await client.get("/api/admin/sponsorships", headers=auth_headers)

        assert listing.status_code == 200
        [entry] = listing.json()
        assert entry["startup_name"] == "Acme Inc."
        assert entry["status"] == "active"

        response = await client.post(
            f"/api/admin/sponsorships/{entry['id']}/deactivate", headers=auth_headers
        )

        assert response.status_code == 200
        async with session_factory() as session:
            row = await session.get(Sponsorship, entry["id"])
        assert row.status == SponsorshipStatus.CANCELLED
        assert row.end_date is not None

    async def test_deactivate_unknown(self, client, auth_headers):
        response = await client.post(
            f"/api/admin/sponsorships/{uuid4()}/deactivate", headers=auth_headers
        )

        assert response.status_code == 404

    async def test_malformed_id(self, client, auth_headers):
        response = await client.post(
            "/api/admin/sponsorships/not-a-uuid/deactivate", headers=auth_headers
        )

        assert response.status_code == 422


class TestConnections:
    async def test_revoke_stops_sync(
        self, client, auth_headers, make_startup, make_connection, session_factory, fake_stripe
    ):
        startup = await make_startup("Acme Inc.")
        connection = await make_connection(startup, "acct_1")

        response = await client.post(
            f"/api/admin/connections/{connection.id}/revoke", headers=auth_headers
        )

        assert response.status_code == 200
        async with session_factory() as session:
            row = await session.get(ProviderConnection, connection.id)
        assert row.status == ConnectionStatus.REVOKED

        sync = await client.post("/api/cron/sync-metrics")
        assert sync.json()["results"] == []

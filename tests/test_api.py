"""
HTTP surface: auth, error bodies, the pipeline scenario end to end, and
client convergence through the refetch-on-signal path.

Run: pytest tests/test_api.py -v
"""

import httpx
import pytest

from internhub.core.security import Role
from internhub.db.session import get_db
from internhub.main import app
from internhub.realtime.broadcaster import get_broadcaster
from internhub.realtime.sync_client import APPLICATIONS, OPENINGS, REQUESTS, HttpFetcher, SyncSession
from internhub.services.notification_service import get_notifier

API = "/api/v1"


@pytest.fixture
async def client(session_factory, broadcaster, notifier):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster
    app.dependency_overrides[get_notifier] = lambda: notifier

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.clear()


def auth(accounts, principal):
    return {"Authorization": f"Bearer {accounts.token(principal)}"}


async def subscribe_and_apply(client, accounts, principal=None):
    principal = principal or accounts.student
    headers = auth(accounts, principal)
    response = await client.post(
        f"{API}/subscriptions", json={"company_id": str(accounts.company.company_id)}, headers=headers
    )
    assert response.status_code == 200
    response = await client.post(
        f"{API}/applications",
        json={"opening_id": str(accounts.opening_id), "why_internship": "I like backends"},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


class TestAuth:

    async def test_missing_token(self, client, accounts):
        response = await client.get(f"{API}/applications")

        assert response.status_code == 401
        assert response.json()["error"] == "authentication_error"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    async def test_garbage_token(self, client, accounts):
        response = await client.get(f"{API}/applications", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401

    async def test_role_gate(self, client, accounts):
        response = await client.get(f"{API}/admin/audit-logs", headers=auth(accounts, accounts.student))

        assert response.status_code == 403
        assert response.json()["error"] == "authorization_error"


class TestPipelineOverHttp:

    async def test_apply_move_reject_and_lock(self, client, accounts):
        application = await subscribe_and_apply(client, accounts)
        assert application["stage"] == "Applied"
        assert application["position"] == "Backend Intern"
        stage_url = f"{API}/applications/{application['id']}/stage"

        response = await client.patch(stage_url, json={"stage": "Interviewing"}, headers=auth(accounts, accounts.company))
        assert response.status_code == 200
        assert response.json()["stage"] == "Interviewing"

        response = await client.patch(stage_url, json={"stage": "Offer"}, headers=auth(accounts, accounts.student))
        assert response.status_code == 403

        response = await client.patch(stage_url, json={"stage": "Rejected"}, headers=auth(accounts, accounts.company))
        assert response.status_code == 200

        response = await client.post(
            f"{API}/applications",
            json={"opening_id": str(accounts.opening_id)},
            headers=auth(accounts, accounts.student),
        )
        assert response.status_code == 409
        assert response.json()["error"] == "rejection_lock"

    async def test_missing_edge_is_conflict(self, client, accounts):
        application = await subscribe_and_apply(client, accounts)

        response = await client.patch(
            f"{API}/applications/{application['id']}/stage",
            json={"stage": "Placed"},
            headers=auth(accounts, accounts.company),
        )

        assert response.status_code == 409
        assert response.json()["error"] == "invalid_transition"

    async def test_apply_without_subscription(self, client, accounts):
        response = await client.post(
            f"{API}/applications",
            json={"opening_id": str(accounts.opening_id)},
            headers=auth(accounts, accounts.student),
        )

        assert response.status_code == 403

    async def test_scoped_listing(self, client, accounts):
        await subscribe_and_apply(client, accounts)

        mine = (await client.get(f"{API}/applications", headers=auth(accounts, accounts.student))).json()
        theirs = (await client.get(f"{API}/applications", headers=auth(accounts, accounts.other_company))).json()
        everything = (await client.get(f"{API}/applications", headers=auth(accounts, accounts.admin))).json()

        assert (mine["scope"], mine["total"]) == ("self", 1)
        assert (theirs["scope"], theirs["total"]) == ("company", 0)
        assert (everything["scope"], everything["total"]) == ("all", 1)

        response = await client.get(
            f"{API}/applications", params={"scope": "all"}, headers=auth(accounts, accounts.student)
        )
        assert response.status_code == 403

    async def test_clarification_thread(self, client, accounts):
        application = await subscribe_and_apply(client, accounts)
        thread_url = f"{API}/applications/{application['id']}/request"

        response = await client.post(
            thread_url, json={"request_text": "Please share your GPA"}, headers=auth(accounts, accounts.company)
        )
        assert response.status_code == 200

        listing = (await client.get(f"{API}/applications/requests", headers=auth(accounts, accounts.student))).json()
        assert (listing["total"], listing["pending"]) == (1, 1)

        response = await client.patch(
            f"{thread_url}-response", json={"response_text": "3.8/4.0"}, headers=auth(accounts, accounts.student)
        )
        assert response.status_code == 200
        assert response.json()["is_pending"] is False

    async def test_opening_validation_names_field(self, client, accounts):
        response = await client.post(
            f"{API}/openings",
            json={"department": "Data", "expectations": "  "},
            headers=auth(accounts, accounts.company),
        )

        assert response.status_code == 422
        assert response.json() == {
            "detail": "Expectations are required",
            "error": "validation_error",
            "field": "expectations",
        }

    async def test_delete_opening(self, client, accounts):
        response = await client.delete(
            f"{API}/openings/{accounts.opening_id}", headers=auth(accounts, accounts.company)
        )

        assert response.status_code == 204

    async def test_audit_trail(self, client, accounts):
        application = await subscribe_and_apply(client, accounts)

        response = await client.get(
            f"{API}/admin/audit-logs",
            params={"entity_type": "application"},
            headers=auth(accounts, accounts.admin),
        )

        body = response.json()
        assert body["total"] == 1
        assert body["logs"][0]["action_type"] == "application_create"
        assert body["logs"][0]["entity_id"] == application["id"]

    async def test_admin_subscriber_summary(self, client, accounts):
        await subscribe_and_apply(client, accounts)

        response = await client.get(f"{API}/admin/subscriptions", headers=auth(accounts, accounts.admin))

        assert response.status_code == 200
        assert [(row["name"], row["subscriber_count"]) for row in response.json()] == [
            ("Northwind Labs", 1),
            ("BluePeak Health", 0),
        ]
        denied = await client.get(f"{API}/admin/subscriptions", headers=auth(accounts, accounts.company))
        assert denied.status_code == 403


class TestConvergence:

    async def test_student_view_follows_company_moves(self, client, accounts, broadcaster):
        application = await subscribe_and_apply(client, accounts)
        session = SyncSession(
            Role.STUDENT,
            HttpFetcher(f"http://test{API}", accounts.token(accounts.student), client=client),
        )
        await session.resync()
        assert [a["stage"] for a in session.data[APPLICATIONS]] == ["Applied"]
        assert [o["role_title"] for o in session.data[OPENINGS]] == ["Backend Intern"]

        channel = broadcaster.connect(accounts.student)
        await client.patch(
            f"{API}/applications/{application['id']}/stage",
            json={"stage": "Interviewing"},
            headers=auth(accounts, accounts.company),
        )
        events = channel.pending()
        assert len(events) == 1

        target = await session.handle_event(events[0].to_client())

        assert [a["stage"] for a in session.data[APPLICATIONS]] == ["Interviewing"]
        assert target == "applications"

    async def test_converges_after_lost_events(self, client, accounts, broadcaster):
        application = await subscribe_and_apply(client, accounts)
        session = SyncSession(
            Role.STUDENT,
            HttpFetcher(f"http://test{API}", accounts.token(accounts.student), client=client),
        )
        await session.resync()
        channel = broadcaster.connect(accounts.student)

        company = auth(accounts, accounts.company)
        stage_url = f"{API}/applications/{application['id']}/stage"
        thread_url = f"{API}/applications/{application['id']}/request"
        await client.patch(stage_url, json={"stage": "Interviewing"}, headers=company)
        await client.post(thread_url, json={"request_text": "Share your GPA"}, headers=company)
        await client.patch(
            f"{thread_url}-response", json={"response_text": "3.8/4.0"}, headers=auth(accounts, accounts.student)
        )
        await client.patch(stage_url, json={"stage": "Offer"}, headers=company)
        await client.post(thread_url, json={"request_text": "Confirm your start date"}, headers=company)

        events = channel.pending()
        assert len(events) == 5
        # Every event but the last is lost
        await session.handle_event(events[-1].to_client())

        student = auth(accounts, accounts.student)
        server_applications = (await client.get(f"{API}/applications", headers=student)).json()["applications"]
        server_requests = (await client.get(f"{API}/applications/requests", headers=student)).json()["requests"]
        assert session.data[APPLICATIONS] == server_applications
        assert session.data[REQUESTS] == server_requests
        assert [a["stage"] for a in session.data[APPLICATIONS]] == ["Offer"]
        assert session.data[REQUESTS][0]["request_text"] == "Confirm your start date"
        assert session.data[REQUESTS][0]["response_text"] is None

    async def test_company_sees_new_opening_badge(self, client, accounts, broadcaster):
        session = SyncSession(
            Role.COMPANY,
            HttpFetcher(f"http://test{API}", accounts.token(accounts.company), client=client),
            company_id=str(accounts.company.company_id),
        )
        await session.resync()
        channel = broadcaster.connect(accounts.company)

        response = await client.post(
            f"{API}/openings",
            json={"department": "Data", "role_title": "Analyst Intern", "expectations": "SQL"},
            headers=auth(accounts, accounts.company),
        )
        assert response.status_code == 201

        target = await session.handle_event(channel.pending()[0].to_client())

        assert target == "company-openings"
        assert "Analyst Intern" in [o["role_title"] for o in session.data[OPENINGS]]


class TestHealth:

    async def test_health(self, client):
        response = await client.get("/health")

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "healthy"
        assert set(body["broadcast"]) == {"backend", "bridge_connected", "sessions"}

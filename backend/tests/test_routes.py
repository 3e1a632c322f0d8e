"""
Daily Doodles Backend — API Route Tests
=========================================

What:  End-to-end HTTP flows through the real app with mocked Supabase and
       a fake AI service, using httpx AsyncClient over ASGITransport.

What we test:
    ✅ Session cookie issuance and per-browser state
    ✅ Login / sign-up flows and their error bodies
    ✅ Dashboard load, prompt refresh, confirmed and declined deletes
    ✅ Editor open → edit → save, failed save, cancel
    ✅ Error envelope, request id header, health check
    ❌ The voice WebSocket (ASGITransport speaks HTTP only; see
       test_voice_socket.py)
"""

import pytest
from postgrest.exceptions import APIError
from supabase import AuthError

from conftest import entry_row
from daily_doodles.controllers.editor import SAVE_FAILED_ALERT


async def log_in(client) -> dict:
    await client.post("/api/session/mount")
    await client.post("/api/session/navigate", json={"view": "login"})
    response = await client.post(
        "/api/auth/login",
        json={"email": "ava@example.com", "password": "pw"},
    )
    assert response.status_code == 200
    return response.json()


class TestSession:
    @pytest.mark.asyncio
    async def test_first_request_sets_cookie(self, test_client):
        response = await test_client.get("/api/session")

        assert response.status_code == 200
        assert "dd_session" in response.cookies
        body = response.json()
        assert body["view"] == "home"
        assert body["is_loading"] is True

    @pytest.mark.asyncio
    async def test_mount_and_navigate(self, test_client):
        mounted = await test_client.post("/api/session/mount")
        assert mounted.json()["is_loading"] is False

        response = await test_client.post("/api/session/navigate", json={"view": "signup"})
        assert response.json()["view"] == "signup"

    @pytest.mark.asyncio
    async def test_illegal_navigation_is_409(self, test_client):
        response = await test_client.post("/api/session/navigate", json={"view": "editor"})

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "invalid_transition"
        assert body["details"] == {"current_view": "home", "target_view": "editor"}
        assert body["request_id"] == response.headers["X-Request-ID"]


class TestAuth:
    @pytest.mark.asyncio
    async def test_login_lands_on_dashboard(self, test_client):
        body = await log_in(test_client)

        assert body["user"]["name"] == "Ava"
        assert body["session"]["view"] == "dashboard"

    @pytest.mark.asyncio
    async def test_signup_flow(self, test_client, tables):
        await test_client.post("/api/session/navigate", json={"view": "signup"})

        response = await test_client.post(
            "/api/auth/signup",
            json={"email": "ava@example.com", "password": "pw", "name": "Ava"},
        )

        assert response.status_code == 200
        assert response.json()["session"]["view"] == "dashboard"
        tables["profiles"].insert.assert_called_once_with({"id": "u1", "name": "Ava"})

    @pytest.mark.asyncio
    async def test_missing_fields_is_400(self, test_client):
        await test_client.post("/api/session/navigate", json={"view": "login"})

        response = await test_client.post("/api/auth/login", json={"email": "ava@example.com"})

        assert response.status_code == 400
        assert response.json()["message"] == "Please fill in all fields"

    @pytest.mark.asyncio
    async def test_bad_credentials_is_401_and_view_stays(self, test_client, supabase_client):
        supabase_client.auth.sign_in_with_password.side_effect = AuthError(
            "Invalid login credentials", None
        )
        await test_client.post("/api/session/navigate", json={"view": "login"})

        response = await test_client.post(
            "/api/auth/login", json={"email": "ava@example.com", "password": "nope"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid login credentials"
        session = await test_client.get("/api/session")
        assert session.json()["view"] == "login"

    @pytest.mark.asyncio
    async def test_login_form_not_showing_is_409(self, test_client):
        response = await test_client.post(
            "/api/auth/login", json={"email": "ava@example.com", "password": "pw"}
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_logout(self, test_client, supabase_client):
        await log_in(test_client)

        response = await test_client.post("/api/session/logout")

        assert response.json()["view"] == "home"
        supabase_client.auth.sign_out.assert_awaited_once()


class TestDashboard:
    @pytest.mark.asyncio
    async def test_requires_sign_in(self, test_client):
        response = await test_client.get("/api/dashboard")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_load(self, test_client, tables, ai):
        tables["entries"].execute.return_value.data = [
            entry_row("e2", created_at="2025-01-02T08:00:00+00:00", mood="Joyful"),
            entry_row("e1", created_at="2025-01-01T08:00:00+00:00", mood="Joyful"),
        ]
        await log_in(test_client)

        response = await test_client.get("/api/dashboard")

        assert response.status_code == 200
        assert response.headers["Cache-Control"] == "no-store"
        body = response.json()
        assert body["prompt"] == ai.prompt
        assert [e["id"] for e in body["entries"]] == ["e2", "e1"]
        assert body["stats"] == {"entry_count": 2, "streak": 2, "primary_mood": "Joyful"}

    @pytest.mark.asyncio
    async def test_new_prompt(self, test_client, ai):
        await log_in(test_client)
        ai.prompt = "What surprised you?"

        response = await test_client.post("/api/dashboard/prompt")
        assert response.json() == {"prompt": "What surprised you?"}

    @pytest.mark.asyncio
    async def test_delete_needs_confirmation(self, test_client, tables):
        await log_in(test_client)

        response = await test_client.delete("/api/entries/e1")

        assert response.json()["deleted"] is False
        tables["entries"].delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_confirmed_delete_refetches(self, test_client, tables):
        entries = tables["entries"]
        entries.execute.return_value.data = [entry_row("e1"), entry_row("e2")]
        await log_in(test_client)
        await test_client.get("/api/dashboard")
        entries.execute.return_value.data = [entry_row("e2")]

        response = await test_client.delete("/api/entries/e1", params={"confirm": "true"})

        body = response.json()
        assert body["deleted"] is True
        assert [e["id"] for e in body["entries"]] == ["e2"]
        entries.eq.assert_any_call("id", "e1")

    @pytest.mark.asyncio
    async def test_delete_rejected_by_database_is_502(self, test_client, tables):
        await log_in(test_client)
        tables["entries"].execute.side_effect = APIError({"message": "permission denied"})

        response = await test_client.delete("/api/entries/e1", params={"confirm": "true"})

        assert response.status_code == 502
        assert "permission denied" not in response.text


class TestEditor:
    @pytest.mark.asyncio
    async def test_write_and_save_new_entry(self, test_client, tables):
        await log_in(test_client)

        opened = await test_client.post("/api/editor", json={})
        assert opened.status_code == 200
        assert opened.json()["entry_id"] is None

        patched = await test_client.patch("/api/editor", json={"content": "Quiet morning"})
        assert patched.json()["content"] == "Quiet morning"

        analyzed = await test_client.post("/api/editor/analyze")
        assert analyzed.json()["mood"] == "Hopeful"

        saved = await test_client.post("/api/editor/save")
        body = saved.json()
        assert body["saved"] is True
        assert body["session"]["view"] == "dashboard"
        assert tables["entries"].insert.call_args.args[0][0]["title"] == "Morning Reflection"

    @pytest.mark.asyncio
    async def test_edit_existing_entry(self, test_client, tables):
        tables["entries"].execute.return_value.data = [entry_row("e1")]
        await log_in(test_client)
        await test_client.get("/api/dashboard")

        opened = await test_client.post("/api/editor", json={"entry_id": "e1"})
        assert opened.json()["title"] == "Entry e1"

        await test_client.post("/api/editor/save")
        tables["entries"].update.assert_called_once()

    @pytest.mark.asyncio
    async def test_unknown_entry_is_404(self, test_client):
        await log_in(test_client)

        response = await test_client.post("/api/editor", json={"entry_id": "nope"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_failed_save_keeps_editor_open(self, test_client, tables):
        await log_in(test_client)
        await test_client.post("/api/editor", json={})
        await test_client.patch("/api/editor", json={"content": "Keep me"})
        tables["entries"].execute.side_effect = APIError({"message": "offline"})

        response = await test_client.post("/api/editor/save")

        body = response.json()
        assert body["saved"] is False
        assert body["editor"]["alert"] == SAVE_FAILED_ALERT
        assert body["editor"]["content"] == "Keep me"
        assert body["session"]["view"] == "editor"

    @pytest.mark.asyncio
    async def test_cancel(self, test_client):
        await log_in(test_client)
        await test_client.post("/api/editor", json={})

        response = await test_client.post("/api/editor/cancel")
        assert response.json()["view"] == "dashboard"

        missing = await test_client.get("/api/editor")
        assert missing.status_code == 404


class TestHealth:
    @pytest.mark.asyncio
    async def test_healthy(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["supabase"] == "configured"
        assert body["gemini"] == "available"

    @pytest.mark.asyncio
    async def test_degraded_when_ai_unreachable(self, test_client, ai):
        ai.healthy = False

        response = await test_client.get("/health")
        assert response.json()["status"] == "degraded"

"""
Daily Doodles Backend — Session Registry Tests
================================================

What we test:
    ✅ One AppSession per browser id; unknown ids get a fresh session
    ✅ Idle sessions are unmounted and their Supabase client closed
    ✅ A client that fails to close does not block the discard
"""

import httpx
import pytest

from daily_doodles.sessions import SessionRegistry


@pytest.fixture
def registry(supabase_client, ai) -> SessionRegistry:
    async def client_factory():
        return supabase_client

    return SessionRegistry(client_factory, ai, idle_timeout=60)


class TestLookup:
    @pytest.mark.asyncio
    async def test_same_id_returns_same_session(self, registry):
        session = await registry.get_or_create(None)

        assert await registry.get_or_create(session.id) is session
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_unknown_id_creates_new_session(self, registry):
        session = await registry.get_or_create("not-a-session")

        assert session.id != "not-a-session"
        assert registry.get("not-a-session") is None


class TestDiscard:
    @pytest.mark.asyncio
    async def test_idle_session_is_unmounted_and_client_closed(self, registry, supabase_client):
        session = await registry.get_or_create(None)
        await session.controller.mount()
        session.last_seen = 0

        assert await registry.prune_idle() == 1

        assert len(registry) == 0
        supabase_client.auth.on_auth_state_change.return_value.unsubscribe.assert_called_once()
        supabase_client.auth.close.assert_awaited_once()
        supabase_client.postgrest.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_failure_still_discards(self, registry, supabase_client):
        supabase_client.auth.close.side_effect = httpx.ConnectError("gone")
        session = await registry.get_or_create(None)

        await registry.discard(session.id)

        assert registry.get(session.id) is None

    @pytest.mark.asyncio
    async def test_close_all(self, registry, supabase_client):
        await registry.get_or_create(None)
        await registry.get_or_create(None)

        await registry.close_all()

        assert len(registry) == 0
        assert supabase_client.auth.close.await_count == 2

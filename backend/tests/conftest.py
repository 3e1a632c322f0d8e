"""
Daily Doodles Backend — Test Configuration (conftest.py)
==========================================================

What:  Shared fixtures and fakes for the test suite.
How:   The Supabase client is a MagicMock whose query builders chain like the
       real postgrest builder (`table().select().eq()...execute()`); the AI
       service is a small in-memory fake; audio and live sessions are queues.

Fixture Hierarchy (all function-scoped):
    ├── supabase_client: mocked AsyncClient (auth + one builder per table)
    ├── storage:         StorageService over supabase_client
    ├── ai:              FakeAI (prompt / analysis / transcription fakes)
    ├── user:            a signed-in User ("Ava")
    ├── app:             fresh FastAPI app with fakes on app.state
    └── test_client:     HTTPX AsyncClient over ASGITransport
"""

import asyncio
import os
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

# Settings are read at import time; point them at fakes first
os.environ["SUPABASE_URL"] = "https://test-project.supabase.co"
os.environ["SUPABASE_ANON_KEY"] = "test-anon-key-not-real"
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from daily_doodles.exceptions import MicrophoneAccessError, TranscriptionSessionError
from daily_doodles.models.entry import EntryAnalysis
from daily_doodles.models.user import User
from daily_doodles.services.llm_base import JournalAIService
from daily_doodles.services.storage_service import StorageService
from daily_doodles.services.transcription import TranscriptionSession
from daily_doodles.sessions import SessionRegistry


# ══════════════════════════════════════════════════════════════════════════
# Supabase client mocks
# ══════════════════════════════════════════════════════════════════════════

def make_query(data: Optional[List[Dict[str, Any]]] = None) -> MagicMock:
    """
    A postgrest-style builder: every filter returns the builder itself and
    `execute()` is awaitable, returning an object with `.data`.
    """
    query = MagicMock(name="query")
    for method in ("select", "insert", "upsert", "update", "delete", "eq", "order", "limit"):
        getattr(query, method).return_value = query
    query.execute = AsyncMock(return_value=SimpleNamespace(data=data if data is not None else []))
    return query


def gemini_client(text=None, error=None) -> MagicMock:
    """A mocked `google.genai.Client` whose generate_content returns `text`."""
    client = MagicMock(name="genai_client")
    if error is not None:
        client.aio.models.generate_content = AsyncMock(side_effect=error)
    else:
        client.aio.models.generate_content = AsyncMock(return_value=SimpleNamespace(text=text))
    client.aio.models.get = AsyncMock(return_value=SimpleNamespace(name="models/test"))
    return client


def auth_user(user_id: str = "u1", email: str = "ava@example.com") -> SimpleNamespace:
    return SimpleNamespace(id=user_id, email=email)


def auth_response(user: Optional[SimpleNamespace]) -> SimpleNamespace:
    return SimpleNamespace(user=user, session=SimpleNamespace(user=user) if user else None)


def entry_row(
    entry_id: str,
    created_at: str = "2025-01-15T08:00:00+00:00",
    mood: Optional[str] = "Calm",
    **overrides: Any,
) -> Dict[str, Any]:
    row = {
        "id": entry_id,
        "user_id": "u1",
        "title": f"Entry {entry_id}",
        "content": f"Content of {entry_id}",
        "mood": mood,
        "ai_insight": "Breathe.",
        "created_at": created_at,
    }
    row.update(overrides)
    return row


@pytest.fixture
def tables() -> Dict[str, MagicMock]:
    """One builder per table; tests set `.execute.return_value` as needed."""
    return {
        "profiles": make_query([{"name": "Ava"}]),
        "entries": make_query([]),
    }


@pytest.fixture
def supabase_client(tables):
    """
    Mocked `supabase.AsyncClient`.

    Nobody is signed in by default (`auth.get_user()` → None).
    """
    client = MagicMock(name="supabase_client")
    client.table.side_effect = lambda name: tables[name]
    client.auth.sign_up = AsyncMock(return_value=auth_response(auth_user()))
    client.auth.sign_in_with_password = AsyncMock(return_value=auth_response(auth_user()))
    client.auth.sign_out = AsyncMock(return_value=None)
    client.auth.get_user = AsyncMock(return_value=None)
    client.auth.on_auth_state_change = MagicMock(return_value=MagicMock(name="subscription"))
    client.auth.close = AsyncMock(return_value=None)
    client.postgrest.aclose = AsyncMock(return_value=None)
    return client


@pytest.fixture
def storage(supabase_client) -> StorageService:
    return StorageService(supabase_client)


@pytest.fixture
def user() -> User:
    return User(id="u1", name="Ava", email="ava@example.com")


# ══════════════════════════════════════════════════════════════════════════
# Live transcription + audio fakes
# ══════════════════════════════════════════════════════════════════════════

def transcription_message(text: str) -> SimpleNamespace:
    return SimpleNamespace(
        server_content=SimpleNamespace(input_transcription=SimpleNamespace(text=text))
    )


class FakeLiveSession:
    """
    Stands in for the SDK's live session.

    `receive()` yields queued messages; a None ends the current round.
    An empty round means the remote side hung up.
    """

    def __init__(self):
        self.messages: "asyncio.Queue[Optional[Any]]" = asyncio.Queue()
        self.sent: List[Any] = []
        self.send_realtime_input = AsyncMock(side_effect=self._record)

    async def _record(self, audio=None, **kwargs):
        self.sent.append(audio)

    async def receive(self):
        while True:
            message = await self.messages.get()
            if message is None:
                return
            yield message

    def say(self, text: str) -> None:
        self.messages.put_nowait(transcription_message(text))

    def hang_up(self) -> None:
        self.messages.put_nowait(None)
        self.messages.put_nowait(None)


class FakeAudioSource:
    """An AudioSource fed from a queue; None ends the stream."""

    def __init__(self, denied: bool = False):
        self.denied = denied
        self.opened = False
        self.close_calls = 0
        self._frames: "asyncio.Queue[Optional[List[float]]]" = asyncio.Queue()

    async def open(self) -> None:
        if self.denied:
            raise MicrophoneAccessError("Permission denied")
        self.opened = True

    def push(self, frame: List[float]) -> None:
        self._frames.put_nowait(frame)

    def end(self) -> None:
        self._frames.put_nowait(None)

    async def frames(self):
        while True:
            frame = await self._frames.get()
            if frame is None:
                return
            yield frame

    async def close(self) -> None:
        self.close_calls += 1
        self._frames.put_nowait(None)

    @property
    def closed(self) -> bool:
        return self.close_calls > 0


class FakeAI(JournalAIService):
    """
    In-memory JournalAIService.

    Attributes:
        prompt / analysis:   what the next call returns
        live_sessions:       every FakeLiveSession handed out
        fail_transcription:  make open_transcription_session() raise
        transcripts:         lines every new live session hears straight away
    """

    def __init__(self):
        self.prompt = "What made you smile today?"
        self.analysis = EntryAnalysis(mood="Hopeful", insight="Small steps count.")
        self.prompt_calls: List[str] = []
        self.analyze_calls: List[str] = []
        self.live_sessions: List[FakeLiveSession] = []
        self.transcription_sessions: List[TranscriptionSession] = []
        self.fail_transcription = False
        self.transcripts: List[str] = []
        self.healthy = True

    async def generate_prompt(self, name: str) -> str:
        self.prompt_calls.append(name)
        return self.prompt

    async def analyze_entry(self, content: str) -> EntryAnalysis:
        self.analyze_calls.append(content)
        return self.analysis

    async def open_transcription_session(self) -> TranscriptionSession:
        if self.fail_transcription:
            raise TranscriptionSessionError("Could not connect")
        live = FakeLiveSession()
        for text in self.transcripts:
            live.say(text)
        closer = AsyncMock()
        session = TranscriptionSession(live, closer)
        self.live_sessions.append(live)
        self.transcription_sessions.append(session)
        return session

    async def health_check(self) -> bool:
        return self.healthy


@pytest.fixture
def ai() -> FakeAI:
    return FakeAI()


async def wait_until(predicate, timeout: float = 1.0) -> None:
    """Yield to the loop until `predicate()` holds (background tasks ran)."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


# ══════════════════════════════════════════════════════════════════════════
# API fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app(supabase_client, ai):
    """
    Fresh app with fakes on app.state. ASGITransport does not run the
    lifespan, so nothing real is created.
    """
    from daily_doodles.main import create_app

    application = create_app()

    async def client_factory():
        return supabase_client

    application.state.ai = ai
    application.state.sessions = SessionRegistry(client_factory, ai)
    return application


@pytest_asyncio.fixture
async def test_client(app):
    """
    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def utc(year: int, month: int, day: int, hour: int = 8) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)

"""
Daily Doodles Backend — Browser Session Registry
==================================================

What:  Keeps one AppSession per browser, keyed by the session cookie.
How:   An AppSession bundles the browser's own Supabase client (so auth
       state is never shared between browsers), the StorageService over it,
       and the ViewController holding the browser's view state.
       Sessions idle for longer than SESSION_IDLE_TIMEOUT are unmounted and
       dropped on the next lookup, and their Supabase client is closed.

Thread Safety:
    Single-process, single event loop. A multi-worker deployment would need
    sticky sessions since this state lives in memory.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Optional

import httpx
from supabase import AsyncClient

from daily_doodles.config import settings
from daily_doodles.controllers.view_controller import ViewController
from daily_doodles.services.llm_base import JournalAIService
from daily_doodles.services.storage_service import StorageService

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], Awaitable[AsyncClient]]


@dataclass
class AppSession:
    id: str
    storage: StorageService
    controller: ViewController
    last_seen: float = field(default_factory=time.time)

    def touch(self) -> None:
        self.last_seen = time.time()


class SessionRegistry:
    """
    In-memory map of session id → AppSession.

    Args:
        client_factory: coroutine function returning a new Supabase client
        ai:             the shared AI service handed to every controller
        idle_timeout:   seconds of inactivity before a session is dropped
    """

    def __init__(
        self,
        client_factory: ClientFactory,
        ai: JournalAIService,
        idle_timeout: Optional[int] = None,
    ):
        self._client_factory = client_factory
        self._ai = ai
        self._idle_timeout = idle_timeout if idle_timeout is not None else settings.session_idle_timeout
        self._sessions: Dict[str, AppSession] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: Optional[str]) -> Optional[AppSession]:
        if not session_id:
            return None
        session = self._sessions.get(session_id)
        if session is not None:
            session.touch()
        return session

    async def get_or_create(self, session_id: Optional[str]) -> AppSession:
        """Return the session for `session_id`, creating a new one if unknown."""
        await self.prune_idle()

        session = self.get(session_id)
        if session is not None:
            return session

        async with self._lock:
            client = await self._client_factory()
            storage = StorageService(client)
            new_id = uuid.uuid4().hex
            session = AppSession(
                id=new_id,
                storage=storage,
                controller=ViewController(storage, self._ai),
            )
            self._sessions[new_id] = session

        logger.info("Created browser session %s (%d active)", new_id[:8], len(self._sessions))
        return session

    async def discard(self, session_id: str) -> None:
        """Unmount the session's controller and close its Supabase client."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return
        await session.controller.unmount()
        try:
            await session.storage.close()
        except httpx.HTTPError as e:
            logger.warning("Closing client for session %s failed: %s", session_id[:8], e)

    async def prune_idle(self) -> int:
        """Unmount and drop sessions idle past the timeout. Returns the count."""
        cutoff = time.time() - self._idle_timeout
        stale = [sid for sid, s in self._sessions.items() if s.last_seen < cutoff]
        for sid in stale:
            await self.discard(sid)
        if stale:
            logger.debug("Pruned %d idle sessions", len(stale))
        return len(stale)

    async def close_all(self) -> None:
        for sid in list(self._sessions):
            await self.discard(sid)

"""
Daily Doodles Backend — Dashboard
===================================

What:  The signed-in home screen: entry list, reflective prompt, stats.
How:   load() fetches entries and a prompt concurrently; both are best
       effort (storage degrades to [], the AI adapter to a fallback prompt).
       delete_entry() asks for confirmation, deletes, then re-fetches the
       whole list. Nothing is removed locally ahead of the server.
Who:   Created by the ViewController whenever it enters `dashboard`.
"""

import asyncio
import inspect
import logging
from collections import Counter
from typing import Awaitable, Callable, List, Optional, Union

from pydantic import BaseModel

from daily_doodles.models.entry import JournalEntry
from daily_doodles.models.user import User
from daily_doodles.services.llm_base import JournalAIService
from daily_doodles.services.storage_service import StorageService

logger = logging.getLogger(__name__)

# Mood shown when no entry carries one
QUIET_MOOD = "Quiet"

ConfirmCallback = Callable[[str], Union[bool, Awaitable[bool]]]


class DashboardStats(BaseModel):
    entry_count: int
    # Counts entries, not consecutive days
    streak: int
    primary_mood: str


def compute_stats(entries: List[JournalEntry]) -> DashboardStats:
    """
    Display-only aggregates over the entry list.

    primary_mood is the most frequent mood; on a tie the mood seen first
    in list order wins (Counter.most_common keeps insertion order for
    equal counts).
    """
    moods = Counter(entry.mood for entry in entries if entry.mood)
    primary_mood = moods.most_common(1)[0][0] if moods else QUIET_MOOD
    return DashboardStats(
        entry_count=len(entries),
        streak=len(entries),
        primary_mood=primary_mood,
    )


class Dashboard:
    def __init__(self, user: User, storage: StorageService, ai: JournalAIService):
        self.user = user
        self._storage = storage
        self._ai = ai
        self.entries: List[JournalEntry] = []
        self.prompt = ""
        self.loading_entries = False
        self.loading_prompt = False

    @property
    def stats(self) -> DashboardStats:
        return compute_stats(self.entries)

    async def load(self) -> None:
        """Fetch entries and a fresh prompt side by side."""
        await asyncio.gather(self.refresh_entries(), self.refresh_prompt())

    async def refresh_entries(self) -> List[JournalEntry]:
        self.loading_entries = True
        try:
            self.entries = await self._storage.list_entries(self.user.id)
        finally:
            self.loading_entries = False
        return self.entries

    async def refresh_prompt(self) -> str:
        self.loading_prompt = True
        try:
            self.prompt = await self._ai.generate_prompt(self.user.name)
        finally:
            self.loading_prompt = False
        return self.prompt

    def find_entry(self, entry_id: str) -> Optional[JournalEntry]:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    async def delete_entry(self, entry_id: str, confirm: ConfirmCallback) -> bool:
        """
        Delete `entry_id` once `confirm(entry_id)` agrees, then re-fetch.

        Args:
            confirm: stands in for the confirmation dialog; may be sync or async.

        Returns:
            True when the delete went ahead, False when it was declined.

        Raises:
            APIError: the hosted database rejected the delete
        """
        answer = confirm(entry_id)
        if inspect.isawaitable(answer):
            answer = await answer
        if not answer:
            logger.debug("Delete of %s declined", entry_id)
            return False

        await self._storage.delete_entry(entry_id)
        await self.refresh_entries()
        return True

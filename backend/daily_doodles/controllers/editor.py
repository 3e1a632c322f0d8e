"""
Daily Doodles Backend — Entry Editor
======================================

What:  Draft state and actions for writing one journal entry.
How:   Holds title/content/mood/insight seeded from an existing entry (or
       blank), and offers:
           analyze()  → AI mood + insight (skipped for blank content)
           save()     → analyze-if-missing, then insert or update
           voice      → dictation appended to the content
Who:   Created by the ViewController when it enters the `editor` view.

Save Flow:
    ┌─────────┐   mood/insight   ┌──────────┐   Unsaved → insert    ┌──────────┐
    │ content │── missing? ─────▶│ analyze  │──────────────────────▶│ storage  │
    │ blank?  │                  └──────────┘   Persisted → update  └──────────┘
    └─────────┘                                         │ ok: on_saved()
         │ yes: no-op                                   │ error: alert, stay
"""

import inspect
import logging
from typing import Awaitable, Callable, List, Optional, Union

import httpx
from postgrest.exceptions import APIError

from daily_doodles.controllers.voice_capture import AudioSource, VoiceCapture, VoiceState
from daily_doodles.exceptions import DailyDoodlesError, InvalidTransitionError
from daily_doodles.models.entry import (
    DEFAULT_ENTRY_TITLE,
    EntryDraft,
    JournalEntry,
    savable_entry,
    utc_now,
)
from daily_doodles.models.user import User
from daily_doodles.services.llm_base import JournalAIService
from daily_doodles.services.storage_service import StorageService

logger = logging.getLogger(__name__)

SAVE_FAILED_ALERT = "Failed to save entry. Please try again."


def append_with_separator(content: str, text: str) -> str:
    """
    Append dictated `text`, adding one space unless `content` is empty or
    already ends in whitespace.
    """
    if not content or content[-1].isspace():
        return content + text
    return content + " " + text


class Editor:
    """
    Attributes:
        title, content, mood, insight: the draft fields
        is_analyzing / is_saving:      in-flight flags for the UI
        alert:                         last blocking message ("" when none)
    """

    def __init__(
        self,
        user: User,
        storage: StorageService,
        ai: JournalAIService,
        entry: Optional[JournalEntry] = None,
        on_saved: Optional[Callable[[], Union[None, Awaitable[None]]]] = None,
    ):
        self.user = user
        self.entry = entry
        self._storage = storage
        self._ai = ai
        self._on_saved = on_saved

        self.title = entry.title if entry else ""
        self.content = entry.content if entry else ""
        self.mood = (entry.mood or "") if entry else ""
        self.insight = (entry.ai_insight or "") if entry else ""

        self.is_analyzing = False
        self.is_saving = False
        self.alert = ""
        self.voice = VoiceCapture(ai, self.append_transcript)
        # Called with each dictated fragment after it lands in `content`
        self.transcript_listeners: List[Callable[[str], None]] = []

    # ── Draft ─────────────────────────────────────────────────────────────

    def update(self, title: Optional[str] = None, content: Optional[str] = None) -> None:
        if title is not None:
            self.title = title
        if content is not None:
            self.content = content

    def append_transcript(self, text: str) -> None:
        self.content = append_with_separator(self.content, text)
        for listener in self.transcript_listeners:
            listener(text)

    # ── AI analysis ───────────────────────────────────────────────────────

    async def analyze(self) -> bool:
        """
        Replace mood/insight with a fresh analysis of the content.

        Returns:
            False (and does nothing) when the content is blank.
        """
        if not self.content.strip():
            return False

        self.is_analyzing = True
        try:
            result = await self._ai.analyze_entry(self.content)
        finally:
            self.is_analyzing = False

        self.mood = result.mood
        self.insight = result.insight
        return True

    # ── Save ──────────────────────────────────────────────────────────────

    async def save(self) -> bool:
        """
        Write the entry. Analyses first when mood or insight is missing.

        Returns:
            True on success (the completion callback has run), False when
            the content was blank or the write failed (see `alert`).
        """
        if not self.content.strip():
            return False

        self.is_saving = True
        self.alert = ""
        try:
            mood, insight = self.mood, self.insight
            if not mood or not insight:
                result = await self._ai.analyze_entry(self.content)
                mood, insight = result.mood, result.insight
                self.mood, self.insight = mood, insight

            draft = EntryDraft(
                title=self.title or DEFAULT_ENTRY_TITLE,
                content=self.content,
                mood=mood,
                ai_insight=insight,
                date=self.entry.date if self.entry else utc_now(),
            )
            target = savable_entry(self.entry.id if self.entry else None, draft)
            await self._storage.save_entry(self.user.id, target)
        except (APIError, httpx.HTTPError, DailyDoodlesError) as e:
            logger.error("Save failed: %s", e)
            self.alert = SAVE_FAILED_ALERT
            return False
        finally:
            self.is_saving = False

        if self._on_saved is not None:
            try:
                result = self._on_saved()
                if inspect.isawaitable(result):
                    await result
            except InvalidTransitionError as e:
                # Editor was closed while the write was in flight
                logger.warning("Entry saved after editor closed: %s", e.message)
        return True

    # ── Voice ─────────────────────────────────────────────────────────────

    @property
    def voice_state(self) -> VoiceState:
        return self.voice.state

    async def start_voice(self, source: AudioSource) -> bool:
        started = await self.voice.start(source)
        if not started:
            self.alert = self.voice.alert
        return started

    async def stop_voice(self) -> None:
        await self.voice.stop()

    async def toggle_voice(self, source: AudioSource) -> bool:
        if self.voice.is_recording:
            await self.voice.stop()
            return False
        return await self.start_voice(source)

    async def close(self) -> None:
        """Editor teardown; releases the microphone if dictation is running."""
        await self.voice.stop()

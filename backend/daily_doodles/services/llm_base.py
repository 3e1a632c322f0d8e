"""
Daily Doodles Backend — Abstract Journal AI Interface
=======================================================

What:  Abstract base class for the AI features: reflective prompts, entry
       analysis, and live voice transcription.
How:   Concrete implementations inherit from JournalAIService. GeminiService
       is the only one shipped; tests substitute mocks.
Who:   Called by the Dashboard (prompts), the Editor (analysis), and
       VoiceCapture (transcription).
"""

from abc import ABC, abstractmethod

from daily_doodles.models.entry import EntryAnalysis
from daily_doodles.services.transcription import TranscriptionSession


class JournalAIService(ABC):
    """
    Contract:
        - generate_prompt() and analyze_entry() NEVER raise. Any failure is
          replaced by a fixed fallback value inside the implementation.
        - open_transcription_session() raises TranscriptionSessionError when
          the connection cannot be established; there is nothing sensible
          to fall back to.
    """

    @abstractmethod
    async def generate_prompt(self, name: str) -> str:
        """
        Produce a short reflective writing prompt for `name`.

        Returns:
            str: prompt text, or a fixed fallback prompt on any error.
        """
        ...

    @abstractmethod
    async def analyze_entry(self, content: str) -> EntryAnalysis:
        """
        Classify an entry's mood and write a one-sentence insight.

        Returns:
            EntryAnalysis: model output, or the fixed fallback pair on any
            error (including malformed structured output).
        """
        ...

    @abstractmethod
    async def open_transcription_session(self) -> TranscriptionSession:
        """
        Open a streaming speech-to-text session.

        Raises:
            TranscriptionSessionError: connection could not be opened.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Lightweight connectivity test (does NOT consume generation quota).

        Returns: True if the service is reachable, False otherwise.
        """
        ...

"""
Daily Doodles Backend — Voice Capture
=======================================

What:  The editor's dictation sub-flow: microphone frames in, transcript
       text out.
How:   Two states, IDLE ⇄ RECORDING.

       start(source):
           source.open()            ── denied ──▶ alert, stay IDLE
           ai.open_transcription_session()
           pump task:   frame → PCM16 → base64 → session.send_audio()
           listen task: session.transcripts() → on_transcript(text)
           state = RECORDING

       stop():  cancel tasks, close source, close session, state = IDLE
                (idempotent; also triggered by session close/error and by
                the source running dry)

Resources:
    The audio source (microphone tracks + audio context) and the
    transcription session are owned exclusively by this object and are
    released on every exit path: explicit stop, remote close, remote error,
    editor teardown.
"""

import asyncio
import logging
from enum import Enum
from typing import AsyncIterator, Callable, List, Optional, Protocol, Sequence

from daily_doodles.exceptions import MicrophoneAccessError, TranscriptionSessionError
from daily_doodles.services.audio import encode_audio_chunk
from daily_doodles.services.llm_base import JournalAIService
from daily_doodles.services.transcription import TranscriptionSession

logger = logging.getLogger(__name__)

MICROPHONE_ALERT = "Please allow microphone access to use voice journaling."
TRANSCRIPTION_ALERT = "Voice transcription is unavailable right now. Please try again."


class VoiceState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"


class AudioSource(Protocol):
    """
    A microphone. Implementations: the browser WebSocket source in
    routes/editor.py, and fakes in tests.
    """

    async def open(self) -> None:
        """Acquire the device. Raises MicrophoneAccessError when refused."""
        ...

    def frames(self) -> AsyncIterator[Sequence[float]]:
        """Float frames at 16kHz until the device stops."""
        ...

    async def close(self) -> None:
        """Release the device. Must be idempotent."""
        ...


class VoiceCapture:
    """
    Attributes:
        state: VoiceState.IDLE or VoiceState.RECORDING
        alert: last user-facing message ("" when none)
    """

    def __init__(self, ai: JournalAIService, on_transcript: Callable[[str], None]):
        self._ai = ai
        self._on_transcript = on_transcript
        self.state = VoiceState.IDLE
        self.alert = ""
        self._source: Optional[AudioSource] = None
        self._session: Optional[TranscriptionSession] = None
        self._tasks: List[asyncio.Task] = []
        self._stopped = asyncio.Event()
        self._stopped.set()

    @property
    def is_recording(self) -> bool:
        return self.state == VoiceState.RECORDING

    async def start(self, source: AudioSource) -> bool:
        """
        Begin dictation from `source`.

        Returns:
            True when recording started, False when it did not (see `alert`).
        """
        if self.is_recording:
            return True

        self.alert = ""
        try:
            await source.open()
        except MicrophoneAccessError as e:
            logger.warning("Mic access error: %s", e.message)
            await source.close()
            self.alert = MICROPHONE_ALERT
            return False

        try:
            session = await self._ai.open_transcription_session()
        except TranscriptionSessionError as e:
            logger.error("Transcription error: %s", e.message)
            await source.close()
            self.alert = TRANSCRIPTION_ALERT
            return False

        self._source = source
        self._session = session
        self._stopped.clear()
        self.state = VoiceState.RECORDING
        self._tasks = [
            asyncio.create_task(self._pump_audio(source, session)),
            asyncio.create_task(self._listen(session)),
        ]
        logger.info("Voice capture started")
        return True

    async def stop(self) -> None:
        """Release the microphone and the session. Safe when already stopped."""
        current = asyncio.current_task()
        tasks, self._tasks = self._tasks, []
        source, self._source = self._source, None
        session, self._session = self._session, None
        was_recording = self.is_recording
        self.state = VoiceState.IDLE

        others = [task for task in tasks if task is not current]
        for task in others:
            task.cancel()
        if others:
            await asyncio.gather(*others, return_exceptions=True)

        if source is not None:
            await source.close()
        if session is not None:
            await session.close()

        self._stopped.set()
        if was_recording:
            logger.info("Voice capture stopped")

    async def wait_stopped(self) -> None:
        """Block until the current recording (if any) has fully stopped."""
        await self._stopped.wait()

    async def _pump_audio(self, source: AudioSource, session: TranscriptionSession) -> None:
        try:
            async for frame in source.frames():
                await session.send_audio(encode_audio_chunk(frame))
        except asyncio.CancelledError:
            raise
        except TranscriptionSessionError as e:
            logger.error("Transcription Error: %s", e.message)
        except MicrophoneAccessError as e:
            logger.warning("Audio source failed: %s", e.message)
        except Exception:
            logger.exception("Audio pump failed")
        await self.stop()

    async def _listen(self, session: TranscriptionSession) -> None:
        try:
            async for text in session.transcripts():
                self._on_transcript(text)
        except asyncio.CancelledError:
            raise
        except TranscriptionSessionError as e:
            logger.error("Transcription Error: %s", e.message)
        except Exception:
            logger.exception("Transcript listener failed")
        await self.stop()

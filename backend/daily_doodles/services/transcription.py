"""
Daily Doodles Backend — Live Transcription Session
====================================================

What:  A message-stream wrapper around a Gemini Live API session.
How:   Two directions, one explicit close:

           send_audio(chunk)  ──▶  Live API  ──▶  transcripts()
                                                   (async iterator of text)
           close()  (idempotent) ends transcripts()

       The remote model is configured to stay silent; the only thing read
       from the stream is `server_content.input_transcription.text`.
       Everything else (model audio, turn markers) is dropped.
Who:   Opened by GeminiService.open_transcription_session(); owned by
       VoiceCapture for the lifetime of one recording.
"""

import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from google.genai import types
from websockets.exceptions import ConnectionClosedOK

from daily_doodles.exceptions import TranscriptionSessionError
from daily_doodles.services.audio import AudioChunk

logger = logging.getLogger(__name__)


def input_transcription_text(message: Any) -> Optional[str]:
    """Pull the incremental input transcription out of a server message."""
    server_content = getattr(message, "server_content", None)
    if server_content is None:
        return None
    transcription = getattr(server_content, "input_transcription", None)
    if transcription is None:
        return None
    return transcription.text or None


class TranscriptionSession:
    """
    One open Live API connection used purely for speech-to-text.

    Attributes:
        closed: True once close() ran or the remote end went away.
    """

    def __init__(self, session: Any, closer: Callable[[], Awaitable[None]]):
        """
        Args:
            session: the SDK's live session (send_realtime_input / receive)
            closer:  coroutine function that tears the connection down
        """
        self._session = session
        self._closer = closer
        self.closed = False

    async def send_audio(self, chunk: AudioChunk) -> None:
        """
        Push one realtime audio chunk. Chunks are sent in call order;
        calls after close() are dropped.

        Raises:
            TranscriptionSessionError: the connection refused the chunk
        """
        if self.closed:
            return
        try:
            await self._session.send_realtime_input(
                audio=types.Blob(data=chunk.pcm_bytes(), mime_type=chunk.mime_type)
            )
        except Exception as e:
            if self.closed:
                return
            raise TranscriptionSessionError(
                message="Failed to send audio to the transcription session",
                context={"error_type": type(e).__name__},
            ) from e

    async def transcripts(self) -> AsyncIterator[str]:
        """
        Yield incremental transcription text until the session ends.

        The SDK's receive() stops at every turn boundary, so it is re-entered
        until the session is closed or a round produces no messages at all
        (the remote side hung up).

        Raises:
            TranscriptionSessionError: the remote side reported an error
        """
        while not self.closed:
            received_any = False
            try:
                async for message in self._session.receive():
                    received_any = True
                    text = input_transcription_text(message)
                    if text:
                        yield text
            except ConnectionClosedOK:
                logger.info("Transcription session closed by remote")
                self.closed = True
                return
            except Exception as e:
                if self.closed:
                    return
                raise TranscriptionSessionError(
                    message="Transcription session error",
                    context={"error_type": type(e).__name__, "error": str(e)},
                ) from e

            if not received_any:
                logger.info("Transcription session ended")
                self.closed = True
                return

    async def close(self) -> None:
        """Close the connection. Safe to call any number of times."""
        if self._closer is None:
            return
        self.closed = True
        closer, self._closer = self._closer, None
        try:
            await closer()
        except Exception as e:
            logger.warning("Error while closing transcription session: %s", e)

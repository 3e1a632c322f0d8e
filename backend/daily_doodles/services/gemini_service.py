"""
Daily Doodles Backend — Google Gemini Service Implementation
==============================================================

What:  Concrete JournalAIService on the Google Gen AI SDK (`google-genai`).
How:   - generate_prompt():  plain text generation (temperature 0.8, 60 tokens)
       - analyze_entry():    JSON structured output validated into EntryAnalysis
       - open_transcription_session(): Live API connection configured as a
         silent transcriber (input transcription on, no replies)
Who:   Created once in the app lifespan and shared by every browser session.

Resilience Strategy:
    1. Every generation call is wrapped so the caller never sees an error:
       the public methods return fixed fallback values instead.
    2. A circuit breaker stops calling Gemini after repeated failures and
       serves the fallbacks straight away until the recovery timeout passes.
    3. No automatic retries: the user re-triggers the action if they want to.
"""

import logging
import time
import uuid
from contextlib import AsyncExitStack
from typing import Optional

from google import genai
from google.genai import types
from pydantic import ValidationError as SchemaValidationError

from daily_doodles.config import settings
from daily_doodles.exceptions import (
    CircuitBreakerOpenError,
    LLMServiceError,
    TranscriptionSessionError,
)
from daily_doodles.models.entry import EntryAnalysis
from daily_doodles.services.llm_base import JournalAIService
from daily_doodles.services.transcription import TranscriptionSession

logger = logging.getLogger(__name__)

# ── Fallback values ───────────────────────────────────────────────────────
FALLBACK_PROMPT = "Reflect on a moment today that made you feel present."
EMPTY_PROMPT_FALLBACK = "What's one thing that felt meaningful today?"

FALLBACK_ANALYSIS = EntryAnalysis(
    mood="Thoughtful",
    insight="Every word you write helps clarify your path.",
)
EMPTY_ANALYSIS_FALLBACK = EntryAnalysis(
    mood="Reflective",
    insight="Your thoughts are a bridge to your inner peace.",
)

TRANSCRIPTION_INSTRUCTION = (
    "You are a silent transcription assistant. Transcribe the user's spoken journal "
    "entry exactly as said. Do not respond to them or provide any spoken output. "
    "Only provide the transcription in the metadata."
)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Implements the circuit breaker pattern to prevent cascade failures.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN

        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN

        HALF_OPEN (testing recovery)
            → Allow ONE request through
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Thread Safety:
        Plain counters; fine for a single asyncio event loop.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Check if a request is allowed through the circuit breaker.

        Raises:
            CircuitBreakerOpenError if circuit is OPEN and recovery timeout hasn't elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Circuit breaker transitioning to HALF_OPEN after %.1fs",
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = int(self.recovery_timeout - elapsed)
            raise CircuitBreakerOpenError(recovery_time=remaining)

        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Gemini Service
# ══════════════════════════════════════════════════════════════════════════

class GeminiService(JournalAIService):
    """
    Gemini-backed prompts, analysis and live transcription.

    Error Handling Chain:
        SDK call fails → LLMServiceError (circuit breaker failure recorded)
        → public method logs it and returns the fallback value
        Circuit open → CircuitBreakerOpenError → same fallback, no API call
    """

    PROMPT_TEMPLATE = (
        "Generate a short, deeply reflective journaling prompt for {name}. "
        "Focus on mindfulness or personal growth."
    )

    ANALYSIS_TEMPLATE = (
        "Analyze this journal entry. Provide a 1-word mood and a one-sentence "
        'mindful insight.\n\nEntry: "{content}"'
    )

    def __init__(self, client: Optional[genai.Client] = None):
        """
        Args:
            client: a configured `genai.Client`. When omitted, one is built
                from GEMINI_API_KEY; with no key configured every call
                serves its fallback.
        """
        if client is None and settings.gemini_api_key:
            client = genai.Client(api_key=settings.gemini_api_key)
        self.client = client

        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

        logger.info(
            "GeminiService initialized with text_model=%s, live_model=%s, "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            settings.gemini_text_model,
            settings.gemini_live_model,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    async def generate_prompt(self, name: str) -> str:
        config = types.GenerateContentConfig(
            temperature=settings.prompt_temperature,
            max_output_tokens=settings.prompt_max_output_tokens,
        )
        try:
            text = await self._generate(self.PROMPT_TEMPLATE.format(name=name), config)
        except (LLMServiceError, CircuitBreakerOpenError) as e:
            logger.warning("Prompt generation failed, serving fallback: %s", e.message)
            return FALLBACK_PROMPT

        return text.strip() or EMPTY_PROMPT_FALLBACK

    async def analyze_entry(self, content: str) -> EntryAnalysis:
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=EntryAnalysis,
        )
        try:
            text = await self._generate(self.ANALYSIS_TEMPLATE.format(content=content), config)
            if not text.strip():
                return EMPTY_ANALYSIS_FALLBACK
            return EntryAnalysis.model_validate_json(text)
        except (LLMServiceError, CircuitBreakerOpenError) as e:
            logger.warning("Entry analysis failed, serving fallback: %s", e.message)
            return FALLBACK_ANALYSIS
        except SchemaValidationError as e:
            logger.warning("Entry analysis returned malformed output: %s", e.error_count())
            return FALLBACK_ANALYSIS

    async def open_transcription_session(self) -> TranscriptionSession:
        """
        Connect to the Live API as a silent transcriber.

        The SDK's connect() is an async context manager; it is entered on an
        AsyncExitStack so the session can outlive this call and be closed
        explicitly through TranscriptionSession.close().
        """
        if self.client is None:
            raise TranscriptionSessionError(
                message="Voice transcription is not configured (GEMINI_API_KEY missing)"
            )

        config = types.LiveConnectConfig(
            response_modalities=[types.Modality.AUDIO],
            input_audio_transcription=types.AudioTranscriptionConfig(),
            system_instruction=TRANSCRIPTION_INSTRUCTION,
        )

        stack = AsyncExitStack()
        try:
            session = await stack.enter_async_context(
                self.client.aio.live.connect(model=settings.gemini_live_model, config=config)
            )
        except Exception as e:
            await stack.aclose()
            logger.error("Could not open transcription session: %s", e)
            raise TranscriptionSessionError(
                message="Could not start voice transcription. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        logger.info("Transcription session opened on %s", settings.gemini_live_model)
        return TranscriptionSession(session, stack.aclose)

    async def _generate(self, contents: str, config: types.GenerateContentConfig) -> str:
        """
        Single generate_content call guarded by the circuit breaker.

        Returns:
            The response text ("" when the model returned nothing).

        Raises:
            CircuitBreakerOpenError: circuit is open
            LLMServiceError: the SDK call failed
        """
        request_id = str(uuid.uuid4())[:8]
        self.circuit_breaker.can_execute()

        if self.client is None:
            raise LLMServiceError(message="GEMINI_API_KEY is not configured")

        start_time = time.time()
        try:
            response = await self.client.aio.models.generate_content(
                model=settings.gemini_text_model,
                contents=contents,
                config=config,
            )
        except Exception as e:
            self.circuit_breaker.record_failure()
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                "[%s] Gemini call failed after %.0fms: %s",
                request_id,
                duration_ms,
                str(e),
            )
            raise LLMServiceError(
                message="Gemini request failed",
                context={"request_id": request_id, "error_type": type(e).__name__},
            ) from e

        self.circuit_breaker.record_success()
        duration_ms = (time.time() - start_time) * 1000
        text = response.text or ""
        logger.info(
            "[%s] Gemini call completed in %.0fms, %d chars",
            request_id,
            duration_ms,
            len(text),
        )
        return text

    async def health_check(self) -> bool:
        """
        Check if Gemini is reachable by fetching the configured model's
        metadata (no tokens consumed).
        """
        if self.client is None:
            return False
        try:
            await self.client.aio.models.get(model=settings.gemini_text_model)
            return True
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False

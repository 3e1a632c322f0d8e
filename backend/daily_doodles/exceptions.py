"""
Daily Doodles Backend — Custom Exception Hierarchy
====================================================

What:  Defines application-specific exceptions for different error scenarios.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by controllers, services and middleware; caught by global handlers.

Exception Hierarchy:
    DailyDoodlesError (base)
    ├── ValidationError            → 400 Bad Request (empty fields, bad input)
    ├── AuthenticationError        → 401 Unauthorized (auth form rejected)
    ├── NotFoundError              → 404 Not Found
    ├── InvalidTransitionError     → 409 Conflict (view machine refused a move)
    ├── RateLimitExceededError     → 429 Too Many Requests
    ├── StorageError               → 502 Bad Gateway (hosted storage misbehaved)
    ├── LLMServiceError            → internal to the AI adapter (fallback served)
    ├── CircuitBreakerOpenError    → internal to the AI adapter (fallback served)
    ├── TranscriptionSessionError  → voice capture stops
    └── MicrophoneAccessError      → voice capture never starts

Errors raised by the hosted services themselves (supabase `AuthError`,
postgrest `APIError`) are not wrapped; they propagate as-is and get their
own handlers in main.py.
"""

from typing import Any, Dict, Optional


class DailyDoodlesError(Exception):
    """
    Base exception for all Daily Doodles application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(DailyDoodlesError):
    """
    Raised when client input fails validation.

    When:    Missing required auth fields, empty entry content, bad payloads.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(DailyDoodlesError):
    """
    Raised when a login or sign-up attempt is rejected.

    The message is the one the auth form shows inline, which is usually the
    hosted auth service's own wording ("Invalid login credentials").
    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Authentication failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(DailyDoodlesError):
    """
    Raised when a requested resource does not exist.

    When:    Opening the editor on an entry id the dashboard does not hold,
             acting on an editor that is not open.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class InvalidTransitionError(DailyDoodlesError):
    """
    Raised when the view controller is asked for a move it does not allow.

    Example: navigating from `home` straight to `editor`.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        current: str,
        target: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update({"current_view": current, "target_view": target})
        super().__init__(
            message=f"Cannot move from '{current}' to '{target}'",
            context=ctx,
        )
        self.current = current
        self.target = target


class StorageError(DailyDoodlesError):
    """
    Raised when the hosted auth/database service answers without the data
    it should have returned (e.g. sign-up succeeds but carries no user).

    HTTP:    502 Bad Gateway
    """

    def __init__(
        self,
        message: str = "The storage service returned an unexpected response",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class LLMServiceError(DailyDoodlesError):
    """
    Raised inside the Gemini adapter when an API call fails.

    Never leaves the adapter for prompt generation or entry analysis; the
    public methods catch it and return their fixed fallback values.
    """

    def __init__(
        self,
        message: str = "AI service is temporarily unavailable",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class CircuitBreakerOpenError(DailyDoodlesError):
    """
    Raised when the Gemini circuit breaker is in OPEN state.

    How circuit breaker works:
        CLOSED (normal) → failures increment counter
        → After N failures → OPEN (reject all calls for M seconds)
        → After M seconds → HALF-OPEN (allow one test call)
        → If test succeeds → CLOSED
        → If test fails → OPEN again
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"AI service is temporarily unavailable due to repeated failures. "
            f"It will be tried again in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time


class TranscriptionSessionError(DailyDoodlesError):
    """
    Raised when the live transcription session cannot be opened or reports
    an error mid-stream. Voice capture treats it as a stop request.
    """

    def __init__(
        self,
        message: str = "The transcription session failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class MicrophoneAccessError(DailyDoodlesError):
    """
    Raised by an audio source when microphone access is refused or the
    client's capture settings cannot be used.
    """

    def __init__(
        self,
        message: str = "Microphone access was denied",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(DailyDoodlesError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after

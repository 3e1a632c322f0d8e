"""
Daily Doodles Backend — Application Configuration
===================================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time; validated before app starts.
"""

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for development.
    Production deployments MUST override the hosted-service credentials
    (SUPABASE_URL, SUPABASE_ANON_KEY, GEMINI_API_KEY) and CORS_ORIGINS.

    Attributes are grouped by concern for readability.
    """

    # ── Supabase (hosted auth + database) ─────────────────────────────────
    # Project URL, e.g. https://abcd1234.supabase.co
    supabase_url: str = Field(
        default="",
        description="Supabase project URL",
    )

    # Anonymous (public) key. Row-level security on the `profiles` and
    # `entries` tables scopes every query to the signed-in user.
    supabase_anon_key: str = Field(
        default="",
        description="Supabase anon key used by per-session clients",
    )

    # ── Google Gemini ─────────────────────────────────────────────────────
    # How to obtain: https://aistudio.google.com/app/apikey
    gemini_api_key: str = Field(
        default="",
        description="Google Gemini API key for prompts, analysis and transcription",
    )

    # Model used for prompt generation and entry analysis
    gemini_text_model: str = Field(default="gemini-3-flash-preview")

    # Model used for the Live API transcription session (native audio)
    gemini_live_model: str = Field(
        default="gemini-2.5-flash-native-audio-preview-12-2025"
    )

    # Sampling settings for the dashboard's reflective prompt
    prompt_temperature: float = Field(default=0.8, ge=0.0, le=2.0)
    prompt_max_output_tokens: int = Field(default=60, ge=1, le=1024)

    # ── Audio ─────────────────────────────────────────────────────────────
    # The Live API expects 16-bit PCM at 16kHz; clients must capture at this rate
    audio_sample_rate: int = Field(default=16000)

    # ── CORS ──────────────────────────────────────────────────────────────
    # Format: Comma-separated URLs (split by cors_origins_list)
    cors_origins: str = Field(default="http://localhost:3000")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Circuit Breaker ───────────────────────────────────────────────────
    # After N consecutive Gemini failures, serve fallbacks for M seconds
    # without calling the API at all.
    cb_failure_threshold: int = Field(default=5, ge=2, le=20)
    cb_recovery_timeout: int = Field(default=60, ge=10, le=300)

    # ── Rate Limiting ─────────────────────────────────────────────────────
    rate_limit_requests: int = Field(default=300, ge=10, le=10000)
    rate_limit_window: int = Field(default=3600, ge=60, le=86400)  # seconds

    # ── Browser Sessions ──────────────────────────────────────────────────
    # Each browser gets its own view controller and Supabase client,
    # keyed by this cookie.
    session_cookie_name: str = Field(default="dd_session")
    session_idle_timeout: int = Field(default=86400, ge=60, le=604800)  # seconds

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # GEMINI_API_KEY and gemini_api_key both work
    }

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that the hosted-service credentials are configured.
        When:  Called during app startup (lifespan).
        How:   Checks each required field and raises ValueError with guidance.
        """
        errors = []
        if not self.supabase_url or not self.supabase_anon_key:
            errors.append(
                "SUPABASE_URL and SUPABASE_ANON_KEY must be set. "
                "Find them under Project Settings → API in the Supabase dashboard"
            )
        if not self.gemini_api_key or self.gemini_api_key == "your_gemini_api_key_here":
            errors.append(
                "GEMINI_API_KEY is not set. "
                "Get a free key at https://aistudio.google.com/app/apikey"
            )
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Singleton instance, imported throughout the application
settings = Settings()

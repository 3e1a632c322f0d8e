"""
Daily Doodles Backend — Pydantic Request/Response Schemas
===========================================================

What:  Pydantic models defining the API contract between frontend and backend.
How:   FastAPI uses these models to validate request bodies, serialize
       responses, and generate the OpenAPI documentation.
Who:   Used by route handlers; built from controller state with the
       `from_*` helpers below.

Design Decision:
    Schemas are separate from the domain models in `daily_doodles.models`
    so the API can expose computed fields (stats, voice state, loading
    flags) without those leaking into storage code.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from daily_doodles.controllers.dashboard import Dashboard, DashboardStats
from daily_doodles.controllers.editor import Editor
from daily_doodles.controllers.view_controller import ViewController
from daily_doodles.models.entry import JournalEntry
from daily_doodles.models.user import User
from daily_doodles.models.view import View


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class NavigateRequest(BaseModel):
    view: View = Field(description="Target view: home, login or signup")


class LoginRequest(BaseModel):
    """Fields are validated for emptiness by the AuthForm, not here, so the
    form can report the same inline message the UI shows."""
    email: str = Field(default="")
    password: str = Field(default="")


class SignupRequest(LoginRequest):
    name: str = Field(default="")


class OpenEditorRequest(BaseModel):
    entry_id: Optional[str] = Field(
        default=None,
        description="Entry to edit (from the dashboard list); omit for a new entry",
    )


class EditorUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None)
    content: Optional[str] = Field(default=None)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class EntryResponse(BaseModel):
    id: str
    user_id: str
    date: datetime
    title: str
    content: str
    mood: Optional[str] = None
    ai_insight: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @classmethod
    def from_entry(cls, entry: JournalEntry) -> "EntryResponse":
        return cls(**entry.model_dump())


class SessionState(BaseModel):
    """
    What the view controller is showing right now.

    The browser renders whichever screen `view` names.
    """
    view: View
    user: Optional[User] = None
    is_loading: bool = Field(description="True until the first session check ran")
    active_entry_id: Optional[str] = None

    @classmethod
    def from_controller(cls, controller: ViewController) -> "SessionState":
        return cls(
            view=controller.view,
            user=controller.user,
            is_loading=controller.is_loading,
            active_entry_id=controller.active_entry.id if controller.active_entry else None,
        )


class AuthResponse(BaseModel):
    user: User
    session: SessionState


class DashboardResponse(BaseModel):
    prompt: str = Field(description="Reflective writing prompt (AI or fallback)")
    entries: List[EntryResponse] = Field(description="Entries, newest first")
    stats: DashboardStats

    @classmethod
    def from_dashboard(cls, dashboard: Dashboard) -> "DashboardResponse":
        return cls(
            prompt=dashboard.prompt,
            entries=[EntryResponse.from_entry(e) for e in dashboard.entries],
            stats=dashboard.stats,
        )


class PromptResponse(BaseModel):
    prompt: str


class DeleteResponse(BaseModel):
    deleted: bool = Field(description="False when the delete was not confirmed")
    entries: List[EntryResponse] = Field(description="List after the re-fetch")


class EditorState(BaseModel):
    entry_id: Optional[str] = Field(default=None, description="None for a new entry")
    title: str
    content: str
    mood: str
    insight: str
    voice_state: str = Field(description="idle or recording")
    alert: str = Field(default="", description="Blocking message to show, if any")

    @classmethod
    def from_editor(cls, editor: Editor) -> "EditorState":
        return cls(
            entry_id=editor.entry.id if editor.entry else None,
            title=editor.title,
            content=editor.content,
            mood=editor.mood,
            insight=editor.insight,
            voice_state=editor.voice_state.value,
            alert=editor.alert,
        )


class SaveResponse(BaseModel):
    saved: bool
    editor: Optional[EditorState] = Field(
        default=None,
        description="Draft state when the save did not go through",
    )
    session: SessionState


# ══════════════════════════════════════════════════════════════════════════
# Error / Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "invalid_transition",
            "message": "Cannot move from 'home' to 'editor'",
            "details": {"current_view": "home", "target_view": "editor"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    supabase: str = Field(description="configured or not_configured")
    gemini: str = Field(description="Gemini API status: available, unavailable, circuit_open")
    active_sessions: int = Field(description="Browser sessions held in memory")
    uptime_seconds: float = Field(description="Seconds since service started")

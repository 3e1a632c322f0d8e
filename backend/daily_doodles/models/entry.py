"""
Daily Doodles Backend — Journal Entry Models
==============================================

What:  The journal entry as stored, as drafted, and as handed to storage.
How:   `JournalEntry.from_row()` maps an `entries` row into the domain model;
       `EntryDraft.to_row()` goes the other way.

Row shape (hosted table `entries`):
    id, user_id, title, content, mood, ai_insight, created_at

Saving:
    The editor never hands storage a bare id. It hands a tagged variant:

        UnsavedEntry(draft)          → INSERT
        PersistedEntry(id, draft)    → UPDATE ... WHERE id = :id

    Clients may still send client-generated placeholder ids (anything
    containing "temp"); `savable_entry()` is the only place that string is
    looked at, and it turns such ids into an UnsavedEntry.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

# Marker carried by ids the client made up for entries it has not saved yet
TEMPORARY_ID_MARKER = "temp"

# Title used when the user saves without typing one
DEFAULT_ENTRY_TITLE = "Morning Reflection"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JournalEntry(BaseModel):
    """A persisted journal entry owned by exactly one user."""
    id: str = Field(description="Row id assigned by the database")
    user_id: str = Field(description="Owning user's id")
    date: datetime = Field(description="Creation timestamp (`created_at`)")
    title: str = Field(default="")
    content: str = Field(default="")
    mood: Optional[str] = Field(default=None, description="Single-word mood")
    ai_insight: Optional[str] = Field(default=None, description="One-sentence AI reflection")
    tags: List[str] = Field(default_factory=list, description="Declared but never populated")

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "JournalEntry":
        """Map an `entries` row into a JournalEntry."""
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            date=row["created_at"],
            title=row.get("title") or "",
            content=row.get("content") or "",
            mood=row.get("mood"),
            ai_insight=row.get("ai_insight"),
            tags=[],
        )

    def to_draft(self) -> "EntryDraft":
        return EntryDraft(
            title=self.title,
            content=self.content,
            mood=self.mood,
            ai_insight=self.ai_insight,
            date=self.date,
        )


class EntryDraft(BaseModel):
    """The user-editable part of an entry, ready to be written."""
    title: str = Field(default=DEFAULT_ENTRY_TITLE)
    content: str
    mood: Optional[str] = None
    ai_insight: Optional[str] = None
    date: datetime = Field(default_factory=utc_now)

    def to_row(self, user_id: str) -> Dict[str, Any]:
        """Build the `entries` payload for insert/update."""
        return {
            "user_id": user_id,
            "title": self.title,
            "content": self.content,
            "mood": self.mood,
            "ai_insight": self.ai_insight,
            "created_at": self.date.isoformat(),
        }


class UnsavedEntry(BaseModel):
    """An entry that has never been written; saving it inserts a row."""
    kind: Literal["unsaved"] = "unsaved"
    draft: EntryDraft


class PersistedEntry(BaseModel):
    """An entry that already has a row; saving it updates that row."""
    kind: Literal["persisted"] = "persisted"
    id: str
    draft: EntryDraft


SavableEntry = Annotated[Union[UnsavedEntry, PersistedEntry], Field(discriminator="kind")]


def savable_entry(entry_id: Optional[str], draft: EntryDraft) -> Union[UnsavedEntry, PersistedEntry]:
    """
    Classify an id arriving from outside into the tagged variant.

    Missing ids and client placeholders (containing "temp") become
    UnsavedEntry; every other id is treated as an existing row.
    """
    if not entry_id or TEMPORARY_ID_MARKER in entry_id:
        return UnsavedEntry(draft=draft)
    return PersistedEntry(id=entry_id, draft=draft)


class EntryAnalysis(BaseModel):
    """
    Structured output requested from the model for one entry.

    Also passed to Gemini as the response schema, so both fields are
    required there as well. Blank values fail validation.
    """
    mood: str = Field(min_length=1, description="A single word representing the primary emotion.")
    insight: str = Field(min_length=1, description="A brief, encouraging mindful reflection.")

    model_config = {"str_strip_whitespace": True}

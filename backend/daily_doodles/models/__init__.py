"""
Daily Doodles Backend — Domain Models
=======================================

What:  Pydantic models for the application's own entities.
How:   Services map hosted-database rows into these; controllers hold them
       as state; schemas wrap them for the HTTP API.

Model Inventory:
    - User:            signed-in journaler (id, name, email)
    - JournalEntry:    one persisted diary entry
    - EntryDraft:      the editable part of an entry
    - UnsavedEntry / PersistedEntry: what the editor hands to storage
    - EntryAnalysis:   mood word + insight sentence from the AI adapter
    - View:            the five screens the view controller moves between
"""

from daily_doodles.models.entry import (
    EntryAnalysis,
    EntryDraft,
    JournalEntry,
    PersistedEntry,
    SavableEntry,
    UnsavedEntry,
    savable_entry,
)
from daily_doodles.models.user import User
from daily_doodles.models.view import View

__all__ = [
    "EntryAnalysis",
    "EntryDraft",
    "JournalEntry",
    "PersistedEntry",
    "SavableEntry",
    "UnsavedEntry",
    "User",
    "View",
    "savable_entry",
]

"""
Daily Doodles Backend — Storage Service (Supabase Adapter)
============================================================

What:  Maps application entities onto the hosted Supabase project: auth
       (sign up / sign in / sign out / session lookup) plus the `profiles`
       and `entries` tables.
How:   Wraps an injected `supabase.AsyncClient`. No module-level client:
       every StorageService gets the client for its own browser session,
       and tests hand in a mock.
Who:   Used by the ViewController, AuthForm, Dashboard and Editor.

Error Handling Strategy:
    Hosted-service errors (supabase `AuthError`, postgrest `APIError`) are
    NOT wrapped; callers see exactly what Supabase said. Two deliberate
    exceptions:
        - list_entries() logs read failures and returns []
        - sign_up() falls back from insert to upsert on the profile row
    A response that succeeds but carries no user raises StorageError.

Tables:
    profiles(id, name)
    entries(id, user_id, title, content, mood, ai_insight, created_at)
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Set

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient

from daily_doodles.exceptions import StorageError
from daily_doodles.models.entry import JournalEntry, PersistedEntry, SavableEntry
from daily_doodles.models.user import DEFAULT_DISPLAY_NAME, User

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"
ENTRIES_TABLE = "entries"

# Auth events the view controller reacts to
SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"

AuthEventHandler = Callable[[str, bool], Awaitable[None]]


class AuthSubscription:
    """Handle returned by on_auth_state_change(); call unsubscribe() to stop."""

    def __init__(self, subscription, pending: Set[asyncio.Task]):
        self._subscription = subscription
        self._pending = pending
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._subscription.unsubscribe()
        for task in list(self._pending):
            task.cancel()


class StorageService:
    """
    Pass-through adapter between domain models and Supabase.

    Responsibilities:
        - sign_up() / sign_in() / sign_out() / get_current_user()
        - on_auth_state_change(): bridge SDK auth events to async handlers
        - list_entries() / save_entry() / delete_entry()
    """

    def __init__(self, client: AsyncClient):
        self.client = client

    # ── Auth ──────────────────────────────────────────────────────────────

    async def sign_up(self, email: str, password: str, name: str) -> User:
        """
        Create an auth identity and its profile row.

        Flow:
            1. auth.sign_up → new auth user
            2. INSERT into profiles(id, name)
            3. If the insert fails (row already there), UPSERT instead

        Raises:
            AuthError: the hosted auth service rejected the sign-up
            APIError:  the fallback upsert failed as well
            StorageError: sign-up answered without a user
        """
        auth_response = await self.client.auth.sign_up({"email": email, "password": password})
        auth_user = auth_response.user
        if auth_user is None:
            raise StorageError("Sign up failed", context={"email": email})

        profile = {"id": auth_user.id, "name": name}
        try:
            await self.client.table(PROFILES_TABLE).insert(profile).execute()
        except APIError as e:
            logger.error("Error creating profile during signup: %s", e.message)
            await self.client.table(PROFILES_TABLE).upsert(profile).execute()

        logger.info("Signed up user %s", auth_user.id)
        return User(id=auth_user.id, name=name, email=auth_user.email or email)

    async def sign_in(self, email: str, password: str) -> User:
        """
        Authenticate with email/password and read the profile name.

        Raises:
            AuthError: invalid credentials or other auth failure
            StorageError: sign-in answered without a user
        """
        auth_response = await self.client.auth.sign_in_with_password(
            {"email": email, "password": password}
        )
        auth_user = auth_response.user
        if auth_user is None:
            raise StorageError("Login failed", context={"email": email})

        name = await self._read_profile_name(auth_user.id)
        logger.info("Signed in user %s", auth_user.id)
        return User(id=auth_user.id, name=name, email=auth_user.email or email)

    async def sign_out(self) -> None:
        await self.client.auth.sign_out()

    async def close(self) -> None:
        """Release the HTTP connection pools held by the auth and table clients."""
        await self.client.auth.close()
        await self.client.postgrest.aclose()

    async def get_current_user(self) -> Optional[User]:
        """Look up the session's user, or None when nobody is signed in."""
        response = await self.client.auth.get_user()
        if response is None or response.user is None:
            return None

        auth_user = response.user
        name = await self._read_profile_name(auth_user.id)
        return User(id=auth_user.id, name=name, email=auth_user.email or "")

    def on_auth_state_change(self, handler: AuthEventHandler) -> AuthSubscription:
        """
        Subscribe `handler(event, has_session)` to hosted auth events.

        The SDK invokes its callbacks synchronously from inside the auth
        call that caused them, so each event is scheduled as a task on the
        running loop. Tasks are tracked until done so they are not garbage
        collected mid-flight.
        """
        pending: Set[asyncio.Task] = set()

        def _callback(event, session) -> None:
            event_name = getattr(event, "value", event)
            has_session = session is not None and getattr(session, "user", None) is not None
            task = asyncio.get_running_loop().create_task(handler(event_name, has_session))
            pending.add(task)
            task.add_done_callback(pending.discard)

        subscription = self.client.auth.on_auth_state_change(_callback)
        return AuthSubscription(subscription, pending)

    async def _read_profile_name(self, user_id: str) -> str:
        """Read `profiles.name`, defaulting when the row or name is missing."""
        try:
            response = await (
                self.client.table(PROFILES_TABLE)
                .select("name")
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
        except APIError as e:
            logger.warning("Could not read profile for %s: %s", user_id, e.message)
            return DEFAULT_DISPLAY_NAME

        rows = response.data or []
        if rows and rows[0].get("name"):
            return rows[0]["name"]
        return DEFAULT_DISPLAY_NAME

    # ── Entries ───────────────────────────────────────────────────────────

    async def list_entries(self, user_id: str) -> List[JournalEntry]:
        """
        All entries for `user_id`, newest first.

        Read failures are logged and degrade to an empty list.
        """
        try:
            response = await (
                self.client.table(ENTRIES_TABLE)
                .select("*")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .execute()
            )
        except (APIError, httpx.HTTPError) as e:
            logger.error("Error fetching entries: %s", e)
            return []

        entries = [JournalEntry.from_row(row) for row in response.data or []]
        # sorted() is stable, so rows with equal timestamps keep the server's order
        return sorted(entries, key=lambda entry: entry.date, reverse=True)

    async def save_entry(
        self,
        user_id: str,
        entry: SavableEntry,
    ) -> List[JournalEntry]:
        """
        Insert an UnsavedEntry or update a PersistedEntry.

        Returns:
            The written rows as JournalEntry objects.

        Raises:
            APIError: the hosted database rejected the write
        """
        payload = entry.draft.to_row(user_id)

        if isinstance(entry, PersistedEntry):
            response = await (
                self.client.table(ENTRIES_TABLE)
                .update(payload)
                .eq("id", entry.id)
                .execute()
            )
            logger.info("Updated entry %s", entry.id)
        else:
            response = await self.client.table(ENTRIES_TABLE).insert([payload]).execute()
            logger.info("Inserted entry for user %s", user_id)

        return [JournalEntry.from_row(row) for row in response.data or []]

    async def delete_entry(self, entry_id: str) -> None:
        """
        Raises:
            APIError: the hosted database rejected the delete
        """
        await self.client.table(ENTRIES_TABLE).delete().eq("id", entry_id).execute()
        logger.info("Deleted entry %s", entry_id)

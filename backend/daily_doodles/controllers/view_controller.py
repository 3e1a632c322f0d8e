"""
Daily Doodles Backend — View Controller
=========================================

What:  Top-level state machine for one browser session: which screen is
       showing, who is signed in, and which entry is being edited.
How:   Five views, transitions driven by hosted auth events and by user
       navigation.

State Machine:

        mount: session? ──yes──────────────────────────┐
          │ no                                         ▼
        ┌──────┐  navigate   ┌────────┐  auth ok  ┌───────────┐  open   ┌────────┐
        │ home │────────────▶│ login  │──────────▶│ dashboard │────────▶│ editor │
        │      │◀────────────│ signup │           │           │◀────────│        │
        └──────┘             └────────┘           └───────────┘ save /  └────────┘
            ▲                                          │        cancel
            └──────────── SIGNED_OUT (any view) ───────┘

    SIGNED_IN (with a session) moves any view to `dashboard`.
    Everything else raises InvalidTransitionError. There is no terminal
    state; a session lasts until sign-out.

Failure handling:
    A failing session check is logged and treated as "no session".
"""

import logging
from typing import Dict, Optional, Set

import httpx
from postgrest.exceptions import APIError
from supabase import AuthError

from daily_doodles.controllers.auth_form import AuthForm, AuthMode
from daily_doodles.controllers.dashboard import Dashboard
from daily_doodles.controllers.editor import Editor
from daily_doodles.exceptions import DailyDoodlesError, InvalidTransitionError
from daily_doodles.models.entry import JournalEntry
from daily_doodles.models.user import User
from daily_doodles.models.view import View
from daily_doodles.services.llm_base import JournalAIService
from daily_doodles.services.storage_service import (
    SIGNED_IN,
    SIGNED_OUT,
    AuthSubscription,
    StorageService,
)

logger = logging.getLogger(__name__)

# Moves a user may make by clicking, before signing in
USER_NAVIGATION: Dict[View, Set[View]] = {
    View.HOME: {View.LOGIN, View.SIGNUP},
    View.LOGIN: {View.SIGNUP, View.HOME},
    View.SIGNUP: {View.LOGIN, View.HOME},
}


class ViewController:
    """
    Attributes:
        view:         current View (starts at HOME)
        user:         signed-in User or None
        active_entry: entry open in the editor (None for a new entry)
        is_loading:   True until the first session check finishes
        dashboard:    Dashboard component while a user is signed in
        editor:       Editor component while in the `editor` view
    """

    def __init__(self, storage: StorageService, ai: JournalAIService):
        self.storage = storage
        self.ai = ai
        self.view = View.HOME
        self.user: Optional[User] = None
        self.active_entry: Optional[JournalEntry] = None
        self.is_loading = True
        self.dashboard: Optional[Dashboard] = None
        self.editor: Optional[Editor] = None
        self._subscription: Optional[AuthSubscription] = None

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def mount(self) -> View:
        """Subscribe to auth events and restore any existing session."""
        if self._subscription is None:
            self._subscription = self.storage.on_auth_state_change(self.handle_auth_event)
        await self.check_session()
        return self.view

    async def unmount(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        await self._close_editor_component()

    async def check_session(self) -> Optional[User]:
        """
        Ask hosted auth for the current session.

        Session found → `dashboard`. No session (or the check failed) while
        a signed-in view is showing → `home`; otherwise the view is kept.
        """
        user: Optional[User] = None
        try:
            user = await self.storage.get_current_user()
        except (AuthError, APIError, httpx.HTTPError, DailyDoodlesError) as e:
            logger.error("User check failed: %s", e)
        finally:
            self.is_loading = False

        if user is not None:
            await self._enter_dashboard(user)
        elif self.view in (View.DASHBOARD, View.EDITOR) or self.user is not None:
            await self._signed_out()
        return user

    # ── Auth events ───────────────────────────────────────────────────────

    async def handle_auth_event(self, event: str, has_session: bool) -> None:
        if event == SIGNED_IN and has_session:
            try:
                user = await self.storage.get_current_user()
            except (AuthError, APIError, httpx.HTTPError, DailyDoodlesError) as e:
                logger.error("Could not load user after sign-in: %s", e)
                return
            if user is not None:
                await self._enter_dashboard(user)
        elif event == SIGNED_OUT:
            await self._signed_out()

    def auth_form(self, mode: AuthMode) -> AuthForm:
        """The form for the current login/signup view."""
        mode = AuthMode(mode)
        if self.view.value != mode.value:
            raise InvalidTransitionError(self.view.value, mode.value)
        return AuthForm(mode, self.storage)

    async def auth_succeeded(self, user: User) -> None:
        # The SIGNED_IN event may already have moved us
        if self.view == View.DASHBOARD and self.user is not None and self.user.id == user.id:
            self.user = user
            return
        if self.view not in (View.LOGIN, View.SIGNUP):
            raise InvalidTransitionError(self.view.value, View.DASHBOARD.value)
        await self._enter_dashboard(user)

    async def logout(self) -> None:
        """
        Sign out. The SIGNED_OUT event makes the same transition; applying
        it here as well keeps the view right when no event arrives.
        """
        await self.storage.sign_out()
        await self._signed_out()

    # ── User navigation ───────────────────────────────────────────────────

    def navigate(self, target: View) -> View:
        target = View(target)
        if target == self.view:
            return self.view
        if target not in USER_NAVIGATION.get(self.view, set()):
            raise InvalidTransitionError(self.view.value, target.value)
        self.view = target
        return self.view

    async def open_editor(self, entry: Optional[JournalEntry] = None) -> Editor:
        """Dashboard → editor, for `entry` or for a new one."""
        if self.view != View.DASHBOARD or self.user is None:
            raise InvalidTransitionError(self.view.value, View.EDITOR.value)
        self.active_entry = entry
        self.editor = Editor(
            self.user,
            self.storage,
            self.ai,
            entry=entry,
            on_saved=self.close_editor,
        )
        self.view = View.EDITOR
        return self.editor

    async def close_editor(self) -> None:
        """Editor → dashboard, after a save or a cancel."""
        if self.view != View.EDITOR:
            raise InvalidTransitionError(self.view.value, View.DASHBOARD.value)
        await self._close_editor_component()
        self.active_entry = None
        self.view = View.DASHBOARD

    # ── Internal transitions ──────────────────────────────────────────────

    async def _enter_dashboard(self, user: User) -> None:
        await self._close_editor_component()
        if self.dashboard is None or self.user is None or self.user.id != user.id:
            self.dashboard = Dashboard(user, self.storage, self.ai)
        self.user = user
        self.active_entry = None
        self.view = View.DASHBOARD
        logger.info("User %s on dashboard", user.id)

    async def _signed_out(self) -> None:
        await self._close_editor_component()
        self.user = None
        self.active_entry = None
        self.dashboard = None
        self.view = View.HOME

    async def _close_editor_component(self) -> None:
        editor, self.editor = self.editor, None
        if editor is not None:
            await editor.close()

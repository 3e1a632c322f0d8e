"""
Daily Doodles Backend — Auth Form
===================================

What:  Login and sign-up submission.
How:   Checks that every field is filled in, then makes exactly one call to
       StorageService.sign_in() / sign_up(). Failures end up in `error` as
       the message to show under the form; the caller stays on the form.
"""

import logging
from enum import Enum
from typing import Optional

import httpx
from postgrest.exceptions import APIError
from supabase import AuthError

from daily_doodles.exceptions import DailyDoodlesError
from daily_doodles.models.user import User
from daily_doodles.services.storage_service import StorageService

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "Please fill in all fields"
DEFAULT_FAILURE_MESSAGE = "Authentication failed"


class AuthMode(str, Enum):
    LOGIN = "login"
    SIGNUP = "signup"


class AuthForm:
    """
    Attributes:
        mode:       AuthMode.LOGIN or AuthMode.SIGNUP
        error:      inline message from the last submit ("" when none)
        is_loading: True while the storage call is in flight
    """

    def __init__(self, mode: AuthMode, storage: StorageService):
        self.mode = AuthMode(mode)
        self._storage = storage
        self.error = ""
        self.is_loading = False

    def switch_mode(self) -> AuthMode:
        """The mode the "Already have an account? / Sign up" link leads to."""
        return AuthMode.SIGNUP if self.mode == AuthMode.LOGIN else AuthMode.LOGIN

    async def submit(self, email: str, password: str, name: str = "") -> Optional[User]:
        """
        Returns:
            The signed-in User, or None with `error` set.
        """
        self.error = ""
        required = [email, password]
        if self.mode == AuthMode.SIGNUP:
            required.append(name)
        if any(not value or not value.strip() for value in required):
            self.error = MISSING_FIELDS_MESSAGE
            return None

        self.is_loading = True
        try:
            if self.mode == AuthMode.SIGNUP:
                return await self._storage.sign_up(email, password, name)
            return await self._storage.sign_in(email, password)
        except (AuthError, APIError, httpx.HTTPError, DailyDoodlesError) as e:
            self.error = _error_message(e) or DEFAULT_FAILURE_MESSAGE
            logger.warning("%s failed for %s: %s", self.mode.value, email, self.error)
            return None
        finally:
            self.is_loading = False


def _error_message(error: Exception) -> str:
    message = getattr(error, "message", None)
    if isinstance(message, str):
        return message
    return str(error)

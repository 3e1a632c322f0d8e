"""
Daily Doodles Backend — User Model
====================================

What:  The signed-in journaler as the rest of the app sees it.
How:   Built by StorageService from the hosted auth user plus the `profiles`
       row holding the display name.
"""

from pydantic import BaseModel, Field

# Display name used when a profile row is missing or has no name
DEFAULT_DISPLAY_NAME = "Journaler"


class User(BaseModel):
    """
    A journaler identity.

    Created at sign-up, read back at sign-in and session restore; never
    modified by this application afterwards.
    """
    id: str = Field(description="Opaque identity assigned by the hosted auth service")
    name: str = Field(default=DEFAULT_DISPLAY_NAME, description="Display name from the profiles table")
    email: str = Field(default="", description="Login email address")

    model_config = {"frozen": True}

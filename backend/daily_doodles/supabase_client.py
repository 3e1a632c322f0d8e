"""
Daily Doodles Backend — Supabase Client Factory
=================================================

What:  Creates the async Supabase clients used by StorageService.
How:   One client per browser session. A Supabase client carries the signed-in
       user's auth session inside it, so sharing one across browsers would
       share the login too.
Who:   Called by the SessionRegistry when a new browser session appears.
"""

import logging

from supabase import AsyncClient, acreate_client

from daily_doodles.config import settings

logger = logging.getLogger(__name__)


def is_supabase_configured() -> bool:
    """Check whether the Supabase URL and anon key are present."""
    return bool(settings.supabase_url and settings.supabase_anon_key)


async def create_supabase_client() -> AsyncClient:
    """
    Create a fresh async Supabase client bound to the anon key.

    Raises:
        ValueError: if SUPABASE_URL / SUPABASE_ANON_KEY are not configured.
    """
    if not is_supabase_configured():
        raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY must be set in environment variables")

    client = await acreate_client(settings.supabase_url, settings.supabase_anon_key)
    logger.debug("Created Supabase client for %s", settings.supabase_url)
    return client

"""
Daily Doodles Backend — Dashboard Route Handlers
==================================================

What:  The signed-in home screen: entries, reflective prompt, stats, delete.
How:   Thin wrappers over the session's Dashboard component.

Caching:
    Nothing here is cacheable; the list and the prompt change on every
    load, so responses carry `Cache-Control: no-store`.
"""

import logging

from fastapi import APIRouter, Depends, Query, Response

from daily_doodles.controllers.dashboard import Dashboard
from daily_doodles.dependencies import get_dashboard
from daily_doodles.schemas.journal import (
    DashboardResponse,
    DeleteResponse,
    EntryResponse,
    ErrorResponse,
    PromptResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Dashboard"])

_SIGNED_IN_ONLY = {401: {"description": "No user is signed in", "model": ErrorResponse}}


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    responses=_SIGNED_IN_ONLY,
    summary="Load the dashboard",
    description=(
        "Fetches the user's entries and a fresh reflective prompt side by side. "
        "Either may fall back (empty list, stock prompt) without failing the request."
    ),
)
async def load_dashboard(
    response: Response,
    dashboard: Dashboard = Depends(get_dashboard),
) -> DashboardResponse:
    await dashboard.load()
    response.headers["Cache-Control"] = "no-store"
    return DashboardResponse.from_dashboard(dashboard)


@router.post(
    "/dashboard/prompt",
    response_model=PromptResponse,
    responses=_SIGNED_IN_ONLY,
    summary="New inspiration",
)
async def refresh_prompt(dashboard: Dashboard = Depends(get_dashboard)) -> PromptResponse:
    return PromptResponse(prompt=await dashboard.refresh_prompt())


@router.delete(
    "/entries/{entry_id}",
    response_model=DeleteResponse,
    responses={
        **_SIGNED_IN_ONLY,
        502: {"description": "The hosted database rejected the delete", "model": ErrorResponse},
    },
    summary="Delete an entry",
    description=(
        "Deletes the entry when `confirm` is true, then re-fetches the whole list. "
        "Without confirmation nothing is deleted."
    ),
)
async def delete_entry(
    entry_id: str,
    confirm: bool = Query(default=False, description="The user's answer to the confirmation dialog"),
    dashboard: Dashboard = Depends(get_dashboard),
) -> DeleteResponse:
    deleted = await dashboard.delete_entry(entry_id, lambda _entry_id: confirm)
    if deleted:
        logger.info("Deleted entry %s", entry_id)
    return DeleteResponse(
        deleted=deleted,
        entries=[EntryResponse.from_entry(e) for e in dashboard.entries],
    )

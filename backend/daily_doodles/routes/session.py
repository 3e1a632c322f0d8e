"""
Daily Doodles Backend — Session Route Handlers
================================================

What:  The view controller's lifecycle and navigation over HTTP.
How:   Every handler resolves the browser's ViewController from the session
       cookie and returns the resulting SessionState.

Endpoints:
    GET  /api/session            current view (no side effects)
    POST /api/session/mount      subscribe to auth events + session check
    POST /api/session/navigate   home ⇄ login ⇄ signup
    POST /api/session/logout     sign out → home
"""

import logging

from fastapi import APIRouter, Depends

from daily_doodles.controllers.view_controller import ViewController
from daily_doodles.dependencies import get_controller
from daily_doodles.schemas.journal import ErrorResponse, NavigateRequest, SessionState

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/session", tags=["Session"])


@router.get("", response_model=SessionState, summary="Current view state")
async def get_session(controller: ViewController = Depends(get_controller)) -> SessionState:
    return SessionState.from_controller(controller)


@router.post(
    "/mount",
    response_model=SessionState,
    summary="Start the app for this browser",
    description=(
        "Subscribes to hosted auth events and checks for an existing session. "
        "A live session lands on the dashboard; otherwise the view stays on home."
    ),
)
async def mount(controller: ViewController = Depends(get_controller)) -> SessionState:
    await controller.mount()
    return SessionState.from_controller(controller)


@router.post(
    "/navigate",
    response_model=SessionState,
    responses={409: {"description": "Move not allowed from the current view", "model": ErrorResponse}},
    summary="Move between the signed-out views",
)
async def navigate(
    body: NavigateRequest,
    controller: ViewController = Depends(get_controller),
) -> SessionState:
    controller.navigate(body.view)
    return SessionState.from_controller(controller)


@router.post("/logout", response_model=SessionState, summary="Sign out")
async def logout(controller: ViewController = Depends(get_controller)) -> SessionState:
    await controller.logout()
    return SessionState.from_controller(controller)

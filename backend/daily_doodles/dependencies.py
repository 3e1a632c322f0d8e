"""
Daily Doodles Backend — FastAPI Dependencies
==============================================

What:  Resolves the caller's AppSession from the session cookie.
How:   The SessionRegistry lives on `app.state.sessions` (created in the
       lifespan, replaced with fakes in tests). HTTP requests without a
       known cookie get a fresh session and a Set-Cookie on the response.
"""

from typing import Optional

from fastapi import Depends, Request, Response, WebSocket

from daily_doodles.config import settings
from daily_doodles.controllers.dashboard import Dashboard
from daily_doodles.controllers.editor import Editor
from daily_doodles.controllers.view_controller import ViewController
from daily_doodles.exceptions import AuthenticationError, NotFoundError
from daily_doodles.sessions import AppSession, SessionRegistry


async def get_app_session(request: Request, response: Response) -> AppSession:
    registry: SessionRegistry = request.app.state.sessions
    cookie = request.cookies.get(settings.session_cookie_name)
    session = await registry.get_or_create(cookie)
    if session.id != cookie:
        response.set_cookie(
            settings.session_cookie_name,
            session.id,
            httponly=True,
            samesite="lax",
            max_age=settings.session_idle_timeout,
        )
    return session


async def get_controller(session: AppSession = Depends(get_app_session)) -> ViewController:
    return session.controller


async def get_editor(controller: ViewController = Depends(get_controller)) -> Editor:
    if controller.editor is None:
        raise NotFoundError(resource="editor")
    return controller.editor


def get_websocket_session(websocket: WebSocket) -> Optional[AppSession]:
    """WebSockets cannot set cookies, so only existing sessions are accepted."""
    registry: SessionRegistry = websocket.app.state.sessions
    return registry.get(websocket.cookies.get(settings.session_cookie_name))


async def get_dashboard(controller: ViewController = Depends(get_controller)) -> Dashboard:
    if controller.dashboard is None:
        raise AuthenticationError("Please log in to see your journal")
    return controller.dashboard

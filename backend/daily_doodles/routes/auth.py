"""
Daily Doodles Backend — Auth Route Handlers
=============================================

What:  Login and sign-up form submission.
How:   Builds the AuthForm for the current view, submits it once, and on
       success moves the controller to the dashboard. A rejected submit keeps
       the view where it is and returns the form's inline message as the
       error body (400 for missing fields, 401 for a refused login).
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from daily_doodles.controllers.auth_form import MISSING_FIELDS_MESSAGE, AuthForm, AuthMode
from daily_doodles.controllers.view_controller import ViewController
from daily_doodles.dependencies import get_controller
from daily_doodles.exceptions import AuthenticationError, ValidationError
from daily_doodles.models.user import User
from daily_doodles.schemas.journal import (
    AuthResponse,
    ErrorResponse,
    LoginRequest,
    SessionState,
    SignupRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

_AUTH_ERRORS = {
    400: {"description": "A field was left empty", "model": ErrorResponse},
    401: {"description": "Hosted auth rejected the credentials", "model": ErrorResponse},
    409: {"description": "The form for this mode is not showing", "model": ErrorResponse},
}


async def _complete(controller: ViewController, form: AuthForm, user: Optional[User]) -> AuthResponse:
    if user is None:
        if form.error == MISSING_FIELDS_MESSAGE:
            raise ValidationError(form.error)
        raise AuthenticationError(form.error)
    await controller.auth_succeeded(user)
    return AuthResponse(user=user, session=SessionState.from_controller(controller))


@router.post("/login", response_model=AuthResponse, responses=_AUTH_ERRORS, summary="Log in")
async def login(
    body: LoginRequest,
    controller: ViewController = Depends(get_controller),
) -> AuthResponse:
    form = controller.auth_form(AuthMode.LOGIN)
    user = await form.submit(body.email, body.password)
    return await _complete(controller, form, user)


@router.post("/signup", response_model=AuthResponse, responses=_AUTH_ERRORS, summary="Create an account")
async def signup(
    body: SignupRequest,
    controller: ViewController = Depends(get_controller),
) -> AuthResponse:
    form = controller.auth_form(AuthMode.SIGNUP)
    user = await form.submit(body.email, body.password, body.name)
    return await _complete(controller, form, user)

"""
Daily Doodles Backend — Auth Form Tests
=========================================

What we test:
    ✅ Empty fields are rejected without calling storage
    ✅ Login and sign-up each make exactly one storage call
    ✅ Rejections surface the hosted service's message
    ✅ Mode switching
"""

import httpx
import pytest
from supabase import AuthError

from daily_doodles.controllers.auth_form import (
    DEFAULT_FAILURE_MESSAGE,
    MISSING_FIELDS_MESSAGE,
    AuthForm,
    AuthMode,
)


class TestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("email,password", [("", "pw"), ("ava@example.com", ""), ("  ", "pw")])
    async def test_login_requires_email_and_password(self, storage, supabase_client, email, password):
        form = AuthForm(AuthMode.LOGIN, storage)

        assert await form.submit(email, password) is None
        assert form.error == MISSING_FIELDS_MESSAGE == "Please fill in all fields"
        supabase_client.auth.sign_in_with_password.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_signup_requires_name(self, storage, supabase_client):
        form = AuthForm(AuthMode.SIGNUP, storage)

        assert await form.submit("ava@example.com", "pw", "") is None
        assert form.error == MISSING_FIELDS_MESSAGE
        supabase_client.auth.sign_up.assert_not_awaited()


class TestSubmit:
    @pytest.mark.asyncio
    async def test_signup_creates_account(self, storage, supabase_client):
        form = AuthForm(AuthMode.SIGNUP, storage)

        user = await form.submit("ava@example.com", "pw", "Ava")

        assert user.name == "Ava"
        assert user.id == "u1"
        assert form.error == ""
        assert form.is_loading is False
        supabase_client.auth.sign_up.assert_awaited_once()
        supabase_client.auth.sign_in_with_password.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_login_signs_in_once(self, storage, supabase_client):
        form = AuthForm(AuthMode.LOGIN, storage)

        user = await form.submit("ava@example.com", "pw")

        assert user.email == "ava@example.com"
        supabase_client.auth.sign_in_with_password.assert_awaited_once_with(
            {"email": "ava@example.com", "password": "pw"}
        )

    @pytest.mark.asyncio
    async def test_rejection_shows_service_message(self, storage, supabase_client):
        supabase_client.auth.sign_in_with_password.side_effect = AuthError(
            "Invalid login credentials", "invalid_credentials"
        )
        form = AuthForm(AuthMode.LOGIN, storage)

        assert await form.submit("ava@example.com", "wrong") is None
        assert form.error == "Invalid login credentials"
        assert form.is_loading is False

    @pytest.mark.asyncio
    async def test_network_failure_shows_message(self, storage, supabase_client):
        supabase_client.auth.sign_in_with_password.side_effect = httpx.ConnectError("")
        form = AuthForm(AuthMode.LOGIN, storage)

        assert await form.submit("ava@example.com", "pw") is None
        assert form.error == DEFAULT_FAILURE_MESSAGE


def test_switch_mode(storage):
    assert AuthForm(AuthMode.LOGIN, storage).switch_mode() == AuthMode.SIGNUP
    assert AuthForm(AuthMode.SIGNUP, storage).switch_mode() == AuthMode.LOGIN

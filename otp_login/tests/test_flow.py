"""
Login flow service tests: local user sync, code verification, profile load.
"""

import asyncio
from unittest.mock import patch

import pytest

from otp_login.auth.flow import (
    get_current_user,
    request_email_otp,
    request_sms_otp,
    sync_local_user,
    verify_otp,
)
from otp_login.exceptions import (
    AuthProviderError,
    AuthProviderFault,
    UnknownLocalUserError,
    UserConflictError,
    UserStoreError,
)
from otp_login.models import (
    AuthenticateResponse,
    LoginOrCreateResponse,
    ProviderEmail,
    ProviderUser,
    UserSession,
)


class TestSyncLocalUser:

    def test_creates_missing_user(self, users):
        user = sync_local_user(users, "u1")

        assert user.external_auth_id == "u1"
        assert users.find_by_external_id("u1") == user

    def test_returns_existing_user(self, users):
        first = sync_local_user(users, "u1")
        second = sync_local_user(users, "u1")

        assert first == second
        assert users.count() == 1

    def test_lost_race_surfaces_as_conflict(self, users):
        users.create("u1")

        # Simulate the other request's lookup running before our insert landed
        with patch.object(users, "find_by_external_id", return_value=None):
            with pytest.raises(UserConflictError) as exc_info:
                sync_local_user(users, "u1")

        assert exc_info.value.http_status_code == 500
        assert users.count() == 1


class TestRequestOtp:

    @pytest.mark.asyncio
    async def test_email_challenge(self, ctx, stytch, users):
        stytch.email_login_or_create.return_value = LoginOrCreateResponse(
            user_id="u1", method_id="e1", user_created=True
        )

        challenge = await request_email_otp(ctx, "foo@bar.com")

        stytch.email_login_or_create.assert_awaited_once_with("foo@bar.com")
        assert challenge.method_name == "email"
        assert challenge.method_id == "e1"
        assert challenge.user_created is True
        assert challenge.verification_target == "foo@bar.com"
        assert challenge.redirect_url() == (
            "/login/otp?methodName=email&methodId=e1&userCreated=1"
            "&verificationTarget=foo%40bar.com"
        )
        assert users.find_by_external_id("u1") is not None

    @pytest.mark.asyncio
    async def test_sms_challenge(self, ctx, stytch):
        stytch.sms_login_or_create.return_value = LoginOrCreateResponse(
            user_id="u2", method_id="phone-1", user_created=False
        )

        challenge = await request_sms_otp(ctx, "+16502530000")

        assert challenge.method_name == "sms"
        assert challenge.redirect_url() == (
            "/login/otp?methodName=sms&methodId=phone-1&userCreated=0"
            "&verificationTarget=%2B16502530000"
        )

    @pytest.mark.asyncio
    async def test_retry_keeps_single_local_user(self, ctx, stytch, users):
        stytch.email_login_or_create.return_value = LoginOrCreateResponse(
            user_id="u1", method_id="e1", user_created=False
        )

        await request_email_otp(ctx, "foo@bar.com")
        await request_email_otp(ctx, "foo@bar.com")

        assert users.count() == 1

    @pytest.mark.asyncio
    async def test_provider_failure_skips_local_sync(self, ctx, stytch, users):
        stytch.email_login_or_create.side_effect = AuthProviderError("Email format is invalid.")

        with pytest.raises(AuthProviderError):
            await request_email_otp(ctx, "foo@bar.com")

        assert users.count() == 0

    @pytest.mark.asyncio
    async def test_store_failure_after_code_sent(self, ctx, stytch, users):
        stytch.email_login_or_create.return_value = LoginOrCreateResponse(
            user_id="u1", method_id="e1", user_created=True
        )

        with patch.object(users, "create", side_effect=UserStoreError("disk full")):
            with pytest.raises(UserStoreError):
                await request_email_otp(ctx, "foo@bar.com")

        stytch.email_login_or_create.assert_awaited_once()


class TestVerifyOtp:

    @pytest.mark.asyncio
    async def test_success_resolves_local_user(self, ctx, stytch, users):
        local = users.create("u1")
        stytch.authenticate_otp.return_value = AuthenticateResponse(user_id="u1", method_id="e1")

        result = await verify_otp(ctx, code="123456", method_id="e1")

        stytch.authenticate_otp.assert_awaited_once_with(code="123456", method_id="e1")
        assert result.user_id == local.id
        assert result.external_user_id == "u1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [AuthProviderError("invalid code"), AuthProviderFault("timed out")],
    )
    async def test_provider_failure_propagates(self, ctx, stytch, users, error):
        users.create("u1")
        stytch.authenticate_otp.side_effect = error

        with pytest.raises(type(error)):
            await verify_otp(ctx, code="000000", method_id="e1")

    @pytest.mark.asyncio
    async def test_unknown_local_user(self, ctx, stytch):
        stytch.authenticate_otp.return_value = AuthenticateResponse(user_id="u-ghost")

        with pytest.raises(UnknownLocalUserError) as exc_info:
            await verify_otp(ctx, code="123456", method_id="e1")

        assert exc_info.value.http_status_code == 500


class TestGetCurrentUser:

    @pytest.mark.asyncio
    async def test_combines_provider_and_local_user(self, ctx, stytch, users):
        local = users.create("u1")
        stytch.get_user.return_value = ProviderUser(
            user_id="u1",
            status="active",
            emails=[ProviderEmail(email_id="e1", email="foo@bar.com", verified=True)],
        )

        profile = await get_current_user(
            ctx, UserSession(user_id=local.id, external_auth_id="u1")
        )

        stytch.get_user.assert_awaited_once_with("u1")
        assert profile.id == local.id
        assert profile.stytch_user_id == "u1"
        assert profile.emails[0].email == "foo@bar.com"
        assert profile.status == "active"

    @pytest.mark.asyncio
    async def test_lookups_run_concurrently(self, ctx, stytch, users):
        local = users.create("u1")
        provider_finished = asyncio.Event()
        store_saw_provider_finished = []

        async def slow_get_user(user_id):
            await asyncio.sleep(0.2)
            provider_finished.set()
            return ProviderUser(user_id=user_id, status="active")

        real_find = users.find_by_id

        def find_by_id(user_id):
            store_saw_provider_finished.append(provider_finished.is_set())
            return real_find(user_id)

        stytch.get_user.side_effect = slow_get_user
        with patch.object(users, "find_by_id", side_effect=find_by_id):
            profile = await get_current_user(
                ctx, UserSession(user_id=local.id, external_auth_id="u1")
            )

        assert profile.id == local.id
        assert store_saw_provider_finished == [False]

    @pytest.mark.asyncio
    async def test_provider_rejection_is_a_server_fault(self, ctx, stytch, users):
        local = users.create("u1")
        stytch.get_user.side_effect = AuthProviderError("user not found")

        with pytest.raises(AuthProviderFault):
            await get_current_user(ctx, UserSession(user_id=local.id, external_auth_id="u1"))

    @pytest.mark.asyncio
    async def test_missing_local_user(self, ctx, stytch):
        stytch.get_user.return_value = ProviderUser(user_id="u1")

        with pytest.raises(UnknownLocalUserError):
            await get_current_user(ctx, UserSession(user_id="nope", external_auth_id="u1"))

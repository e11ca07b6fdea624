"""
Login flow orchestration.

Step 1 (request) asks the provider to send a code and makes sure a local
user row exists for the provider user. Step 2 (verify) checks the code
against the challenge's ``method_id`` and resolves the local user that the
session will be bound to.

Nothing is held server-side between the two steps. The ``method_id``
reaches step 2 through the client's query string, unsigned; the only
thing binding a code to the contact it was sent to is the provider's
check of the (code, method_id) pair.
"""

import asyncio
import logging

from fastapi.concurrency import run_in_threadpool

from otp_login.context import AppContext
from otp_login.exceptions import (
    AuthProviderError,
    AuthProviderFault,
    LoginFlowError,
    UnknownLocalUserError,
)
from otp_login.models import (
    LoginChallenge,
    LoginOrCreateResponse,
    MethodName,
    UserProfile,
    UserSession,
    VerificationResult,
)
from otp_login.users import LocalUser, UserStore

logger = logging.getLogger(__name__)


# =============================================================================
# Step 1: request a code
# =============================================================================

async def request_email_otp(ctx: AppContext, email: str) -> LoginChallenge:
    """
    Send a one-time code to ``email`` and sync the local user.

    Raises:
        AuthProviderError: the provider rejected the address (400)
        AuthProviderFault: any other provider failure (500)
        UserStoreError: the local user could not be synced (500); the
            code has already been sent at this point
    """
    response = await ctx.stytch.email_login_or_create(email)
    return await _complete_challenge(ctx, response, "email", email)


async def request_sms_otp(ctx: AppContext, phone_number: str) -> LoginChallenge:
    """Same as ``request_email_otp`` for an E.164 phone number."""
    response = await ctx.stytch.sms_login_or_create(phone_number)
    return await _complete_challenge(ctx, response, "sms", phone_number)


async def _complete_challenge(
    ctx: AppContext,
    response: LoginOrCreateResponse,
    method_name: MethodName,
    verification_target: str,
) -> LoginChallenge:
    await run_in_threadpool(sync_local_user, ctx.users, response.user_id)

    return LoginChallenge(
        method_name=method_name,
        method_id=response.method_id,
        user_created=response.user_created,
        verification_target=verification_target,
        external_user_id=response.user_id,
    )


def sync_local_user(store: UserStore, external_user_id: str) -> LocalUser:
    """
    Return the local user for ``external_user_id``, creating it if absent.

    Lookup and insert are two separate statements. Two concurrent first
    logins can both miss the lookup; the unique constraint rejects the
    second insert and ``UserConflictError`` propagates.
    """
    user = store.find_by_external_id(external_user_id)
    if user is None:
        user = store.create(external_user_id)
    return user


# =============================================================================
# Step 2: verify the code
# =============================================================================

async def verify_otp(ctx: AppContext, code: str, method_id: str) -> VerificationResult:
    """
    Authenticate ``code`` against ``method_id`` and resolve the local user.

    A result is returned only after the provider accepted the code.

    Raises:
        AuthProviderError: wrong or expired code, mismatched method (400)
        AuthProviderFault: any other provider failure (500)
        UnknownLocalUserError: no local row for the provider user (500)
        UserStoreError: the local lookup failed (500)
    """
    try:
        authenticated = await ctx.stytch.authenticate_otp(code=code, method_id=method_id)
    except LoginFlowError as e:
        logger.error(
            f"Stytch OTP authentication failure: {e}",
            extra={"method_id": method_id},
        )
        raise

    user = await run_in_threadpool(ctx.users.find_by_external_id, authenticated.user_id)
    if user is None:
        raise UnknownLocalUserError(authenticated.user_id)

    logger.info(
        "User authenticated",
        extra={"user_id": user.id, "stytch_user_id": authenticated.user_id},
    )
    return VerificationResult(user_id=user.id, external_user_id=authenticated.user_id)


# =============================================================================
# Profile
# =============================================================================

async def get_current_user(ctx: AppContext, session: UserSession) -> UserProfile:
    """
    Load the provider user and the local user for ``session`` concurrently.

    Every failure here is a server fault: the session was issued for a
    user both sides knew about.
    """
    try:
        provider_user, local_user = await asyncio.gather(
            ctx.stytch.get_user(session.external_auth_id),
            run_in_threadpool(ctx.users.find_by_id, session.user_id),
        )
    except AuthProviderError as e:
        raise AuthProviderFault(
            f"Unable to load the user from the authentication service: {e.error_message}"
        ) from e

    if local_user is None:
        raise UnknownLocalUserError(session.external_auth_id)

    return UserProfile(
        id=local_user.id,
        stytch_user_id=provider_user.user_id,
        emails=provider_user.emails,
        phone_numbers=provider_user.phone_numbers,
        status=provider_user.status,
    )

"""
Login routes.

    GET  /login          method choice
    GET  /login/email    email form         POST validates, sends code
    GET  /login/sms      country + phone    POST validates, sends code
    GET  /login/otp      code entry         POST verifies, sets session

Every GET under /login bounces an already-authenticated caller to
/profile. The two steps are tied together only by the redirect to
/login/otp, whose query string carries methodName, methodId, userCreated
and verificationTarget in the clear.

Provider and database failures are raised as ``LoginFlowError`` and turned
into error pages by the application's exception handler.
"""

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError

from otp_login.auth.flow import request_email_otp, request_sms_otp, verify_otp
from otp_login.auth.session import redirect_if_authenticated
from otp_login.auth.validation import (
    SUPPORTED_SMS_COUNTRIES,
    EmailLoginForm,
    LoginFlowState,
    OtpForm,
    SmsLoginForm,
    normalize_phone,
    parse_flow_state,
    validate_form,
)
from otp_login.context import AppContext, get_context
from otp_login.exceptions import InvalidFlowStateError
from otp_login.models import UserSession
from otp_login.pages import (
    render_email_form,
    render_login_method,
    render_otp_form,
    render_sms_form,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Router Setup
# =============================================================================

auth_router = APIRouter(
    prefix="/login",
    tags=["authentication"],
)


# =============================================================================
# Method Selection
# =============================================================================

@auth_router.get("", response_class=HTMLResponse)
async def login_index(
    redirect: Optional[RedirectResponse] = Depends(redirect_if_authenticated),
):
    if redirect:
        return redirect
    return render_login_method()


# =============================================================================
# Step 1: Email / SMS
# =============================================================================

@auth_router.get("/email", response_class=HTMLResponse)
async def login_email_form(
    redirect: Optional[RedirectResponse] = Depends(redirect_if_authenticated),
):
    if redirect:
        return redirect
    return render_email_form()


@auth_router.post("/email", response_class=HTMLResponse)
async def login_email_submit(
    request: Request,
    ctx: AppContext = Depends(get_context),
):
    """
    Validate the email address, send a code and continue to /login/otp.

    Invalid input re-renders the form (200) without calling the provider.
    """
    form = await request.form()
    data, errors = validate_form(EmailLoginForm, form)
    if data is None:
        return render_email_form(errors, email=str(form.get("email", "")))

    challenge = await request_email_otp(ctx, data.email)
    return RedirectResponse(url=challenge.redirect_url(), status_code=302)


@auth_router.get("/sms", response_class=HTMLResponse)
async def login_sms_form(
    redirect: Optional[RedirectResponse] = Depends(redirect_if_authenticated),
):
    if redirect:
        return redirect
    return render_sms_form(countries=SUPPORTED_SMS_COUNTRIES)


@auth_router.post("/sms", response_class=HTMLResponse)
async def login_sms_submit(
    request: Request,
    ctx: AppContext = Depends(get_context),
):
    """
    Validate country and phone, normalize to E.164, send a code and
    continue to /login/otp.

    A shape error re-renders the form; an unsupported country or a number
    that belongs to another country is a 400.
    """
    form = await request.form()
    data, errors = validate_form(SmsLoginForm, form)
    if data is None:
        return render_sms_form(
            errors,
            country=str(form.get("country", "US")),
            phone=str(form.get("phone", "")),
            countries=SUPPORTED_SMS_COUNTRIES,
        )

    phone_number = normalize_phone(data.country, data.phone)

    challenge = await request_sms_otp(ctx, phone_number)
    return RedirectResponse(url=challenge.redirect_url(), status_code=302)


# =============================================================================
# Step 2: OTP Verification
# =============================================================================

@auth_router.get("/otp", response_class=HTMLResponse)
async def login_otp_form(
    request: Request,
    redirect: Optional[RedirectResponse] = Depends(redirect_if_authenticated),
):
    """
    Render the code form for the challenge described by the query string.

    Query Parameters:
        methodId, methodName (email|sms), userCreated (0|1), verificationTarget

    Raises:
        InvalidFlowStateError: a parameter is missing or malformed (400)
    """
    if redirect:
        return redirect

    state = parse_flow_state(request.query_params)
    return _render_code_form(request, state.methodId, state.user_created, state)


@auth_router.post("/otp", response_class=HTMLResponse)
async def login_otp_submit(
    request: Request,
    ctx: AppContext = Depends(get_context),
):
    """
    Verify the submitted code and establish the session.

    The session cookie is set only after the provider accepted the code.
    On success redirects to /profile, forwarding only the userCreated hint.
    """
    form = await request.form()
    data, errors = validate_form(OtpForm, form)
    if data is None:
        if set(errors) - {"code"}:
            raise InvalidFlowStateError()
        return _render_code_form(
            request,
            method_id=str(form.get("methodId", "")),
            user_created=form.get("userCreated") == "1",
            state=_optional_flow_state(request),
            errors=errors,
        )

    result = await verify_otp(ctx, code=data.code, method_id=data.methodId)

    response = RedirectResponse(
        url=f"/profile?{urlencode({'userCreated': data.userCreated})}",
        status_code=302,
    )
    ctx.sessions.commit(
        response,
        UserSession(user_id=result.user_id, external_auth_id=result.external_user_id),
    )
    return response


# =============================================================================
# Helpers
# =============================================================================

def _optional_flow_state(request: Request) -> Optional[LoginFlowState]:
    try:
        return LoginFlowState.model_validate(dict(request.query_params))
    except ValidationError:
        return None


def _render_code_form(
    request: Request,
    method_id: str,
    user_created: bool,
    state: Optional[LoginFlowState] = None,
    errors=None,
) -> HTMLResponse:
    # Post back to the same URL so a re-render keeps the display parameters.
    action = "/login/otp"
    if request.url.query:
        action = f"{action}?{request.url.query}"

    return render_otp_form(
        method_id=method_id,
        user_created=user_created,
        method_name=state.methodName if state else None,
        verification_target=state.verificationTarget if state else None,
        action=action,
        errors=errors,
    )

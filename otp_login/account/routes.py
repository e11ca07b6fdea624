"""
Account routes: home page, profile and logout.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import HTMLResponse, RedirectResponse

from otp_login.auth.flow import get_current_user
from otp_login.auth.session import require_session
from otp_login.context import AppContext, get_context
from otp_login.models import UserSession
from otp_login.pages import render_home, render_profile

logger = logging.getLogger(__name__)

account_router = APIRouter(tags=["account"])


@account_router.get("/", response_class=HTMLResponse)
async def home():
    return render_home()


@account_router.get("/profile", response_class=HTMLResponse)
async def profile(
    user_created: Optional[str] = Query(None, alias="userCreated"),
    session: UserSession = Depends(require_session),
    ctx: AppContext = Depends(get_context),
):
    """
    Show the signed-in user's record.

    Requires a session; without one the caller is redirected to /login.
    """
    logger.info(
        "User is logged in",
        extra={"user_id": session.user_id, "stytch_user_id": session.external_auth_id},
    )
    user = await get_current_user(ctx, session)
    return render_profile(user, user_created=user_created == "1")


@account_router.get("/logout")
async def logout(ctx: AppContext = Depends(get_context)):
    response = RedirectResponse(url="/", status_code=302)
    ctx.sessions.destroy(response)
    return response


@account_router.api_route("/logout", methods=["POST", "PUT", "PATCH", "DELETE"])
async def logout_method_not_allowed():
    return Response(status_code=status.HTTP_405_METHOD_NOT_ALLOWED)

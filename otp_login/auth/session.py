"""
Session Cookie Management Module
================================

The session is a single signed cookie holding the local user id and the
provider user id. The value is an HS256 JWT signed with the static
``SESSION_SECRET``; its lifetime is absolute (``exp`` is fixed at issuance
and never renewed).

Cookie attributes: httpOnly, secure, SameSite=Lax, path "/".
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Request, Response
from fastapi.responses import RedirectResponse
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from otp_login.config import Settings
from otp_login.context import AppContext, get_context
from otp_login.exceptions import LoginRequired
from otp_login.models import UserSession

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class SessionCodec:
    """Encodes, decodes, commits and destroys the session cookie."""

    def __init__(self, settings: Settings):
        self._secret = settings.SESSION_SECRET
        self._issuer = settings.SESSION_ISSUER
        self._lifetime = timedelta(minutes=settings.SESSION_DURATION_MINUTES)
        self.cookie_name = settings.SESSION_COOKIE_NAME
        self.max_age = settings.session_max_age_seconds
        self.secure = settings.SESSION_COOKIE_SECURE

    # =========================================================================
    # Token encoding
    # =========================================================================

    def create_session(self, session: UserSession) -> str:
        """
        Sign ``session`` into a token.

        Example:
            >>> token = codec.create_session(UserSession(user_id="L1", external_auth_id="u1"))
        """
        now = datetime.now(timezone.utc)
        payload = {
            "sub": session.user_id,
            "ext": session.external_auth_id,
            "iat": now,
            "exp": now + self._lifetime,
            "iss": self._issuer,
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def read_session(self, token: Optional[str]) -> Optional[UserSession]:
        """
        Decode a session token.

        Returns:
            The session, or None when the token is absent, expired,
            tampered with, issued by someone else or missing a field.
        """
        if not token:
            return None

        try:
            decoded = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                issuer=self._issuer,
                options={"require": ["exp", "iat", "sub", "ext", "iss"]},
            )
        except ExpiredSignatureError:
            logger.info("Session cookie expired")
            return None
        except InvalidTokenError as e:
            logger.warning(f"Rejected session cookie: {e}")
            return None

        if not decoded.get("sub") or not decoded.get("ext"):
            logger.warning("Rejected session cookie: empty identity claims")
            return None

        return UserSession(user_id=decoded["sub"], external_auth_id=decoded["ext"])

    # =========================================================================
    # Cookie handling
    # =========================================================================

    def read_request(self, request: Request) -> Optional[UserSession]:
        return self.read_session(request.cookies.get(self.cookie_name))

    def commit(self, response: Response, session: UserSession) -> None:
        response.set_cookie(
            key=self.cookie_name,
            value=self.create_session(session),
            max_age=self.max_age,
            path="/",
            httponly=True,
            secure=self.secure,
            samesite="lax",
        )

    def destroy(self, response: Response) -> None:
        response.delete_cookie(
            key=self.cookie_name,
            path="/",
            httponly=True,
            secure=self.secure,
            samesite="lax",
        )


# =============================================================================
# FastAPI Dependencies
# =============================================================================

async def get_optional_session(
    request: Request,
    ctx: AppContext = Depends(get_context),
) -> Optional[UserSession]:
    """Session from the request cookie, or None."""
    return ctx.sessions.read_request(request)


async def require_session(
    session: Optional[UserSession] = Depends(get_optional_session),
) -> UserSession:
    """
    Session gate for protected routes.

    Usage in routes:
        @router.get("/profile")
        async def profile(session: UserSession = Depends(require_session)):
            ...

    Raises:
        LoginRequired: answered with a redirect to /login
    """
    if session is None:
        raise LoginRequired()
    return session


async def redirect_if_authenticated(
    session: Optional[UserSession] = Depends(get_optional_session),
) -> Optional[RedirectResponse]:
    """
    Inverse gate for pre-authentication pages.

    Returns a redirect to /profile when a valid session is present, else None.
    """
    if session is not None:
        return RedirectResponse(url="/profile", status_code=302)
    return None


__all__ = [
    "SessionCodec",
    "get_optional_session",
    "require_session",
    "redirect_if_authenticated",
]

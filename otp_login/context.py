"""
Shared service handles.

The provider client, the user store and the session codec are built once
per process and handed to request handlers through ``get_context``.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from fastapi import HTTPException, Request, status
from sqlalchemy.engine import Engine

from otp_login.config import Settings

if TYPE_CHECKING:
    from otp_login.auth.session import SessionCodec
    from otp_login.auth.stytch import StytchClient
    from otp_login.users import UserStore

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    stytch: "StytchClient"
    users: "UserStore"
    sessions: "SessionCodec"
    engine: Optional[Engine] = field(default=None, repr=False)


def build_context(settings: Settings) -> AppContext:
    """Create the provider client, database engine and session codec."""
    from otp_login.auth.session import SessionCodec
    from otp_login.auth.stytch import StytchClient
    from otp_login.database import build_engine, init_db, make_session_factory
    from otp_login.users import UserStore

    engine = build_engine(settings.DATABASE_URL)
    init_db(engine)

    return AppContext(
        settings=settings,
        stytch=StytchClient.from_settings(settings),
        users=UserStore(make_session_factory(engine)),
        sessions=SessionCodec(settings),
        engine=engine,
    )


async def close_context(ctx: AppContext) -> None:
    await ctx.stytch.aclose()
    if ctx.engine is not None:
        ctx.engine.dispose()
    logger.info("Closed provider client and database engine")


def get_context(request: Request) -> AppContext:
    """
    Dependency returning the shared service handles from app state.

    Raises:
        HTTPException: 503 if the context has not been built
    """
    ctx = getattr(request.app.state, "context", None)
    if ctx is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Application context not initialized",
        )
    return ctx

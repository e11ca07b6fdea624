"""
FastAPI Application Factory
===========================

Entry point for the OTP login demo: a server-rendered site where users log
in with a one-time passcode sent by email or SMS through Stytch, backed by
a local user table.

Routers:
    - /login/*      : Login method choice, code request, code verification
    - /, /profile   : Home page and the signed-in profile page
    - /logout       : Session teardown
    - /health       : Health check endpoint

Environment Variables Required:
    - STYTCH_PROJECT_ID, STYTCH_SECRET: provider credentials
    - SESSION_SECRET: secret for signing the session cookie
    - DATABASE_URL: local user database (default: sqlite:///./otp_login.db)
    - LOG_LEVEL: Logging level (default: INFO)

Running the Service:
    Development:
        uvicorn otp_login.main:create_app --factory --reload --port 3000

    Production:
        uvicorn otp_login.main:create_app --factory --host 0.0.0.0 --port 8080
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse
import uvicorn

from otp_login import __version__
from otp_login.account import account_router
from otp_login.auth import auth_router
from otp_login.config import Settings, get_settings
from otp_login.context import AppContext, build_context, close_context
from otp_login.exceptions import AuthProviderError, LoginFlowError, LoginRequired
from otp_login.pages import render_error_page

SERVICE_NAME = "otp-login-demo"

PROVIDER_REJECTION_MESSAGE = "We were not able to log you in"


# Configure structured JSON logging
def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup builds the provider client, the database engine (creating the
    users table if needed) and the session codec, unless a context was
    injected by the caller. Shutdown closes what startup opened.
    """
    settings: Settings = app.state.settings
    logger = logging.getLogger("otp_login.main")

    owns_context = app.state.context is None
    if owns_context:
        app.state.context = build_context(settings)

    logger.info(
        "Starting OTP login service",
        extra={
            "stytch_env": settings.STYTCH_ENV,
            "log_level": settings.LOG_LEVEL,
        },
    )

    yield

    logger.info("Shutting down OTP login service")
    if owns_context:
        await close_context(app.state.context)
        app.state.context = None


# Create FastAPI application
def create_app(
    settings: Optional[Settings] = None,
    context: Optional[AppContext] = None,
) -> FastAPI:
    """
    Application factory function.

    Args:
        settings: configuration; loaded from the environment when omitted
        context: prebuilt service handles (tests); built at startup when omitted

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or (context.settings if context else get_settings())
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="OTP Login Demo",
        description="Passwordless login with one-time passcodes via email or SMS",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
    )
    app.state.settings = settings
    app.state.context = context

    app.include_router(account_router)
    app.include_router(auth_router)

    # Health check endpoint
    @app.get("/health", tags=["System"])
    async def health_check() -> Dict[str, str]:
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "version": __version__,
        }

    @app.exception_handler(LoginRequired)
    async def login_required_handler(request: Request, exc: LoginRequired):
        return RedirectResponse(url="/login", status_code=302)

    @app.exception_handler(LoginFlowError)
    async def login_flow_error_handler(request: Request, exc: LoginFlowError):
        """
        Render a failed step of the login flow.

        400-class errors always show their message. 500-class errors show
        the internal detail only when DEBUG is on; it is always logged.
        """
        logger = logging.getLogger("otp_login.main")

        if isinstance(exc, AuthProviderError):
            message = f"{PROVIDER_REJECTION_MESSAGE}: {exc.error_message}"
        elif exc.http_status_code < 500:
            message = exc.message
        else:
            logger.error(
                f"Login flow failure: {exc.message}",
                extra={
                    "path": request.url.path,
                    "exception_type": type(exc).__name__,
                },
                exc_info=exc,
            )
            if settings.DEBUG:
                message = f"We encountered a login failure: {exc.message}"
            else:
                message = "We encountered a login failure. Please try again."

        return render_error_page(
            title="Login Failed" if exc.http_status_code < 500 else "Unexpected Error",
            message=message,
            status_code=exc.http_status_code,
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger = logging.getLogger("otp_login.main")
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__,
            },
            exc_info=True,
        )

        return render_error_page(
            title="Unexpected Error",
            message=str(exc) if settings.DEBUG else "An unexpected error occurred",
            status_code=500,
            retry_url="/",
        )

    return app


if __name__ == "__main__":
    uvicorn.run(
        "otp_login.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=3000,
        reload=True,
        log_level=get_settings().LOG_LEVEL.lower(),
    )

"""
Shared pytest fixtures.

Each test gets a fresh in-memory SQLite database, a mocked Stytch client
and an application built around them. The lifespan never runs, so nothing
talks to the network.
"""

from typing import Dict
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from otp_login.auth.session import SessionCodec
from otp_login.auth.stytch import StytchClient
from otp_login.config import Settings
from otp_login.context import AppContext
from otp_login.database import Base, make_session_factory
from otp_login.main import create_app
from otp_login.models import UserSession
from otp_login.users import UserStore
from otp_login.users import models  # noqa: F401


@pytest.fixture
def settings():
    return Settings(
        STYTCH_PROJECT_ID="project-test-00000000-0000-0000-0000-000000000000",
        STYTCH_SECRET="secret-test-abcdefghijklmnopqrstuvwxyz",
        SESSION_SECRET="test-session-secret-0123456789abcdef",
        DATABASE_URL="sqlite://",
        _env_file=None,
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def users(session_factory):
    return UserStore(session_factory)


@pytest.fixture
def stytch():
    """Stytch client double; configure return values / side effects per test."""
    return AsyncMock(spec=StytchClient)


@pytest.fixture
def ctx(settings, stytch, users):
    return AppContext(
        settings=settings,
        stytch=stytch,
        users=users,
        sessions=SessionCodec(settings),
    )


@pytest.fixture
def app(ctx):
    return create_app(context=ctx)


@pytest.fixture
def client(app):
    # https so the secure session cookie round-trips
    return TestClient(app, base_url="https://testserver")


@pytest.fixture
def session_cookie(ctx):
    """Build a Cookie header for a signed-in user."""
    def _make(user_id: str = "L1", external_auth_id: str = "u1") -> Dict[str, str]:
        token = ctx.sessions.create_session(
            UserSession(user_id=user_id, external_auth_id=external_auth_id)
        )
        return {"Cookie": f"{ctx.settings.SESSION_COOKIE_NAME}={token}"}

    return _make

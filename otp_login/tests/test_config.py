"""
Settings tests.
"""

import pytest
from pydantic import ValidationError

from otp_login.config import Settings

REQUIRED = {
    "STYTCH_PROJECT_ID": "project-test-1",
    "STYTCH_SECRET": "secret-test-1",
    "SESSION_SECRET": "0123456789abcdef0123",
}


def make_settings(**overrides):
    return Settings(_env_file=None, **{**REQUIRED, **overrides})


def test_defaults():
    settings = make_settings()

    assert settings.STYTCH_ENV == "test"
    assert settings.stytch_base_url == "https://test.stytch.com/v1"
    assert settings.SESSION_COOKIE_NAME == "__session"
    assert settings.session_max_age_seconds == 30 * 24 * 60 * 60
    assert settings.SESSION_COOKIE_SECURE is True
    assert settings.DEBUG is False


def test_live_environment():
    assert make_settings(STYTCH_ENV="LIVE").stytch_base_url == "https://api.stytch.com/v1"


def test_api_url_override():
    settings = make_settings(STYTCH_API_URL="http://localhost:9000/v1/")

    assert settings.stytch_base_url == "http://localhost:9000/v1"


def test_unknown_environment_rejected():
    with pytest.raises(ValidationError):
        make_settings(STYTCH_ENV="staging")


def test_log_level_normalized():
    assert make_settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    with pytest.raises(ValidationError):
        make_settings(LOG_LEVEL="chatty")


def test_short_session_secret_rejected():
    with pytest.raises(ValidationError):
        make_settings(SESSION_SECRET="short")

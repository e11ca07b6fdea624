"""
Configuration module for the OTP login demo.

This module uses Pydantic Settings to load and validate environment variables
for the hosted authentication provider (Stytch), the local user database,
session cookie signing, and logging.

Environment variables are loaded from .env file or system environment.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


STYTCH_BASE_URLS = {
    "test": "https://test.stytch.com/v1",
    "live": "https://api.stytch.com/v1",
}


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Provider credentials and the session secret are required; everything
    else has a development-friendly default.
    """

    # =========================================================================
    # Authentication Provider (Stytch)
    # =========================================================================

    STYTCH_PROJECT_ID: str = Field(
        ...,
        description="Stytch project ID (e.g., project-test-...)",
        min_length=1,
    )

    STYTCH_SECRET: str = Field(
        ...,
        description="Stytch project secret",
        min_length=1,
    )

    STYTCH_ENV: str = Field(
        default="test",
        description="Stytch environment: 'test' or 'live'",
    )

    STYTCH_API_URL: Optional[str] = Field(
        None,
        description="Override for the Stytch API base URL (mainly for local fakes)",
    )

    PROVIDER_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Timeout applied to every call to the authentication provider",
        gt=0,
    )

    # =========================================================================
    # Local User Database
    # =========================================================================

    DATABASE_URL: str = Field(
        default="sqlite:///./otp_login.db",
        description="SQLAlchemy database URL for the local user table",
    )

    # =========================================================================
    # Session Cookie
    # =========================================================================

    SESSION_SECRET: str = Field(
        ...,
        description="Static secret used to sign the session cookie",
        min_length=16,
    )

    SESSION_COOKIE_NAME: str = Field(
        default="__session",
        description="Name of the session cookie",
    )

    SESSION_DURATION_MINUTES: int = Field(
        default=43200,  # 30 days
        description="Absolute session lifetime in minutes",
        ge=1,
    )

    SESSION_COOKIE_SECURE: bool = Field(
        default=True,
        description="Only send the session cookie over HTTPS",
    )

    SESSION_ISSUER: str = Field(
        default="otp-login-demo",
        description="Issuer claim written into the session token",
    )

    # =========================================================================
    # Logging / Diagnostics
    # =========================================================================

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    DEBUG: bool = Field(
        default=False,
        description="Include internal error detail in 500 responses",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def stytch_base_url(self) -> str:
        """
        Base URL of the Stytch REST API for the configured environment.

        Returns:
            URL without trailing slash.
        """
        if self.STYTCH_API_URL:
            return self.STYTCH_API_URL.rstrip("/")
        return STYTCH_BASE_URLS[self.STYTCH_ENV]

    @property
    def session_max_age_seconds(self) -> int:
        return self.SESSION_DURATION_MINUTES * 60

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("STYTCH_ENV")
    @classmethod
    def validate_stytch_env(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in STYTCH_BASE_URLS:
            raise ValueError(
                f"STYTCH_ENV must be one of {sorted(STYTCH_BASE_URLS)}, got: {v}"
            )
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

        v = v.upper()
        if v not in allowed_levels:
            raise ValueError(f"LOG_LEVEL must be one of {allowed_levels}, got: {v}")
        return v


# =============================================================================
# Settings Singleton
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    Raises:
        ValidationError: If required environment variables are missing
                        or invalid.
    """
    return Settings()

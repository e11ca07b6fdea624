"""
Stytch REST client.

Covers the four calls the login flow needs: email and SMS login-or-create,
OTP authentication and user lookup. Every call is a single request with no
retry; failures surface immediately:

- the provider answered with an error body -> ``AuthProviderError`` (400)
- transport failure or an unexpected body -> ``AuthProviderFault`` (500)
"""

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from otp_login.config import Settings
from otp_login.exceptions import AuthProviderError, AuthProviderFault
from otp_login.models import (
    AuthenticateResponse,
    LoginOrCreateResponse,
    ProviderUser,
)

logger = logging.getLogger(__name__)


class StytchClient:
    """
    Shared handle to the Stytch API.

    Create one per process and close it with ``aclose()`` on shutdown.
    """

    def __init__(
        self,
        project_id: str,
        secret: str,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            auth=(project_id, secret),
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "StytchClient":
        return cls(
            project_id=settings.STYTCH_PROJECT_ID,
            secret=settings.STYTCH_SECRET,
            base_url=settings.stytch_base_url,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # =========================================================================
    # OTP endpoints
    # =========================================================================

    async def email_login_or_create(self, email: str) -> LoginOrCreateResponse:
        """
        Log in or create a pending user by email and send them a code.

        Returns:
            LoginOrCreateResponse whose ``method_id`` is the email_id
        """
        data = await self._request(
            "POST",
            "/otps/email/login_or_create",
            json={"email": email, "create_user_as_pending": True},
        )
        return self._parse_login_or_create(data, "email_id")

    async def sms_login_or_create(self, phone_number: str) -> LoginOrCreateResponse:
        """
        Log in or create a pending user by E.164 phone number and text them a code.

        Returns:
            LoginOrCreateResponse whose ``method_id`` is the phone_id
        """
        data = await self._request(
            "POST",
            "/otps/sms/login_or_create",
            json={"phone_number": phone_number, "create_user_as_pending": True},
        )
        return self._parse_login_or_create(data, "phone_id")

    async def authenticate_otp(self, code: str, method_id: str) -> AuthenticateResponse:
        """Check ``code`` against the challenge identified by ``method_id``."""
        data = await self._request(
            "POST",
            "/otps/authenticate",
            json={"code": code, "method_id": method_id},
        )
        try:
            return AuthenticateResponse.model_validate(data)
        except ValidationError as e:
            raise AuthProviderFault(f"Unexpected authenticate response: {e}") from e

    async def get_user(self, user_id: str) -> ProviderUser:
        data = await self._request("GET", f"/users/{user_id}")
        try:
            return ProviderUser.model_validate(data)
        except ValidationError as e:
            raise AuthProviderFault(f"Unexpected user response: {e}") from e

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _parse_login_or_create(data: Dict[str, Any], method_key: str) -> LoginOrCreateResponse:
        try:
            return LoginOrCreateResponse.model_validate(
                {
                    "user_id": data.get("user_id"),
                    "method_id": data.get(method_key),
                    "user_created": data.get("user_created", False),
                }
            )
        except ValidationError as e:
            raise AuthProviderFault(f"Unexpected login_or_create response: {e}") from e

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.error(f"Stytch request {method} {path} failed: {e}")
            raise AuthProviderFault(
                f"Unable to communicate with authentication service: {e}"
            ) from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.is_success:
            if isinstance(body, dict) and body.get("error_message"):
                logger.warning(
                    f"Stytch rejected {method} {path}: {body.get('error_type')}",
                    extra={"status_code": response.status_code},
                )
                raise AuthProviderError(
                    error_message=body["error_message"],
                    error_type=body.get("error_type"),
                    status_code=response.status_code,
                )
            logger.error(f"Stytch request {method} {path} returned {response.status_code}")
            raise AuthProviderFault(
                f"Authentication service returned HTTP {response.status_code}"
            )

        if not isinstance(body, dict):
            raise AuthProviderFault("Authentication service returned a non-JSON body")

        return body

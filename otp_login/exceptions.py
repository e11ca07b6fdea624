"""
Error taxonomy for the login flow.

Each exception carries a user-facing message and the HTTP status code the
route handlers answer with. Field-level validation problems are not
exceptions; they re-render the form.
"""

from typing import Optional


class LoginFlowError(Exception):
    """Root exception for failures that end the current request."""

    http_status_code: int = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# =============================================================================
# Client-class errors (HTTP 400)
# =============================================================================

class ContactRejectedError(LoginFlowError):
    """The submitted contact is well-formed but cannot be used."""

    http_status_code = 400


class InvalidFlowStateError(LoginFlowError):
    """The client-carried login flow parameters are missing or malformed."""

    http_status_code = 400

    def __init__(self, message: str = "invalid OTP verification request") -> None:
        super().__init__(message)


class AuthProviderError(LoginFlowError):
    """The authentication provider explicitly rejected the request."""

    http_status_code = 400

    def __init__(
        self,
        error_message: str,
        error_type: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        self.error_message = error_message
        self.error_type = error_type
        self.status_code = status_code
        super().__init__(error_message)


# =============================================================================
# Server-class errors (HTTP 500)
# =============================================================================

class AuthProviderFault(LoginFlowError):
    """Transport failure or an unexpected response from the provider."""


class UserStoreError(LoginFlowError):
    """The local user database failed."""


class UserConflictError(UserStoreError):
    """A user row for this external id was inserted concurrently."""

    def __init__(self, external_auth_id: str) -> None:
        self.external_auth_id = external_auth_id
        super().__init__(
            f"A user account for {external_auth_id!r} was created concurrently"
        )


class UnknownLocalUserError(LoginFlowError):
    """The provider authenticated a user the local store has no row for."""

    def __init__(self, external_auth_id: str) -> None:
        self.external_auth_id = external_auth_id
        super().__init__(f"No local user account exists for {external_auth_id!r}")


# =============================================================================
# Session gate
# =============================================================================

class LoginRequired(Exception):
    """Raised by the session gate; answered with a redirect to /login."""

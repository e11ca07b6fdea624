"""
Data Models Module

Pydantic models for the values that cross module boundaries:
- Authentication provider responses (login-or-create, authenticate, user)
- Login flow results (challenge issued, code verified)
- Session contents and the profile view
"""

from typing import List, Literal, Optional
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field


MethodName = Literal["email", "sms"]


# ============================================================================
# Authentication Provider Responses
# ============================================================================

class LoginOrCreateResponse(BaseModel):
    """Result of asking the provider to send a one-time code to a contact."""
    user_id: str = Field(..., description="Provider user id")
    method_id: str = Field(..., description="email_id or phone_id scoping the challenge")
    user_created: bool = Field(False, description="Provider account was created by this call")


class AuthenticateResponse(BaseModel):
    """Result of a successful OTP authentication."""
    user_id: str = Field(..., description="Canonical provider user id")
    method_id: Optional[str] = Field(None, description="Method the code was issued for")


class ProviderEmail(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email_id: str
    email: str
    verified: bool = False


class ProviderPhoneNumber(BaseModel):
    model_config = ConfigDict(extra="ignore")

    phone_id: str
    phone_number: str
    verified: bool = False


class ProviderUser(BaseModel):
    """User record held by the authentication provider."""
    model_config = ConfigDict(extra="ignore")

    user_id: str
    emails: List[ProviderEmail] = Field(default_factory=list)
    phone_numbers: List[ProviderPhoneNumber] = Field(default_factory=list)
    status: str = ""


# ============================================================================
# Login Flow Results
# ============================================================================

class LoginChallenge(BaseModel):
    """
    A one-time code was issued to a contact method.

    Only ``method_name``, ``method_id``, ``user_created`` and
    ``verification_target`` travel to the client, as plain query
    parameters of the verification page.
    """
    method_name: MethodName
    method_id: str
    user_created: bool
    verification_target: str
    external_user_id: str

    def redirect_url(self) -> str:
        params = {
            "methodName": self.method_name,
            "methodId": self.method_id,
            "userCreated": "1" if self.user_created else "0",
            "verificationTarget": self.verification_target,
        }
        return f"/login/otp?{urlencode(params)}"


class VerificationResult(BaseModel):
    """A submitted code was accepted and resolved to a local user."""
    user_id: str = Field(..., description="Local user id")
    external_user_id: str = Field(..., description="Provider user id")


class UserSession(BaseModel):
    """Identity carried by the signed session cookie."""
    user_id: str
    external_auth_id: str


class UserProfile(BaseModel):
    """Local and provider data shown on the profile page."""
    id: str
    stytch_user_id: str
    emails: List[ProviderEmail] = Field(default_factory=list)
    phone_numbers: List[ProviderPhoneNumber] = Field(default_factory=list)
    status: str = ""

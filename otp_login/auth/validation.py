"""
Form and query-string validation for the login flow.

Field problems are returned as ``{field: message}`` so the page can be
re-rendered with the message next to the input; nothing here talks to the
provider. ``normalize_phone`` is the one check that ends the request
instead, because a wrong country for an otherwise valid number is a
rejected request rather than a typo.
"""

import re
from typing import Dict, Literal, Mapping, Optional, Tuple, Type, TypeVar

import phonenumbers
from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, Field, ValidationError, field_validator

from otp_login.exceptions import ContactRejectedError, InvalidFlowStateError
from otp_login.models import MethodName

# Shape check only; the number is parsed against the declared country afterwards.
VALID_PHONE_NUMBER = re.compile(r"^\+?[0-9(][0-9\s().-]{5,18}[0-9]$")

COUNTRY_CODE = re.compile(r"^[A-Z]{2}$")

# Countries the provider delivers SMS codes to.
SUPPORTED_SMS_COUNTRIES = ("US", "CA")

COUNTRY_NOT_SUPPORTED = "Sorry, we don't support sms login for your country yet."
COUNTRY_MISMATCH = (
    "The phone number you provided does not match the country code you selected."
)

FormT = TypeVar("FormT", bound=BaseModel)


# ============================================================================
# Form Models
# ============================================================================

class EmailLoginForm(BaseModel):
    email: str = Field("", validate_default=True)

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Email address is required")
        try:
            validate_email(v, check_deliverability=False)
        except EmailNotValidError:
            raise ValueError("Invalid email address") from None
        return v


class SmsLoginForm(BaseModel):
    country: str = Field("", validate_default=True)
    phone: str = Field("", validate_default=True)

    @field_validator("country")
    @classmethod
    def validate_country(cls, v: str) -> str:
        if not COUNTRY_CODE.match(v.strip()):
            raise ValueError("Invalid country code")
        return v.strip()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Phone number is required")
        if not VALID_PHONE_NUMBER.match(v):
            raise ValueError("Invalid phone number")
        return v


class OtpForm(BaseModel):
    code: str = Field("", validate_default=True)
    methodId: str = Field(..., min_length=1)
    userCreated: Literal["1", "0"]

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        v = v.strip()
        if len(v) != 6:
            raise ValueError("OTP must be 6 digits")
        return v


class LoginFlowState(BaseModel):
    """Query parameters carried from the login form to the verification page."""
    methodId: str = Field(..., min_length=1)
    methodName: MethodName
    userCreated: Literal["1", "0"]
    verificationTarget: str

    @property
    def user_created(self) -> bool:
        return self.userCreated == "1"


# ============================================================================
# Helpers
# ============================================================================

def validate_form(
    model: Type[FormT],
    data: Mapping[str, str],
) -> Tuple[Optional[FormT], Dict[str, str]]:
    """
    Validate submitted form fields against ``model``.

    Returns:
        (instance, {}) on success, (None, {field: message}) on failure.
        Only the first message per field is kept.
    """
    try:
        return model.model_validate(dict(data)), {}
    except ValidationError as e:
        errors: Dict[str, str] = {}
        for err in e.errors():
            field = str(err["loc"][0]) if err["loc"] else "__all__"
            if field in errors:
                continue
            if err["type"] == "value_error":
                errors[field] = str(err["ctx"]["error"])
            else:
                errors[field] = err["msg"]
        return None, errors


def parse_flow_state(params: Mapping[str, str]) -> LoginFlowState:
    """
    Parse the verification page's query string.

    Raises:
        InvalidFlowStateError: any of the four parameters is missing or malformed
    """
    try:
        return LoginFlowState.model_validate(dict(params))
    except ValidationError as e:
        raise InvalidFlowStateError() from e


def normalize_phone(country: str, phone: str) -> str:
    """
    Parse ``phone`` against the declared ``country`` and return it in E.164.

    The number's inferred country must equal ``country`` exactly.

    Raises:
        ContactRejectedError: unsupported country, unparsable number or
            country mismatch

    Example:
        >>> normalize_phone("US", "(650) 253-0000")
        '+16502530000'
    """
    if country not in SUPPORTED_SMS_COUNTRIES:
        raise ContactRejectedError(COUNTRY_NOT_SUPPORTED)

    try:
        parsed = phonenumbers.parse(phone, country)
    except phonenumbers.NumberParseException as e:
        raise ContactRejectedError(COUNTRY_MISMATCH) from e

    if phonenumbers.region_code_for_number(parsed) != country:
        raise ContactRejectedError(COUNTRY_MISMATCH)

    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)

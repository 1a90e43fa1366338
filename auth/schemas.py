"""
auth/schemas.py -- Inbound payload schemas for registration, login and updates.

Each principal variant gets its own explicit pydantic model; services never
poke at raw dict keys. Models run in strict mode (a phone number sent as a JSON
number is rejected rather than coerced) and strip whitespace from every string
before constraints are checked, so length limits apply to the trimmed value.

Wire names are camelCase (firstName, phoneNo, secretCode) with the one historic
exception adminID, which keeps its explicit alias.

parse_payload() turns pydantic's error list into auth.errors.ValidationError
carrying one "field: message" string per problem. The offending input value is
never copied into a message.

Layer rule: no imports from api/, accounts/, or core/.
"""

from __future__ import annotations

import hmac
import re
from collections.abc import Iterable
from typing import Annotated, Any, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from auth.errors import ValidationError

PHONE_PATTERN = re.compile(r"^(\+65[ \-]*)?[689]\d{7}$")
ADMIN_ID_PATTERN = re.compile(r"^\d{6}[A-Z]$")


def normalize_email(value: Any) -> Any:
    """Trim and lower-case an email. Non-strings pass through for strict checks."""
    if isinstance(value, str):
        return value.strip().lower()
    return value


NormalizedEmail = Annotated[EmailStr, BeforeValidator(normalize_email)]
Password = Annotated[str, Field(min_length=8, max_length=50)]
PersonName = Annotated[str, Field(min_length=2, max_length=50)]


class _Payload(BaseModel):
    model_config = ConfigDict(
        strict=True,
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


def _check_phone(value: str) -> str:
    if not PHONE_PATTERN.match(value):
        raise ValueError("Phone number is not valid")
    return value


def _check_admin_id(value: str) -> str:
    if not ADMIN_ID_PATTERN.match(value):
        raise ValueError("Admin ID should be in the format eg. 111111A")
    return value


def _check_secret_code(value: str, info: ValidationInfo) -> str:
    """Compare the gate secret against the configured code in constant time."""
    expected = (info.context or {}).get("registration_code")
    if not expected or not hmac.compare_digest(value.encode("utf-8"), expected.encode("utf-8")):
        raise ValueError("Invalid secret code")
    return value


# ---------------------------------------------------------------------------
# User payloads
# ---------------------------------------------------------------------------


class UserRegistration(_Payload):
    first_name: PersonName
    last_name: PersonName
    email: NormalizedEmail
    phone_no: str
    password: Password

    @field_validator("phone_no")
    @classmethod
    def check_phone(cls, value: str) -> str:
        return _check_phone(value)


class UserUpdate(_Payload):
    """PUT /user/{id}. Password is optional; omit it to keep the current one."""

    first_name: PersonName
    last_name: PersonName
    email: NormalizedEmail
    phone_no: str
    password: Password | None = None

    @field_validator("phone_no")
    @classmethod
    def check_phone(cls, value: str) -> str:
        return _check_phone(value)


# ---------------------------------------------------------------------------
# Admin payloads
# ---------------------------------------------------------------------------


class AdminRegistration(_Payload):
    """Admin sign-up. secretCode must match the configured registration code.

    Validate with context={"registration_code": ...}; without it every
    secretCode is rejected.
    """

    secret_code: str
    name: PersonName
    admin_id: str = Field(alias="adminID")
    email: NormalizedEmail
    role: str = Field(min_length=1)
    password: Password

    @field_validator("secret_code")
    @classmethod
    def check_secret_code(cls, value: str, info: ValidationInfo) -> str:
        return _check_secret_code(value, info)

    @field_validator("admin_id")
    @classmethod
    def check_admin_id(cls, value: str) -> str:
        return _check_admin_id(value)


class AdminUpdate(_Payload):
    secret_code: str
    name: PersonName
    admin_id: str = Field(alias="adminID")
    email: NormalizedEmail
    role: str = Field(min_length=1)
    password: Password | None = None

    @field_validator("secret_code")
    @classmethod
    def check_secret_code(cls, value: str, info: ValidationInfo) -> str:
        return _check_secret_code(value, info)

    @field_validator("admin_id")
    @classmethod
    def check_admin_id(cls, value: str) -> str:
        return _check_admin_id(value)


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


class LoginPayload(_Payload):
    """Email is normalized but not format-checked: a malformed address simply
    fails to match, and gets the same generic error as any other bad login."""

    email: Annotated[str, BeforeValidator(normalize_email), Field(min_length=1)]
    password: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Error formatting
# ---------------------------------------------------------------------------


def format_errors(errors: Iterable[dict]) -> list[str]:
    """Render pydantic/FastAPI error dicts as "field: message" strings.

    The "body" prefix FastAPI adds to request-body locations is dropped. For
    errors raised by our own validators, the bare ValueError text is used
    instead of pydantic's "Value error, ..." wrapper.
    """
    messages: list[str] = []
    for err in errors:
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        message = err.get("msg", "Invalid value")
        if err.get("type") == "value_error":
            original = (err.get("ctx") or {}).get("error")
            if original is not None:
                message = str(original)
        messages.append(f"{location}: {message}" if location else message)
    return messages


_P = TypeVar("_P", bound=BaseModel)


def parse_payload(schema: type[_P], payload: Any, context: dict | None = None) -> _P:
    """Validate payload against schema, collecting every error.

    Raises auth.errors.ValidationError with the full list on failure.
    """
    try:
        return schema.model_validate(payload, context=context)
    except PydanticValidationError as exc:
        raise ValidationError(format_errors(exc.errors())) from None

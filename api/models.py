"""
API request and response models for BikeHub Accounts REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
accounts/models.py, which own the internal domain representation. Route
handlers map between the two.

Wire format is camelCase (firstName, accessToken, createdAt). adminID keeps its
historic spelling through an explicit alias. FastAPI serializes response models
by alias, so handlers can return these instances directly.

Response models for principals deliberately have no password or secret-code
field: a stored hash can never leak through serialization.
"""

from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from accounts.models import Account
from auth.models import AdminPrincipal, SessionClaims, UserPrincipal
from auth.schemas import PHONE_PATTERN, normalize_email


class _ApiModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class MessageResponse(_ApiModel):
    """Domain failures and simple acknowledgements: {"message": "..."}."""

    message: str


class ValidationErrorResponse(_ApiModel):
    """Validation failures: {"errors": ["field: problem", ...]}."""

    errors: list[str]


class HealthResponse(_ApiModel):
    """Response for GET /api/v1/health."""

    status: str = "ok"
    version: str


# ---------------------------------------------------------------------------
# Stored principals
# ---------------------------------------------------------------------------


class UserResponse(_ApiModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone_no: str
    user_type: str
    created_at: str
    updated_at: str

    @classmethod
    def from_principal(cls, user: UserPrincipal) -> "UserResponse":
        return cls(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            phone_no=user.phone_no,
            user_type=user.user_type,
            created_at=user.created_at or "",
            updated_at=user.updated_at or "",
        )


class AdminResponse(_ApiModel):
    id: int
    admin_id: str = Field(alias="adminID")
    name: str
    email: str
    role: str
    created_at: str
    updated_at: str

    @classmethod
    def from_principal(cls, admin: AdminPrincipal) -> "AdminResponse":
        return cls(
            id=admin.id,
            admin_id=admin.admin_id,
            name=admin.name,
            email=admin.email,
            role=admin.role,
            created_at=admin.created_at or "",
            updated_at=admin.updated_at or "",
        )


# ---------------------------------------------------------------------------
# Session identity (built from token claims, not from storage)
# ---------------------------------------------------------------------------


class UserIdentity(_ApiModel):
    id: int
    email: str
    first_name: str
    last_name: str
    phone_no: str

    @classmethod
    def from_claims(cls, claims: SessionClaims) -> "UserIdentity":
        return cls(
            id=claims.principal_id,
            email=claims.email,
            first_name=claims.profile.get("firstName", ""),
            last_name=claims.profile.get("lastName", ""),
            phone_no=claims.profile.get("phoneNo", ""),
        )


class AdminIdentity(_ApiModel):
    id: int
    admin_id: str = Field(alias="adminID")
    email: str
    name: str
    role: str

    @classmethod
    def from_claims(cls, claims: SessionClaims) -> "AdminIdentity":
        return cls(
            id=claims.principal_id,
            admin_id=claims.profile.get("adminID", ""),
            email=claims.email,
            name=claims.profile.get("name", ""),
            role=claims.profile.get("role", ""),
        )


class UserLoginResponse(_ApiModel):
    access_token: str
    user: UserIdentity


class AdminLoginResponse(_ApiModel):
    access_token: str
    adminuser: AdminIdentity


class UserAuthResponse(_ApiModel):
    user: UserIdentity


class AdminAuthResponse(_ApiModel):
    adminuser: AdminIdentity


# ---------------------------------------------------------------------------
# Directory accounts
# ---------------------------------------------------------------------------


class AccountPayload(BaseModel):
    """Request body for POST /account and PUT /account/{id}."""

    model_config = ConfigDict(str_strip_whitespace=True, alias_generator=to_camel, populate_by_name=True)

    first_name: str = Field(min_length=3, max_length=100)
    last_name: str = Field(min_length=3, max_length=500)
    email: Annotated[EmailStr, BeforeValidator(normalize_email)]
    phone_no: str
    user_type: str = Field(min_length=1, max_length=50)

    @field_validator("phone_no")
    @classmethod
    def check_phone(cls, value: str) -> str:
        if not PHONE_PATTERN.match(value):
            raise ValueError("Phone number is not valid")
        return value


class AccountResponse(_ApiModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone_no: str
    user_type: str
    created_at: str
    updated_at: str

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(
            id=account.id,
            first_name=account.first_name,
            last_name=account.last_name,
            email=account.email,
            phone_no=account.phone_no,
            user_type=account.user_type,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )

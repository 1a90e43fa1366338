"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services do
the work; these only own the shape.

UserPrincipal and AdminPrincipal live in separate tables and separate stores.
They share no base class on purpose: nothing should be able to look up "a
principal" without saying which kind.

Layer rule: no imports from api/, accounts/, or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field

USER = "user"
ADMIN = "admin"
PRINCIPAL_TYPES = (USER, ADMIN)


@dataclass
class UserPrincipal:
    """An ordinary customer account.

    hashed_password is always bcrypt output. user_type is the fixed
    discriminator stored on every user row; it is never taken from input.
    """

    first_name: str
    last_name: str
    email: str  # trimmed + lower-cased before it reaches the store
    phone_no: str
    hashed_password: str
    user_type: str = USER
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class AdminPrincipal:
    """A back-office administrator.

    hashed_secret_code is the bcrypt hash of the registration-gate secret
    presented at sign-up. It is written once and never read back for
    verification.
    """

    admin_id: str  # e.g. "111111A"
    name: str
    email: str
    role: str  # free-text description of the admin's job
    hashed_password: str
    hashed_secret_code: str
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class SessionClaims:
    """The non-secret identity carried inside a session token.

    profile holds the whitelisted display fields under their wire names
    (firstName/lastName/phoneNo for users, adminID/name/role for admins).

    issued_at is the token's iat claim. It is filled in on decode and ignored
    by equality, so claims survive an issue/verify round trip unchanged.
    """

    principal_type: str  # USER or ADMIN
    principal_id: int
    email: str
    profile: dict[str, str] = field(default_factory=dict)
    issued_at: int | None = field(default=None, compare=False)

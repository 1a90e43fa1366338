"""
auth/authentication.py -- Password login for users and admins.

login_user() / login_admin() share one flow:
  - validate the {email, password} payload (missing fields -> ValidationError)
  - look the normalized email up in the variant's own store
  - unknown email: run a dummy bcrypt verification, then CredentialError
  - wrong password: CredentialError (same message, same status)
  - success: build SessionClaims from a fixed whitelist and issue a token

Timing equalization: the dummy verification means an unknown email costs one
bcrypt check, exactly like a wrong password, so response time does not reveal
whether an account exists.

Claims whitelist: users expose firstName/lastName/phoneNo, admins expose
adminID/name/role. The password hash and the admin's hashed secret code are
never copied into claims.

Layer rule: no imports from api/, accounts/, or core/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from auth.errors import CredentialError
from auth.models import ADMIN, USER, AdminPrincipal, SessionClaims, UserPrincipal
from auth.passwords import PasswordHasher
from auth.schemas import LoginPayload, parse_payload
from auth.store import AdminStore, UserStore
from auth.tokens import TokenCodec

logger = logging.getLogger("bikehub.auth")


@dataclass
class LoginResult:
    token: str
    claims: SessionClaims


def user_claims(user: UserPrincipal) -> SessionClaims:
    return SessionClaims(
        principal_type=USER,
        principal_id=user.id,
        email=user.email,
        profile={
            "firstName": user.first_name,
            "lastName": user.last_name,
            "phoneNo": user.phone_no,
        },
    )


def admin_claims(admin: AdminPrincipal) -> SessionClaims:
    return SessionClaims(
        principal_type=ADMIN,
        principal_id=admin.id,
        email=admin.email,
        profile={
            "adminID": admin.admin_id,
            "name": admin.name,
            "role": admin.role,
        },
    )


class AuthenticationService:
    """Verifies login attempts and issues session tokens."""

    def __init__(
        self,
        user_store: UserStore,
        admin_store: AdminStore,
        hasher: PasswordHasher,
        codec: TokenCodec,
    ) -> None:
        self.user_store = user_store
        self.admin_store = admin_store
        self.hasher = hasher
        self.codec = codec

    def login_user(self, payload: Any) -> LoginResult:
        user = self._authenticate(self.user_store, payload, USER)
        claims = user_claims(user)
        return LoginResult(token=self.codec.issue(claims), claims=claims)

    def login_admin(self, payload: Any) -> LoginResult:
        admin = self._authenticate(self.admin_store, payload, ADMIN)
        claims = admin_claims(admin)
        return LoginResult(token=self.codec.issue(claims), claims=claims)

    def _authenticate(self, store, payload: Any, principal_type: str):
        """Return the matching record or raise CredentialError.

        Always runs exactly one bcrypt verification, whether or not the email
        exists. Do NOT add an early return before the verify call.
        """
        data = parse_payload(LoginPayload, payload)
        record = store.find_by_email(data.email)
        if record is None:
            self.hasher.dummy_verify(data.password)
            logger.info("Rejected %s login (unknown email)", principal_type)
            raise CredentialError()
        if not self.hasher.verify(data.password, record.hashed_password):
            logger.info("Rejected %s login (bad password) id=%s", principal_type, record.id)
            raise CredentialError()

        if self.hasher.needs_rehash(record.hashed_password):
            store.update_password(record.id, self.hasher.hash(data.password))
            logger.info("Upgraded password hash cost for %s id=%s", principal_type, record.id)
        logger.info("%s login id=%s", principal_type.capitalize(), record.id)
        return record

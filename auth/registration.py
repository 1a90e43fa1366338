"""
auth/registration.py -- Sign-up and profile updates for users and admins.

Registration steps, both variants:
  1. Validate the raw payload (auth/schemas.py). Every field error is collected
     and raised together as ValidationError. For admins this includes the
     registration-gate secret, so a wrong secretCode stops the request before
     any lookup happens.
  2. Normalize: strings trimmed, email lower-cased (done by the schema).
  3. Uniqueness pre-check by normalized email within the variant's own store.
  4. Hash the password (and, for admins, the gate secret) with PasswordHasher.
  5. Insert. The table's UNIQUE(email) constraint is the final arbiter: an
     IntegrityError from a concurrent duplicate becomes the same ConflictError
     the pre-check raises.

The gate secret is hashed for storage and never compared again. Nothing in the
codebase reads hashed_secret_code back.

Layer rule: no imports from api/, accounts/, or core/.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import IntegrityError

from auth.errors import ConflictError, NotFoundError
from auth.models import AdminPrincipal, UserPrincipal
from auth.passwords import PasswordHasher
from auth.schemas import AdminRegistration, AdminUpdate, UserRegistration, UserUpdate, parse_payload
from auth.store import AdminStore, UserStore

logger = logging.getLogger("bikehub.auth")

USER_EXISTS_MESSAGE = "Email already exists."
ADMIN_EXISTS_MESSAGE = "Admin email already exists."


class RegistrationService:
    """Creates and updates principal records.

    registration_code is the allow-listed admin gate secret from Settings.
    """

    def __init__(
        self,
        user_store: UserStore,
        admin_store: AdminStore,
        hasher: PasswordHasher,
        registration_code: str,
    ) -> None:
        self.user_store = user_store
        self.admin_store = admin_store
        self.hasher = hasher
        self._context = {"registration_code": registration_code}

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def register_user(self, payload: Any) -> UserPrincipal:
        data = parse_payload(UserRegistration, payload)
        if self.user_store.find_by_email(data.email) is not None:
            raise ConflictError(USER_EXISTS_MESSAGE)

        record = UserPrincipal(
            first_name=data.first_name,
            last_name=data.last_name,
            email=data.email,
            phone_no=data.phone_no,
            hashed_password=self.hasher.hash(data.password),
        )
        try:
            created = self.user_store.insert(record)
        except IntegrityError as exc:
            raise ConflictError(USER_EXISTS_MESSAGE) from exc
        logger.info("Registered user id=%s", created.id)
        return created

    def update_user(self, user_id: int, payload: Any) -> UserPrincipal:
        if self.user_store.find_by_id(user_id) is None:
            raise NotFoundError("User not found.")
        data = parse_payload(UserUpdate, payload)
        self._ensure_email_free(self.user_store, data.email, user_id, USER_EXISTS_MESSAGE)

        fields: dict = {
            "first_name": data.first_name,
            "last_name": data.last_name,
            "email": data.email,
            "phone_no": data.phone_no,
        }
        if data.password is not None:
            fields["hashed_password"] = self.hasher.hash(data.password)
        self._apply_update(self.user_store, user_id, fields, USER_EXISTS_MESSAGE)
        logger.info("Updated user id=%s", user_id)
        return self.user_store.find_by_id(user_id)

    # ------------------------------------------------------------------
    # Admins
    # ------------------------------------------------------------------

    def register_admin(self, payload: Any) -> AdminPrincipal:
        data = parse_payload(AdminRegistration, payload, context=self._context)
        if self.admin_store.find_by_email(data.email) is not None:
            raise ConflictError(ADMIN_EXISTS_MESSAGE)

        record = AdminPrincipal(
            admin_id=data.admin_id,
            name=data.name,
            email=data.email,
            role=data.role,
            hashed_password=self.hasher.hash(data.password),
            # TODO: decide whether privileged admin actions should re-verify
            # this hash; until then it is write-only.
            hashed_secret_code=self.hasher.hash(data.secret_code),
        )
        try:
            created = self.admin_store.insert(record)
        except IntegrityError as exc:
            raise ConflictError(ADMIN_EXISTS_MESSAGE) from exc
        logger.info("Registered admin id=%s", created.id)
        return created

    def update_admin(self, admin_pk: int, payload: Any) -> AdminPrincipal:
        if self.admin_store.find_by_id(admin_pk) is None:
            raise NotFoundError("Admin not found.")
        data = parse_payload(AdminUpdate, payload, context=self._context)
        self._ensure_email_free(self.admin_store, data.email, admin_pk, ADMIN_EXISTS_MESSAGE)

        fields: dict = {
            "admin_id": data.admin_id,
            "name": data.name,
            "email": data.email,
            "role": data.role,
            "hashed_secret_code": self.hasher.hash(data.secret_code),
        }
        if data.password is not None:
            fields["hashed_password"] = self.hasher.hash(data.password)
        self._apply_update(self.admin_store, admin_pk, fields, ADMIN_EXISTS_MESSAGE)
        logger.info("Updated admin id=%s", admin_pk)
        return self.admin_store.find_by_id(admin_pk)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _ensure_email_free(store, email: str, own_id: int, message: str) -> None:
        existing = store.find_by_email(email)
        if existing is not None and existing.id != own_id:
            raise ConflictError(message)

    @staticmethod
    def _apply_update(store, record_id: int, fields: dict, message: str) -> None:
        try:
            updated = store.update(record_id, **fields)
        except IntegrityError as exc:
            raise ConflictError(message) from exc
        if not updated:
            # Deleted between the existence check and the write.
            raise NotFoundError("Record not found.")

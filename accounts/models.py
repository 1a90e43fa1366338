"""
accounts/models.py -- Domain dataclass for directory accounts.

Pure data container. Validation lives in api/models.py, persistence in
accounts/store.py.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Account:
    """A contact record. Carries no credentials and cannot log in.

    id is None before the record is written to the database.
    """

    first_name: str
    last_name: str
    email: str  # lower-cased on write
    phone_no: str
    user_type: str  # free text, e.g. "user", "staff", "partner"
    id: int | None = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""

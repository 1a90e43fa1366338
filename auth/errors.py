"""
auth/errors.py -- Exception taxonomy for the authentication subsystem.

Every failure a caller can see maps to one of these classes. Each carries the
HTTP status it should surface as, so api/main.py can translate the whole family
with a single exception handler.

Messages are fixed strings chosen by the raising code. They never interpolate a
password, a hash, the gate secret, or the signing secret.

Layer rule: stdlib only.
"""

from __future__ import annotations


class AuthServiceError(Exception):
    """Base class for all caller-facing auth failures."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(AuthServiceError):
    """Payload failed structural validation.

    errors is the complete list of per-field messages -- validation never
    stops at the first problem.
    """

    status_code = 400

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("Request validation failed.")


class ConflictError(AuthServiceError):
    """A principal with the same normalized email already exists."""

    status_code = 409


class CredentialError(AuthServiceError):
    """Login failed. Deliberately silent about which field was wrong."""

    status_code = 401
    GENERIC_MESSAGE = "Email or password is not correct."

    def __init__(self) -> None:
        super().__init__(self.GENERIC_MESSAGE)


class AuthTokenError(AuthServiceError):
    """Bearer token missing, malformed, forged, expired, or of the wrong variant.

    reason is for server-side diagnostics only; the message sent to the client
    is the same for every reason.
    """

    status_code = 401
    GENERIC_MESSAGE = "Authentication required."

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(self.GENERIC_MESSAGE)


class NotFoundError(AuthServiceError):
    """Referenced record id does not exist."""

    status_code = 404

"""
auth/tokens.py -- Signed session tokens (JWT, HS256).

Security design decisions:
  JWT: python-jose with HS256. The signing secret is handed to TokenCodec at
       construction time by the API lifespan (from core.config.Settings). There
       is no module-level key, so tests can run codecs with distinct secrets
       side by side.

  Payload: sub (principal id as string), principal_type ("user" | "admin"),
       email, the variant's whitelisted profile fields, and iat. Nothing
       secret is ever placed in a token -- the payload is only base64url, not
       encrypted.

  Variant marker: principal_type lets the guard tell a user token from an
       admin token. Without it the two are structurally identical.

  Expiry: none by default; a token is valid until the secret rotates. When
       expire_seconds > 0 an exp claim is added and enforced.

  Tamper evidence: the HMAC covers header and payload. In addition every
       segment must be canonical base64url -- decoding then re-encoding must
       give back the exact characters. Without that check, flipping one of the
       unused low bits of a segment's final character decodes to the same bytes
       and the altered token would still verify.

  Failures: verify() raises AuthTokenError. The reason (missing, malformed,
       signature, expired, claims) is logged at DEBUG and kept on the exception;
       the client-visible message is the same for all of them.

Layer rule: no imports from api/, accounts/, or core/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError
from jose.utils import base64url_decode, base64url_encode

from auth.errors import AuthTokenError
from auth.models import PRINCIPAL_TYPES, SessionClaims

logger = logging.getLogger("bikehub.auth")

ALGORITHM = "HS256"

# Claim names owned by the codec. Profile fields may not reuse them.
RESERVED_CLAIMS = frozenset({"sub", "principal_type", "email", "iat", "exp", "nbf", "iss", "aud", "jti"})


def _is_canonical(token: str) -> bool:
    """Return True if token is three canonical base64url segments."""
    segments = token.split(".")
    if len(segments) != 3:
        return False
    for segment in segments:
        try:
            raw = segment.encode("ascii")
            if base64url_encode(base64url_decode(raw)) != raw:
                return False
        except (UnicodeEncodeError, ValueError):
            return False
    return True


class TokenCodec:
    """Issues and verifies session tokens for both principal variants.

    Usage:
        codec = TokenCodec(secret_key=settings.app_secret)
        token = codec.issue(claims)
        claims = codec.verify(token)   # raises AuthTokenError on failure
    """

    def __init__(self, secret_key: str, expire_seconds: int = 0) -> None:
        if not secret_key:
            raise ValueError("TokenCodec requires a signing secret.")
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds

    def issue(self, claims: SessionClaims) -> str:
        """Sign claims plus an iat timestamp (and exp, when configured)."""
        if claims.principal_type not in PRINCIPAL_TYPES:
            raise ValueError(f"Unknown principal type: {claims.principal_type!r}")
        clashing = RESERVED_CLAIMS.intersection(claims.profile)
        if clashing:
            raise ValueError(f"Profile fields shadow reserved claims: {sorted(clashing)}")

        now = datetime.now(timezone.utc)
        payload: dict = {
            "sub": str(claims.principal_id),
            "principal_type": claims.principal_type,
            "email": claims.email,
            **claims.profile,
            "iat": int(now.timestamp()),
        }
        if self.expire_seconds > 0:
            payload["exp"] = int((now + timedelta(seconds=self.expire_seconds)).timestamp())
        return jwt.encode(payload, self._secret_key, algorithm=ALGORITHM)

    def verify(self, token: str | None) -> SessionClaims:
        """Decode token and return its claims, or raise AuthTokenError."""
        if not token:
            raise self._reject("missing")
        if not _is_canonical(token):
            raise self._reject("malformed")
        try:
            jwt.get_unverified_header(token)
        except JWTError:
            raise self._reject("malformed") from None

        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[ALGORITHM])
        except ExpiredSignatureError:
            raise self._reject("expired") from None
        except JWTClaimsError:
            raise self._reject("claims") from None
        except JWTError:
            raise self._reject("signature") from None

        return self._claims_from_payload(payload)

    def _claims_from_payload(self, payload: dict) -> SessionClaims:
        principal_type = payload.pop("principal_type", None)
        email = payload.pop("email", None)
        issued_at = payload.pop("iat", None)
        payload.pop("exp", None)
        try:
            principal_id = int(payload.pop("sub"))
        except (KeyError, TypeError, ValueError):
            raise self._reject("claims") from None
        if principal_type not in PRINCIPAL_TYPES or not isinstance(email, str) or issued_at is None:
            raise self._reject("claims")

        profile = {key: str(value) for key, value in payload.items() if key not in RESERVED_CLAIMS}
        return SessionClaims(
            principal_type=principal_type,
            principal_id=principal_id,
            email=email,
            profile=profile,
            issued_at=issued_at,
        )

    @staticmethod
    def _reject(reason: str) -> AuthTokenError:
        logger.debug("Token rejected (reason=%s)", reason)
        return AuthTokenError(reason)

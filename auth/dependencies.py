"""
auth/dependencies.py -- FastAPI Depends() helpers for token-gated routes.

Only one auth method exists: Authorization: Bearer <token>. There are no
cookies and no API keys.

get_session_claims() is the variant-agnostic guard: it rejects requests with a
missing or invalid token and, on success, attaches the decoded SessionClaims
to request.state.principal so handlers can read the caller's identity without
a storage lookup.

require_user() / require_admin() wrap it and additionally check the token's
principal_type. A user token presented to an admin route (or the reverse) is
rejected with the same AuthTokenError as a forged token -- the client is never
told which check failed.

Layer rule: no imports from api/, accounts/, or core/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.errors import AuthTokenError
from auth.models import ADMIN, USER, SessionClaims
from auth.tokens import TokenCodec

logger = logging.getLogger("bikehub.auth")

_BEARER_SCHEME = "bearer"


def bearer_token(request: Request) -> str | None:
    """Return the token from the Authorization header, or None.

    The scheme name is matched case-insensitively (RFC 7235 section 2.1).
    """
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != _BEARER_SCHEME:
        return None
    return token.strip() or None


def get_session_claims(request: Request) -> SessionClaims:
    """Require a valid bearer token of either variant.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(claims: SessionClaims = Depends(get_session_claims)): ...
    """
    token = bearer_token(request)
    if token is None:
        logger.debug("Token rejected (reason=missing) on %s", request.url.path)
        raise AuthTokenError("missing")

    codec: TokenCodec = request.app.state.token_codec
    claims = codec.verify(token)
    request.state.principal = claims
    return claims


def _require_variant(request: Request, principal_type: str) -> SessionClaims:
    claims = get_session_claims(request)
    if claims.principal_type != principal_type:
        logger.info(
            "Token rejected (reason=variant) on %s: expected %s, got %s",
            request.url.path,
            principal_type,
            claims.principal_type,
        )
        raise AuthTokenError("variant")
    return claims


def require_user(request: Request) -> SessionClaims:
    """Require a token issued by the user login flow."""
    return _require_variant(request, USER)


def require_admin(request: Request) -> SessionClaims:
    """Require a token issued by the admin login flow."""
    return _require_variant(request, ADMIN)

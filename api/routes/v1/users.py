"""
api/routes/v1/users.py -- Registration, login and management of user principals.

Routes:
  POST   /api/v1/user/register   -- create a user account (public)
  POST   /api/v1/user/login      -- password login; returns a bearer token (public)
  GET    /api/v1/user/auth       -- identity carried by the caller's user token
  GET    /api/v1/user            -- list/search users (admin only)
  GET    /api/v1/user/{id}       -- fetch one user (admin only)
  PUT    /api/v1/user/{id}       -- update a user (admin only)
  DELETE /api/v1/user/{id}       -- delete a user (admin only)

Security:
  Login failures return one generic message for unknown email and wrong
  password alike (AuthenticationService raises CredentialError for both).
  Cache-Control: no-store on login responses so tokens are not cached.
  Handlers that hash passwords or touch the store are plain def: FastAPI runs
  them in its thread pool so bcrypt and database I/O never block the event
  loop. Only /user/auth, which reads the token alone, is async.
  /user/auth is declared before /user/{user_id} so "auth" is never parsed as
  an id.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Request, Response

from api.models import MessageResponse, UserAuthResponse, UserIdentity, UserLoginResponse, UserResponse
from auth.authentication import AuthenticationService
from auth.dependencies import require_admin, require_user
from auth.errors import NotFoundError
from auth.models import SessionClaims
from auth.registration import RegistrationService
from auth.store import UserStore

router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/user/register", response_model=UserResponse, status_code=201)
def register_user(request: Request, payload: dict[str, Any] = Body(...)) -> UserResponse:
    """Validate, normalize and store a new user. The response never carries the hash."""
    registration: RegistrationService = request.app.state.registration
    user = registration.register_user(payload)
    return UserResponse.from_principal(user)


@router.post("/user/login", response_model=UserLoginResponse)
def login_user(request: Request, response: Response, payload: dict[str, Any] = Body(...)) -> UserLoginResponse:
    """Authenticate with email and password; return a bearer token and the session identity."""
    authentication: AuthenticationService = request.app.state.authentication
    result = authentication.login_user(payload)
    response.headers["Cache-Control"] = "no-store"
    return UserLoginResponse(access_token=result.token, user=UserIdentity.from_claims(result.claims))


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/user/auth", response_model=UserAuthResponse)
async def user_identity(claims: SessionClaims = Depends(require_user)) -> UserAuthResponse:
    """Return the identity carried by the caller's token. No storage lookup."""
    return UserAuthResponse(user=UserIdentity.from_claims(claims))


# ---------------------------------------------------------------------------
# User management (admin only)
# ---------------------------------------------------------------------------


@router.get("/user", response_model=list[UserResponse])
def list_users(
    request: Request,
    search: Optional[str] = None,
    admin: SessionClaims = Depends(require_admin),
) -> list[UserResponse]:
    """List users newest first, optionally filtered by ?search= substring."""
    user_store: UserStore = request.app.state.user_store
    return [UserResponse.from_principal(u) for u in user_store.list_all(search)]


@router.get("/user/{user_id}", response_model=UserResponse)
def get_user(
    request: Request,
    user_id: int,
    admin: SessionClaims = Depends(require_admin),
) -> UserResponse:
    user_store: UserStore = request.app.state.user_store
    user = user_store.find_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found.")
    return UserResponse.from_principal(user)


@router.put("/user/{user_id}", response_model=UserResponse)
def update_user(
    request: Request,
    user_id: int,
    payload: dict[str, Any] = Body(...),
    admin: SessionClaims = Depends(require_admin),
) -> UserResponse:
    """Replace a user's profile fields. Password is re-hashed only when supplied."""
    registration: RegistrationService = request.app.state.registration
    user = registration.update_user(user_id, payload)
    return UserResponse.from_principal(user)


@router.delete("/user/{user_id}", response_model=MessageResponse)
def delete_user(
    request: Request,
    user_id: int,
    admin: SessionClaims = Depends(require_admin),
) -> MessageResponse:
    user_store: UserStore = request.app.state.user_store
    if not user_store.delete(user_id):
        raise NotFoundError("User not found.")
    return MessageResponse(message="Account was deleted successfully.")

"""
api/routes/v1/admins.py -- Registration, login and management of admin principals.

Routes:
  POST   /api/v1/adminaccount/register   -- create an admin (gated by secretCode)
  POST   /api/v1/adminaccount/login      -- password login; returns a bearer token
  GET    /api/v1/adminaccount/auth       -- identity carried by the caller's admin token
  GET    /api/v1/adminaccount            -- list/search admins (admin only)
  GET    /api/v1/adminaccount/{id}       -- fetch one admin (admin only)
  PUT    /api/v1/adminaccount/{id}       -- update an admin (admin only, secretCode required)
  DELETE /api/v1/adminaccount/{id}       -- delete an admin (admin only)

Admin tokens and user tokens are not interchangeable: every guarded route here
depends on require_admin, which rejects tokens whose principal_type is "user".
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Request, Response

from api.models import AdminAuthResponse, AdminIdentity, AdminLoginResponse, AdminResponse, MessageResponse
from auth.authentication import AuthenticationService
from auth.dependencies import require_admin
from auth.errors import NotFoundError
from auth.models import SessionClaims
from auth.registration import RegistrationService
from auth.store import AdminStore

router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/adminaccount/register", response_model=AdminResponse, status_code=201)
def register_admin(request: Request, payload: dict[str, Any] = Body(...)) -> AdminResponse:
    """Create an admin. Requires the configured registration code as secretCode."""
    registration: RegistrationService = request.app.state.registration
    admin = registration.register_admin(payload)
    return AdminResponse.from_principal(admin)


@router.post("/adminaccount/login", response_model=AdminLoginResponse)
def login_admin(request: Request, response: Response, payload: dict[str, Any] = Body(...)) -> AdminLoginResponse:
    authentication: AuthenticationService = request.app.state.authentication
    result = authentication.login_admin(payload)
    response.headers["Cache-Control"] = "no-store"
    return AdminLoginResponse(access_token=result.token, adminuser=AdminIdentity.from_claims(result.claims))


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/adminaccount/auth", response_model=AdminAuthResponse)
async def admin_identity(claims: SessionClaims = Depends(require_admin)) -> AdminAuthResponse:
    return AdminAuthResponse(adminuser=AdminIdentity.from_claims(claims))


@router.get("/adminaccount", response_model=list[AdminResponse])
def list_admins(
    request: Request,
    search: Optional[str] = None,
    admin: SessionClaims = Depends(require_admin),
) -> list[AdminResponse]:
    admin_store: AdminStore = request.app.state.admin_store
    return [AdminResponse.from_principal(a) for a in admin_store.list_all(search)]


@router.get("/adminaccount/{admin_pk}", response_model=AdminResponse)
def get_admin(
    request: Request,
    admin_pk: int,
    admin: SessionClaims = Depends(require_admin),
) -> AdminResponse:
    admin_store: AdminStore = request.app.state.admin_store
    record = admin_store.find_by_id(admin_pk)
    if record is None:
        raise NotFoundError("Admin not found.")
    return AdminResponse.from_principal(record)


@router.put("/adminaccount/{admin_pk}", response_model=AdminResponse)
def update_admin(
    request: Request,
    admin_pk: int,
    payload: dict[str, Any] = Body(...),
    admin: SessionClaims = Depends(require_admin),
) -> AdminResponse:
    """Replace an admin's details. The registration code must be presented again."""
    registration: RegistrationService = request.app.state.registration
    record = registration.update_admin(admin_pk, payload)
    return AdminResponse.from_principal(record)


@router.delete("/adminaccount/{admin_pk}", response_model=MessageResponse)
def delete_admin(
    request: Request,
    admin_pk: int,
    admin: SessionClaims = Depends(require_admin),
) -> MessageResponse:
    admin_store: AdminStore = request.app.state.admin_store
    if not admin_store.delete(admin_pk):
        raise NotFoundError("Admin not found.")
    return MessageResponse(message="Account was deleted successfully.")

"""
api/routes/v1/accounts.py -- Contact directory CRUD.

Routes (all admin only):
  POST   /api/v1/account          -- create an account record
  GET    /api/v1/account          -- list/search (?search=)
  GET    /api/v1/account/{id}     -- fetch one
  PUT    /api/v1/account/{id}     -- replace fields
  DELETE /api/v1/account/{id}     -- delete

Bodies are validated by FastAPI against AccountPayload; failures surface as
400 {"errors": [...]} through the RequestValidationError handler in api/main.py.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request

from accounts.models import Account
from accounts.store import AccountStore
from api.models import AccountPayload, AccountResponse, MessageResponse
from auth.dependencies import require_admin
from auth.errors import NotFoundError
from auth.models import SessionClaims

router = APIRouter()


@router.post("/account", response_model=AccountResponse, status_code=201)
def create_account(
    request: Request,
    body: AccountPayload,
    admin: SessionClaims = Depends(require_admin),
) -> AccountResponse:
    store: AccountStore = request.app.state.account_store
    account_id = store.create(
        Account(
            first_name=body.first_name,
            last_name=body.last_name,
            email=body.email,
            phone_no=body.phone_no,
            user_type=body.user_type,
        )
    )
    return AccountResponse.from_account(_get_or_404(store, account_id))


@router.get("/account", response_model=list[AccountResponse])
def list_accounts(
    request: Request,
    search: Optional[str] = None,
    admin: SessionClaims = Depends(require_admin),
) -> list[AccountResponse]:
    store: AccountStore = request.app.state.account_store
    return [AccountResponse.from_account(a) for a in store.list_accounts(search)]


@router.get("/account/{account_id}", response_model=AccountResponse)
def get_account(
    request: Request,
    account_id: int,
    admin: SessionClaims = Depends(require_admin),
) -> AccountResponse:
    store: AccountStore = request.app.state.account_store
    return AccountResponse.from_account(_get_or_404(store, account_id))


@router.put("/account/{account_id}", response_model=AccountResponse)
def update_account(
    request: Request,
    account_id: int,
    body: AccountPayload,
    admin: SessionClaims = Depends(require_admin),
) -> AccountResponse:
    store: AccountStore = request.app.state.account_store
    updated = store.update(
        account_id,
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        phone_no=body.phone_no,
        user_type=body.user_type,
    )
    if not updated:
        raise NotFoundError("Account not found.")
    return AccountResponse.from_account(_get_or_404(store, account_id))


@router.delete("/account/{account_id}", response_model=MessageResponse)
def delete_account(
    request: Request,
    account_id: int,
    admin: SessionClaims = Depends(require_admin),
) -> MessageResponse:
    store: AccountStore = request.app.state.account_store
    if not store.delete(account_id):
        raise NotFoundError("Account not found.")
    return MessageResponse(message="Account was deleted successfully.")


def _get_or_404(store: AccountStore, account_id: int) -> Account:
    account = store.get(account_id)
    if account is None:
        raise NotFoundError("Account not found.")
    return account

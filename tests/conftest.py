"""
tests/conftest.py -- Shared test fixtures for BikeHub Accounts.

This module provides:
  - unit fixtures: fresh in-memory stores, a shared PasswordHasher, a
    TokenCodec and the two services, rebuilt per test
  - api_client: TestClient wired to isolated stores with a registered admin
    and that admin's bearer token

Design: Named shared-memory SQLite URIs (not plain :memory:) are used for the
API client because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. Unit fixtures stay on plain :memory: -- they run on one thread.

APP_SECRET must be set before api.main is imported: the CORS middleware reads
Settings at import time and Settings refuses to load without a secret.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set APP_SECRET before any api/core import.
os.environ.setdefault("APP_SECRET", "bikehub-test-secret-0123456789abcdef")

import pytest
from fastapi.testclient import TestClient

from accounts.store import AccountStore
from api.main import app
from auth.authentication import AuthenticationService
from auth.passwords import PasswordHasher
from auth.registration import RegistrationService
from auth.store import AdminStore, UserStore, create_db_engine
from auth.tokens import TokenCodec

TEST_SECRET = os.environ["APP_SECRET"]
REGISTRATION_CODE = "BikeHub2023"

ADMIN_EMAIL = "root@bikehub.sg"
ADMIN_PASSWORD = "rootpass123"


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    """One hasher for the whole run -- building one costs a bcrypt round."""
    return PasswordHasher()


@pytest.fixture
def engine():
    eng = create_db_engine("sqlite:///:memory:")
    yield eng
    eng.dispose()


@pytest.fixture
def user_store(engine) -> UserStore:
    return UserStore(engine)


@pytest.fixture
def admin_store(engine) -> AdminStore:
    return AdminStore(engine)


@pytest.fixture
def account_store(engine) -> AccountStore:
    return AccountStore(engine)


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(secret_key=TEST_SECRET)


@pytest.fixture
def registration(user_store, admin_store, hasher) -> RegistrationService:
    return RegistrationService(user_store, admin_store, hasher, registration_code=REGISTRATION_CODE)


@pytest.fixture
def authentication(user_store, admin_store, hasher, codec) -> AuthenticationService:
    return AuthenticationService(user_store, admin_store, hasher, codec)


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(engine, hasher: PasswordHasher):
    """Return an async context manager that replaces the real lifespan.

    Wires test stores and services into app.state so TestClient routes never
    touch Settings.database_url.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.engine = engine
        app.state.user_store = UserStore(engine)
        app.state.admin_store = AdminStore(engine)
        app.state.account_store = AccountStore(engine)
        app.state.token_codec = TokenCodec(secret_key=TEST_SECRET)
        app.state.registration = RegistrationService(
            app.state.user_store,
            app.state.admin_store,
            hasher,
            registration_code=REGISTRATION_CODE,
        )
        app.state.authentication = AuthenticationService(
            app.state.user_store,
            app.state.admin_store,
            hasher,
            app.state.token_codec,
        )
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request, hasher) -> Generator[tuple[TestClient, str], None, None]:
    """Yield (client, admin_token) for API integration tests.

    Each test module gets its own named in-memory database. An admin is
    registered and logged in through the real endpoints before the first test
    runs, so the token is exactly what a client would hold.
    """
    suffix = request.module.__name__.rsplit(".", 1)[-1]
    engine = create_db_engine(f"sqlite:///file:test_bikehub_{suffix}?mode=memory&cache=shared&uri=true")
    app.router.lifespan_context = _patch_lifespan(engine, hasher)

    with TestClient(app, raise_server_exceptions=True) as client:
        resp = client.post(
            "/api/v1/adminaccount/register",
            json={
                "secretCode": REGISTRATION_CODE,
                "adminID": "000001A",
                "name": "Root Admin",
                "email": ADMIN_EMAIL,
                "role": "Platform owner",
                "password": ADMIN_PASSWORD,
            },
        )
        assert resp.status_code == 201, resp.text
        resp = client.post("/api/v1/adminaccount/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
        assert resp.status_code == 200, resp.text
        yield client, resp.json()["accessToken"]

    engine.dispose()

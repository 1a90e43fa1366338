"""
tests/test_api_routes.py -- Integration tests for user and admin routes.

These tests exercise the full stack: FastAPI routing -> token guard -> services
-> stores -> response model serialization. Unit tests of the services miss the
exception handlers and the wire format, so the HTTP contract is checked here.

Coverage:
  - User flow: register 201, login 200, /user/auth 200
  - Admin flow: register with secretCode, login, /adminaccount/auth
  - Error envelopes: 400 {"errors": [...]}, 401/404/409 {"message": ...}
  - Guard: missing, forged and wrong-variant tokens all get the same 401;
    accepted claims land on request.state.principal
  - Blocking handlers are plain def (thread pool), not async def
  - Admin-only management of users and admins

Fixtures used (from conftest.py):
  - api_client: (client, admin_token) -- TestClient with a registered admin
    (email root@bikehub.sg) and that admin's bearer token.
"""

from __future__ import annotations

import inspect

import pytest
from fastapi.routing import APIRoute
from fastapi.testclient import TestClient
from starlette.requests import Request

from api.main import app
from auth.dependencies import bearer_token, get_session_claims, require_admin
from auth.errors import AuthTokenError
from auth.models import ADMIN

ApiClient = tuple[TestClient, str]


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _request_with_headers(headers: list[tuple[bytes, bytes]]) -> Request:
    """Bare Starlette request bound to the app, for calling guards directly."""
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers, "app": app})


def _register_user(client: TestClient, email: str, password: str = "password123", **overrides) -> dict:
    body = {
        "firstName": "Alice",
        "lastName": "Tan",
        "email": email,
        "phoneNo": "91234567",
        "password": password,
    }
    body.update(overrides)
    resp = client.post("/api/v1/user/register", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _login_user(client: TestClient, email: str, password: str = "password123") -> str:
    resp = client.post("/api/v1/user/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["accessToken"]


class TestUserFlow:
    """Register, log in and read back the session identity as a user."""

    def test_register_returns_record_without_hash(self, api_client: ApiClient) -> None:
        """POST /user/register returns 201 and never serializes the password hash."""
        client, _ = api_client
        data = _register_user(client, "  Reg.User@BikeHub.sg ")
        assert data["email"] == "reg.user@bikehub.sg"
        assert data["userType"] == "user"
        assert {"id", "firstName", "lastName", "phoneNo", "createdAt", "updatedAt"} <= set(data)
        assert not any("password" in key.lower() for key in data)

    def test_login_returns_token_and_identity(self, api_client: ApiClient) -> None:
        """POST /user/login returns accessToken plus the user identity, uncached."""
        client, _ = api_client
        _register_user(client, "login.user@bikehub.sg")
        resp = client.post("/api/v1/user/login", json={"email": "login.user@bikehub.sg", "password": "password123"})
        assert resp.status_code == 200
        assert resp.headers["Cache-Control"] == "no-store"
        data = resp.json()
        assert data["accessToken"].count(".") == 2
        assert data["user"]["email"] == "login.user@bikehub.sg"
        assert data["user"]["firstName"] == "Alice"

    def test_auth_returns_identity_from_token(self, api_client: ApiClient) -> None:
        """GET /user/auth with a user token echoes the token's identity."""
        client, _ = api_client
        created = _register_user(client, "auth.user@bikehub.sg", phoneNo="+65 81234567")
        token = _login_user(client, "auth.user@bikehub.sg")
        resp = client.get("/api/v1/user/auth", headers=_auth(token))
        assert resp.status_code == 200
        user = resp.json()["user"]
        assert user["id"] == created["id"]
        assert user["phoneNo"] == "+65 81234567"


class TestErrorEnvelopes:
    """Every failure uses either {"errors": [...]} or {"message": ...}."""

    def test_duplicate_registration_is_409(self, api_client: ApiClient) -> None:
        """Registering an email that differs only in case returns 409."""
        client, _ = api_client
        _register_user(client, "dupe@bikehub.sg")
        resp = client.post(
            "/api/v1/user/register",
            json={
                "firstName": "Alice",
                "lastName": "Tan",
                "email": "DUPE@bikehub.sg",
                "phoneNo": "91234567",
                "password": "password123",
            },
        )
        assert resp.status_code == 409
        assert resp.json() == {"message": "Email already exists."}

    def test_invalid_registration_is_400_with_all_errors(self, api_client: ApiClient) -> None:
        """Validation failures list one entry per bad field."""
        client, _ = api_client
        resp = client.post("/api/v1/user/register", json={"firstName": "A", "email": "nope", "password": "x"})
        assert resp.status_code == 400
        errors = resp.json()["errors"]
        fields = {e.split(":", 1)[0] for e in errors}
        assert fields == {"firstName", "lastName", "email", "phoneNo", "password"}

    def test_non_json_body_is_400(self, api_client: ApiClient) -> None:
        """A body that is not JSON is rejected before reaching the service."""
        client, _ = api_client
        resp = client.post(
            "/api/v1/user/register",
            content=b"firstName=Alice",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert "errors" in resp.json()

    def test_login_failures_are_indistinguishable(self, api_client: ApiClient) -> None:
        """Wrong password and unknown email give identical status and body."""
        client, _ = api_client
        _register_user(client, "careful@bikehub.sg")
        wrong_password = client.post(
            "/api/v1/user/login", json={"email": "careful@bikehub.sg", "password": "wrongpass1"}
        )
        unknown_email = client.post("/api/v1/user/login", json={"email": "ghost@bikehub.sg", "password": "password123"})
        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json() == {"message": "Email or password is not correct."}

    def test_login_missing_password_is_400(self, api_client: ApiClient) -> None:
        client, _ = api_client
        resp = client.post("/api/v1/user/login", json={"email": "careful@bikehub.sg"})
        assert resp.status_code == 400
        assert resp.json()["errors"] == ["password: Field required"]


class TestTokenGuard:
    """Missing, forged and wrong-variant tokens are rejected alike."""

    def test_missing_token_is_401(self, api_client: ApiClient) -> None:
        client, _ = api_client
        resp = client.get("/api/v1/user/auth")
        assert resp.status_code == 401
        assert resp.json() == {"message": "Authentication required."}
        assert resp.headers["WWW-Authenticate"] == "Bearer"

    def test_forged_token_is_401(self, api_client: ApiClient) -> None:
        client, _ = api_client
        resp = client.get("/api/v1/user/auth", headers=_auth("not.a.token"))
        assert resp.status_code == 401
        assert resp.json() == {"message": "Authentication required."}

    def test_non_bearer_scheme_is_401(self, api_client: ApiClient) -> None:
        client, admin_token = api_client
        resp = client.get("/api/v1/adminaccount/auth", headers={"Authorization": f"Basic {admin_token}"})
        assert resp.status_code == 401

    def test_user_token_cannot_reach_admin_routes(self, api_client: ApiClient) -> None:
        """A valid user token on an admin route gets the same 401 as a forged one."""
        client, _ = api_client
        _register_user(client, "sneaky@bikehub.sg")
        user_token = _login_user(client, "sneaky@bikehub.sg")
        for path in ("/api/v1/adminaccount/auth", "/api/v1/user", "/api/v1/adminaccount", "/api/v1/account"):
            resp = client.get(path, headers=_auth(user_token))
            assert resp.status_code == 401, path
            assert resp.json() == {"message": "Authentication required."}

    def test_admin_token_cannot_reach_user_auth(self, api_client: ApiClient) -> None:
        client, admin_token = api_client
        resp = client.get("/api/v1/user/auth", headers=_auth(admin_token))
        assert resp.status_code == 401

    def test_guard_attaches_claims_to_request_state(self, api_client: ApiClient) -> None:
        """require_admin leaves the decoded claims on request.state.principal for later code."""
        _, admin_token = api_client
        request = _request_with_headers([(b"authorization", f"Bearer {admin_token}".encode("ascii"))])

        claims = require_admin(request)

        assert request.state.principal is claims
        assert claims == app.state.token_codec.verify(admin_token)
        assert claims.principal_type == ADMIN
        assert claims.email == "root@bikehub.sg"
        assert claims.profile["adminID"] == "000001A"

    def test_rejected_token_leaves_request_state_empty(self, api_client: ApiClient) -> None:
        request = _request_with_headers([(b"authorization", b"Bearer not.a.token")])
        with pytest.raises(AuthTokenError):
            get_session_claims(request)
        assert not hasattr(request.state, "principal")

    @pytest.mark.parametrize("scheme", ["bearer", "BEARER", "BeArEr"])
    def test_scheme_name_is_case_insensitive(self, api_client: ApiClient, scheme: str) -> None:
        client, admin_token = api_client
        resp = client.get("/api/v1/adminaccount/auth", headers={"Authorization": f"{scheme} {admin_token}"})
        assert resp.status_code == 200, resp.text

    @pytest.mark.parametrize("header", ["", "Bearer", "Bearer   ", "Token abc", "Bearerabc"])
    def test_bearer_token_extraction_rejects_other_headers(self, header: str) -> None:
        request = _request_with_headers([(b"authorization", header.encode("ascii"))])
        assert bearer_token(request) is None


class TestHandlerConcurrency:
    """Handlers that touch the store or bcrypt must run in FastAPI's thread pool."""

    # Identity routes read only the already-verified token.
    TOKEN_ONLY_ENDPOINTS = {"user_identity", "admin_identity", "health"}

    def test_blocking_handlers_are_sync(self) -> None:
        """Plain def handlers are dispatched to the thread pool; async def ones run on the loop."""
        checked = 0
        for route in app.routes:
            if not isinstance(route, APIRoute) or route.endpoint.__name__ in self.TOKEN_ONLY_ENDPOINTS:
                continue
            assert not inspect.iscoroutinefunction(route.endpoint), route.path
            checked += 1
        assert checked == 17


class TestAdminFlow:
    """Admin sign-up gate, login and identity."""

    def test_register_admin_scenario(self, api_client: ApiClient) -> None:
        """Registering with the right secretCode stores the admin; nothing secret is returned."""
        client, _ = api_client
        resp = client.post(
            "/api/v1/adminaccount/register",
            json={
                "secretCode": "BikeHub2023",
                "adminID": "123456A",
                "name": "Ops Lead",
                "email": "Ops@BikeHub.sg",
                "role": "Fleet operations",
                "password": "adminpass1",
            },
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["adminID"] == "123456A"
        assert data["email"] == "ops@bikehub.sg"
        assert "secretCode" not in data
        assert not any("password" in key.lower() for key in data)

    def test_register_admin_wrong_secret_code(self, api_client: ApiClient) -> None:
        client, _ = api_client
        resp = client.post(
            "/api/v1/adminaccount/register",
            json={
                "secretCode": "guess",
                "adminID": "222222B",
                "name": "Intruder",
                "email": "intruder@bikehub.sg",
                "role": "None",
                "password": "adminpass1",
            },
        )
        assert resp.status_code == 400
        assert "secretCode: Invalid secret code" in resp.json()["errors"]

    def test_admin_login_and_identity(self, api_client: ApiClient) -> None:
        client, admin_token = api_client
        resp = client.get("/api/v1/adminaccount/auth", headers=_auth(admin_token))
        assert resp.status_code == 200
        admin = resp.json()["adminuser"]
        assert admin["email"] == "root@bikehub.sg"
        assert admin["adminID"] == "000001A"
        assert admin["role"] == "Platform owner"

    def test_admin_login_response_shape(self, api_client: ApiClient) -> None:
        client, _ = api_client
        resp = client.post("/api/v1/adminaccount/login", json={"email": "ROOT@bikehub.sg", "password": "rootpass123"})
        assert resp.status_code == 200
        assert set(resp.json()) == {"accessToken", "adminuser"}

    def test_user_credentials_fail_admin_login(self, api_client: ApiClient) -> None:
        client, _ = api_client
        _register_user(client, "rider@bikehub.sg")
        resp = client.post("/api/v1/adminaccount/login", json={"email": "rider@bikehub.sg", "password": "password123"})
        assert resp.status_code == 401


class TestManagementRoutes:
    """Admin-only listing, lookup, update and deletion of principals."""

    def test_list_and_search_users(self, api_client: ApiClient) -> None:
        client, admin_token = api_client
        _register_user(client, "searchable@bikehub.sg", firstName="Zelda")
        resp = client.get("/api/v1/user", params={"search": "Zelda"}, headers=_auth(admin_token))
        assert resp.status_code == 200
        emails = [u["email"] for u in resp.json()]
        assert emails == ["searchable@bikehub.sg"]

    def test_get_update_delete_user(self, api_client: ApiClient) -> None:
        client, admin_token = api_client
        created = _register_user(client, "managed@bikehub.sg")
        user_url = f"/api/v1/user/{created['id']}"

        resp = client.get(user_url, headers=_auth(admin_token))
        assert resp.status_code == 200
        assert resp.json()["email"] == "managed@bikehub.sg"

        resp = client.put(
            user_url,
            json={"firstName": "Managed", "lastName": "Rider", "email": "managed@bikehub.sg", "phoneNo": "61234567"},
            headers=_auth(admin_token),
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["firstName"] == "Managed"
        # Password untouched by an update that omits it.
        _login_user(client, "managed@bikehub.sg")

        resp = client.delete(user_url, headers=_auth(admin_token))
        assert resp.status_code == 200
        assert resp.json() == {"message": "Account was deleted successfully."}
        assert client.get(user_url, headers=_auth(admin_token)).status_code == 404

    def test_missing_user_is_404(self, api_client: ApiClient) -> None:
        client, admin_token = api_client
        resp = client.get("/api/v1/user/99999", headers=_auth(admin_token))
        assert resp.status_code == 404
        assert resp.json() == {"message": "User not found."}

    def test_list_admins_hides_secrets(self, api_client: ApiClient) -> None:
        client, admin_token = api_client
        resp = client.get("/api/v1/adminaccount", headers=_auth(admin_token))
        assert resp.status_code == 200
        for admin in resp.json():
            assert "hashedPassword" not in admin
            assert "hashedSecretCode" not in admin

    def test_update_and_delete_admin(self, api_client: ApiClient) -> None:
        client, admin_token = api_client
        body = {
            "secretCode": "BikeHub2023",
            "adminID": "333333C",
            "name": "Temp Admin",
            "email": "temp.admin@bikehub.sg",
            "role": "Contractor",
            "password": "adminpass1",
        }
        created = client.post("/api/v1/adminaccount/register", json=body).json()
        admin_url = f"/api/v1/adminaccount/{created['id']}"

        resp = client.put(admin_url, json={**body, "role": "Auditor"}, headers=_auth(admin_token))
        assert resp.status_code == 200, resp.text
        assert resp.json()["role"] == "Auditor"

        resp = client.delete(admin_url, headers=_auth(admin_token))
        assert resp.status_code == 200
        assert client.get(admin_url, headers=_auth(admin_token)).status_code == 404

"""
tests/test_accounts.py -- Contact directory: AccountStore and /api/v1/account routes.

Covers:
  - store CRUD and search against an in-memory engine
  - duplicate emails are allowed (contacts are not login identities)
  - route validation (400 with every field error), admin guard, 404s
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from accounts.models import Account


def _account(**overrides) -> Account:
    fields = {
        "first_name": "Charlie",
        "last_name": "Ng",
        "email": "charlie@bikehub.sg",
        "phone_no": "91234567",
        "user_type": "partner",
    }
    fields.update(overrides)
    return Account(**fields)


def _body(**overrides) -> dict:
    body = {
        "firstName": "Charlie",
        "lastName": "Nguyen",
        "email": "charlie@bikehub.sg",
        "phoneNo": "91234567",
        "userType": "partner",
    }
    body.update(overrides)
    return body


# ---------------------------------------------------------------------------
# AccountStore
# ---------------------------------------------------------------------------


def test_create_and_get(account_store):
    account_id = account_store.create(_account())
    account = account_store.get(account_id)
    assert account.id == account_id
    assert account.first_name == "Charlie"
    assert account.created_at


def test_get_missing(account_store):
    assert account_store.get(404) is None


def test_duplicate_email_allowed(account_store):
    account_store.create(_account())
    account_store.create(_account(first_name="Other"))
    assert len(account_store.list_accounts()) == 2


def test_list_accounts_search(account_store):
    account_store.create(_account())
    account_store.create(_account(first_name="Dana", email="dana@bikehub.sg", user_type="staff"))
    assert [a.first_name for a in account_store.list_accounts("staff")] == ["Dana"]
    assert [a.first_name for a in account_store.list_accounts()] == ["Dana", "Charlie"]


def test_update_and_delete(account_store):
    account_id = account_store.create(_account())
    assert account_store.update(account_id, user_type="staff") is True
    assert account_store.get(account_id).user_type == "staff"
    assert account_store.delete(account_id) is True
    assert account_store.delete(account_id) is False
    assert account_store.update(account_id, user_type="staff") is False


def test_list_accounts_search_is_literal(account_store):
    account_store.create(_account())
    account_store.create(_account(first_name="Dana", user_type="staff_ops"))
    assert account_store.list_accounts("%") == []
    assert [a.first_name for a in account_store.list_accounts("f_o")] == ["Dana"]
    assert account_store.list_accounts("f%o") == []


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


class TestAccountRoutes:
    """CRUD over /api/v1/account, admin token required."""

    def test_requires_admin_token(self, api_client: tuple[TestClient, str]) -> None:
        client, _ = api_client
        assert client.get("/api/v1/account").status_code == 401
        assert client.post("/api/v1/account", json=_body()).status_code == 401

    def test_crud_round_trip(self, api_client: tuple[TestClient, str]) -> None:
        client, token = api_client
        headers = {"Authorization": f"Bearer {token}"}

        resp = client.post("/api/v1/account", json=_body(email=" Charlie@BikeHub.sg "), headers=headers)
        assert resp.status_code == 201, resp.text
        created = resp.json()
        assert created["email"] == "charlie@bikehub.sg"
        assert created["userType"] == "partner"
        url = f"/api/v1/account/{created['id']}"

        assert client.get(url, headers=headers).json()["lastName"] == "Nguyen"

        resp = client.put(url, json=_body(userType="staff"), headers=headers)
        assert resp.status_code == 200
        assert resp.json()["userType"] == "staff"

        listed = client.get("/api/v1/account", params={"search": "staff"}, headers=headers).json()
        assert [a["id"] for a in listed] == [created["id"]]

        resp = client.delete(url, headers=headers)
        assert resp.json() == {"message": "Account was deleted successfully."}
        assert client.get(url, headers=headers).status_code == 404

    def test_validation_errors(self, api_client: tuple[TestClient, str]) -> None:
        client, token = api_client
        resp = client.post(
            "/api/v1/account",
            json={"firstName": "Al", "email": "broken", "phoneNo": "123"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert resp.status_code == 400
        fields = {e.split(":", 1)[0] for e in resp.json()["errors"]}
        assert fields == {"firstName", "lastName", "email", "phoneNo", "userType"}
        assert "phoneNo: Phone number is not valid" in resp.json()["errors"]

    def test_missing_account_is_404(self, api_client: tuple[TestClient, str]) -> None:
        client, token = api_client
        headers = {"Authorization": f"Bearer {token}"}
        resp = client.put("/api/v1/account/99999", json=_body(), headers=headers)
        assert resp.status_code == 404
        assert resp.json() == {"message": "Account not found."}


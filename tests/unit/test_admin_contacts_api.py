"""
Unit tests for the admin contact-list endpoints.

Runs against a migrated temporary SQLite DB through TestClient with
dependency overrides (see tests/conftest.py).
"""

from datetime import timedelta

from fastapi.testclient import TestClient

from cmsmail.adapters.sqlite_db import SQLiteContactRepo
from cmsmail.api.auth_utils import sign_token
from cmsmail.components.contacts import Contact
from cmsmail.core.errors import GENERIC_ERROR_MESSAGE

BASE = "/api/admin/contacts"


def _payload(key: str, default: bool = False, fa: str | None = None) -> dict:
    return {
        "recipient_en": key,
        "recipient_fa": fa or f"{key}-fa",
        "email": f"{key.lower()}@example.com",
        "is_default": default,
    }


class TestAdminAuth:
    def test_requires_token(self, client: TestClient) -> None:
        assert client.get(BASE).status_code == 401

    def test_rejects_invalid_token(self, client: TestClient) -> None:
        response = client.get(BASE, headers={"Authorization": "Bearer junk"})
        assert response.status_code == 401

    def test_rejects_non_admin_token(self, client: TestClient) -> None:
        token = sign_token({"sub": "visitor", "role": "viewer"}, timedelta(minutes=5))
        response = client.get(BASE, headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 403


class TestListAndAdd:
    def test_empty_list(self, client: TestClient, admin_headers: dict) -> None:
        response = client.get(BASE, headers=admin_headers)
        assert response.status_code == 200
        assert response.json() == {"items": [], "total": 0}

    def test_add_contact(self, client: TestClient, admin_headers: dict, test_db_path: str) -> None:
        response = client.post(BASE, json=_payload("Sales"), headers=admin_headers)

        assert response.status_code == 201
        assert response.json()["recipient_en"] == "Sales"
        assert SQLiteContactRepo(test_db_path).get("Sales") is not None

    def test_list_is_ordered(self, client: TestClient, admin_headers: dict) -> None:
        client.post(BASE, json=_payload("Zeta"), headers=admin_headers)
        client.post(BASE, json=_payload("Alpha"), headers=admin_headers)

        data = client.get(BASE, headers=admin_headers).json()

        assert [c["recipient_en"] for c in data["items"]] == ["Alpha", "Zeta"]
        assert data["total"] == 2

    def test_duplicate_is_conflict(self, client: TestClient, admin_headers: dict) -> None:
        client.post(BASE, json=_payload("Sales"), headers=admin_headers)

        response = client.post(BASE, json=_payload("Sales", fa="other"), headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["detail"][0]["code"] == "DUPLICATE_KEY"

    def test_duplicate_default_does_not_clear_existing(
        self, client: TestClient, admin_headers: dict, test_db_path: str
    ) -> None:
        client.post(BASE, json=_payload("Sales", default=True), headers=admin_headers)
        client.post(BASE, json=_payload("Support"), headers=admin_headers)

        # A rejected duplicate must not touch the current default
        client.post(BASE, json=_payload("Support", default=True), headers=admin_headers)

        sales = SQLiteContactRepo(test_db_path).get("Sales")
        assert sales is not None and sales.is_default

    def test_invalid_email(self, client: TestClient, admin_headers: dict) -> None:
        payload = _payload("Sales")
        payload["email"] = "nope"

        response = client.post(BASE, json=payload, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["detail"][0]["field"] == "email"


class TestUpdateField:
    def test_update_email(self, client: TestClient, admin_headers: dict) -> None:
        client.post(BASE, json=_payload("Sales"), headers=admin_headers)

        response = client.patch(
            f"{BASE}/Sales", json={"field": "email", "value": "new@example.com"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["email"] == "new@example.com"

    def test_rename_key(self, client: TestClient, admin_headers: dict) -> None:
        client.post(BASE, json=_payload("Sales"), headers=admin_headers)

        response = client.patch(
            f"{BASE}/Sales", json={"field": "recipient_en", "value": "Sales Team"}, headers=admin_headers
        )

        assert response.status_code == 200
        keys = [c["recipient_en"] for c in client.get(BASE, headers=admin_headers).json()["items"]]
        assert keys == ["Sales Team"]

    def test_not_found(self, client: TestClient, admin_headers: dict) -> None:
        response = client.patch(
            f"{BASE}/Ghost", json={"field": "email", "value": "a@example.com"}, headers=admin_headers
        )
        assert response.status_code == 404

    def test_recipient_fa_conflict(self, client: TestClient, admin_headers: dict) -> None:
        client.post(BASE, json=_payload("Sales", fa="فروش"), headers=admin_headers)
        client.post(BASE, json=_payload("Support", fa="پشتیبانی"), headers=admin_headers)

        response = client.patch(
            f"{BASE}/Sales", json={"field": "recipient_fa", "value": "پشتیبانی"}, headers=admin_headers
        )

        assert response.status_code == 409

    def test_field_not_editable(self, client: TestClient, admin_headers: dict) -> None:
        client.post(BASE, json=_payload("Sales"), headers=admin_headers)

        response = client.patch(
            f"{BASE}/Sales", json={"field": "is_default", "value": "1"}, headers=admin_headers
        )

        assert response.status_code == 400
        assert response.json()["detail"][0]["code"] == "INVALID_FIELD"


class TestDefault:
    def test_check_moves_default(
        self, client: TestClient, admin_headers: dict, test_db_path: str
    ) -> None:
        client.post(BASE, json=_payload("Sales", default=True), headers=admin_headers)
        client.post(BASE, json=_payload("Support"), headers=admin_headers)

        response = client.put(f"{BASE}/Support/default", json={"checked": True}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["contact"]["is_default"] is True
        defaults = [c.recipient_en for c in SQLiteContactRepo(test_db_path).list_all() if c.is_default]
        assert defaults == ["Support"]

    def test_unknown_key_is_noop(self, client: TestClient, admin_headers: dict) -> None:
        response = client.put(f"{BASE}/Ghost/default", json={"checked": True}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True, "contact": None}


class TestErase:
    def _seed(self, test_db_path: str) -> None:
        SQLiteContactRepo(test_db_path).insert(Contact("Sales", "فروش", "sales@example.com"))

    def test_begin_returns_ticket(
        self, client: TestClient, admin_headers: dict, test_db_path: str
    ) -> None:
        self._seed(test_db_path)

        response = client.post(f"{BASE}/Sales/erase", json={"language": "fa"}, headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "confirm_pending"
        assert "فروش" in data["question"]
        assert data["ticket"]
        # Nothing is deleted until the prompt is answered
        assert SQLiteContactRepo(test_db_path).get("Sales") is not None

    def test_ok_deletes(self, client: TestClient, admin_headers: dict, test_db_path: str) -> None:
        self._seed(test_db_path)
        ticket = client.post(f"{BASE}/Sales/erase", headers=admin_headers).json()["ticket"]

        response = client.post(
            f"{BASE}/erase/resolve", json={"ticket": ticket, "button": "ok"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json() == {"state": "idle", "deleted": True}
        assert SQLiteContactRepo(test_db_path).get("Sales") is None

    def test_cancel_keeps_row(
        self, client: TestClient, admin_headers: dict, test_db_path: str
    ) -> None:
        self._seed(test_db_path)
        ticket = client.post(f"{BASE}/Sales/erase", headers=admin_headers).json()["ticket"]

        response = client.post(
            f"{BASE}/erase/resolve", json={"ticket": ticket, "button": "cancel"}, headers=admin_headers
        )

        assert response.json() == {"state": "idle", "deleted": False}
        assert SQLiteContactRepo(test_db_path).get("Sales") is not None

    def test_invalid_ticket(self, client: TestClient, admin_headers: dict) -> None:
        response = client.post(
            f"{BASE}/erase/resolve", json={"ticket": "forged", "button": "ok"}, headers=admin_headers
        )

        assert response.status_code == 400
        assert response.json()["detail"][0]["code"] == "INVALID_TICKET"


class TestCommitFailure:
    def test_add_is_rolled_back(
        self, failing_commit: TestClient, admin_headers: dict, test_db_path: str
    ) -> None:
        response = failing_commit.post(BASE, json=_payload("Sales"), headers=admin_headers)

        assert response.status_code == 500
        assert response.json()["detail"][0]["code"] == "DATASTORE_ERROR"
        assert response.json()["detail"][0]["message"] == GENERIC_ERROR_MESSAGE
        assert SQLiteContactRepo(test_db_path).get("Sales") is None

    def test_erase_is_rolled_back(
        self, client: TestClient, failing_commit: TestClient, admin_headers: dict, test_db_path: str
    ) -> None:
        SQLiteContactRepo(test_db_path).insert(Contact("Sales", "فروش", "sales@example.com"))
        ticket = client.post(f"{BASE}/Sales/erase", headers=admin_headers).json()["ticket"]

        response = failing_commit.post(
            f"{BASE}/erase/resolve", json={"ticket": ticket, "button": "ok"}, headers=admin_headers
        )

        assert response.status_code == 500
        assert SQLiteContactRepo(test_db_path).get("Sales") is not None

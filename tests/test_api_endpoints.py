"""
Tests for FastAPI endpoints.

Tests the API routes using FastAPI's TestClient against a temporary
contact database.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from identity_reconciliation.api import app
from identity_reconciliation.config import Config, set_config
from identity_reconciliation.errors import InvariantViolation, StorageFailure


@pytest.fixture
def client(global_config: Config):
    """TestClient with the global config pointed at the test database."""
    return TestClient(app)


class TestIdentifyEndpoint:
    """Tests for POST /identify."""

    def test_new_contact(self, client):
        response = client.post(
            "/identify", json={"email": "lorraine@hillvalley.edu", "phoneNumber": "123456"}
        )

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {"contact"}
        contact = body["contact"]
        assert contact["emails"] == ["lorraine@hillvalley.edu"]
        assert contact["phoneNumbers"] == ["123456"]
        assert contact["secondaryContactIds"] == []
        assert isinstance(contact["primaryContactId"], int)

    def test_second_request_adds_secondary(self, client):
        first = client.post(
            "/identify", json={"email": "lorraine@hillvalley.edu", "phoneNumber": "123456"}
        ).json()["contact"]

        second = client.post(
            "/identify", json={"email": "mcfly@hillvalley.edu", "phoneNumber": "123456"}
        ).json()["contact"]

        assert second["primaryContactId"] == first["primaryContactId"]
        assert second["emails"] == ["lorraine@hillvalley.edu", "mcfly@hillvalley.edu"]
        assert len(second["secondaryContactIds"]) == 1

    def test_merge_over_http(self, client):
        george = client.post(
            "/identify", json={"email": "george@hillvalley.edu", "phoneNumber": "919191"}
        ).json()["contact"]
        biff = client.post(
            "/identify", json={"email": "biffsucks@hillvalley.edu", "phoneNumber": "717171"}
        ).json()["contact"]

        merged = client.post(
            "/identify", json={"email": "george@hillvalley.edu", "phoneNumber": "717171"}
        ).json()["contact"]

        assert merged == {
            "primaryContactId": george["primaryContactId"],
            "emails": ["george@hillvalley.edu", "biffsucks@hillvalley.edu"],
            "phoneNumbers": ["919191", "717171"],
            "secondaryContactIds": [biff["primaryContactId"]],
        }

    def test_numeric_phone_accepted(self, client):
        response = client.post("/identify", json={"phoneNumber": 123456})

        assert response.status_code == 200
        assert response.json()["contact"]["phoneNumbers"] == ["123456"]

    def test_null_fields_rejected(self, client):
        response = client.post("/identify", json={"email": None, "phoneNumber": None})

        assert response.status_code == 400

    def test_empty_body_rejected(self, client):
        response = client.post("/identify", json={})

        assert response.status_code == 400
        assert "At least one" in response.json()["detail"]

    def test_empty_strings_rejected(self, client):
        response = client.post("/identify", json={"email": "", "phoneNumber": ""})

        assert response.status_code == 400

    def test_invalid_email_rejected(self, client):
        response = client.post("/identify", json={"email": "not-an-email"})

        assert response.status_code == 422

    def test_invalid_phone_rejected(self, client):
        response = client.post("/identify", json={"phoneNumber": "0abc"})

        assert response.status_code == 422

    def test_boolean_phone_rejected(self, client):
        response = client.post("/identify", json={"phoneNumber": True})

        assert response.status_code == 422

    @patch("identity_reconciliation.api.run_identify")
    def test_storage_failure_is_500(self, mock_identify, client):
        mock_identify.side_effect = StorageFailure("connection lost")

        response = client.post("/identify", json={"email": "a@x.io"})

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to process contact identification request"

    @patch("identity_reconciliation.api.run_identify")
    def test_invariant_violation_is_500(self, mock_identify, client):
        mock_identify.side_effect = InvariantViolation("two primaries")

        response = client.post("/identify", json={"email": "a@x.io"})

        assert response.status_code == 500

    def test_get_not_allowed(self, client):
        assert client.get("/identify").status_code == 405


class TestHealthEndpoint:
    def test_health_ok(self, client, global_config):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["db_exists"] is True
        assert body["db_path"] == global_config.db_path_str

    def test_health_degraded_without_db(self, tmp_path):
        set_config(Config(db_path=str(tmp_path / "absent.db")))
        try:
            body = TestClient(app).get("/health").json()
        finally:
            set_config(None)

        assert body["status"] == "degraded"
        assert body["db_exists"] is False


class TestDiagnosticsEndpoint:
    def test_counts_and_validation(self, client):
        client.post("/identify", json={"email": "a@x.io", "phoneNumber": "111"})
        client.post("/identify", json={"email": "b@x.io", "phoneNumber": "111"})

        body = client.get("/diagnostics").json()

        assert body["status"] == "ok"
        assert body["counts"] == {"contacts": 2, "primary": 1, "secondary": 1, "deleted": 0}
        assert body["validation"]["passed"] is True

    def test_not_initialized(self, tmp_path):
        set_config(Config(db_path=str(tmp_path / "absent.db")))
        try:
            body = TestClient(app).get("/diagnostics").json()
        finally:
            set_config(None)

        assert body["status"] == "not_initialized"


class TestUninitializedDatabase:
    """A request against a missing database fails without creating it."""

    def test_identify_leaves_no_file(self, tmp_path):
        db_path = tmp_path / "never_initialized.db"
        set_config(Config(db_path=str(db_path)))
        try:
            client = TestClient(app)
            response = client.post("/identify", json={"email": "a@x.io", "phoneNumber": "1"})
            health = client.get("/health").json()
            diagnostics = client.get("/diagnostics").json()
        finally:
            set_config(None)

        assert response.status_code == 500
        assert not db_path.exists()
        assert health["status"] == "degraded"
        assert diagnostics["status"] == "not_initialized"

"""
Authenticated API routes over the in-memory services.
"""

import asyncio

import pytest
from conftest import EXTERNAL_ID
from fastapi.testclient import TestClient

from app.routes import balance, preferences, users
from app.services.errors import TransientStorageError


@pytest.fixture
def client(make_app, identity_service):
    asyncio.run(identity_service.create(EXTERNAL_ID, "ada@example.com", "Ada Lovelace"))
    return TestClient(make_app(balance.router, preferences.router, users.router))


@pytest.fixture
def anonymous_client(make_app):
    app = make_app(balance.router, preferences.router, users.router, authenticated=False)
    app.state.token_verifier = None
    return TestClient(app)


class TestBalance:
    def test_new_user_balance(self, client):
        response = client.get("/api/balance")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["availableMinutes"] == 0
        assert body["data"]["currentStreakDays"] == 0
        assert body["data"]["today"] == {
            "earnedMinutes": 0,
            "spentMinutes": 0,
            "sessionsCompleted": 0,
            "sessionsFailed": 0,
        }

    def test_set_balance(self, client):
        response = client.patch("/api/balance", json={"availableMinutes": 75})

        assert response.status_code == 200
        assert response.json()["data"]["availableMinutes"] == 75
        assert client.get("/api/balance").json()["data"]["availableMinutes"] == 75

    def test_set_balance_to_zero(self, client):
        client.patch("/api/balance", json={"availableMinutes": 30})
        response = client.patch("/api/balance", json={"availableMinutes": 0})

        assert response.status_code == 200
        assert response.json()["data"]["availableMinutes"] == 0

    @pytest.mark.parametrize("value", [-1, 3.5, "10", True, None])
    def test_set_balance_rejects_bad_values(self, client, value):
        response = client.patch("/api/balance", json={"availableMinutes": value})

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "availableMinutes must be a non-negative integer",
        }

    def test_set_balance_requires_field(self, client):
        response = client.patch("/api/balance", json={})

        assert response.status_code == 400
        assert response.json()["error"] == "availableMinutes is required"

    def test_malformed_json(self, client):
        response = client.patch(
            "/api/balance",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid JSON body"


class TestPreferences:
    def test_defaults(self, client):
        response = client.get("/api/preferences")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["focusDurationMinutes"] == 25
        assert data["focusMode"] == "easy"

    @pytest.mark.parametrize("minutes", [1, 240])
    def test_duration_bounds(self, client, minutes):
        response = client.patch("/api/preferences", json={"focusDurationMinutes": minutes})

        assert response.status_code == 200
        assert response.json()["data"]["focusDurationMinutes"] == minutes

    @pytest.mark.parametrize("minutes", [0, 241, 30.5, 25.0, "30"])
    def test_duration_out_of_range(self, client, minutes):
        response = client.patch("/api/preferences", json={"focusDurationMinutes": minutes})

        assert response.status_code == 400
        assert response.json()["error"] == (
            "focusDurationMinutes must be an integer between 1 and 240"
        )

    @pytest.mark.parametrize("mode", ["EASY", "invalid"])
    def test_unknown_mode(self, client, mode):
        response = client.patch("/api/preferences", json={"focusMode": mode})

        assert response.status_code == 400
        assert response.json()["error"] == "focusMode must be one of: fun, easy, medium, hard"

    def test_empty_update(self, client):
        response = client.patch("/api/preferences", json={})

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_partial_update_keeps_other_field(self, client):
        client.patch("/api/preferences", json={"focusDurationMinutes": 50})
        response = client.patch("/api/preferences", json={"focusMode": "medium"})

        data = response.json()["data"]
        assert data["focusMode"] == "medium"
        assert data["focusDurationMinutes"] == 50

    def test_focus_modes_table(self, client):
        response = client.get("/api/focus-modes")

        assert response.status_code == 200
        modes = {m["mode"]: m["multiplier"] for m in response.json()["data"]}
        assert modes == {"fun": 150, "easy": 100, "medium": 50, "hard": 25}


class TestUsers:
    def test_get_me(self, client):
        response = client.get("/api/users/me")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["email"] == "ada@example.com"
        assert data["displayName"] == "Ada Lovelace"
        assert data["subscriptionTier"] == "free"
        assert data["balance"]["availableMinutes"] == 0

    def test_update_display_name(self, client):
        response = client.patch("/api/users/me", json={"displayName": "Countess"})

        assert response.status_code == 200
        assert response.json()["data"]["displayName"] == "Countess"
        assert response.json()["data"]["email"] == "ada@example.com"

    def test_update_display_name_rejects_null(self, client):
        response = client.patch("/api/users/me", json={"displayName": None})

        assert response.status_code == 400
        assert response.json()["error"] == "displayName must be a string"

    def test_delete_me_removes_everything(self, client, store):
        response = client.delete("/api/users/me")

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": {"deleted": True}}
        assert store.users == {}
        assert store.balances == {}

        assert client.get("/api/users/me").status_code == 404
        assert client.get("/api/balance").status_code == 404
        assert client.delete("/api/users/me").status_code == 404

    def test_storage_outage_is_500(self, client, store):
        store.fail_with = TransientStorageError(operation="get_profile")
        response = client.get("/api/users/me")

        assert response.status_code == 500
        assert response.json()["success"] is False

    def test_broken_record_group_is_500(self, client, store):
        user_id = store.user_id_for(EXTERNAL_ID)
        store.balances.pop(user_id)

        response = client.get("/api/balance")

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Internal server error"}


def test_unknown_route_uses_envelope(client):
    response = client.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.json()["success"] is False


@pytest.mark.parametrize(
    ("method", "path"),
    [
        ("get", "/api/balance"),
        ("patch", "/api/balance"),
        ("get", "/api/preferences"),
        ("get", "/api/users/me"),
        ("delete", "/api/users/me"),
    ],
)
def test_requires_authentication(anonymous_client, method, path):
    response = getattr(anonymous_client, method)(path)

    assert response.status_code == 401
    assert response.json()["success"] is False


def test_focus_modes_are_public(anonymous_client):
    assert anonymous_client.get("/api/focus-modes").status_code == 200

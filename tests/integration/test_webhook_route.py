import json

import pytest
from fastapi.testclient import TestClient

from app.routes import webhooks
from app.services.errors import TransientStorageError


def _payload(event_type: str = "user.created", user_id: str = "user_route") -> bytes:
    return json.dumps(
        {
            "type": event_type,
            "data": {
                "id": user_id,
                "email_addresses": [{"email_address": "route@example.com"}],
                "first_name": "Route",
                "last_name": None,
            },
        }
    ).encode()


@pytest.fixture
def client(make_app):
    return TestClient(make_app(webhooks.router, authenticated=False))


def test_webhook_valid_signature(client, signed_headers, store):
    raw = _payload()

    response = client.post("/webhooks/clerk", content=raw, headers=signed_headers(raw))

    assert response.status_code == 200
    assert response.json() == {"success": True, "data": {"received": True}}
    assert store.users["user_route"]["display_name"] == "Route"


def test_webhook_redelivery_is_acknowledged(client, signed_headers, store):
    raw = _payload()

    first = client.post("/webhooks/clerk", content=raw, headers=signed_headers(raw))
    second = client.post("/webhooks/clerk", content=raw, headers=signed_headers(raw))

    assert first.status_code == second.status_code == 200
    assert len(store.users) == 1


def test_webhook_delete_of_unknown_user_is_acknowledged(client, signed_headers):
    raw = _payload("user.deleted", "user_never_seen")

    response = client.post("/webhooks/clerk", content=raw, headers=signed_headers(raw))

    assert response.status_code == 200


def test_webhook_invalid_signature(client, signed_headers, store):
    raw = _payload()
    headers = signed_headers(raw)
    headers["svix-signature"] = "v1,bad"

    response = client.post("/webhooks/clerk", content=raw, headers=headers)

    assert response.status_code == 401
    assert response.json()["success"] is False
    assert store.users == {}


def test_webhook_invalid_signature_keeps_existing_user(client, signed_headers, store):
    raw = _payload()
    client.post("/webhooks/clerk", content=raw, headers=signed_headers(raw))
    user_id = store.user_id_for("user_route")
    balance_before = dict(store.balances[user_id])
    stats_before = dict(store.stats[user_id])

    update = json.dumps(
        {
            "type": "user.updated",
            "data": {
                "id": "user_route",
                "email_addresses": [{"email_address": "forged@example.com"}],
                "first_name": "Forged",
                "last_name": None,
            },
        }
    ).encode()
    headers = signed_headers(update)
    headers["svix-signature"] = "v1,bad"

    response = client.post("/webhooks/clerk", content=update, headers=headers)

    assert response.status_code == 401
    assert store.users["user_route"]["email"] == "route@example.com"
    assert store.users["user_route"]["display_name"] == "Route"
    assert store.balances[user_id] == balance_before
    assert store.stats[user_id] == stats_before


def test_webhook_missing_headers(client, store):
    response = client.post(
        "/webhooks/clerk",
        content=_payload(),
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Missing svix headers"}
    assert store.users == {}


def test_webhook_storage_failure_is_retryable(client, signed_headers, store):
    store.fail_with = TransientStorageError(operation="create")
    raw = _payload()

    response = client.post("/webhooks/clerk", content=raw, headers=signed_headers(raw))

    assert response.status_code == 500
    assert response.json()["success"] is False

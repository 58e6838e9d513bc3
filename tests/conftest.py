import base64
import time

import pytest
from fakes import (
    InMemoryBalanceRepository,
    InMemoryIdentityRepository,
    InMemoryPreferencesRepository,
    InMemoryStore,
)
from fastapi import FastAPI

from app.auth.verify import auth_dependency
from app.dependencies import (
    get_identity_service,
    get_ledger,
    get_preferences_service,
    get_webhook_processor,
)
from app.security.webhook_signature import WebhookVerifier, sign
from app.services.identity_service import IdentityService
from app.services.ledger_service import BalanceLedger
from app.services.preferences_service import PreferencesService
from app.services.webhook_processor import WebhookEventProcessor
from app.utils.responses import register_exception_handlers

EXTERNAL_ID = "user_2abcDEF"
WEBHOOK_SECRET = "whsec_" + base64.b64encode(b"test-webhook-secret-key-32-bytes").decode()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def identity_service(store):
    return IdentityService(InMemoryIdentityRepository(store))


@pytest.fixture
def ledger(store):
    return BalanceLedger(InMemoryBalanceRepository(store))


@pytest.fixture
def preferences_service(store):
    return PreferencesService(InMemoryPreferencesRepository(store))


@pytest.fixture
def webhook_verifier():
    return WebhookVerifier(WEBHOOK_SECRET, tolerance_seconds=300)


@pytest.fixture
def webhook_processor(identity_service, webhook_verifier):
    return WebhookEventProcessor(identity_service, webhook_verifier)


@pytest.fixture
def signed_headers():
    """Build valid svix headers for a raw body."""

    def _sign(body: bytes, message_id: str = "msg_1", timestamp: int | None = None) -> dict:
        ts = str(int(time.time()) if timestamp is None else timestamp)
        return {
            "svix-id": message_id,
            "svix-timestamp": ts,
            "svix-signature": sign(WEBHOOK_SECRET, message_id, ts, body),
            "Content-Type": "application/json",
        }

    return _sign


@pytest.fixture
def auth_override():
    def _override():
        return EXTERNAL_ID

    return _override


@pytest.fixture
def make_app(auth_override, identity_service, ledger, preferences_service, webhook_processor):
    """Mount routers on a fresh app wired to the in-memory services."""

    def _make(*routers, authenticated: bool = True) -> FastAPI:
        app = FastAPI()
        register_exception_handlers(app)
        for router in routers:
            app.include_router(router)

        app.dependency_overrides[get_identity_service] = lambda: identity_service
        app.dependency_overrides[get_ledger] = lambda: ledger
        app.dependency_overrides[get_preferences_service] = lambda: preferences_service
        app.dependency_overrides[get_webhook_processor] = lambda: webhook_processor
        if authenticated:
            app.dependency_overrides[auth_dependency] = auth_override
        return app

    return _make

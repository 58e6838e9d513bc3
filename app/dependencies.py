"""
FastAPI dependencies resolving the services built at startup.

app.main wires one DatabasePoolManager into the repositories and services
during the lifespan and stores them on app.state; routes only ever see
them through these functions (tests override them).
"""

from fastapi import Request

from app.services.identity_service import IdentityService
from app.services.ledger_service import BalanceLedger
from app.services.preferences_service import PreferencesService
from app.services.webhook_processor import WebhookEventProcessor


def get_ledger(request: Request) -> BalanceLedger:
    return request.app.state.ledger


def get_identity_service(request: Request) -> IdentityService:
    return request.app.state.identity_service


def get_preferences_service(request: Request) -> PreferencesService:
    return request.app.state.preferences_service


def get_webhook_processor(request: Request) -> WebhookEventProcessor:
    return request.app.state.webhook_processor

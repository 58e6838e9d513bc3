"""
Clerk webhook event processor.

Per external identity the record group moves Absent -> Present -> Absent,
with Present -> Present on updates; an identity can be recreated after
deletion. Deliveries are at-least-once and unordered, so every branch
re-reads current state instead of assuming the previous event was applied:

    created  + Absent  -> CREATED
    created  + Present -> DUPLICATE              (repeat delivery)
    updated  + Present -> UPDATED
    updated  + Absent  -> CREATED_FROM_UPDATE    (update overtook create)
    deleted  + Present -> DELETED
    deleted  + Absent  -> DELETE_NOOP
    other types        -> IGNORED

Nothing is read or written before the signature is verified. Storage
failures propagate so the provider sees a non-2xx response and retries.
"""

import json
from collections.abc import Mapping
from enum import Enum

from pydantic import ValidationError as PydanticValidationError

from app.infrastructure.observability.logging import get_logger
from app.models.api.webhook_request import ClerkUserData, ClerkWebhookEvent
from app.security.webhook_signature import WebhookSignatureError, WebhookVerifier, extract_headers
from app.services.errors import ConflictError, ValidationError
from app.services.identity_service import IdentityService

logger = get_logger(__name__)

USER_CREATED = "user.created"
USER_UPDATED = "user.updated"
USER_DELETED = "user.deleted"


class WebhookOutcome(str, Enum):
    CREATED = "created"
    DUPLICATE = "duplicate"
    UPDATED = "updated"
    CREATED_FROM_UPDATE = "created_from_update"
    DELETED = "deleted"
    DELETE_NOOP = "delete_noop"
    IGNORED = "ignored"


class WebhookEventProcessor:
    def __init__(self, identity: IdentityService, verifier: WebhookVerifier):
        self.identity = identity
        self.verifier = verifier

    async def process(self, raw_body: bytes, headers: Mapping[str, str]) -> WebhookOutcome:
        event = self._authenticate(raw_body, headers)

        handler = {
            USER_CREATED: self._on_created,
            USER_UPDATED: self._on_updated,
            USER_DELETED: self._on_deleted,
        }.get(event.type)

        if handler is None:
            logger.info("Unhandled webhook event type", event_type=event.type)
            return WebhookOutcome.IGNORED

        try:
            data = ClerkUserData.model_validate(event.data)
        except PydanticValidationError as e:
            logger.warning("Webhook user payload rejected", event_type=event.type, error=str(e))
            raise ValidationError("Invalid webhook payload") from e

        outcome = await handler(data)
        logger.info(
            "Webhook event processed",
            event_type=event.type,
            external_id=data.id,
            outcome=outcome.value,
        )
        return outcome

    def _authenticate(self, raw_body: bytes, headers: Mapping[str, str]) -> ClerkWebhookEvent:
        webhook_headers = extract_headers(headers)
        try:
            self.verifier.verify(raw_body, webhook_headers)
        except WebhookSignatureError as e:
            logger.warning(
                "Webhook verification failed",
                message_id=webhook_headers.message_id,
                reason=e.message,
            )
            raise

        try:
            return ClerkWebhookEvent.model_validate(json.loads(raw_body))
        except (ValueError, PydanticValidationError) as e:
            raise WebhookSignatureError("Invalid webhook payload") from e

    async def _on_created(self, data: ClerkUserData) -> WebhookOutcome:
        if await self.identity.find_by_external_id(data.id):
            return WebhookOutcome.DUPLICATE

        try:
            await self.identity.create(data.id, data.primary_email(), data.display_name())
        except ConflictError:
            # A concurrent delivery created it between our read and insert
            return WebhookOutcome.DUPLICATE
        return WebhookOutcome.CREATED

    async def _on_updated(self, data: ClerkUserData) -> WebhookOutcome:
        user = await self.identity.update(
            data.id, email=data.primary_email(), display_name=data.display_name()
        )
        if user is not None:
            return WebhookOutcome.UPDATED
        return await self._create_from_update(data)

    async def _create_from_update(self, data: ClerkUserData) -> WebhookOutcome:
        """The update arrived before its create: build the record from the update."""
        logger.info("User not found for update, creating", external_id=data.id)
        created = await self._on_created(data)
        if created is WebhookOutcome.CREATED:
            return WebhookOutcome.CREATED_FROM_UPDATE

        # The create landed concurrently; apply the newer fields on top of it
        await self.identity.update(
            data.id, email=data.primary_email(), display_name=data.display_name()
        )
        return WebhookOutcome.UPDATED

    async def _on_deleted(self, data: ClerkUserData) -> WebhookOutcome:
        if await self.identity.delete(data.id):
            return WebhookOutcome.DELETED
        logger.info("User not found for deletion", external_id=data.id)
        return WebhookOutcome.DELETE_NOOP

"""
HMAC-SHA256 verification for Clerk webhooks (Svix signing scheme).

Signed content is "{svix-id}.{svix-timestamp}.{raw body}" keyed by the
base64 part of a "whsec_" secret. The svix-signature header carries one or
more space-separated "v1,<base64 digest>" entries; any match is accepted.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import time
from collections.abc import Mapping
from dataclasses import dataclass

from app.services.errors import MissingWebhookHeadersError, UnauthorizedError

SECRET_PREFIX = "whsec_"
SIGNATURE_VERSION = "v1"

ID_HEADER = "svix-id"
TIMESTAMP_HEADER = "svix-timestamp"
SIGNATURE_HEADER = "svix-signature"
REQUIRED_HEADERS = (ID_HEADER, TIMESTAMP_HEADER, SIGNATURE_HEADER)

__all__ = [
    "WebhookHeaders",
    "WebhookSignatureError",
    "WebhookVerifier",
    "extract_headers",
    "sign",
]


class WebhookSignatureError(UnauthorizedError):
    default_message = "Invalid webhook signature"


@dataclass(frozen=True)
class WebhookHeaders:
    message_id: str
    timestamp: str
    signature: str


def extract_headers(headers: Mapping[str, str]) -> WebhookHeaders:
    """Pull the three signature headers; any missing one rejects the delivery."""
    lowered = {key.lower(): value for key, value in headers.items()}
    values = [lowered.get(name) for name in REQUIRED_HEADERS]
    if not all(values):
        raise MissingWebhookHeadersError()
    return WebhookHeaders(*values)


def _secret_bytes(secret: str) -> bytes:
    if not secret:
        raise WebhookSignatureError("Webhook secret is not configured")
    if secret.startswith(SECRET_PREFIX):
        secret = secret[len(SECRET_PREFIX) :]
    try:
        return base64.b64decode(secret, validate=True)
    except binascii.Error as e:
        raise WebhookSignatureError("Webhook secret is malformed") from e


def sign(secret: str, message_id: str, timestamp: str, body: bytes) -> str:
    """Compute the "v1,<digest>" signature entry for a payload."""
    signed = f"{message_id}.{timestamp}.".encode() + body
    digest = hmac.new(_secret_bytes(secret), signed, hashlib.sha256).digest()
    return f"{SIGNATURE_VERSION},{base64.b64encode(digest).decode()}"


class WebhookVerifier:
    def __init__(self, secret: str, *, tolerance_seconds: int = 300, clock=time.time):
        self.secret = secret
        self.tolerance_seconds = tolerance_seconds
        self._clock = clock

    def verify(self, body: bytes, headers: WebhookHeaders) -> None:
        """
        Raise WebhookSignatureError unless the body was signed with our secret
        within the tolerance window.
        """
        try:
            sent_at = int(headers.timestamp)
        except ValueError as e:
            raise WebhookSignatureError("Invalid webhook timestamp") from e

        now = int(self._clock())
        if abs(now - sent_at) > self.tolerance_seconds:
            raise WebhookSignatureError("Webhook timestamp outside tolerance")

        expected = sign(self.secret, headers.message_id, headers.timestamp, body)
        _, expected_digest = expected.split(",", 1)

        for entry in headers.signature.split(" "):
            version, _, digest = entry.partition(",")
            if version != SIGNATURE_VERSION:
                continue
            if hmac.compare_digest(digest.encode(), expected_digest.encode()):
                return

        raise WebhookSignatureError()

import base64

import pytest

from app.security.webhook_signature import (
    WebhookHeaders,
    WebhookSignatureError,
    WebhookVerifier,
    extract_headers,
    sign,
)
from app.services.errors import MissingWebhookHeadersError

SECRET = "whsec_" + base64.b64encode(b"signature-test-secret").decode()
NOW = 1_760_000_000
BODY = b'{"type":"user.created","data":{"id":"user_1"}}'


def _verifier(**kwargs) -> WebhookVerifier:
    return WebhookVerifier(SECRET, clock=lambda: NOW, **kwargs)


def _headers(body: bytes = BODY, timestamp: int = NOW, signature: str | None = None):
    ts = str(timestamp)
    return WebhookHeaders(
        message_id="msg_abc",
        timestamp=ts,
        signature=signature or sign(SECRET, "msg_abc", ts, body),
    )


def test_valid_signature_passes():
    _verifier().verify(BODY, _headers())


def test_signature_matches_known_scheme():
    """The signed content is "{id}.{timestamp}.{body}" keyed by the decoded secret."""
    import hashlib
    import hmac

    key = base64.b64decode(SECRET.removeprefix("whsec_"))
    digest = hmac.new(key, b"msg_abc.1760000000." + BODY, hashlib.sha256).digest()
    assert sign(SECRET, "msg_abc", "1760000000", BODY) == "v1," + base64.b64encode(digest).decode()


def test_any_matching_entry_is_accepted():
    good = sign(SECRET, "msg_abc", str(NOW), BODY)
    _verifier().verify(BODY, _headers(signature=f"v1,bm90LWl0 {good}"))


def test_tampered_body_is_rejected():
    headers = _headers()
    with pytest.raises(WebhookSignatureError):
        _verifier().verify(BODY.replace(b"user_1", b"user_2"), headers)


def test_wrong_secret_is_rejected():
    other = "whsec_" + base64.b64encode(b"another-secret").decode()
    signature = sign(other, "msg_abc", str(NOW), BODY)
    with pytest.raises(WebhookSignatureError):
        _verifier().verify(BODY, _headers(signature=signature))


def test_unknown_signature_version_is_ignored():
    good = sign(SECRET, "msg_abc", str(NOW), BODY)
    _, digest = good.split(",", 1)
    with pytest.raises(WebhookSignatureError):
        _verifier().verify(BODY, _headers(signature=f"v2,{digest}"))


@pytest.mark.parametrize("offset", [-301, 301, 10_000])
def test_timestamp_outside_tolerance_is_rejected(offset):
    with pytest.raises(WebhookSignatureError):
        _verifier().verify(BODY, _headers(timestamp=NOW + offset))


@pytest.mark.parametrize("offset", [-300, 0, 300])
def test_timestamp_inside_tolerance_passes(offset):
    _verifier().verify(BODY, _headers(timestamp=NOW + offset))


def test_non_numeric_timestamp_is_rejected():
    headers = WebhookHeaders(message_id="msg_abc", timestamp="yesterday", signature="v1,abc")
    with pytest.raises(WebhookSignatureError):
        _verifier().verify(BODY, headers)


def test_missing_secret_rejects_everything():
    with pytest.raises(WebhookSignatureError):
        WebhookVerifier("", clock=lambda: NOW).verify(BODY, _headers())


def test_extract_headers_is_case_insensitive():
    headers = extract_headers(
        {"Svix-Id": "msg_1", "SVIX-TIMESTAMP": "123", "svix-signature": "v1,abc"}
    )
    assert headers == WebhookHeaders(message_id="msg_1", timestamp="123", signature="v1,abc")


@pytest.mark.parametrize("missing", ["svix-id", "svix-timestamp", "svix-signature"])
def test_extract_headers_requires_all_three(missing):
    headers = {"svix-id": "msg_1", "svix-timestamp": "123", "svix-signature": "v1,abc"}
    headers.pop(missing)
    with pytest.raises(MissingWebhookHeadersError):
        extract_headers(headers)

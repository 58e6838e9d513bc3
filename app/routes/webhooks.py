"""
webhooks.py
-----------
Clerk identity webhook. Signature verification and event handling live in
app.services.webhook_processor; this route only hands over the raw body.

Status codes: 400 missing svix headers, 401 bad signature, 500 when the
event could not be applied (Clerk retries non-2xx deliveries).
"""

from fastapi import APIRouter, Depends, Request

from app.dependencies import get_webhook_processor
from app.services.webhook_processor import WebhookEventProcessor
from app.utils.responses import success

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/clerk")
async def clerk_webhook(
    request: Request,
    processor: WebhookEventProcessor = Depends(get_webhook_processor),
):
    raw = await request.body()
    await processor.process(raw, request.headers)
    return success({"received": True})

"""
RequestContext Middleware - Adds request tracking to all requests.

Every request gets a request_id that is:
- stored on request.state.request_id
- bound into the structlog context so every log line of the request has it
- returned to the client in the X-Request-ID header

A client-supplied X-Request-ID is reused when present so mobile logs and
server logs can be joined.
"""

import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.infrastructure.observability.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
)

logger = get_logger(__name__)

MAX_REQUEST_ID_LENGTH = 128


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Add request context to all incoming requests."""

    async def dispatch(self, request: Request, call_next):
        clear_request_context()

        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id = request_id[:MAX_REQUEST_ID_LENGTH]
        request.state.request_id = request_id
        bind_request_context(request_id=request_id)

        logger.debug(
            "Request started",
            method=request.method,
            path=request.url.path,
            user_agent=request.headers.get("user-agent"),
        )

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

"""
JSON response envelope and exception handlers.

Every response body carries a success flag:
    {"success": true, "data": ...}
    {"success": false, "error": "<human readable message>"}

Internal details (stack traces, SQL, driver messages) never reach the body;
they are logged with the request context instead.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from app.infrastructure.observability.logging import get_logger
from app.services.errors import ServiceError

logger = get_logger(__name__)

# Client-facing messages per request field
FIELD_MESSAGES = {
    "availableMinutes": "availableMinutes must be a non-negative integer",
    "focusDurationMinutes": "focusDurationMinutes must be an integer between 1 and 240",
    "focusMode": "focusMode must be one of: fun, easy, medium, hard",
    "displayName": "displayName must be a string",
}


def success(data: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": True, "data": jsonable_encoder(data)},
    )


def error(message: str, status_code: int = 400, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=headers,
    )


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"

    first = errors[0]
    loc = [part for part in first.get("loc", ()) if part != "body"]
    field = loc[-1] if loc else None

    if first.get("type") == "json_invalid":
        return "Invalid JSON body"
    if first.get("type") == "missing" and isinstance(field, str):
        return f"{field} is required"
    if isinstance(field, str) and field in FIELD_MESSAGES:
        return FIELD_MESSAGES[field]
    if first.get("type") == "value_error":
        cause = first.get("ctx", {}).get("error")
        if cause is not None:
            return str(cause)
    if first.get("type") == "model_attributes_type" or not loc:
        return "Invalid JSON body"
    return first.get("msg", "Invalid request")


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "Request failed",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        error=str(exc),
        external_id=exc.external_id or getattr(request.state, "external_id", None),
        status_code=exc.status_code,
    )
    return error(exc.message, exc.status_code)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _validation_message(exc)
    logger.info("Request validation failed", path=request.url.path, reason=message)
    return error(message, 400)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return error(detail, exc.status_code, headers=getattr(exc, "headers", None))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        external_id=getattr(request.state, "external_id", None),
    )
    return error("Internal server error", 500)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

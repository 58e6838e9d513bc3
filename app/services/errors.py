"""
Service error taxonomy.

Every error carries the HTTP status the API layer maps it to and a message
that is safe to show to clients. Internal details stay in the logs.
"""


class ServiceError(Exception):
    """Base class for errors raised by the service and repository layers."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, *, external_id: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.external_id = external_id


class ValidationError(ServiceError):
    """Malformed, out-of-range or wrongly typed input."""

    status_code = 400
    default_message = "Invalid request"


class InvalidModeError(ValidationError):
    """Focus mode outside the closed mode table."""

    default_message = "focusMode must be one of: fun, easy, medium, hard"


class MissingWebhookHeadersError(ValidationError):
    default_message = "Missing svix headers"


class UnauthorizedError(ServiceError):
    status_code = 401
    default_message = "Unauthorized"


class NotFoundError(ServiceError):
    status_code = 404
    default_message = "Not found"


class ConflictError(ServiceError):
    """Duplicate creation of an existing external identity."""

    status_code = 409
    default_message = "User already exists"


class IntegrityViolationError(ServiceError):
    """
    A user row exists without its co-owned balance/stats rows.

    Never repaired automatically; surfaced as a server failure.
    """

    status_code = 500
    default_message = "Internal server error"


class TransientStorageError(ServiceError):
    """Storage unavailable or timed out. Callers may retry."""

    status_code = 500
    default_message = "Service temporarily unavailable"

    def __init__(self, message: str | None = None, *, operation: str = "unknown", **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation

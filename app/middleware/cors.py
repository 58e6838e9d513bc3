"""
CORS Middleware - Cross-Origin Resource Sharing configuration.

The iOS app is a native client and is not subject to CORS; this only matters
for browser-based tooling (admin dashboard, local web testing). Origins come
from settings.CORS_ALLOWED_ORIGINS; "*" allows any origin without credentials.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_METHODS = ["GET", "POST", "PATCH", "DELETE", "OPTIONS"]
DEFAULT_HEADERS = ["Content-Type", "Authorization", "X-Request-ID"]


class CORSMiddleware(BaseHTTPMiddleware):
    """Handles preflight OPTIONS requests and adds CORS headers to responses."""

    def __init__(
        self,
        app,
        allowed_origins: list[str] | None = None,
        allow_methods: list[str] | None = None,
        allow_headers: list[str] | None = None,
        max_age: int = 600,
    ):
        super().__init__(app)
        self.allowed_origins = allowed_origins or []
        self.allow_any = "*" in self.allowed_origins
        self.allow_methods = allow_methods or DEFAULT_METHODS
        self.allow_headers = allow_headers or DEFAULT_HEADERS
        self.max_age = max_age

    def _allowed_origin_header(self, origin: str | None) -> str | None:
        if self.allow_any:
            return "*"
        if origin and origin in self.allowed_origins:
            return origin
        return None

    async def dispatch(self, request, call_next):
        origin = request.headers.get("origin")
        allowed = self._allowed_origin_header(origin)

        if request.method == "OPTIONS" and request.headers.get("access-control-request-method"):
            if allowed is None:
                logger.warning("CORS preflight rejected - origin not allowed", origin=origin)
                return Response(status_code=403, content="Origin not allowed")
            return Response(
                status_code=204,
                headers={
                    "Access-Control-Allow-Origin": allowed,
                    "Access-Control-Allow-Methods": ", ".join(self.allow_methods),
                    "Access-Control-Allow-Headers": ", ".join(self.allow_headers),
                    "Access-Control-Max-Age": str(self.max_age),
                },
            )

        response = await call_next(request)

        if allowed is not None:
            response.headers["Access-Control-Allow-Origin"] = allowed
            if not self.allow_any:
                response.headers["Vary"] = "Origin"
        elif origin:
            logger.warning(
                "CORS request from disallowed origin", origin=origin, path=request.url.path
            )

        return response

# app/routes/health.py
"""
Health check endpoints.
"""

import time
from datetime import UTC, datetime

from fastapi import APIRouter, Request

from app.infrastructure.observability.logging import get_logger
from app.utils.responses import error, success

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


@router.get("/healthz")
async def healthz():
    """Basic liveness check - always returns 200 if app is running."""
    return success({"status": "ok", "service": "buytime-backend"})


@router.get("/health")
async def health(request: Request):
    """Readiness check including a database round trip."""
    t0 = time.time()
    db_health = await request.app.state.db_pool.health_check()
    latency_ms = round((time.time() - t0) * 1000, 1)

    if not db_health.get("healthy", False):
        logger.error(
            "Health check failed",
            service="database",
            latency_ms=latency_ms,
            error=db_health.get("error"),
        )
        return error("Database connection failed", 500)

    return success(
        {
            "status": "healthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "database": "connected",
            "latencyMs": latency_ms,
        }
    )

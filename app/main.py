# app/main.py
"""
Application entry point.

The lifespan is the single place where shared resources are built: one
database pool, the repositories and services on top of it, the Clerk token
verifier and the webhook processor. They live on app.state for the lifetime
of the process and are never re-created lazily.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from app.auth.verify import ClerkTokenVerifier
from app.config import settings
from app.db.pool import DatabasePoolManager
from app.infrastructure.observability.logging import get_logger, log_request, setup_logging
from app.middleware import CORSMiddleware, RequestContextMiddleware
from app.repositories.balance_repository import PostgresBalanceRepository
from app.repositories.identity_repository import PostgresIdentityRepository
from app.repositories.preferences_repository import PostgresPreferencesRepository
from app.routes import balance, health, preferences, users, webhooks
from app.security.webhook_signature import WebhookVerifier
from app.services.identity_service import IdentityService
from app.services.ledger_service import BalanceLedger
from app.services.preferences_service import PreferencesService
from app.services.webhook_processor import WebhookEventProcessor
from app.utils.responses import register_exception_handlers

# Setup logging before creating the app
setup_logging(log_level=settings.log_level)
logger = get_logger(__name__)


def wire_services(app: FastAPI, db_pool: DatabasePoolManager) -> None:
    """Build repositories and services over one pool and publish them on app.state."""
    identity_service = IdentityService(PostgresIdentityRepository(db_pool))

    app.state.db_pool = db_pool
    app.state.identity_service = identity_service
    app.state.ledger = BalanceLedger(PostgresBalanceRepository(db_pool))
    app.state.preferences_service = PreferencesService(PostgresPreferencesRepository(db_pool))
    app.state.webhook_processor = WebhookEventProcessor(
        identity_service,
        WebhookVerifier(
            settings.CLERK_WEBHOOK_SECRET,
            tolerance_seconds=settings.WEBHOOK_TOLERANCE_SECONDS,
        ),
    )
    app.state.token_verifier = ClerkTokenVerifier(
        settings.jwks_url(),
        settings.CLERK_SECRET_KEY,
        authorized_parties=settings.CLERK_AUTHORIZED_PARTIES,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown with proper resource management."""
    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    missing = settings.missing_required()
    if missing:
        logger.error("Missing required environment variables", missing=missing)
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")

    db_pool = DatabasePoolManager(
        settings.DATABASE_URL,
        settings.get_db_pool_config(),
        application_name=f"buytime-{settings.environment}",
        statement_timeout=settings.DB_STATEMENT_TIMEOUT,
    )
    await db_pool.initialize()

    try:
        if settings.DB_APPLY_SCHEMA:
            await db_pool.apply_schema()
        wire_services(app, db_pool)
    except Exception as e:
        logger.error("Failed to initialize services", error=str(e))
        await db_pool.close()
        raise

    logger.info("All services initialized successfully")

    yield

    logger.info("Application shutting down")
    try:
        await db_pool.close()
    except Exception as e:
        logger.error("Error closing database pool", error=str(e))
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="BuyTime Backend",
    description="Focus time for screen time: reward ledger and identity sync",
    version="0.1.0",
    lifespan=lifespan,
)

register_exception_handlers(app)

app.add_middleware(CORSMiddleware, allowed_origins=settings.CORS_ALLOWED_ORIGINS)
app.add_middleware(RequestContextMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(balance.router)
app.include_router(preferences.router)
app.include_router(users.router)
app.include_router(webhooks.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
        external_id=getattr(request.state, "external_id", None),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)

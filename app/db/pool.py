# app/db/pool.py
"""
PostgreSQL connection pool manager using psycopg_pool.

One manager is constructed and initialized in the application lifespan
(app.main) and handed to every repository. There is no module-level pool:
code that needs storage receives the manager explicitly.
"""

import asyncio
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"


class DatabasePoolManager:
    """
    Database connection pool manager.

    Lifecycle is strictly initialize() -> use -> close(); a closed manager
    cannot be reopened.
    """

    def __init__(
        self,
        conninfo: str,
        pool_config: dict[str, Any] | None = None,
        *,
        application_name: str = "buytime-backend",
        statement_timeout: str = "15s",
    ):
        self.conninfo = conninfo
        self.pool_config = dict(pool_config or {})
        self.application_name = application_name
        self.statement_timeout = statement_timeout
        self.pool: AsyncConnectionPool | None = None
        self._initialized = False
        self._closed = False

    async def initialize(self) -> None:
        """Open the connection pool on application startup."""
        if self._initialized:
            logger.warning("Database pool already initialized")
            return

        if self._closed:
            raise RuntimeError("Cannot reinitialize closed pool")

        try:
            logger.info("Initializing database connection pool")

            self.pool = AsyncConnectionPool(
                conninfo=self.conninfo,
                open=False,
                check=AsyncConnectionPool.check_connection,
                configure=self._configure_connection,
                **self.pool_config,
            )
            await self.pool.open()
            await self.pool.wait()

            self._initialized = True
            await self._test_pool_connections()

            logger.info(
                "Database pool initialized successfully",
                min_size=self.pool_config.get("min_size"),
                max_size=self.pool_config.get("max_size"),
                timeout=self.pool_config.get("timeout"),
            )

        except Exception as e:
            logger.error("Failed to initialize database pool", error=str(e))
            self._initialized = False
            if self.pool:
                try:
                    await self.pool.close()
                except Exception as close_error:
                    logger.warning("Error closing half-open pool", error=str(close_error))
                self.pool = None
            raise RuntimeError(f"Database pool initialization failed: {e}") from e

    async def _configure_connection(self, conn: psycopg.AsyncConnection) -> None:
        """Configure each new connection from the pool."""
        conn.row_factory = dict_row

        # Autocommit keeps idle connections out of INTRANS; multi-statement
        # work goes through transaction().
        await conn.set_autocommit(True)

        await conn.execute(
            sql.SQL("SET application_name = {}").format(sql.Literal(self.application_name))
        )
        await conn.execute("SET timezone = 'UTC'")
        await conn.execute(
            sql.SQL("SET statement_timeout = {}").format(sql.Literal(self.statement_timeout))
        )

    async def _test_pool_connections(self) -> None:
        async with self.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1 AS ok")
                row = await cur.fetchone()
        if not row or row["ok"] != 1:
            raise RuntimeError("Database connection test failed - got unexpected result")
        logger.debug("Database pool connection test passed")

    async def apply_schema(self, path: Path = SCHEMA_PATH) -> None:
        """Run the bundled idempotent DDL in a single transaction."""
        ddl = path.read_text(encoding="utf-8")
        async with self.transaction() as conn:
            await conn.execute(ddl)
        logger.info("Database schema applied", path=str(path))

    async def close(self) -> None:
        """Close the connection pool gracefully."""
        if not self._initialized or self._closed:
            return

        try:
            logger.info("Closing database connection pool")
            if self.pool:
                await asyncio.wait_for(self.pool.close(), timeout=30.0)
            logger.info("Database pool closed successfully")
        except TimeoutError:
            logger.warning("Database pool close timed out, forcing shutdown")
        finally:
            self._initialized = False
            self._closed = True

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """
        Get a connection from the pool.

        Usage:
            async with db_pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute("SELECT 1")
        """
        if not self._initialized:
            raise RuntimeError("Database pool not initialized. Call initialize() first.")

        if self._closed:
            raise RuntimeError("Database pool is closed")

        async with self.pool.connection() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """
        Get a connection with automatic transaction management.

        Usage:
            async with db_pool.transaction() as conn:
                await conn.execute("INSERT ...")
                await conn.execute("UPDATE ...")
                # Automatic commit on success, rollback on exception
        """
        async with self.connection() as conn:
            async with conn.transaction():
                yield conn

    async def health_check(self) -> dict[str, Any]:
        """Report pool availability and a timed round trip."""
        if not self._initialized or self._closed:
            return {"healthy": False, "service": "database_pool", "error": "Pool not available"}

        start_time = time.time()
        try:
            async with self.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute("SELECT 1 AS ok")
                    row = await cur.fetchone()
            healthy = bool(row) and row["ok"] == 1
        except Exception as e:
            logger.error("Database pool health check failed", error=str(e))
            return {
                "healthy": False,
                "service": "database_pool",
                "error": str(e),
                "error_type": type(e).__name__,
            }

        stats = self.pool.get_stats()
        return {
            "healthy": healthy,
            "service": "database_pool",
            "connection_time_ms": round((time.time() - start_time) * 1000, 2),
            "pool_stats": {
                "pool_size": stats.get("pool_size", 0),
                "pool_available": stats.get("pool_available", 0),
                "requests_waiting": stats.get("requests_waiting", 0),
            },
        }

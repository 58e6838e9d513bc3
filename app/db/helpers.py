# app/db/helpers.py
"""
Database helper functions for common patterns.
Reduces boilerplate in the repository layer.

Every helper takes the connection explicitly so that callers decide whether
a statement runs on its own or inside a transaction.
"""

import asyncio
import functools
from typing import Any
from uuid import UUID

import psycopg
from psycopg import errors as pg_errors

from app.infrastructure.observability.logging import get_logger
from app.services.errors import ConflictError, TransientStorageError

logger = get_logger(__name__)


class DatabaseError(Exception):
    """Custom exception for database operations."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


async def fetch_one(
    connection: psycopg.AsyncConnection, query: Any, params: tuple | dict = ()
) -> dict[str, Any] | None:
    """
    Execute query and return single row as dict.

    Args:
        connection: Connection (or transaction connection) to run on
        query: SQL query with %s placeholders, or a composed psycopg.sql object
        params: Query parameters

    Returns:
        Dict with row data or None if no results
    """
    async with connection.cursor() as cur:
        await cur.execute(query, params)
        row = await cur.fetchone()
        return row if row else None


async def execute_query(
    connection: psycopg.AsyncConnection, query: Any, params: tuple | dict = ()
) -> int:
    """Execute query and return number of affected rows."""
    cursor = await connection.execute(query, params)
    return cursor.rowcount


# Decorator for automatic retry on temporary failures
def with_db_retry(max_retries: int = 3, base_delay: float = 0.1):
    """
    Retry repository operations on temporary failures.

    Operational errors (connection loss, pool timeout, statement timeout) are
    retried with exponential backoff and finally raised as
    TransientStorageError. Unique violations become ConflictError. Other
    driver errors are permanent and raised as DatabaseError.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Base delay between retries (exponential backoff)
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)

                except pg_errors.UniqueViolation as e:
                    logger.info("Unique constraint rejected write", operation=func.__name__)
                    raise ConflictError() from e

                except (psycopg.OperationalError, TimeoutError) as e:
                    if attempt < max_retries:
                        delay = base_delay * (2**attempt)
                        logger.warning(
                            "Database operation failed, retrying",
                            operation=func.__name__,
                            attempt=attempt + 1,
                            max_retries=max_retries,
                            delay=delay,
                            error=str(e),
                        )
                        await asyncio.sleep(delay)
                        continue

                    logger.error(
                        "Database operation failed after all retries",
                        operation=func.__name__,
                        attempts=max_retries + 1,
                        error=str(e),
                    )
                    raise TransientStorageError(operation=func.__name__) from e

                except psycopg.Error as e:
                    logger.error(
                        "Database operation failed with permanent error",
                        operation=func.__name__,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    raise DatabaseError(
                        f"Permanent database error: {e}",
                        operation=func.__name__,
                        recoverable=False,
                    ) from e

        return wrapper

    return decorator


def normalize_row(row: dict[str, Any] | None) -> dict[str, Any] | None:
    """Render UUID columns as strings for the domain models."""
    if row is None:
        return None
    return {key: str(value) if isinstance(value, UUID) else value for key, value in row.items()}

"""
PostgreSQL persistence for the minute ledger.

credit() is one UPDATE whose SET clause reads the current row, so concurrent
credits for the same user serialize on the row lock and none is lost.
set_available() is a plain overwrite: a credit that commits between a
client's read and its set_available is overwritten (last writer wins).
"""

from datetime import date

import psycopg

from app.db.helpers import execute_query, fetch_one, normalize_row, with_db_retry
from app.db.pool import DatabasePoolManager
from app.infrastructure.observability.logging import get_logger
from app.models.domain.user_domain import (
    BalanceSnapshot,
    SessionOutcome,
    TodaySummary,
    UserBalance,
)
from app.repositories.base import BalanceRepository
from app.services.errors import IntegrityViolationError

logger = get_logger(__name__)

# Streak rules for a credit tied to a session date:
#   no date              -> streak untouched
#   older than last date -> streak untouched (late report)
#   same day             -> unchanged (at least 1)
#   next day             -> +1
#   gap                  -> restart at 1
#
# Both ledger writes return one row per known user. A NULL user_id in that
# row means the user exists but its balance row is missing.
CREDIT_QUERY = """
WITH user_ref AS (
    SELECT id FROM users WHERE clerk_user_id = %(external_id)s
),
credited AS (
    UPDATE user_balance AS ub
    SET
        available_minutes = ub.available_minutes + %(minutes)s,
        current_streak_days = CASE
            WHEN %(session_date)s::date IS NULL THEN ub.current_streak_days
            WHEN ub.last_session_date > %(session_date)s::date THEN ub.current_streak_days
            WHEN ub.last_session_date = %(session_date)s::date
                THEN GREATEST(ub.current_streak_days, 1)
            WHEN ub.last_session_date = %(session_date)s::date - 1
                THEN ub.current_streak_days + 1
            ELSE 1
        END,
        last_session_date = GREATEST(ub.last_session_date, %(session_date)s::date),
        updated_at = NOW()
    FROM user_ref ur
    WHERE ub.user_id = ur.id
    RETURNING ub.*
)
SELECT c.*
FROM user_ref ur
LEFT JOIN credited c ON c.user_id = ur.id
"""

SET_AVAILABLE_QUERY = """
WITH user_ref AS (
    SELECT id FROM users WHERE clerk_user_id = %(external_id)s
),
overwritten AS (
    UPDATE user_balance AS ub
    SET available_minutes = %(minutes)s, updated_at = NOW()
    FROM user_ref ur
    WHERE ub.user_id = ur.id
    RETURNING ub.*
)
SELECT o.*
FROM user_ref ur
LEFT JOIN overwritten o ON o.user_id = ur.id
"""

SNAPSHOT_QUERY = """
WITH user_ref AS (
    SELECT id FROM users WHERE clerk_user_id = %(external_id)s
),
today_focus AS (
    SELECT
        COALESCE(SUM(reward_minutes) FILTER (WHERE status = 'completed'), 0)::integer
            AS earned_minutes,
        COUNT(*) FILTER (WHERE status = 'completed')::integer AS sessions_completed,
        COUNT(*) FILTER (WHERE status = 'failed')::integer AS sessions_failed
    FROM focus_sessions
    WHERE user_id = (SELECT id FROM user_ref)
      AND started_at::date = CURRENT_DATE
),
today_spending AS (
    SELECT COALESCE(SUM(minutes_spent), 0)::integer AS spent_minutes
    FROM time_spending
    WHERE user_id = (SELECT id FROM user_ref)
      AND started_at::date = CURRENT_DATE
)
SELECT
    ub.user_id AS balance_user_id,
    ub.available_minutes,
    ub.current_streak_days,
    ub.last_session_date,
    ub.updated_at,
    tf.earned_minutes AS today_earned_minutes,
    tf.sessions_completed AS today_sessions_completed,
    tf.sessions_failed AS today_sessions_failed,
    ts.spent_minutes AS today_spent_minutes
FROM user_ref ur
LEFT JOIN user_balance ub ON ub.user_id = ur.id
CROSS JOIN today_focus tf
CROSS JOIN today_spending ts
"""

INSERT_SESSION_QUERY = """
INSERT INTO focus_sessions (
    user_id, mode, multiplier_used, started_at, ended_at,
    planned_duration_minutes, actual_duration_minutes, reward_minutes, status
) VALUES (
    %(user_id)s, %(mode)s, %(multiplier)s, %(started_at)s, %(ended_at)s,
    %(planned)s, %(duration)s, %(reward)s, %(status)s
)
"""

UPDATE_STATS_QUERY = """
UPDATE user_stats
SET
    total_sessions_completed = total_sessions_completed + %(completed)s,
    total_sessions_failed = total_sessions_failed + %(failed)s,
    total_focus_minutes = total_focus_minutes + %(focus_minutes)s,
    total_earned_minutes = total_earned_minutes + %(reward)s,
    longest_session_minutes = GREATEST(longest_session_minutes, %(focus_minutes)s),
    longest_streak_days = GREATEST(longest_streak_days, %(streak)s),
    sessions_fun_mode = sessions_fun_mode + %(fun)s,
    sessions_easy_mode = sessions_easy_mode + %(easy)s,
    sessions_medium_mode = sessions_medium_mode + %(medium)s,
    sessions_hard_mode = sessions_hard_mode + %(hard)s,
    first_session_at = COALESCE(first_session_at, %(started_at)s),
    updated_at = NOW()
WHERE user_id = %(user_id)s
"""


def _to_balance(row: dict) -> UserBalance:
    return UserBalance.model_validate(normalize_row(row))


def _written_balance(row: dict | None, external_id: str) -> UserBalance | None:
    """None for an unknown user; IntegrityViolationError for a user with no balance row."""
    if not row:
        return None
    if row["user_id"] is None:
        logger.error("User exists without balance row", external_id=external_id)
        raise IntegrityViolationError(external_id=external_id)
    return _to_balance(row)


class PostgresBalanceRepository(BalanceRepository):
    """Minute ledger backed by user_balance."""

    def __init__(self, pool: DatabasePoolManager):
        self.pool = pool

    async def _credit_on(
        self,
        conn: psycopg.AsyncConnection,
        external_id: str,
        minutes: int,
        session_date: date | None,
    ) -> dict | None:
        return await fetch_one(
            conn,
            CREDIT_QUERY,
            {"minutes": minutes, "session_date": session_date, "external_id": external_id},
        )

    # Not retried: a lost acknowledgement after commit would credit twice.
    @with_db_retry(max_retries=0)
    async def credit(
        self, external_id: str, minutes: int, session_date: date | None = None
    ) -> UserBalance | None:
        async with self.pool.connection() as conn:
            row = await self._credit_on(conn, external_id, minutes, session_date)
        return _written_balance(row, external_id)

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def set_available(self, external_id: str, minutes: int) -> UserBalance | None:
        async with self.pool.connection() as conn:
            row = await fetch_one(
                conn, SET_AVAILABLE_QUERY, {"minutes": minutes, "external_id": external_id}
            )
        return _written_balance(row, external_id)

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get_snapshot(self, external_id: str) -> BalanceSnapshot | None:
        async with self.pool.connection() as conn:
            row = await fetch_one(conn, SNAPSHOT_QUERY, {"external_id": external_id})

        if not row:
            return None

        if row["balance_user_id"] is None:
            logger.error("User exists without balance row", external_id=external_id)
            raise IntegrityViolationError(external_id=external_id)

        return BalanceSnapshot(
            available_minutes=row["available_minutes"],
            current_streak_days=row["current_streak_days"],
            last_session_date=row["last_session_date"],
            updated_at=row["updated_at"],
            today=TodaySummary(
                earned_minutes=row["today_earned_minutes"],
                spent_minutes=row["today_spent_minutes"],
                sessions_completed=row["today_sessions_completed"],
                sessions_failed=row["today_sessions_failed"],
            ),
        )

    @with_db_retry(max_retries=0)
    async def record_session(
        self, external_id: str, outcome: SessionOutcome, multiplier: int, reward_minutes: int
    ) -> UserBalance | None:
        completed = outcome.status == "completed"

        async with self.pool.transaction() as conn:
            user_row = await fetch_one(
                conn, "SELECT id FROM users WHERE clerk_user_id = %s", (external_id,)
            )
            if not user_row:
                return None
            user_id = user_row["id"]

            await execute_query(
                conn,
                INSERT_SESSION_QUERY,
                {
                    "user_id": user_id,
                    "mode": outcome.mode,
                    "multiplier": multiplier,
                    "started_at": outcome.started_at,
                    "ended_at": outcome.ended_at,
                    "planned": outcome.planned_duration_minutes,
                    "duration": outcome.duration_minutes,
                    "reward": reward_minutes,
                    "status": outcome.status,
                },
            )

            if completed:
                balance_row = await self._credit_on(
                    conn, external_id, reward_minutes, outcome.started_at.date()
                )
            else:
                balance_row = await fetch_one(
                    conn, "SELECT * FROM user_balance WHERE user_id = %s", (user_id,)
                )
            if balance_row is None or balance_row["user_id"] is None:
                # Raising rolls back the session insert as well
                logger.error("User exists without balance row", external_id=external_id)
                raise IntegrityViolationError(external_id=external_id)

            await execute_query(
                conn,
                UPDATE_STATS_QUERY,
                {
                    "user_id": user_id,
                    "completed": int(completed),
                    "failed": int(not completed),
                    "focus_minutes": outcome.duration_minutes if completed else 0,
                    "reward": reward_minutes,
                    "streak": balance_row["current_streak_days"],
                    "fun": int(outcome.mode == "fun"),
                    "easy": int(outcome.mode == "easy"),
                    "medium": int(outcome.mode == "medium"),
                    "hard": int(outcome.mode == "hard"),
                    "started_at": outcome.started_at,
                },
            )

        logger.info(
            "Focus session recorded",
            external_id=external_id,
            status=outcome.status,
            mode=outcome.mode,
            reward_minutes=reward_minutes,
        )
        return _to_balance(balance_row)

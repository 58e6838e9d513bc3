"""
PostgreSQL persistence for identity records.

The users row owns user_balance, user_stats and user_preferences through
ON DELETE CASCADE foreign keys: creation inserts all four in one
transaction and deletion is a single DELETE on users.
"""

from psycopg import sql

from app.db.helpers import execute_query, fetch_one, normalize_row, with_db_retry
from app.db.pool import DatabasePoolManager
from app.db.update_builder import ABSENT, UpdateBuilder
from app.infrastructure.observability.logging import get_logger
from app.models.domain.user_domain import User, UserBalance, UserProfile, UserStats
from app.repositories.base import IdentityRepository
from app.services.errors import IntegrityViolationError

logger = get_logger(__name__)


class PostgresIdentityRepository(IdentityRepository):
    """Identity record store backed by the users table."""

    def __init__(self, pool: DatabasePoolManager):
        self.pool = pool

    @with_db_retry(max_retries=2, base_delay=0.1)
    async def create(self, external_id: str, email: str | None, display_name: str | None) -> User:
        async with self.pool.transaction() as conn:
            row = await fetch_one(
                conn,
                """
                INSERT INTO users (clerk_user_id, email, display_name)
                VALUES (%s, %s, %s)
                RETURNING *
                """,
                (external_id, email, display_name),
            )
            user_id = row["id"]
            await execute_query(conn, "INSERT INTO user_balance (user_id) VALUES (%s)", (user_id,))
            await execute_query(conn, "INSERT INTO user_stats (user_id) VALUES (%s)", (user_id,))
            await execute_query(
                conn, "INSERT INTO user_preferences (user_id) VALUES (%s)", (user_id,)
            )

        user = User.model_validate(normalize_row(row))
        logger.info("User record group created", external_id=external_id, user_id=user.id)
        return user

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def find_by_external_id(self, external_id: str) -> User | None:
        async with self.pool.connection() as conn:
            row = await fetch_one(
                conn, "SELECT * FROM users WHERE clerk_user_id = %s", (external_id,)
            )
        return User.model_validate(normalize_row(row)) if row else None

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def update(self, external_id: str, *, email=ABSENT, display_name=ABSENT) -> User | None:
        builder = UpdateBuilder("users").set("email", email).set("display_name", display_name)
        if builder.is_noop:
            return await self.find_by_external_id(external_id)

        query, params = builder.build(
            where=sql.SQL("clerk_user_id = %s"),
            where_params=(external_id,),
            returning=sql.SQL("*"),
        )
        async with self.pool.connection() as conn:
            row = await fetch_one(conn, query, params)

        if row:
            logger.info("User record updated", external_id=external_id, fields=builder.columns)
        return User.model_validate(normalize_row(row)) if row else None

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def delete(self, external_id: str) -> bool:
        async with self.pool.connection() as conn:
            row = await fetch_one(
                conn, "DELETE FROM users WHERE clerk_user_id = %s RETURNING id", (external_id,)
            )
        if row:
            logger.info("User record group deleted", external_id=external_id)
        return row is not None

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get_profile(self, external_id: str) -> UserProfile | None:
        # One statement so the three rows come from the same snapshot
        query = """
        SELECT
            to_jsonb(u) AS identity,
            to_jsonb(ub) AS balance,
            to_jsonb(us) AS stats
        FROM users u
        LEFT JOIN user_balance ub ON ub.user_id = u.id
        LEFT JOIN user_stats us ON us.user_id = u.id
        WHERE u.clerk_user_id = %s
        """
        async with self.pool.connection() as conn:
            row = await fetch_one(conn, query, (external_id,))

        if not row:
            return None

        if row["balance"] is None or row["stats"] is None:
            logger.error(
                "User exists without balance/stats rows",
                external_id=external_id,
                has_balance=row["balance"] is not None,
                has_stats=row["stats"] is not None,
            )
            raise IntegrityViolationError(external_id=external_id)

        return UserProfile(
            user=User.model_validate(row["identity"]),
            balance=UserBalance.model_validate(row["balance"]),
            stats=UserStats.model_validate(row["stats"]),
        )

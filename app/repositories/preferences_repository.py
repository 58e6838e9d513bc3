"""PostgreSQL persistence for focus preferences."""

from psycopg import sql

from app.db.helpers import fetch_one, normalize_row, with_db_retry
from app.db.pool import DatabasePoolManager
from app.db.update_builder import ABSENT, UpdateBuilder
from app.models.domain.user_domain import UserPreferences
from app.repositories.base import PreferencesRepository


class PostgresPreferencesRepository(PreferencesRepository):
    def __init__(self, pool: DatabasePoolManager):
        self.pool = pool

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get(self, external_id: str) -> UserPreferences | None:
        query = """
        SELECT up.* FROM user_preferences up
        JOIN users u ON u.id = up.user_id
        WHERE u.clerk_user_id = %s
        """
        async with self.pool.connection() as conn:
            row = await fetch_one(conn, query, (external_id,))
        return UserPreferences.model_validate(normalize_row(row)) if row else None

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def update(
        self, external_id: str, *, focus_duration_minutes=ABSENT, focus_mode=ABSENT
    ) -> UserPreferences | None:
        builder = (
            UpdateBuilder("user_preferences")
            .set("focus_duration_minutes", focus_duration_minutes)
            .set("focus_mode", focus_mode)
        )
        if builder.is_noop:
            return await self.get(external_id)

        query, params = builder.build(
            from_clause=sql.SQL("users"),
            where=sql.SQL("users.id = user_preferences.user_id AND users.clerk_user_id = %s"),
            where_params=(external_id,),
            returning=sql.SQL("user_preferences.*"),
        )
        async with self.pool.connection() as conn:
            row = await fetch_one(conn, query, params)
        return UserPreferences.model_validate(normalize_row(row)) if row else None

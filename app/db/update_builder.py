"""
Partial UPDATE statement builder.

Starts from no assignments and folds in one explicit ``column = value``
assignment per present field. A field that is absent leaves its column
unchanged; it is never written as NULL. Passing ``None`` as a value is an
explicit assignment of NULL and is distinct from leaving the field out.
"""

from typing import Any

from psycopg import sql


class _Absent:
    """Marker for a field the caller did not provide."""

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT: Any = _Absent()


class UpdateBuilder:
    """Build a single ``UPDATE ... RETURNING`` statement shape per call."""

    def __init__(self, table: str, *, touch_column: str | None = "updated_at"):
        self.table = table
        self.touch_column = touch_column
        self._assignments: list[tuple[str, Any]] = []

    def set(self, column: str, value: Any) -> "UpdateBuilder":
        """Fold in ``column = value`` unless value is ABSENT."""
        if value is not ABSENT:
            self._assignments.append((column, value))
        return self

    @property
    def columns(self) -> list[str]:
        return [column for column, _ in self._assignments]

    @property
    def is_noop(self) -> bool:
        return not self._assignments

    def build(
        self,
        *,
        from_clause: sql.Composable | None = None,
        where: sql.Composable,
        where_params: tuple = (),
        returning: sql.Composable | None = None,
    ) -> tuple[sql.Composed, tuple]:
        """
        Compose the statement.

        Raises ValueError when no field was provided; callers treat a no-op
        update as a read instead of issuing an empty SET.
        """
        if self.is_noop:
            raise ValueError("UpdateBuilder has no assignments")

        assignments = [
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column, _ in self._assignments
        ]
        if self.touch_column:
            assignments.append(sql.SQL("{} = NOW()").format(sql.Identifier(self.touch_column)))

        parts = [
            sql.SQL("UPDATE {} SET ").format(sql.Identifier(self.table)),
            sql.SQL(", ").join(assignments),
        ]
        if from_clause is not None:
            parts.extend([sql.SQL(" FROM "), from_clause])
        parts.extend([sql.SQL(" WHERE "), where])
        if returning is not None:
            parts.extend([sql.SQL(" RETURNING "), returning])

        params = tuple(value for _, value in self._assignments) + tuple(where_params)
        return sql.Composed(parts), params

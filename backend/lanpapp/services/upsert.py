"""Upsert Helpers — INSERT ... ON CONFLICT for PostgreSQL and SQLite.

Invariants:
    - Conflict target is always a declared unique constraint's column set
    - upsert: last write wins, concurrent upserts on one key leave exactly one row
    - insert_ignore: existing rows are left untouched

Design Decisions:
    - Dialect picked from the session's bind at call time: production runs on
      asyncpg, tests on aiosqlite, both support ON CONFLICT natively
"""

from collections.abc import Sequence

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from lanpapp.core.errors import PersistenceError

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _insert_for(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    insert = _INSERTS.get(dialect)
    if insert is None:
        raise PersistenceError(f"unsupported dialect {dialect}", "upsert")
    return insert


async def upsert(
    db: AsyncSession,
    model: type,
    values: dict,
    conflict_columns: Sequence[str],
    update_columns: Sequence[str],
) -> None:
    """Insert a row or overwrite update_columns on the existing one."""
    stmt = _insert_for(db)(model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=list(conflict_columns),
        set_={column: stmt.excluded[column] for column in update_columns},
    )
    await db.execute(stmt)


async def insert_ignore(
    db: AsyncSession,
    model: type,
    rows: list[dict],
    conflict_columns: Sequence[str],
) -> int:
    """Insert rows, skipping those that collide. Returns rows actually inserted."""
    if not rows:
        return 0
    stmt = _insert_for(db)(model).values(rows)
    stmt = stmt.on_conflict_do_nothing(index_elements=list(conflict_columns))
    result = await db.execute(stmt)
    return result.rowcount

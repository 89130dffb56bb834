"""Dialect-aware ``INSERT ... ON CONFLICT`` helpers.

PostgreSQL runs production; SQLite runs local development and the test
suite. Both support ``ON CONFLICT`` through their dialect ``insert``.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def dialect_insert(db: AsyncSession, model: Any) -> Any:  # noqa: ANN401
    """Return the dialect-specific ``insert()`` construct for ``model``."""
    name = db.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert(model)
    if name == "sqlite":
        return sqlite.insert(model)
    msg = f"Unsupported database dialect for upserts: {name}"
    raise RuntimeError(msg)


async def insert_ignore(
    db: AsyncSession,
    model: Any,  # noqa: ANN401
    values: dict[str, Any],
    index_elements: list[str],
) -> bool:
    """Insert a row unless it collides on ``index_elements``. Returns True if inserted."""
    stmt = dialect_insert(db, model).values(**values).on_conflict_do_nothing(index_elements=index_elements)
    result = await db.execute(stmt)
    return bool(result.rowcount)

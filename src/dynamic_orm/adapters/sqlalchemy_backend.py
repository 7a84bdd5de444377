"""
SQLAlchemy implementation of the database backend.

Statements written with ``?`` positional placeholders are rewritten to
named bind parameters (``:p0``, ``:p1``, ...) and run through
:func:`sqlalchemy.text` on an ``AsyncEngine``.  Placeholders inside quoted
literals or identifiers are left untouched.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

    from ..ports import ITransactionConnection, Row

T = TypeVar("T")

logger = logging.getLogger("dynamic_orm.sqlalchemy")


def bind_positional(sql: str, params: Sequence[Any]) -> tuple[str, dict[str, Any]]:
    """
    Rewrite ``?`` placeholders to ``:pN`` and pair them with ``params``.

    Raises:
        ValueError: when the placeholder count does not match ``params``.
    """
    out: list[str] = []
    quote: str | None = None
    index = 0
    for char in sql:
        if quote is not None:
            if char == quote:
                quote = None
            out.append(char)
        elif char in ("'", '"'):
            quote = char
            out.append(char)
        elif char == "?":
            out.append(f":p{index}")
            index += 1
        else:
            out.append(char)

    if index != len(params):
        raise ValueError(
            f"Statement has {index} placeholders but {len(params)} parameters"
        )
    return "".join(out), {f"p{i}": value for i, value in enumerate(params)}


async def _run(
    connection: AsyncConnection, sql: str, params: Sequence[Any]
) -> list[Row]:
    statement, binds = bind_positional(sql, params)
    result = await connection.execute(text(statement), binds)
    if not result.returns_rows:
        return []
    return [dict(row) for row in result.mappings().all()]


class SQLAlchemyConnection:
    """``ITransactionConnection`` bound to one open ``AsyncConnection``."""

    def __init__(self, connection: AsyncConnection) -> None:
        self._connection = connection

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        return await _run(self._connection, sql, params)


class SQLAlchemyDatabaseBackend:
    """
    ``IDatabaseBackend`` over an ``AsyncEngine``.

    Each ``execute`` call runs in its own short transaction;
    ``run_transaction`` keeps one connection and transaction open for the
    whole callback::

        backend = SQLAlchemyDatabaseBackend.from_url("sqlite+aiosqlite:///app.db")
        rows = await backend.execute("SELECT * FROM users WHERE id = ?", [1])
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    @classmethod
    def from_url(cls, url: str, **engine_kwargs: Any) -> SQLAlchemyDatabaseBackend:
        return cls(create_async_engine(url, **engine_kwargs))

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        async with self._engine.begin() as connection:
            return await _run(connection, sql, params)

    async def run_transaction(
        self, fn: Callable[[ITransactionConnection], Awaitable[T]]
    ) -> T:
        async with self._engine.begin() as connection:
            try:
                return await fn(SQLAlchemyConnection(connection))
            except Exception:
                logger.debug("Rolling back transaction after callback failure")
                raise

    async def dispose(self) -> None:
        await self._engine.dispose()

"""IDatabaseBackend - Protocol for the storage backend."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

T = TypeVar("T")

Row = dict[str, Any]


@runtime_checkable
class ITransactionConnection(Protocol):
    """Connection-scoped executor handed out for the duration of a transaction."""

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        """Execute ``sql`` inside the transaction and return its rows."""
        ...


@runtime_checkable
class IDatabaseBackend(Protocol):
    """
    Abstract interface for SQL storage backends.

    Statements use ``?`` positional placeholders; ``params`` are bound in
    order. Statements that return no rows yield an empty list.

    ``run_transaction`` opens a transaction, awaits ``fn`` with a
    connection-scoped executor, commits on success and rolls back when
    ``fn`` raises (the exception is re-raised unchanged).
    """

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> list[Row]: ...

    async def run_transaction(
        self, fn: Callable[[ITransactionConnection], Awaitable[T]]
    ) -> T: ...

"""Shared fixtures for dynamic-orm tests."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock

import pytest

from dynamic_orm.adapters.memory import InMemoryCacheBackend
from dynamic_orm.model import DynamicModel

Statements = Callable[[], list[tuple[str, list[Any]]]]


@pytest.fixture
def db() -> AsyncMock:
    """Database backend double: every statement returns no rows by default."""
    backend = AsyncMock()
    backend.execute = AsyncMock(return_value=[])
    return backend


@pytest.fixture
def cache() -> InMemoryCacheBackend:
    return InMemoryCacheBackend()


@pytest.fixture
def users(db: AsyncMock, cache: InMemoryCacheBackend) -> DynamicModel:
    return DynamicModel(
        "users",
        db,
        cache,
        use_cache=True,
        searchable_fields=["name", "email"],
        id_generator=lambda: "generated-id",
    )


@pytest.fixture
def executed(db: AsyncMock) -> Statements:
    """``(sql, params)`` of every statement sent to ``db.execute`` so far."""

    def _statements() -> list[tuple[str, list[Any]]]:
        return [
            (call.args[0], list(call.args[1])) for call in db.execute.await_args_list
        ]

    return _statements

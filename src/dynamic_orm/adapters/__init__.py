"""Concrete database and cache backends."""

from __future__ import annotations

from .ids import uuid4_generator
from .memory import InMemoryCacheBackend, NullCacheBackend
from .redis_cache import RedisCacheBackend
from .sqlalchemy_backend import (
    SQLAlchemyConnection,
    SQLAlchemyDatabaseBackend,
    bind_positional,
)

__all__ = [
    "InMemoryCacheBackend",
    "NullCacheBackend",
    "RedisCacheBackend",
    "SQLAlchemyConnection",
    "SQLAlchemyDatabaseBackend",
    "bind_positional",
    "uuid4_generator",
]

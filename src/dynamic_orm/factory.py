"""Factory wiring one database backend and one cache backend into models."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import AsyncEngine

from .adapters.memory import NullCacheBackend
from .adapters.redis_cache import RedisCacheBackend
from .adapters.sqlalchemy_backend import SQLAlchemyDatabaseBackend
from .exceptions import ConfigurationError
from .model import DynamicModel
from .ports import IDatabaseBackend

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from .ports import ICacheBackend

logger = logging.getLogger("dynamic_orm.factory")


def _resolve_database(db: Any) -> IDatabaseBackend:
    if db is None:
        raise ConfigurationError("Database backend is required")
    if isinstance(db, AsyncEngine):
        return SQLAlchemyDatabaseBackend(db)
    if isinstance(db, str):
        return SQLAlchemyDatabaseBackend.from_url(db)
    if isinstance(db, IDatabaseBackend):
        return db
    raise ConfigurationError(
        f"Unsupported database backend {type(db).__name__!r}: expected an "
        "AsyncEngine, a database URL or an object with execute() and "
        "run_transaction()"
    )


class ORM:
    """Builds :class:`DynamicModel` instances sharing the same backends."""

    def __init__(
        self, db: IDatabaseBackend, cache: ICacheBackend, use_cache: bool
    ) -> None:
        self.db = db
        self.cache = cache
        self.use_cache = use_cache

    def create_model(self, table: str, **options: Any) -> DynamicModel:
        """Create a model for ``table``; the ORM-wide ``use_cache`` wins."""
        options.pop("useCache", None)
        options["use_cache"] = self.use_cache
        return DynamicModel(table, self.db, self.cache, **options)


def create_orm(
    db: AsyncEngine | IDatabaseBackend | str | None,
    redis: Redis | None = None,
    use_cache: bool = False,
) -> ORM:
    """
    Wire a database and an optional Redis client into an :class:`ORM`.

    ``db`` may be an ``AsyncEngine``, a SQLAlchemy database URL or any
    ``IDatabaseBackend``.  A Redis cache is used only when ``use_cache`` is
    set and a client is given; otherwise reads bypass the cache.

    Raises:
        ConfigurationError: when ``db`` is missing or unsupported.
    """
    backend = _resolve_database(db)
    cache: ICacheBackend
    if use_cache and redis is not None:
        cache = RedisCacheBackend(redis)
    else:
        if use_cache:
            logger.warning("Caching requested without a Redis client; disabled")
        cache = NullCacheBackend()
    return ORM(backend, cache, use_cache and redis is not None)

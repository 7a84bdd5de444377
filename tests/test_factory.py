"""Tests for create_orm wiring."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from dynamic_orm.adapters.memory import NullCacheBackend
from dynamic_orm.adapters.redis_cache import RedisCacheBackend
from dynamic_orm.adapters.sqlalchemy_backend import SQLAlchemyDatabaseBackend
from dynamic_orm.exceptions import ConfigurationError
from dynamic_orm.factory import create_orm


def database() -> AsyncMock:
    """Backend double with the attributes IDatabaseBackend checks for."""
    db = AsyncMock()
    db.execute = AsyncMock(return_value=[])
    db.run_transaction = AsyncMock()
    return db


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:")
    yield eng
    await eng.dispose()


class TestDatabaseResolution:
    def test_database_is_required(self):
        with pytest.raises(ConfigurationError, match="required"):
            create_orm(None)

    def test_unsupported_database(self):
        with pytest.raises(ConfigurationError, match="Unsupported database backend"):
            create_orm(object())

    def test_backend_is_used_as_is(self):
        backend = database()
        assert create_orm(backend).db is backend

    @pytest.mark.asyncio
    async def test_engine_is_wrapped(self, engine):
        orm = create_orm(engine)
        assert isinstance(orm.db, SQLAlchemyDatabaseBackend)
        assert orm.db.engine is engine

    @pytest.mark.asyncio
    async def test_url_builds_engine(self):
        orm = create_orm("sqlite+aiosqlite:///:memory:")
        assert isinstance(orm.db, SQLAlchemyDatabaseBackend)
        await orm.db.dispose()


class TestCacheSelection:
    def test_redis_cache_when_enabled(self):
        orm = create_orm(database(), redis=AsyncMock(), use_cache=True)
        assert isinstance(orm.cache, RedisCacheBackend)
        assert orm.use_cache is True

    def test_redis_client_without_use_cache(self):
        orm = create_orm(database(), redis=AsyncMock())
        assert isinstance(orm.cache, NullCacheBackend)
        assert orm.use_cache is False

    def test_use_cache_without_client_is_disabled(self, caplog):
        with caplog.at_level(logging.WARNING, logger="dynamic_orm.factory"):
            orm = create_orm(database(), use_cache=True)
        assert isinstance(orm.cache, NullCacheBackend)
        assert orm.use_cache is False
        assert "without a Redis client" in caplog.text


class TestCreateModel:
    def test_models_share_backends(self):
        orm = create_orm(database(), redis=AsyncMock(), use_cache=True)
        users = orm.create_model("users")
        posts = orm.create_model("posts", primary_key="post_id")

        assert users.table == "users"
        assert posts.primary_key == "post_id"
        assert users._db is posts._db is orm.db
        assert users._cache is posts._cache is orm.cache

    def test_orm_cache_setting_wins(self):
        orm = create_orm(database())
        model = orm.create_model("users", useCache=True, cacheTTL=5)
        assert model.use_cache is False
        assert model.options.cache_ttl == 5

    @pytest.mark.asyncio
    async def test_model_reads_through_shared_cache(self):
        db = database()
        db.execute.return_value = [{"count": 2}]
        redis = AsyncMock()
        redis.get.return_value = None
        orm = create_orm(db, redis=redis, use_cache=True)

        assert await orm.create_model("users", cacheTTL=30).count() == 2
        redis.setex.assert_awaited_once_with('users:count:{"filters":{}}', 30, "2")

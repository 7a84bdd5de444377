"""DynamicModel - table-bound data access with read-through caching."""

from __future__ import annotations

import asyncio
import json
import logging
import math
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import ValidationError as PydanticValidationError

from .adapters.memory import NullCacheBackend
from .config import ModelOptions
from .query.cache_keys import CacheOperation, build_cache_key, table_pattern
from .query.filters import AliasResolver
from .query.normalizer import normalize_query
from .query.reassembly import (
    build_relation_fetch,
    collect_keys,
    group_children,
    merge_batched_rows,
    split_joined_rows,
)
from .query.statement import plan_count, plan_query
from .query.types import PaginationMeta, QueryResult
from .query.writes import build_delete, build_find_by, build_insert, build_update
from .transactions import TransactionalModel
from .validation import require_id, require_payload

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping, Sequence

    from .ports import ICacheBackend, IDatabaseBackend, ILogger, Row
    from .query.normalizer import NormalizedQuery
    from .query.statement import QueryPlan
    from .query.types import FieldSpec, LegacyFilterCall, QuerySpec

T = TypeVar("T")

logger = logging.getLogger("dynamic_orm.model")


class DynamicModel:
    """
    Data access for one table, configured by :class:`ModelOptions`.

    Reads (``find_all``, ``find_by_id``, ``find_by_field``, ``count``) go
    through the cache when ``use_cache`` is enabled; writes invalidate every
    cached entry of the table.  Storage errors are logged and re-raised
    unchanged, cache errors are logged and absorbed.

    Example::

        users = DynamicModel("users", db, cache, searchable_fields=["name"])
        page = await users.find_all(
            {
                "filters": {"role": "admin", "age": {"gte": 18}},
                "sort": "-created_at",
                "pagination": {"page": 2, "limit": 20},
                "relations": [
                    {"table": "posts", "foreignKey": "user_id", "type": "many"}
                ],
            }
        )
    """

    def __init__(
        self,
        table: str,
        db: IDatabaseBackend,
        cache: ICacheBackend | None = None,
        options: ModelOptions | Mapping[str, Any] | None = None,
        **overrides: Any,
    ) -> None:
        if isinstance(options, ModelOptions):
            resolved = options.with_overrides(**overrides)
        else:
            resolved = ModelOptions.model_validate({**(options or {}), **overrides})

        self.table = table
        self.options = resolved
        self._db = db
        self._cache: ICacheBackend = cache if cache is not None else NullCacheBackend()
        self._logger: ILogger = resolved.logger or logger
        # Loggers exposing only ``warn`` are accepted for cache warnings.
        warning = getattr(self._logger, "warning", None)
        self._warn: Callable[..., None] = (
            warning if warning is not None else self._logger.warn  # type: ignore[attr-defined]
        )

    @property
    def primary_key(self) -> str:
        return self.options.primary_key

    @property
    def use_cache(self) -> bool:
        return self.options.use_cache

    # -- reads --------------------------------------------------------------

    async def find_all(
        self,
        query: QuerySpec | LegacyFilterCall | Mapping[str, Any] | None = None,
    ) -> QueryResult:
        """Find records with filtering, search, sorting, pagination and relations."""
        normalized = normalize_query(query)
        key = self._cache_key("findAll", normalized.cache_arguments())

        cached = await self._cache_get(key)
        if cached:
            try:
                return QueryResult.model_validate_json(cached)
            except PydanticValidationError as e:
                self._warn(
                    "[%s] Discarding unreadable cache entry %s: %s", self.table, key, e
                )

        opts = self.options
        try:
            plan = plan_query(
                self.table,
                opts.primary_key,
                normalized,
                searchable_fields=opts.searchable_fields,
                default_limit=opts.default_limit,
                max_limit=opts.max_limit,
                split_joined=opts.relation_strategy == "join",
            )
            total: int | None = None
            if plan.count_sql is not None:
                count_rows = await self._execute(plan.count_sql, plan.params)
                total = int(count_rows[0]["total"]) if count_rows else 0

            rows = await self._execute(plan.data_sql, plan.params)
            data = await self._reassemble(rows, normalized, plan)
            if total is None:
                # Unpaginated structured calls skip COUNT: every row is here.
                total = len(data)
        except Exception as e:
            self._logger.error("[%s] findAll error: %s", self.table, e)
            raise

        result = QueryResult(data=data, pagination=self._pagination(plan, total))
        if self.use_cache:
            try:
                payload = result.model_dump_json(by_alias=True)
            except Exception as e:  # noqa: BLE001
                self._warn(
                    "[%s] Cache set skipped for key %s: %s", self.table, key, e
                )
            else:
                await self._cache_set(key, payload)
        return result

    async def get_all(
        self,
        query: QuerySpec | LegacyFilterCall | Mapping[str, Any] | None = None,
    ) -> QueryResult:
        """Alias of :meth:`find_all` kept for older callers."""
        return await self.find_all(query)

    async def find_by_id(
        self, entity_id: Any, fields: FieldSpec | None = None
    ) -> Row | None:
        """Find a record by primary key; ``None`` when missing."""
        if entity_id is None or entity_id == "":
            return None
        key = self._cache_key("findById", {"id": entity_id, "fields": fields})
        return await self._find_one(
            "findById",
            key,
            *build_find_by(self.table, self.primary_key, entity_id, fields),
        )

    async def find_by_field(
        self, field: str, value: Any, fields: FieldSpec | None = None
    ) -> Row | None:
        """Find the first record whose ``field`` equals ``value``."""
        if not field:
            return None
        key = self._cache_key(
            "findByField", {"field": field, "value": value, "fields": fields}
        )
        return await self._find_one(
            "findByField",
            key,
            *build_find_by(self.table, field, value, fields, limit_one=True),
        )

    async def count(self, filters: Mapping[str, Any] | None = None) -> int:
        """Count records matching ``filters``."""
        filters = dict(filters or {})
        key = self._cache_key("count", {"filters": filters})

        cached = await self._cache_get(key)
        if cached:
            try:
                return int(cached)
            except ValueError:
                self._warn(
                    "[%s] Discarding unreadable cache entry %s", self.table, key
                )

        sql, params = plan_count(self.table, filters)
        try:
            rows = await self._execute(sql, params)
        except Exception as e:
            self._logger.error("[%s] count error: %s", self.table, e)
            raise

        total = int(rows[0]["count"]) if rows else 0
        await self._cache_set(key, str(total))
        return total

    # -- writes -------------------------------------------------------------

    async def create(
        self, data: Mapping[str, Any], return_record: bool = True
    ) -> Row | list[Row] | None:
        """Insert a record, assigning a generated primary key when absent."""
        payload = self.prepare_insert(data)
        sql, params = build_insert(self.table, payload, returning=return_record)
        try:
            rows = await self._execute(sql, params)
        except Exception as e:
            self._logger.error("[%s] create error: %s", self.table, e)
            raise

        await self.invalidate_table_cache()
        if return_record:
            return rows[0] if rows else None
        return rows

    async def update(
        self, entity_id: Any, data: Mapping[str, Any], return_record: bool = True
    ) -> Row | list[Row] | None:
        """Update a record by primary key; ``None`` when nothing matched."""
        require_id(entity_id)
        payload = require_payload(data, "Update data must be a non-empty mapping")
        sql, params = build_update(
            self.table, self.primary_key, entity_id, payload, returning=return_record
        )
        try:
            rows = await self._execute(sql, params)
        except Exception as e:
            self._logger.error("[%s] update error: %s", self.table, e)
            raise

        await self._invalidate_record(entity_id)
        if return_record:
            return rows[0] if rows else None
        return rows

    async def delete(
        self, entity_id: Any, return_record: bool = False
    ) -> Row | list[Row] | None:
        """Delete a record by primary key.

        With ``return_record`` the record is read first; a missing record
        returns ``None`` and nothing is deleted.
        """
        require_id(entity_id)
        deleted: Row | None = None
        if return_record:
            deleted = await self.find_by_id(entity_id)
            if deleted is None:
                return None

        sql, params = build_delete(self.table, self.primary_key, entity_id)
        try:
            rows = await self._execute(sql, params)
        except Exception as e:
            self._logger.error("[%s] delete error: %s", self.table, e)
            raise

        await self._invalidate_record(entity_id)
        return deleted if return_record else rows

    # -- transactions & raw SQL ---------------------------------------------

    async def run_in_transaction(
        self, fn: Callable[[TransactionalModel], Awaitable[T]]
    ) -> T:
        """
        Run ``fn`` against a :class:`TransactionalModel` bound to one
        transaction.  The table cache is invalidated once after commit;
        nothing is invalidated when ``fn`` or the commit fails.
        """

        async def scoped(connection: Any) -> T:
            return await fn(TransactionalModel(self, connection))

        try:
            result = await self._db.run_transaction(scoped)
        except Exception as e:
            self._logger.error("[%s] transaction error: %s", self.table, e)
            raise

        await self.invalidate_table_cache()
        return result

    async def raw_query(
        self, sql: str, params: Sequence[Any] | None = None
    ) -> list[Row]:
        """Execute arbitrary SQL with ``?`` placeholders."""
        try:
            return await self._execute(sql, params or ())
        except Exception as e:
            self._logger.error("[%s] rawQuery error: %s", self.table, e)
            raise

    # -- cache --------------------------------------------------------------

    async def invalidate_table_cache(self) -> None:
        """Delete every cached entry of this table."""
        if not self.use_cache:
            return
        try:
            keys = await self._cache.list_keys(table_pattern(self.table))
            if keys:
                await self._cache.delete(keys)
        except Exception as e:  # noqa: BLE001
            self._warn("[%s] Cache invalidation failed: %s", self.table, e)

    def prepare_insert(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Validate an insert payload and fill in a generated primary key."""
        payload = require_payload(data, "Data must be a non-empty mapping")
        generator = self.options.id_generator
        if generator is not None and payload.get(self.primary_key) in (None, ""):
            payload[self.primary_key] = generator()
        return payload

    # -- internals ----------------------------------------------------------

    def _cache_key(self, operation: CacheOperation, arguments: dict[str, Any]) -> str:
        return build_cache_key(self.table, operation, arguments)

    async def _execute(self, sql: str, params: Sequence[Any]) -> list[Row]:
        self._logger.debug("[%s] %s | params=%r", self.table, sql, list(params))
        return await self._db.execute(sql, list(params))

    async def _find_one(
        self, operation: str, key: str, sql: str, params: list[Any]
    ) -> Row | None:
        cached = await self._cache_get(key)
        if cached:
            try:
                return json.loads(cached)  # type: ignore[no-any-return]
            except ValueError:
                self._warn(
                    "[%s] Discarding unreadable cache entry %s", self.table, key
                )

        try:
            rows = await self._execute(sql, params)
        except Exception as e:
            self._logger.error("[%s] %s error: %s", self.table, operation, e)
            raise

        record = dict(rows[0]) if rows else None
        if record is not None:
            await self._cache_set(key, json.dumps(record, default=str))
        return record

    async def _reassemble(
        self, rows: list[Row], query: NormalizedQuery, plan: QueryPlan
    ) -> list[Row | None]:
        relations = query.relations
        if not relations:
            return list(rows)
        if self.options.relation_strategy == "join":
            return split_joined_rows(rows, relations, self.primary_key)

        resolver = AliasResolver(self.table)
        children: dict[str, dict[Any, list[Row]]] = {}
        for join in plan.joins:
            keys = collect_keys(rows, join.local_key)
            if not keys:
                continue
            sql, params = build_relation_fetch(join, keys, resolver)
            child_rows = await self._execute(sql, params)
            children[join.relation.key] = group_children(child_rows, join.relation)
        return merge_batched_rows(
            rows, plan.joins, children, self.primary_key, relations
        )

    @staticmethod
    def _pagination(plan: QueryPlan, total: int) -> PaginationMeta:
        window = plan.window
        if window is None:
            return PaginationMeta(
                total=total, page=1, limit=total, pages=1, has_next=False
            )
        return PaginationMeta(
            total=total,
            page=window.page,
            limit=window.limit,
            pages=math.ceil(total / window.limit),
            has_next=window.offset + window.limit < total,
        )

    async def _invalidate_record(self, entity_id: Any) -> None:
        if not self.use_cache:
            return
        key = self._cache_key("findById", {"id": entity_id, "fields": None})
        await asyncio.gather(
            self._cache_delete(key),
            self.invalidate_table_cache(),
        )

    async def _cache_get(self, key: str) -> str | None:
        if not self.use_cache:
            return None
        try:
            return await self._cache.get(key)
        except Exception as e:  # noqa: BLE001
            self._warn(
                "[%s] Cache get failed for key %s: %s", self.table, key, e
            )
            return None

    async def _cache_set(self, key: str, value: str) -> None:
        if not self.use_cache:
            return
        try:
            await self._cache.set(key, value, ttl=self.options.cache_ttl)
        except Exception as e:  # noqa: BLE001
            self._warn(
                "[%s] Cache set failed for key %s: %s", self.table, key, e
            )

    async def _cache_delete(self, key: str) -> None:
        try:
            await self._cache.delete(key)
        except Exception as e:  # noqa: BLE001
            self._warn(
                "[%s] Cache delete failed for key %s: %s", self.table, key, e
            )

"""TransactionalModel - a model's write surface bound to one transaction."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .query.writes import build_delete, build_find_by, build_insert, build_update
from .validation import require_id, require_payload

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from .model import DynamicModel
    from .ports import ITransactionConnection, Row
    from .query.types import FieldSpec


class TransactionalModel:
    """
    Executes a model's statements on a transaction-scoped connection.

    Created once per :meth:`DynamicModel.run_in_transaction` call.  It never
    reads or writes the cache: the owning model invalidates the table once
    the transaction commits.
    """

    def __init__(self, model: DynamicModel, connection: ITransactionConnection) -> None:
        self._model = model
        self._connection = connection

    @property
    def table(self) -> str:
        return self._model.table

    @property
    def primary_key(self) -> str:
        return self._model.primary_key

    async def raw_query(
        self, sql: str, params: Sequence[Any] | None = None
    ) -> list[Row]:
        return await self._connection.execute(sql, list(params or ()))

    async def find_by_id(
        self, entity_id: Any, fields: FieldSpec | None = None
    ) -> Row | None:
        sql, params = build_find_by(self.table, self.primary_key, entity_id, fields)
        rows = await self._connection.execute(sql, params)
        return dict(rows[0]) if rows else None

    async def create(
        self, data: Mapping[str, Any], return_record: bool = True
    ) -> Row | list[Row] | None:
        payload = self._model.prepare_insert(data)
        sql, params = build_insert(self.table, payload, returning=return_record)
        rows = await self._connection.execute(sql, params)
        if return_record:
            return rows[0] if rows else None
        return rows

    async def update(
        self, entity_id: Any, data: Mapping[str, Any], return_record: bool = True
    ) -> Row | list[Row] | None:
        require_id(entity_id)
        payload = require_payload(data, "Update data must be a non-empty mapping")
        sql, params = build_update(
            self.table, self.primary_key, entity_id, payload, returning=return_record
        )
        rows = await self._connection.execute(sql, params)
        if return_record:
            return rows[0] if rows else None
        return rows

    async def delete(
        self, entity_id: Any, return_record: bool = False
    ) -> Row | list[Row] | None:
        require_id(entity_id)
        record: Row | None = None
        if return_record:
            record = await self.find_by_id(entity_id)
            if record is None:
                return None
        sql, params = build_delete(self.table, self.primary_key, entity_id)
        rows = await self._connection.execute(sql, params)
        return record if return_record else rows

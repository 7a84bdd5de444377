"""Single-table INSERT/UPDATE/DELETE and lookup statements."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .clauses import build_select_clause

if TYPE_CHECKING:
    from .types import FieldSpec


def build_insert(
    table: str, data: Mapping[str, Any], *, returning: bool = True
) -> tuple[str, list[Any]]:
    columns = ", ".join(data)
    placeholders = ", ".join("?" for _ in data)
    sql = f"INSERT INTO {table} ({columns}) VALUES ({placeholders})"
    if returning:
        sql += " RETURNING *"
    return sql, list(data.values())


def build_update(
    table: str,
    primary_key: str,
    entity_id: Any,
    data: Mapping[str, Any],
    *,
    returning: bool = True,
) -> tuple[str, list[Any]]:
    assignments = ", ".join(f"{column} = ?" for column in data)
    sql = f"UPDATE {table} SET {assignments} WHERE {primary_key} = ?"
    if returning:
        sql += " RETURNING *"
    return sql, [*data.values(), entity_id]


def build_delete(
    table: str, primary_key: str, entity_id: Any
) -> tuple[str, list[Any]]:
    return f"DELETE FROM {table} WHERE {primary_key} = ?", [entity_id]


def build_find_by(
    table: str,
    column: str,
    value: Any,
    fields: FieldSpec | None = None,
    *,
    limit_one: bool = False,
) -> tuple[str, list[Any]]:
    sql = f"SELECT {build_select_clause(fields)} FROM {table} WHERE {column} = ?"
    if limit_one:
        sql += " LIMIT 1"
    return sql, [value]

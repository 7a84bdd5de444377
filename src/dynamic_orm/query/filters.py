"""
Compile filter expressions into SQL conditions and bound parameters.

Each ``(field, value)`` pair yields one condition, or one per operator key
for operator mappings.  Conditions and parameters are produced in the
mapping's iteration order, so the same expression always compiles to the
same SQL.  Values are never interpolated: every value is a ``?`` parameter.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .types import FilterExpression

MAIN_ALIAS = "t1"

OPERATORS: dict[str, str] = {
    "gt": ">",
    "lt": "<",
    "gte": ">=",
    "lte": "<=",
    "ne": "!=",
    "like": "LIKE",
    "ilike": "ILIKE",
}

ALWAYS_FALSE = "FALSE"


class AliasResolver:
    """Maps table names to the short aliases used within one statement.

    The main table is always ``t1``; joined tables are registered in
    encounter order as ``t2``, ``t3``, ...
    """

    def __init__(self, main_table: str, main_alias: str = MAIN_ALIAS) -> None:
        self.main_table = main_table
        self.main_alias = main_alias
        self._aliases: dict[str, str] = {main_table: main_alias}
        self._next_index = 2

    def register(self, table: str) -> str:
        alias = f"t{self._next_index}"
        self._next_index += 1
        self._aliases[table] = alias
        return alias

    def register_alias(self, name: str, alias: str) -> None:
        """Make ``name`` (a relation's ``as``) resolve to an existing alias."""
        self._aliases[name] = alias

    def alias_for(self, table: str) -> str | None:
        return self._aliases.get(table)

    def resolve(self, field: str) -> tuple[str, str]:
        """Return ``(alias, column)`` for a plain or ``table.column`` field.

        An unknown table prefix falls back to the main alias and keeps the
        whole field as the column name.
        """
        table, dot, column = field.partition(".")
        if dot:
            alias = self._aliases.get(table)
            if alias is not None:
                return alias, column
        return self.main_alias, field

    def qualify(self, field: str) -> str:
        alias, column = self.resolve(field)
        return f"{alias}.{column}"


def _operator_conditions(
    column: str, operators: Mapping[str, Any], params: list[Any]
) -> list[str]:
    conditions: list[str] = []
    for op, val in operators.items():
        if val is None:
            conditions.append(
                f"{column} IS NOT NULL" if op == "ne" else f"{column} IS NULL"
            )
            continue
        # Unknown operators fall back to equality.
        token = OPERATORS.get(op, "=")
        conditions.append(f"{column} {token} ?")
        params.append(val)
    return conditions


def compile_condition(column: str, value: Any, params: list[Any]) -> list[str]:
    """Compile one filter value against an already-qualified ``column``."""
    if value is None:
        return [f"{column} IS NULL"]
    if isinstance(value, list | tuple | set | frozenset):
        items = list(value)
        if not items:
            return [ALWAYS_FALSE]
        placeholders = ", ".join("?" for _ in items)
        params.extend(items)
        return [f"{column} IN ({placeholders})"]
    if isinstance(value, Mapping):
        return _operator_conditions(column, value, params)
    params.append(value)
    return [f"{column} = ?"]


def compile_filters(
    filters: FilterExpression | None,
    resolver: AliasResolver,
    *,
    scope_alias: str | None = None,
) -> tuple[list[str], list[Any]]:
    """
    Compile ``filters`` into ``(conditions, params)``.

    Args:
        filters: Field to value mapping.
        resolver: Alias resolver for ``table.column`` keys.
        scope_alias: When set, every key is a plain column of the table
            with this alias (relation filters).

    Returns:
        Conditions meant to be ``AND``-joined, and their parameters in
        placeholder order.
    """
    conditions: list[str] = []
    params: list[Any] = []
    if not filters:
        return conditions, params

    for key, value in filters.items():
        column = f"{scope_alias}.{key}" if scope_alias else resolver.qualify(key)
        conditions.extend(compile_condition(column, value, params))
    return conditions, params

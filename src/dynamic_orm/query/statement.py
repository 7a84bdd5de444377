"""
Assemble the COUNT and DATA statements of one ``find_all`` call.

Both statements share the same FROM/JOIN/WHERE text and the same parameter
list; the COUNT statement omits GROUP BY, ORDER BY and LIMIT/OFFSET.
Condition order is: relation filters (in relation order), the search
group, then main-table filters.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .clauses import (
    JoinClause,
    PageWindow,
    build_field_list,
    build_joins,
    build_order_by,
    build_pagination,
    build_search,
    build_select,
)
from .filters import AliasResolver, compile_filters

if TYPE_CHECKING:
    from .normalizer import NormalizedQuery


@dataclass(frozen=True)
class QueryPlan:
    """SQL text and parameters for one ``find_all`` call."""

    count_sql: str | None
    data_sql: str
    params: tuple[Any, ...]
    joins: tuple[JoinClause, ...] = ()
    window: PageWindow | None = None
    conditions: tuple[str, ...] = ()


def _join_sql(*parts: str) -> str:
    return " ".join(part for part in parts if part)


def _data_fields(
    query: NormalizedQuery, joins: tuple[JoinClause, ...], split_joined: bool
) -> list[str] | None:
    """Main-table projection; batch loading needs each join's local key."""
    names = build_field_list(query.fields)
    if not names or split_joined:
        return names or None
    for join in joins:
        if join.local_key not in names:
            names.append(join.local_key)
    return names


def plan_query(
    table: str,
    primary_key: str,
    query: NormalizedQuery,
    *,
    searchable_fields: list[str] | tuple[str, ...] = (),
    default_limit: int = 100,
    max_limit: int = 1000,
    split_joined: bool = False,
) -> QueryPlan:
    """
    Build the :class:`QueryPlan` for ``query`` against ``table``.

    Args:
        split_joined: Select relation columns under ``"<as>.<field>"``
            aliases (join-then-split reassembly).  When ``False`` only
            main-table columns are selected and relations are loaded by a
            follow-up batch query.
    """
    resolver = AliasResolver(table)
    main = resolver.main_alias
    joins = tuple(build_joins(query.relations, resolver, primary_key))

    conditions: list[str] = []
    params: list[Any] = []

    for join in joins:
        rel_conditions, rel_params = compile_filters(
            join.relation.filters, resolver, scope_alias=join.alias
        )
        conditions.extend(rel_conditions)
        params.extend(rel_params)

    search_condition, search_params = build_search(
        query.search, searchable_fields, resolver
    )
    if search_condition:
        conditions.append(search_condition)
        params.extend(search_params)

    main_conditions, main_params = compile_filters(query.filters, resolver)
    conditions.extend(main_conditions)
    params.extend(main_params)

    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    from_clause = _join_sql(f"FROM {table} {main}", *(j.sql for j in joins))
    group_by = f"GROUP BY {main}.{primary_key}" if joins else ""

    select = build_select(
        _data_fields(query, joins, split_joined),
        main,
        joins,
        include_relations=split_joined,
    )
    order_by = build_order_by(query.sort, resolver)
    window = build_pagination(query.pagination, default_limit, max_limit)

    data_sql = _join_sql(
        f"SELECT {select}",
        from_clause,
        where,
        group_by,
        order_by,
        window.sql if window else "",
    )

    count_sql: str | None = None
    if query.counts_total:
        counted = f"COUNT(DISTINCT {main}.{primary_key})" if joins else "COUNT(*)"
        count_sql = _join_sql(f"SELECT {counted} AS total", from_clause, where)

    return QueryPlan(
        count_sql=count_sql,
        data_sql=data_sql,
        params=tuple(params),
        joins=joins,
        window=window,
        conditions=tuple(conditions),
    )


def plan_count(
    table: str, filters: dict[str, Any] | None
) -> tuple[str, tuple[Any, ...]]:
    """``SELECT COUNT(*)`` for a bare filter expression on ``table``."""
    resolver = AliasResolver(table)
    conditions, params = compile_filters(filters, resolver)
    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    sql = _join_sql(
        f"SELECT COUNT(*) AS count FROM {table} {resolver.main_alias}", where
    )
    return sql, tuple(params)

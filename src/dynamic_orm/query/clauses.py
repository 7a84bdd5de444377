"""
Clause assemblers: JOIN, SELECT, ORDER BY, LIMIT/OFFSET and search.

Every builder is a pure function of its inputs and the statement's
:class:`~dynamic_orm.query.filters.AliasResolver`; none of them perform I/O.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .filters import AliasResolver
    from .types import FieldSpec, PaginationSpec, RelationSpec, SortSpec


@dataclass(frozen=True)
class JoinClause:
    relation: RelationSpec
    alias: str
    local_key: str
    sql: str


@dataclass(frozen=True)
class PageWindow:
    page: int
    limit: int
    offset: int

    @property
    def sql(self) -> str:
        return f"LIMIT {self.limit} OFFSET {self.offset}"


def build_field_list(fields: FieldSpec | None) -> list[str]:
    """Expand a field spec into column names; an empty list means ``*``."""
    if not fields:
        return []
    if isinstance(fields, str):
        return [f.strip() for f in fields.split(",") if f.strip()]
    return list(fields)


def build_select_clause(fields: FieldSpec | None) -> str:
    """Unaliased select list for single-table statements."""
    names = build_field_list(fields)
    return ", ".join(names) if names else "*"


# ── JOIN ─────────────────────────────────────────────────────────────


def build_joins(
    relations: Sequence[RelationSpec],
    resolver: AliasResolver,
    primary_key: str,
) -> list[JoinClause]:
    """
    Build one JOIN per relation that names both ``table`` and ``foreign_key``.

    Aliases are registered on ``resolver`` in encounter order, under the
    relation's table name and, when different, its ``as`` name.
    """
    joins: list[JoinClause] = []
    for relation in relations:
        if not relation.is_joinable:
            continue
        table = relation.table or ""
        alias = resolver.register(table)
        if relation.as_ and resolver.alias_for(relation.as_) is None:
            resolver.register_alias(relation.as_, alias)
        local_key = relation.local_key or primary_key
        sql = (
            f"{relation.join_kind} JOIN {table} {alias} "
            f"ON {resolver.main_alias}.{local_key} = {alias}.{relation.foreign_key}"
        )
        joins.append(JoinClause(relation, alias, local_key, sql))
    return joins


# ── SELECT ───────────────────────────────────────────────────────────


def _qualified_fields(alias: str, fields: FieldSpec | None) -> str:
    names = build_field_list(fields)
    if not names:
        return f"{alias}.*"
    return ", ".join(f"{alias}.{name}" for name in names)


def _relation_fragment(join: JoinClause) -> str | None:
    relation = join.relation
    selected = relation.selected_fields
    if selected is None:
        # Unprefixed columns would collide with the main table's.
        return None
    return ", ".join(
        f'{join.alias}.{name} AS "{relation.key}.{name}"' for name in selected
    )


def build_select(
    fields: FieldSpec | None,
    main_alias: str,
    joins: Sequence[JoinClause] = (),
    *,
    include_relations: bool = True,
) -> str:
    """
    Build the SELECT list.

    Without joins (or with ``include_relations=False``) only main-table
    columns are selected.  Otherwise each joined relation contributes its
    columns aliased as ``"<as>.<field>"`` so flat rows carry relation data
    under prefixed keys.
    """
    parts = [_qualified_fields(main_alias, fields)]
    if include_relations:
        for join in joins:
            fragment = _relation_fragment(join)
            if fragment:
                parts.append(fragment)
    return ", ".join(parts)


# ── ORDER BY ─────────────────────────────────────────────────────────


def _direction(value: Any) -> str:
    return "DESC" if str(value or "").lower() == "desc" else "ASC"


def build_order_by(sort: SortSpec | None, resolver: AliasResolver) -> str:
    """
    Build ``ORDER BY`` from ``"field"``/``"-field"``, a list of those, or a
    ``{field: "asc"|"desc"}`` mapping.  Returns ``""`` when nothing sorts.
    """
    if not sort:
        return ""

    entries: list[tuple[str, str]] = []
    if isinstance(sort, str):
        sort = [sort]
    if isinstance(sort, Mapping):
        entries = [(field, _direction(d)) for field, d in sort.items()]
    else:
        for item in sort:
            if item.startswith("-"):
                entries.append((item[1:], "DESC"))
            else:
                entries.append((item, "ASC"))

    parts = [f"{resolver.qualify(field)} {direction}" for field, direction in entries]
    return f"ORDER BY {', '.join(parts)}" if parts else ""


# ── LIMIT / OFFSET ───────────────────────────────────────────────────


def build_pagination(
    pagination: PaginationSpec | None,
    default_limit: int,
    max_limit: int,
) -> PageWindow | None:
    """Clamp the requested page; ``None`` when pagination was not requested."""
    if pagination is None:
        return None
    page = max(1, pagination.page or 1)
    if pagination.limit:
        limit = min(max_limit, max(1, pagination.limit))
    else:
        limit = default_limit
    return PageWindow(page=page, limit=limit, offset=(page - 1) * limit)


# ── SEARCH ───────────────────────────────────────────────────────────


def build_search(
    term: str | None,
    searchable_fields: Sequence[str],
    resolver: AliasResolver,
) -> tuple[str | None, list[Any]]:
    """OR-join a ``LIKE`` test per searchable field into one condition."""
    if not term or not searchable_fields:
        return None, []
    pattern = f"%{term}%"
    tests = [f"{resolver.qualify(field)} LIKE ?" for field in searchable_fields]
    return f"({' OR '.join(tests)})", [pattern] * len(tests)

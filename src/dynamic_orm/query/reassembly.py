"""
Nest relation data back into primary records.

Two strategies are supported:

- **batch** (default): the DATA statement returns main-table rows only.
  :func:`build_relation_fetch` produces one ``IN`` query per relation and
  :func:`merge_batched_rows` attaches the grouped children.
- **join**: the DATA statement already carries relation columns under
  ``"<as>.<field>"`` keys; :func:`split_joined_rows` strips them into the
  nested value.

Both strategies share the output contract:

- a ``many`` relation is always a list, a single relation is always a
  mapping (``{}`` when absent) or, for a one-field ``select``, a scalar;
- ``None`` entries pass through unchanged;
- rows repeating a primary key collapse into the first one.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from .filters import compile_filters

if TYPE_CHECKING:
    from .clauses import JoinClause
    from .filters import AliasResolver
    from .types import RelationSpec

Record = dict[str, Any]


def _shape(relation: RelationSpec, children: Sequence[Record]) -> Any:
    """Final nested value for ``relation`` given its matched children."""
    single_field = relation.select[0] if relation.collapses_to_scalar else None
    if relation.is_many:
        if single_field is not None:
            return [child.get(single_field) for child in children]
        return list(children)
    if not children:
        return {}
    if single_field is not None:
        return children[0].get(single_field)
    return children[0]


class _Collector:
    """Accumulates distinct primary records in first-seen order."""

    def __init__(self, primary_key: str) -> None:
        self.primary_key = primary_key
        self.slots: list[Record | None] = []
        self.children: list[dict[str, list[Record]]] = []
        self._index: dict[Any, int] = {}

    def add(self, record: Record | None) -> int | None:
        """Return the slot for ``record``'s primary key; ``None`` for nulls."""
        if record is None:
            self.slots.append(None)
            self.children.append({})
            return None
        key = record.get(self.primary_key)
        if key is not None and key in self._index:
            return self._index[key]
        self.slots.append(record)
        self.children.append({})
        slot = len(self.slots) - 1
        if key is not None:
            self._index[key] = slot
        return slot

    def attach(
        self, slot: int, relation_key: str, child: Record, *, unique: bool = True
    ) -> None:
        bucket = self.children[slot].setdefault(relation_key, [])
        if not unique or child not in bucket:
            bucket.append(child)

    def finish(self, relations: Sequence[RelationSpec]) -> list[Record | None]:
        result: list[Record | None] = []
        for record, children in zip(self.slots, self.children, strict=True):
            if record is None:
                result.append(None)
                continue
            for relation in relations:
                if relation.key:
                    record[relation.key] = _shape(
                        relation, children.get(relation.key, [])
                    )
            result.append(record)
        return result


# ── join-then-split ──────────────────────────────────────────────────


def split_joined_rows(
    rows: Sequence[Mapping[str, Any] | None],
    relations: Sequence[RelationSpec],
    primary_key: str,
) -> list[Record | None]:
    """
    Split ``"<as>.<field>"`` columns of joined rows into nested values.

    A relation whose prefixed columns are missing, or all ``NULL`` (an
    unmatched outer join), resolves to ``{}`` / ``[]``.
    """
    prefixes = [(r.key, f"{r.key}.") for r in relations if r.key]
    collector = _Collector(primary_key)

    for row in rows:
        if row is None:
            collector.add(None)
            continue

        base: Record = {}
        extracted: dict[str, Record] = {}
        for column, value in row.items():
            for key, prefix in prefixes:
                if column.startswith(prefix):
                    extracted.setdefault(key, {})[column[len(prefix) :]] = value
                    break
            else:
                base[column] = value

        slot = collector.add(base)
        if slot is None:
            continue
        for key, child in extracted.items():
            if any(value is not None for value in child.values()):
                collector.attach(slot, key, child)

    return collector.finish(relations)


# ── batch-fetch-then-merge ───────────────────────────────────────────


def build_relation_fetch(
    join: JoinClause,
    keys: Sequence[Any],
    resolver: AliasResolver,
) -> tuple[str, list[Any]]:
    """
    ``SELECT`` the children of ``keys`` for one joined relation.

    The foreign key is always selected so children can be grouped; the
    relation's own filters also restrict the children.
    """
    relation = join.relation
    alias = join.alias
    foreign_key = relation.foreign_key or ""
    selected = relation.selected_fields
    if selected is None:
        select = f"{alias}.*"
    else:
        names = list(selected)
        if foreign_key not in names:
            names.append(foreign_key)
        select = ", ".join(f"{alias}.{name}" for name in names)

    placeholders = ", ".join("?" for _ in keys)
    conditions = [f"{alias}.{foreign_key} IN ({placeholders})"]
    params: list[Any] = list(keys)
    rel_conditions, rel_params = compile_filters(
        relation.filters, resolver, scope_alias=alias
    )
    conditions.extend(rel_conditions)
    params.extend(rel_params)

    sql = (
        f"SELECT {select} FROM {relation.table} {alias} "
        f"WHERE {' AND '.join(conditions)}"
    )
    return sql, params


def group_children(
    rows: Sequence[Mapping[str, Any]], relation: RelationSpec
) -> dict[Any, list[Record]]:
    """Group child rows by foreign key value, dropping an unrequested key."""
    foreign_key = relation.foreign_key or ""
    selected = relation.selected_fields
    drop_key = selected is not None and foreign_key not in selected

    grouped: dict[Any, list[Record]] = {}
    for row in rows:
        if row is None:
            continue
        child = dict(row)
        owner = child.get(foreign_key)
        if drop_key:
            child.pop(foreign_key, None)
        if owner is None:
            continue
        grouped.setdefault(owner, []).append(child)
    return grouped


def collect_keys(
    records: Sequence[Mapping[str, Any] | None], column: str
) -> list[Any]:
    """Distinct non-null ``column`` values in first-seen order."""
    values = (r.get(column) for r in records if r is not None)
    return list(dict.fromkeys(v for v in values if v is not None))


def merge_batched_rows(
    records: Sequence[Mapping[str, Any] | None],
    joins: Sequence[JoinClause],
    children: Mapping[str, Mapping[Any, list[Record]]],
    primary_key: str,
    relations: Sequence[RelationSpec] = (),
) -> list[Record | None]:
    """
    Attach grouped children to each primary record.

    Args:
        records: Main-table rows.
        joins: Joined relations, giving each relation's local key.
        children: ``{relation key: {local key value: [child, ...]}}``.
        primary_key: Primary key column used to collapse duplicates.
        relations: Every requested relation; those that were never joined
            still receive their empty default.
    """
    collector = _Collector(primary_key)
    filled: set[int] = set()
    for row in records:
        record = dict(row) if row is not None else None
        slot = collector.add(record)
        if record is None or slot is None or slot in filled:
            continue
        filled.add(slot)
        for join in joins:
            key = join.relation.key
            owned = children.get(key, {}).get(record.get(join.local_key), [])
            for child in owned:
                collector.attach(slot, key, child, unique=False)

    known = list(relations) or [join.relation for join in joins]
    return collector.finish(known)

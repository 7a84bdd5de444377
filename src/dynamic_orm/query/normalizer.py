"""Resolve ``find_all`` arguments into one effective query."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .types import (
    QUERY_SPEC_KEYS,
    FieldSpec,
    LegacyFilterCall,
    PaginationSpec,
    QuerySpec,
    RelationSpec,
    SortSpec,
)


@dataclass(frozen=True)
class NormalizedQuery:
    """Effective query tuple consumed by the statement planner.

    ``force_count`` is set for legacy calls: the total is computed even
    without pagination and the reported limit equals the total.
    """

    filters: Mapping[str, Any] = field(default_factory=dict)
    sort: SortSpec | None = None
    fields: FieldSpec | None = None
    pagination: PaginationSpec | None = None
    search: str | None = None
    relations: tuple[RelationSpec, ...] = ()
    force_count: bool = False

    @property
    def counts_total(self) -> bool:
        return self.pagination is not None or self.force_count

    def cache_arguments(self) -> dict[str, Any]:
        """JSON-compatible view used to build cache keys.

        A sort mapping becomes a list of ``[field, direction]`` pairs so its
        order survives the sorted-key serialization of the cache key.
        """
        return {
            "filters": dict(self.filters),
            "sort": (
                [[name, direction] for name, direction in self.sort.items()]
                if isinstance(self.sort, Mapping)
                else self.sort
            ),
            "fields": self.fields,
            "pagination": (
                self.pagination.model_dump(mode="json")
                if self.pagination is not None
                else None
            ),
            "search": self.search,
            "relations": [
                r.model_dump(mode="json", by_alias=True, exclude_none=True)
                for r in self.relations
            ],
        }


def is_legacy_argument(argument: Any) -> bool:
    """A mapping is legacy when none of its keys is a ``QuerySpec`` key."""
    if isinstance(argument, QuerySpec):
        return False
    if isinstance(argument, LegacyFilterCall):
        return True
    if not isinstance(argument, Mapping):
        return True
    return not any(key in QUERY_SPEC_KEYS for key in argument)


def normalize_query(
    argument: QuerySpec | LegacyFilterCall | Mapping[str, Any] | None = None,
) -> NormalizedQuery:
    """
    Resolve a ``find_all`` argument into a :class:`NormalizedQuery`.

    - ``QuerySpec`` or a mapping holding any ``QuerySpec`` key: structured.
    - ``LegacyFilterCall``, ``None`` or any other mapping: legacy, the whole
      mapping is the filter expression.
    """
    if isinstance(argument, LegacyFilterCall):
        return NormalizedQuery(filters=dict(argument.filters), force_count=True)

    if is_legacy_argument(argument):
        filters = dict(argument) if isinstance(argument, Mapping) else {}
        return NormalizedQuery(filters=filters, force_count=True)

    spec = (
        argument
        if isinstance(argument, QuerySpec)
        else QuerySpec.model_validate(argument)
    )
    return NormalizedQuery(
        filters=spec.filters,
        sort=spec.sort,
        fields=spec.fields,
        pagination=spec.pagination,
        search=spec.search,
        relations=tuple(spec.relations),
        force_count=False,
    )

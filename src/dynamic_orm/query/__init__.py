"""Query engine: filter compilation, clause assembly and result reassembly."""

from __future__ import annotations

from .cache_keys import build_cache_key, table_pattern
from .clauses import (
    JoinClause,
    PageWindow,
    build_field_list,
    build_joins,
    build_order_by,
    build_pagination,
    build_search,
    build_select,
    build_select_clause,
)
from .filters import OPERATORS, AliasResolver, compile_condition, compile_filters
from .normalizer import NormalizedQuery, is_legacy_argument, normalize_query
from .reassembly import (
    build_relation_fetch,
    collect_keys,
    group_children,
    merge_batched_rows,
    split_joined_rows,
)
from .statement import QueryPlan, plan_count, plan_query
from .types import (
    FilterExpression,
    LegacyFilterCall,
    PaginationMeta,
    PaginationSpec,
    QueryResult,
    QuerySpec,
    RelationSpec,
)
from .writes import build_delete, build_find_by, build_insert, build_update

__all__ = [
    "OPERATORS",
    "AliasResolver",
    "FilterExpression",
    "JoinClause",
    "LegacyFilterCall",
    "NormalizedQuery",
    "PageWindow",
    "PaginationMeta",
    "PaginationSpec",
    "QueryPlan",
    "QueryResult",
    "QuerySpec",
    "RelationSpec",
    "build_cache_key",
    "build_delete",
    "build_find_by",
    "build_insert",
    "build_update",
    "build_field_list",
    "build_joins",
    "build_order_by",
    "build_pagination",
    "build_relation_fetch",
    "build_search",
    "build_select",
    "build_select_clause",
    "collect_keys",
    "compile_condition",
    "compile_filters",
    "group_children",
    "is_legacy_argument",
    "merge_batched_rows",
    "normalize_query",
    "plan_count",
    "plan_query",
    "split_joined_rows",
    "table_pattern",
]

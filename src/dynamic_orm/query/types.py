"""
Query value types.

Callers describe *what* to fetch with a :class:`QuerySpec` (filters,
sorting, projection, pagination, free-text search and relations) or, for
backward compatibility, with a bare filter mapping wrapped in a
:class:`LegacyFilterCall`.  Both are resolved once by
:func:`~dynamic_orm.query.normalizer.normalize_query`.

Filter values follow a small grammar::

    {"role": "admin"}                    # role = ?
    {"deleted_at": None}                 # deleted_at IS NULL
    {"status": ["active", "pending"]}    # status IN (?, ?)
    {"age": {"gte": 18, "lt": 65}}       # age >= ? AND age < ?
    {"posts.published": True}            # scoped to the joined posts table
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

FilterExpression = Mapping[str, Any]
SortSpec = str | list[str] | dict[str, str]
FieldSpec = str | list[str]

JoinKind = Literal["inner", "left", "right", "many"]

QUERY_SPEC_KEYS: frozenset[str] = frozenset(
    {"filters", "sort", "fields", "pagination", "search", "relations"}
)


class RelationSpec(BaseModel):
    """A foreign-key link from the main table to ``table``.

    ``type`` selects the JOIN kind; ``"many"`` marks a one-to-many relation
    (joined with ``LEFT``) whose nested value is always a list.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    table: str | None = None
    foreign_key: str | None = Field(default=None, alias="foreignKey")
    local_key: str | None = Field(default=None, alias="localKey")
    as_: str | None = Field(default=None, alias="as")
    type: JoinKind | None = None
    select: FieldSpec | None = None
    filters: dict[str, Any] | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _lower_type(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    @property
    def is_joinable(self) -> bool:
        return bool(self.table) and bool(self.foreign_key)

    @property
    def is_many(self) -> bool:
        return self.type == "many"

    @property
    def key(self) -> str:
        """Name under which nested data appears on the parent record."""
        return self.as_ or self.table or ""

    @property
    def join_kind(self) -> str:
        if self.type in (None, "many"):
            return "LEFT"
        return self.type.upper()

    @property
    def selected_fields(self) -> list[str] | None:
        """Explicit field list, or ``None`` when every column is selected."""
        if self.select is None or self.select == "*":
            return None
        if isinstance(self.select, str):
            return [self.select]
        return list(self.select) or None

    @property
    def collapses_to_scalar(self) -> bool:
        return isinstance(self.select, list) and len(self.select) == 1


class PaginationSpec(BaseModel):
    """Requested page; unparsable values are treated as absent."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    page: int | None = None
    limit: int | None = None

    @field_validator("page", "limit", mode="before")
    @classmethod
    def _coerce_int(cls, value: Any) -> int | None:
        if value is None or isinstance(value, bool):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None


class QuerySpec(BaseModel):
    """Structured ``find_all`` argument."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    filters: dict[str, Any] = Field(default_factory=dict)
    sort: SortSpec | None = None
    fields: FieldSpec | None = None
    pagination: PaginationSpec | None = None
    search: str | None = None
    relations: list[RelationSpec] = Field(default_factory=list)

    @field_validator("filters", mode="before")
    @classmethod
    def _default_filters(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("relations", mode="before")
    @classmethod
    def _default_relations(cls, value: Any) -> Any:
        return [] if value is None else value


@dataclass(frozen=True)
class LegacyFilterCall:
    """A bare filter mapping passed where a :class:`QuerySpec` is expected.

    Legacy calls always compute the total count and report one page that
    holds every row.
    """

    filters: Mapping[str, Any] = field(default_factory=dict)


class PaginationMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: int
    page: int
    limit: int
    pages: int
    has_next: bool = Field(alias="hasNext")


class QueryResult(BaseModel):
    """Rows of one ``find_all`` call plus pagination metadata."""

    model_config = ConfigDict(populate_by_name=True)

    data: list[dict[str, Any] | None]
    pagination: PaginationMeta

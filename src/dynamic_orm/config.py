"""Configuration for dynamic table models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .adapters.ids import uuid4_generator

RelationStrategy = Literal["batch", "join"]


class ModelOptions(BaseModel):
    """Per-table configuration of a :class:`~dynamic_orm.model.DynamicModel`.

    Attributes:
        primary_key: Primary key column name.
        use_cache: Whether reads go through the cache backend.
        cache_ttl: Cache TTL in seconds.
        default_limit: Page size used when pagination omits ``limit``.
        max_limit: Upper bound applied to any requested ``limit``.
        searchable_fields: Columns (optionally ``table.column``) matched by
            ``search``.
        relation_strategy: ``"batch"`` fetches relations with one
            ``IN`` query per relation; ``"join"`` splits prefixed columns
            out of the joined rows.
        id_generator: Called by ``create`` when the payload has no primary
            key value. ``None`` leaves key assignment to the database.
        logger: Optional logger replacing the ``dynamic_orm.model`` logger.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    primary_key: str = Field(default="id", alias="primaryKey", min_length=1)
    use_cache: bool = Field(default=False, alias="useCache")
    cache_ttl: int = Field(default=3600, alias="cacheTTL", gt=0)
    default_limit: int = Field(default=100, alias="defaultLimit", ge=1)
    max_limit: int = Field(default=1000, alias="maxLimit", ge=1)
    searchable_fields: list[str] = Field(
        default_factory=list, alias="searchableFields"
    )
    relation_strategy: RelationStrategy = Field(
        default="batch", alias="relationStrategy"
    )
    id_generator: Any = Field(default=uuid4_generator, alias="idGenerator")
    logger: Any = None

    def with_overrides(self, **overrides: Any) -> ModelOptions:
        """Return a validated copy with ``overrides`` applied."""
        if not overrides:
            return self
        data = self.model_dump(by_alias=False)
        data.update(overrides)
        return ModelOptions.model_validate(data)

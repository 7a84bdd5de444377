"""Deterministic cache keys: ``<table>:<operation>:<json arguments>``."""

from __future__ import annotations

import json
from typing import Any, Literal

CacheOperation = Literal["findAll", "findById", "findByField", "count"]


def build_cache_key(
    table: str, operation: CacheOperation, arguments: dict[str, Any]
) -> str:
    """
    Build the cache key of one read operation.

    Keys are serialized with sorted keys so logically identical arguments
    always produce the same key.
    """
    payload = json.dumps(
        arguments, sort_keys=True, default=str, separators=(",", ":")
    )
    return f"{table}:{operation}:{payload}"


def table_pattern(table: str) -> str:
    """Glob pattern matching every cached entry of ``table``."""
    return f"{table}:*"

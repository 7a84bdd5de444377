"""ICacheBackend - Protocol for cache operations."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ICacheBackend(Protocol):
    """
    Abstract interface for string key/value caches with TTL support.

    Values are opaque strings; models handle JSON serialization.
    """

    async def get(self, key: str) -> str | None:
        """Retrieve a value by key. Returns None if missing or expired."""
        ...

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        """Set a value with optional TTL (in seconds)."""
        ...

    async def delete(self, keys: str | list[str]) -> None:
        """Delete one key or a list of keys."""
        ...

    async def list_keys(self, pattern: str) -> list[str]:
        """List keys matching a glob-style ``pattern`` (``users:*``)."""
        ...

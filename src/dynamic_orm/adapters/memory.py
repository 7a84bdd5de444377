"""In-process cache backends."""

from __future__ import annotations

import fnmatch
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


class NullCacheBackend:
    """Cache backend used when caching is disabled: stores nothing."""

    async def get(self, key: str) -> str | None:  # noqa: ARG002
        return None

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        pass

    async def delete(self, keys: str | list[str]) -> None:
        pass

    async def list_keys(self, pattern: str) -> list[str]:  # noqa: ARG002
        return []


class InMemoryCacheBackend:
    """Dict-backed cache with per-key TTL, for tests and single-process use.

    Expired entries are dropped lazily on access.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._store: dict[str, tuple[str, float | None]] = {}
        self._clock = clock

    def _alive(self, key: str) -> bool:
        entry = self._store.get(key)
        if entry is None:
            return False
        expires_at = entry[1]
        if expires_at is not None and expires_at <= self._clock():
            del self._store[key]
            return False
        return True

    async def get(self, key: str) -> str | None:
        if not self._alive(key):
            return None
        return self._store[key][0]

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        expires_at = self._clock() + ttl if ttl else None
        self._store[key] = (value, expires_at)

    async def delete(self, keys: str | list[str]) -> None:
        for key in [keys] if isinstance(keys, str) else keys:
            self._store.pop(key, None)

    async def list_keys(self, pattern: str) -> list[str]:
        return [
            key
            for key in list(self._store)
            if fnmatch.fnmatchcase(key, pattern) and self._alive(key)
        ]

    # ── Test helpers ─────────────────────────────────────────────

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)

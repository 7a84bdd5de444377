"""Ports (interfaces) consumed by dynamic-orm models."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from .cache import ICacheBackend
from .database import IDatabaseBackend, ITransactionConnection, Row
from .logging import ILogger

IdGenerator = Callable[[], Any]
"""Zero-argument callable producing a new primary key value."""

__all__ = [
    "ICacheBackend",
    "IDatabaseBackend",
    "ILogger",
    "ITransactionConnection",
    "IdGenerator",
    "Row",
]

"""Payload and identifier checks run before any I/O."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .exceptions import ValidationError


def require_id(entity_id: Any) -> None:
    if entity_id is None or entity_id == "":
        raise ValidationError({"id": ["ID is required"]})


def require_payload(data: Any, message: str) -> dict[str, Any]:
    """Return a copy of ``data``; it must be a non-empty mapping."""
    if not isinstance(data, Mapping) or not data:
        raise ValidationError({"data": [message]})
    return dict(data)

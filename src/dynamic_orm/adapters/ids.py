"""Identifier generation strategies."""

from __future__ import annotations

import uuid


def uuid4_generator() -> str:
    """Return a random UUID4 in its canonical string form."""
    return str(uuid.uuid4())

"""Exceptions raised by dynamic-orm."""

from __future__ import annotations


class DynamicORMError(Exception):
    """Root exception for the dynamic-orm toolkit."""


class ValidationError(DynamicORMError):
    """Raised when a caller passes an invalid payload or identifier.

    Carries structured errors: ``{field: [messages]}``.
    """

    def __init__(self, errors: dict[str, list[str]] | str | None = None) -> None:
        if isinstance(errors, str):
            self.errors: dict[str, list[str]] = {"__root__": [errors]}
        elif errors is None:
            self.errors = {}
        else:
            self.errors = errors
        super().__init__(str(self.errors))


class ConfigurationError(DynamicORMError):
    """Raised when models or backends are wired incorrectly."""


class InfrastructureError(DynamicORMError):
    """Base class for all infrastructure-related errors."""


class CacheBackendError(InfrastructureError):
    """Raised by cache adapters when the underlying store fails.

    Models always absorb this error: the cache is never a source of truth.
    """


__all__: list[str] = [
    "CacheBackendError",
    "ConfigurationError",
    "DynamicORMError",
    "InfrastructureError",
    "ValidationError",
]

"""ILogger - Protocol for injected loggers.

Any ``logging.Logger`` satisfies it; callers may pass their own adapter.
Loggers that expose ``warn`` instead of ``warning`` are also accepted by
``DynamicModel``.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ILogger(Protocol):
    def error(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

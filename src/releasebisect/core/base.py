"""Base classes for configuration, state and resource owners.

- Closeable protocol for anything holding an open resource
  (HTTP clients, log files, span processors)
- BaseCloseable, which closes its closeable fields on exit
- BaseConfig / BaseState semantic markers

Kept separate from config.py so that log.py can import it
without a cycle.
"""

from __future__ import annotations

import sys
from typing import Protocol, runtime_checkable

from pydantic import BaseModel


@runtime_checkable
class Closeable(Protocol):
    """Protocol for objects that support close()."""

    def close(self) -> None:
        """Release held resources."""
        ...


class BaseCloseable(BaseModel):
    """Pydantic model that closes its Closeable fields.

    Usable as a context manager. Closing walks the model fields
    and calls close() on every child implementing Closeable,
    carrying on past children that fail:

    State.__exit__() → Config.close() → Logger.close() → Sink.close()
    """

    def close(self):
        """Close all closeable child objects."""
        for field_name in self.__class__.model_fields:
            child = getattr(self, field_name, None)
            if child is None:
                continue

            if isinstance(child, Closeable):
                try:
                    child.close()
                except Exception as e:
                    msg = f"Warning: Error closing {field_name}: {e}"
                    print(msg, file=sys.stderr)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # noqa: U100
        self.close()
        return False


class BaseConfig(BaseCloseable):
    """Marker base for configuration sections (YAML/env/CLI)."""
    pass


class BaseState(BaseCloseable):
    """Marker base for runtime state sections."""
    pass


__all__ = ["Closeable", "BaseCloseable", "BaseConfig", "BaseState"]

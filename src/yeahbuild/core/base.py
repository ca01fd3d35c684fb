"""Shared base models.

config.py and log.py both build on these, so they live in a module
that imports neither.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from typing import Protocol, runtime_checkable

from pydantic import BaseModel


@runtime_checkable
class Closeable(Protocol):
    """Anything holding a resource that close() releases."""

    def close(self) -> None:
        ...


class BaseCloseable(BaseModel):
    """Model whose close() closes every Closeable field.

    Closing walks the fields in declaration order, so the cascade runs
    Config -> Logger -> sinks. A failing child is reported on stderr
    and does not keep its siblings open. Usable as a context manager.
    """

    def _closeable_children(self) -> Iterator[tuple[str, Closeable]]:
        for name in type(self).model_fields:
            child = getattr(self, name, None)
            if isinstance(child, Closeable):
                yield name, child

    def close(self):
        for name, child in self._closeable_children():
            try:
                child.close()
            except Exception as e:
                print(f"Warning: Error closing {name}: {e}", file=sys.stderr)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # noqa: U100
        self.close()
        return False


class BaseConfig(BaseCloseable):
    """Configuration section: loaded once, read-only during a build."""


__all__ = ["Closeable", "BaseCloseable", "BaseConfig"]

"""Build log: the append-only line stream shown to the user.

Every component that reports progress writes into a LogSink. The
standard implementation, BuildLog, keeps recent lines for display,
notifies listeners (the terminal views) and mirrors each line into
the application logger so it reaches the log file.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from yeahbuild.core.log import logger


@dataclass(frozen=True)
class LogLine:
    """One line of build output.

    level is a logger level name; style is a display hint for the
    terminal views (a rich style string, may be empty).
    """

    text: str
    level: str = "info"
    style: str = ""


@runtime_checkable
class LogSink(Protocol):
    """Anything that accepts build log lines from concurrent writers."""

    def write(self, text: str, level: str = "info", style: str = "") -> None:
        ...


LogListener = Callable[[LogLine], None]


class BuildLog:
    """Thread-safe append-only build log.

    Writes, listener notification and the logger mirror all happen
    under one lock, so lines from concurrent builds never interleave
    and listeners see lines in the order they were stored.
    """

    def __init__(self, max_lines: int = 2000):
        self._lines: deque[LogLine] = deque(maxlen=max_lines)
        self._listeners: list[LogListener] = []
        self._lock = threading.Lock()

    def write(self, text: str, level: str = "info", style: str = "") -> None:
        """Append a line (or several, if text contains newlines)."""
        with self._lock:
            for part in text.splitlines() or [""]:
                line = LogLine(part, level, style)
                self._lines.append(line)
                logger.log(level, "{text}", text=part)
                for listener in self._listeners:
                    listener(line)

    def subscribe(self, listener: LogListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: LogListener) -> None:
        with self._lock:
            self._listeners.remove(listener)

    def clear(self) -> None:
        with self._lock:
            self._lines.clear()

    def tail(self, count: int) -> list[LogLine]:
        """Return the most recent count lines, oldest first."""
        with self._lock:
            if count <= 0:
                return []
            return list(self._lines)[-count:]

    @property
    def lines(self) -> list[LogLine]:
        with self._lock:
            return list(self._lines)

    def text(self) -> str:
        """All stored lines joined with newlines."""
        return "\n".join(line.text for line in self.lines)

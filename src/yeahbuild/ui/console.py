"""Batch view - print build log lines as they are written."""

from __future__ import annotations

from rich.console import Console
from rich.text import Text

from yeahbuild.core.sink import BuildLog, LogLine


class BatchPrinter:
    """Echo every BuildLog line to the terminal.

    Use as a context manager around a run so the listener is removed
    afterwards.
    """

    def __init__(self, log: BuildLog, console: Console | None = None):
        self.log = log
        self.console = console or Console(highlight=False)

    def __call__(self, line: LogLine) -> None:
        self.console.print(Text(line.text, style=line.style), soft_wrap=True)

    def __enter__(self) -> BatchPrinter:
        self.log.subscribe(self)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.log.unsubscribe(self)
        return False

"""Terminal views over the build log."""

from yeahbuild.ui.console import BatchPrinter
from yeahbuild.ui.view import InteractiveView

__all__ = ["BatchPrinter", "InteractiveView"]

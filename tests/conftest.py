"""Pytest configuration and fixtures for yeah-build tests."""

import tempfile
from pathlib import Path

import pytest

from yeahbuild.core.config import ProjectConfig
from yeahbuild.core.log import FileSink, setup_logger
from yeahbuild.core.sink import BuildLog


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Configure logging for file-only output during tests.

    Debug output goes to a log file in the temp directory; nothing
    is sent to logfire.dev.
    """
    test_log_root = Path(tempfile.gettempdir()) / "yeah-build-tests"
    setup_logger(
        log_file=test_log_root / "tests.log",
        level="debug",
        file=FileSink(enabled=True),
    )


@pytest.fixture
def build_log():
    """Fresh build log."""
    return BuildLog()


@pytest.fixture
def make_project(tmp_path):
    """Factory for ProjectConfig rooted in a temporary directory."""

    def _make(name="svc", commands=(), **kwargs):
        path = kwargs.pop("path", tmp_path)
        return ProjectConfig(
            name=name,
            path=path,
            build={"commands": list(commands)},
            **kwargs,
        )

    return _make

"""Application logging.

Records go through logfire, which turns each one into an OpenTelemetry
span. Sinks decide where those spans end up:

- ConsoleSink: logfire's own console renderer (off by default, since
  the terminal views already show the build log)
- FileSink: one formatted text line per record in a log file

Code everywhere logs through the module-level ``logger`` proxy, which
does nothing until setup_logger() has run.
"""

from __future__ import annotations

import contextlib
from abc import abstractmethod
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from opentelemetry.proto.logs.v1 import logs_pb2
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult
from pydantic import Field, PrivateAttr, model_validator

from yeahbuild.core.base import BaseConfig

# Level names mapped onto OpenTelemetry severity numbers, most verbose
# first. spew sits below logfire's trace so subprocess chatter can be
# filtered separately.
LEVELS = {
    'spew': logs_pb2.SEVERITY_NUMBER_TRACE,
    'trace': logs_pb2.SEVERITY_NUMBER_TRACE3,
    'debug': logs_pb2.SEVERITY_NUMBER_DEBUG,
    'info': logs_pb2.SEVERITY_NUMBER_INFO,
    'warn': logs_pb2.SEVERITY_NUMBER_WARN,
    'error': logs_pb2.SEVERITY_NUMBER_ERROR,
    'fatal': logs_pb2.SEVERITY_NUMBER_FATAL,
}


def severity(level: str | None) -> int:
    """Severity number for a level name; unknown names count as info."""
    return LEVELS.get((level or 'info').lower(), LEVELS['info'])


def level_name(number: int) -> str:
    """Most severe level name whose threshold number reaches."""
    for name, threshold in reversed(LEVELS.items()):
        if number >= threshold:
            return name
    return "unknown"


def span_severity(span: ReadableSpan) -> int:
    attrs = span.attributes or {}
    return attrs.get('logfire.level_num', LEVELS['info'])


_current_logger: Logger | None = None


class _LoggerProxy:
    """Stand-in for the configured Logger.

    Attribute access is forwarded to the logger installed by
    setup_logger(); before that, every call is silently dropped.
    """

    def __getattr__(self, name):
        if _current_logger is None:
            return lambda *args, **kwargs: None
        return getattr(_current_logger, name)

    def __enter__(self):
        if _current_logger is None:
            return self
        return _current_logger.__enter__()

    def __exit__(self, *exc_info):
        if _current_logger is None:
            return False
        return _current_logger.__exit__(*exc_info)


logger = _LoggerProxy()


class LevelFilteringExporter(SpanExporter):
    """Forward only spans at or above a minimum level."""

    def __init__(self, exporter: SpanExporter, min_level: str | None):
        self._exporter = exporter
        self._threshold = severity(min_level)

    def export(self, spans: list[ReadableSpan]) -> SpanExportResult:
        kept = [s for s in spans if span_severity(s) >= self._threshold]
        if not kept:
            return SpanExportResult.SUCCESS
        return self._exporter.export(kept)

    def shutdown(self) -> None:
        self._exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._exporter.force_flush(timeout_millis)


class Sink(BaseConfig):
    """One destination for log records."""

    enabled: bool = Field(default=True, description="Enable this sink")
    level: str | None = Field(
        default=None,
        description=(
            "Minimum level for this sink; None uses the logger's level. "
            "Valid: spew, trace, debug, info, warn, error, fatal"
        ),
    )

    _processor: Any = PrivateAttr(default=None)

    @abstractmethod
    def create_processor(self, log_file: Path | None, service_name: str):
        """Build the span processor feeding this sink.

        Args:
            log_file: Log destination from the build policy
            service_name: Name reported to logfire

        Returns:
            SpanProcessor, or None when logfire handles the sink itself
        """

    def close(self):
        """Flush and stop the processor."""
        if self._processor is not None:
            with contextlib.suppress(Exception):
                self._processor.shutdown()


class ConsoleSink(Sink):
    """logfire's console output."""

    enabled: bool = Field(
        default=False,
        description="Print log records to the terminal",
    )
    colors: str = Field(
        default="auto",
        description="Color mode: auto, always, never",
    )

    def options(self, default_level: str):
        """logfire console options, or False when disabled."""
        from logfire import ConsoleOptions

        if not self.enabled:
            return False
        return ConsoleOptions(
            min_log_level=self.level or default_level,
            colors=self.colors,
            include_timestamps=True,
        )

    def create_processor(self, log_file: Path | None, service_name: str):
        return None


class FileSink(Sink):
    """Plain text log file, one line per record."""

    path: Path | None = Field(
        default=None,
        description=(
            "Log file. None falls back to global.log_file; when that "
            "is empty too, nothing is written"
        ),
    )
    format_template: str = Field(
        default="{timestamp:%Y-%m-%d %H:%M:%S} {level:<5} {message}",
        description=(
            "str.format template; fields: timestamp, level, message, "
            "location"
        ),
    )

    _file: Any = PrivateAttr(default=None)

    def resolve_path(self, log_file: Path | None) -> Path | None:
        """The file this sink writes to, if any."""
        return self.path or log_file

    def format(self, span: ReadableSpan) -> str:
        attrs = span.attributes or {}
        filepath = attrs.get("code.filepath", "")
        fields = {
            'timestamp': datetime.fromtimestamp(span.start_time / 1e9, tz=UTC),
            'level': level_name(span_severity(span)),
            'message': attrs.get("logfire.msg", span.name),
            'location': (
                f"{filepath}:{attrs.get('code.lineno', '')}"
                if filepath else ""
            ),
        }
        try:
            return self.format_template.format(**fields) + "\n"
        except KeyError as e:
            return f"ERROR: Invalid template field {e}\n"

    def create_processor(self, log_file: Path | None, service_name: str):
        from opentelemetry.sdk.trace.export import (
            BatchSpanProcessor,
            ConsoleSpanExporter,
        )

        target = self.resolve_path(log_file)
        if target is None:
            return None
        target = Path(target).expanduser()
        target.parent.mkdir(parents=True, exist_ok=True)

        # Line buffered; stays open until close()
        self._file = open(target, "a", buffering=1, encoding="utf-8")  # noqa: SIM115

        exporter = ConsoleSpanExporter(out=self._file, formatter=self.format)
        return BatchSpanProcessor(
            LevelFilteringExporter(exporter, self.level)
        )

    def close(self):
        """Flush pending records, then close the file."""
        super().close()

        if self._file is not None and not self._file.closed:
            with contextlib.suppress(OSError):
                self._file.close()


class Logger(BaseConfig):
    """Configured logger (the logger: section).

    close() cascades to the sinks through BaseCloseable.
    """

    level: str = Field(
        default="info",
        description=(
            "Level for sinks that do not set their own. "
            "Valid: spew, trace, debug, info, warn, error, fatal"
        ),
    )
    console: ConsoleSink = Field(default_factory=ConsoleSink)
    file: FileSink = Field(default_factory=FileSink)

    @model_validator(mode='after')
    def _inherit_level(self) -> Logger:
        for sink in (self.console, self.file):
            if sink.level is None:
                sink.level = self.level
        return self

    def setup(self, log_file: Path | None = None,
              service_name: str = "yeah-build"):
        """Start the enabled sinks and configure logfire.

        Args:
            log_file: Default file destination (global.log_file)
            service_name: Service name reported to logfire
        """
        import logfire

        processors = []
        for sink in (self.console, self.file):
            if not sink.enabled:
                continue
            sink._processor = sink.create_processor(log_file, service_name)
            if sink._processor is not None:
                processors.append(sink._processor)

        logfire.configure(
            service_name=service_name,
            send_to_logfire=False,
            console=self.console.options(self.level),
            additional_span_processors=processors or None,
        )

    def log(self, level: str, msg: str, **attributes):
        """Log msg (a logfire template) at the named level."""
        import logfire

        # logfire has no spew, and its trace is more verbose than ours
        level_arg = LEVELS[level] if level in ('spew', 'trace') else level
        logfire.log(
            level=level_arg,
            msg_template=msg,
            attributes=attributes or None,
        )

    def spew(self, msg: str, **attributes):
        """Below trace: subprocess lifecycle and similar noise."""
        self.log('spew', msg, **attributes)

    def trace(self, msg: str, **attributes):
        self.log('trace', msg, **attributes)

    def debug(self, msg: str, **attributes):
        self.log('debug', msg, **attributes)

    def info(self, msg: str, **attributes):
        self.log('info', msg, **attributes)

    def warn(self, msg: str, **attributes):
        self.log('warn', msg, **attributes)

    def error(self, msg: str, **attributes):
        self.log('error', msg, **attributes)


def setup_logger(
    log_file: Path | None = None,
    service_name: str = "yeah-build",
    level: str = "info",
    console: ConsoleSink | None = None,
    file: FileSink | None = None,
) -> Logger:
    """Install a new global logger, closing the previous one.

    Config calls this after loading; tests and scripts may call it
    directly.

    Args:
        log_file: Default file sink destination
        service_name: Service name reported to logfire
        level: Level for sinks without their own
        console: Console sink settings (defaults when None)
        file: File sink settings (defaults when None)

    Returns:
        The installed Logger
    """
    global _current_logger

    if _current_logger is not None:
        _current_logger.close()

    _current_logger = Logger(
        level=level,
        console=console or ConsoleSink(),
        file=file or FileSink(),
    )
    _current_logger.setup(log_file, service_name)
    return _current_logger

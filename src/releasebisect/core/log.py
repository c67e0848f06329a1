"""Logging for releasebisect, backed by logfire.

Console output is logfire's own console exporter. The file sink
adds an OpenTelemetry span processor that writes one formatted line
per log call into the session's log file, filtered by level.
"""

from __future__ import annotations

import contextlib
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import logfire
from logfire import ConsoleOptions
from opentelemetry.proto.logs.v1 import logs_pb2
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
    SpanExportResult,
)
from pydantic import Field, PrivateAttr, model_validator

from releasebisect.core.base import BaseConfig

# Level names to OpenTelemetry severity numbers, lowest first
LEVELS = {
    'spew': logs_pb2.SEVERITY_NUMBER_TRACE,
    'trace': logs_pb2.SEVERITY_NUMBER_TRACE3,
    'debug': logs_pb2.SEVERITY_NUMBER_DEBUG,
    'info': logs_pb2.SEVERITY_NUMBER_INFO,
    'warn': logs_pb2.SEVERITY_NUMBER_WARN,
    'error': logs_pb2.SEVERITY_NUMBER_ERROR,
    'fatal': logs_pb2.SEVERITY_NUMBER_FATAL,
}

# Span attributes that logfire and OpenTelemetry add on their own;
# whatever is left came from keyword arguments (tag=..., asset=...)
_INTERNAL_ATTRS = {
    'logfire.msg', 'logfire.level_num', 'logfire.span_type',
    'logfire.msg_template', 'logfire.json_schema',
}
_INTERNAL_PREFIXES = ('code.', 'otel.', 'telemetry.', 'service.', 'process.')

_current_logger: Logger | None = None


class _LoggerProxy:
    """Forwards attribute access to the configured logger.

    Before setup_logger() runs every method is a no-op, so modules
    can log at import time or from tests without a configured sink.
    """
    def __getattr__(self, name):
        if _current_logger is None:
            def _noop(*args, **kwargs):  # noqa: ARG001
                pass
            return _noop
        return getattr(_current_logger, name)

    def __enter__(self):
        if _current_logger is None:
            return self
        return _current_logger.__enter__()

    def __exit__(self, *args):
        if _current_logger is None:
            return False
        return _current_logger.__exit__(*args)


logger = _LoggerProxy()


def level_name(level_num: int) -> str:
    """Highest level name whose threshold level_num reaches."""
    for name in reversed(LEVELS):
        if level_num >= LEVELS[name]:
            return name
    return "unknown"


class LevelFilteringExporter(SpanExporter):
    """Span exporter that drops spans below a minimum level."""

    def __init__(self, exporter: SpanExporter, min_level: str):
        self._exporter = exporter
        self._min_severity = LEVELS.get(
            min_level.lower(), logs_pb2.SEVERITY_NUMBER_INFO
        )

    def export(self, spans: list[ReadableSpan]) -> SpanExportResult:
        filtered = [
            span for span in spans
            if (span.attributes or {}).get(
                'logfire.level_num', logs_pb2.SEVERITY_NUMBER_INFO
            ) >= self._min_severity
        ]
        if filtered:
            return self._exporter.export(filtered)
        return SpanExportResult.SUCCESS

    def shutdown(self) -> None:
        self._exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._exporter.force_flush(timeout_millis)


class Sink(BaseConfig):
    """Common settings of an output sink."""

    enabled: bool = Field(default=True, description="Enable this sink")
    level: str | None = Field(
        default=None,
        description=(
            "Log level for this sink. If None, inherits from Logger.level. "
            "Valid: spew, trace, debug, info, warn, error, fatal"
        )
    )


class ConsoleSink(Sink):
    """Terminal output, shown alongside the prompt."""

    verbose: bool = Field(
        default=False,
        description="Show full span details"
    )
    colors: str = Field(
        default="auto",
        description="Color mode: auto, always, never"
    )

    def options(self) -> ConsoleOptions | bool:
        if not self.enabled:
            return False
        return ConsoleOptions(
            min_log_level=self.level,
            verbose=self.verbose,
            colors=self.colors,
            include_timestamps=True,
        )


class FileSink(Sink):
    """Append-only log file per bisection session."""

    enabled: bool = Field(
        default=False,
        description="Enable file logging"
    )
    path: str = Field(
        default="{log_root}/{session_name}/releasebisect.log",
        description="Log file path template"
    )
    format_template: str | None = Field(
        default=None,
        description=(
            "Line template with {timestamp}, {level}, {message}, "
            "{location}; None writes raw span JSON"
        )
    )
    escape_special_characters: bool = Field(
        default=False,
        description="Escape newlines and tabs in messages"
    )

    _file: Any = PrivateAttr(default=None)
    _processor: Any = PrivateAttr(default=None)

    def format_span(self, span: ReadableSpan) -> str:
        if not self.format_template:
            return span.to_json() + "\n"

        attrs = span.attributes or {}
        message = attrs.get("logfire.msg", span.name)
        if self.escape_special_characters:
            message = (message
                .replace('\\', '\\\\')
                .replace('\n', '\\n')
                .replace('\r', '\\r')
                .replace('\t', '\\t')
            )
        filepath = attrs.get("code.filepath", "")
        lineno = attrs.get("code.lineno", "")

        try:
            line = self.format_template.format(
                timestamp=datetime.fromtimestamp(span.start_time / 1e9, tz=UTC),
                level=level_name(attrs.get(
                    "logfire.level_num", logs_pb2.SEVERITY_NUMBER_INFO
                )),
                message=message,
                location=f"{filepath}:{lineno}" if filepath else "",
            )
        except KeyError as e:
            return f"ERROR: Invalid template field {e}\n"

        extra = {
            key: value
            for key, value in attrs.items()
            if key not in _INTERNAL_ATTRS
            and not key.startswith(_INTERNAL_PREFIXES)
        }
        if extra:
            line += " │ " + ' '.join(
                f"{k}={v!r}" for k, v in sorted(extra.items())
            )
        return line + '\n'

    def create_processor(
        self, log_root: Path, session_name: str
    ) -> BatchSpanProcessor:
        log_path = Path(
            self.path.format(log_root=log_root, session_name=session_name)
        )
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # Line buffered; stays open for the lifetime of the sink
        self._file = open(log_path, "a", buffering=1, encoding="utf-8")  # noqa: SIM115

        exporter = ConsoleSpanExporter(
            out=self._file, formatter=self.format_span
        )
        self._processor = BatchSpanProcessor(
            LevelFilteringExporter(exporter, self.level)
        )
        return self._processor

    def close(self):
        """Flush the processor into the file, then close the file."""
        if self._processor:
            with contextlib.suppress(Exception):
                self._processor.shutdown()

        if self._file and not self._file.closed:
            with contextlib.suppress(OSError):
                self._file.flush()
                self._file.close()


class Logger(BaseConfig):
    """Console and file logging for one bisection session.

    Closing the logger closes the file sink through the
    BaseCloseable cascade.
    """

    level: str = Field(
        default="info",
        description=(
            "Default log level for both sinks. Individual sinks can "
            "override. Valid: spew, trace, debug, info, warn, error, fatal"
        )
    )
    console: ConsoleSink = Field(
        default_factory=ConsoleSink,
        description="Console output configuration"
    )
    file: FileSink = Field(
        default_factory=FileSink,
        description="File logging configuration"
    )

    @model_validator(mode='after')
    def _cascade_level_to_sinks(self) -> 'Logger':
        for sink in [self.console, self.file]:
            if sink.level is None:
                sink.level = self.level
        return self

    def setup(self, log_root: Path, session_name: str):
        """Open the log file if enabled and configure logfire.

        Nothing is sent to the logfire cloud.

        Args:
            log_root: Root directory for log files
            session_name: Name of the bisection session
        """
        processors = []
        if self.file.enabled:
            processors.append(self.file.create_processor(log_root, session_name))

        logfire.configure(
            service_name=f"releasebisect-{session_name}",
            send_to_logfire=False,
            console=self.console.options(),
            additional_span_processors=processors or None,
        )

    def info(self, msg: str, **kwargs):
        logfire.info(msg, **kwargs)

    def debug(self, msg: str, **kwargs):
        logfire.debug(msg, **kwargs)

    def trace(self, msg: str, **kwargs):
        logfire.log(
            level=LEVELS['trace'],
            msg_template=msg,
            attributes=kwargs or None,
        )

    def spew(self, msg: str, **kwargs):
        """Log below trace, for per-tag scans and subprocess chatter."""
        logfire.log(
            level=LEVELS['spew'],
            msg_template=msg,
            attributes=kwargs or None,
        )

    def warn(self, msg: str, **kwargs):
        logfire.warn(msg, **kwargs)

    def error(self, msg: str, **kwargs):
        logfire.error(msg, **kwargs)

    def span(self, msg: str, **kwargs):
        """Span context manager:

            with logger.span("Downloading", asset=name):
                ...
        """
        return logfire.span(msg, **kwargs)

    def log(self, level: str, msg: str, **kwargs):
        """Log at a level chosen at run time (Runner output lines)."""
        logfire.log(level, msg, attributes=kwargs or None)


def setup_logger(
    log_root: Path,
    session_name: str,
    console: ConsoleSink | None = None,
    file: FileSink | None = None,
) -> Logger:
    """Initialize the global logger singleton.

    Called by Config once YAML is loaded; tests call it directly.

    Args:
        log_root: Root directory for log files
        session_name: Name of the bisection session
        console: Console sink config (or None for defaults)
        file: File sink config (or None for defaults)

    Returns:
        Logger: The initialized global logger instance
    """
    global _current_logger

    _current_logger = Logger(
        console=console or ConsoleSink(),
        file=file or FileSink(),
    )
    _current_logger.setup(log_root, session_name)

    return _current_logger

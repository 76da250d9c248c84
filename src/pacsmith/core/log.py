"""Logger with a console sink and a durable file sink.

Records go through logfire. The console is rendered by logfire itself;
the installation log is an OpenTelemetry span exporter writing one
formatted line per record to an append-only file.
"""

from __future__ import annotations

import contextlib
import os
from abc import abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any

from opentelemetry.proto.logs.v1 import logs_pb2
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult
from pydantic import Field, PrivateAttr, model_validator

from pacsmith.core.base import BaseConfig

# Level names mapped to OpenTelemetry severity numbers, most severe first
LEVELS = {
    'fatal': logs_pb2.SEVERITY_NUMBER_FATAL,
    'error': logs_pb2.SEVERITY_NUMBER_ERROR,
    'warn': logs_pb2.SEVERITY_NUMBER_WARN,
    'info': logs_pb2.SEVERITY_NUMBER_INFO,
    'debug': logs_pb2.SEVERITY_NUMBER_DEBUG,
    'trace': logs_pb2.SEVERITY_NUMBER_TRACE3,
    'spew': logs_pb2.SEVERITY_NUMBER_TRACE,
}

# Span attributes added by instrumentation rather than by the caller
_INTERNAL_PREFIXES = (
    'otel.', 'telemetry.', 'service.', 'process.', 'code.', 'logfire.',
)

_current_logger: Logger | None = None


class _LoggerProxy:
    """Forwards attribute access to the configured logger.

    Before setup_logger() runs every call is a no-op, so modules can
    log at import time or from tests that never configure logging.
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


def severity(level: str | None) -> int:
    """Severity number for a level name; unknown names count as info."""
    return LEVELS.get((level or 'info').lower(), LEVELS['info'])


def level_name(level_num: int) -> str:
    for name, threshold in LEVELS.items():
        if level_num >= threshold:
            return name
    return "unknown"


def _span_level(span: ReadableSpan) -> int:
    return (span.attributes or {}).get('logfire.level_num', LEVELS['info'])


def escape_line(text: str) -> str:
    """Escape backslashes and line breaks so a record fits one line."""
    return (
        text.replace('\\', '\\\\')
        .replace('\n', '\\n')
        .replace('\r', '\\r')
        .replace('\t', '\\t')
    )


def span_fields(span: ReadableSpan) -> dict:
    """Fields a format template may reference.

    timestamp (local time), level, message, filepath, lineno,
    location, function.
    """
    attrs = span.attributes or {}
    filepath = attrs.get("code.filepath", "")
    lineno = attrs.get("code.lineno", "")
    return {
        'timestamp': datetime.fromtimestamp(span.start_time / 1e9),
        'level': level_name(_span_level(span)),
        'message': attrs.get("logfire.msg", span.name),
        'filepath': filepath,
        'lineno': lineno,
        'location': f"{filepath}:{lineno}" if filepath else "",
        'function': attrs.get("code.function", ""),
    }


def caller_attributes(span: ReadableSpan) -> dict:
    """Keyword arguments the caller passed to the logger."""
    return {
        key: value for key, value in (span.attributes or {}).items()
        if not key.startswith(_INTERNAL_PREFIXES)
    }


class LevelFilteringExporter(SpanExporter):
    """Span exporter that drops spans below a minimum level."""

    def __init__(self, exporter: SpanExporter, min_level: str | None):
        self._exporter = exporter
        self._min_severity = severity(min_level)

    def export(self, spans: list[ReadableSpan]) -> SpanExportResult:
        kept = [s for s in spans if _span_level(s) >= self._min_severity]
        if not kept:
            return SpanExportResult.SUCCESS
        return self._exporter.export(kept)

    def shutdown(self) -> None:
        self._exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._exporter.force_flush(timeout_millis)


class Sink(BaseConfig):
    """Base class for log output sinks."""

    enabled: bool = Field(default=True, description="Enable this sink")
    level: str | None = Field(
        default=None,
        description=(
            "Log level for this sink. If None, inherits from Logger.level. "
            "Valid: spew, trace, debug, info, warn, error, fatal"
        )
    )
    escape_special_characters: bool = Field(
        default=True,
        description="Escape newlines/tabs so each entry stays on one line"
    )
    format_template: str | None = Field(
        default=None,
        description="Format template string (None writes raw JSON spans)"
    )

    _processor: Any = PrivateAttr(default=None)

    def _format_span(self, span: ReadableSpan) -> str:
        if not self.format_template:
            return span.to_json() + os.linesep

        fields = span_fields(span)
        if self.escape_special_characters:
            fields['message'] = escape_line(fields['message'])
        try:
            line = self.format_template.format(**fields)
        except KeyError as e:
            return f"ERROR: Invalid template field {e}\n"

        extra = caller_attributes(span)
        if extra:
            pairs = ' '.join(f"{k}={v!r}" for k, v in sorted(extra.items()))
            line = f"{line} │ {pairs}"
        return line + '\n'

    @abstractmethod
    def create_processor(self, log_root: Path, run_name: str):
        """Create the span processor for this sink, or None."""

    def close(self):
        if self._processor:
            with contextlib.suppress(Exception):
                self._processor.shutdown()


class ConsoleSink(Sink):
    """Console output sink."""

    verbose: bool = Field(
        default=False,
        description="Show full span details"
    )
    colors: str = Field(
        default="auto",
        description="Color mode: auto, always, never"
    )

    def create_processor(self, log_root: Path, run_name: str):
        """Console output is configured through logfire.configure()."""
        return None


class FileSink(Sink):
    """Chronological installation log."""

    enabled: bool = Field(
        default=False,
        description="Enable file logging"
    )
    path: str = Field(
        default="{log_root}/pacsmith.log",
        description="Log file path template ({log_root}, {run_name})"
    )
    format_template: str | None = Field(
        default="{timestamp:%Y-%m-%d %H:%M:%S} [{level}] {message}",
        description="Line format for each log entry"
    )

    _file: Any = PrivateAttr(default=None)

    def create_processor(self, log_root: Path, run_name: str):
        from opentelemetry.sdk.trace.export import (
            BatchSpanProcessor,
            ConsoleSpanExporter,
        )

        log_path = Path(
            self.path.format(log_root=log_root, run_name=run_name)
        )
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # Line buffered and appended to, so an interrupted run keeps
        # everything logged up to that point
        self._file = open(log_path, "a", buffering=1, encoding="utf-8")  # noqa: SIM115

        writer = ConsoleSpanExporter(
            out=self._file, formatter=self._format_span
        )
        return BatchSpanProcessor(LevelFilteringExporter(writer, self.level))

    def close(self):
        """Flush the processor before closing the file under it."""
        super().close()

        if self._file and not self._file.closed:
            with contextlib.suppress(OSError):
                self._file.flush()
                self._file.close()


class Logger(BaseConfig):
    """Logger with a console sink and a file sink.

    close() cascades to the sinks through BaseCloseable, so using the
    logger as a context manager guarantees the log file is flushed.
    """

    level: str = Field(
        default="info",
        description=(
            "Default log level for all sinks. Individual sinks can override. "
            "Valid: spew, trace, debug, info, warn, error, fatal"
        )
    )
    console: ConsoleSink = Field(
        default_factory=ConsoleSink,
        description="Console output configuration"
    )
    file: FileSink = Field(
        default_factory=FileSink,
        description="Installation log file configuration"
    )

    @model_validator(mode='after')
    def _inherit_level(self) -> 'Logger':
        for sink in (self.console, self.file):
            if sink.level is None:
                sink.level = self.level
        return self

    @property
    def _sinks(self) -> tuple[Sink, ...]:
        return (self.console, self.file)

    def setup(self, log_root: Path, run_name: str):
        """Create processors for enabled sinks and configure logfire.

        Args:
            log_root: Directory holding the installation log
            run_name: Name of this run, available to path templates
        """
        processors = []
        for sink in self._sinks:
            if not sink.enabled:
                continue
            sink._processor = sink.create_processor(log_root, run_name)
            if sink._processor is not None:
                processors.append(sink._processor)

        import logfire
        from logfire import ConsoleOptions

        console = False
        if self.console.enabled:
            console = ConsoleOptions(
                min_log_level=self.console.level,
                verbose=self.console.verbose,
                colors=self.console.colors,
                include_timestamps=True,
            )

        logfire.configure(
            service_name=f"pacsmith-{run_name}",
            send_to_logfire=False,
            console=console,
            additional_span_processors=processors or None,
        )

    def _emit(self, level: str, msg: str, attributes: dict):
        import logfire
        logfire.log(
            level=LEVELS[level],
            msg_template=msg,
            attributes=attributes or None,
        )

    def info(self, msg: str, **kwargs):
        import logfire
        logfire.info(msg, **kwargs)

    def debug(self, msg: str, **kwargs):
        import logfire
        logfire.debug(msg, **kwargs)

    def trace(self, msg: str, **kwargs):
        self._emit('trace', msg, kwargs)

    def spew(self, msg: str, **kwargs):
        """Below trace; raw installer output and command lines."""
        self._emit('spew', msg, kwargs)

    def warn(self, msg: str, **kwargs):
        import logfire
        logfire.warn(msg, **kwargs)

    warning = warn

    def error(self, msg: str, **kwargs):
        import logfire
        logfire.error(msg, **kwargs)

    def fatal(self, msg: str, **kwargs):
        import logfire
        logfire.fatal(msg, **kwargs)

    def span(self, msg: str, **kwargs):
        """Span context manager around one unit of work.

        Usage:
            with logger.span("Installing {package}", package=name):
                ...
        """
        import logfire
        return logfire.span(msg, **kwargs)

    def log(self, level: str, msg: str, **kwargs):
        self._emit(level.lower(), msg, kwargs)


def setup_logger(
    log_root: Path,
    run_name: str,
    level: str = "info",
    console: ConsoleSink | None = None,
    file: FileSink | None = None,
) -> Logger:
    """Initialize the global logger singleton.

    Called by Config after loading, and directly by tests. A logger
    configured earlier is closed first.

    Returns:
        Logger: The initialized global logger instance
    """
    global _current_logger

    if _current_logger is not None:
        _current_logger.close()

    _current_logger = Logger(
        level=level,
        console=console or ConsoleSink(),
        file=file or FileSink(),
    )
    _current_logger.setup(log_root, run_name)

    return _current_logger

"""Structured logging for ryt.

Diagnostics (fallback warnings, backend invocations, timings) go through
these loggers to stderr, either human-readable or as JSON lines. Command
output never goes through logging; see ryt.output.
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class LogFormat(Enum):
    """Log output format."""

    TEXT = "text"
    JSON = "json"


@dataclass
class LogContext:
    """Context information for structured logging."""

    component: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def with_extra(self, **kwargs: Any) -> "LogContext":
        """Create new context with additional fields."""
        return LogContext(
            component=self.component,
            extra={**self.extra, **kwargs},
        )


class StructuredFormatter(logging.Formatter):
    """Formatter that outputs structured JSON logs."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        ctx = getattr(record, "context", None)
        if isinstance(ctx, LogContext):
            if ctx.component:
                log_data["component"] = ctx.component
            log_data.update(ctx.extra)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Formatter that outputs human-readable logs with context."""

    def format(self, record: logging.LogRecord) -> str:
        prefix_parts = []

        ctx = getattr(record, "context", None)
        if isinstance(ctx, LogContext):
            if ctx.component:
                prefix_parts.append(f"[{ctx.component}]")

        prefix = " ".join(prefix_parts)
        if prefix:
            prefix = f"{prefix} "

        base = super().format(record)

        extra_str = ""
        if isinstance(ctx, LogContext) and ctx.extra:
            extra_str = " " + " ".join(f"{k}={v}" for k, v in ctx.extra.items())

        return f"{prefix}{base}{extra_str}"


class RytLogger:
    """Structured logger for ryt components."""

    def __init__(self, name: str, level: int = logging.NOTSET):
        """Initialize the logger.

        Args:
            name: Component name; the stdlib logger is `ryt.<name>`
            level: Logging level (NOTSET defers to the `ryt` root logger)
        """
        self._logger = logging.getLogger(f"ryt.{name}")
        if level:
            self._logger.setLevel(level)
        self._context = LogContext(component=name)

    def _log(self, level: int, msg: str, **kwargs: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return

        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "(unknown file)",
            0,
            msg,
            (),
            None,
        )
        record.context = self._context.with_extra(**kwargs) if kwargs else self._context
        self._logger.handle(record)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, **kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, **kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, **kwargs)

    @contextmanager
    def timed(self, operation: str, **kwargs: Any):
        """Log the duration of the enclosed block at DEBUG level."""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            self.debug(
                f"{operation} completed",
                operation=operation,
                elapsed_ms=f"{elapsed_ms:.2f}",
                **kwargs,
            )


_loggers: dict[str, RytLogger] = {}


def get_logger(name: str) -> RytLogger:
    """Get or create a logger for a component."""
    if name not in _loggers:
        _loggers[name] = RytLogger(name)
    return _loggers[name]


def parse_level(value: str | int) -> int:
    """Turn 'debug', 'WARNING' or 10 into a logging level number."""
    if isinstance(value, int):
        return value
    level = logging.getLevelName(value.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"unknown log level: {value}")
    return level


def configure_logging(
    level: int = logging.WARNING,
    log_format: LogFormat = LogFormat.TEXT,
    stream=None,
) -> None:
    """Configure the `ryt` root logger.

    Args:
        level: Default logging level
        log_format: Output format
        stream: Destination (default: sys.stderr)
    """
    root = logging.getLogger("ryt")
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)

    if log_format == LogFormat.JSON:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(TextFormatter("%(levelname)s %(message)s"))

    root.addHandler(handler)

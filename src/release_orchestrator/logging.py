"""Structured logging configuration.

Uses standard library logging with a JSON formatter. Each release session also
gets a `SessionLogger` that mirrors everything (including tracebacks) into a
trace log file owned by that session.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

_RESERVED_LOG_RECORD_ATTRS: set[str] = {
    "args",
    "asctime",
    "created",
    "exc_info",
    "exc_text",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "msg",
    "name",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "stack_info",
    "taskName",
    "thread",
    "threadName",
}


class JsonFormatter(logging.Formatter):
    """A minimal JSON formatter for logging records."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_LOG_RECORD_ATTRS and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str) -> None:
    """Configure root logging with structured JSON output."""

    root = logging.getLogger()

    # Remove any existing handlers to avoid duplicate logs when re-configuring.
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JsonFormatter())
    # Session loggers run at DEBUG for their trace file; keep the console at `level`.
    handler.setLevel(level.upper())

    root.addHandler(handler)
    root.setLevel(level.upper())


class SessionLogger:
    """Logger bound to a single release session.

    Records carry the current step (if any) as structured `extra`. When a
    trace file is given, every record down to DEBUG, tracebacks included, is
    written there until `close()` is called.
    """

    def __init__(self, name: str = "release_orchestrator.session", trace_file: Path | None = None) -> None:
        self._logger = logging.getLogger(name)
        self._handler: logging.Handler | None = None
        self._step: str | None = None
        self.closed = False

        if trace_file is not None:
            trace_file.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(trace_file, mode="w", encoding="utf-8")
            handler.setLevel(logging.DEBUG)
            handler.setFormatter(JsonFormatter())
            self._logger.addHandler(handler)
            self._logger.setLevel(logging.DEBUG)
            self._handler = handler

    @property
    def current_step(self) -> str | None:
        return self._step

    def step(self, name: str) -> None:
        """Tag subsequent records with `name` until `reset()`."""

        self._step = name

    def reset(self) -> None:
        self._step = None

    def _extra(self, extra: dict[str, Any] | None) -> dict[str, Any]:
        merged = dict(extra or {})
        if self._step is not None:
            merged.setdefault("step", self._step)
        return merged

    def debug(self, msg: str, *args: Any, extra: dict[str, Any] | None = None) -> None:
        self._logger.debug(msg, *args, extra=self._extra(extra))

    def info(self, msg: str, *args: Any, extra: dict[str, Any] | None = None) -> None:
        self._logger.info(msg, *args, extra=self._extra(extra))

    def warning(self, msg: str, *args: Any, extra: dict[str, Any] | None = None) -> None:
        self._logger.warning(msg, *args, extra=self._extra(extra))

    def error(self, msg: str, *args: Any, extra: dict[str, Any] | None = None) -> None:
        self._logger.error(msg, *args, extra=self._extra(extra))

    def trace(self, error: BaseException) -> None:
        """Record the full traceback of `error` at DEBUG level."""

        self._logger.debug(
            "%s: %s", type(error).__name__, error, exc_info=error, extra=self._extra(None)
        )

    def close(self) -> None:
        """Detach and close the trace file. Safe to call more than once."""

        if self.closed:
            return
        self.closed = True
        if self._handler is not None:
            self._logger.removeHandler(self._handler)
            self._handler.close()
            self._handler = None

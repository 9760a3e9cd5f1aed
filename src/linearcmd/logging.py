"""Structured logging for linear-cmd.

Records go to stderr; stdout belongs to command output. String fields are
passed through :func:`linearcmd.errors.redact` so API keys never reach a log.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from .errors import redact

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

# Emitted first and in this order when present.
_LEADING_FIELDS = (
    "operation",
    "account",
    "kind",
    "entity_id",
    "outcome",
    "workspace",
    "duration_ms",
    "error",
)

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def _clean(value: Any) -> Any:
    return redact(value) if isinstance(value, str) else value


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": redact(record.getMessage()),
        }
        extras = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS and not k.startswith("_")}
        for key in _LEADING_FIELDS:
            if key in extras:
                entry[key] = _clean(extras.pop(key))
        for key, value in extras.items():
            entry[key] = _clean(value)
        return json.dumps(entry, default=str)


class StructuredLogger:
    """Facade over the ``linearcmd`` stdlib logger with domain helpers."""

    def __init__(
        self, name: str = "linearcmd", json_logging: bool = False, level: str = "INFO"
    ) -> None:
        self._logger = logging.getLogger(name)
        self._logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        for existing in list(self._logger.handlers):
            self._logger.removeHandler(existing)
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JSONFormatter() if json_logging else logging.Formatter(_TEXT_FORMAT))
        self._logger.addHandler(handler)
        self._logger.propagate = False
        # Probe loops can repeat an identical record; JSON consumers get it once.
        self._dedupe = json_logging
        self._previous: tuple[int, str, str] | None = None

    def _emit(self, level: int, message: str, extra: dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if self._dedupe:
            key = (level, message, json.dumps(extra, sort_keys=True, default=str))
            if key == self._previous:
                return
            self._previous = key
        self._logger.log(level, redact(message), extra=extra)

    # ---- Domain events ------------------------------------------------
    def log_probe(
        self,
        account: str,
        kind: str,
        entity_id: str,
        outcome: str,
        level: int = logging.DEBUG,
        **kw: Any,
    ) -> None:
        """One credential tried against one entity during resolution."""
        extra = {
            "operation": "probe",
            "account": account,
            "kind": kind,
            "entity_id": entity_id,
            "outcome": outcome,
            **kw,
        }
        self._emit(level, f"probe {kind} {entity_id} via {account}: {outcome}", extra)

    def log_operation(self, operation: str, **kw: Any) -> None:
        self._emit(logging.INFO, f"Operation: {operation}", {"operation": operation, **kw})

    def log_performance(self, operation: str, duration_ms: float, **kw: Any) -> None:
        extra = {"operation": operation, "duration_ms": round(duration_ms, 2), **kw}
        self._emit(logging.INFO, f"{operation} finished in {duration_ms:.1f}ms", extra)

    def log_error(self, message: str, error: str | None = None, **kw: Any) -> None:
        extra = dict(kw)
        if error:
            extra["error"] = error
        self._emit(logging.ERROR, message, extra)

    # ---- Plain levels -------------------------------------------------
    def debug(self, message: str, **kw: Any) -> None:
        self._emit(logging.DEBUG, message, kw)

    def info(self, message: str, **kw: Any) -> None:
        self._emit(logging.INFO, message, kw)

    def warning(self, message: str, **kw: Any) -> None:
        self._emit(logging.WARNING, message, kw)

    def error(self, message: str, **kw: Any) -> None:
        self._emit(logging.ERROR, message, kw)

    @contextmanager
    def timed_operation(self, operation: str, **kw: Any) -> Iterator[None]:
        start = time.perf_counter()
        self.log_operation(f"{operation}_start", **kw)
        try:
            yield
        except Exception as exc:
            self.log_error(f"{operation} failed", error=str(exc), operation=operation, **kw)
            raise
        self.log_performance(operation, (time.perf_counter() - start) * 1000, **kw)


_GLOBAL: StructuredLogger | None = None


def get_logger() -> StructuredLogger:
    global _GLOBAL  # noqa: PLW0603
    if _GLOBAL is None:
        _GLOBAL = StructuredLogger(level="WARNING")
    return _GLOBAL


def configure_logging(json_logging: bool = False, level: str = "WARNING") -> StructuredLogger:
    global _GLOBAL  # noqa: PLW0603
    _GLOBAL = StructuredLogger(json_logging=json_logging, level=level)
    return _GLOBAL


__all__ = ["JSONFormatter", "StructuredLogger", "configure_logging", "get_logger"]

"""
Structured JSON logging for admission decisions.

Responsibility:
    Emits one JSON object per log line, stamped with the identity of the
    admission request and Job being defaulted, so every decision can be
    traced back to a single AdmissionReview.

Architecture position:
    Kernel -- shared infrastructure.  Services log through ``get_logger()``
    and scope identity with ``LogContext.bind()``; the domain never logs.

Invariants enforced:
    - Only the four admission fields (request_uid, operation, job,
      namespace) live in the context.  Binding any other name is a
      programming error and raises TypeError.
    - ``bind()`` restores the previous values on exit, so nested scopes
      (request -> Job) unwind cleanly on every thread.
    - Kernel exceptions are flattened into ``exc_*`` fields.  They are
      expected outcomes and carry no traceback; anything else does.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Mapping
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from jobttl_kernel.exceptions import JobTTLError

_LOGGER_PREFIX = "jobttl_kernel"


# ---------------------------------------------------------------------------
# Admission context
# ---------------------------------------------------------------------------


_CONTEXT: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"jobttl_{name}", default=None)
    for name in ("request_uid", "operation", "job", "namespace")
}


class LogContext:
    """Request-scoped identity attached to every log line."""

    FIELDS = tuple(_CONTEXT)

    @staticmethod
    def get_all() -> dict[str, str]:
        ctx: dict[str, str] = {}
        for name, var in _CONTEXT.items():
            value = var.get()
            if value is not None:
                ctx[name] = value
        return ctx

    @staticmethod
    def clear() -> None:
        for var in _CONTEXT.values():
            var.set(None)

    @staticmethod
    def bind(**fields: str | None) -> "_Binding":
        """
        Scope admission fields for the duration of a ``with`` block.

        None values leave the outer value in place.
        """
        unknown = set(fields) - set(_CONTEXT)
        if unknown:
            raise TypeError(f"unknown log context fields: {sorted(unknown)}")
        return _Binding(fields)


class _Binding:

    def __init__(self, fields: dict[str, str | None]):
        self._fields = fields
        self._tokens: list[tuple[ContextVar[str | None], Token]] = []

    def __enter__(self) -> None:
        for name, value in self._fields.items():
            if value is not None:
                var = _CONTEXT[name]
                self._tokens.append((var, var.set(value)))

    def __exit__(self, *exc: Any) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


class _JSONEncoder(json.JSONEncoder):
    """Outcomes, label maps and selector value sets."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, Mapping):
            return dict(obj)
        if isinstance(obj, (set, frozenset)):
            return sorted(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        return super().default(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    if isinstance(exc, JobTTLError):
        fields["exc_code"] = exc.code
        # selector / position / reason, actual_kind, field_path, ...
        for key, value in vars(exc).items():
            if not key.startswith("_"):
                fields[f"exc_{key}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }

        # Explicit extra never overrides the envelope or the bound context
        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload.update(_exception_fields(exc))
            if not isinstance(exc, JobTTLError):
                payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, cls=_JSONEncoder, default=str)


def get_logger(name: str) -> logging.Logger:
    """Logger under the jobttl_kernel namespace, e.g. ``services.job_defaulter``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a JSON handler to the jobttl_kernel logger once per process."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.setLevel(level)
    root_logger.propagate = False

    h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    h.setFormatter(StructuredFormatter())
    root_logger.addHandler(h)


def reset_logging() -> None:
    """Undo configure_logging(). Test-suite use only."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)

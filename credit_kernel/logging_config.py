"""
Structured JSON logging for the credit kernel.

Every record under the ``credit_kernel`` logger tree is rendered as one
JSON line. Deal-scoped identifiers (deal, bank, actor, trace) travel in
context variables so engines never pass them around explicitly; anything
given through ``extra=`` lands in the payload as a top-level key.
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
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

ROOT_LOGGER_NAME = "credit_kernel"

# ---------------------------------------------------------------------------
# Deal-scoped context
# ---------------------------------------------------------------------------

_CONTEXT_FIELDS: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"credit_log_{name}", default=None)
    for name in ("correlation_id", "deal_id", "bank_id", "actor_id", "trace_id")
}


class LogContext:
    """Deal-scoped identifiers stamped onto every log line.

    Backed by ``contextvars`` so values follow the current thread or task.
    Unknown field names and ``None`` values are ignored.
    """

    fields = tuple(_CONTEXT_FIELDS)

    @staticmethod
    def set(**values: str | None) -> None:
        for name, value in values.items():
            var = _CONTEXT_FIELDS.get(name)
            if var is not None and value is not None:
                var.set(value)

    @staticmethod
    def get_all() -> dict[str, str]:
        current = ((name, var.get()) for name, var in _CONTEXT_FIELDS.items())
        return {name: value for name, value in current if value is not None}

    @staticmethod
    def clear() -> None:
        for var in _CONTEXT_FIELDS.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**values: str | None) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block, then restore them."""
        tokens = [
            (_CONTEXT_FIELDS[name], _CONTEXT_FIELDS[name].set(value))
            for name, value in values.items()
            if name in _CONTEXT_FIELDS and value is not None
        ]
        try:
            yield LogContext
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

# Attributes every LogRecord carries; anything else came from ``extra=``.
_RECORD_ATTRS: frozenset[str] = frozenset(
    logging.makeLogRecord({}).__dict__
) | {"message", "asctime", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, tuple):
        return list(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    """Flatten a raised error into ``exc_*`` keys.

    Credit kernel errors expose a ``code`` plus public attributes such as
    ``field`` or ``metric_id``; each becomes its own key.
    """
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for attr, value in vars(exc).items():
        if attr.startswith("_") or attr == "code":
            continue
        fields.setdefault(f"exc_{attr}", value)
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for attr, value in record.__dict__.items():
            if attr not in _RECORD_ATTRS:
                payload.setdefault(attr, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Child logger of ``credit_kernel``, e.g. ``get_logger("engines.policy")``."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


_setup_lock = threading.Lock()
_handler_installed = False


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a JSON handler to the ``credit_kernel`` tree.

    Only the first call has an effect until ``reset_logging`` runs.
    """
    global _handler_installed
    with _setup_lock:
        if _handler_installed:
            return
        target = handler or logging.StreamHandler(stream if stream is not None else sys.stderr)
        target.setFormatter(StructuredFormatter())

        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.setLevel(level)
        root.addHandler(target)
        root.propagate = False
        _handler_installed = True


def reset_logging() -> None:
    """Drop installed handlers and restore defaults. Used by the test suite."""
    global _handler_installed
    with _setup_lock:
        root = logging.getLogger(ROOT_LOGGER_NAME)
        for installed in list(root.handlers):
            root.removeHandler(installed)
        root.setLevel(logging.WARNING)
        root.propagate = True
        _handler_installed = False

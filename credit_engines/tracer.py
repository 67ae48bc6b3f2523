"""
Engine invocation tracing.

``@traced_engine`` wraps a pure engine entry point and, after each call,
emits one ``CREDIT_ENGINE_TRACE`` record carrying the engine name and
version, a short fingerprint of the chosen arguments and the wall time.
Only a log record is produced; arguments and results pass through
untouched.

    @traced_engine("amortization", "1.0", fingerprint_fields=("instrument",))
    def compute_annual_debt_service(instrument):
        ...
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from decimal import Decimal
from enum import Enum
from typing import Any

from credit_kernel.logging_config import get_logger

logger = get_logger("engines.tracer")

TRACE_MESSAGE = "CREDIT_ENGINE_TRACE"
FINGERPRINT_LENGTH = 16


def _stable_text(value: Any) -> str:
    # Decimal("1.50") and Decimal("1.5") fingerprint the same
    match value:
        case None:
            return "null"
        case bool():
            return str(value).lower()
        case Decimal():
            return "0" if value.is_zero() else str(value.normalize())
        case Enum():
            return str(value.value)
        case str():
            return value
        case Mapping():
            body = ",".join(
                f"{key}:{_stable_text(value[key])}" for key in sorted(value, key=str)
            )
            return "{" + body + "}"
        case list() | tuple():
            return "[" + ",".join(_stable_text(item) for item in value) + "]"
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _stable_text(
            {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        )
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """Hex prefix of SHA-256 over ``name=value`` pairs; unbound names hash as null."""
    text = "|".join(f"{name}={_stable_text(arguments.get(name))}" for name in fingerprint_fields)
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorate an engine function so every call is traced.

    ``fingerprint_fields`` names the parameters, positional or keyword,
    that feed the input fingerprint. With none named the fingerprint is
    the empty string.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        def fingerprint(args: tuple, kwargs: dict) -> str:
            if not fingerprint_fields:
                return ""
            try:
                arguments = signature.bind_partial(*args, **kwargs).arguments
            except TypeError:
                arguments = kwargs
            return compute_input_fingerprint(fingerprint_fields, arguments)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            result = func(*args, **kwargs)
            elapsed = time.perf_counter() - started

            logger.info(
                TRACE_MESSAGE,
                extra={
                    "trace_type": TRACE_MESSAGE,
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fingerprint(args, kwargs),
                    "duration_ms": round(elapsed * 1000, 2),
                    "function": func.__qualname__,
                },
            )
            return result

        return wrapper

    return decorator

"""
JSON-safe rendering of engine results for collaborators.

Dataclass fields become camelCase keys; Decimals become strings so that
no precision is lost; dates become ISO-8601; enums become their values.
Mapping keys (metric ids, fact keys) are emitted unchanged.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def to_wire(value: Any) -> Any:
    # Enum first: str-mixin enums would otherwise pass through unconverted
    if isinstance(value, Enum):
        return value.value
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            camel_case(f.name): to_wire(getattr(value, f.name))
            for f in dataclasses.fields(value)
        }
    if isinstance(value, Mapping):
        return {
            (k.value if isinstance(k, Enum) else str(k)): to_wire(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_wire(v) for v in value]
    if isinstance(value, float):
        return str(Decimal(str(value)))
    raise TypeError(f"Cannot render {type(value).__name__} for the wire")

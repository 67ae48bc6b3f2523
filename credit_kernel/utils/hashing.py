"""
Canonical JSON and SHA-256 helpers.

Snapshot hashes, registry content hashes and artifact hashes all go
through ``canonicalize_json`` so that the same logical value always
yields the same bytes: sorted keys, no whitespace, normalized decimals.
"""

import dataclasses
import hashlib
import json
from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


def _canonical_value(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        # 1.0 and 1.00 must hash identically
        return "0" if obj.is_zero() else str(obj.normalize())
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (date, UUID)):
        return obj.isoformat() if isinstance(obj, date) else str(obj)
    if isinstance(obj, bytes):
        return obj.hex()
    if isinstance(obj, Mapping):
        return dict(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
    raise TypeError(f"Cannot canonicalize {type(obj).__name__}")


def canonicalize_json(data: Any) -> str:
    """Compact, key-sorted JSON text for ``data``."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=_canonical_value)


def hash_payload(payload: Any) -> str:
    """64-character hex SHA-256 of the canonical JSON of ``payload``."""
    return hashlib.sha256(canonicalize_json(payload).encode("utf-8")).hexdigest()


def short_hash(payload: Any, length: int = 16) -> str:
    return hash_payload(payload)[:length]


def strip_volatile_fields(data: Any, volatile: frozenset[str]) -> Any:
    """Drop keys named in ``volatile`` at every depth, e.g. ``generatedAt``."""
    if isinstance(data, Mapping):
        return {
            key: strip_volatile_fields(value, volatile)
            for key, value in data.items()
            if key not in volatile
        }
    if isinstance(data, (list, tuple)):
        return [strip_volatile_fields(item, volatile) for item in data]
    return data

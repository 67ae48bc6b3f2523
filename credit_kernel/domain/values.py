"""
Numeric and immutability primitives shared by every engine.

Responsibility:
    Coerce loosely-typed numeric facts to ``Decimal``, quantize results to
    the fixed output precisions, and freeze statement mappings.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Never float: all arithmetic downstream of ``to_decimal`` is Decimal.
    - Non-finite inputs (NaN, Infinity) are treated as absent, never as
      numbers.
    - Frozen payloads cannot be mutated after construction.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any

MONEY_QUANTUM = Decimal("0.01")
RATIO_QUANTUM = Decimal("0.0001")
RATE_QUANTUM = Decimal("0.000001")

ZERO = Decimal("0")
ONE = Decimal("1")
BPS_PER_UNIT = Decimal("10000")


def to_decimal(value: Any) -> Decimal | None:
    """
    Coerce a fact value to a finite Decimal.

    Returns None for None, booleans, non-numeric strings and non-finite
    values. Floats go through ``str`` so 0.1 becomes Decimal("0.1").
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            return None
    else:
        return None
    if not result.is_finite():
        return None
    return result


def quantize_money(value: Decimal | None) -> Decimal | None:
    if value is None:
        return None
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def quantize_ratio(value: Decimal | None) -> Decimal | None:
    if value is None:
        return None
    return value.quantize(RATIO_QUANTUM, rounding=ROUND_HALF_UP)


def quantize_rate(value: Decimal | None) -> Decimal | None:
    if value is None:
        return None
    return value.quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)


def bps_to_rate(bps: int | Decimal) -> Decimal:
    """Convert basis points to a decimal rate (200 -> 0.02)."""
    return Decimal(bps) / BPS_PER_UNIT


def freeze_decimal_mapping(values: Mapping[str, Any] | None) -> MappingProxyType:
    """
    Freeze a statement mapping of fact key -> numeric value.

    Entries whose value cannot be coerced are dropped: an absent fact
    and a non-numeric fact are the same thing to every engine.
    """
    frozen: dict[str, Decimal] = {}
    for key, raw in (values or {}).items():
        number = to_decimal(raw)
        if number is not None:
            frozen[str(key)] = number
    return MappingProxyType(dict(sorted(frozen.items())))

"""
credit_engines.comparator -- Tolerance-aware diff of two metric sets.

Responsibility:
    Compare metric values from two computations (before and after a
    registry upgrade, or an original run and its replay) and classify
    every key as added, removed, changed or unchanged.

Architecture position:
    Engines -- pure calculation layer.  Used by replay verification and
    registry upgrade checks.

Invariants enforced:
    - Inputs are never mutated.
    - Keys are the union of both inputs; deltas are sorted by key.
    - Running maxima only consider keys numeric on both sides.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from credit_kernel.domain.values import to_decimal

DEFAULT_ABSOLUTE_TOLERANCE = Decimal("0.01")
DEFAULT_PERCENT_TOLERANCE = Decimal("0.001")


class DeltaStatus(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class ComparisonThresholds:
    absolute_tolerance: Decimal = DEFAULT_ABSOLUTE_TOLERANCE
    percent_tolerance: Decimal = DEFAULT_PERCENT_TOLERANCE

    def __post_init__(self) -> None:
        object.__setattr__(self, "absolute_tolerance", to_decimal(self.absolute_tolerance))
        object.__setattr__(self, "percent_tolerance", to_decimal(self.percent_tolerance))


@dataclass(frozen=True)
class MetricDelta:
    key: str
    before: Decimal | None
    after: Decimal | None
    status: DeltaStatus
    absolute_delta: Decimal | None = None
    percent_delta: Decimal | None = None


@dataclass(frozen=True)
class ComparisonSummary:
    changed: int
    added: int
    removed: int
    unchanged: int
    max_absolute_delta: Decimal
    max_percent_delta: Decimal


@dataclass(frozen=True)
class SnapshotComparison:
    deltas: tuple[MetricDelta, ...]
    summary: ComparisonSummary

    @property
    def identical(self) -> bool:
        return self.summary.changed == self.summary.added == self.summary.removed == 0


def _within(
    absolute: Decimal,
    percent: Decimal | None,
    thresholds: ComparisonThresholds,
) -> bool:
    # Absolute tolerance is a noise floor; percent tolerance scales with the value
    if absolute <= thresholds.absolute_tolerance:
        return True
    return percent is not None and percent <= thresholds.percent_tolerance


def _compare_key(
    key: str,
    before: Mapping[str, Any],
    after: Mapping[str, Any],
    thresholds: ComparisonThresholds,
) -> MetricDelta:
    if key not in before:
        return MetricDelta(key, None, to_decimal(after[key]), DeltaStatus.ADDED)
    if key not in after:
        return MetricDelta(key, to_decimal(before[key]), None, DeltaStatus.REMOVED)

    old, new = to_decimal(before[key]), to_decimal(after[key])
    if old is None and new is None:
        return MetricDelta(key, None, None, DeltaStatus.UNCHANGED)
    if old is None or new is None:
        one_sided = new if new is not None else -old
        return MetricDelta(key, old, new, DeltaStatus.CHANGED, absolute_delta=one_sided)

    delta = new - old
    percent = abs(delta) / abs(old) if old != 0 else None
    status = (
        DeltaStatus.UNCHANGED
        if _within(abs(delta), percent, thresholds)
        else DeltaStatus.CHANGED
    )
    return MetricDelta(key, old, new, status, absolute_delta=delta, percent_delta=percent)


def compare_snapshot_metrics(
    before: Mapping[str, Any],
    after: Mapping[str, Any],
    thresholds: ComparisonThresholds | None = None,
) -> SnapshotComparison:
    """Classify every metric key of ``before`` and ``after``."""
    thresholds = thresholds or ComparisonThresholds()
    deltas = tuple(
        _compare_key(key, before, after, thresholds)
        for key in sorted(set(before) | set(after))
    )

    counts = {status: 0 for status in DeltaStatus}
    max_absolute = Decimal("0")
    max_percent = Decimal("0")
    for delta in deltas:
        counts[delta.status] += 1
        if delta.before is None or delta.after is None:
            continue
        max_absolute = max(max_absolute, abs(delta.absolute_delta))
        if delta.percent_delta is not None:
            max_percent = max(max_percent, delta.percent_delta)

    return SnapshotComparison(
        deltas=deltas,
        summary=ComparisonSummary(
            changed=counts[DeltaStatus.CHANGED],
            added=counts[DeltaStatus.ADDED],
            removed=counts[DeltaStatus.REMOVED],
            unchanged=counts[DeltaStatus.UNCHANGED],
            max_absolute_delta=max_absolute,
            max_percent_delta=max_percent,
        ),
    )

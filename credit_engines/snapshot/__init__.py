"""Credit snapshot builder: period selection, debt service and ratios."""

from credit_engines.snapshot.builder import (
    RATIO_DEFINITIONS,
    SNAPSHOT_METRICS,
    compute_credit_snapshot,
    compute_ratios,
    resolve_debt_service,
)
from credit_engines.snapshot.period_selection import PeriodSelection, select_period
from credit_engines.snapshot.types import (
    SOURCE_DEBT_ENGINE,
    SOURCE_INTEREST_PROXY,
    CreditSnapshot,
    DebtServiceDiagnostics,
    DebtServiceSplit,
    DebtServiceSummary,
    RatioDiagnostics,
    RatioMetric,
    SelectionStrategy,
    SnapshotOptions,
    SnapshotPeriod,
)

__all__ = [
    "RATIO_DEFINITIONS",
    "SNAPSHOT_METRICS",
    "SOURCE_DEBT_ENGINE",
    "SOURCE_INTEREST_PROXY",
    "CreditSnapshot",
    "DebtServiceDiagnostics",
    "DebtServiceSplit",
    "DebtServiceSummary",
    "PeriodSelection",
    "RatioDiagnostics",
    "RatioMetric",
    "SelectionStrategy",
    "SnapshotOptions",
    "SnapshotPeriod",
    "compute_credit_snapshot",
    "compute_ratios",
    "resolve_debt_service",
    "select_period",
]

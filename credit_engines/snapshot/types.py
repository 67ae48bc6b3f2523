"""Value objects of the credit snapshot builder."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType

from credit_kernel.domain.financial_model import PeriodType
from credit_kernel.domain.instruments import DebtInstrument

SOURCE_DEBT_ENGINE = "debtEngine"
SOURCE_INTEREST_PROXY = "income.interest"


class SelectionStrategy(str, Enum):
    LATEST_FY = "LATEST_FY"
    LATEST_TTM = "LATEST_TTM"
    LATEST_AVAILABLE = "LATEST_AVAILABLE"
    EXPLICIT = "EXPLICIT"


@dataclass(frozen=True)
class SnapshotOptions:
    """
    How to build a snapshot.

    ``instruments=None`` (or empty) selects the interest-expense proxy for
    debt service.  ``generated_at`` is stamped verbatim onto the snapshot.
    """

    strategy: SelectionStrategy = SelectionStrategy.LATEST_FY
    period_id: str | None = None
    instruments: tuple[DebtInstrument, ...] | None = None
    generated_at: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "strategy", SelectionStrategy(self.strategy))
        if self.instruments is not None:
            object.__setattr__(self, "instruments", tuple(self.instruments))


@dataclass(frozen=True)
class SnapshotPeriod:
    period_id: str
    period_end: date
    type: PeriodType
    strategy: SelectionStrategy
    reason: str


@dataclass(frozen=True)
class DebtServiceSplit:
    existing: Decimal | None = None
    proposed: Decimal | None = None


@dataclass(frozen=True)
class DebtServiceDiagnostics:
    source: str
    missing_components: tuple[str, ...] = ()
    invalid_instruments: tuple[str, ...] = ()
    alignment_type: str | None = None
    notes: tuple[str, ...] = ()


@dataclass(frozen=True)
class DebtServiceSummary:
    total_debt_service: Decimal | None
    breakdown: DebtServiceSplit
    diagnostics: DebtServiceDiagnostics


@dataclass(frozen=True)
class RatioDiagnostics:
    missing_inputs: tuple[str, ...] = ()
    divide_by_zero: bool = False


@dataclass(frozen=True)
class RatioMetric:
    value: Decimal | None
    formula: str
    inputs: Mapping[str, Decimal | None] = field(
        default_factory=lambda: MappingProxyType({})
    )
    diagnostics: RatioDiagnostics = field(default_factory=RatioDiagnostics)


@dataclass(frozen=True)
class CreditSnapshot:
    """Read-only ratios and debt service bound to one analysis period."""

    deal_id: str
    period: SnapshotPeriod
    debt_service: DebtServiceSummary
    ratios: Mapping[str, RatioMetric]
    generated_at: datetime | None = None

    def metric_value(self, name: str) -> Decimal | None:
        metric = self.ratios.get(name)
        return metric.value if metric is not None else None

    @property
    def missing_metrics(self) -> tuple[str, ...]:
        return tuple(name for name, metric in self.ratios.items() if metric.value is None)

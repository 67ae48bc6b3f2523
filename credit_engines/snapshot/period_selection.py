"""
Analysis period selection.

Strategies:
    LATEST_FY         latest FYE period
    LATEST_TTM        latest TTM period
    LATEST_AVAILABLE  latest period of any type
    EXPLICIT          the period with the requested id

Ties on period_end break by period type (FYE, TTM, YTD, INTERIM, QUARTER)
and then by period_id, so the choice is deterministic for any input order.
"""

from __future__ import annotations

from dataclasses import dataclass

from credit_engines.snapshot.types import SelectionStrategy
from credit_kernel.domain.financial_model import FinancialModel, FinancialPeriod, PeriodType

_TYPE_PREFERENCE = {
    PeriodType.FYE: 0,
    PeriodType.TTM: 1,
    PeriodType.YTD: 2,
    PeriodType.INTERIM: 3,
    PeriodType.QUARTER: 4,
}


@dataclass(frozen=True)
class PeriodSelection:
    period: FinancialPeriod
    strategy: SelectionStrategy
    reason: str


def _latest(periods: list[FinancialPeriod]) -> FinancialPeriod | None:
    if not periods:
        return None
    # Latest end date first, then preferred type, then id
    return sorted(
        periods,
        key=lambda p: (-p.period_end.toordinal(), _TYPE_PREFERENCE[p.type], p.period_id),
    )[0]


def select_period(
    model: FinancialModel,
    strategy: SelectionStrategy | str,
    period_id: str | None = None,
) -> PeriodSelection | None:
    """Pick the analysis period, or None if nothing qualifies."""
    strategy = SelectionStrategy(strategy)
    periods = list(model.periods)

    if strategy is SelectionStrategy.EXPLICIT:
        period = model.period(period_id) if period_id else None
        if period is None:
            return None
        return PeriodSelection(period, strategy, f"Explicitly requested period {period_id}")

    if strategy is SelectionStrategy.LATEST_FY:
        period = _latest([p for p in periods if p.type is PeriodType.FYE])
        reason = "Latest FYE period"
    elif strategy is SelectionStrategy.LATEST_TTM:
        period = _latest([p for p in periods if p.type is PeriodType.TTM])
        reason = "Latest TTM period"
    else:
        period = _latest(periods)
        reason = "Using most recent available period"

    if period is None:
        return None
    return PeriodSelection(period, strategy, f"{reason} ({period.type.value} {period.period_end.isoformat()})")

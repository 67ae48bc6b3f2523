"""
credit_engines.model_builder -- Dated facts to a period-indexed FinancialModel.

Facts are grouped by (period_end, period_type) and ordered by period end.
Within a period the last fact for a key wins.  EBITDA is derived from its
components when not reported, and quality flags mark periods that lack
revenue, EBITDA or any debt service figure.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from credit_engines.tracer import traced_engine
from credit_kernel.domain.financial_model import (
    FinancialModel,
    FinancialPeriod,
    PeriodType,
    Statement,
)
from credit_kernel.domain.values import to_decimal
from credit_kernel.exceptions import InvalidFinancialModelError
from credit_kernel.logging_config import get_logger

logger = get_logger("engines.model_builder")

MISSING_REVENUE = "MISSING_REVENUE"
MISSING_EBITDA = "MISSING_EBITDA"
MISSING_DEBT_SERVICE = "MISSING_DEBT_SERVICE"

EBITDA_COMPONENTS: tuple[str, ...] = (
    "netIncome",
    "interest",
    "taxes",
    "depreciation",
    "amortization",
)
DEBT_SERVICE_KEYS: tuple[str, ...] = ("interest", "debtService")


@dataclass(frozen=True)
class FinancialFact:
    statement: Statement
    key: str
    value: Decimal | None
    period_end: date
    period_type: PeriodType
    period_id: str | None = None

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "statement", Statement(self.statement))
        except ValueError:
            raise InvalidFinancialModelError(
                "statement", f"unknown statement: {self.statement!r}"
            ) from None
        try:
            object.__setattr__(self, "period_type", PeriodType(self.period_type))
        except ValueError:
            raise InvalidFinancialModelError(
                "periodType", f"unknown period type: {self.period_type!r}"
            ) from None
        object.__setattr__(self, "value", to_decimal(self.value))


class _PeriodDraft:
    def __init__(self, period_end: date, period_type: PeriodType):
        self.period_end = period_end
        self.period_type = period_type
        self.period_id: str | None = None
        self.statements: dict[Statement, dict[str, Decimal]] = {s: {} for s in Statement}

    def add(self, fact: FinancialFact) -> None:
        if fact.period_id and self.period_id is None:
            self.period_id = fact.period_id
        if fact.value is None:
            return
        self.statements[fact.statement][fact.key] = fact.value

    def derive_ebitda(self) -> bool:
        cashflow = self.statements[Statement.CASHFLOW]
        if "ebitda" in cashflow:
            return False
        flat = self.flat()
        parts = [flat.get(key) for key in EBITDA_COMPONENTS]
        if any(part is None for part in parts):
            return False
        cashflow["ebitda"] = sum(parts, Decimal("0"))
        return True

    def flat(self) -> dict[str, Decimal]:
        merged: dict[str, Decimal] = {}
        for statement in Statement:
            merged.update(self.statements[statement])
        return merged

    def quality_flags(self) -> tuple[str, ...]:
        flat = self.flat()
        flags = []
        if "revenue" not in flat:
            flags.append(MISSING_REVENUE)
        if "ebitda" not in flat:
            flags.append(MISSING_EBITDA)
        if not any(key in flat for key in DEBT_SERVICE_KEYS):
            flags.append(MISSING_DEBT_SERVICE)
        return tuple(flags)

    def build(self) -> FinancialPeriod:
        return FinancialPeriod(
            period_id=self.period_id
            or f"{self.period_type.value}-{self.period_end.isoformat()}",
            period_end=self.period_end,
            type=self.period_type,
            income=self.statements[Statement.INCOME],
            balance=self.statements[Statement.BALANCE],
            cashflow=self.statements[Statement.CASHFLOW],
            quality_flags=self.quality_flags(),
        )


@traced_engine("model_builder", "1.0", fingerprint_fields=("deal_id",))
def build_financial_model(deal_id: str, facts: Iterable[FinancialFact]) -> FinancialModel:
    drafts: dict[tuple[date, PeriodType], _PeriodDraft] = {}
    for fact in facts:
        key = (fact.period_end, fact.period_type)
        if key not in drafts:
            drafts[key] = _PeriodDraft(fact.period_end, fact.period_type)
        drafts[key].add(fact)

    derived = 0
    ordered = sorted(drafts.values(), key=lambda d: (d.period_end, d.period_type.value))
    for draft in ordered:
        if draft.derive_ebitda():
            derived += 1

    model = FinancialModel(deal_id=deal_id, periods=tuple(d.build() for d in ordered))
    logger.info(
        "financial_model_built",
        extra={
            "deal_id": deal_id,
            "period_count": len(model.periods),
            "derived_ebitda_periods": derived,
        },
    )
    return model

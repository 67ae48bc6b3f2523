"""
Financial model -- period-indexed, immutable statement facts.

Responsibility:
    Hold the normalized numeric facts of a borrower, one ``FinancialPeriod``
    per reporting period, as the single input of the snapshot builder.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.

Invariants enforced:
    - Periods are immutable snapshots of facts as of construction time.
    - Statement values are finite Decimals; anything else is dropped at
      construction and therefore reads as "missing" everywhere.
    - The model has no update method. Transforms (stress haircuts) build
      new models through ``with_statement_value`` / ``replace_periods``.

Failure modes:
    - InvalidFinancialModelError from ``from_dict`` when a period lacks an
      id, has an unparseable end date, or names an unknown period type.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from credit_kernel.domain.values import freeze_decimal_mapping
from credit_kernel.exceptions import InvalidFinancialModelError


class PeriodType(str, Enum):
    """Reporting basis of a period."""

    FYE = "FYE"  # Full fiscal year
    TTM = "TTM"  # Trailing twelve months
    YTD = "YTD"  # Year to date
    INTERIM = "INTERIM"
    QUARTER = "QUARTER"

    @property
    def is_full_year(self) -> bool:
        return self in (PeriodType.FYE, PeriodType.TTM)


class Statement(str, Enum):
    INCOME = "income"
    BALANCE = "balance"
    CASHFLOW = "cashflow"


@dataclass(frozen=True)
class FinancialPeriod:
    """
    One reporting period of statement facts.

    Statement mappings are read-only; values are Decimal.
    """

    period_id: str
    period_end: date
    type: PeriodType
    income: Mapping[str, Decimal] = field(default_factory=dict)
    balance: Mapping[str, Decimal] = field(default_factory=dict)
    cashflow: Mapping[str, Decimal] = field(default_factory=dict)
    quality_flags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", PeriodType(self.type))
        object.__setattr__(self, "income", freeze_decimal_mapping(self.income))
        object.__setattr__(self, "balance", freeze_decimal_mapping(self.balance))
        object.__setattr__(self, "cashflow", freeze_decimal_mapping(self.cashflow))
        object.__setattr__(self, "quality_flags", tuple(self.quality_flags))

    def statement(self, statement: Statement | str) -> Mapping[str, Decimal]:
        return getattr(self, Statement(statement).value)

    def facts(self) -> dict[str, Decimal]:
        """Flatten income, balance and cashflow into one fact map."""
        merged: dict[str, Decimal] = {}
        merged.update(self.income)
        merged.update(self.balance)
        merged.update(self.cashflow)
        return merged

    def with_statement_value(
        self, statement: Statement | str, key: str, value: Decimal | None
    ) -> FinancialPeriod:
        """Return a copy with one statement fact replaced (None removes it)."""
        name = Statement(statement).value
        updated = dict(getattr(self, name))
        if value is None:
            updated.pop(key, None)
        else:
            updated[key] = value
        return replace(self, **{name: updated})

    def to_dict(self) -> dict[str, Any]:
        return {
            "periodId": self.period_id,
            "periodEnd": self.period_end.isoformat(),
            "type": self.type.value,
            "income": dict(self.income),
            "balance": dict(self.balance),
            "cashflow": dict(self.cashflow),
            "qualityFlags": list(self.quality_flags),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FinancialPeriod:
        period_id = data.get("periodId", data.get("period_id"))
        if not period_id:
            raise InvalidFinancialModelError("periodId", "required")

        raw_end = data.get("periodEnd", data.get("period_end"))
        if isinstance(raw_end, date):
            period_end = raw_end
        else:
            try:
                period_end = date.fromisoformat(str(raw_end))
            except ValueError:
                raise InvalidFinancialModelError(
                    "periodEnd", f"not an ISO date: {raw_end!r}"
                ) from None

        raw_type = str(data.get("type", "")).upper()
        try:
            period_type = PeriodType(raw_type)
        except ValueError:
            raise InvalidFinancialModelError(
                "type", f"unknown period type: {raw_type!r}"
            ) from None

        return cls(
            period_id=str(period_id),
            period_end=period_end,
            type=period_type,
            income=data.get("income") or {},
            balance=data.get("balance") or {},
            cashflow=data.get("cashflow") or {},
            quality_flags=tuple(data.get("qualityFlags", data.get("quality_flags", ()))),
        )


@dataclass(frozen=True)
class FinancialModel:
    """Ordered periods for one deal. Build a new model to change facts."""

    deal_id: str
    periods: tuple[FinancialPeriod, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "periods", tuple(self.periods))

    def period(self, period_id: str) -> FinancialPeriod | None:
        for period in self.periods:
            if period.period_id == period_id:
                return period
        return None

    def replace_periods(self, periods: Iterable[FinancialPeriod]) -> FinancialModel:
        return FinancialModel(deal_id=self.deal_id, periods=tuple(periods))

    def to_dict(self) -> dict[str, Any]:
        return {
            "dealId": self.deal_id,
            "periods": [p.to_dict() for p in self.periods],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FinancialModel:
        deal_id = data.get("dealId", data.get("deal_id"))
        if not deal_id:
            raise InvalidFinancialModelError("dealId", "required")
        return cls(
            deal_id=str(deal_id),
            periods=tuple(
                FinancialPeriod.from_dict(p) for p in data.get("periods") or ()
            ),
        )

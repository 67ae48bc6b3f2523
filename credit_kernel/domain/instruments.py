"""
Debt instrument value object.

Instruments are constructed by callers from deal / loan-request data and
never mutated by the engines. Numeric fields are optional so that the
amortization engine, not the constructor, reports what is missing.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Any

from credit_kernel.domain.values import to_decimal
from credit_kernel.exceptions import InvalidInstrumentError


class InstrumentSource(str, Enum):
    """Whether the debt already exists or is being requested."""

    EXISTING = "existing"
    PROPOSED = "proposed"


class PaymentFrequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"

    @property
    def periods_per_year(self) -> int:
        return _PERIODS_PER_YEAR[self]

    @property
    def months_per_period(self) -> int:
        return 12 // _PERIODS_PER_YEAR[self]


_PERIODS_PER_YEAR = {
    PaymentFrequency.MONTHLY: 12,
    PaymentFrequency.QUARTERLY: 4,
    PaymentFrequency.ANNUAL: 1,
}


@dataclass(frozen=True)
class DebtInstrument:
    """
    A single loan in a borrower's debt portfolio.

    ``rate`` is an annual decimal rate (0.065 for 6.5%).
    """

    id: str
    source: InstrumentSource = InstrumentSource.PROPOSED
    principal: Decimal | None = None
    rate: Decimal | None = None
    amortization_months: int | None = None
    term_months: int | None = None
    interest_only_months: int | None = None
    balloon: bool = False
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "source", InstrumentSource(self.source))
        except ValueError:
            raise InvalidInstrumentError(self.id, "source", f"unknown source {self.source!r}") from None
        try:
            object.__setattr__(
                self, "payment_frequency", PaymentFrequency(self.payment_frequency)
            )
        except ValueError:
            raise InvalidInstrumentError(
                self.id, "paymentFrequency", f"unknown frequency {self.payment_frequency!r}"
            ) from None
        object.__setattr__(self, "principal", to_decimal(self.principal))
        object.__setattr__(self, "rate", to_decimal(self.rate))
        for name in ("amortization_months", "term_months", "interest_only_months"):
            object.__setattr__(self, name, _to_months(self.id, name, getattr(self, name)))

    def with_rate(self, rate: Decimal) -> DebtInstrument:
        return replace(self, rate=rate)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source.value,
            "principal": self.principal,
            "rate": self.rate,
            "amortizationMonths": self.amortization_months,
            "termMonths": self.term_months,
            "interestOnlyMonths": self.interest_only_months,
            "balloon": self.balloon,
            "paymentFrequency": self.payment_frequency.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DebtInstrument:
        """Build from a camelCase or snake_case payload."""

        def pick(camel: str, snake: str, default: Any = None) -> Any:
            return data.get(camel, data.get(snake, default))

        instrument_id = data.get("id")
        if not instrument_id:
            raise InvalidInstrumentError(None, "id", "required")
        return cls(
            id=str(instrument_id),
            source=data.get("source", InstrumentSource.PROPOSED),
            principal=data.get("principal"),
            rate=data.get("rate"),
            amortization_months=pick("amortizationMonths", "amortization_months"),
            term_months=pick("termMonths", "term_months"),
            interest_only_months=pick("interestOnlyMonths", "interest_only_months"),
            balloon=bool(data.get("balloon", False)),
            payment_frequency=pick(
                "paymentFrequency", "payment_frequency", PaymentFrequency.MONTHLY
            ),
        )


def _to_months(instrument_id: str, field_name: str, value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidInstrumentError(instrument_id, field_name, "must be an integer")
    number = to_decimal(value)
    if number is None or number != number.to_integral_value():
        raise InvalidInstrumentError(instrument_id, field_name, f"not a whole month count: {value!r}")
    return int(number)

"""
credit_engines.debt.amortization -- Per-instrument annual debt service.

Responsibility:
    Compute the periodic and annual payment of a single loan, covering
    standard amortizing, interest-only, balloon and zero-rate structures.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Consumed by the
    portfolio aggregator.

Invariants enforced:
    - Replay safety: identical instruments produce identical results.
    - Validation order, first match wins: missing inputs, then
      unsupported structure (negative principal or rate, non-positive
      amortization), then zero principal.
    - Interest-only loans report the post-IO fully amortizing payment,
      never the lower IO payment.
    - Balloon principal is excluded from annual debt service; the
      schedule amortizes over amortization_months, not term_months.
    - breakdown.principal + breakdown.interest == annual_debt_service.

Failure modes:
    - None raised.  Invalid input is reported in ``diagnostics``.
"""

from __future__ import annotations

import math
from decimal import Decimal

from credit_engines.debt.types import (
    DebtServiceBreakdown,
    InstrumentDiagnostics,
    InstrumentServiceResult,
)
from credit_engines.tracer import traced_engine
from credit_kernel.domain.instruments import DebtInstrument
from credit_kernel.domain.values import ZERO, quantize_money
from credit_kernel.logging_config import get_logger

logger = get_logger("engines.debt.amortization")

OVERFLOW_NOTE = "Unsupported structure: payment exceeds the representable range"


def periodic_payment(principal: Decimal, periodic_rate: Decimal, periods: int) -> Decimal:
    """
    Standard annuity payment ``P*r*(1+r)^n / ((1+r)^n - 1)``.

    A zero rate pays principal only: ``P / n``.
    """
    if periodic_rate == 0:
        return principal / Decimal(periods)
    growth = (Decimal(1) + periodic_rate) ** periods
    return principal * periodic_rate * growth / (growth - Decimal(1))


def annual_payment(
    principal: Decimal, periodic_rate: Decimal, periods: int, periods_per_year: int
) -> Decimal:
    """Unrounded yearly total; zero rate is exactly ``P * periods_per_year / n``."""
    if periodic_rate == 0:
        return principal * Decimal(periods_per_year) / Decimal(periods)
    return periodic_payment(principal, periodic_rate, periods) * periods_per_year


def _invalid(instrument: DebtInstrument, **diagnostics) -> InstrumentServiceResult:
    return InstrumentServiceResult(
        instrument_id=instrument.id,
        source=instrument.source,
        annual_debt_service=None,
        periodic_debt_service=None,
        breakdown=None,
        diagnostics=InstrumentDiagnostics(**diagnostics),
    )


def _missing_inputs(instrument: DebtInstrument) -> tuple[str, ...]:
    missing = []
    if instrument.principal is None:
        missing.append("principal")
    if instrument.rate is None:
        missing.append("rate")
    if instrument.amortization_months is None:
        missing.append("amortizationMonths")
    return tuple(missing)


def _structure_problems(instrument: DebtInstrument) -> list[str]:
    problems = []
    if instrument.principal < 0:
        problems.append("Principal is negative")
    if instrument.rate < 0:
        problems.append("Rate is negative")
    if instrument.amortization_months <= 0:
        problems.append("Amortization months must be positive")
    if instrument.interest_only_months is not None and instrument.interest_only_months < 0:
        problems.append("Interest-only months cannot be negative")
    if instrument.term_months is not None and instrument.term_months <= 0:
        problems.append("Term months must be positive")
    return problems


@traced_engine("amortization", "1.0", fingerprint_fields=("instrument",))
def compute_annual_debt_service(instrument: DebtInstrument) -> InstrumentServiceResult:
    """Compute annual and periodic debt service for one instrument."""
    missing = _missing_inputs(instrument)
    if missing:
        return _invalid(instrument, missing_inputs=missing)

    problems = _structure_problems(instrument)
    if problems:
        logger.info(
            "instrument_unsupported_structure",
            extra={"instrument_id": instrument.id, "problems": problems},
        )
        return _invalid(
            instrument,
            unsupported_structure=True,
            notes=tuple(f"Unsupported structure: {p}" for p in problems),
        )

    if instrument.principal == 0:
        return InstrumentServiceResult(
            instrument_id=instrument.id,
            source=instrument.source,
            annual_debt_service=quantize_money(ZERO),
            periodic_debt_service=quantize_money(ZERO),
            breakdown=DebtServiceBreakdown(
                principal=quantize_money(ZERO), interest=quantize_money(ZERO)
            ),
        )

    frequency = instrument.payment_frequency
    periods_per_year = frequency.periods_per_year
    periods = math.ceil(instrument.amortization_months / frequency.months_per_period)
    periodic_rate = instrument.rate / Decimal(periods_per_year)

    try:
        exact_annual = annual_payment(instrument.principal, periodic_rate, periods, periods_per_year)
        payment = quantize_money(periodic_payment(instrument.principal, periodic_rate, periods))
        annual = quantize_money(exact_annual)
        annual_interest = min(quantize_money(instrument.principal * instrument.rate), annual)
    except ArithmeticError:
        logger.warning(
            "instrument_arithmetic_overflow",
            extra={"instrument_id": instrument.id, "periods": periods},
        )
        return _invalid(
            instrument,
            unsupported_structure=True,
            notes=(OVERFLOW_NOTE,),
        )

    notes: list[str] = []
    if instrument.interest_only_months:
        notes.append(
            f"IO period of {instrument.interest_only_months} months: reporting the "
            "post-IO fully amortizing payment, not the interest-only payment"
        )
    if instrument.balloon:
        maturity = (
            f"month {instrument.term_months}" if instrument.term_months else "maturity"
        )
        notes.append(
            f"Balloon principal due at {maturity} is excluded from annual debt service; "
            f"payment amortizes over {instrument.amortization_months} months"
        )

    return InstrumentServiceResult(
        instrument_id=instrument.id,
        source=instrument.source,
        annual_debt_service=annual,
        periodic_debt_service=payment,
        breakdown=DebtServiceBreakdown(
            principal=annual - annual_interest,
            interest=annual_interest,
        ),
        diagnostics=InstrumentDiagnostics(notes=tuple(notes)),
    )

"""
credit_engines.debt.portfolio -- Sum debt service across a loan portfolio.

Each instrument is computed independently.  Invalid instruments are
isolated in ``diagnostics.invalid_instruments``; they never zero out or
block the valid ones.  Zero and "cannot compute" stay distinct: totals are
None only when no instrument produced a result.

Instruments sharing an id are all kept; later ones are keyed with a
``#n`` suffix and noted.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from types import MappingProxyType

from credit_engines.debt.amortization import compute_annual_debt_service
from credit_engines.debt.types import (
    InstrumentServiceResult,
    PortfolioDiagnostics,
    PortfolioServiceResult,
)
from credit_engines.tracer import traced_engine
from credit_kernel.domain.instruments import DebtInstrument
from credit_kernel.logging_config import get_logger

logger = get_logger("engines.debt.portfolio")


def _breakdown_key(instrument_id: str, taken: dict) -> str:
    # Repeated ids get "#2", "#3" suffixes so no result is dropped from the split
    key, copy = instrument_id, 1
    while key in taken:
        copy += 1
        key = f"{instrument_id}#{copy}"
    return key


@traced_engine("debt_portfolio", "1.0", fingerprint_fields=("instruments",))
def compute_debt_portfolio_service(
    instruments: Iterable[DebtInstrument] | None,
) -> PortfolioServiceResult:
    instruments = list(instruments or ())
    if not instruments:
        return PortfolioServiceResult(
            total_annual_debt_service=None,
            total_principal=None,
            total_interest=None,
            diagnostics=PortfolioDiagnostics(notes=("No debt instruments supplied",)),
        )

    results: dict[str, InstrumentServiceResult] = {}
    invalid: list[str] = []
    duplicate_notes: list[str] = []
    annual = principal = interest = Decimal("0")
    for instrument in instruments:
        key = _breakdown_key(instrument.id, results)
        if key != instrument.id:
            duplicate_notes.append(f"Duplicate instrument id {instrument.id!r} reported as {key!r}")
        result = compute_annual_debt_service(instrument)
        results[key] = result
        if not result.is_valid:
            invalid.append(key)
            continue
        annual += result.annual_debt_service
        principal += result.breakdown.principal
        interest += result.breakdown.interest

    notes = tuple(duplicate_notes)
    if len(invalid) == len(instruments):
        logger.warning(
            "debt_portfolio_all_invalid", extra={"invalid_instruments": invalid}
        )
        notes += ("No instrument produced a debt service result",)
        return PortfolioServiceResult(
            total_annual_debt_service=None,
            total_principal=None,
            total_interest=None,
            instrument_breakdown=MappingProxyType(results),
            diagnostics=PortfolioDiagnostics(
                invalid_instruments=tuple(invalid), notes=notes
            ),
        )

    return PortfolioServiceResult(
        total_annual_debt_service=annual,
        total_principal=principal,
        total_interest=interest,
        instrument_breakdown=MappingProxyType(results),
        diagnostics=PortfolioDiagnostics(invalid_instruments=tuple(invalid), notes=notes),
    )

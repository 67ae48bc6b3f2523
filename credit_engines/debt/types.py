"""Result value objects of the debt engine."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType

from credit_kernel.domain.instruments import InstrumentSource


@dataclass(frozen=True)
class DebtServiceBreakdown:
    """First-period principal / interest split, annualized."""

    principal: Decimal
    interest: Decimal


@dataclass(frozen=True)
class InstrumentDiagnostics:
    missing_inputs: tuple[str, ...] = ()
    unsupported_structure: bool = False
    notes: tuple[str, ...] = ()


@dataclass(frozen=True)
class InstrumentServiceResult:
    """
    Per-instrument debt service.

    Either ``annual_debt_service`` is set (a complete numeric result) or it
    is None and the diagnostics say why.
    """

    instrument_id: str
    source: InstrumentSource
    annual_debt_service: Decimal | None
    periodic_debt_service: Decimal | None
    breakdown: DebtServiceBreakdown | None
    diagnostics: InstrumentDiagnostics = field(default_factory=InstrumentDiagnostics)

    @property
    def is_valid(self) -> bool:
        return self.annual_debt_service is not None


@dataclass(frozen=True)
class PortfolioDiagnostics:
    invalid_instruments: tuple[str, ...] = ()
    notes: tuple[str, ...] = ()


@dataclass(frozen=True)
class PortfolioServiceResult:
    """
    Sum of per-instrument results.

    Totals are None only when no instrument produced a result; otherwise
    they sum the valid subset.
    """

    total_annual_debt_service: Decimal | None
    total_principal: Decimal | None
    total_interest: Decimal | None
    instrument_breakdown: Mapping[str, InstrumentServiceResult] = field(
        default_factory=lambda: MappingProxyType({})
    )
    diagnostics: PortfolioDiagnostics = field(default_factory=PortfolioDiagnostics)

    def total_for_source(self, source: InstrumentSource) -> Decimal | None:
        """Sum of valid instruments from one source; None if there are none."""
        amounts = [
            r.annual_debt_service
            for r in self.instrument_breakdown.values()
            if r.source == source and r.annual_debt_service is not None
        ]
        return sum(amounts, Decimal("0")) if amounts else None


@dataclass(frozen=True)
class AlignedDebtService:
    annual_debt_service: Decimal | None
    period_type: str
    alignment_type: str  # "FY" or "INTERIM"
    notes: tuple[str, ...] = ()

"""Debt engine: amortization, portfolio aggregation and period alignment."""

from credit_engines.debt.alignment import align_debt_service_to_period
from credit_engines.debt.amortization import compute_annual_debt_service, periodic_payment
from credit_engines.debt.portfolio import compute_debt_portfolio_service
from credit_engines.debt.types import (
    AlignedDebtService,
    DebtServiceBreakdown,
    InstrumentDiagnostics,
    InstrumentServiceResult,
    PortfolioDiagnostics,
    PortfolioServiceResult,
)

__all__ = [
    "AlignedDebtService",
    "DebtServiceBreakdown",
    "InstrumentDiagnostics",
    "InstrumentServiceResult",
    "PortfolioDiagnostics",
    "PortfolioServiceResult",
    "align_debt_service_to_period",
    "compute_annual_debt_service",
    "compute_debt_portfolio_service",
    "periodic_payment",
]

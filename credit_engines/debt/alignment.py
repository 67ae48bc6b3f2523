"""
credit_engines.debt.alignment -- Map portfolio debt service onto a period.

Full-year periods (FYE, TTM) take the annual total unchanged.  Interim
periods also take the full annual figure and carry an explicit
"No proration applied" note.  Prorating would change credit decisions,
so interim periods stay unprorated until the product owners decide
otherwise.
"""

from __future__ import annotations

from credit_engines.debt.types import AlignedDebtService, PortfolioServiceResult
from credit_kernel.domain.financial_model import PeriodType

INTERIM_NOTE = (
    "No proration applied: interim period uses the full annual debt service"
)


def align_debt_service_to_period(
    portfolio: PortfolioServiceResult,
    period_type: PeriodType | str,
) -> AlignedDebtService:
    period_type = PeriodType(period_type)
    if period_type.is_full_year:
        return AlignedDebtService(
            annual_debt_service=portfolio.total_annual_debt_service,
            period_type=period_type.value,
            alignment_type="FY",
        )
    return AlignedDebtService(
        annual_debt_service=portfolio.total_annual_debt_service,
        period_type=period_type.value,
        alignment_type="INTERIM",
        notes=(INTERIM_NOTE,),
    )

"""
credit_engines.snapshot.builder -- Headline credit ratios for one period.

Responsibility:
    Select the analysis period, resolve total debt service, and compute
    DSCR, leverage, liquidity and margin ratios through the sandboxed
    expression evaluator.

Architecture position:
    Engines -- pure calculation layer.  Depends on the debt engine and
    the expression evaluator; consumed by lenses, policy, stress and the
    underwriting orchestrator.

Invariants enforced:
    - Debt service source is always surfaced: ``debtEngine`` when
      instruments are supplied, ``income.interest`` otherwise.
    - Missing values are never zeroed: a ratio with a missing input is
      None and lists the input in ``diagnostics.missing_inputs``.
    - Division by zero yields None with ``divide_by_zero`` set.
    - No wall-clock access: ``generated_at`` comes from the options.

Failure modes:
    - Returns None when no period qualifies under the chosen strategy.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from types import MappingProxyType

from credit_engines.debt.alignment import align_debt_service_to_period
from credit_engines.debt.portfolio import compute_debt_portfolio_service
from credit_engines.expression import evaluate, evaluate_ratio, referenced_keys
from credit_engines.snapshot.period_selection import select_period
from credit_engines.snapshot.types import (
    SOURCE_DEBT_ENGINE,
    SOURCE_INTEREST_PROXY,
    CreditSnapshot,
    DebtServiceDiagnostics,
    DebtServiceSplit,
    DebtServiceSummary,
    RatioDiagnostics,
    RatioMetric,
    SnapshotOptions,
    SnapshotPeriod,
)
from credit_engines.tracer import traced_engine
from credit_kernel.domain.financial_model import FinancialModel, FinancialPeriod
from credit_kernel.domain.instruments import DebtInstrument, InstrumentSource
from credit_kernel.domain.values import quantize_money, quantize_ratio
from credit_kernel.logging_config import get_logger

logger = get_logger("engines.snapshot")

TOTAL_DEBT_SERVICE_KEY = "totalDebtService"

# (metric, formula label, numerator expression, denominator expression)
RATIO_DEFINITIONS: tuple[tuple[str, str, str, str], ...] = (
    ("dscr", "EBITDA / TotalDebtService", "ebitda", TOTAL_DEBT_SERVICE_KEY),
    (
        "leverageDebtToEbitda",
        "(ShortTermDebt + LongTermDebt) / EBITDA",
        "shortTermDebt + longTermDebt",
        "ebitda",
    ),
    (
        "currentRatio",
        "(Cash + AccountsReceivable + Inventory) / ShortTermDebt",
        "cash + accountsReceivable + inventory",
        "shortTermDebt",
    ),
    (
        "quickRatio",
        "(Cash + AccountsReceivable) / ShortTermDebt",
        "cash + accountsReceivable",
        "shortTermDebt",
    ),
    ("ebitdaMargin", "EBITDA / Revenue", "ebitda", "revenue"),
    ("netMargin", "NetIncome / Revenue", "netIncome", "revenue"),
)

WORKING_CAPITAL_FORMULA = "CurrentAssets - ShortTermDebt"
WORKING_CAPITAL_EXPR = "cash + accountsReceivable + inventory - shortTermDebt"

SNAPSHOT_METRICS: tuple[str, ...] = (
    "dscr",
    "leverageDebtToEbitda",
    "currentRatio",
    "quickRatio",
    "workingCapital",
    "ebitdaMargin",
    "netMargin",
)


def resolve_debt_service(
    period: FinancialPeriod,
    instruments: tuple[DebtInstrument, ...] | None,
) -> DebtServiceSummary:
    """Debt engine total when instruments are given, else interest expense."""
    if not instruments:
        interest = period.income.get("interest")
        return DebtServiceSummary(
            total_debt_service=interest,
            breakdown=DebtServiceSplit(existing=interest, proposed=None),
            diagnostics=DebtServiceDiagnostics(
                source=SOURCE_INTEREST_PROXY,
                missing_components=() if interest is not None else (SOURCE_INTEREST_PROXY,),
                notes=("Debt service approximated by recorded interest expense",),
            ),
        )

    portfolio = compute_debt_portfolio_service(instruments)
    aligned = align_debt_service_to_period(portfolio, period.type)
    notes = tuple(portfolio.diagnostics.notes) + tuple(aligned.notes)
    for instrument_id in portfolio.diagnostics.invalid_instruments:
        notes += (f"Instrument {instrument_id} excluded from debt service",)

    return DebtServiceSummary(
        total_debt_service=aligned.annual_debt_service,
        breakdown=DebtServiceSplit(
            existing=portfolio.total_for_source(InstrumentSource.EXISTING),
            proposed=portfolio.total_for_source(InstrumentSource.PROPOSED),
        ),
        diagnostics=DebtServiceDiagnostics(
            source=SOURCE_DEBT_ENGINE,
            missing_components=()
            if aligned.annual_debt_service is not None
            else (SOURCE_DEBT_ENGINE,),
            invalid_instruments=portfolio.diagnostics.invalid_instruments,
            alignment_type=aligned.alignment_type,
            notes=notes,
        ),
    )


def _inputs(facts: Mapping[str, Decimal | None], *exprs: str) -> MappingProxyType:
    keys: dict[str, Decimal | None] = {}
    for expr in exprs:
        for key in referenced_keys(expr):
            keys[key] = facts.get(key)
    return MappingProxyType(keys)


def compute_ratios(facts: Mapping[str, Decimal | None]) -> dict[str, RatioMetric]:
    """Evaluate every snapshot ratio against a flat fact map."""
    ratios: dict[str, RatioMetric] = {}
    for name, formula, numerator, denominator in RATIO_DEFINITIONS:
        result = evaluate_ratio(numerator, denominator, facts)
        ratios[name] = RatioMetric(
            value=quantize_ratio(result.value),
            formula=formula,
            inputs=_inputs(facts, numerator, denominator),
            diagnostics=RatioDiagnostics(
                missing_inputs=result.missing_inputs,
                divide_by_zero=result.divide_by_zero,
            ),
        )

    working_capital = evaluate(WORKING_CAPITAL_EXPR, facts)
    ratios["workingCapital"] = RatioMetric(
        value=quantize_money(working_capital.value),
        formula=WORKING_CAPITAL_FORMULA,
        inputs=_inputs(facts, WORKING_CAPITAL_EXPR),
        diagnostics=RatioDiagnostics(missing_inputs=working_capital.missing_inputs),
    )
    return {name: ratios[name] for name in SNAPSHOT_METRICS}


@traced_engine("credit_snapshot", "1.0", fingerprint_fields=("options",))
def compute_credit_snapshot(
    model: FinancialModel,
    options: SnapshotOptions | None = None,
) -> CreditSnapshot | None:
    """
    Build the credit snapshot for ``model`` under ``options``.

    Returns None when no period qualifies.
    """
    options = options or SnapshotOptions()
    selection = select_period(model, options.strategy, options.period_id)
    if selection is None:
        logger.info(
            "credit_snapshot_no_period",
            extra={"deal_id": model.deal_id, "strategy": options.strategy.value},
        )
        return None

    period = selection.period
    debt_service = resolve_debt_service(period, options.instruments)

    facts: dict[str, Decimal | None] = period.facts()
    facts[TOTAL_DEBT_SERVICE_KEY] = debt_service.total_debt_service
    ratios = compute_ratios(facts)

    snapshot = CreditSnapshot(
        deal_id=model.deal_id,
        period=SnapshotPeriod(
            period_id=period.period_id,
            period_end=period.period_end,
            type=period.type,
            strategy=selection.strategy,
            reason=selection.reason,
        ),
        debt_service=debt_service,
        ratios=MappingProxyType(ratios),
        generated_at=options.generated_at,
    )
    logger.info(
        "credit_snapshot_built",
        extra={
            "deal_id": model.deal_id,
            "period_id": period.period_id,
            "debt_service_source": debt_service.diagnostics.source,
            "missing_metrics": list(snapshot.missing_metrics),
        },
    )
    return snapshot

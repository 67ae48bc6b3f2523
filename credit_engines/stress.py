"""
credit_engines.stress -- Scenario stress testing of the credit snapshot.

Responsibility:
    Re-run the snapshot builder and policy evaluator under adverse
    scenarios (EBITDA haircut, revenue haircut, rate shock, combined) and
    report how DSCR, debt service and the risk tier move against baseline.

Architecture position:
    Engines -- pure calculation layer.  Depends on the snapshot builder
    and the policy evaluator.

Invariants enforced:
    - Transforms never mutate their inputs; they return new models and
      instrument tuples.
    - Deltas are measured against the baseline scenario and are None for
      the baseline itself or when either side is unavailable.
    - BASELINE is always evaluated first.

Failure modes:
    - ``run_stress_scenarios`` returns None when no baseline snapshot can
      be built; the orchestrator turns that into a pipeline failure.
    - UnknownScenarioError from ``get_scenario_definition``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from decimal import Decimal

from credit_engines.policy import PolicyConfigOverride, PolicyResult, evaluate_policy
from credit_engines.snapshot.builder import compute_credit_snapshot
from credit_engines.snapshot.types import CreditSnapshot, SnapshotOptions
from credit_engines.tracer import traced_engine
from credit_kernel.domain.financial_model import FinancialModel, Statement
from credit_kernel.domain.instruments import DebtInstrument
from credit_kernel.domain.products import ProductType, RiskTier, compare_tiers, worst_tier
from credit_kernel.domain.values import ONE, ZERO, bps_to_rate, to_decimal
from credit_kernel.exceptions import UnknownScenarioError
from credit_kernel.logging_config import get_logger

logger = get_logger("engines.stress")

BASELINE_KEY = "BASELINE"


@dataclass(frozen=True)
class StressScenario:
    key: str
    label: str
    ebitda_haircut: Decimal = ZERO
    revenue_haircut: Decimal = ZERO
    rate_shock_bps: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "ebitda_haircut", to_decimal(self.ebitda_haircut) or ZERO)
        object.__setattr__(self, "revenue_haircut", to_decimal(self.revenue_haircut) or ZERO)
        object.__setattr__(self, "rate_shock_bps", int(self.rate_shock_bps))


STRESS_SCENARIOS: tuple[StressScenario, ...] = (
    StressScenario(BASELINE_KEY, "Baseline"),
    StressScenario("EBITDA_10_DOWN", "EBITDA down 10%", ebitda_haircut=Decimal("0.10")),
    StressScenario("REVENUE_10_DOWN", "Revenue down 10%", revenue_haircut=Decimal("0.10")),
    StressScenario("RATE_PLUS_200", "Rates up 200bps", rate_shock_bps=200),
    StressScenario(
        "COMBINED_MODERATE",
        "EBITDA down 10% and rates up 200bps",
        ebitda_haircut=Decimal("0.10"),
        rate_shock_bps=200,
    ),
)


@dataclass(frozen=True)
class StressConfigOverride:
    """Bank-supplied scenario list; replaces the defaults when non-empty."""

    scenarios: tuple[StressScenario, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "scenarios", tuple(self.scenarios))


@dataclass(frozen=True)
class ScenarioResult:
    key: str
    label: str
    snapshot: CreditSnapshot
    policy: PolicyResult
    dscr_delta: Decimal | None = None
    debt_service_delta: Decimal | None = None


@dataclass(frozen=True)
class StressResult:
    baseline: ScenarioResult
    scenarios: tuple[ScenarioResult, ...]
    worst_tier: RiskTier
    tier_degraded: bool


def get_scenario_definition(key: str) -> StressScenario:
    for scenario in STRESS_SCENARIOS:
        if scenario.key == key:
            return scenario
    raise UnknownScenarioError(key)


# ---------------------------------------------------------------------------
# Model transforms
# ---------------------------------------------------------------------------


def _haircut(model: FinancialModel, statement: Statement, key: str, haircut: Decimal) -> FinancialModel:
    factor = ONE - Decimal(haircut)
    periods = []
    for period in model.periods:
        value = period.statement(statement).get(key)
        if value is not None:
            period = period.with_statement_value(statement, key, value * factor)
        periods.append(period)
    return model.replace_periods(periods)


def apply_ebitda_haircut(model: FinancialModel, haircut: Decimal) -> FinancialModel:
    """Reduce every period's EBITDA by ``haircut`` (0.10 = 10%)."""
    return _haircut(model, Statement.CASHFLOW, "ebitda", haircut)


def apply_revenue_haircut(model: FinancialModel, haircut: Decimal) -> FinancialModel:
    """Reduce every period's revenue by ``haircut``; EBITDA is left as reported."""
    return _haircut(model, Statement.INCOME, "revenue", haircut)


def apply_rate_shock(
    instruments: Iterable[DebtInstrument] | None,
    shock_bps: int,
) -> tuple[DebtInstrument, ...] | None:
    """Add ``shock_bps`` to every instrument rate; None for no instruments."""
    instruments = tuple(instruments or ())
    if not instruments:
        return None
    shock = bps_to_rate(shock_bps)
    return tuple(
        i.with_rate(i.rate + shock) if i.rate is not None else i for i in instruments
    )


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


def _delta(current: Decimal | None, base: Decimal | None) -> Decimal | None:
    if current is None or base is None:
        return None
    return current - base


def run_scenario(
    scenario: StressScenario,
    model: FinancialModel,
    options: SnapshotOptions,
    product: ProductType | str,
    baseline: ScenarioResult | None = None,
    policy_override: PolicyConfigOverride | None = None,
) -> ScenarioResult | None:
    """Apply one scenario and evaluate snapshot and policy under it."""
    stressed_model = model
    if scenario.ebitda_haircut:
        stressed_model = apply_ebitda_haircut(stressed_model, scenario.ebitda_haircut)
    if scenario.revenue_haircut:
        stressed_model = apply_revenue_haircut(stressed_model, scenario.revenue_haircut)

    stressed_options = options
    if scenario.rate_shock_bps:
        shocked = apply_rate_shock(options.instruments, scenario.rate_shock_bps)
        if shocked is not None:
            stressed_options = replace(options, instruments=shocked)

    snapshot = compute_credit_snapshot(stressed_model, stressed_options)
    if snapshot is None:
        return None
    policy = evaluate_policy(snapshot, product, policy_override)

    dscr_delta = debt_service_delta = None
    if baseline is not None:
        dscr_delta = _delta(snapshot.metric_value("dscr"), baseline.snapshot.metric_value("dscr"))
        debt_service_delta = _delta(
            snapshot.debt_service.total_debt_service,
            baseline.snapshot.debt_service.total_debt_service,
        )

    return ScenarioResult(
        key=scenario.key,
        label=scenario.label,
        snapshot=snapshot,
        policy=policy,
        dscr_delta=dscr_delta,
        debt_service_delta=debt_service_delta,
    )


@traced_engine("stress", "1.0", fingerprint_fields=("product", "options"))
def run_stress_scenarios(
    model: FinancialModel,
    options: SnapshotOptions,
    product: ProductType | str,
    policy_override: PolicyConfigOverride | None = None,
    stress_config: StressConfigOverride | None = None,
) -> StressResult | None:
    """Run baseline plus every scenario; None if no baseline snapshot."""
    scenarios = list(
        stress_config.scenarios if stress_config and stress_config.scenarios else STRESS_SCENARIOS
    )
    baseline_definition = next(
        (s for s in scenarios if s.key == BASELINE_KEY), STRESS_SCENARIOS[0]
    )
    others = [s for s in scenarios if s.key != BASELINE_KEY]

    baseline = run_scenario(baseline_definition, model, options, product, None, policy_override)
    if baseline is None:
        logger.info("stress_no_baseline", extra={"deal_id": model.deal_id})
        return None

    results = [baseline]
    for scenario in others:
        result = run_scenario(scenario, model, options, product, baseline, policy_override)
        if result is not None:
            results.append(result)

    worst = worst_tier(*(r.policy.tier for r in results))
    degraded = compare_tiers(worst, baseline.policy.tier) > 0
    logger.info(
        "stress_completed",
        extra={
            "deal_id": model.deal_id,
            "baseline_tier": baseline.policy.tier.value,
            "worst_tier": worst.value,
            "scenario_count": len(results),
        },
    )
    return StressResult(
        baseline=baseline,
        scenarios=tuple(results),
        worst_tier=worst,
        tier_degraded=degraded,
    )

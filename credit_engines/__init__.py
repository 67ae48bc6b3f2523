"""
Module: credit_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    credit_config and credit_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import credit_kernel (and sibling engine modules).
    MUST NOT import credit_config or credit_services.

Invariants enforced:
    - Purity: engines never read the wall clock.  ``generated_at`` is
      passed in by the caller.
    - Decimal-only arithmetic for money, rates and ratios.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Every engine entry point is traced via ``@traced_engine`` (see
    ``credit_engines.tracer``), emitting CREDIT_ENGINE_TRACE log records
    with engine name, version, input fingerprint and duration.

Usage:
    from credit_engines.debt import compute_annual_debt_service
    from credit_engines.snapshot import compute_credit_snapshot
    from credit_engines.policy import evaluate_policy
    from credit_engines.stress import run_stress_scenarios
"""

from credit_kernel.logging_config import get_logger

logger = get_logger("engines")

from credit_engines.comparator import (
    ComparisonThresholds,
    DeltaStatus,
    MetricDelta,
    SnapshotComparison,
    compare_snapshot_metrics,
)
from credit_engines.debt import (
    AlignedDebtService,
    InstrumentServiceResult,
    PortfolioServiceResult,
    align_debt_service_to_period,
    compute_annual_debt_service,
    compute_debt_portfolio_service,
)
from credit_engines.expression import EvaluationResult, evaluate, evaluate_ratio
from credit_engines.lenses import ProductAnalysis, compute_product_analysis
from credit_engines.memo import CreditMemo, MemoSection, Recommendation, build_credit_memo
from credit_engines.metric_graph import (
    MetricDiagnostic,
    MetricGraphResult,
    evaluate_metric_graph,
    topological_sort,
)
from credit_engines.model_builder import FinancialFact, build_financial_model
from credit_engines.policy import (
    PolicyConfigOverride,
    PolicyResult,
    PolicyThreshold,
    ThresholdBreach,
    compute_policy_decision,
    evaluate_policy,
)
from credit_engines.pricing import PricingConfigOverride, PricingResult, compute_pricing
from credit_engines.snapshot import (
    CreditSnapshot,
    SelectionStrategy,
    SnapshotOptions,
    compute_credit_snapshot,
)
from credit_engines.stress import (
    STRESS_SCENARIOS,
    ScenarioResult,
    StressConfigOverride,
    StressResult,
    StressScenario,
    run_scenario,
    run_stress_scenarios,
)
from credit_engines.tracer import traced_engine

__all__ = [
    "STRESS_SCENARIOS",
    "AlignedDebtService",
    "ComparisonThresholds",
    "CreditMemo",
    "CreditSnapshot",
    "DeltaStatus",
    "EvaluationResult",
    "FinancialFact",
    "InstrumentServiceResult",
    "MemoSection",
    "MetricDelta",
    "MetricDiagnostic",
    "MetricGraphResult",
    "PolicyConfigOverride",
    "PolicyResult",
    "PolicyThreshold",
    "PortfolioServiceResult",
    "PricingConfigOverride",
    "PricingResult",
    "ProductAnalysis",
    "Recommendation",
    "ScenarioResult",
    "SelectionStrategy",
    "SnapshotComparison",
    "SnapshotOptions",
    "StressConfigOverride",
    "StressResult",
    "StressScenario",
    "ThresholdBreach",
    "align_debt_service_to_period",
    "build_credit_memo",
    "build_financial_model",
    "compare_snapshot_metrics",
    "compute_annual_debt_service",
    "compute_credit_snapshot",
    "compute_debt_portfolio_service",
    "compute_policy_decision",
    "compute_pricing",
    "compute_product_analysis",
    "evaluate",
    "evaluate_metric_graph",
    "evaluate_policy",
    "evaluate_ratio",
    "run_scenario",
    "run_stress_scenarios",
    "topological_sort",
    "traced_engine",
]

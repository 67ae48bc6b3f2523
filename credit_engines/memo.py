"""
credit_engines.memo -- Deterministic credit memo rendering.

Responsibility:
    Render the snapshot, lens analysis, policy verdict, stress results and
    pricing into an ordered set of plain-text memo sections and a single
    recommendation.

Architecture position:
    Engines -- last stage of the underwriting pipeline.  Pure rendering:
    no calculation beyond formatting, no clock, no I/O.

Invariants enforced:
    - Same inputs, same memo, byte for byte.
    - Sections always appear in the same order.
    - Missing values render as "n/a", never as zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from credit_engines.lenses import ProductAnalysis
from credit_engines.policy import PolicyResult
from credit_engines.pricing import PricingResult
from credit_engines.snapshot.types import CreditSnapshot
from credit_engines.stress import StressResult
from credit_engines.tracer import traced_engine
from credit_kernel.domain.products import ProductType, RiskTier
from credit_kernel.domain.values import quantize_money, quantize_ratio

NOT_AVAILABLE = "n/a"


class Recommendation(str, Enum):
    APPROVE = "APPROVE"
    APPROVE_WITH_MITIGANTS = "APPROVE_WITH_MITIGANTS"
    DECLINE_OR_RESTRUCTURE = "DECLINE_OR_RESTRUCTURE"


@dataclass(frozen=True)
class MemoSection:
    title: str
    content: str


@dataclass(frozen=True)
class CreditMemo:
    deal_id: str
    product: ProductType
    recommendation: Recommendation
    sections: tuple[MemoSection, ...]

    def section(self, title: str) -> MemoSection | None:
        for section in self.sections:
            if section.title == title:
                return section
        return None


def _money(value: Decimal | None) -> str:
    if value is None:
        return NOT_AVAILABLE
    return f"${quantize_money(value):,}"


def _multiple(value: Decimal | None) -> str:
    if value is None:
        return NOT_AVAILABLE
    return f"{quantize_ratio(value)}x"


def _percent(value: Decimal | None) -> str:
    if value is None:
        return NOT_AVAILABLE
    return f"{quantize_ratio(value * 100)}%"


def _bullets(items: tuple[str, ...], empty: str) -> list[str]:
    return [f"- {item}" for item in items] or [f"- {empty}"]


def recommend(policy: PolicyResult, stress: StressResult) -> Recommendation:
    if policy.tier is RiskTier.D or stress.worst_tier is RiskTier.D:
        return Recommendation.DECLINE_OR_RESTRUCTURE
    if policy.tier is RiskTier.A and not stress.tier_degraded:
        return Recommendation.APPROVE
    return Recommendation.APPROVE_WITH_MITIGANTS


def _summary(
    snapshot: CreditSnapshot,
    policy: PolicyResult,
    stress: StressResult,
    pricing: PricingResult,
    recommendation: Recommendation,
) -> str:
    period = snapshot.period
    return "\n".join(
        [
            f"Deal {snapshot.deal_id}, product {policy.product.value}.",
            f"Analysis period {period.period_id} ({period.type.value}, ending {period.period_end.isoformat()}): {period.reason}.",
            f"Risk tier {policy.tier.value}; worst stressed tier {stress.worst_tier.value}.",
            f"Indicative rate {_percent(pricing.final_rate)}.",
            f"Recommendation: {recommendation.value}.",
        ]
    )


def _financial_analysis(snapshot: CreditSnapshot) -> str:
    debt_service = snapshot.debt_service
    lines = [
        f"DSCR: {_multiple(snapshot.metric_value('dscr'))}",
        f"Debt / EBITDA: {_multiple(snapshot.metric_value('leverageDebtToEbitda'))}",
        f"Current ratio: {_multiple(snapshot.metric_value('currentRatio'))}",
        f"Quick ratio: {_multiple(snapshot.metric_value('quickRatio'))}",
        f"Working capital: {_money(snapshot.metric_value('workingCapital'))}",
        f"EBITDA margin: {_percent(snapshot.metric_value('ebitdaMargin'))}",
        f"Net margin: {_percent(snapshot.metric_value('netMargin'))}",
        f"Total debt service: {_money(debt_service.total_debt_service)} (source: {debt_service.diagnostics.source})",
    ]
    if debt_service.breakdown.proposed is not None:
        lines.append(
            f"Existing debt service: {_money(debt_service.breakdown.existing)}; "
            f"proposed: {_money(debt_service.breakdown.proposed)}"
        )
    return "\n".join(lines)


def _policy_compliance(policy: PolicyResult) -> str:
    lines = [
        f"Result: {'PASS' if policy.passed else 'FAIL'} (tier {policy.tier.value}, policy version {policy.policy_version})"
    ]
    for breach in policy.breaches:
        limit = breach.threshold.minimum if breach.threshold.minimum is not None else breach.threshold.maximum
        kind = "minimum" if breach.threshold.minimum is not None else "maximum"
        lines.append(
            f"- {breach.metric}: {quantize_ratio(breach.actual_value)} against {kind} {limit} "
            f"({breach.severity.value}, deviation {_percent(breach.deviation)})"
        )
    for warning in policy.warnings:
        lines.append(f"- Warning: {warning}")
    return "\n".join(lines)


def _stress_testing(stress: StressResult) -> str:
    lines = []
    for scenario in stress.scenarios:
        line = (
            f"- {scenario.label}: DSCR {_multiple(scenario.snapshot.metric_value('dscr'))}, "
            f"tier {scenario.policy.tier.value}"
        )
        if scenario.dscr_delta is not None:
            line += f", DSCR change {quantize_ratio(scenario.dscr_delta)}"
        lines.append(line)
    lines.append(
        f"Worst tier {stress.worst_tier.value}; "
        + ("tier degrades under stress" if stress.tier_degraded else "tier holds under stress")
    )
    return "\n".join(lines)


def _pricing(pricing: PricingResult) -> str:
    lines = [
        f"Base rate: {_percent(pricing.base_rate)} (spread {pricing.spread_bps}bps)",
        f"Risk premium: {pricing.risk_premium_bps}bps",
        f"Stress adjustment: {pricing.stress_adjustment_bps}bps",
        f"Final rate: {_percent(pricing.final_rate)}",
    ]
    return "\n".join(lines)


def _strengths_weaknesses(analysis: ProductAnalysis) -> str:
    lines = ["Strengths:"]
    lines += _bullets(analysis.strengths, "None identified")
    lines.append("Weaknesses:")
    lines += _bullets(analysis.weaknesses, "None identified")
    if analysis.risk_signals:
        lines.append("Risk signals:")
        lines += _bullets(analysis.risk_signals, "")
    if analysis.data_gaps:
        lines.append("Data gaps:")
        lines += _bullets(analysis.data_gaps, "")
    return "\n".join(lines)


@traced_engine("credit_memo", "1.0")
def build_credit_memo(
    snapshot: CreditSnapshot,
    analysis: ProductAnalysis,
    policy: PolicyResult,
    stress: StressResult,
    pricing: PricingResult,
) -> CreditMemo:
    recommendation = recommend(policy, stress)
    sections = (
        MemoSection("Summary", _summary(snapshot, policy, stress, pricing, recommendation)),
        MemoSection("Financial Analysis", _financial_analysis(snapshot)),
        MemoSection("Policy Compliance", _policy_compliance(policy)),
        MemoSection("Stress Testing", _stress_testing(stress)),
        MemoSection("Pricing", _pricing(pricing)),
        MemoSection("Strengths & Weaknesses", _strengths_weaknesses(analysis)),
    )
    return CreditMemo(
        deal_id=snapshot.deal_id,
        product=policy.product,
        recommendation=recommendation,
        sections=sections,
    )

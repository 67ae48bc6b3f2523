"""
credit_engines.policy -- Product policy thresholds, breaches and risk tier.

Responsibility:
    Check a credit snapshot's ratios against the product's thresholds,
    optionally tuned by a bank override, classify each breach as minor or
    severe, and assign a risk tier.

Architecture position:
    Engines -- pure calculation layer.  Consumes CreditSnapshot; consumed by
    stress, pricing, memo and the underwriting orchestrator.

Invariants enforced:
    - Missing data is never penalized: an absent metric produces a warning
      ("<metric> unavailable for policy evaluation"), never a breach.
    - A metric with a value is either un-breached or appears exactly once
      in ``breaches`` (thresholds are merged one per metric).
    - Tiering is breach-count driven: 0 breaches -> A; >=2 severe -> D;
      >=1 severe or >=3 minor -> C; otherwise B.

Failure modes:
    - UnknownProductError for a product outside ProductType.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from types import MappingProxyType

from credit_engines.lenses import ProductAnalysis, compute_product_analysis
from credit_engines.snapshot.types import CreditSnapshot
from credit_engines.tracer import traced_engine
from credit_kernel.domain.products import ProductType, RiskTier
from credit_kernel.domain.values import quantize_ratio, to_decimal
from credit_kernel.logging_config import get_logger
from credit_kernel.utils.hashing import short_hash

logger = get_logger("engines.policy")

DEFAULT_MINOR_BREACH_BAND = Decimal("0.15")

# Policy metric name -> snapshot ratio name
POLICY_METRIC_MAP: Mapping[str, str] = MappingProxyType(
    {
        "dscr": "dscr",
        "leverage": "leverageDebtToEbitda",
        "currentRatio": "currentRatio",
        "quickRatio": "quickRatio",
        "workingCapital": "workingCapital",
        "ebitdaMargin": "ebitdaMargin",
        "netMargin": "netMargin",
    }
)


class BreachSeverity(str, Enum):
    MINOR = "minor"
    SEVERE = "severe"


@dataclass(frozen=True)
class PolicyThreshold:
    metric: str
    minimum: Decimal | None = None
    maximum: Decimal | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "minimum", to_decimal(self.minimum))
        object.__setattr__(self, "maximum", to_decimal(self.maximum))


@dataclass(frozen=True)
class PolicyConfigOverride:
    """Bank-specific tuning: replaces thresholds by metric or appends new ones."""

    minor_breach_band: Decimal | None = None
    thresholds: tuple[PolicyThreshold, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "minor_breach_band", to_decimal(self.minor_breach_band))
        object.__setattr__(self, "thresholds", tuple(self.thresholds))


@dataclass(frozen=True)
class ThresholdBreach:
    metric: str
    threshold: PolicyThreshold
    actual_value: Decimal
    severity: BreachSeverity
    deviation: Decimal


@dataclass(frozen=True)
class PolicyResult:
    product: ProductType
    passed: bool
    failed_metrics: tuple[str, ...]
    breaches: tuple[ThresholdBreach, ...]
    warnings: tuple[str, ...]
    metrics_evaluated: Mapping[str, Decimal | None]
    tier: RiskTier
    minor_breach_band: Decimal
    policy_version: str


def _t(metric: str, minimum: str | None = None, maximum: str | None = None) -> PolicyThreshold:
    return PolicyThreshold(
        metric=metric,
        minimum=Decimal(minimum) if minimum is not None else None,
        maximum=Decimal(maximum) if maximum is not None else None,
    )


DEFAULT_POLICY_DEFINITIONS: Mapping[ProductType, tuple[PolicyThreshold, ...]] = MappingProxyType(
    {
        ProductType.SBA: (_t("dscr", minimum="1.25"), _t("leverage", maximum="4.0")),
        ProductType.LOC: (_t("currentRatio", minimum="1.0"),),
        ProductType.EQUIPMENT: (_t("dscr", minimum="1.20"), _t("leverage", maximum="4.5")),
        ProductType.ACQUISITION: (_t("dscr", minimum="1.20"), _t("leverage", maximum="5.0")),
        ProductType.CRE: (_t("dscr", minimum="1.25"),),
    }
)

POLICY_DEFINITIONS_VERSION: str = short_hash(
    {
        "minorBreachBand": DEFAULT_MINOR_BREACH_BAND,
        "products": {
            product.value: [
                {"metric": t.metric, "minimum": t.minimum, "maximum": t.maximum}
                for t in thresholds
            ]
            for product, thresholds in DEFAULT_POLICY_DEFINITIONS.items()
        },
    }
)


def merge_thresholds(
    base: Iterable[PolicyThreshold],
    overrides: Iterable[PolicyThreshold],
) -> tuple[PolicyThreshold, ...]:
    """Override replaces the threshold for the same metric, else is appended."""
    merged = list(base)
    for override in overrides:
        for index, existing in enumerate(merged):
            if existing.metric == override.metric:
                merged[index] = override
                break
        else:
            merged.append(override)
    return tuple(merged)


def _relative_distance(actual: Decimal, limit: Decimal) -> Decimal:
    # Zero limits have no scale; fall back to absolute distance
    if limit == 0:
        return abs(actual - limit)
    return abs(actual - limit) / abs(limit)


def check_threshold(
    threshold: PolicyThreshold,
    actual: Decimal,
    minor_breach_band: Decimal,
) -> ThresholdBreach | None:
    """Return the breach of ``threshold`` by ``actual``, if any."""
    if threshold.minimum is not None and actual < threshold.minimum:
        deviation = _relative_distance(actual, threshold.minimum)
    elif threshold.maximum is not None and actual > threshold.maximum:
        deviation = _relative_distance(actual, threshold.maximum)
    else:
        return None
    # Severity uses the exact distance; only the reported deviation is rounded
    severity = (
        BreachSeverity.MINOR if deviation <= minor_breach_band else BreachSeverity.SEVERE
    )
    return ThresholdBreach(
        metric=threshold.metric,
        threshold=threshold,
        actual_value=actual,
        severity=severity,
        deviation=quantize_ratio(deviation),
    )


def compute_tier(breaches: Iterable[ThresholdBreach]) -> RiskTier:
    breaches = list(breaches)
    severe = sum(1 for b in breaches if b.severity is BreachSeverity.SEVERE)
    minor = len(breaches) - severe
    if not breaches:
        return RiskTier.A
    if severe >= 2:
        return RiskTier.D
    if severe >= 1 or minor >= 3:
        return RiskTier.C
    return RiskTier.B


def policy_thresholds(
    product: ProductType | str,
    config_override: PolicyConfigOverride | None = None,
) -> tuple[PolicyThreshold, ...]:
    base = DEFAULT_POLICY_DEFINITIONS[ProductType.parse(product)]
    if config_override is None:
        return base
    return merge_thresholds(base, config_override.thresholds)


def snapshot_metric_value(snapshot: CreditSnapshot, policy_metric: str) -> Decimal | None:
    return snapshot.metric_value(POLICY_METRIC_MAP.get(policy_metric, policy_metric))


@traced_engine("policy", "1.0", fingerprint_fields=("product", "config_override"))
def evaluate_policy(
    snapshot: CreditSnapshot,
    product: ProductType | str,
    config_override: PolicyConfigOverride | None = None,
) -> PolicyResult:
    product = ProductType.parse(product)
    band = DEFAULT_MINOR_BREACH_BAND
    if config_override is not None and config_override.minor_breach_band is not None:
        band = config_override.minor_breach_band

    breaches: list[ThresholdBreach] = []
    warnings: list[str] = []
    evaluated: dict[str, Decimal | None] = {}

    for threshold in policy_thresholds(product, config_override):
        actual = snapshot_metric_value(snapshot, threshold.metric)
        evaluated[threshold.metric] = actual
        if actual is None:
            warnings.append(f"{threshold.metric} unavailable for policy evaluation")
            continue
        breach = check_threshold(threshold, actual, band)
        if breach is not None:
            breaches.append(breach)

    tier = compute_tier(breaches)
    result = PolicyResult(
        product=product,
        passed=not breaches,
        failed_metrics=tuple(b.metric for b in breaches),
        breaches=tuple(breaches),
        warnings=tuple(warnings),
        metrics_evaluated=MappingProxyType(evaluated),
        tier=tier,
        minor_breach_band=band,
        policy_version=POLICY_DEFINITIONS_VERSION,
    )
    logger.info(
        "policy_evaluated",
        extra={
            "deal_id": snapshot.deal_id,
            "product": product.value,
            "tier": tier.value,
            "breach_count": len(breaches),
            "warning_count": len(warnings),
        },
    )
    return result


def compute_policy_decision(
    snapshot: CreditSnapshot,
    product: ProductType | str,
    config_override: PolicyConfigOverride | None = None,
) -> tuple[ProductAnalysis, PolicyResult]:
    """Lens analysis and policy verdict for one snapshot, as ``(analysis, policy)``."""
    analysis = compute_product_analysis(snapshot, product)
    policy = evaluate_policy(snapshot, product, config_override)
    return analysis, policy

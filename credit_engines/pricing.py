"""
credit_engines.pricing -- Rate build-up from product, risk tier and stress.

final_rate = PRIME + product spread + tier premium + stress adjustment,
where the stress adjustment charges a fixed number of basis points for
every tier the worst stressed tier sits below the policy tier.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType

from credit_engines.tracer import traced_engine
from credit_kernel.domain.products import ProductType, RiskTier, compare_tiers
from credit_kernel.domain.values import bps_to_rate, quantize_rate
from credit_kernel.logging_config import get_logger

logger = get_logger("engines.pricing")

PRIME_RATE = Decimal("0.085")

DEFAULT_SPREADS_BPS: Mapping[ProductType, int] = MappingProxyType(
    {
        ProductType.SBA: 275,
        ProductType.CRE: 225,
        ProductType.LOC: 150,
        ProductType.EQUIPMENT: 200,
        ProductType.ACQUISITION: 300,
    }
)

DEFAULT_TIER_PREMIUMS_BPS: Mapping[RiskTier, int] = MappingProxyType(
    {RiskTier.A: 0, RiskTier.B: 50, RiskTier.C: 125, RiskTier.D: 300}
)

DEFAULT_STRESS_ADJUST_BPS_PER_TIER = 25


@dataclass(frozen=True)
class PricingConfigOverride:
    """Per-key overrides; anything not listed keeps the default."""

    spreads: Mapping[ProductType, int] = field(default_factory=dict)
    tier_premiums: Mapping[RiskTier, int] = field(default_factory=dict)
    stress_adjust_bps_per_tier: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "spreads",
            MappingProxyType({ProductType.parse(k): int(v) for k, v in self.spreads.items()}),
        )
        object.__setattr__(
            self,
            "tier_premiums",
            MappingProxyType({RiskTier(k): int(v) for k, v in self.tier_premiums.items()}),
        )
        if self.stress_adjust_bps_per_tier is not None:
            object.__setattr__(
                self, "stress_adjust_bps_per_tier", int(self.stress_adjust_bps_per_tier)
            )


@dataclass(frozen=True)
class PricingResult:
    product: ProductType
    tier: RiskTier
    stressed_tier: RiskTier | None
    base_rate: Decimal
    spread_bps: int
    risk_premium_bps: int
    stress_adjustment_bps: int
    final_rate: Decimal
    rationale: tuple[str, ...]


def _pct(rate: Decimal) -> str:
    return f"{(rate * 100).quantize(Decimal('0.01'))}%"


@traced_engine("pricing", "1.0", fingerprint_fields=("product", "tier", "stressed_tier", "config"))
def compute_pricing(
    product: ProductType | str,
    tier: RiskTier | str,
    stressed_tier: RiskTier | str | None = None,
    config: PricingConfigOverride | None = None,
) -> PricingResult:
    product = ProductType.parse(product)
    tier = RiskTier(tier)
    stressed_tier = RiskTier(stressed_tier) if stressed_tier is not None else None
    config = config or PricingConfigOverride()

    spread_bps = config.spreads.get(product, DEFAULT_SPREADS_BPS[product])
    premium_bps = config.tier_premiums.get(tier, DEFAULT_TIER_PREMIUMS_BPS[tier])
    per_tier = (
        config.stress_adjust_bps_per_tier
        if config.stress_adjust_bps_per_tier is not None
        else DEFAULT_STRESS_ADJUST_BPS_PER_TIER
    )

    degradation = 0
    if stressed_tier is not None:
        degradation = max(compare_tiers(stressed_tier, tier), 0)
    stress_bps = degradation * per_tier

    base_rate = quantize_rate(PRIME_RATE + bps_to_rate(spread_bps))
    final_rate = quantize_rate(base_rate + bps_to_rate(premium_bps + stress_bps))

    rationale = [
        f"Base rate {_pct(base_rate)}: prime {_pct(PRIME_RATE)} plus {product.value} spread of {spread_bps}bps",
        f"Tier {tier.value} risk premium of {premium_bps}bps",
    ]
    if degradation:
        rationale.append(
            f"Stress degrades tier {tier.value} to {stressed_tier.value}: "
            f"{degradation} x {per_tier}bps = {stress_bps}bps"
        )
    else:
        rationale.append("No stress adjustment: tier holds under stress")
    rationale.append(f"Final rate {_pct(final_rate)}")

    logger.info(
        "pricing_computed",
        extra={
            "product": product.value,
            "tier": tier.value,
            "stressed_tier": stressed_tier.value if stressed_tier else None,
            "final_rate": str(final_rate),
        },
    )
    return PricingResult(
        product=product,
        tier=tier,
        stressed_tier=stressed_tier,
        base_rate=base_rate,
        spread_bps=spread_bps,
        risk_premium_bps=premium_bps,
        stress_adjustment_bps=stress_bps,
        final_rate=final_rate,
        rationale=tuple(rationale),
    )

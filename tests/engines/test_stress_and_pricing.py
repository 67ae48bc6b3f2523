"""
Tests for stress scenarios and the pricing build-up.

Covers:
- Model and instrument transforms never mutate their inputs
- Baseline-relative deltas and tier degradation
- Bank-supplied scenario lists
- Rate build-up: spread, tier premium, stress adjustment, overrides
"""

from decimal import Decimal

import pytest

from credit_engines.pricing import PRIME_RATE, PricingConfigOverride, compute_pricing
from credit_engines.snapshot import SnapshotOptions
from credit_engines.stress import (
    BASELINE_KEY,
    STRESS_SCENARIOS,
    StressConfigOverride,
    StressScenario,
    apply_ebitda_haircut,
    apply_rate_shock,
    apply_revenue_haircut,
    get_scenario_definition,
    run_stress_scenarios,
)
from credit_kernel.domain.financial_model import PeriodType
from credit_kernel.domain.products import ProductType, RiskTier
from credit_kernel.exceptions import UnknownProductError, UnknownScenarioError


class TestTransforms:
    def test_ebitda_haircut(self, strong_model):
        stressed = apply_ebitda_haircut(strong_model, Decimal("0.10"))

        assert stressed.period("FYE-2023").cashflow["ebitda"] == Decimal("360000.00")
        assert stressed.period("FYE-2022").cashflow["ebitda"] == Decimal("315000.00")
        assert strong_model.period("FYE-2023").cashflow["ebitda"] == Decimal("400000")

    def test_revenue_haircut_leaves_ebitda(self, strong_model):
        stressed = apply_revenue_haircut(strong_model, Decimal("0.10"))

        period = stressed.period("FYE-2023")
        assert period.income["revenue"] == Decimal("900000.00")
        assert period.cashflow["ebitda"] == Decimal("400000")

    def test_rate_shock(self, proposed_term_loan):
        shocked = apply_rate_shock((proposed_term_loan,), 200)

        assert shocked[0].rate == Decimal("0.075")
        assert proposed_term_loan.rate == Decimal("0.055")

    def test_rate_shock_without_instruments(self):
        assert apply_rate_shock(None, 200) is None
        assert apply_rate_shock((), 200) is None

    def test_scenario_catalogue(self):
        assert [s.key for s in STRESS_SCENARIOS] == [
            "BASELINE",
            "EBITDA_10_DOWN",
            "REVENUE_10_DOWN",
            "RATE_PLUS_200",
            "COMBINED_MODERATE",
        ]
        combined = get_scenario_definition("COMBINED_MODERATE")
        assert combined.ebitda_haircut == Decimal("0.10")
        assert combined.rate_shock_bps == 200

    def test_unknown_scenario(self):
        with pytest.raises(UnknownScenarioError):
            get_scenario_definition("RECESSION")


class TestRunStressScenarios:
    @pytest.fixture(autouse=True)
    def _marginal(self, make_model):
        # DSCR 1.30 on the interest proxy; SBA minimum is 1.25
        self.marginal = make_model(income={"interest": 100000}, cashflow={"ebitda": 130000})

    def test_strong_deal_holds(self, strong_model, proposed_term_loan):
        result = run_stress_scenarios(
            strong_model, SnapshotOptions(instruments=(proposed_term_loan,)), ProductType.SBA
        )

        assert [s.key for s in result.scenarios] == [s.key for s in STRESS_SCENARIOS]
        assert result.baseline.key == BASELINE_KEY
        assert result.baseline.dscr_delta is None
        assert result.worst_tier is RiskTier.A
        assert result.tier_degraded is False

    def test_rate_shock_raises_debt_service(self, strong_model, proposed_term_loan):
        result = run_stress_scenarios(
            strong_model, SnapshotOptions(instruments=(proposed_term_loan,)), ProductType.SBA
        )
        rate = next(s for s in result.scenarios if s.key == "RATE_PLUS_200")

        assert rate.debt_service_delta > 0
        assert rate.dscr_delta < 0
        assert proposed_term_loan.rate == Decimal("0.055")

    def test_marginal_deal_degrades(self):
        result = run_stress_scenarios(self.marginal, SnapshotOptions(), ProductType.SBA)
        by_key = {s.key: s for s in result.scenarios}

        assert result.baseline.policy.tier is RiskTier.A
        assert by_key["EBITDA_10_DOWN"].policy.tier is RiskTier.B
        assert by_key["EBITDA_10_DOWN"].dscr_delta == Decimal("-0.1300")
        assert by_key["EBITDA_10_DOWN"].debt_service_delta == Decimal("0")
        assert by_key["RATE_PLUS_200"].policy.tier is RiskTier.A
        assert result.worst_tier is RiskTier.B
        assert result.tier_degraded is True

    def test_custom_scenarios_keep_baseline_first(self):
        config = StressConfigOverride(
            scenarios=(StressScenario("SEVERE", "EBITDA down 40%", ebitda_haircut="0.40"),)
        )
        result = run_stress_scenarios(
            self.marginal, SnapshotOptions(), ProductType.SBA, stress_config=config
        )

        assert [s.key for s in result.scenarios] == [BASELINE_KEY, "SEVERE"]
        assert result.worst_tier is RiskTier.C

    def test_no_baseline_returns_none(self, make_model):
        model = make_model(cashflow={"ebitda": 1}, period_type=PeriodType.TTM)
        assert run_stress_scenarios(model, SnapshotOptions(), ProductType.SBA) is None

    def test_logs_completion(self, captured_logs):
        run_stress_scenarios(self.marginal, SnapshotOptions(), ProductType.SBA)
        record = next(r for r in captured_logs() if r["message"] == "stress_completed")
        assert record["worst_tier"] == "B"
        assert record["scenario_count"] == 5


class TestPricing:
    def test_prime_plus_spread(self):
        pricing = compute_pricing(ProductType.SBA, RiskTier.A)

        assert pricing.base_rate == Decimal("0.112500")
        assert pricing.final_rate == Decimal("0.112500")
        assert pricing.stress_adjustment_bps == 0
        assert pricing.rationale[-1] == "Final rate 11.25%"

    @pytest.mark.parametrize(
        "product,tier,expected",
        [
            (ProductType.CRE, RiskTier.B, "0.112500"),
            (ProductType.LOC, RiskTier.C, "0.112500"),
            (ProductType.EQUIPMENT, RiskTier.A, "0.105000"),
            (ProductType.ACQUISITION, RiskTier.D, "0.145000"),
        ],
    )
    def test_rate_table(self, product, tier, expected):
        assert compute_pricing(product, tier).final_rate == Decimal(expected)

    def test_stress_degradation_adds_per_tier(self):
        pricing = compute_pricing("SBA", "A", stressed_tier="C")

        assert pricing.stress_adjustment_bps == 50
        assert pricing.final_rate == Decimal("0.117500")
        assert "Stress degrades tier A to C: 2 x 25bps = 50bps" in pricing.rationale

    def test_better_stressed_tier_is_not_a_discount(self):
        pricing = compute_pricing(ProductType.SBA, RiskTier.C, stressed_tier=RiskTier.A)
        assert pricing.stress_adjustment_bps == 0

    def test_config_override(self):
        config = PricingConfigOverride(
            spreads={"sba": 300}, tier_premiums={"B": 200}, stress_adjust_bps_per_tier=50
        )
        pricing = compute_pricing(ProductType.SBA, RiskTier.B, RiskTier.D, config)

        assert pricing.spread_bps == 300
        assert pricing.risk_premium_bps == 200
        assert pricing.stress_adjustment_bps == 100
        assert pricing.base_rate == PRIME_RATE + Decimal("0.03")
        assert pricing.final_rate == Decimal("0.145000")

    def test_unknown_product(self):
        with pytest.raises(UnknownProductError):
            compute_pricing("MORTGAGE", RiskTier.A)

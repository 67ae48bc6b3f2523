"""
Tests for bank configuration parsing.

Covers:
- Policy, stress and pricing sections mapped onto engine overrides
- BASELINE always leads a bank scenario list
- Structural errors name the offending field
"""

from decimal import Decimal

import pytest
import yaml

from credit_config import load_bank_config, parse_bank_config
from credit_engines.stress import BASELINE_KEY
from credit_kernel.domain.products import ProductType, RiskTier
from credit_kernel.exceptions import InvalidBankConfigError

BANK_YAML = """
id: cfg-001
bank_id: first-community
version: 2
policy:
  minor_breach_band: 0.10
  thresholds:
    - metric: dscr
      minimum: 1.35
    - metric: leverage
      maximum: 3.5
stress:
  scenarios:
    - EBITDA_10_DOWN
    - key: SEVERE
      label: EBITDA down 25% and rates up 300bps
      ebitda_haircut: 0.25
      rate_shock_bps: 300
pricing:
  spreads:
    SBA: 300
  tier_premiums:
    B: 75
  stress_adjust_bps_per_tier: 40
"""


class TestParseBankConfig:
    def setup_method(self):
        self.config = parse_bank_config(yaml.safe_load(BANK_YAML))

    def test_identity(self):
        assert self.config.id == "cfg-001"
        assert self.config.bank_id == "first-community"
        assert self.config.version == 2

    def test_policy_section(self):
        policy = self.config.policy
        assert policy.minor_breach_band == Decimal("0.1")
        assert [t.metric for t in policy.thresholds] == ["dscr", "leverage"]
        assert policy.thresholds[0].minimum == Decimal("1.35")
        assert policy.thresholds[1].maximum == Decimal("3.5")

    def test_stress_section_prepends_baseline(self):
        scenarios = self.config.stress.scenarios
        assert [s.key for s in scenarios] == [BASELINE_KEY, "EBITDA_10_DOWN", "SEVERE"]
        assert scenarios[2].ebitda_haircut == Decimal("0.25")
        assert scenarios[2].rate_shock_bps == 300

    def test_pricing_section(self):
        pricing = self.config.pricing
        assert pricing.spreads[ProductType.SBA] == 300
        assert pricing.tier_premiums[RiskTier.B] == 75
        assert pricing.stress_adjust_bps_per_tier == 40

    def test_empty_sections_keep_defaults(self):
        config = parse_bank_config({"id": "c", "bank_id": "b"})

        assert config.version == 1
        assert config.policy.thresholds == ()
        assert config.policy.minor_breach_band is None
        assert config.stress.scenarios == ()
        assert config.pricing.stress_adjust_bps_per_tier is None


class TestBankConfigErrors:
    @pytest.mark.parametrize("missing", ["id", "bank_id"])
    def test_identity_required(self, missing):
        data = {"id": "c", "bank_id": "b"}
        del data[missing]
        with pytest.raises(InvalidBankConfigError) as exc_info:
            parse_bank_config(data)
        assert exc_info.value.field == missing

    def test_threshold_needs_a_limit(self):
        with pytest.raises(InvalidBankConfigError) as exc_info:
            parse_bank_config(
                {"id": "c", "bank_id": "b", "policy": {"thresholds": [{"metric": "dscr"}]}}
            )
        assert exc_info.value.field == "policy.thresholds[0]"

    def test_threshold_needs_a_metric(self):
        with pytest.raises(InvalidBankConfigError) as exc_info:
            parse_bank_config(
                {"id": "c", "bank_id": "b", "policy": {"thresholds": [{"minimum": 1}]}}
            )
        assert exc_info.value.field == "policy.thresholds[0].metric"

    def test_band_must_be_numeric(self):
        with pytest.raises(InvalidBankConfigError):
            parse_bank_config({"id": "c", "bank_id": "b", "policy": {"minor_breach_band": "wide"}})

    def test_unknown_scenario_key(self):
        with pytest.raises(InvalidBankConfigError) as exc_info:
            parse_bank_config({"id": "c", "bank_id": "b", "stress": {"scenarios": ["RECESSION"]}})
        assert exc_info.value.field == "stress.scenarios[0]"

    def test_unknown_product_in_pricing(self):
        with pytest.raises(InvalidBankConfigError) as exc_info:
            parse_bank_config({"id": "c", "bank_id": "b", "pricing": {"spreads": {"MORTGAGE": 100}}})
        assert exc_info.value.field == "pricing"

    def test_unknown_tier_in_pricing(self):
        with pytest.raises(InvalidBankConfigError):
            parse_bank_config({"id": "c", "bank_id": "b", "pricing": {"tier_premiums": {"E": 10}}})

    def test_section_must_be_mapping(self):
        with pytest.raises(InvalidBankConfigError) as exc_info:
            parse_bank_config({"id": "c", "bank_id": "b", "policy": ["dscr"]})
        assert exc_info.value.field == "policy"


class TestLoadBankConfig:
    def test_load_from_file(self, tmp_path, captured_logs):
        path = tmp_path / "bank.yaml"
        path.write_text(BANK_YAML)

        config = load_bank_config(path)

        assert config.bank_id == "first-community"
        record = next(r for r in captured_logs() if r["message"] == "bank_config_loaded")
        assert record["config_id"] == "cfg-001"

    def test_malformed_yaml_propagates(self, tmp_path):
        path = tmp_path / "bank.yaml"
        path.write_text("id: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_bank_config(path)

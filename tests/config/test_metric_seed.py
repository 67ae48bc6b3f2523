"""Tests for the built-in metric seed catalogue."""

from decimal import Decimal

import pytest

from credit_config import METRIC_REGISTRY_VERSION, default_metric_seed, load_metric_seed
from credit_engines.metric_graph import evaluate_metric_graph, topological_sort
from credit_kernel.domain.metrics import BusinessModel, compute_registry_content_hash


class TestDefaultMetricSeed:
    def setup_method(self):
        self.seed = default_metric_seed()
        self.by_id = {d.id: d for d in self.seed.definitions}

    def test_catalogue_shape(self):
        assert len(self.seed.definitions) == 32
        assert self.seed.version_name == "seed-v1"
        assert self.seed.registry_version == METRIC_REGISTRY_VERSION

    def test_content_hash_is_stable(self):
        assert len(self.seed.content_hash) == 64
        assert self.seed.content_hash == compute_registry_content_hash(
            reversed(self.seed.definitions)
        )

    def test_cached(self):
        assert default_metric_seed() is self.seed

    def test_dscr_definition(self):
        dscr = self.by_id["DSCR"]
        assert dscr.expr == "CASH_FLOW_AVAILABLE / ANNUAL_DEBT_SERVICE"
        assert dscr.precision == 2
        assert self.by_id["EXCESS_CASH_FLOW"].precision == 0

    def test_percent_metrics(self):
        assert self.by_id["GROSS_MARGIN"].is_percent
        assert not self.by_id["CURRENT_RATIO"].is_percent

    def test_applicability(self):
        assert self.by_id["NOI"].applies_to(BusinessModel.REAL_ESTATE)
        assert not self.by_id["NOI"].applies_to("OPERATING_COMPANY")

    def test_graph_is_acyclic(self):
        order = topological_sort(self.seed.definitions)
        assert order.index("NOI") < order.index("DEBT_YIELD")
        assert order.index("NET_WORTH") < order.index("DEBT_TO_EQUITY")

    def test_seed_evaluates_over_facts(self):
        result = evaluate_metric_graph(
            self.seed.definitions,
            {
                "REVENUE": 1000000,
                "COGS": 600000,
                "EBITDA": 200000,
                "NET_INCOME": 100000,
                "CASH_FLOW_AVAILABLE": 260000,
                "ANNUAL_DEBT_SERVICE": 200000,
            },
        )

        assert result.values["REVENUE"] == Decimal("1000000")
        assert result.values["GROSS_PROFIT"] == Decimal("400000")
        assert result.values["GROSS_MARGIN"] == Decimal("0.4000")
        assert result.values["DSCR"] == Decimal("1.30")
        assert result.values["EXCESS_CASH_FLOW"] == Decimal("60000")
        assert result.values["LTV_GROSS"] is None


class TestLoadMetricSeed:
    def test_custom_catalogue(self, tmp_path):
        path = tmp_path / "metrics.yaml"
        path.write_text(
            "registry_version: 3\n"
            "version_name: bank-custom\n"
            "metrics:\n"
            "  - id: DSCR\n"
            "    label: DSCR\n"
            "    expr: CFA / ADS\n"
            "    precision: 3\n"
            "    required_facts: [CFA, ADS]\n"
        )
        seed = load_metric_seed(path)

        assert seed.registry_version == 3
        assert seed.version_name == "bank-custom"
        assert seed.definitions[0].required_facts == ("CFA", "ADS")
        assert seed.definitions[0].precision == 3

    def test_duplicate_ids_rejected(self, tmp_path):
        path = tmp_path / "metrics.yaml"
        path.write_text(
            "metrics:\n"
            "  - {id: A, expr: X}\n"
            "  - {id: A, expr: Y}\n"
        )
        with pytest.raises(ValueError, match="Duplicate metric ids"):
            load_metric_seed(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_metric_seed(tmp_path / "absent.yaml")

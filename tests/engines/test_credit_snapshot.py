"""
Tests for the credit snapshot builder.

Covers:
- Analysis period selection strategies and tie-breaking
- Debt service source: debt engine vs interest-expense proxy
- Ratio computation, missing inputs and division by zero
- End-to-end DSCR for a $1M 10-year proposed loan
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from credit_engines.debt.alignment import INTERIM_NOTE
from credit_engines.snapshot import (
    SelectionStrategy,
    SnapshotOptions,
    compute_credit_snapshot,
    select_period,
)
from credit_kernel.domain.financial_model import FinancialModel, PeriodType
from credit_kernel.domain.instruments import DebtInstrument


class TestPeriodSelection:
    @pytest.fixture(autouse=True)
    def _model(self, make_period):
        self.model = FinancialModel(
            deal_id="deal-sel",
            periods=(
                make_period("FYE-2022", date(2022, 12, 31)),
                make_period("TTM-2023Q3", date(2023, 9, 30), PeriodType.TTM),
                make_period("FYE-2023", date(2023, 12, 31)),
                make_period("YTD-2024", date(2024, 3, 31), PeriodType.YTD),
            ),
        )

    def test_latest_fy(self):
        selection = select_period(self.model, SelectionStrategy.LATEST_FY)
        assert selection.period.period_id == "FYE-2023"
        assert selection.reason == "Latest FYE period (FYE 2023-12-31)"

    def test_latest_ttm(self):
        assert select_period(self.model, "LATEST_TTM").period.period_id == "TTM-2023Q3"

    def test_latest_available(self):
        assert select_period(self.model, "LATEST_AVAILABLE").period.period_id == "YTD-2024"

    def test_explicit(self):
        selection = select_period(self.model, SelectionStrategy.EXPLICIT, "FYE-2022")
        assert selection.period.period_id == "FYE-2022"

    def test_explicit_unknown_is_none(self):
        assert select_period(self.model, SelectionStrategy.EXPLICIT, "FYE-1999") is None
        assert select_period(self.model, SelectionStrategy.EXPLICIT) is None

    def test_no_qualifying_period(self, make_period):
        model = FinancialModel(
            deal_id="d", periods=(make_period("TTM", date(2023, 9, 30), PeriodType.TTM),)
        )
        assert select_period(model, SelectionStrategy.LATEST_FY) is None

    def test_same_end_date_prefers_fye_regardless_of_order(self, make_period):
        periods = (
            make_period("TTM-2023", date(2023, 12, 31), PeriodType.TTM),
            make_period("FYE-2023", date(2023, 12, 31)),
        )
        for ordering in (periods, tuple(reversed(periods))):
            model = FinancialModel(deal_id="d", periods=ordering)
            assert select_period(model, "LATEST_AVAILABLE").period.period_id == "FYE-2023"


class TestDebtServiceResolution:
    def test_debt_engine_source(self, strong_model, proposed_term_loan, existing_loan):
        snapshot = compute_credit_snapshot(
            strong_model, SnapshotOptions(instruments=(proposed_term_loan, existing_loan))
        )
        debt_service = snapshot.debt_service

        assert debt_service.diagnostics.source == "debtEngine"
        assert debt_service.diagnostics.alignment_type == "FY"
        assert debt_service.breakdown.existing == Decimal("24000.00")
        assert debt_service.total_debt_service == (
            debt_service.breakdown.existing + debt_service.breakdown.proposed
        )

    def test_split_adds_up_with_repeated_ids(self, strong_model, existing_loan):
        snapshot = compute_credit_snapshot(
            strong_model, SnapshotOptions(instruments=(existing_loan, existing_loan))
        )
        debt_service = snapshot.debt_service

        assert debt_service.total_debt_service == Decimal("48000.00")
        assert debt_service.breakdown.existing == debt_service.total_debt_service

    def test_interest_proxy_source(self, strong_model):
        snapshot = compute_credit_snapshot(strong_model)

        assert snapshot.debt_service.diagnostics.source == "income.interest"
        assert snapshot.debt_service.total_debt_service == Decimal("50000")
        assert snapshot.metric_value("dscr") == Decimal("8.0000")

    def test_proxy_without_interest_is_missing(self, make_model):
        snapshot = compute_credit_snapshot(make_model(cashflow={"ebitda": 100}))

        assert snapshot.debt_service.total_debt_service is None
        assert snapshot.debt_service.diagnostics.missing_components == ("income.interest",)
        assert snapshot.metric_value("dscr") is None
        assert "totalDebtService" in snapshot.ratios["dscr"].diagnostics.missing_inputs

    def test_invalid_instrument_noted(self, strong_model, existing_loan):
        snapshot = compute_credit_snapshot(
            strong_model,
            SnapshotOptions(instruments=(existing_loan, DebtInstrument(id="broken"))),
        )
        diagnostics = snapshot.debt_service.diagnostics
        assert diagnostics.invalid_instruments == ("broken",)
        assert "Instrument broken excluded from debt service" in diagnostics.notes
        assert snapshot.debt_service.total_debt_service == Decimal("24000.00")

    def test_interim_period_uses_full_annual_service(self, make_model, existing_loan):
        model = make_model(cashflow={"ebitda": 48000}, period_type=PeriodType.INTERIM)
        snapshot = compute_credit_snapshot(
            model,
            SnapshotOptions(strategy="LATEST_AVAILABLE", instruments=(existing_loan,)),
        )

        assert snapshot.debt_service.total_debt_service == Decimal("24000.00")
        assert snapshot.debt_service.diagnostics.alignment_type == "INTERIM"
        assert INTERIM_NOTE in snapshot.debt_service.diagnostics.notes
        assert snapshot.metric_value("dscr") == Decimal("2.0000")


class TestRatios:
    def test_end_to_end_dscr(self, strong_model, proposed_term_loan):
        snapshot = compute_credit_snapshot(
            strong_model, SnapshotOptions(instruments=(proposed_term_loan,))
        )

        assert Decimal("3.06") < snapshot.metric_value("dscr") < Decimal("3.08")
        assert snapshot.metric_value("leverageDebtToEbitda") == Decimal("2.5000")
        assert snapshot.metric_value("currentRatio") == Decimal("4.5000")
        assert snapshot.metric_value("quickRatio") == Decimal("3.5000")
        assert snapshot.metric_value("workingCapital") == Decimal("350000.00")
        assert snapshot.metric_value("ebitdaMargin") == Decimal("0.4000")
        assert snapshot.metric_value("netMargin") == Decimal("0.2500")
        assert snapshot.missing_metrics == ()

    def test_ratio_records_inputs_and_formula(self, strong_model):
        ratio = compute_credit_snapshot(strong_model).ratios["currentRatio"]

        assert ratio.formula == "(Cash + AccountsReceivable + Inventory) / ShortTermDebt"
        assert dict(ratio.inputs) == {
            "cash": Decimal("200000"),
            "accountsReceivable": Decimal("150000"),
            "inventory": Decimal("100000"),
            "shortTermDebt": Decimal("100000"),
        }

    def test_missing_input_is_not_zeroed(self, make_model):
        snapshot = compute_credit_snapshot(
            make_model(balance={"cash": 100, "accountsReceivable": 50})
        )
        ratio = snapshot.ratios["currentRatio"]

        assert ratio.value is None
        assert ratio.diagnostics.missing_inputs == ("inventory", "shortTermDebt")
        assert "currentRatio" in snapshot.missing_metrics

    def test_divide_by_zero(self, make_model):
        snapshot = compute_credit_snapshot(
            make_model(balance={"cash": 100, "accountsReceivable": 50, "inventory": 10, "shortTermDebt": 0})
        )
        ratio = snapshot.ratios["quickRatio"]

        assert ratio.value is None
        assert ratio.diagnostics.divide_by_zero is True

    def test_no_period_returns_none(self, make_model):
        model = make_model(period_type=PeriodType.TTM)
        assert compute_credit_snapshot(model, SnapshotOptions(strategy="LATEST_FY")) is None

    def test_generated_at_is_stamped_verbatim(self, strong_model):
        stamp = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        snapshot = compute_credit_snapshot(strong_model, SnapshotOptions(generated_at=stamp))
        assert snapshot.generated_at == stamp

    def test_deterministic(self, strong_model, proposed_term_loan):
        options = SnapshotOptions(instruments=(proposed_term_loan,))
        assert compute_credit_snapshot(strong_model, options) == compute_credit_snapshot(
            strong_model, options
        )

    def test_engine_trace_logged(self, strong_model, captured_logs):
        compute_credit_snapshot(strong_model)

        traces = [r for r in captured_logs() if r["message"] == "CREDIT_ENGINE_TRACE"]
        assert any(t["engine_name"] == "credit_snapshot" for t in traces)
        assert all(len(t["input_fingerprint"]) in (0, 16) for t in traces)

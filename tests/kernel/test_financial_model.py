"""Tests for FinancialModel / FinancialPeriod value objects."""

from datetime import date
from decimal import Decimal

import pytest

from credit_kernel.domain.financial_model import (
    FinancialModel,
    FinancialPeriod,
    PeriodType,
    Statement,
)
from credit_kernel.exceptions import InvalidFinancialModelError


class TestFinancialModelFromDict:
    """Parsing camelCase payloads."""

    def setup_method(self):
        self.payload = {
            "dealId": "deal-1",
            "periods": [
                {
                    "periodId": "FY23",
                    "periodEnd": "2023-12-31",
                    "type": "fye",
                    "income": {"revenue": 1000, "netIncome": "125.50", "comment": "ok"},
                    "balance": {"cash": 10.5},
                    "cashflow": {"ebitda": None},
                    "qualityFlags": ["MISSING_EBITDA"],
                }
            ],
        }

    def test_parses_periods(self):
        model = FinancialModel.from_dict(self.payload)

        assert model.deal_id == "deal-1"
        period = model.period("FY23")
        assert period.type is PeriodType.FYE
        assert period.period_end == date(2023, 12, 31)
        assert period.income["revenue"] == Decimal("1000")
        assert period.income["netIncome"] == Decimal("125.50")
        assert period.balance["cash"] == Decimal("10.5")
        assert period.quality_flags == ("MISSING_EBITDA",)

    def test_non_numeric_facts_are_absent(self):
        period = FinancialModel.from_dict(self.payload).period("FY23")
        assert "comment" not in period.income
        assert "ebitda" not in period.cashflow

    def test_snake_case_accepted(self):
        model = FinancialModel.from_dict(
            {
                "deal_id": "deal-2",
                "periods": [{"period_id": "Q1", "period_end": "2024-03-31", "type": "QUARTER"}],
            }
        )
        assert model.period("Q1").type is PeriodType.QUARTER

    def test_round_trip(self):
        model = FinancialModel.from_dict(self.payload)
        assert FinancialModel.from_dict(model.to_dict()) == model

    def test_missing_deal_id_raises(self):
        with pytest.raises(InvalidFinancialModelError) as exc_info:
            FinancialModel.from_dict({"periods": []})
        assert exc_info.value.field == "dealId"

    def test_unknown_period_type_raises(self):
        self.payload["periods"][0]["type"] = "MONTHLY"
        with pytest.raises(InvalidFinancialModelError) as exc_info:
            FinancialModel.from_dict(self.payload)
        assert exc_info.value.field == "type"

    def test_bad_date_raises(self):
        self.payload["periods"][0]["periodEnd"] = "31/12/2023"
        with pytest.raises(InvalidFinancialModelError) as exc_info:
            FinancialModel.from_dict(self.payload)
        assert exc_info.value.code == "INVALID_FINANCIAL_MODEL"


class TestFinancialPeriodImmutability:
    def setup_method(self):
        self.period = FinancialPeriod(
            period_id="FY23",
            period_end=date(2023, 12, 31),
            type=PeriodType.FYE,
            income={"revenue": 100},
            cashflow={"ebitda": 40},
        )

    def test_statements_are_read_only(self):
        with pytest.raises(TypeError):
            self.period.income["revenue"] = Decimal("1")

    def test_with_statement_value_returns_copy(self):
        updated = self.period.with_statement_value(Statement.CASHFLOW, "ebitda", Decimal("36"))

        assert updated.cashflow["ebitda"] == Decimal("36")
        assert self.period.cashflow["ebitda"] == Decimal("40")

    def test_with_statement_value_none_removes(self):
        updated = self.period.with_statement_value("income", "revenue", None)
        assert "revenue" not in updated.income

    def test_facts_flattens_statements(self):
        assert self.period.facts() == {"revenue": Decimal("100"), "ebitda": Decimal("40")}

    def test_full_year_types(self):
        assert PeriodType.FYE.is_full_year
        assert PeriodType.TTM.is_full_year
        assert not PeriodType.YTD.is_full_year
        assert not PeriodType.INTERIM.is_full_year

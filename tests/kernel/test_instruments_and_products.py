"""Tests for debt instrument parsing, products and risk tiers."""

from decimal import Decimal

import pytest

from credit_kernel.domain.instruments import DebtInstrument, InstrumentSource, PaymentFrequency
from credit_kernel.domain.products import ProductType, RiskTier, compare_tiers, worst_tier
from credit_kernel.exceptions import InvalidInstrumentError, UnknownProductError


class TestDebtInstrument:
    def test_from_dict_camel_case(self):
        instrument = DebtInstrument.from_dict(
            {
                "id": "loan-1",
                "source": "existing",
                "principal": 500000,
                "rate": 0.065,
                "amortizationMonths": 60,
                "termMonths": 60,
                "paymentFrequency": "quarterly",
            }
        )

        assert instrument.source is InstrumentSource.EXISTING
        assert instrument.principal == Decimal("500000")
        assert instrument.rate == Decimal("0.065")
        assert instrument.amortization_months == 60
        assert instrument.payment_frequency is PaymentFrequency.QUARTERLY

    def test_defaults(self):
        instrument = DebtInstrument.from_dict({"id": "loan-2"})
        assert instrument.source is InstrumentSource.PROPOSED
        assert instrument.payment_frequency is PaymentFrequency.MONTHLY
        assert instrument.principal is None
        assert instrument.balloon is False

    def test_missing_id_raises(self):
        with pytest.raises(InvalidInstrumentError):
            DebtInstrument.from_dict({"principal": 1})

    def test_unknown_source_raises(self):
        with pytest.raises(InvalidInstrumentError) as exc_info:
            DebtInstrument(id="loan-3", source="borrowed")
        assert exc_info.value.field == "source"

    def test_fractional_months_raises(self):
        with pytest.raises(InvalidInstrumentError) as exc_info:
            DebtInstrument(id="loan-4", amortization_months=Decimal("12.5"))
        assert exc_info.value.field == "amortization_months"

    def test_with_rate_does_not_mutate(self):
        instrument = DebtInstrument(id="loan-5", rate=Decimal("0.05"))
        shocked = instrument.with_rate(Decimal("0.07"))
        assert shocked.rate == Decimal("0.07")
        assert instrument.rate == Decimal("0.05")

    def test_frequency_periods(self):
        assert PaymentFrequency.MONTHLY.periods_per_year == 12
        assert PaymentFrequency.QUARTERLY.months_per_period == 3
        assert PaymentFrequency.ANNUAL.months_per_period == 12


class TestProducts:
    @pytest.mark.parametrize("raw", ["SBA", "sba", ProductType.SBA])
    def test_parse(self, raw):
        assert ProductType.parse(raw) is ProductType.SBA

    def test_unknown_product_raises(self):
        with pytest.raises(UnknownProductError) as exc_info:
            ProductType.parse("MORTGAGE")
        assert exc_info.value.code == "UNKNOWN_PRODUCT"
        assert exc_info.value.product == "MORTGAGE"


class TestRiskTiers:
    def test_ordering(self):
        assert compare_tiers(RiskTier.A, RiskTier.C) < 0
        assert compare_tiers("B", "B") == 0
        assert compare_tiers(RiskTier.D, RiskTier.A) == 3

    def test_worst_tier(self):
        assert worst_tier(RiskTier.A, RiskTier.C, RiskTier.B) is RiskTier.C
        assert worst_tier("A") is RiskTier.A

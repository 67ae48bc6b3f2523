"""
Tests for numeric primitives and immutability helpers.

Covers:
- Decimal coercion of loosely typed facts
- Fixed output precisions (ROUND_HALF_UP)
- Deep freezing
"""

from decimal import Decimal

import pytest

from credit_kernel.domain.values import (
    bps_to_rate,
    freeze_decimal_mapping,
    quantize_money,
    quantize_rate,
    quantize_ratio,
    to_decimal,
)


class TestToDecimal:
    """Coercion never produces floats or non-finite numbers."""

    def test_float_goes_through_str(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_int_and_numeric_string(self):
        assert to_decimal(42) == Decimal("42")
        assert to_decimal(" 12.50 ") == Decimal("12.50")

    def test_decimal_passthrough(self):
        value = Decimal("3.14159")
        assert to_decimal(value) is value

    @pytest.mark.parametrize(
        "raw",
        [None, True, False, "abc", "", float("nan"), float("inf"), Decimal("NaN"), [], {}],
    )
    def test_absent_or_invalid_is_none(self, raw):
        assert to_decimal(raw) is None


class TestQuantize:
    def test_money_rounds_half_up(self):
        assert quantize_money(Decimal("2.345")) == Decimal("2.35")
        assert quantize_money(Decimal("-2.345")) == Decimal("-2.35")

    def test_ratio_precision(self):
        assert quantize_ratio(Decimal("3.07145")) == Decimal("3.0715")

    def test_rate_precision(self):
        assert quantize_rate(Decimal("0.1125004")) == Decimal("0.112500")

    def test_none_passes_through(self):
        assert quantize_money(None) is None
        assert quantize_ratio(None) is None
        assert quantize_rate(None) is None

    def test_bps_to_rate(self):
        assert bps_to_rate(200) == Decimal("0.02")
        assert bps_to_rate(25) == Decimal("0.0025")


class TestFreezing:
    def test_freeze_decimal_mapping_drops_non_numeric(self):
        frozen = freeze_decimal_mapping({"revenue": 100, "note": "n/a", "gap": None})
        assert dict(frozen) == {"revenue": Decimal("100")}
        with pytest.raises(TypeError):
            frozen["revenue"] = Decimal("1")

"""
Test suite for currency helpers

Amounts must be parsed to Decimal without float drift, and rounding
must be half-up at the currency's precision.
"""

import pytest
from decimal import Decimal

from bank_ledger.currency import Currency, format_amount, quantize, to_decimal
from bank_ledger.exceptions import InvalidAmount


class TestCurrency:
    """Test Currency enum"""

    def test_codes_and_precision(self):
        assert Currency.NGN.code == "NGN"
        assert Currency.NGN.precision == 2
        assert Currency.USD.precision == 2

    def test_from_code(self):
        """Lookup is case-insensitive and passes enums through"""
        assert Currency.from_code("ngn") is Currency.NGN
        assert Currency.from_code(Currency.USD) is Currency.USD

    def test_unknown_code(self):
        with pytest.raises(ValueError, match="Unsupported currency"):
            Currency.from_code("XYZ")


class TestToDecimal:
    """Test amount parsing"""

    def test_accepts_common_inputs(self):
        assert to_decimal("100.50") == Decimal("100.50")
        assert to_decimal(" 7 ") == Decimal("7")
        assert to_decimal(300) == Decimal("300")
        assert to_decimal(Decimal("0.01")) == Decimal("0.01")

    def test_float_goes_through_string(self):
        """0.1 must not pick up binary float noise"""
        assert to_decimal(0.1) == Decimal("0.1")

    @pytest.mark.parametrize("value", ["abc", "", "NaN", "Infinity", None, True])
    def test_rejects_non_numbers(self, value):
        with pytest.raises(InvalidAmount):
            to_decimal(value)

    def test_invalid_amount_is_value_error(self):
        """Callers catching ValueError still see bad amounts"""
        with pytest.raises(ValueError):
            to_decimal("ten")


class TestQuantize:
    """Test rounding to currency precision"""

    def test_rounds_half_up(self):
        assert quantize(Decimal("2.005"), Currency.NGN) == Decimal("2.01")
        assert quantize(Decimal("2.0547945"), Currency.NGN) == Decimal("2.05")
        assert quantize(Decimal("0.004"), Currency.USD) == Decimal("0.00")

    def test_format_amount(self):
        assert format_amount(Decimal("1234567.5"), Currency.NGN) == "NGN 1,234,567.50"

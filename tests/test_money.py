"""Tests for the Money value type."""

from decimal import Decimal

import pytest

from expense_tracker.models.money import MAX_MINOR_UNITS, Money, sum_money


class TestMoneyDisplay:
    """Tests for currency formatting."""

    def test_zh_cn_grouping_and_decimals(self):
        """Test the canonical zh_CN example."""
        assert Money(123456).to_display("zh_CN") == "¥1,234.56"

    def test_negative_amount(self):
        """Test negatives carry the sign before the symbol."""
        assert Money(-1234).to_display("zh_CN") == "-¥12.34"

    def test_small_amount_keeps_two_decimals(self):
        """Test that cents are always shown."""
        assert Money(5).to_display("en_US") == "$0.05"
        assert Money.zero().to_display("zh_CN") == "¥0.00"

    def test_large_amount(self):
        """Test grouping of millions."""
        assert Money(123456789012).to_display("en_US") == "$1,234,567,890.12"

    def test_unknown_locale_uses_generic_sign(self):
        """Test fallback currency sign."""
        assert Money(100).to_display("xx_XX") == "¤1.00"


class TestMoneyArithmetic:
    """Tests for integer arithmetic."""

    def test_add_and_subtract(self):
        """Test add/subtract and their operators agree."""
        a, b = Money(1050), Money(275)
        assert a.add(b) == Money(1325)
        assert a + b == Money(1325)
        assert a.subtract(b) == Money(775)
        assert b - a == Money(-775)

    def test_negation(self):
        """Test unary minus."""
        assert -Money(500) == Money(-500)

    def test_comparisons(self):
        """Test ordering operators."""
        assert Money(1) < Money(2)
        assert Money(2) >= Money(2)
        assert Money(-1).is_negative
        assert Money(1).is_positive
        assert not Money.zero().is_positive

    def test_overflow_is_rejected(self):
        """Test that results outside int64 raise."""
        with pytest.raises(ValueError):
            Money(MAX_MINOR_UNITS) + Money(1)

    def test_rejects_non_integer_units(self):
        """Test strict integer minor units."""
        with pytest.raises(ValueError):
            Money("100")

    def test_to_major_is_exact(self):
        """Test Decimal conversion at the display boundary."""
        assert Money(-5).to_major() == Decimal("-0.05")
        assert Money(123456).to_major() == Decimal("1234.56")

    def test_sum_money(self):
        """Test summing an iterable, including empty."""
        assert sum_money([]) == Money.zero()
        assert sum_money([Money(1), Money(2), Money(-4)]) == Money(-1)


class TestMoneyParsing:
    """Tests for Money.from_major."""

    def test_parses_string(self):
        """Test a typical user-entered amount."""
        assert Money.from_major("12.34") == Money(1234)

    def test_parses_int_and_decimal(self):
        """Test whole numbers and Decimals."""
        assert Money.from_major(3000) == Money(300000)
        assert Money.from_major(Decimal("0.1")) == Money(10)

    def test_rounds_half_up(self):
        """Test rounding to the nearest cent."""
        assert Money.from_major("0.005") == Money(1)
        assert Money.from_major("0.004") == Money(0)
        assert Money.from_major("2.675") == Money(268)

    def test_rejects_float(self):
        """Test that floats never reach the ledger."""
        with pytest.raises(ValueError):
            Money.from_major(12.34)

    @pytest.mark.parametrize("value", ["", "abc", "1,000", "NaN", "Infinity"])
    def test_rejects_invalid_input(self, value):
        """Test non-numeric input."""
        with pytest.raises(ValueError):
            Money.from_major(value)

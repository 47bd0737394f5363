"""Tests for currency rounding."""

from decimal import Decimal

import pytest

from orgbill.utils.currency import percentage_of, round_currency


@pytest.mark.parametrize(
    "value,expected",
    [
        (106.785, Decimal("106.79")),
        (1.005, Decimal("1.01")),
        (Decimal("2.344"), Decimal("2.34")),
        (Decimal("2.345"), Decimal("2.35")),
        (5, Decimal("5.00")),
        (0, Decimal("0.00")),
    ],
)
def test_round_currency(value, expected):
    """Test rounding half up at the cent boundary."""
    assert round_currency(value) == expected


def test_round_currency_negative_half_rounds_toward_positive_infinity():
    """Test that -106.785 rounds to -106.78."""
    assert round_currency(-106.785) == Decimal("-106.78")
    assert round_currency(Decimal("-0.015")) == Decimal("-0.01")


def test_round_currency_has_two_places():
    """Test that results always carry exactly two decimal places."""
    assert round_currency(Decimal("7")).as_tuple().exponent == -2
    assert str(round_currency(3.1)) == "3.10"


@pytest.mark.parametrize(
    "value",
    [float("nan"), float("inf"), float("-inf"), Decimal("NaN"), "12.50", None, True],
)
def test_round_currency_invalid_input_is_zero(value):
    """Test that non-finite and non-numeric input rounds to 0.00."""
    assert round_currency(value) == Decimal("0.00")


class TestPercentageOf:
    """Tests for percentage_of."""

    def test_half(self):
        """Test 50% of an amount."""
        assert percentage_of(Decimal("200"), Decimal("50")) == Decimal("100.00")

    def test_rounds_to_cents(self):
        """Test that the result is rounded to cents."""
        assert percentage_of(Decimal("33.33"), Decimal("10")) == Decimal("3.33")
        assert percentage_of(Decimal("10.01"), Decimal("50")) == Decimal("5.01")

    def test_zero_percent(self):
        """Test that 0% yields zero."""
        assert percentage_of(Decimal("999.99"), Decimal("0")) == Decimal("0.00")

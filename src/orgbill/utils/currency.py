"""Currency rounding utilities.

Binary floats misround at the cent boundary: 106.785 * 100 evaluates to
10678.499999..., so a naive round-half-up yields 106.78. Rounding here works
on the decimal representation of the value, shifting the exponent by two
places instead of multiplying, so 106.785 rounds to 106.79.
"""

import math
from decimal import Decimal, ROUND_FLOOR

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
_HALF = Decimal("0.5")


def round_currency(value) -> Decimal:
    """Round a value to 2 decimal places (currency precision).

    Halves round toward positive infinity, so -106.785 becomes -106.78.

    Args:
        value: int, float or Decimal amount

    Returns:
        Decimal with exactly two decimal places; 0.00 for non-numeric or
        non-finite input
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return ZERO
    if isinstance(value, float) and not math.isfinite(value):
        return ZERO
    if isinstance(value, Decimal) and not value.is_finite():
        return ZERO

    shifted = Decimal(str(value)).scaleb(2)
    rounded = (shifted + _HALF).to_integral_value(rounding=ROUND_FLOOR)
    return rounded.scaleb(-2).quantize(CENT)


def percentage_of(amount: Decimal, percentage: Decimal) -> Decimal:
    """Return ``percentage`` percent of ``amount``, rounded to cents."""
    return round_currency(Decimal(amount) * Decimal(percentage) / Decimal(100))

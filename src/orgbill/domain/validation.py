"""Field coercion helpers shared by domain objects."""

from decimal import Decimal
from typing import Any, Optional

from orgbill.domain.errors import ValidationError
from orgbill.utils.amount_parser import parse_amount


def to_decimal(value: Any, field: str, default: Optional[Decimal] = None) -> Decimal:
    """Coerce a plain-data value (int, float, str, Decimal) into a Decimal.

    Floats go through their shortest string form so 0.1 stays 0.1.

    Raises:
        ValidationError: If the value is missing (and no default) or not numeric
    """
    if value is None or value == "":
        if default is not None:
            return default
        raise ValidationError(f"{field} is required", field)
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field)
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValidationError(f"{field} must be a finite number", field)
        return value
    if isinstance(value, (int, float)):
        return to_decimal(str(value), field)
    if isinstance(value, str):
        try:
            return parse_amount(value)
        except ValueError as e:
            raise ValidationError(f"{field} must be a number: {e}", field)
    raise ValidationError(f"{field} must be a number", field)


def to_percentage(value: Any, field: str) -> Decimal:
    """Coerce a percentage and require it to lie within 0..100."""
    pct = to_decimal(value, field)
    if pct < 0 or pct > 100:
        raise ValidationError(f"{field} must be between 0 and 100", field)
    return pct


def clamp_percentage(value: Any, field: str) -> Decimal:
    """Coerce a percentage, clamping it into 0..100. Missing values become 0."""
    pct = to_decimal(value, field, default=Decimal("0"))
    return max(Decimal("0"), min(Decimal("100"), pct))


def require_text(value: Any, field: str, max_length: Optional[int] = None) -> str:
    """Require a non-blank string, optionally bounded in length."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must be a non-empty string", field)
    if max_length is not None and len(value) > max_length:
        raise ValidationError(
            f"{field} must not exceed {max_length} characters", field
        )
    return value

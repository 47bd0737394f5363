"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re


def _normalize_separators(amount_str: str) -> str:
    """Turn thousands/decimal separators into plain ``1234.56`` form.

    With both "." and "," present the later one is the decimal mark
    ("1,234.56", "1.234,56"). A single comma is a German decimal comma
    ("19,5", "200,50") unless exactly three digits follow it, which is
    ambiguous ("1,234") and rejected. Several commas must all group
    thousands ("1,234,567").

    Raises:
        ValueError: If the separators are ambiguous
    """
    if "," not in amount_str:
        return amount_str
    if "." in amount_str:
        if amount_str.rfind(",") > amount_str.rfind("."):
            return amount_str.replace(".", "").replace(",", ".")
        return amount_str.replace(",", "")

    groups = amount_str.split(",")
    if len(groups) == 2 and len(groups[1]) != 3:
        return amount_str.replace(",", ".")
    if len(groups) > 2 and all(len(group) == 3 for group in groups[1:]):
        return amount_str.replace(",", "")
    raise ValueError(
        f"Ambiguous amount '{amount_str}': use '.' or a full '1.234,56' style number"
    )


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles various formats:
    - "123.45"
    - "€123.45"
    - "-123.45"
    - "1,234.56" and "1.234,56"
    - "19,5" (decimal comma)
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    amount_str = amount_str.strip()

    # Handle parentheses notation (negative)
    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    amount_str = re.sub(r"[$€£¥]", "", amount_str).strip()
    amount_str = _normalize_separators(amount_str)

    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}': {e}")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}': not a finite number")
    return -amount if is_negative else amount

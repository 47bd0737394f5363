"""Utility functions for orgbill."""

from orgbill.utils.date_parser import parse_date, to_datetime
from orgbill.utils.amount_parser import parse_amount
from orgbill.utils.currency import round_currency

__all__ = ["parse_date", "to_datetime", "parse_amount", "round_currency"]

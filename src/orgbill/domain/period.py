"""Billing periods."""

import calendar
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Optional

from dateutil.relativedelta import relativedelta

from orgbill.domain.errors import ValidationError
from orgbill.utils.date_parser import to_datetime

_END_OF_DAY = time(23, 59, 59, 999000)


class PeriodType(str, Enum):
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
    CUSTOM = "custom"


class ReportPeriod:
    """Closed date interval a billing report covers.

    The start is normalized to 00:00:00.000 and the end to 23:59:59.999 of
    their respective days. The period type only drives display labels.
    """

    def __init__(self, start_date: Any, end_date: Any, type: Any = PeriodType.CUSTOM):
        if start_date is None or start_date == "" or end_date is None or end_date == "":
            raise ValidationError("Start and end date are required", "period")
        try:
            start = to_datetime(start_date)
        except ValueError:
            raise ValidationError(f"Invalid start date: {start_date}", "start_date")
        try:
            end = to_datetime(end_date)
        except ValueError:
            raise ValidationError(f"Invalid end date: {end_date}", "end_date")
        try:
            self._type = PeriodType(type or PeriodType.CUSTOM)
        except ValueError:
            raise ValidationError(f"Invalid period type: {type}", "type")

        self._start_date = datetime.combine(start.date(), time.min)
        self._end_date = datetime.combine(end.date(), _END_OF_DAY)
        if self._end_date < self._start_date:
            raise ValidationError("End date must not be before start date", "end_date")

    def __repr__(self) -> str:
        return f"ReportPeriod({self.display_name!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ReportPeriod):
            return NotImplemented
        return (self._start_date, self._end_date, self._type) == (
            other._start_date,
            other._end_date,
            other._type,
        )

    def __hash__(self) -> int:
        return hash((self._start_date, self._end_date, self._type))

    @property
    def start_date(self) -> datetime:
        return self._start_date

    @property
    def end_date(self) -> datetime:
        return self._end_date

    @property
    def type(self) -> PeriodType:
        return self._type

    @property
    def display_name(self) -> str:
        if self._type == PeriodType.MONTH:
            return f"{calendar.month_name[self._start_date.month]} {self._start_date.year}"
        if self._type == PeriodType.QUARTER:
            quarter = (self._start_date.month - 1) // 3 + 1
            return f"Q{quarter} {self._start_date.year}"
        if self._type == PeriodType.YEAR:
            return f"Year {self._start_date.year}"
        return (
            f"{self._start_date.strftime('%d.%m.%Y')} - {self._end_date.strftime('%d.%m.%Y')}"
        )

    @property
    def short_display_name(self) -> str:
        if self._type == PeriodType.MONTH:
            return self._start_date.strftime("%m/%Y")
        return self.display_name

    def contains_date(self, value: Any) -> bool:
        """Return True if ``value`` falls inside the period (inclusive)."""
        try:
            moment = to_datetime(value)
        except ValueError:
            return False
        return self._start_date <= moment <= self._end_date

    @classmethod
    def for_month(cls, year: int, month: int) -> "ReportPeriod":
        """Period for a calendar month (``month`` is 1-12)."""
        if not 1 <= month <= 12:
            raise ValidationError(f"Invalid month: {month}", "month")
        last_day = calendar.monthrange(year, month)[1]
        return cls(date(year, month, 1), date(year, month, last_day), PeriodType.MONTH)

    @classmethod
    def for_current_month(cls, today: Optional[date] = None) -> "ReportPeriod":
        today = today or date.today()
        return cls.for_month(today.year, today.month)

    @classmethod
    def for_last_month(cls, today: Optional[date] = None) -> "ReportPeriod":
        previous = (today or date.today()) - relativedelta(months=1)
        return cls.for_month(previous.year, previous.month)

    @classmethod
    def for_quarter(cls, year: int, quarter: int) -> "ReportPeriod":
        if not 1 <= quarter <= 4:
            raise ValidationError(f"Invalid quarter: {quarter}", "quarter")
        start = date(year, (quarter - 1) * 3 + 1, 1)
        end = start + relativedelta(months=3) - relativedelta(days=1)
        return cls(start, end, PeriodType.QUARTER)

    @classmethod
    def for_current_quarter(cls, today: Optional[date] = None) -> "ReportPeriod":
        today = today or date.today()
        return cls.for_quarter(today.year, (today.month - 1) // 3 + 1)

    @classmethod
    def for_year(cls, year: int) -> "ReportPeriod":
        return cls(date(year, 1, 1), date(year, 12, 31), PeriodType.YEAR)

    @classmethod
    def custom(cls, start_date: Any, end_date: Any) -> "ReportPeriod":
        return cls(start_date, end_date, PeriodType.CUSTOM)

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_date": self._start_date.isoformat(timespec="milliseconds"),
            "end_date": self._end_date.isoformat(timespec="milliseconds"),
            "type": self._type.value,
            "display_name": self.display_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReportPeriod":
        return cls(data.get("start_date"), data.get("end_date"), data.get("type") or "custom")

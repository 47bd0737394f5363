"""Tests for billing periods."""

from datetime import date, datetime

import pytest

from orgbill.domain.errors import ValidationError
from orgbill.domain.period import PeriodType, ReportPeriod


class TestReportPeriod:
    """Tests for ReportPeriod construction and queries."""

    def test_bounds_are_normalized(self):
        """Test that start and end cover whole days."""
        period = ReportPeriod.custom("2024-03-05T14:00:00", datetime(2024, 3, 7, 1, 2))
        assert period.start_date == datetime(2024, 3, 5, 0, 0)
        assert period.end_date == datetime(2024, 3, 7, 23, 59, 59, 999000)
        assert period.type is PeriodType.CUSTOM

    def test_contains_date_is_inclusive(self):
        """Test that both boundary days are inside the period."""
        period = ReportPeriod.for_month(2024, 1)
        assert period.contains_date(datetime(2024, 1, 1, 0, 0))
        assert period.contains_date("2024-01-31T23:59:59")
        assert not period.contains_date(date(2024, 2, 1))
        assert not period.contains_date(datetime(2023, 12, 31, 23, 59))
        assert not period.contains_date("garbage")

    @pytest.mark.parametrize(
        "start,end,field",
        [
            (None, "2024-01-01", "period"),
            ("2024-01-01", "", "period"),
            ("garbage", "2024-01-01", "start_date"),
            ("2024-01-01", "garbage", "end_date"),
            ("2024-02-01", "2024-01-01", "end_date"),
        ],
    )
    def test_invalid_bounds(self, start, end, field):
        """Test that invalid bounds name the offending field."""
        with pytest.raises(ValidationError) as exc_info:
            ReportPeriod(start, end)
        assert exc_info.value.field == field

    def test_invalid_type(self):
        """Test that an unknown period type is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            ReportPeriod("2024-01-01", "2024-01-02", "fortnight")
        assert exc_info.value.field == "type"

    def test_single_day(self):
        """Test that start and end may be the same day."""
        period = ReportPeriod.custom(date(2024, 5, 1), date(2024, 5, 1))
        assert period.contains_date(datetime(2024, 5, 1, 12))

    def test_equality(self):
        """Test value equality and hashing."""
        assert ReportPeriod.for_month(2024, 1) == ReportPeriod.for_month(2024, 1)
        assert ReportPeriod.for_month(2024, 1) != ReportPeriod.custom("2024-01-01", "2024-01-31")
        assert len({ReportPeriod.for_year(2024), ReportPeriod.for_year(2024)}) == 1


class TestFactories:
    """Tests for the named period constructors."""

    def test_for_month(self):
        """Test a calendar month including leap February."""
        period = ReportPeriod.for_month(2024, 2)
        assert period.start_date == datetime(2024, 2, 1)
        assert period.end_date.date() == date(2024, 2, 29)
        assert period.display_name == "February 2024"
        assert period.short_display_name == "02/2024"

    @pytest.mark.parametrize("month", [0, 13])
    def test_for_month_invalid(self, month):
        """Test that months are 1-based."""
        with pytest.raises(ValidationError):
            ReportPeriod.for_month(2024, month)

    def test_for_last_month_wraps_year(self):
        """Test that January's previous month is December."""
        period = ReportPeriod.for_last_month(today=date(2024, 1, 20))
        assert period.start_date == datetime(2023, 12, 1)
        assert period.end_date.date() == date(2023, 12, 31)

    def test_for_current_month(self):
        """Test the current month relative to a given day."""
        period = ReportPeriod.for_current_month(today=date(2024, 7, 4))
        assert period == ReportPeriod.for_month(2024, 7)

    def test_for_quarter(self):
        """Test quarter bounds and labels."""
        period = ReportPeriod.for_quarter(2024, 4)
        assert period.start_date == datetime(2024, 10, 1)
        assert period.end_date.date() == date(2024, 12, 31)
        assert period.display_name == "Q4 2024"
        with pytest.raises(ValidationError):
            ReportPeriod.for_quarter(2024, 5)

    def test_for_current_quarter(self):
        """Test picking the quarter containing a day."""
        assert ReportPeriod.for_current_quarter(today=date(2024, 5, 15)) == ReportPeriod.for_quarter(
            2024, 2
        )

    def test_for_year(self):
        """Test a full calendar year."""
        period = ReportPeriod.for_year(2023)
        assert period.start_date == datetime(2023, 1, 1)
        assert period.end_date.date() == date(2023, 12, 31)
        assert period.display_name == "Year 2023"

    def test_custom_display_name(self):
        """Test the label of a custom range."""
        period = ReportPeriod.custom("2024-01-05", "2024-02-10")
        assert period.display_name == "05.01.2024 - 10.02.2024"
        assert period.short_display_name == period.display_name

    def test_dict_round_trip(self):
        """Test serializing and restoring a period."""
        period = ReportPeriod.for_quarter(2024, 1)
        data = period.to_dict()
        assert data["end_date"] == "2024-03-31T23:59:59.999"
        assert ReportPeriod.from_dict(data) == period

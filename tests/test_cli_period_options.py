"""Tests for CLI period option helper."""

from datetime import date

import click
import pytest

from orgbill.cli.period_options import resolve_cli_period
from orgbill.domain.period import PeriodType, ReportPeriod


def _ctx() -> click.Context:
    return click.Context(click.Command("test"))


def _resolve(**options):
    values = {
        "month": None,
        "quarter": None,
        "year": None,
        "start_date": None,
        "end_date": None,
        "last_month": False,
    }
    values.update(options)
    return resolve_cli_period(_ctx(), **values)


def test_resolve_cli_period_rejects_multiple_periods(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        _resolve(month="2024-01", last_month=True)

    assert excinfo.value.exit_code == 1
    err = capsys.readouterr().err
    assert "Only one period option" in err
    assert "--month" in err and "--last-month" in err


def test_resolve_cli_period_requires_both_custom_bounds(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        _resolve(start_date="2024-01-01")

    assert excinfo.value.exit_code == 1
    assert "must be given together" in capsys.readouterr().err


@pytest.mark.parametrize("month", ["2024-13", "Jan 2024", "2024-"])
def test_resolve_cli_period_invalid_month(capsys, month):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        _resolve(month=month)

    assert excinfo.value.exit_code == 1
    assert "Invalid period" in capsys.readouterr().err


def test_resolve_cli_period_invalid_custom_range(capsys):
    with pytest.raises(click.exceptions.Exit):
        _resolve(start_date="2024-02-01", end_date="2024-01-01")
    assert "Invalid period" in capsys.readouterr().err


def test_resolve_cli_period_month():
    assert _resolve(month="2024-02") == ReportPeriod.for_month(2024, 2)


@pytest.mark.parametrize("quarter", ["2024-Q3", "2024-q3", "2024-3"])
def test_resolve_cli_period_quarter(quarter):
    assert _resolve(quarter=quarter) == ReportPeriod.for_quarter(2024, 3)


def test_resolve_cli_period_year():
    assert _resolve(year=2023) == ReportPeriod.for_year(2023)


def test_resolve_cli_period_last_month():
    assert _resolve(last_month=True) == ReportPeriod.for_last_month()


def test_resolve_cli_period_custom_range():
    period = _resolve(start_date="2024-01-05", end_date="2024-01-20")
    assert period.type is PeriodType.CUSTOM
    assert period.start_date.date() == date(2024, 1, 5)
    assert period.end_date.date() == date(2024, 1, 20)


def test_resolve_cli_period_defaults_to_current_month():
    assert _resolve() == ReportPeriod.for_current_month()

"""CLI helpers for billing period resolution."""

import click

from orgbill.domain.errors import ValidationError
from orgbill.domain.period import ReportPeriod
from orgbill.utils.date_parser import parse_date


def _parse_year_part(value: str, separator: str, label: str) -> tuple[int, int]:
    year, sep, part = value.partition(separator)
    if not sep or not year.isdigit() or not part.isdigit():
        raise ValidationError(f"Invalid {label} '{value}'", label)
    return int(year), int(part)


def resolve_cli_period(
    ctx,
    *,
    month: str | None,
    quarter: str | None,
    year: int | None,
    start_date: str | None,
    end_date: str | None,
    last_month: bool,
) -> ReportPeriod:
    """Resolve the billing period from exactly one of the period options.

    Defaults to the current month when no option is given.
    """
    chosen = [
        name
        for name, is_set in (
            ("--month", month is not None),
            ("--quarter", quarter is not None),
            ("--year", year is not None),
            ("--last-month", last_month),
            ("--start-date/--end-date", start_date is not None or end_date is not None),
        )
        if is_set
    ]
    if len(chosen) > 1:
        click.echo(
            f"Error: Only one period option can be specified at a time (got {', '.join(chosen)}).",
            err=True,
        )
        ctx.exit(1)

    try:
        if month is not None:
            return ReportPeriod.for_month(*_parse_year_part(month, "-", "month"))
        if quarter is not None:
            quarter = quarter.upper().replace("Q", "")
            return ReportPeriod.for_quarter(*_parse_year_part(quarter, "-", "quarter"))
        if year is not None:
            return ReportPeriod.for_year(year)
        if last_month:
            return ReportPeriod.for_last_month()
        if start_date is not None or end_date is not None:
            if start_date is None or end_date is None:
                click.echo("Error: --start-date and --end-date must be given together.", err=True)
                ctx.exit(1)
            return ReportPeriod.custom(parse_date(start_date), parse_date(end_date))
    except ValueError as e:
        click.echo(f"Error: Invalid period: {e}", err=True)
        ctx.exit(1)

    return ReportPeriod.for_current_month()

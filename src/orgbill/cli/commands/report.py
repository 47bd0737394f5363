"""Billing report commands."""

import json
from dataclasses import replace
from decimal import Decimal
from pathlib import Path
from typing import Any

import click

from orgbill.cli.error_handling import handle_domain_error
from orgbill.cli.period_options import resolve_cli_period
from orgbill.cli.tree_resolution import resolve_tree_or_exit
from orgbill.domain.billing import BillingFinalizationService, BillingReportService
from orgbill.domain.constants import DEFAULT_VAT_RATE
from orgbill.domain.errors import DomainError, ValidationError
from orgbill.domain.report import BillingReport, EmployeeDetails, LineItemSource
from orgbill.domain.revenue import RevenueEntry


def load_transactions(
    path: Path, default_vat_rate: Decimal = DEFAULT_VAT_RATE
) -> tuple[list[RevenueEntry], dict[str, Any]]:
    """Read revenue entries from a JSON file.

    The file holds either a list of entries or an object with a
    ``transactions`` list and an optional ``employees`` mapping of employee
    ID to snapshot fields (tax, bank, small-business flag). Entries without a
    ``vat_rate`` get ``default_vat_rate``.

    Raises:
        ValidationError: If the file is not valid JSON or an entry is malformed
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid transactions file: {e}", "transactions")

    employees: dict[str, Any] = {}
    if isinstance(data, dict):
        employees = data.get("employees") or {}
        data = data.get("transactions")
    if not isinstance(data, list):
        raise ValidationError("Transactions file must contain a list of entries", "transactions")
    if not all(isinstance(item, dict) for item in data):
        raise ValidationError("Every transaction must be an object", "transactions")
    entries = [
        RevenueEntry.from_dict(
            item if item.get("vat_rate") is not None else {**item, "vat_rate": default_vat_rate}
        )
        for item in data
    ]
    return entries, employees


def _print_report(report: BillingReport) -> None:
    click.echo(f"Billing report {report.metadata.report_number}")
    click.echo(f"Employee: {report.employee.name} | Period: {report.period.display_name}")
    click.echo("-" * 60)
    for source in LineItemSource:
        items = report.line_items_by_source(source)
        summary = report.summary_by_source(source)
        click.echo(f"\n{source.label} ({summary.entry_count})")
        for item in sorted(items, key=lambda i: i.date):
            who = f" [{item.subordinate_name}]" if item.subordinate_name else ""
            click.echo(
                f"  {item.date_formatted} | {item.customer_name or '-':20s} | "
                f"{item.category_type:12s} | {item.provision_percentage}% | "
                f"{item.provision_amount:>10}{who}"
            )
        click.echo(
            f"  Net {summary.total_provision_net} | VAT {summary.total_provision_vat} | "
            f"Gross {summary.total_provision_gross}"
        )

    total = report.total_summary
    click.echo("\n" + "-" * 60)
    click.echo(
        f"Total: net {total.total_provision_net} | VAT {total.total_provision_vat} | "
        f"gross {total.total_provision_gross}"
    )
    if report.has_excluded_entries:
        click.echo(f"{report.excluded_entry_count} entries excluded (paid directly by provider)")


@click.group()
def report_group():
    """Generate billing reports."""
    pass


@report_group.command("generate")
@click.argument("employee_id")
@click.option(
    "--transactions",
    "transactions_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file with revenue entries",
)
@click.option("--month", help="Calendar month, e.g. 2024-01")
@click.option("--quarter", help="Quarter, e.g. 2024-Q1")
@click.option("--year", type=int, help="Calendar year")
@click.option("--last-month", is_flag=True, help="Previous calendar month")
@click.option("--start-date", help="Start of a custom period")
@click.option("--end-date", help="End of a custom period")
@click.option("--small-business", is_flag=True, help="Employee is VAT-exempt")
@click.option(
    "--direct-payment-registration",
    is_flag=True,
    help="Employee holds a direct-payment trade registration",
)
@click.option("--no-hierarchy", is_flag=True, help="Skip team revenue")
@click.option("--no-tip-provider", is_flag=True, help="Skip tip provider revenue")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
@click.option(
    "--finalize",
    is_flag=True,
    help="Mark billed own entries as provisioned in the transactions file",
)
@click.pass_context
def generate_report(
    ctx,
    employee_id: str,
    transactions_file: Path,
    month: str | None,
    quarter: str | None,
    year: int | None,
    last_month: bool,
    start_date: str | None,
    end_date: str | None,
    small_business: bool,
    direct_payment_registration: bool,
    no_hierarchy: bool,
    no_tip_provider: bool,
    as_json: bool,
    finalize: bool,
):
    """Generate the billing report for EMPLOYEE_ID.

    Examples:
        orgbill report generate <ID> --transactions entries.json --month 2024-01
        orgbill report generate <ID> --transactions entries.json --quarter 2024-Q1 --json
    """
    period = resolve_cli_period(
        ctx,
        month=month,
        quarter=quarter,
        year=year,
        start_date=start_date,
        end_date=end_date,
        last_month=last_month,
    )
    tree = resolve_tree_or_exit(ctx, ctx.obj["hierarchy_service"])

    try:
        entries, employees = load_transactions(
            transactions_file, ctx.obj["settings"].default_vat_rate
        )
        node = tree.get_node(employee_id)
        employee = EmployeeDetails.from_node(node, **employees.get(employee_id, {}))
        if small_business or direct_payment_registration:
            employee = replace(
                employee,
                is_small_business=employee.is_small_business or small_business,
                has_direct_payment_registration=(
                    employee.has_direct_payment_registration or direct_payment_registration
                ),
            )
        service = BillingReportService(tree, entries)
        report = service.generate_report(
            employee_id,
            period,
            employee=employee,
            include_hierarchy=not no_hierarchy,
            include_tip_provider=not no_tip_provider,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        _print_report(report)

    if finalize:
        finalizer = BillingFinalizationService()
        count = len(finalizer.submitted_entry_ids(report))
        updated = finalizer.finalize(report, entries)
        raw = json.loads(transactions_file.read_text(encoding="utf-8"))
        payload = [entry.to_dict() for entry in updated]
        if isinstance(raw, dict):
            raw["transactions"] = payload
        else:
            raw = payload
        transactions_file.write_text(json.dumps(raw, indent=2), encoding="utf-8")
        # Keep stdout a single JSON document when --json is given
        click.echo(f"Finalized {count} entries", err=as_json)


def register_commands(cli):
    """Register report commands with main CLI."""
    cli.add_command(report_group, name="report")

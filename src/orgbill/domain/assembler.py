"""Turns revenue entries into billing report line items.

Every path computes a gross commission amount and then applies the same VAT
extraction: when the entry carries VAT and the employee is not a small
business, the commission is VAT-inclusive and its VAT share is split out.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from orgbill.domain.constants import DEFAULT_VAT_RATE, UNKNOWN_OWNER
from orgbill.domain.period import ReportPeriod
from orgbill.domain.report import BillingReport, EmployeeDetails, LineItemSource, ReportLineItem
from orgbill.domain.revenue import HierarchicalEntry, RevenueEntry
from orgbill.utils.currency import ZERO, percentage_of, round_currency


@dataclass(frozen=True)
class ProvisionVat:
    """VAT split of a gross commission amount."""

    rate: Decimal
    vat_amount: Decimal
    gross_amount: Decimal

    @property
    def net_amount(self) -> Decimal:
        return round_currency(self.gross_amount - self.vat_amount)


def extract_provision_vat(
    provision_amount: Decimal,
    employee: Optional[EmployeeDetails],
    entry_has_vat: bool,
    entry_vat_rate: Optional[Decimal] = None,
) -> ProvisionVat:
    """Split the VAT out of a VAT-inclusive commission amount.

    Examples:
        119.00 at 19% -> net 100.00, vat 19.00
        small-business employee -> vat 0, net = gross = 119.00
    """
    is_small_business = employee.is_small_business if employee is not None else False
    if not entry_has_vat or is_small_business:
        return ProvisionVat(rate=ZERO, vat_amount=ZERO, gross_amount=round_currency(provision_amount))

    rate = entry_vat_rate or DEFAULT_VAT_RATE
    net = round_currency(provision_amount / (1 + rate / 100))
    vat = round_currency(provision_amount - net)
    return ProvisionVat(rate=rate, vat_amount=vat, gross_amount=round_currency(provision_amount))


def effective_owner_provision(entry: RevenueEntry, employee: Optional[EmployeeDetails]) -> Decimal:
    """Owner's percentage on an entry after tip providers took their share.

    A provision snapshot stored on the entry wins over the employee's current
    rate. The tip-provider deduction never drives the result below zero.
    """
    base = ZERO
    if entry.has_provision_snapshot:
        base = entry.owner_provision_snapshot
    elif employee is not None:
        base = employee.provision_rate(entry.bucket)
    deduction = min(entry.total_tip_provider_percentage, base)
    return base - deduction


def _line_item(
    entry: RevenueEntry,
    employee: Optional[EmployeeDetails],
    source: LineItemSource,
    percentage: Decimal,
    amount: Decimal,
    subordinate_name: Optional[str] = None,
    subordinate_id: Optional[str] = None,
) -> ReportLineItem:
    vat = extract_provision_vat(amount, employee, entry.has_vat, entry.vat_rate)
    return ReportLineItem(
        original_entry_id=entry.id,
        date=entry.entry_date,
        source=source,
        customer_name=entry.customer_name,
        customer_address=entry.customer_address.format(),
        category_type=entry.category_type,
        category_display_name=entry.category_display_name,
        product_name=entry.product_name,
        provider_name=entry.provider_name or entry.property_address or "",
        contract_number=entry.contract_number,
        net_amount=entry.net_amount,
        vat_rate=entry.vat_rate if entry.has_vat else ZERO,
        vat_amount=entry.vat_amount,
        gross_amount=entry.gross_amount,
        provision_percentage=percentage,
        provision_amount=amount,
        provision_vat_rate=vat.rate,
        provision_vat_amount=vat.vat_amount,
        provision_gross_amount=vat.gross_amount,
        subordinate_name=subordinate_name,
        subordinate_id=subordinate_id,
        status=entry.status.value,
    )


def create_own_line_item(entry: RevenueEntry, employee: Optional[EmployeeDetails]) -> ReportLineItem:
    percentage = effective_owner_provision(entry, employee)
    amount = percentage_of(entry.gross_amount, percentage)
    return _line_item(entry, employee, LineItemSource.OWN, percentage, amount)


def create_hierarchy_line_item(
    hierarchical_entry: HierarchicalEntry, employee: Optional[EmployeeDetails]
) -> ReportLineItem:
    """Reshape a precomputed manager override into a line item."""
    return _line_item(
        hierarchical_entry.original_entry,
        employee,
        LineItemSource.HIERARCHY,
        hierarchical_entry.manager_provision_percentage,
        hierarchical_entry.manager_provision_amount,
        subordinate_name=hierarchical_entry.owner_name,
        subordinate_id=hierarchical_entry.owner_id,
    )


def create_tip_provider_line_item(
    entry: RevenueEntry, tip_provider_id: str, employee: Optional[EmployeeDetails]
) -> ReportLineItem:
    allocation = entry.find_tip_provider(tip_provider_id)
    if allocation is not None:
        percentage = allocation.provision_percentage
        amount = allocation.calculate_amount(entry.gross_amount)
    else:
        percentage = entry.total_tip_provider_percentage
        amount = entry.tip_provider_provision_amount

    owner_name = entry.owner_name or entry.employee_id or UNKNOWN_OWNER
    return _line_item(
        entry,
        employee,
        LineItemSource.TIP_PROVIDER,
        percentage,
        amount,
        subordinate_name=owner_name,
        subordinate_id=entry.employee_id,
    )


def is_active(entry) -> bool:
    """False for rejected or cancelled entries (or views of them)."""
    status = getattr(entry, "status", None)
    if status is None and getattr(entry, "original_entry", None) is not None:
        status = entry.original_entry.status
    return status is None or not status.is_excluded_from_calculations


def assemble_report(
    employee: EmployeeDetails,
    period: ReportPeriod,
    own_entries: Iterable[RevenueEntry] = (),
    hierarchy_entries: Iterable[HierarchicalEntry] = (),
    tip_provider_entries: Iterable[RevenueEntry] = (),
    excluded_entry_count: int = 0,
    generated_by: Optional[str] = None,
    generated_by_name: Optional[str] = None,
) -> BillingReport:
    """Build a report from already selected entries, skipping inactive ones."""
    own_items = [create_own_line_item(e, employee) for e in own_entries if is_active(e)]
    hierarchy_items = [
        create_hierarchy_line_item(e, employee) for e in hierarchy_entries if is_active(e)
    ]
    tip_items = [
        create_tip_provider_line_item(e, employee.id, employee)
        for e in tip_provider_entries
        if is_active(e)
    ]
    return BillingReport.create(
        employee=employee,
        period=period,
        own_line_items=own_items,
        hierarchy_line_items=hierarchy_items,
        tip_provider_line_items=tip_items,
        excluded_entry_count=excluded_entry_count,
        generated_by=generated_by,
        generated_by_name=generated_by_name,
    )

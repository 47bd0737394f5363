"""Billing report generation and finalization services."""

import logging
from dataclasses import replace
from typing import Iterable, Optional, Sequence

from orgbill.domain.assembler import assemble_report
from orgbill.domain.errors import ValidationError
from orgbill.domain.exclusion import should_exclude_entry
from orgbill.domain.period import ReportPeriod
from orgbill.domain.report import BillingReport, EmployeeDetails
from orgbill.domain.revenue import EntryStatus, HierarchicalEntry, RevenueEntry
from orgbill.domain.tree import HierarchyTree

logger = logging.getLogger(__name__)


class BillingReportService:
    """Builds billing reports from a hierarchy tree and a list of revenue entries."""

    def __init__(self, tree: HierarchyTree, entries: Iterable[RevenueEntry]):
        """Initialize billing report service.

        Args:
            tree: Hierarchy used to resolve employees and their subordinates
            entries: All known revenue entries
        """
        self.tree = tree
        self.entries = list(entries)

    def generate_report(
        self,
        employee_id: str,
        period: ReportPeriod,
        employee: Optional[EmployeeDetails] = None,
        include_hierarchy: bool = True,
        include_tip_provider: bool = True,
        generated_by: Optional[str] = None,
        generated_by_name: Optional[str] = None,
    ) -> BillingReport:
        """Generate the report for one employee and period.

        Args:
            employee_id: Node ID of the employee
            period: Billing period
            employee: Optional employee snapshot with tax and bank details; built
                from the hierarchy node when omitted
            include_hierarchy: Include overrides on subordinates' entries
            include_tip_provider: Include entries the employee referred
            generated_by: ID of whoever requested the report
            generated_by_name: Display name of whoever requested the report

        Returns:
            The assembled BillingReport

        Raises:
            NotFoundError: If the employee is not part of the tree
            ValidationError: If ``employee`` belongs to a different ID
        """
        node = self.tree.get_node(employee_id)
        if employee is None:
            employee = EmployeeDetails.from_node(node)
        elif employee.id != employee_id:
            raise ValidationError(
                f"Employee details belong to '{employee.id}', not '{employee_id}'", "employee"
            )

        logger.info("Generating billing report for %s (%s)", employee.name, period.display_name)

        own = self.own_entries(employee_id, period)
        hierarchy = self.hierarchy_entries(employee_id, period) if include_hierarchy else []
        tips = self.tip_provider_entries(employee_id, period) if include_tip_provider else []

        flag = employee.has_direct_payment_registration
        included_own = [e for e in own if not should_exclude_entry(e, flag)]
        included_hierarchy = [e for e in hierarchy if not should_exclude_entry(e, flag)]
        included_tips = [e for e in tips if not should_exclude_entry(e, flag)]
        excluded = (
            len(own) + len(hierarchy) + len(tips)
            - len(included_own) - len(included_hierarchy) - len(included_tips)
        )

        report = assemble_report(
            employee=employee,
            period=period,
            own_entries=included_own,
            hierarchy_entries=included_hierarchy,
            tip_provider_entries=included_tips,
            excluded_entry_count=excluded,
            generated_by=generated_by,
            generated_by_name=generated_by_name,
        )
        logger.info(
            "Report %s generated: %d line items, %d excluded, total provision %s",
            report.metadata.report_number,
            report.total_line_item_count,
            excluded,
            report.total_summary.total_provision,
        )
        return report

    def own_entries(self, employee_id: str, period: ReportPeriod) -> list[RevenueEntry]:
        return [
            e for e in self.entries
            if e.employee_id == employee_id and period.contains_date(e.entry_date)
        ]

    def tip_provider_entries(self, employee_id: str, period: ReportPeriod) -> list[RevenueEntry]:
        return [
            e for e in self.entries
            if employee_id in e.tip_provider_ids and period.contains_date(e.entry_date)
        ]

    def hierarchy_entries(self, manager_id: str, period: ReportPeriod) -> list[HierarchicalEntry]:
        """Overrides the manager earns on entries of every node below them.

        Only entries that actually pay the manager something are returned.
        """
        manager = self.tree.get_node(manager_id)
        manager_depth = self.tree.get_depth(manager_id)
        by_employee: dict[str, list[RevenueEntry]] = {}
        for entry in self.entries:
            if period.contains_date(entry.entry_date):
                by_employee.setdefault(entry.employee_id, []).append(entry)

        result: list[HierarchicalEntry] = []
        for owner in self.tree.get_descendants(manager_id):
            level = self.tree.get_depth(owner.id) - manager_depth
            for entry in by_employee.get(owner.id, []):
                hierarchical = HierarchicalEntry.calculate(entry, owner, manager, level)
                if hierarchical.has_manager_provision:
                    result.append(hierarchical)
        return result

    def generate_reports(
        self, employee_ids: Sequence[str], period: ReportPeriod, **options
    ) -> list[BillingReport]:
        """Generate one report per employee with shared options."""
        return [self.generate_report(employee_id, period, **options) for employee_id in employee_ids]


class BillingFinalizationService:
    """Marks billed entries as provisioned once a report has been issued.

    Only the employee's own entries are finalized; hierarchy and tip-provider
    entries belong to other employees. Entries already provisioned are
    skipped, so finalizing a report twice changes nothing.
    """

    def submitted_entry_ids(self, report: BillingReport) -> list[str]:
        """IDs of own line items still waiting to be provisioned."""
        return [
            item.original_entry_id
            for item in report.own_line_items
            if item.status == EntryStatus.SUBMITTED.value
        ]

    def finalize(self, report: BillingReport, entries: Iterable[RevenueEntry]) -> list[RevenueEntry]:
        """Return ``entries`` with the report's submitted own entries provisioned."""
        to_finalize = set(self.submitted_entry_ids(report))
        result = [
            replace(e, status=EntryStatus.PROVISIONED)
            if e.id in to_finalize and e.status == EntryStatus.SUBMITTED
            else e
            for e in entries
        ]
        if to_finalize:
            logger.info(
                "Finalized %d entries (submitted -> provisioned) for report %s",
                len(to_finalize),
                report.metadata.report_number,
            )
        return result

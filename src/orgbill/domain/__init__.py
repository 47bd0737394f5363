"""Domain layer for orgbill application."""

from orgbill.domain.hierarchy import HierarchyService
from orgbill.domain.billing import BillingFinalizationService, BillingReportService

__all__ = [
    "HierarchyService",
    "BillingReportService",
    "BillingFinalizationService",
]

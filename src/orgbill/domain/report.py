"""Billing report aggregate and its parts."""

import random
import uuid
from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from orgbill.domain.errors import ValidationError
from orgbill.domain.period import ReportPeriod
from orgbill.domain.revenue import normalize_category
from orgbill.domain.summary import ProvisionSummary
from orgbill.domain.validation import to_decimal
from orgbill.utils.currency import ZERO, round_currency
from orgbill.utils.date_parser import to_datetime

REPORT_VERSION = "1.0"


class LineItemSource(str, Enum):
    """Where a line item's commission comes from."""

    OWN = "own"
    HIERARCHY = "hierarchy"
    TIP_PROVIDER = "tip_provider"

    @property
    def label(self) -> str:
        return {
            LineItemSource.OWN: "Own revenue",
            LineItemSource.HIERARCHY: "Team revenue",
            LineItemSource.TIP_PROVIDER: "Tip provider revenue",
        }[self]


_LINE_ITEM_AMOUNTS = (
    "net_amount",
    "vat_amount",
    "gross_amount",
    "provision_amount",
    "provision_vat_amount",
)


@dataclass(frozen=True)
class ReportLineItem:
    """Commission facts for one billed entry.

    ``provision_amount`` is the gross commission; ``provision_net_amount``
    strips the extracted VAT back out.
    """

    original_entry_id: str
    date: datetime
    source: LineItemSource = LineItemSource.OWN
    customer_name: str = ""
    customer_address: str = ""
    category_type: str = ""
    category_display_name: str = ""
    product_name: str = ""
    provider_name: str = ""
    contract_number: str = ""
    net_amount: Decimal = ZERO
    vat_rate: Decimal = ZERO
    vat_amount: Decimal = ZERO
    gross_amount: Decimal = ZERO
    provision_percentage: Decimal = ZERO
    provision_amount: Decimal = ZERO
    provision_vat_rate: Decimal = ZERO
    provision_vat_amount: Decimal = ZERO
    provision_gross_amount: Optional[Decimal] = None
    subordinate_name: Optional[str] = None
    subordinate_id: Optional[str] = None
    status: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self):
        try:
            object.__setattr__(self, "date", to_datetime(self.date))
        except ValueError as e:
            raise ValidationError(str(e), "date")
        try:
            object.__setattr__(self, "source", LineItemSource(self.source))
        except ValueError:
            raise ValidationError(f"Invalid line item source: {self.source}", "source")
        for name in _LINE_ITEM_AMOUNTS:
            value = to_decimal(getattr(self, name), name, ZERO)
            object.__setattr__(self, name, round_currency(value))
        for name in ("vat_rate", "provision_percentage", "provision_vat_rate"):
            object.__setattr__(self, name, to_decimal(getattr(self, name), name, ZERO))
        if self.provision_gross_amount is None:
            object.__setattr__(self, "provision_gross_amount", self.provision_amount)
        else:
            gross = to_decimal(self.provision_gross_amount, "provision_gross_amount")
            object.__setattr__(self, "provision_gross_amount", round_currency(gross))

    @property
    def provision_net_amount(self) -> Decimal:
        return round_currency(self.provision_amount - self.provision_vat_amount)

    @property
    def date_formatted(self) -> str:
        return self.date.strftime("%d.%m.%Y")

    @property
    def has_vat(self) -> bool:
        return self.vat_rate > 0 and self.vat_amount > 0

    @property
    def has_provision_vat(self) -> bool:
        return self.provision_vat_rate > 0 and self.provision_vat_amount > 0

    @property
    def is_own_revenue(self) -> bool:
        return self.source == LineItemSource.OWN

    @property
    def is_hierarchy_revenue(self) -> bool:
        return self.source == LineItemSource.HIERARCHY

    @property
    def is_tip_provider_revenue(self) -> bool:
        return self.source == LineItemSource.TIP_PROVIDER

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Decimal):
                value = str(value)
            elif isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, Enum):
                value = value.value
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReportLineItem":
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


@dataclass(frozen=True)
class EmployeeDetails:
    """Snapshot of the employee a report is generated for."""

    id: str
    name: str
    email: str = ""
    phone: str = ""
    street: str = ""
    house_number: str = ""
    postal_code: str = ""
    city: str = ""
    iban: str = ""
    bic: str = ""
    bank_name: str = ""
    account_holder: str = ""
    tax_number: str = ""
    vat_number: str = ""
    tax_office: str = ""
    is_small_business: bool = False
    has_direct_payment_registration: bool = False
    career_level_name: str = ""
    bank_provision: Decimal = ZERO
    insurance_provision: Decimal = ZERO
    real_estate_provision: Decimal = ZERO

    def __post_init__(self):
        if not self.id:
            raise ValidationError("Employee ID is required", "id")
        for name in ("bank_provision", "insurance_provision", "real_estate_provision"):
            object.__setattr__(self, name, to_decimal(getattr(self, name), name, ZERO))

    def provision_rate(self, bucket: str) -> Decimal:
        return {
            "bank": self.bank_provision,
            "insurance": self.insurance_provision,
            "real_estate": self.real_estate_provision,
        }.get(normalize_category(bucket), ZERO)

    @property
    def street_line(self) -> str:
        if self.street and self.house_number:
            return f"{self.street} {self.house_number}"
        return self.street

    @property
    def city_line(self) -> str:
        if self.postal_code and self.city:
            return f"{self.postal_code} {self.city}"
        return self.city

    @property
    def has_address(self) -> bool:
        return bool(self.street and self.postal_code and self.city)

    @property
    def iban_formatted(self) -> str:
        """IBAN in groups of four, e.g. 'DE89 3704 0044 0532 0130 00'."""
        iban = self.iban.replace(" ", "")
        return " ".join(iban[i : i + 4] for i in range(0, len(iban), 4))

    @property
    def has_bank_info(self) -> bool:
        return bool(self.iban and self.bic and self.bank_name)

    @property
    def has_tax_info(self) -> bool:
        return bool(self.tax_number)

    @classmethod
    def from_node(cls, node: Any, **details: Any) -> "EmployeeDetails":
        """Build a snapshot from a hierarchy node; ``details`` fills the remaining fields.

        Keys of ``details`` that are not snapshot fields are ignored, as are
        ``id`` and the rates, which always come from the node.
        """
        fixed = {"id", "name", "bank_provision", "insurance_provision", "real_estate_provision"}
        known = {f.name for f in fields(cls)} - fixed
        details = {key: value for key, value in details.items() if key in known}
        return cls(
            id=node.id,
            name=node.name,
            email=details.pop("email", node.email or ""),
            phone=details.pop("phone", node.phone or ""),
            bank_provision=node.bank_provision,
            insurance_provision=node.insurance_provision,
            real_estate_provision=node.real_estate_provision,
            **details,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            f.name: str(getattr(self, f.name))
            if isinstance(getattr(self, f.name), Decimal)
            else getattr(self, f.name)
            for f in fields(self)
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EmployeeDetails":
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


def _generate_report_number(now: datetime) -> str:
    return f"{now.year}-{now.month:02d}-{random.randint(0, 999):03d}"


@dataclass(frozen=True)
class ReportMetadata:
    """Who generated a report, and when."""

    report_number: Optional[str] = None
    generated_at: Optional[datetime] = None
    generated_by: Optional[str] = None
    generated_by_name: Optional[str] = None
    version: str = REPORT_VERSION

    def __post_init__(self):
        if self.generated_at is None:
            object.__setattr__(self, "generated_at", datetime.now(UTC))
        elif not isinstance(self.generated_at, datetime) or self.generated_at.tzinfo is None:
            try:
                moment = to_datetime(self.generated_at)
            except ValueError as e:
                raise ValidationError(str(e), "generated_at")
            object.__setattr__(self, "generated_at", moment.replace(tzinfo=UTC))
        if not self.report_number:
            object.__setattr__(self, "report_number", _generate_report_number(self.generated_at))

    @property
    def generated_at_formatted(self) -> str:
        return self.generated_at.strftime("%d.%m.%Y %H:%M")

    @property
    def generated_at_date_only(self) -> str:
        return self.generated_at.strftime("%d.%m.%Y")

    def to_dict(self) -> dict[str, Any]:
        return {
            "report_number": self.report_number,
            "generated_at": self.generated_at.isoformat(),
            "generated_by": self.generated_by,
            "generated_by_name": self.generated_by_name,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "ReportMetadata":
        if not data:
            return cls()
        return cls(
            report_number=data.get("report_number"),
            generated_at=data.get("generated_at"),
            generated_by=data.get("generated_by"),
            generated_by_name=data.get("generated_by_name"),
            version=data.get("version") or REPORT_VERSION,
        )

    @classmethod
    def create(
        cls, generated_by: Optional[str] = None, generated_by_name: Optional[str] = None
    ) -> "ReportMetadata":
        return cls(generated_by=generated_by, generated_by_name=generated_by_name)


class BillingReport:
    """Commission statement for one employee over one period.

    Line items are grouped by source; each group carries its own summary and
    the total summary is their sum. Accessors return copies of the item lists.
    """

    def __init__(
        self,
        employee: EmployeeDetails,
        period: ReportPeriod,
        metadata: Optional[ReportMetadata] = None,
        own_line_items: Optional[list[ReportLineItem]] = None,
        hierarchy_line_items: Optional[list[ReportLineItem]] = None,
        tip_provider_line_items: Optional[list[ReportLineItem]] = None,
        excluded_entry_count: int = 0,
        id: Optional[str] = None,
    ):
        self._id = id or str(uuid.uuid4())
        self._employee = employee
        self._period = period
        self._metadata = metadata or ReportMetadata()
        self._line_items = {
            LineItemSource.OWN: list(own_line_items or []),
            LineItemSource.HIERARCHY: list(hierarchy_line_items or []),
            LineItemSource.TIP_PROVIDER: list(tip_provider_line_items or []),
        }
        self._summaries = {
            source: ProvisionSummary.from_line_items(items)
            for source, items in self._line_items.items()
        }
        self._excluded_entry_count = excluded_entry_count

    def __repr__(self) -> str:
        return (
            f"BillingReport(employee={self._employee.name!r}, "
            f"period={self._period.display_name!r}, items={self.total_line_item_count})"
        )

    @property
    def id(self) -> str:
        return self._id

    @property
    def employee(self) -> EmployeeDetails:
        return self._employee

    @property
    def period(self) -> ReportPeriod:
        return self._period

    @property
    def metadata(self) -> ReportMetadata:
        return self._metadata

    @property
    def own_line_items(self) -> list[ReportLineItem]:
        return list(self._line_items[LineItemSource.OWN])

    @property
    def hierarchy_line_items(self) -> list[ReportLineItem]:
        return list(self._line_items[LineItemSource.HIERARCHY])

    @property
    def tip_provider_line_items(self) -> list[ReportLineItem]:
        return list(self._line_items[LineItemSource.TIP_PROVIDER])

    @property
    def own_summary(self) -> ProvisionSummary:
        return self._summaries[LineItemSource.OWN]

    @property
    def hierarchy_summary(self) -> ProvisionSummary:
        return self._summaries[LineItemSource.HIERARCHY]

    @property
    def tip_provider_summary(self) -> ProvisionSummary:
        return self._summaries[LineItemSource.TIP_PROVIDER]

    @property
    def total_summary(self) -> ProvisionSummary:
        return self.own_summary.add(self.hierarchy_summary).add(self.tip_provider_summary)

    @property
    def all_line_items(self) -> list[ReportLineItem]:
        return [item for items in self._line_items.values() for item in items]

    @property
    def total_line_item_count(self) -> int:
        return sum(len(items) for items in self._line_items.values())

    @property
    def is_small_business(self) -> bool:
        return self._employee.is_small_business

    @property
    def is_empty(self) -> bool:
        return self.total_line_item_count == 0

    @property
    def own_entry_ids(self) -> list[str]:
        return [item.original_entry_id for item in self._line_items[LineItemSource.OWN]]

    @property
    def excluded_entry_count(self) -> int:
        return self._excluded_entry_count

    @property
    def has_excluded_entries(self) -> bool:
        return self._excluded_entry_count > 0

    def line_items_by_source(self, source: Any) -> list[ReportLineItem]:
        try:
            return list(self._line_items[LineItemSource(source)])
        except ValueError:
            return []

    def summary_by_source(self, source: Any) -> ProvisionSummary:
        try:
            return self._summaries[LineItemSource(source)]
        except ValueError:
            return ProvisionSummary()

    def line_items_by_category(self, category_type: str) -> list[ReportLineItem]:
        category_type = normalize_category(category_type)
        return [item for item in self.all_line_items if item.category_type == category_type]

    def line_items_sorted_by_date(self, ascending: bool = True) -> list[ReportLineItem]:
        return sorted(self.all_line_items, key=lambda item: item.date, reverse=not ascending)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self._id,
            "employee": self._employee.to_dict(),
            "period": self._period.to_dict(),
            "metadata": self._metadata.to_dict(),
            "own_line_items": [item.to_dict() for item in self.own_line_items],
            "hierarchy_line_items": [item.to_dict() for item in self.hierarchy_line_items],
            "tip_provider_line_items": [item.to_dict() for item in self.tip_provider_line_items],
            "own_summary": self.own_summary.to_dict(),
            "hierarchy_summary": self.hierarchy_summary.to_dict(),
            "tip_provider_summary": self.tip_provider_summary.to_dict(),
            "total_summary": self.total_summary.to_dict(),
            "excluded_entry_count": self._excluded_entry_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BillingReport":
        """Rebuild a report; summaries are recomputed from the line items."""
        return cls(
            id=data.get("id"),
            employee=EmployeeDetails.from_dict(data["employee"]),
            period=ReportPeriod.from_dict(data["period"]),
            metadata=ReportMetadata.from_dict(data.get("metadata")),
            own_line_items=[
                ReportLineItem.from_dict(item) for item in data.get("own_line_items") or []
            ],
            hierarchy_line_items=[
                ReportLineItem.from_dict(item) for item in data.get("hierarchy_line_items") or []
            ],
            tip_provider_line_items=[
                ReportLineItem.from_dict(item)
                for item in data.get("tip_provider_line_items") or []
            ],
            excluded_entry_count=int(data.get("excluded_entry_count") or 0),
        )

    @classmethod
    def create(
        cls,
        employee: EmployeeDetails,
        period: ReportPeriod,
        own_line_items: Optional[list[ReportLineItem]] = None,
        hierarchy_line_items: Optional[list[ReportLineItem]] = None,
        tip_provider_line_items: Optional[list[ReportLineItem]] = None,
        excluded_entry_count: int = 0,
        generated_by: Optional[str] = None,
        generated_by_name: Optional[str] = None,
    ) -> "BillingReport":
        return cls(
            employee=employee,
            period=period,
            metadata=ReportMetadata.create(generated_by, generated_by_name),
            own_line_items=own_line_items,
            hierarchy_line_items=hierarchy_line_items,
            tip_provider_line_items=tip_provider_line_items,
            excluded_entry_count=excluded_entry_count,
        )

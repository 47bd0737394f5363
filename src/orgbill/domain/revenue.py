"""Commission-eligible transaction records.

A ``RevenueEntry`` is one brokered contract an employee booked. Amounts are
net commission amounts; VAT and gross are derived from the entry's VAT flag.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Protocol

from orgbill.domain.constants import DEFAULT_VAT_RATE
from orgbill.domain.errors import ValidationError
from orgbill.domain.validation import to_decimal, to_percentage
from orgbill.utils.currency import percentage_of, round_currency
from orgbill.utils.date_parser import to_datetime


class EntryStatus(str, Enum):
    """Approval status of a revenue entry."""

    SUBMITTED = "submitted"
    PROVISIONED = "provisioned"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    @property
    def is_excluded_from_calculations(self) -> bool:
        return self in (EntryStatus.REJECTED, EntryStatus.CANCELLED)


# Category type -> commission bucket used to pick an employee's rate.
CATEGORY_TO_BUCKET = {
    "bank": "bank",
    "insurance": "insurance",
    "real_estate": "real_estate",
    "property_management": "real_estate",
    "energy_contracts": "bank",
}


_CATEGORY_ALIASES = {
    "realEstate": "real_estate",
    "propertyManagement": "property_management",
    "energyContracts": "energy_contracts",
}


def normalize_category(category_type: Optional[str]) -> Optional[str]:
    """Map camelCase category names from exported data onto snake_case."""
    if category_type is None:
        return None
    category_type = category_type.strip()
    return _CATEGORY_ALIASES.get(category_type, category_type)


def infer_bucket(category_type: Optional[str]) -> str:
    """Return the commission bucket for a category, defaulting to 'bank'."""
    return CATEGORY_TO_BUCKET.get(normalize_category(category_type) or "", "bank")


@dataclass(frozen=True)
class CustomerAddress:
    """Postal address of the customer."""

    street: str = ""
    house_number: str = ""
    postal_code: str = ""
    city: str = ""

    def format(self) -> str:
        """Return 'Street 1, 12345 City' (parts omitted when empty)."""
        parts = []
        if self.street:
            parts.append(f"{self.street} {self.house_number}" if self.house_number else self.street)
        if self.postal_code or self.city:
            parts.append(f"{self.postal_code} {self.city}".strip())
        return ", ".join(parts)

    def to_dict(self) -> dict[str, str]:
        return {
            "street": self.street,
            "house_number": self.house_number,
            "postal_code": self.postal_code,
            "city": self.city,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "CustomerAddress":
        if isinstance(data, cls):
            return data
        if isinstance(data, str):
            return cls(street=data)
        data = data or {}
        return cls(
            street=data.get("street") or "",
            house_number=str(data.get("house_number") or ""),
            postal_code=str(data.get("postal_code") or ""),
            city=data.get("city") or "",
        )


@dataclass(frozen=True)
class TipProviderAllocation:
    """A referrer's share of the commission on one entry."""

    id: str
    name: str
    provision_percentage: Decimal

    def __post_init__(self):
        if not self.id:
            raise ValidationError("Tip provider ID is required", "tip_provider_id")
        if not self.name:
            raise ValidationError("Tip provider name is required", "tip_provider_name")
        object.__setattr__(
            self,
            "provision_percentage",
            to_percentage(self.provision_percentage, "tip_provider_provision_percentage"),
        )

    def calculate_amount(self, base_amount: Decimal) -> Decimal:
        """Return this provider's amount over ``base_amount``, rounded to cents."""
        return percentage_of(base_amount, self.provision_percentage)

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "name": self.name,
            "provision_percentage": str(self.provision_percentage),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TipProviderAllocation":
        return cls(
            id=data.get("id"),
            name=data.get("name"),
            provision_percentage=data.get("provision_percentage"),
        )


@dataclass(frozen=True)
class RevenueEntry:
    """One commission-eligible transaction."""

    id: str
    employee_id: str
    entry_date: datetime
    provision_amount: Decimal
    category_type: str = "bank"
    category_display_name: str = ""
    customer_name: str = ""
    customer_address: CustomerAddress = field(default_factory=CustomerAddress)
    product_name: str = ""
    provider_name: str = ""
    property_address: Optional[str] = None
    contract_number: str = ""
    status: EntryStatus = EntryStatus.SUBMITTED
    has_vat: bool = False
    vat_rate: Decimal = DEFAULT_VAT_RATE
    source: Optional[str] = None
    manual_billing: bool = False
    provision_type: Optional[str] = None
    owner_provision_snapshot: Optional[Decimal] = None
    hierarchy_snapshot: Optional[dict[str, Any]] = None
    tip_providers: tuple[TipProviderAllocation, ...] = ()

    def __post_init__(self):
        if not self.id:
            raise ValidationError("Entry ID is required", "id")
        if not self.employee_id:
            raise ValidationError("Employee ID is required", "employee_id")
        try:
            object.__setattr__(self, "entry_date", to_datetime(self.entry_date))
        except ValueError as e:
            raise ValidationError(str(e), "entry_date")
        object.__setattr__(
            self, "provision_amount", to_decimal(self.provision_amount, "provision_amount")
        )
        object.__setattr__(
            self,
            "vat_rate",
            to_percentage(
                DEFAULT_VAT_RATE if self.vat_rate is None else self.vat_rate, "vat_rate"
            ),
        )
        try:
            object.__setattr__(self, "status", EntryStatus(self.status or "submitted"))
        except ValueError:
            raise ValidationError(f"Invalid status type: {self.status}", "status")
        object.__setattr__(self, "category_type", normalize_category(self.category_type) or "bank")
        if self.owner_provision_snapshot is not None:
            object.__setattr__(
                self,
                "owner_provision_snapshot",
                to_decimal(self.owner_provision_snapshot, "owner_provision_snapshot"),
            )
        object.__setattr__(self, "customer_address", CustomerAddress.from_dict(self.customer_address))
        object.__setattr__(self, "tip_providers", tuple(self.tip_providers))
        self._validate_tip_providers()

    def _validate_tip_providers(self) -> None:
        seen: set[str] = set()
        for tp in self.tip_providers:
            if tp.id == self.employee_id:
                raise ValidationError(
                    "Tip provider cannot be the same as the entry owner", "tip_provider_id"
                )
            if tp.id in seen:
                raise ValidationError(f"Duplicate tip provider ID: {tp.id}", "tip_providers")
            seen.add(tp.id)
        total = self.total_tip_provider_percentage
        if total > 100:
            raise ValidationError(
                f"Total tip provider provision ({total}%) exceeds 100%", "tip_providers"
            )

    @property
    def bucket(self) -> str:
        """Commission bucket: explicit provision type, else inferred from the category."""
        return normalize_category(self.provision_type) or infer_bucket(self.category_type)

    @property
    def net_amount(self) -> Decimal:
        return self.provision_amount

    @property
    def vat_amount(self) -> Decimal:
        if not self.has_vat:
            return Decimal("0")
        return percentage_of(self.provision_amount, self.vat_rate)

    @property
    def gross_amount(self) -> Decimal:
        if not self.has_vat:
            return self.provision_amount
        return round_currency(self.provision_amount + self.vat_amount)

    @property
    def has_provision_snapshot(self) -> bool:
        return self.owner_provision_snapshot is not None

    @property
    def tip_provider_ids(self) -> list[str]:
        return [tp.id for tp in self.tip_providers]

    @property
    def has_tip_provider(self) -> bool:
        return len(self.tip_providers) > 0

    @property
    def total_tip_provider_percentage(self) -> Decimal:
        return sum((tp.provision_percentage for tp in self.tip_providers), Decimal("0"))

    @property
    def tip_provider_provision_amount(self) -> Decimal:
        return sum(
            (tp.calculate_amount(self.gross_amount) for tp in self.tip_providers),
            Decimal("0"),
        )

    @property
    def owner_name(self) -> Optional[str]:
        if self.hierarchy_snapshot:
            return self.hierarchy_snapshot.get("owner_name")
        return None

    def find_tip_provider(self, tip_provider_id: str) -> Optional[TipProviderAllocation]:
        return next((tp for tp in self.tip_providers if tp.id == tip_provider_id), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "entry_date": self.entry_date.isoformat(),
            "provision_amount": str(self.provision_amount),
            "category_type": self.category_type,
            "category_display_name": self.category_display_name,
            "customer_name": self.customer_name,
            "customer_address": self.customer_address.to_dict(),
            "product_name": self.product_name,
            "provider_name": self.provider_name,
            "property_address": self.property_address,
            "contract_number": self.contract_number,
            "status": self.status.value,
            "has_vat": self.has_vat,
            "vat_rate": str(self.vat_rate),
            "source": self.source,
            "manual_billing": self.manual_billing,
            "provision_type": self.provision_type,
            "owner_provision_snapshot": (
                str(self.owner_provision_snapshot)
                if self.owner_provision_snapshot is not None
                else None
            ),
            "hierarchy_snapshot": dict(self.hierarchy_snapshot) if self.hierarchy_snapshot else None,
            "tip_providers": [tp.to_dict() for tp in self.tip_providers],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RevenueEntry":
        """Build an entry from plain data.

        ``category`` and ``product``/``product_provider`` may be given either as
        strings or as {"type"/"name": ...} mappings.
        """
        category = data.get("category", data.get("category_type"))
        if isinstance(category, dict):
            category_type = category.get("type")
            category_display_name = category.get("display_name") or ""
        else:
            category_type = category
            category_display_name = data.get("category_display_name") or ""

        product = data.get("product", data.get("product_name"))
        if isinstance(product, dict):
            product = product.get("name")
        provider = data.get("product_provider", data.get("provider_name"))
        if isinstance(provider, dict):
            provider = provider.get("name")

        return cls(
            id=data.get("id"),
            employee_id=data.get("employee_id"),
            entry_date=data.get("entry_date") or data.get("created_at"),
            provision_amount=data.get("provision_amount"),
            category_type=normalize_category(category_type) or "bank",
            category_display_name=category_display_name,
            customer_name=data.get("customer_name") or "",
            customer_address=CustomerAddress.from_dict(data.get("customer_address")),
            product_name=product or "",
            provider_name=provider or "",
            property_address=data.get("property_address"),
            contract_number=data.get("contract_number") or "",
            status=data.get("status") or EntryStatus.SUBMITTED,
            has_vat=bool(data.get("has_vat", False)),
            vat_rate=data.get("vat_rate"),
            source=data.get("source"),
            manual_billing=bool(data.get("manual_billing", False)),
            provision_type=data.get("provision_type"),
            owner_provision_snapshot=data.get("owner_provision_snapshot"),
            hierarchy_snapshot=data.get("hierarchy_snapshot"),
            tip_providers=tuple(
                TipProviderAllocation.from_dict(tp) for tp in data.get("tip_providers") or []
            ),
        )


class ProvisionHolder(Protocol):
    """Anything with an id, a name and per-bucket rates (nodes, employee snapshots)."""

    id: str
    name: str

    def provision_rate(self, bucket: str) -> Decimal: ...


def category_rate(holder: ProvisionHolder, category_type: Optional[str]) -> Decimal:
    """Rate a holder earns on a category; energy contracts never pay up the hierarchy."""
    category_type = normalize_category(category_type)
    if category_type in ("bank", "insurance", "real_estate"):
        return holder.provision_rate(category_type)
    if category_type == "property_management":
        return holder.provision_rate("real_estate")
    return Decimal("0")


@dataclass(frozen=True)
class HierarchicalEntry:
    """A subordinate's entry as seen by a manager further up the tree."""

    original_entry: RevenueEntry
    owner_id: str
    owner_name: str
    manager_id: str
    manager_provision_percentage: Decimal
    owner_provision_percentage: Decimal
    manager_provision_amount: Decimal
    owner_provision_amount: Decimal
    hierarchy_level: int

    @property
    def status(self) -> EntryStatus:
        return self.original_entry.status

    @property
    def has_manager_provision(self) -> bool:
        return self.manager_provision_amount > 0

    @property
    def provision_difference_percentage(self) -> Decimal:
        return self.manager_provision_percentage - self.owner_provision_percentage

    @classmethod
    def calculate(
        cls,
        entry: RevenueEntry,
        owner: ProvisionHolder,
        manager: ProvisionHolder,
        hierarchy_level: int,
    ) -> "HierarchicalEntry":
        """Derive the manager's override on a subordinate's entry.

        The manager earns the difference between their own rate and the
        owner's rate for the entry's category, applied to the entry's
        provision amount; a non-positive difference earns nothing.
        """
        owner_rate = category_rate(owner, entry.category_type)
        manager_rate = category_rate(manager, entry.category_type)
        difference = manager_rate - owner_rate
        manager_amount = (
            percentage_of(entry.provision_amount, difference) if difference > 0 else Decimal("0")
        )
        return cls(
            original_entry=entry,
            owner_id=owner.id,
            owner_name=owner.name,
            manager_id=manager.id,
            manager_provision_percentage=manager_rate,
            owner_provision_percentage=owner_rate,
            manager_provision_amount=manager_amount,
            owner_provision_amount=percentage_of(entry.provision_amount, owner_rate),
            hierarchy_level=hierarchy_level,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "original_entry": self.original_entry.to_dict(),
            "owner_id": self.owner_id,
            "owner_name": self.owner_name,
            "manager_id": self.manager_id,
            "manager_provision_percentage": str(self.manager_provision_percentage),
            "owner_provision_percentage": str(self.owner_provision_percentage),
            "manager_provision_amount": str(self.manager_provision_amount),
            "owner_provision_amount": str(self.owner_provision_amount),
            "hierarchy_level": self.hierarchy_level,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HierarchicalEntry":
        return cls(
            original_entry=RevenueEntry.from_dict(data["original_entry"]),
            owner_id=data.get("owner_id") or "",
            owner_name=data.get("owner_name") or "",
            manager_id=data.get("manager_id") or "",
            manager_provision_percentage=to_decimal(
                data.get("manager_provision_percentage"), "manager_provision_percentage", Decimal("0")
            ),
            owner_provision_percentage=to_decimal(
                data.get("owner_provision_percentage"), "owner_provision_percentage", Decimal("0")
            ),
            manager_provision_amount=to_decimal(
                data.get("manager_provision_amount"), "manager_provision_amount", Decimal("0")
            ),
            owner_provision_amount=to_decimal(
                data.get("owner_provision_amount"), "owner_provision_amount", Decimal("0")
            ),
            hierarchy_level=int(data.get("hierarchy_level") or 1),
        )

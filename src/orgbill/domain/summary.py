"""Provision totals for a set of report line items."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable

from orgbill.domain.validation import to_decimal
from orgbill.utils.currency import ZERO, round_currency

AMOUNT_FIELDS = (
    "total_net",
    "total_vat",
    "total_gross",
    "total_provision",
    "total_provision_vat",
    "total_provision_gross",
)


def _empty_bucket() -> dict[str, Any]:
    return {"count": 0, "net": ZERO, "provision": ZERO}


def _merge_breakdowns(*breakdowns: dict[str, dict[str, Any]]) -> dict[str, dict[str, Any]]:
    merged: dict[str, dict[str, Any]] = {}
    for breakdown in breakdowns:
        for category, data in breakdown.items():
            bucket = merged.setdefault(category, _empty_bucket())
            bucket["count"] += data["count"]
            bucket["net"] += data["net"]
            bucket["provision"] += data["provision"]
    return merged


@dataclass(frozen=True)
class ProvisionSummary:
    """Aggregated amounts of a report section.

    ``add`` sums every field as-is. Components are already rounded per line
    item and are never re-derived from each other, so addition stays
    associative and commutative.
    """

    entry_count: int = 0
    total_net: Decimal = ZERO
    total_vat: Decimal = ZERO
    total_gross: Decimal = ZERO
    total_provision: Decimal = ZERO
    total_provision_vat: Decimal = ZERO
    total_provision_gross: Decimal = ZERO
    category_breakdown: dict[str, dict[str, Any]] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "category_breakdown", _merge_breakdowns(self.category_breakdown))

    def get_category_breakdown(self) -> dict[str, dict[str, Any]]:
        """Return a copy of the per-category totals."""
        return _merge_breakdowns(self.category_breakdown)

    @property
    def total_provision_net(self) -> Decimal:
        return round_currency(self.total_provision - self.total_provision_vat)

    @property
    def is_empty(self) -> bool:
        return self.entry_count == 0

    @property
    def average_provision_per_entry(self) -> Decimal:
        if self.entry_count == 0:
            return ZERO
        return round_currency(self.total_provision / self.entry_count)

    @property
    def effective_provision_rate(self) -> Decimal:
        """Total provision as a percentage of total net revenue."""
        if self.total_net == 0:
            return ZERO
        return round_currency(self.total_provision / self.total_net * 100)

    def add(self, other: "ProvisionSummary") -> "ProvisionSummary":
        return ProvisionSummary(
            entry_count=self.entry_count + other.entry_count,
            category_breakdown=_merge_breakdowns(
                self.category_breakdown, other.category_breakdown
            ),
            **{name: getattr(self, name) + getattr(other, name) for name in AMOUNT_FIELDS},
        )

    __add__ = add

    @classmethod
    def from_line_items(cls, line_items: Iterable[Any]) -> "ProvisionSummary":
        """Total a sequence of line items.

        The provision amount of a line item is its gross provision, so it
        feeds both ``total_provision`` and ``total_provision_gross``.
        """
        totals = {name: ZERO for name in AMOUNT_FIELDS}
        breakdown: dict[str, dict[str, Any]] = {}
        count = 0
        for item in line_items:
            count += 1
            totals["total_net"] += item.net_amount
            totals["total_vat"] += item.vat_amount
            totals["total_gross"] += item.gross_amount
            totals["total_provision"] += item.provision_amount
            totals["total_provision_vat"] += item.provision_vat_amount
            totals["total_provision_gross"] += item.provision_amount

            bucket = breakdown.setdefault(item.category_type or "other", _empty_bucket())
            bucket["count"] += 1
            bucket["net"] += item.net_amount
            bucket["provision"] += item.provision_amount
        return cls(entry_count=count, category_breakdown=breakdown, **totals)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"entry_count": self.entry_count}
        data.update({name: str(getattr(self, name)) for name in AMOUNT_FIELDS})
        data["category_breakdown"] = {
            category: {
                "count": bucket["count"],
                "net": str(bucket["net"]),
                "provision": str(bucket["provision"]),
            }
            for category, bucket in self.category_breakdown.items()
        }
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "ProvisionSummary":
        if not data:
            return cls()
        breakdown = {
            category: {
                "count": int(bucket.get("count") or 0),
                "net": to_decimal(bucket.get("net"), "net", ZERO),
                "provision": to_decimal(bucket.get("provision"), "provision", ZERO),
            }
            for category, bucket in (data.get("category_breakdown") or {}).items()
        }
        return cls(
            entry_count=int(data.get("entry_count") or 0),
            category_breakdown=breakdown,
            **{name: to_decimal(data.get(name), name, ZERO) for name in AMOUNT_FIELDS},
        )

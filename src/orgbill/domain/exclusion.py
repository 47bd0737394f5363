"""Rules deciding which entries appear on a billing report.

Rules are checked in order and the first match wins:

1. Entries from the bulk-import channel are always excluded; the product
   provider pays the partner directly.
2. Insurance entries are always excluded for the same reason.
3. For employees holding a direct-payment trade registration, everything
   else is excluded unless the (category, product) pair is whitelisted.

Entries flagged for manual billing bypass all three rules.
"""

from dataclasses import dataclass
from typing import Any, Optional

from orgbill.domain.constants import ALWAYS_EXCLUDED_CATEGORY, BULK_IMPORT_SOURCE
from orgbill.domain.revenue import normalize_category

# (category, product) pairs still billed when rule 3 applies.
BILLING_INCLUSIONS = (("bank", "gewerbekredit"),)


def _normalize_product(name: Optional[str]) -> str:
    return (name or "").strip().lower()


@dataclass(frozen=True)
class EntryData:
    """The fields of an entry the exclusion rules look at."""

    category_type: Optional[str]
    product_name: Optional[str]
    source: Optional[str]
    manual_billing: bool


def is_included(category_type: Optional[str], product_name: Optional[str]) -> bool:
    """Return True if the pair is whitelisted despite rule 3."""
    product = _normalize_product(product_name)
    category = normalize_category(category_type)
    return any(category == c and product == p for c, p in BILLING_INCLUSIONS)


def should_exclude(
    category_type: Optional[str],
    product_name: Optional[str],
    has_direct_payment_registration: bool = False,
    source: Optional[str] = None,
) -> bool:
    """Return True if an entry with these attributes must not be billed."""
    if source == BULK_IMPORT_SOURCE:
        return True

    category = normalize_category(category_type)
    if category == ALWAYS_EXCLUDED_CATEGORY:
        return True

    if not category or not has_direct_payment_registration:
        return False
    return not is_included(category, product_name)


def extract_entry_data(entry: Any) -> EntryData:
    """Pull the rule inputs out of a revenue entry or a hierarchical view of one."""
    source_entry = getattr(entry, "original_entry", None) or entry
    return EntryData(
        category_type=source_entry.category_type,
        product_name=source_entry.product_name,
        source=source_entry.source,
        manual_billing=bool(source_entry.manual_billing),
    )


def should_exclude_entry(entry: Any, has_direct_payment_registration: bool = False) -> bool:
    data = extract_entry_data(entry)
    if data.manual_billing:
        return False
    return should_exclude(
        data.category_type,
        data.product_name,
        has_direct_payment_registration,
        data.source,
    )

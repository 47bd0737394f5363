"""Domain-wide constants."""

from decimal import Decimal

DEFAULT_MAX_DEPTH = 10
DEFAULT_VAT_RATE = Decimal("19")

# Entries imported through this channel are paid to the partner directly.
BULK_IMPORT_SOURCE = "wifo_import"

# Category that is never billed (provider pays the partner directly).
ALWAYS_EXCLUDED_CATEGORY = "insurance"

UNKNOWN_OWNER = "Unknown"

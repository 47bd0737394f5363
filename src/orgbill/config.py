"""Runtime settings for orgbill."""

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

from orgbill.domain.constants import DEFAULT_MAX_DEPTH, DEFAULT_VAT_RATE
from orgbill.domain.errors import ValidationError


@dataclass(frozen=True)
class Settings:
    """Settings shared by the CLI and the services."""

    max_depth: int = DEFAULT_MAX_DEPTH
    default_vat_rate: Decimal = DEFAULT_VAT_RATE
    database_path: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from ORGBILL_* environment variables.

        Raises:
            ValidationError: If a variable holds a malformed value
        """
        max_depth = DEFAULT_MAX_DEPTH
        raw_depth = os.environ.get("ORGBILL_MAX_DEPTH")
        if raw_depth:
            try:
                max_depth = int(raw_depth)
            except ValueError:
                raise ValidationError(
                    f"ORGBILL_MAX_DEPTH must be an integer, got '{raw_depth}'",
                    "ORGBILL_MAX_DEPTH",
                )
            if max_depth < 1:
                raise ValidationError(
                    "ORGBILL_MAX_DEPTH must be at least 1", "ORGBILL_MAX_DEPTH"
                )

        vat_rate = DEFAULT_VAT_RATE
        raw_vat = os.environ.get("ORGBILL_DEFAULT_VAT_RATE")
        if raw_vat:
            try:
                vat_rate = Decimal(raw_vat)
            except InvalidOperation:
                raise ValidationError(
                    f"ORGBILL_DEFAULT_VAT_RATE must be a number, got '{raw_vat}'",
                    "ORGBILL_DEFAULT_VAT_RATE",
                )

        return cls(
            max_depth=max_depth,
            default_vat_rate=vat_rate,
            database_path=os.environ.get("ORGBILL_DB_PATH") or None,
        )

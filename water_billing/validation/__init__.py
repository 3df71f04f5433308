"""Two-stage validation of operator input."""

from water_billing.validation.validator import (
    LedgerValidator,
    previous_reading,
)

__all__ = [
    "LedgerValidator",
    "previous_reading",
]

"""
Rental Tax Engine — Typed Errors

All errors are caller errors: they are raised synchronously, never retried,
and never caught inside the engine. Each carries a machine-readable ``code``
so the HTTP layer can answer without parsing messages.

    TaxError (ValueError)
    ├── UnsupportedJurisdictionError
    ├── InvalidAmountError
    └── InvalidDistributionError
"""

from typing import Any, Optional


class TaxError(ValueError):
    """Base class for every tax engine failure."""

    code: str = "TAX_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnsupportedJurisdictionError(TaxError):
    """Jurisdiction id is not in the supported set."""

    code = "UNSUPPORTED_JURISDICTION"

    def __init__(self, jurisdiction: Any, supported: Optional[list] = None):
        self.jurisdiction = jurisdiction
        self.supported = list(supported or [])
        msg = f"Unsupported jurisdiction: {jurisdiction!r}"
        if self.supported:
            msg += f". Supported: {', '.join(self.supported)}"
        super().__init__(msg)


class InvalidAmountError(TaxError):
    """Income/expense figure is negative, non-finite or not a number."""

    code = "INVALID_AMOUNT"

    def __init__(self, field: str, value: Any, reason: str = "must be a finite, non-negative number"):
        self.field = field
        self.value = value
        super().__init__(f"{field} {reason} (got {value!r})")


class InvalidDistributionError(TaxError):
    """Owner shares do not describe a valid split of the income."""

    code = "INVALID_DISTRIBUTION"

"""
Rental Tax Engine — Country-Specific Rental Income Tax

Architecture:
- TaxEngine: Factory that dispatches to jurisdiction-specific strategies
- TaxInput: Annual rent, deductible expenses, regime
- TaxResult: Taxable income, itemised deductions, tax, quarterly schedule
- calculate_distribution: Multi-owner split with per-owner taxation
"""

from tax_engine.models import (
    Jurisdiction,
    TaxInput,
    TaxResult,
    TaxBracket,
    Deductions,
    SUPPORTED_JURISDICTIONS,
)
from tax_engine.errors import (
    TaxError,
    UnsupportedJurisdictionError,
    InvalidAmountError,
    InvalidDistributionError,
)
from tax_engine.core import MAX_AMOUNT, TaxEngine, TAX_ENGINE, calculate_tax, resolve_country

__all__ = [
    "TaxEngine",
    "TAX_ENGINE",
    "calculate_tax",
    "resolve_country",
    "MAX_AMOUNT",
    "Jurisdiction",
    "TaxInput",
    "TaxResult",
    "TaxBracket",
    "Deductions",
    "SUPPORTED_JURISDICTIONS",
    "TaxError",
    "UnsupportedJurisdictionError",
    "InvalidAmountError",
    "InvalidDistributionError",
]

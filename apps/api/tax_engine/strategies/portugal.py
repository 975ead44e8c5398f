"""
Rental Tax Engine — Portugal Strategy

Rendimentos Prediais (IRS Category F), progressive scale.

Deductions:
- Documented expenses (maintenance, repairs, IMI, condominium, insurance)
  accepted up to 15% of gross rent

Brackets (2024 general IRS scale):
- 12% / 15% / 21% / 26% / 29% / 31% / 35%

Ownership relief:
- 5% of the tax per full year held, capped at 15%
"""

from decimal import Decimal
from typing import Dict, List

from tax_engine.core import AbstractTaxStrategy, floor_currency, to_decimal
from tax_engine.models import Jurisdiction, TaxBracket, TaxInput


# ─────────────────────────────────────────────
# Portugal Rates
# ─────────────────────────────────────────────

PORTUGAL_MAX_DEDUCTIBLE_SHARE = Decimal("0.15")   # of gross income

PORTUGAL_BRACKETS: List[TaxBracket] = [
    TaxBracket(min=0, max=7520, rate=12),
    TaxBracket(min=7520, max=11284, rate=15),
    TaxBracket(min=11284, max=15992, rate=21),
    TaxBracket(min=15992, max=20700, rate=26),
    TaxBracket(min=20700, max=26355, rate=29),
    TaxBracket(min=26355, max=50752, rate=31),
    TaxBracket(min=50752, max=None, rate=35),
]

PORTUGAL_RELIEF_PER_YEAR = Decimal("0.05")
PORTUGAL_RELIEF_CAP = Decimal("0.15")


class PortugalRentalTaxStrategy(AbstractTaxStrategy):
    """Portugal: progressive IRS on rent net of capped expenses."""

    JURISDICTION_CODE = Jurisdiction.PORTUGAL_RENDIMENTOS.value
    JURISDICTION_NAME = "Portugal"
    REGIME_LABEL = "Rendimentos Prediais (Category F)"
    BRACKETS = PORTUGAL_BRACKETS

    def allocate_deductions(self, tax_input: TaxInput) -> Dict[str, float]:
        cap = to_decimal(tax_input.annual_rental_income) * PORTUGAL_MAX_DEDUCTIBLE_SHARE
        return {
            "expenses": floor_currency(min(cap, to_decimal(tax_input.deductible_expenses))),
        }

    def apply_relief(self, tax_amount: float, tax_input: TaxInput) -> Decimal:
        share = min(tax_input.years_of_ownership * PORTUGAL_RELIEF_PER_YEAR, PORTUGAL_RELIEF_CAP)
        return to_decimal(tax_amount) * share

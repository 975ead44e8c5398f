"""
Rental Tax Engine — Spain Strategy

IRPF, rendimientos del capital inmobiliario (Inmuebles Urbanos).

Deductions (capped at 50% of gross rent, applied in this order):
1. Mortgage interest
2. Community fees
3. Remaining general expenses (IBI, repairs, insurance)

Savings-base scale as applied to rental income:
- 19% up to €35,000
- 24% above
"""

from decimal import Decimal, ROUND_FLOOR
from typing import Dict, List

from tax_engine.core import CENT, AbstractTaxStrategy, to_decimal
from tax_engine.errors import InvalidAmountError
from tax_engine.models import Jurisdiction, TaxBracket, TaxInput


SPAIN_MAX_DEDUCTIBLE_SHARE = Decimal("0.50")   # of gross income

SPAIN_BRACKETS: List[TaxBracket] = [
    TaxBracket(min=0, max=35000, rate=19),
    TaxBracket(min=35000, max=None, rate=24),
]


class SpainRentalTaxStrategy(AbstractTaxStrategy):
    """Spain: itemised deductions up to half the rent, two-band scale."""

    JURISDICTION_CODE = Jurisdiction.SPAIN_INMUEBLES.value
    JURISDICTION_NAME = "Spain"
    REGIME_LABEL = "IRPF Inmuebles Urbanos"
    BRACKETS = SPAIN_BRACKETS

    def validate(self, tax_input: TaxInput) -> None:
        itemised = to_decimal(tax_input.mortgage_interest) + to_decimal(tax_input.community_fees)
        if itemised > to_decimal(tax_input.deductible_expenses):
            raise InvalidAmountError(
                "mortgage_interest + community_fees",
                float(itemised),
                f"must not exceed deductible_expenses ({tax_input.deductible_expenses})",
            )

    def allocate_deductions(self, tax_input: TaxInput) -> Dict[str, float]:
        expenses = to_decimal(tax_input.deductible_expenses)
        mortgage = to_decimal(tax_input.mortgage_interest)
        community = to_decimal(tax_input.community_fees)

        cap = to_decimal(tax_input.annual_rental_income) * SPAIN_MAX_DEDUCTIBLE_SHARE
        remaining = min(cap, expenses).quantize(CENT, rounding=ROUND_FLOOR)

        breakdown: Dict[str, float] = {}
        for category, amount in (
            ("mortgage_interest", mortgage),
            ("community_fees", community),
            ("expenses", max(Decimal(0), expenses - mortgage - community)),
        ):
            allowed = min(amount, remaining).quantize(CENT, rounding=ROUND_FLOOR)
            breakdown[category] = float(allowed)
            remaining -= allowed
        return breakdown

"""
Rental Tax Engine — Core Dispatcher

TaxEngine is the single entry point. It:
1. Validates the TaxInput amounts
2. Routes to the correct jurisdiction strategy
3. Turns the strategy's deductions + brackets into a TaxResult

Everything here is pure: no I/O, no logging, no shared mutable state.
"""

import math
from abc import ABC, abstractmethod
from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from numbers import Real
from typing import Any, Dict, List, Tuple

from tax_engine.errors import InvalidAmountError, UnsupportedJurisdictionError
from tax_engine.models import (
    COUNTRY_REGIMES,
    SUPPORTED_JURISDICTIONS,
    Deductions,
    Jurisdiction,
    TaxBracket,
    TaxBracketTable,
    TaxInput,
    TaxResult,
)


CENT = Decimal("0.01")

# Ten trillion: cents stay exact in a float and every quantize fits the
# default 28-digit decimal context.
MAX_AMOUNT = 10_000_000_000_000


# ─────────────────────────────────────────────
# Currency helpers
# ─────────────────────────────────────────────

def to_decimal(amount: Any) -> Decimal:
    """Exact decimal of a float's shortest repr (0.1 -> Decimal('0.1'))."""
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))


def round_currency(amount: Any) -> float:
    """Round half-up to the cent (0.125 -> 0.13, -0.125 -> -0.13)."""
    return float(to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP))


def floor_currency(amount: Any) -> float:
    """Round down to the cent. Used for deductions so caps are never exceeded."""
    return float(to_decimal(amount).quantize(CENT, rounding=ROUND_FLOOR))


def sum_currency(amounts) -> float:
    return float(sum((to_decimal(a) for a in amounts), Decimal(0)))


def marginal_bracket_tax(income: float, brackets: List[TaxBracket]) -> Tuple[Decimal, float]:
    """
    Accumulate tax bracket by bracket.

    Each rate applies only to the slice of income inside its bracket.
    Returns (unrounded tax, marginal rate in percent of the highest bracket
    reached).
    """
    income_d = to_decimal(income)
    tax = Decimal(0)
    marginal_rate = brackets[0].rate if brackets else 0.0
    for bracket in brackets:
        lower = to_decimal(bracket.min)
        if income_d <= lower:
            break
        upper = income_d if bracket.max is None else min(income_d, to_decimal(bracket.max))
        tax += (upper - lower) * to_decimal(bracket.rate) / 100
        marginal_rate = bracket.rate
    return tax, marginal_rate


def validate_amount(field: str, value: Any, limit: float = MAX_AMOUNT) -> float:
    """Finite, non-negative real number no larger than ``limit``, as a float."""
    if isinstance(value, bool) or not isinstance(value, (Real, Decimal)):
        raise InvalidAmountError(field, value)
    amount = float(value)
    if not math.isfinite(amount) or amount < 0:
        raise InvalidAmountError(field, value)
    if amount > limit:
        raise InvalidAmountError(field, value, f"must not exceed {limit:,}")
    return amount


def _validate_years(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidAmountError("years_of_ownership", value, "must be a non-negative integer")
    return value


# ─────────────────────────────────────────────
# Abstract Strategy
# ─────────────────────────────────────────────

class AbstractTaxStrategy(ABC):
    """Base class for jurisdiction-specific rental tax logic."""

    JURISDICTION_CODE: str = ""
    JURISDICTION_NAME: str = ""
    REGIME_LABEL: str = ""
    CURRENCY: str = "EUR"
    BRACKETS: List[TaxBracket] = []

    @abstractmethod
    def allocate_deductions(self, tax_input: TaxInput) -> Dict[str, float]:
        """
        Split deductible expenses into named categories.

        The categories must sum to at most ``deductible_expenses`` and at most
        ``annual_rental_income``; amounts should already be floored to cents.
        """
        pass

    def validate(self, tax_input: TaxInput) -> None:
        """Jurisdiction-specific input checks. Raise InvalidAmountError."""
        return None

    def apply_relief(self, tax_amount: float, tax_input: TaxInput) -> Decimal:
        """Relief subtracted from the bracket tax. Default: none."""
        return Decimal(0)

    def calculate(self, tax_input: TaxInput) -> TaxResult:
        gross = tax_input.annual_rental_income
        gross_d = to_decimal(gross)

        breakdown = self.allocate_deductions(tax_input)
        total_deductions = sum_currency(breakdown.values())

        taxable = min(gross, round_currency(max(Decimal(0), gross_d - to_decimal(total_deductions))))

        bracket_tax, marginal_rate = marginal_bracket_tax(taxable, self.BRACKETS)
        bracket_tax = round_currency(bracket_tax)
        relief = round_currency(self.apply_relief(bracket_tax, tax_input))
        tax_amount = round_currency(max(Decimal(0), to_decimal(bracket_tax) - to_decimal(relief)))

        effective_rate = (tax_amount / gross) if gross > 0 else 0.0
        quarterly = round_currency(to_decimal(tax_amount) / 4)
        settlement = round_currency(to_decimal(tax_amount) - to_decimal(quarterly) * 4)

        return TaxResult(
            jurisdiction=self.JURISDICTION_CODE,
            jurisdiction_name=self.JURISDICTION_NAME,
            regime_label=self.REGIME_LABEL,
            gross_income=gross,
            net_income=round_currency(gross_d - to_decimal(tax_input.deductible_expenses)),
            taxable_income=taxable,
            tax_rate=marginal_rate,
            tax_amount=tax_amount,
            tax_relief=relief,
            effective_rate=effective_rate,
            quarterly_payment=quarterly,
            annual_settlement=settlement,
            deductions=Deductions(breakdown=breakdown, total=total_deductions),
        )


# ─────────────────────────────────────────────
# Engine (Factory / Dispatcher)
# ─────────────────────────────────────────────

class TaxEngine:
    """
    Main entry point for rental tax calculations.
    Routes to jurisdiction-specific strategies.
    """

    _strategies: Dict[str, AbstractTaxStrategy] = {}

    def __init__(self):
        # Lazy-import strategies to avoid circular imports
        from tax_engine.strategies.portugal import PortugalRentalTaxStrategy
        from tax_engine.strategies.spain import SpainRentalTaxStrategy

        self._strategies = {
            Jurisdiction.PORTUGAL_RENDIMENTOS.value: PortugalRentalTaxStrategy(),
            Jurisdiction.SPAIN_INMUEBLES.value: SpainRentalTaxStrategy(),
        }

    def _strategy_for(self, jurisdiction: Any) -> AbstractTaxStrategy:
        key = jurisdiction.value if isinstance(jurisdiction, Jurisdiction) else jurisdiction
        strategy = None
        if isinstance(key, str):
            strategy = self._strategies.get(key.strip().lower())
        if strategy is None:
            raise UnsupportedJurisdictionError(jurisdiction, sorted(self._strategies.keys()))
        return strategy

    def calculate(self, tax_input: TaxInput) -> TaxResult:
        """Calculate rental tax using the appropriate jurisdiction strategy."""
        strategy = self._strategy_for(tax_input.jurisdiction)

        for field in ("annual_rental_income", "deductible_expenses", "mortgage_interest", "community_fees"):
            validate_amount(field, getattr(tax_input, field))
        _validate_years(tax_input.years_of_ownership)

        strategy.validate(tax_input)
        return strategy.calculate(tax_input)

    def calculate_tax(
        self,
        jurisdiction: Any,
        annual_rental_income: Any,
        deductible_expenses: Any = 0.0,
        *,
        mortgage_interest: Any = 0.0,
        community_fees: Any = 0.0,
        years_of_ownership: Any = 0,
    ) -> TaxResult:
        """Call-style entry point: validates raw values before building the TaxInput."""
        self._strategy_for(jurisdiction)
        key = jurisdiction.value if isinstance(jurisdiction, Jurisdiction) else jurisdiction
        tax_input = TaxInput(
            jurisdiction=key,
            annual_rental_income=validate_amount("annual_rental_income", annual_rental_income),
            deductible_expenses=validate_amount("deductible_expenses", deductible_expenses),
            mortgage_interest=validate_amount("mortgage_interest", mortgage_interest),
            community_fees=validate_amount("community_fees", community_fees),
            years_of_ownership=_validate_years(years_of_ownership),
        )
        return self.calculate(tax_input)

    def get_tax_brackets(self, jurisdiction: Any) -> List[TaxBracket]:
        """Bracket table for display."""
        return list(self._strategy_for(jurisdiction).BRACKETS)

    def get_bracket_table(self, jurisdiction: Any) -> TaxBracketTable:
        strategy = self._strategy_for(jurisdiction)
        return TaxBracketTable(
            jurisdiction=strategy.JURISDICTION_CODE,
            jurisdiction_name=strategy.JURISDICTION_NAME,
            currency=strategy.CURRENCY,
            brackets=list(strategy.BRACKETS),
        )

    def calculate_quarterly_estimate(
        self,
        jurisdiction: Any,
        quarterly_income: Any,
        quarterly_expenses: Any = 0.0,
    ) -> float:
        """Estimate one quarter's payment by annualising a single quarter's figures."""
        income = validate_amount("quarterly_income", quarterly_income, MAX_AMOUNT // 4)
        expenses = validate_amount("quarterly_expenses", quarterly_expenses, MAX_AMOUNT // 4)
        result = self.calculate_tax(jurisdiction, income * 4, expenses * 4)
        return result.quarterly_payment

    def get_supported_jurisdictions(self) -> Dict[str, Any]:
        """Return supported jurisdictions and their metadata."""
        return SUPPORTED_JURISDICTIONS


def resolve_country(country: str) -> str:
    """Map a country name (or an already-valid regime id) to a regime id."""
    if isinstance(country, str):
        if country in COUNTRY_REGIMES:
            return COUNTRY_REGIMES[country]
        key = country.strip().lower()
        if key in SUPPORTED_JURISDICTIONS:
            return key
        for name, regime in COUNTRY_REGIMES.items():
            if name.lower() == key:
                return regime
    raise UnsupportedJurisdictionError(country, sorted(COUNTRY_REGIMES.keys()))


TAX_ENGINE = TaxEngine()


def calculate_tax(
    jurisdiction: Any,
    annual_rental_income: Any,
    deductible_expenses: Any = 0.0,
    **options: Any,
) -> TaxResult:
    return TAX_ENGINE.calculate_tax(jurisdiction, annual_rental_income, deductible_expenses, **options)

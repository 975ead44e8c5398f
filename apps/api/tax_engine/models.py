"""
Rental Tax Engine — Data Models

Rental-income taxation needs only a few inputs:
1. Jurisdiction (tax regime: Portugal Category F, Spain IRPF inmuebles)
2. Annual rental income
3. Deductible expenses (optionally itemised, e.g. mortgage interest in Spain)
4. Years of ownership (Portuguese long-term holding relief)

Amounts are plain numbers in the regime's currency unit (not cents).
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ─────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────

class Jurisdiction(str, Enum):
    """Supported rental-income tax regimes."""
    PORTUGAL_RENDIMENTOS = "portugal_rendimentos"
    SPAIN_INMUEBLES = "spain_inmuebles"


# ─────────────────────────────────────────────
# Jurisdiction Registry
# ─────────────────────────────────────────────

SUPPORTED_JURISDICTIONS = {
    Jurisdiction.PORTUGAL_RENDIMENTOS.value: {
        "name": "Portugal — Rendimentos Prediais (IRS Category F)",
        "country": "Portugal",
        "currency": "EUR",
    },
    Jurisdiction.SPAIN_INMUEBLES.value: {
        "name": "Spain — IRPF Inmuebles Urbanos",
        "country": "Spain",
        "currency": "EUR",
    },
}

# Country name -> regime, for callers that only know where an owner is taxed
COUNTRY_REGIMES = {
    "Portugal": Jurisdiction.PORTUGAL_RENDIMENTOS.value,
    "Spain": Jurisdiction.SPAIN_INMUEBLES.value,
}


# ─────────────────────────────────────────────
# Input Models
# ─────────────────────────────────────────────

class TaxInput(BaseModel):
    """Annual figures for one property owner under one regime.

    Amounts are not range-checked here: the engine validates them and raises
    InvalidAmountError, so callers get one error type regardless of whether
    the figures came from an API request or from code.
    """
    model_config = ConfigDict(frozen=True)

    jurisdiction: str = Field(
        ...,
        description="Regime id: portugal_rendimentos, spain_inmuebles"
    )
    annual_rental_income: float = Field(..., description="Gross rent received in the year")
    deductible_expenses: float = Field(
        default=0.0,
        description="Repairs, maintenance, property taxes, insurance (all categories)"
    )
    # Spain: portions of deductible_expenses, itemised
    mortgage_interest: float = Field(
        default=0.0,
        description="Spain: part of deductible_expenses that is mortgage interest"
    )
    community_fees: float = Field(
        default=0.0,
        description="Spain: part of deductible_expenses that is community (HOA) fees"
    )
    # Portugal
    years_of_ownership: int = Field(
        default=0,
        description="Portugal: full years the property has been held (relief up to 15%)"
    )


# ─────────────────────────────────────────────
# Output Models
# ─────────────────────────────────────────────

class TaxBracket(BaseModel):
    """One marginal bracket. ``max`` is None for the open top bracket."""
    model_config = ConfigDict(frozen=True)

    min: float
    max: Optional[float] = None
    rate: float = Field(..., description="Marginal rate in percent")


class Deductions(BaseModel):
    model_config = ConfigDict(frozen=True)

    breakdown: Dict[str, float] = Field(default_factory=dict)
    total: float = 0.0


class TaxResult(BaseModel):
    """Complete tax calculation result. Built fresh per call, never mutated."""
    model_config = ConfigDict(frozen=True)

    jurisdiction: str
    jurisdiction_name: str = ""
    regime_label: str = ""

    gross_income: float = 0.0
    net_income: float = Field(default=0.0, description="Gross minus declared expenses; may be negative")
    taxable_income: float = 0.0

    tax_rate: float = Field(default=0.0, description="Marginal bracket rate reached, percent")
    tax_amount: float = 0.0
    tax_relief: float = Field(default=0.0, description="Relief already subtracted from tax_amount")
    effective_rate: float = Field(default=0.0, description="tax_amount / gross_income (fraction)")

    quarterly_payment: float = 0.0
    annual_settlement: float = Field(
        default=0.0,
        description="tax_amount minus four quarterly payments; negative means refund"
    )

    deductions: Deductions = Field(default_factory=Deductions)


class TaxBracketTable(BaseModel):
    jurisdiction: str
    jurisdiction_name: str
    currency: str
    brackets: List[TaxBracket]

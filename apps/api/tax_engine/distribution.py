"""
Rental Tax Engine — Multi-Owner Income Distribution

Splits a property's net rental income between co-owners and runs each
owner's share through the tax regime of the country where that owner is
taxed. Expenses are deducted once, at property level, so every owner's share
is taxed with zero further deductible expenses.

Per-owner annual summaries are folded from distribution results the caller
already holds, and feed the Portuguese (Modelo 3 Anexo F) and Spanish
(Modelo 100) return fields.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, Field

from tax_engine.core import (
    TAX_ENGINE,
    TaxEngine,
    resolve_country,
    round_currency,
    sum_currency,
    to_decimal,
    validate_amount,
)
from tax_engine.errors import InvalidDistributionError
from tax_engine.models import Jurisdiction, TaxResult


PERCENTAGE_TOLERANCE = 0.01

TIN_PLACEHOLDER = "TO BE FILLED BY OWNER"


class TaxMode(str, Enum):
    PRE_TAX = "pre-tax"
    POST_TAX = "post-tax"


class OwnerShare(BaseModel):
    owner_id: str
    owner_name: str
    percentage: float = Field(..., ge=0.0, le=100.0)
    tax_country: str = Field(
        default="Portugal",
        description="Country name (Portugal, Spain) or regime id"
    )
    tax_identification_number: Optional[str] = None


class DistributionInput(BaseModel):
    property_id: str
    period_start: datetime
    period_end: datetime
    total_income: float = Field(..., ge=0.0)
    total_expenses: float = Field(default=0.0, ge=0.0)
    owners: List[OwnerShare]
    tax_mode: TaxMode = Field(default=TaxMode.POST_TAX)
    calculated_by_user_id: Optional[str] = None


class OwnerDistribution(BaseModel):
    owner_id: str
    owner_name: str
    percentage: float
    gross_share: float
    taxable_income: float
    tax_amount: float
    net_share: float
    tax_country: str
    jurisdiction: str
    effective_rate: float
    tax_identification_number: Optional[str] = None
    tax_details: TaxResult


class DistributionResult(BaseModel):
    property_id: str
    period_start: datetime
    period_end: datetime
    total_income: float
    total_expenses: float
    net_income: float
    tax_mode: TaxMode
    shares: List[OwnerDistribution]
    total_tax: float
    total_net_distributed: float
    version: int = 1
    calculated_at: Optional[datetime] = None
    calculated_by_user_id: Optional[str] = None


class AnnualDistributionLine(BaseModel):
    property_id: str
    period: str = Field(..., description="YYYY-MM - YYYY-MM")
    gross_share: float
    tax_amount: float
    net_share: float


class AnnualTaxSummary(BaseModel):
    owner_id: str
    year: int
    total_gross_income: float = 0.0
    total_tax_paid: float = 0.0
    total_net_income: float = 0.0
    tax_identification_number: Optional[str] = None
    distributions: List[AnnualDistributionLine] = Field(default_factory=list)


class TaxFormData(BaseModel):
    form: str
    year: int
    fields: Dict[str, Union[float, str]]


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def validate_owner_percentages(owners: List[OwnerShare]) -> None:
    if not owners:
        raise InvalidDistributionError("At least one owner is required")
    total = sum(o.percentage for o in owners)
    if abs(total - 100.0) > PERCENTAGE_TOLERANCE:
        raise InvalidDistributionError(f"Owner percentages must sum to 100, got {total:.2f}")


def calculate_distribution(
    dist_input: DistributionInput,
    engine: Optional[TaxEngine] = None,
    calculated_at: Optional[datetime] = None,
) -> DistributionResult:
    """
    Split net income between owners and tax each share.

    A loss-making period yields negative gross shares; tax is then computed
    on zero income, so no owner is ever credited negative tax.
    """
    engine = engine or TAX_ENGINE
    validate_owner_percentages(dist_input.owners)
    if _as_utc(dist_input.period_end) < _as_utc(dist_input.period_start):
        raise InvalidDistributionError("period_end must not precede period_start")
    total_income = validate_amount("total_income", dist_input.total_income)
    total_expenses = validate_amount("total_expenses", dist_input.total_expenses)

    net_income = round_currency(to_decimal(total_income) - to_decimal(total_expenses))

    shares: List[OwnerDistribution] = []
    for owner in dist_input.owners:
        jurisdiction = resolve_country(owner.tax_country)
        gross_share = round_currency(to_decimal(net_income) * to_decimal(owner.percentage) / 100)

        tax_result = engine.calculate_tax(jurisdiction, max(0.0, gross_share), 0.0)

        shares.append(OwnerDistribution(
            owner_id=owner.owner_id,
            owner_name=owner.owner_name,
            percentage=owner.percentage,
            gross_share=gross_share,
            taxable_income=tax_result.taxable_income,
            tax_amount=tax_result.tax_amount,
            net_share=round_currency(to_decimal(gross_share) - to_decimal(tax_result.tax_amount)),
            tax_country=owner.tax_country,
            jurisdiction=jurisdiction,
            effective_rate=tax_result.effective_rate,
            tax_identification_number=owner.tax_identification_number,
            tax_details=tax_result,
        ))

    return DistributionResult(
        property_id=dist_input.property_id,
        period_start=dist_input.period_start,
        period_end=dist_input.period_end,
        total_income=dist_input.total_income,
        total_expenses=dist_input.total_expenses,
        net_income=net_income,
        tax_mode=dist_input.tax_mode,
        shares=shares,
        total_tax=sum_currency(s.tax_amount for s in shares),
        total_net_distributed=sum_currency(s.net_share for s in shares),
        calculated_at=calculated_at,
        calculated_by_user_id=dist_input.calculated_by_user_id,
    )


# ─────────────────────────────────────────────
# Annual summary & tax forms
# ─────────────────────────────────────────────

def summarize_owner_year(
    owner_id: str,
    year: int,
    distributions: Iterable[DistributionResult],
) -> AnnualTaxSummary:
    """
    Fold one owner's shares of the distributions whose period starts in ``year``.

    Distributions the owner has no share in, or that start in another year,
    are skipped.
    """
    lines: List[AnnualDistributionLine] = []
    tin: Optional[str] = None
    for dist in distributions:
        start = _as_utc(dist.period_start)
        if start.year != year:
            continue
        end = _as_utc(dist.period_end)
        for share in dist.shares:
            if share.owner_id != owner_id:
                continue
            tin = tin or share.tax_identification_number
            lines.append(AnnualDistributionLine(
                property_id=dist.property_id,
                period=f"{start:%Y-%m} - {end:%Y-%m}",
                gross_share=share.gross_share,
                tax_amount=share.tax_amount,
                net_share=share.net_share,
            ))

    return AnnualTaxSummary(
        owner_id=owner_id,
        year=year,
        total_gross_income=sum_currency(line.gross_share for line in lines),
        total_tax_paid=sum_currency(line.tax_amount for line in lines),
        total_net_income=sum_currency(line.net_share for line in lines),
        tax_identification_number=tin,
        distributions=lines,
    )


def generate_portugal_tax_form(summary: AnnualTaxSummary) -> TaxFormData:
    """Modelo 3 - Anexo F fields. Expenses were deducted at property level, so campo 402 is 0."""
    return TaxFormData(
        form="Modelo 3 - Anexo F",
        year=summary.year,
        fields={
            "Campo 401": summary.total_gross_income,    # rendimentos brutos
            "Campo 402": 0.0,                           # despesas
            "Campo 403": summary.total_gross_income,    # rendimento liquido
            "Campo 404": summary.total_tax_paid,        # imposto
            "NIF": summary.tax_identification_number or TIN_PLACEHOLDER,
        },
    )


def generate_spain_tax_form(summary: AnnualTaxSummary) -> TaxFormData:
    """Modelo 100 (IRPF) fields. Casilla 064 is 0 for the same reason as campo 402."""
    return TaxFormData(
        form="Modelo 100 - IRPF",
        year=summary.year,
        fields={
            "Casilla 063": summary.total_gross_income,  # rendimientos integros
            "Casilla 064": 0.0,                         # gastos deducibles
            "Casilla 065": summary.total_gross_income,  # rendimiento neto
            "Casilla 595": summary.total_tax_paid,      # cuota integra
            "NIF": summary.tax_identification_number or TIN_PLACEHOLDER,
        },
    )


def generate_tax_form(summary: AnnualTaxSummary, country: str) -> TaxFormData:
    """Form for the regime ``country`` resolves to."""
    if resolve_country(country) == Jurisdiction.SPAIN_INMUEBLES.value:
        return generate_spain_tax_form(summary)
    return generate_portugal_tax_form(summary)

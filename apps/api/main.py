import os
import traceback
from datetime import date
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from tax_engine import TAX_ENGINE, TaxError, TaxInput, TaxResult
from tax_engine.distribution import (
    AnnualTaxSummary,
    DistributionInput,
    DistributionResult,
    TaxFormData,
    calculate_distribution,
    generate_tax_form,
    summarize_owner_year,
)
from tax_engine.models import TaxBracketTable
from correspondence import (
    CorrespondenceTemplate,
    InvalidTemplateError,
    RenderedCorrespondence,
    TEMPLATE_VARIABLES,
    extract_variables,
    render_batch,
    render_template,
    unsupported_variables,
)

load_dotenv()

APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
DEFAULT_JURISDICTION = os.getenv("DEFAULT_JURISDICTION", "portugal_rendimentos").strip().lower()

app = FastAPI(title="Rental Tax & Correspondence API", version=APP_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ----------------------------
# Error handling
# ----------------------------
@app.exception_handler(TaxError)
async def tax_error_handler(request: Request, exc: TaxError):
    return JSONResponse(status_code=400, content={"ok": False, "code": exc.code, "message": exc.message})


@app.exception_handler(InvalidTemplateError)
async def template_error_handler(request: Request, exc: InvalidTemplateError):
    return JSONResponse(status_code=400, content={"ok": False, "code": exc.code, "message": exc.message})


# ----------------------------
# Models
# ----------------------------
class TaxCalculateIn(BaseModel):
    jurisdiction: Optional[str] = Field(
        default=None,
        description="Regime id: portugal_rendimentos, spain_inmuebles (defaults to DEFAULT_JURISDICTION)"
    )
    annual_rental_income: float
    deductible_expenses: float = 0.0
    mortgage_interest: float = 0.0
    community_fees: float = 0.0
    years_of_ownership: int = 0


class QuarterlyEstimateIn(BaseModel):
    jurisdiction: Optional[str] = None
    quarterly_income: float
    quarterly_expenses: float = 0.0


class QuarterlyEstimateOut(BaseModel):
    ok: bool
    jurisdiction: str
    quarterly_payment: float


class AnnualFormIn(BaseModel):
    owner_id: str
    year: int
    tax_country: str = Field(default="Portugal", description="Country name or regime id")
    distributions: List[DistributionResult] = Field(default_factory=list)


class AnnualFormOut(BaseModel):
    ok: bool
    summary: AnnualTaxSummary
    form: TaxFormData


class VariablesIn(BaseModel):
    content: str = Field(..., max_length=5000)


class VariablesOut(BaseModel):
    variables: List[str]
    unsupported: List[str]
    supported: List[str]


class RenderIn(BaseModel):
    content: str = Field(..., max_length=5000)
    context: Dict[str, Any] = Field(default_factory=dict)
    as_of: Optional[date] = Field(default=None, description="Date used for {{due_date}}; today if omitted")


class RenderOut(BaseModel):
    content: str
    variables: List[str]


class RenderBatchIn(BaseModel):
    template: CorrespondenceTemplate
    recipients: List[Dict[str, Any]] = Field(..., min_length=1)
    as_of: Optional[date] = None


class RenderBatchOut(BaseModel):
    ok: bool
    count: int
    items: List[RenderedCorrespondence]


# ----------------------------
# Health
# ----------------------------
@app.get("/api/v1/health")
def health():
    return {"ok": True, "version": APP_VERSION}


# ----------------------------
# Tax routes
# ----------------------------
@app.get("/api/v1/tax/jurisdictions")
def tax_jurisdictions():
    return {
        "ok": True,
        "default": DEFAULT_JURISDICTION,
        "jurisdictions": TAX_ENGINE.get_supported_jurisdictions(),
    }


@app.get("/api/v1/tax/brackets", response_model=TaxBracketTable)
def tax_brackets(jurisdiction: Optional[str] = None):
    return TAX_ENGINE.get_bracket_table(jurisdiction or DEFAULT_JURISDICTION)


@app.post("/api/v1/tax/calculate", response_model=TaxResult)
def tax_calculate(body: TaxCalculateIn):
    tax_input = TaxInput(
        jurisdiction=body.jurisdiction or DEFAULT_JURISDICTION,
        annual_rental_income=body.annual_rental_income,
        deductible_expenses=body.deductible_expenses,
        mortgage_interest=body.mortgage_interest,
        community_fees=body.community_fees,
        years_of_ownership=body.years_of_ownership,
    )
    return TAX_ENGINE.calculate(tax_input)


@app.post("/api/v1/tax/quarterly-estimate", response_model=QuarterlyEstimateOut)
def tax_quarterly_estimate(body: QuarterlyEstimateIn):
    jurisdiction = body.jurisdiction or DEFAULT_JURISDICTION
    payment = TAX_ENGINE.calculate_quarterly_estimate(
        jurisdiction, body.quarterly_income, body.quarterly_expenses
    )
    return QuarterlyEstimateOut(ok=True, jurisdiction=jurisdiction, quarterly_payment=payment)


@app.post("/api/v1/tax/distribution", response_model=DistributionResult)
def tax_distribution(body: DistributionInput):
    try:
        return calculate_distribution(body)
    except TaxError:
        raise
    except Exception as e:
        print(f"DISTRIBUTION ERROR: {str(e)}")
        traceback.print_exc()
        return JSONResponse(
            status_code=500,
            content={"ok": False, "message": f"Distribution failed: {str(e)}"},
        )


@app.post("/api/v1/tax/annual-form", response_model=AnnualFormOut)
def tax_annual_form(body: AnnualFormIn):
    summary = summarize_owner_year(body.owner_id, body.year, body.distributions)
    form = generate_tax_form(summary, body.tax_country)
    return AnnualFormOut(ok=True, summary=summary, form=form)


# ----------------------------
# Correspondence routes
# ----------------------------
@app.post("/api/v1/correspondence/variables", response_model=VariablesOut)
def correspondence_variables(body: VariablesIn):
    return VariablesOut(
        variables=extract_variables(body.content),
        unsupported=unsupported_variables(body.content),
        supported=list(TEMPLATE_VARIABLES.keys()),
    )


@app.post("/api/v1/correspondence/render", response_model=RenderOut)
def correspondence_render(body: RenderIn):
    return RenderOut(
        content=render_template(body.content, body.context, as_of=body.as_of),
        variables=extract_variables(body.content),
    )


@app.post("/api/v1/correspondence/render-batch", response_model=RenderBatchOut)
def correspondence_render_batch(body: RenderBatchIn):
    try:
        items = render_batch(body.template, body.recipients, as_of=body.as_of)
    except InvalidTemplateError:
        raise
    except Exception as e:
        print(f"BATCH RENDER ERROR: {str(e)}")
        traceback.print_exc()
        return JSONResponse(
            status_code=500,
            content={"ok": False, "message": f"Batch rendering failed: {str(e)}"},
        )
    return RenderBatchOut(ok=True, count=len(items), items=items)

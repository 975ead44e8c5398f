import os
import sys
from datetime import date, datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError

# ensure local app package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
from correspondence import (
    CorrespondenceTemplate,
    InvalidTemplateError,
    TemplateType,
    TenantRecord,
    extract_variables,
    render_batch,
    render_correspondence,
    render_template,
    unsupported_variables,
)
from correspondence import renderer


# ----------------------------
# Extraction
# ----------------------------
def test_extract_variables_distinct_in_first_seen_order():
    content = "Hi {{tenant_name}}, {{rent_amount}} is due. Thanks {{tenant_name}}"
    assert extract_variables(content) == ["tenant_name", "rent_amount"]


def test_extract_variables_is_repeatable():
    content = "{{a}} and {{a}} and {{b}}"
    assert extract_variables(content) == extract_variables(content) == ["a", "b"]


def test_extract_variables_without_placeholders():
    assert extract_variables("") == []
    assert extract_variables("No placeholders here") == []


def test_malformed_placeholders_are_not_variables():
    assert extract_variables("{{ tenant_name }}") == []
    assert extract_variables("{{tenant-name}}") == []
    assert extract_variables("{tenant_name}") == []
    assert extract_variables("{{}}") == []
    assert extract_variables("{{café}}") == []


def test_unsupported_variables():
    assert unsupported_variables("{{tenant_name}} {{unknown_field}}") == ["unknown_field"]


@pytest.mark.parametrize("bad", [None, 42, ["{{tenant_name}}"]])
def test_non_text_content_raises(bad):
    with pytest.raises(InvalidTemplateError) as exc:
        extract_variables(bad)
    assert exc.value.code == "INVALID_TEMPLATE"

    with pytest.raises(InvalidTemplateError):
        render_template(bad, {})


# ----------------------------
# Rendering
# ----------------------------
def test_render_basic_letter():
    content = "Dear {{tenant_name}}, rent is {{rent_amount}}"
    assert render_template(content, {"name": "Ana", "rent": 750}) == "Dear Ana, rent is 750"


def test_rent_amount_formatting():
    assert render_template("{{rent_amount}}", {"rent": 750.0}) == "750"
    assert render_template("{{rent_amount}}", {"rent": 812.5}) == "812.5"


def test_every_occurrence_is_replaced():
    out = render_template("{{tenant_name}} / {{tenant_name}}", {"name": "Rui"})
    assert out == "Rui / Rui"


def test_unknown_placeholder_left_untouched():
    content = "Hello {{tenant_name}}, ref {{contract_ref}}"
    assert render_template(content, {"name": "Ana"}) == "Hello Ana, ref {{contract_ref}}"


def test_fallback_labels_when_fields_missing():
    content = "{{tenant_name}}|{{property_name}}|{{rent_amount}}|{{lease_start}}|{{lease_end}}"
    assert render_template(content, {}) == (
        "tenant|your property|rent amount|lease start date|lease end date"
    )


def test_property_fields_fall_back_to_labels():
    content = "{{property_address}}, {{bedrooms}} bed, {{bathrooms}} bath"
    assert render_template(content, None) == "Property address, bedrooms bed, bathrooms bath"


def test_property_fields_use_real_values():
    content = "{{property_address}}, {{bedrooms}} bed, {{bathrooms}} bath"
    context = {"property_address": "Rua Augusta 10, Lisboa", "bedrooms": 2, "bathrooms": 1}
    assert render_template(content, context) == "Rua Augusta 10, Lisboa, 2 bed, 1 bath"


def test_lease_dates_are_locale_formatted():
    context = {"lease_start": "2024-01-15", "leaseEnd": "2025-01-14T00:00:00Z"}
    out = render_template("From {{lease_start}} to {{lease_end}}", context)
    assert out == "From 1/15/2024 to 1/14/2025"


def test_unparseable_lease_date_passes_through():
    assert render_template("{{lease_start}}", {"lease_start": "next spring"}) == "next spring"


def test_camel_case_context_keys():
    context = {"tenantName": "Marta", "propertyName": "Casa Azul", "rentAmount": 900}
    out = render_template("{{tenant_name}} @ {{property_name}}: {{rent_amount}}", context)
    assert out == "Marta @ Casa Azul: 900"


def test_due_date_uses_as_of():
    assert render_template("Due {{due_date}}", {}, as_of=date(2024, 3, 1)) == "Due 3/1/2024"
    assert render_template("Due {{due_date}}", {}, as_of=datetime(2024, 3, 1, 23, 59)) == "Due 3/1/2024"


def test_due_date_defaults_to_today(monkeypatch):
    monkeypatch.setattr(renderer, "_today", lambda: date(2024, 1, 1))
    first = render_template("{{due_date}}", {})
    monkeypatch.setattr(renderer, "_today", lambda: date(2024, 1, 2))
    second = render_template("{{due_date}}", {})
    assert first == "1/1/2024"
    assert second == "1/2/2024"


def test_substituted_values_are_not_rendered_again():
    context = {"name": "{{rent_amount}}", "rent": 900}
    assert render_template("{{tenant_name}} pays {{rent_amount}}", context) == "{{rent_amount}} pays 900"


def test_render_from_tenant_record():
    tenant = TenantRecord(name="Ana", property_name="T2 Alfama", rent=1200, lease_end="2025-06-30")
    out = render_template("{{tenant_name}}, {{property_name}} lease ends {{lease_end}}", tenant)
    assert out == "Ana, T2 Alfama lease ends 6/30/2025"


def test_empty_string_counts_as_missing():
    assert render_template("Dear {{tenant_name}}", {"name": ""}) == "Dear tenant"


# ----------------------------
# Templates & batches
# ----------------------------
def _reminder():
    return CorrespondenceTemplate(
        name="Rent reminder",
        type=TemplateType.RENT_REMINDER,
        subject="Rent due {{due_date}}",
        content="Dear {{tenant_name}}, {{rent_amount}} is due on {{due_date}}. {{signature}}",
    )


def test_template_variables_are_derived_from_content():
    template = _reminder()
    assert template.variables == ["tenant_name", "rent_amount", "due_date", "signature"]


def test_template_field_limits():
    with pytest.raises(ValidationError):
        CorrespondenceTemplate(name="", subject="s", content="c")
    with pytest.raises(ValidationError):
        CorrespondenceTemplate(name="n", subject="s", content="x" * 5001)


def test_render_correspondence():
    letter = render_correspondence(_reminder(), {"name": "Ana", "rent": 750}, as_of=date(2024, 5, 1))
    assert letter.template_name == "Rent reminder"
    assert letter.subject == "Rent due 5/1/2024"
    assert letter.content == "Dear Ana, 750 is due on 5/1/2024. {{signature}}"
    assert letter.unresolved_variables == ["signature"]


def test_render_batch_uses_one_date_for_all(monkeypatch):
    calls = iter([date(2024, 5, 1), date(2024, 5, 2)])
    monkeypatch.setattr(renderer, "_today", lambda: next(calls))

    letters = render_batch(_reminder(), [{"name": "Ana"}, {"name": "Rui", "rent": 900}])

    assert [l.subject for l in letters] == ["Rent due 5/1/2024", "Rent due 5/1/2024"]
    assert letters[0].content.startswith("Dear Ana, rent amount is due")
    assert letters[1].content.startswith("Dear Rui, 900 is due")


def test_non_numeric_values_fall_back_to_label():
    assert render_template("{{rent_amount}}", {"rent": True}) == "rent amount"
    assert render_template("{{bedrooms}}", {"bedrooms": False}) == "bedrooms"
    assert render_template("{{rent_amount}}", {"rent": float("nan")}) == "rent amount"
    assert render_template("{{rent_amount}}", {"rent": float("inf")}) == "rent amount"


def test_numbers_never_use_exponent_notation():
    assert render_template("{{rent_amount}}", {"rent": 1e16}) == "10000000000000000"
    assert render_template("{{rent_amount}}", {"rent": 1e-07}) == "0.0000001"
    assert render_template("{{rent_amount}}", {"rent": Decimal("1E+3")}) == "1000"

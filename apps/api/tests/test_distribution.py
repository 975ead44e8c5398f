import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

# ensure local app package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
from tax_engine import InvalidDistributionError, UnsupportedJurisdictionError, resolve_country
from tax_engine.distribution import (
    DistributionInput,
    OwnerShare,
    calculate_distribution,
    generate_portugal_tax_form,
    generate_tax_form,
    summarize_owner_year,
)


def _input(owners, income=24000, expenses=4000, **kwargs):
    return DistributionInput(
        property_id="prop-1",
        period_start=datetime(2024, 1, 1),
        period_end=datetime(2024, 12, 31),
        total_income=income,
        total_expenses=expenses,
        owners=owners,
        **kwargs,
    )


def test_resolve_country():
    assert resolve_country("Portugal") == "portugal_rendimentos"
    assert resolve_country("spain") == "spain_inmuebles"
    assert resolve_country("spain_inmuebles") == "spain_inmuebles"
    with pytest.raises(UnsupportedJurisdictionError):
        resolve_country("France")


def test_split_between_portuguese_and_spanish_owners():
    result = calculate_distribution(_input([
        OwnerShare(owner_id="a", owner_name="Ana", percentage=60, tax_country="Portugal"),
        OwnerShare(owner_id="b", owner_name="Bruno", percentage=40, tax_country="Spain"),
    ]))

    assert result.net_income == 20000.0
    ana, bruno = result.shares

    assert ana.gross_share == 12000.0
    assert ana.jurisdiction == "portugal_rendimentos"
    # 7520*12% + 3764*15% + 716*21%, no further expenses on a share
    assert ana.tax_amount == 1617.36
    assert ana.net_share == 10382.64
    assert ana.tax_details.deductions.total == 0

    assert bruno.gross_share == 8000.0
    assert bruno.jurisdiction == "spain_inmuebles"
    assert bruno.tax_amount == 1520.0
    assert bruno.net_share == 6480.0

    assert result.total_tax == 3137.36
    assert result.total_net_distributed == 16862.64
    assert result.version == 1


def test_loss_making_period_is_not_taxed():
    result = calculate_distribution(_input(
        [OwnerShare(owner_id="a", owner_name="Ana", percentage=100)],
        income=1000,
        expenses=3000,
    ))
    share = result.shares[0]
    assert share.gross_share == -2000.0
    assert share.tax_amount == 0
    assert share.net_share == -2000.0
    assert result.total_tax == 0


def test_percentages_must_sum_to_hundred():
    with pytest.raises(InvalidDistributionError) as exc:
        calculate_distribution(_input([
            OwnerShare(owner_id="a", owner_name="Ana", percentage=50),
            OwnerShare(owner_id="b", owner_name="Bruno", percentage=40),
        ]))
    assert exc.value.code == "INVALID_DISTRIBUTION"


def test_thirds_are_accepted_within_tolerance():
    owners = [
        OwnerShare(owner_id=str(i), owner_name=f"Owner {i}", percentage=33.333)
        for i in range(3)
    ]
    result = calculate_distribution(_input(owners, income=3000, expenses=0))
    assert len(result.shares) == 3
    assert all(s.gross_share == 999.99 for s in result.shares)


def test_owners_required():
    with pytest.raises(InvalidDistributionError):
        calculate_distribution(_input([]))


def test_period_end_before_start():
    dist_input = DistributionInput(
        property_id="prop-1",
        period_start=datetime(2024, 12, 31),
        period_end=datetime(2024, 1, 1),
        total_income=1000,
        owners=[OwnerShare(owner_id="a", owner_name="Ana", percentage=100)],
    )
    with pytest.raises(InvalidDistributionError):
        calculate_distribution(dist_input)


def test_unknown_owner_country():
    with pytest.raises(UnsupportedJurisdictionError):
        calculate_distribution(_input([
            OwnerShare(owner_id="a", owner_name="Ana", percentage=100, tax_country="Atlantis"),
        ]))


def test_calculated_at_and_user_are_carried():
    stamp = datetime(2025, 2, 1, 9, 30)
    result = calculate_distribution(
        _input(
            [OwnerShare(owner_id="a", owner_name="Ana", percentage=100)],
            calculated_by_user_id="user-7",
        ),
        calculated_at=stamp,
    )
    assert result.calculated_at == stamp
    assert result.calculated_by_user_id == "user-7"


def test_mixed_timezone_period_is_compared_in_utc():
    dist_input = DistributionInput(
        property_id="prop-1",
        period_start=datetime(2024, 1, 1, tzinfo=timezone.utc),
        period_end=datetime(2024, 12, 31),
        total_income=1000,
        owners=[OwnerShare(owner_id="a", owner_name="Ana", percentage=100)],
    )
    assert calculate_distribution(dist_input).net_income == 1000.0

    reversed_input = dist_input.model_copy(update={
        "period_start": datetime(2024, 6, 1),
        "period_end": datetime(2024, 1, 1, tzinfo=timezone(timedelta(hours=1))),
    })
    with pytest.raises(InvalidDistributionError):
        calculate_distribution(reversed_input)


# ----------------------------
# Annual summary & tax forms
# ----------------------------
def _year_of_distributions():
    owners = [
        OwnerShare(owner_id="a", owner_name="Ana", percentage=50, tax_identification_number="123456789"),
        OwnerShare(owner_id="b", owner_name="Bruno", percentage=50, tax_country="Spain"),
    ]
    first_half = _input(owners, income=12000, expenses=2000).model_copy(update={
        "period_start": datetime(2024, 1, 1),
        "period_end": datetime(2024, 6, 30),
    })
    second_half = _input(owners, income=8000, expenses=0).model_copy(update={
        "property_id": "prop-2",
        "period_start": datetime(2024, 7, 1),
        "period_end": datetime(2024, 12, 31),
    })
    next_year = _input(owners, income=5000, expenses=0).model_copy(update={
        "period_start": datetime(2025, 1, 1),
        "period_end": datetime(2025, 3, 31),
    })
    return [calculate_distribution(d) for d in (first_half, second_half, next_year)]


def test_summarize_owner_year():
    summary = summarize_owner_year("a", 2024, _year_of_distributions())

    assert summary.year == 2024
    assert [line.property_id for line in summary.distributions] == ["prop-1", "prop-2"]
    assert summary.distributions[0].period == "2024-01 - 2024-06"
    assert summary.total_gross_income == 9000.0
    # 5000 -> 600.00 and 4000 -> 480.00, both within the 12% band
    assert summary.total_tax_paid == 1080.0
    assert summary.total_net_income == 7920.0
    assert summary.tax_identification_number == "123456789"


def test_summary_for_owner_without_shares_is_empty():
    summary = summarize_owner_year("nobody", 2024, _year_of_distributions())
    assert summary.distributions == []
    assert summary.total_gross_income == 0


def test_portugal_tax_form():
    form = generate_portugal_tax_form(summarize_owner_year("a", 2024, _year_of_distributions()))
    assert form.form == "Modelo 3 - Anexo F"
    assert form.year == 2024
    assert form.fields["Campo 401"] == 9000.0
    assert form.fields["Campo 402"] == 0
    assert form.fields["Campo 403"] == 9000.0
    assert form.fields["Campo 404"] == 1080.0
    assert form.fields["NIF"] == "123456789"


def test_spain_tax_form_without_tin():
    summary = summarize_owner_year("b", 2024, _year_of_distributions())
    form = generate_tax_form(summary, "Spain")
    assert form.form == "Modelo 100 - IRPF"
    assert form.fields["Casilla 063"] == 9000.0
    # 5000 * 19% + 4000 * 19%
    assert form.fields["Casilla 595"] == 1710.0
    assert form.fields["NIF"] == "TO BE FILLED BY OWNER"


def test_tax_form_for_unknown_country():
    summary = summarize_owner_year("a", 2024, [])
    with pytest.raises(UnsupportedJurisdictionError):
        generate_tax_form(summary, "Atlantis")

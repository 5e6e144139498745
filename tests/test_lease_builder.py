# tests/test_lease_builder.py
from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime

import pytest

from propertyflow.domain.lease_data import LeaseData, LeaseTerms, build_lease_data_from_records, coerce_fields, validate_lease_data
from propertyflow.domain.lease_document import assemble_lease, format_currency, format_date, ordinal
from propertyflow.domain.lease_render import SignatureRecord, render_html, render_pdf


def _data(**kw) -> LeaseData:
    base = LeaseData(
        landlord_legal_name="Acme Rentals LLC",
        tenant_names=("Jane Doe",),
        tenant_emails=("jane@example.com",),
        property_address="1 Main St, Reno, NV, 89501",
        lease_start_date=date(2026, 1, 1),
        lease_end_date=date(2026, 12, 31),
        monthly_rent=1500.0,
        security_deposit_amount=1500.0,
        state="NV",
        signing_date=date(2025, 12, 15),
    )
    return replace(base, **kw)


class _Row:
    def __init__(self, **kw):
        self.__dict__.update(kw)


def test_formatting_helpers():
    assert format_currency(1234.5) == "$1,234.50"
    assert format_currency(-20) == "-$20.00"
    assert format_date(date(2026, 3, 7)) == "March 7, 2026"
    assert [ordinal(n) for n in (1, 2, 3, 4, 11, 12, 13, 21, 22, 101)] == [
        "1st", "2nd", "3rd", "4th", "11th", "12th", "13th", "21st", "22nd", "101st",
    ]


def test_valid_lease_has_no_errors():
    res = validate_lease_data(_data())
    assert res.ok
    assert res.errors == []


def test_deposit_over_state_cap_is_rejected():
    res = validate_lease_data(_data(state="AZ", security_deposit_amount=3000.0, deposit_return_days=14))
    assert not res.ok
    assert any("exceeds the AZ limit" in e for e in res.errors)


def test_fixed_term_requires_end_date():
    res = validate_lease_data(_data(lease_end_date=None, is_month_to_month=False))
    assert "fixed-term lease requires an end date" in res.errors

    m2m = validate_lease_data(_data(lease_end_date=None, is_month_to_month=True))
    assert m2m.ok


def test_rent_and_due_day_bounds():
    res = validate_lease_data(_data(monthly_rent=0.0, security_deposit_amount=0.0, rent_due_day=30))
    assert "monthly rent must be greater than zero" in res.errors
    assert "rent due day must be between 1 and 28" in res.errors


def test_state_deposit_return_and_late_fee_limits():
    res = validate_lease_data(_data(state="FL", deposit_return_days=30, late_fee_percent=10.0))
    assert any("deposit return period of 30 days exceeds the FL maximum of 15 days" in e for e in res.errors)
    assert any("late fee of 10% exceeds the FL limit of 5%" in e for e in res.errors)

    ok = validate_lease_data(_data(state="FL", deposit_return_days=15, late_fee_percent=5.0))
    assert ok.ok


def test_state_notes_become_warnings():
    res = validate_lease_data(_data(state="CA", deposit_return_days=21))
    assert res.ok
    assert "CA: Requires specific CA lease addendum" in res.warnings


def test_coerce_fields_strict_rejects_unknown_keys():
    out = coerce_fields({"lease_start_date": "2026-02-01T00:00:00", "additional_terms": ["a", "b"], "bogus": 1})
    assert out == {"lease_start_date": date(2026, 2, 1), "additional_terms": ("a", "b")}
    with pytest.raises(ValueError):
        coerce_fields({"bogus": 1}, strict=True)


def test_lease_data_json_round_trip_keeps_dates():
    data = _data(additional_terms=("No trampolines",))
    assert LeaseData.from_dict(data.to_dict()) == data


def test_build_from_records_uses_landlord_defaults_and_customizations():
    landlord = _Row(name="Acme", company_name=None, company_address=None, company_email="ops@acme.test",
                    company_phone=None, security_deposit_months=1.5, pet_deposit_enabled=True, pet_deposit_amount=300,
                    pet_rent_enabled=False)
    prop = _Row(street="1 Main St", city="Phoenix", state="az", zip_code="85001", year_built=1960,
                amenities_json='["Covered parking", "Pool"]')
    unit = _Row(name="2B", unit_type="apartment", rent_amount=1200.0)
    tenant = _Row(full_name="Jane Doe", email="jane@example.com")

    data = build_lease_data_from_records(
        landlord=landlord,
        property=prop,
        unit=unit,
        tenant=tenant,
        terms=LeaseTerms(start_date=date(2026, 1, 1), end_date=date(2026, 12, 31), billing_day_of_month=3),
        customizations={"smoking_allowed": True},
        signing_date=date(2025, 12, 1),
    )

    assert data.state == "AZ"
    assert data.property_address == "1 Main St, Phoenix, az, 85001"
    assert data.security_deposit_amount == 1800.0
    assert data.deposit_return_days == 14
    assert data.rent_due_day == 3
    assert data.pets_allowed is True
    assert data.pet_deposit == 300.0
    assert data.pet_rent is None
    assert data.lead_paint_disclosure is True
    assert data.included_areas == ("Covered parking",)
    assert data.is_month_to_month is False
    assert data.smoking_allowed is True
    assert validate_lease_data(data).ok


def test_assembled_lease_section_order():
    doc = assemble_lease(_data(state="CA", deposit_return_days=21))
    titles = [s.title for s in doc.sections]

    assert titles[0] == "Parties & Property"
    assert doc.sections[0].heading == "1. Parties & Property"
    assert "Additional Terms" not in titles
    assert titles[-5:] == [
        "Required Disclosures for CA",
        "Signatures",
        "Landlord Contact Information",
        "Tenant Rights Notice",
        "Legal Notice & Disclaimer",
    ]
    assert "state_notes" in doc.disclosure_keys
    assert len(doc.document_id) == 12
    assert doc.document_id == doc.document_id.upper()


def test_document_id_is_deterministic_and_content_sensitive():
    a = assemble_lease(_data())
    b = assemble_lease(_data())
    c = assemble_lease(_data(monthly_rent=1600.0))
    assert a.document_id == b.document_id
    assert a.document_id != c.document_id


def test_multiple_tenants_get_numbered_signature_lines():
    doc = assemble_lease(_data(tenant_names=("Jane Doe", "John Roe"), tenant_emails=("j@x.test", "r@x.test")))
    sig = doc.section("Signatures")
    labels = [b.label for b in sig.blocks if getattr(b, "role", None) == "tenant"]
    assert labels == ["TENANT 1:", "TENANT 2:"]


def test_render_html_and_pdf():
    doc = assemble_lease(_data(additional_terms=("Tenant waters the plants",)))
    html = render_html(doc)
    assert html.startswith("<!DOCTYPE html>")
    assert "Residential Lease Agreement" in html
    assert "Tenant waters the plants" in html
    assert doc.document_id in html

    pdf = render_pdf(doc)
    assert pdf.startswith(b"%PDF")
    assert render_pdf(doc) == pdf


def test_signed_pdf_gets_certificate_page():
    doc = assemble_lease(_data())
    plain = render_pdf(doc)
    signed = render_pdf(
        doc,
        signatures=[
            SignatureRecord(role="tenant", name="Jane Doe", email="jane@example.com",
                            signed_at=datetime(2026, 1, 2, 10, 0), ip_address="10.0.0.1", signature_sha256="ab" * 32),
        ],
        content_hash="cd" * 32,
    )
    assert signed.startswith(b"%PDF")
    assert signed != plain

# tests/test_jurisdiction_disclosures.py
from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from propertyflow.domain.disclosures import disclosure_clauses, is_disclosure_included
from propertyflow.domain.jurisdictions import (
    DEFAULT_CODE,
    JurisdictionRegistry,
    JurisdictionRules,
    get_jurisdiction,
    registry,
)
from propertyflow.domain.lease_data import LeaseData


def _data(state: str, **kw) -> LeaseData:
    base = LeaseData(
        landlord_legal_name="Acme Rentals LLC",
        tenant_names=("Jane Doe",),
        tenant_emails=("jane@example.com",),
        property_address="1 Main St, Reno, NV, 89501",
        lease_start_date=date(2026, 1, 1),
        lease_end_date=date(2026, 12, 31),
        monthly_rent=1500.0,
        security_deposit_amount=1500.0,
        state=state,
        signing_date=date(2025, 12, 15),
    )
    return replace(base, **kw)


def test_unknown_state_falls_back_to_default():
    rules = get_jurisdiction("ZZ")
    assert rules.code == DEFAULT_CODE
    assert rules.lead_paint is True
    assert rules.security_deposit_limit is None
    assert not registry.is_explicit("ZZ")
    assert registry.is_explicit("ca")


def test_state_caps():
    assert get_jurisdiction("CA").max_security_deposit(2000) == 4000.0
    assert get_jurisdiction("AZ").max_security_deposit(1000) == 1500.0
    assert get_jurisdiction("NV").max_security_deposit(1000) == 3000.0
    assert get_jurisdiction("TX").max_security_deposit(1000) is None
    assert get_jurisdiction("FL").max_late_fee(1200) == 60.0
    assert get_jurisdiction("NV").max_late_fee(1200) is None


def test_requires_rejects_unknown_disclosure():
    rules = get_jurisdiction("CA")
    assert rules.requires("mold") is True
    assert rules.requires("radon") is False
    with pytest.raises(KeyError):
        rules.requires("volcano")


def test_registry_override_and_default_is_permanent():
    reg = JurisdictionRegistry([JurisdictionRules(code=DEFAULT_CODE)])
    reg.register(JurisdictionRules(code=" nv ", radon=True, deposit_return_days=10))
    assert reg.get("NV").radon is True
    assert reg.get("nv").deposit_return_days == 10
    assert reg.codes() == ["NV"]

    reg.unregister("NV")
    assert reg.get("NV").code == DEFAULT_CODE

    with pytest.raises(ValueError):
        reg.unregister("default")


def test_california_clauses_include_state_notes():
    data = _data("CA")
    keys = [c.key for c in disclosure_clauses(data)]
    assert keys[:1] == ["lead_paint"]
    for k in ("mold", "bed_bugs", "asbestos", "flood_zone", "sex_offender", "smoking_policy"):
        assert k in keys
    assert "radon" not in keys
    assert keys[-1] == "state_notes"


def test_lease_flag_opts_into_disclosure_the_state_does_not_require():
    rules = get_jurisdiction("NV")
    plain = _data("NV")
    flagged = _data("NV", radon_disclosure=True)

    assert not is_disclosure_included("radon", rules, plain)
    assert is_disclosure_included("radon", rules, flagged)
    assert "radon" in [c.key for c in disclosure_clauses(flagged)]


def test_state_without_notes_has_no_notes_clause():
    keys = [c.key for c in disclosure_clauses(_data("TX"))]
    assert "state_notes" not in keys
    assert "flood_zone" in keys

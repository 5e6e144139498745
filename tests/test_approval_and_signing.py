# tests/test_approval_and_signing.py
from __future__ import annotations

import base64
from datetime import date, datetime, timedelta

import pytest
from sqlalchemy import select

from propertyflow.errors import ApprovalError, SigningError
from propertyflow.models import Lease, LeaseTemplate, RentalApplication, RentPayment, SignatureRequest, Unit
from propertyflow.services.application_approval import approve_application, default_lease_end, submit_application
from propertyflow.services.lease_audit import list_lease_events, verify_lease_trail
from propertyflow.services.signing import create_signature_request, list_requests, open_signing_session, sign

SIGNATURE = "data:image/png;base64," + base64.b64encode(b"\x89PNG\r\n\x1a\n" + b"\x00" * 32).decode()
APPROVED_AT = datetime(2025, 12, 15, 10, 0)


def _apply(db, acme, email="jane@example.com", unit_id=None) -> int:
    app = submit_application(
        db,
        landlord_slug="acme",
        unit_id=unit_id or acme.unit_id,
        full_name="Jane Doe",
        email=email,
        move_in_date=date(2026, 1, 1),
    )
    return app.id


def _approve(db, acme, application_id, **kw):
    return approve_application(
        db,
        landlord_id=acme.landlord_id,
        application_id=application_id,
        actor_user_id=acme.owner_id,
        now=APPROVED_AT,
        **kw,
    )


def _sign(db, token, name, email, when):
    return sign(
        db,
        token,
        signature_data_url=SIGNATURE,
        signer_name=name,
        signer_email=email,
        consent=True,
        ip_address="203.0.113.5",
        user_agent="pytest",
        now=when,
    )


def test_default_lease_end_is_one_year_less_a_day():
    assert default_lease_end(date(2026, 1, 1)) == date(2026, 12, 31)
    assert default_lease_end(date(2026, 3, 15)) == date(2027, 3, 14)


def test_approval_generates_lease_and_sends_it_for_signature(db, acme, outbox):
    app_id = _apply(db, acme)
    res = _approve(db, acme, app_id)

    lease = res.lease
    assert lease.status == "pending_signature"
    assert lease.generated_from == "auto"
    assert (lease.start_date, lease.end_date) == (date(2026, 1, 1), date(2026, 12, 31))
    assert lease.rent_amount == 1500.0
    assert lease.lease_data_json
    assert res.signing_url.endswith(f"/sign/{res.signing_token}")

    db.expire_all()
    assert db.get(RentalApplication, app_id).status == "approved"
    assert db.get(Unit, acme.unit_id).is_available is False

    requests = list_requests(db, lease_id=lease.id)
    assert [(r.role, r.status, r.recipient_email) for r in requests] == [("tenant", "sent", "jane@example.com")]
    assert requests[0].expires_at == APPROVED_AT + timedelta(days=30)

    events = list_lease_events(db, lease_id=lease.id)
    assert [e.event_type for e in events] == ["created", "sent_for_signature"]
    assert verify_lease_trail(db, lease_id=lease.id).ok

    assert [m["to"] for m in outbox] == [["jane@example.com"]]
    assert res.signing_url in outbox[0]["text"]


def test_approval_error_codes(db, acme):
    app_id = _apply(db, acme)
    _approve(db, acme, app_id)

    with pytest.raises(ApprovalError) as ei:
        _approve(db, acme, app_id)
    assert ei.value.code == "APPLICATION_NOT_PENDING"
    assert ei.value.status_code == 409

    with pytest.raises(ApprovalError) as ei:
        _approve(db, acme, 9999)
    assert ei.value.code == "APPLICATION_NOT_FOUND"

    # a second applicant for the now-leased unit
    other = RentalApplication(landlord_id=acme.landlord_id, unit_id=acme.unit_id, full_name="Sam Roe", email="sam@example.com")
    db.add(other)
    db.commit()
    with pytest.raises(ApprovalError) as ei:
        _approve(db, acme, other.id)
    assert ei.value.code == "UNIT_UNAVAILABLE"


def test_approval_without_template_fails(db, acme):
    app_id = _apply(db, acme, unit_id=acme.spare_unit_id)
    db.get(LeaseTemplate, acme.template_id).is_default = False
    db.commit()

    with pytest.raises(ApprovalError) as ei:
        _approve(db, acme, app_id)
    assert ei.value.code == "NO_LEASE_TEMPLATE"
    assert ei.value.status_code == 422


def test_invalid_lease_terms_leave_nothing_behind(db, acme, outbox):
    app_id = _apply(db, acme)
    with pytest.raises(ApprovalError) as ei:
        _approve(db, acme, app_id, overrides={"security_deposit_amount": 10000})
    assert ei.value.code == "VALIDATION_ERROR"
    assert any("exceeds the NV limit" in e for e in ei.value.extra["errors"])

    db.rollback()
    assert db.get(RentalApplication, app_id).status == "pending"
    assert db.get(Unit, acme.unit_id).is_available is True
    assert db.scalars(select(Lease)).all() == []
    assert outbox == []


def test_full_signing_flow_activates_lease(db, acme, outbox):
    res = _approve(db, acme, _apply(db, acme))
    lease_id = res.lease.id

    session = open_signing_session(db, res.signing_token, ip_address="203.0.113.5", now=APPROVED_AT + timedelta(hours=1))
    assert session["document_type"] == "html_template"
    assert session["status"] == "viewed"
    assert "Residential Lease Agreement" in session["lease_html"]
    assert session["tenant_signed"] is False

    out = _sign(db, res.signing_token, "Jane Doe", "jane@example.com", APPROVED_AT + timedelta(hours=2))
    assert out["role"] == "tenant"
    assert out["lease_status"] == "pending_signature"
    assert out["signed_document_url"].startswith("/api/files/")

    landlord_req = [r for r in list_requests(db, lease_id=lease_id) if r.role == "landlord"]
    assert len(landlord_req) == 1
    assert landlord_req[0].recipient_email == "ops@acme.test"
    assert any(m["to"] == ["ops@acme.test"] for m in outbox)

    with pytest.raises(SigningError) as ei:
        _sign(db, res.signing_token, "Jane Doe", "jane@example.com", APPROVED_AT + timedelta(hours=3))
    assert ei.value.code == "ALREADY_SIGNED"

    done = _sign(db, landlord_req[0].token, "Pat Owner", "ops@acme.test", APPROVED_AT + timedelta(hours=4))
    assert done["role"] == "landlord"
    assert done["lease_status"] == "active"

    db.expire_all()
    lease = db.get(Lease, lease_id)
    assert lease.tenant_signed_at is not None
    assert lease.landlord_signed_at is not None

    charges = db.scalars(select(RentPayment).where(RentPayment.lease_id == lease_id).order_by(RentPayment.id)).all()
    assert [(c.charge_type, c.amount, c.due_date) for c in charges] == [
        ("first_month_rent", 1500.0, date(2026, 1, 1)),
        ("security_deposit", 1500.0, date(2026, 1, 1)),
    ]

    events = list_lease_events(db, lease_id=lease_id)
    assert [e.event_type for e in events] == [
        "created",
        "sent_for_signature",
        "viewed",
        "signed",
        "sent_for_signature",
        "countersigned",
        "executed",
    ]
    assert events[3].ip_address == "203.0.113.5"
    assert verify_lease_trail(db, lease_id=lease_id).ok

    executed = [m for m in outbox if m["subject"] == "Lease fully executed"]
    assert sorted(m["to"][0] for m in executed) == ["jane@example.com", "ops@acme.test"]


def test_landlord_cannot_countersign_before_tenant(db, acme):
    res = _approve(db, acme, _apply(db, acme))
    early = create_signature_request(db, lease=res.lease, role="landlord", recipient_email="ops@acme.test", now=APPROVED_AT)
    db.commit()

    with pytest.raises(SigningError) as ei:
        _sign(db, early.token, "Pat Owner", "ops@acme.test", APPROVED_AT + timedelta(hours=1))
    assert ei.value.code == "TENANT_NOT_SIGNED"


def test_expired_link_is_marked_expired(db, acme):
    res = _approve(db, acme, _apply(db, acme))

    with pytest.raises(SigningError) as ei:
        open_signing_session(db, res.signing_token, now=APPROVED_AT + timedelta(days=31))
    assert ei.value.code == "EXPIRED"
    assert ei.value.status_code == 410

    db.expire_all()
    sig = db.scalar(select(SignatureRequest).where(SignatureRequest.token == res.signing_token))
    assert sig.status == "expired"
    assert list_lease_events(db, lease_id=res.lease.id)[-1].event_type == "expired"
    assert verify_lease_trail(db, lease_id=res.lease.id).ok


def test_consent_and_signature_format_are_enforced(db, acme):
    res = _approve(db, acme, _apply(db, acme))

    with pytest.raises(SigningError) as ei:
        sign(db, res.signing_token, signature_data_url=SIGNATURE, signer_name="Jane", signer_email="j@x.test", consent=False)
    assert ei.value.code == "CONSENT_REQUIRED"

    with pytest.raises(SigningError) as ei:
        sign(db, res.signing_token, signature_data_url="data:image/png;base64,AAAA", signer_name="Jane",
             signer_email="j@x.test", consent=True, now=APPROVED_AT)
    assert ei.value.code == "INVALID_SIGNATURE"

    with pytest.raises(SigningError) as ei:
        sign(db, "no-such-token", signature_data_url=SIGNATURE, signer_name="Jane", signer_email="j@x.test", consent=True)
    assert ei.value.code == "NOT_FOUND"

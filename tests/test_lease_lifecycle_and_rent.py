# tests/test_lease_lifecycle_and_rent.py
from __future__ import annotations

import base64
from datetime import date, timedelta

import pytest
from sqlalchemy import select

from propertyflow.errors import LeaseStateError
from propertyflow.models import Landlord, Lease, RentPayment, RentReminderLog, SignatureRequest, Tenant, Unit
from propertyflow.services.daily import run_daily
from propertyflow.services.lease_audit import list_lease_events, verify_lease_trail
from propertyflow.services.lease_lifecycle import (
    cancel_lease,
    create_draft_lease,
    expire_ended_leases,
    send_for_signature,
    terminate_lease,
)
from propertyflow.services.lease_rules import ensure_no_lease_overlap, overlaps
from propertyflow.services.move_in_charges import post_move_in_charges
from propertyflow.services.rent import assess_late_fees, mark_paid, post_recurring_charges, post_rent_charges, send_rent_reminders
from propertyflow.services.reports import financial_report
from propertyflow.services.signing import sign

SIGNATURE = "data:image/png;base64," + base64.b64encode(b"\x89PNG\r\n\x1a\n" + b"\x00" * 32).decode()


def _tenant(db, acme, email="tina@example.com") -> Tenant:
    t = Tenant(landlord_id=acme.landlord_id, full_name="Tina Tenant", email=email)
    db.add(t)
    db.commit()
    return t


def _active_lease(db, acme, **kw) -> Lease:
    t = _tenant(db, acme)
    fields = dict(
        landlord_id=acme.landlord_id,
        property_id=acme.property_id,
        unit_id=acme.unit_id,
        tenant_id=t.id,
        start_date=date(2026, 1, 1),
        end_date=date(2026, 12, 31),
        rent_amount=1500.0,
        billing_day_of_month=10,
        status="active",
    )
    fields.update(kw)
    lease = Lease(**fields)
    db.add(lease)
    db.commit()
    return lease


def test_overlap_rules():
    assert overlaps(date(2026, 1, 1), date(2026, 12, 31), date(2026, 12, 31), None)
    assert not overlaps(date(2026, 1, 1), date(2026, 6, 30), date(2026, 7, 1), date(2026, 12, 31))
    assert overlaps(date(2026, 1, 1), None, date(2030, 1, 1), date(2030, 2, 1))


def test_overlapping_draft_is_blocked(db, acme):
    t = _tenant(db, acme)
    create_draft_lease(db, landlord_id=acme.landlord_id, unit_id=acme.unit_id, tenant_id=t.id,
                       start_date=date(2026, 1, 1), end_date=date(2026, 12, 31))

    with pytest.raises(ValueError):
        ensure_no_lease_overlap(db, landlord_id=acme.landlord_id, unit_id=acme.unit_id,
                                start_date=date(2026, 6, 1), end_date=date(2026, 6, 30))
    with pytest.raises(ValueError):
        create_draft_lease(db, landlord_id=acme.landlord_id, unit_id=acme.unit_id, tenant_id=t.id, start_date=date(2026, 12, 1))

    # the next year is free
    ensure_no_lease_overlap(db, landlord_id=acme.landlord_id, unit_id=acme.unit_id, start_date=date(2027, 1, 1))


def test_manual_lease_send_and_cancel(db, acme, outbox):
    t = _tenant(db, acme)
    lease = create_draft_lease(db, landlord_id=acme.landlord_id, unit_id=acme.unit_id, tenant_id=t.id,
                               start_date=date(2026, 2, 1), end_date=date(2027, 1, 31), actor_user_id=acme.owner_id)
    assert lease.status == "draft"
    assert lease.rent_amount == 1500.0

    out = send_for_signature(db, lease=lease, actor_user_id=acme.owner_id)
    assert lease.status == "pending_signature"
    assert lease.legal_document_id == out["document_id"]
    assert lease.lease_data_json
    assert db.get(Unit, acme.unit_id).is_available is False
    assert outbox[-1]["to"] == ["tina@example.com"]

    with pytest.raises(LeaseStateError):
        send_for_signature(db, lease=lease)

    cancel_lease(db, lease=lease, reason="tenant backed out")
    assert lease.status == "cancelled"
    assert db.get(Unit, acme.unit_id).is_available is True
    sig = db.scalar(select(SignatureRequest).where(SignatureRequest.lease_id == lease.id))
    assert sig.status == "voided"
    assert [e.event_type for e in list_lease_events(db, lease_id=lease.id)] == ["created", "sent_for_signature", "voided"]
    assert verify_lease_trail(db, lease_id=lease.id).ok

    with pytest.raises(LeaseStateError):
        terminate_lease(db, lease=lease)


def _sign(db, token, name, email):
    return sign(db, token, signature_data_url=SIGNATURE, signer_name=name, signer_email=email, consent=True)


def test_manually_signed_lease_occupies_its_unit(db, acme):
    t = _tenant(db, acme)
    lease = create_draft_lease(db, landlord_id=acme.landlord_id, unit_id=acme.unit_id, tenant_id=t.id,
                               start_date=date(2026, 2, 1), end_date=date(2027, 1, 31), actor_user_id=acme.owner_id)
    assert db.get(Unit, acme.unit_id).is_available is True

    out = send_for_signature(db, lease=lease, actor_user_id=acme.owner_id)
    _sign(db, out["signing_token"], "Tina Tenant", "tina@example.com")
    # cleared while the lease was out for signature
    db.get(Unit, acme.unit_id).is_available = True
    db.commit()

    landlord_req = db.scalar(
        select(SignatureRequest).where(SignatureRequest.lease_id == lease.id, SignatureRequest.role == "landlord")
    )
    _sign(db, landlord_req.token, "Olive Owner", "owner@acme.test")
    db.refresh(lease)
    assert lease.status == "active"
    assert db.get(Unit, acme.unit_id).is_available is False

    (maple,) = financial_report(db, landlord_id=acme.landlord_id, year=2026).properties
    assert maple["occupancy_rate"] == 50


def test_terminate_releases_unit(db, acme):
    lease = _active_lease(db, acme)
    db.get(Unit, acme.unit_id).is_available = False
    db.commit()

    terminate_lease(db, lease=lease, reason="sold the building")
    assert lease.status == "terminated"
    assert lease.termination_reason == "sold the building"
    assert db.get(Unit, acme.unit_id).is_available is True


def test_expire_ended_leases(db, acme):
    lease = _active_lease(db, acme)
    assert expire_ended_leases(db, today=date(2026, 12, 31)) == 0
    assert expire_ended_leases(db, today=date(2027, 1, 1)) == 1
    db.refresh(lease)
    assert lease.status == "expired"


def test_move_in_charges_are_posted_once(db, acme):
    landlord = db.get(Landlord, acme.landlord_id)
    landlord.security_deposit_months = 1.5
    landlord.last_month_rent_required = True
    landlord.pet_deposit_enabled = True
    landlord.pet_deposit_amount = 250.0
    landlord.pet_rent_enabled = True
    landlord.pet_rent_amount = 35.0
    landlord.cleaning_fee_enabled = True
    landlord.cleaning_fee_amount = 120.0
    db.commit()
    lease = _active_lease(db, acme)

    res = post_move_in_charges(db, lease=lease, landlord=landlord, today=date(2025, 12, 20))
    db.commit()
    assert [(c.charge_type, c.amount) for c in res.created] == [
        ("first_month_rent", 1500.0),
        ("security_deposit", 2250.0),
        ("last_month_rent", 1500.0),
        ("pet_deposit_annual", 250.0),
        ("cleaning_fee", 120.0),
    ]
    assert {c.due_date for c in res.created} == {date(2026, 1, 1)}
    assert res.total_amount == 5620.0
    assert res.created[1].description == "Security Deposit (1.5 months)"
    assert [(r.charge_type, r.amount, r.next_post_date) for r in res.recurring] == [("pet_rent", 35.0, date(2026, 1, 10))]

    again = post_move_in_charges(db, lease=lease, landlord=landlord, today=date(2025, 12, 21))
    assert again.skipped
    assert again.created == []


def test_rent_is_posted_from_the_second_month(db, acme):
    lease = _active_lease(db, acme)

    assert post_rent_charges(db, today=date(2026, 1, 5)).created == 0
    assert post_rent_charges(db, today=date(2026, 2, 3)).created == 1
    assert post_rent_charges(db, today=date(2026, 2, 20)).created == 0
    assert post_rent_charges(db, today=date(2027, 1, 3)).created == 0

    rows = db.scalars(select(RentPayment).where(RentPayment.lease_id == lease.id)).all()
    assert [(r.charge_type, r.due_date, r.amount) for r in rows] == [("rent", date(2026, 2, 10), 1500.0)]


def test_recurring_charges_catch_up(db, acme):
    landlord = db.get(Landlord, acme.landlord_id)
    landlord.pet_rent_enabled = True
    landlord.pet_rent_amount = 40.0
    db.commit()
    lease = _active_lease(db, acme)
    post_move_in_charges(db, lease=lease, landlord=landlord, today=date(2026, 1, 1))
    db.commit()

    res = post_recurring_charges(db, today=date(2026, 3, 15))
    assert res.created == 3
    due = db.scalars(
        select(RentPayment.due_date).where(RentPayment.lease_id == lease.id, RentPayment.charge_type == "pet_rent")
        .order_by(RentPayment.due_date)
    ).all()
    assert due == [date(2026, 1, 10), date(2026, 2, 10), date(2026, 3, 10)]
    assert post_recurring_charges(db, today=date(2026, 3, 15)).created == 0


def test_reminders_and_late_fees(db, acme, outbox):
    landlord = db.get(Landlord, acme.landlord_id)
    landlord.late_fees_enabled = True
    landlord.late_fee_grace_days = 5
    landlord.late_fee_type = "flat"
    landlord.late_fee_amount = 50.0
    db.commit()
    lease = _active_lease(db, acme)
    post_rent_charges(db, today=date(2026, 2, 3))

    assert send_rent_reminders(db, today=date(2026, 2, 3)).created == 1
    assert send_rent_reminders(db, today=date(2026, 2, 3)).created == 0
    assert send_rent_reminders(db, today=date(2026, 2, 4)).created == 0
    assert outbox[-1]["to"] == ["tina@example.com"]
    assert "in 7 days" in outbox[-1]["text"]
    assert db.scalars(select(RentReminderLog.days_before)).all() == [7]

    assert assess_late_fees(db, today=date(2026, 2, 15)).created == 0
    assert assess_late_fees(db, today=date(2026, 2, 16)).created == 1
    assert assess_late_fees(db, today=date(2026, 2, 20)).created == 0

    rows = db.scalars(select(RentPayment).where(RentPayment.lease_id == lease.id).order_by(RentPayment.id)).all()
    rent, fee = rows
    assert rent.status == "late"
    assert (fee.charge_type, fee.amount, fee.due_date, fee.late_fee_for_id) == ("late_fee", 50.0, date(2026, 2, 16), rent.id)

    mark_paid(db, payment=rent, method="check")
    assert rent.status == "paid"
    with pytest.raises(ValueError):
        mark_paid(db, payment=rent)


def test_run_daily_reports_every_job(db, acme):
    _active_lease(db, acme)
    results = run_daily(db, today=date(2026, 2, 3))
    assert [r["job"] for r in results] == [
        "expire_leases",
        "post_rent_charges",
        "post_recurring_charges",
        "send_rent_reminders",
        "assess_late_fees",
        "expire_signature_requests",
        "send_signing_reminders",
    ]
    assert not any("error" in r for r in results)
    assert results[1]["created"] == 1


def test_first_of_month_rent_gets_every_reminder(db, acme, outbox):
    _active_lease(db, acme, billing_day_of_month=1)

    day = date(2026, 1, 20)
    while day <= date(2026, 3, 2):
        post_rent_charges(db, today=day)
        send_rent_reminders(db, today=day)
        day += timedelta(days=1)

    sent = db.execute(
        select(RentPayment.due_date, RentReminderLog.days_before)
        .join(RentPayment, RentPayment.id == RentReminderLog.rent_payment_id)
        .order_by(RentPayment.due_date, RentReminderLog.days_before.desc())
    ).all()
    assert [tuple(r) for r in sent] == [
        (date(2026, 2, 1), 7),
        (date(2026, 2, 1), 3),
        (date(2026, 2, 1), 1),
        (date(2026, 3, 1), 7),
        (date(2026, 3, 1), 3),
        (date(2026, 3, 1), 1),
    ]
    assert len(outbox) == 6

    # next month's rent goes on the books a week ahead, not on the due date
    rows = db.scalars(select(RentPayment).where(RentPayment.charge_type == "rent").order_by(RentPayment.due_date)).all()
    assert [r.due_date for r in rows] == [date(2026, 2, 1), date(2026, 3, 1)]


def test_rent_is_posted_on_its_month_when_reminders_are_off(db, acme):
    landlord = db.get(Landlord, acme.landlord_id)
    landlord.rent_reminders_enabled = False
    db.commit()
    _active_lease(db, acme, billing_day_of_month=1)

    assert post_rent_charges(db, today=date(2026, 1, 31)).created == 0
    assert post_rent_charges(db, today=date(2026, 2, 1)).created == 1

# tests/test_contractor_booking.py
from __future__ import annotations

import dataclasses
import json
from datetime import date, datetime, timedelta

import pytest

from propertyflow.domain.scheduling import AvailabilityRules
from propertyflow.errors import BookingError, NotFoundError
from propertyflow.models import AppUser, ContractorProfile
from propertyflow.services import payments
from propertyflow.services.instant_booking import (
    REFUND_FAILED_NOTE,
    apply_deposit,
    available_instant_slots,
    cancel_booking,
    create_booking,
    mark_deposit_paid,
    record_deposit_received,
)
from propertyflow.services.scheduler import (
    appointments_needing_reminders,
    send_appointment_reminders,
    set_availability,
    update_appointment,
)

NOW = datetime(2026, 3, 2, 8, 0)  # Monday
WED = date(2026, 3, 4)


def _at(hour: int, minute: int = 0, day: date = WED) -> datetime:
    return datetime.combine(day, datetime.min.time()).replace(hour=hour, minute=minute)


def _mk_contractor(db, **kw) -> ContractorProfile:
    user = AppUser(email="fixit@example.com", display_name="Fix It")
    db.add(user)
    db.flush()
    fields = dict(
        user_id=user.id,
        business_name="Fix It Plumbing",
        email="fixit@example.com",
        specialties_json=json.dumps(["plumbing"]),
        instant_booking_enabled=True,
        deposit_required=True,
        deposit_amount=100.0,
    )
    fields.update(kw)
    profile = ContractorProfile(**fields)
    db.add(profile)
    db.commit()
    return profile


def _mk_customer(db, email="cust@example.com") -> AppUser:
    user = AppUser(email=email, display_name="Customer")
    db.add(user)
    db.commit()
    return user


def _book(db, contractor, customer, start, **kw):
    return create_booking(
        db,
        contractor_id=contractor.id,
        customer_user_id=customer.id,
        service_type="plumbing",
        start_time=start,
        now=NOW,
        **kw,
    )


def test_instant_slots_need_opt_in_and_matching_service(db):
    contractor = _mk_contractor(db)
    slots = available_instant_slots(db, contractor_id=contractor.id, day=WED, service_type="plumbing", now=NOW)
    assert slots and all(s.is_available for s in slots)
    assert available_instant_slots(db, contractor_id=contractor.id, day=WED, service_type="roofing", now=NOW) == []

    contractor.instant_booking_enabled = False
    db.commit()
    assert available_instant_slots(db, contractor_id=contractor.id, day=WED, service_type="plumbing", now=NOW) == []


def test_booking_uses_contractor_deposit_and_blocks_the_slot(db):
    contractor = _mk_contractor(db)
    customer = _mk_customer(db)

    appt = _book(db, contractor, customer, _at(10), address="100 Maple St")
    assert appt.status == "confirmed"
    assert appt.end_time == _at(11)
    assert appt.deposit_amount == 100.0
    assert appt.title == "plumbing - Instant Booking"

    with pytest.raises(BookingError) as ei:
        _book(db, contractor, customer, _at(10, 30))
    assert ei.value.code == "SLOT_UNAVAILABLE"
    assert ei.value.status_code == 409

    # inside the 30 minute buffer
    with pytest.raises(BookingError):
        _book(db, contractor, customer, _at(11, 15))

    later = _book(db, contractor, customer, _at(13))
    assert later.id != appt.id

    slots = available_instant_slots(db, contractor_id=contractor.id, day=WED, service_type="plumbing", now=NOW)
    taken = {s.start_time for s in slots if not s.is_available}
    assert _at(10) in taken and _at(13) in taken


def test_booking_rejections(db):
    customer = _mk_customer(db)
    contractor = _mk_contractor(db, deposit_amount=None, deposit_percent=20.0)

    with pytest.raises(BookingError, match="Deposit amount is required"):
        _book(db, contractor, customer, _at(10))
    with pytest.raises(BookingError, match="does not offer"):
        create_booking(db, contractor_id=contractor.id, customer_user_id=customer.id, service_type="roofing",
                       start_time=_at(10), now=NOW)

    # an explicit deposit satisfies the percentage rule
    appt = _book(db, contractor, customer, _at(10), deposit_amount=75)
    assert appt.deposit_amount == 75.0

    with pytest.raises(BookingError):
        _book(db, contractor, customer, NOW + timedelta(hours=2))


def test_blocked_days_cannot_be_booked(db):
    contractor = _mk_contractor(db)
    customer = _mk_customer(db)
    set_availability(db, contractor_id=contractor.id, rules=AvailabilityRules(blocked_dates=(WED,)))

    assert not any(s.is_available for s in available_instant_slots(
        db, contractor_id=contractor.id, day=WED, service_type="plumbing", now=NOW))
    with pytest.raises(BookingError):
        _book(db, contractor, customer, _at(10))


def test_reschedule_is_rechecked(db):
    contractor = _mk_contractor(db)
    customer = _mk_customer(db)
    first = _book(db, contractor, customer, _at(10))
    second = _book(db, contractor, customer, _at(14))

    moved = update_appointment(db, appointment=first, changes={"start_time": _at(10, 30), "end_time": _at(11, 30)}, now=NOW)
    assert moved.start_time == _at(10, 30)

    with pytest.raises(BookingError):
        update_appointment(db, appointment=second, changes={"start_time": _at(11), "end_time": _at(12)}, now=NOW)


def test_customer_cancellation_without_gateway_is_recorded_for_manual_refund(db):
    contractor = _mk_contractor(db)
    customer = _mk_customer(db)
    appt = _book(db, contractor, customer, _at(10))
    record_deposit_received(db, booking_id=appt.id)

    res = cancel_booking(db, booking_id=appt.id, cancelled_by="customer", reason="fixed it myself", now=NOW)
    assert res.success
    assert res.refund_amount == 100.0
    assert res.refund_status == "pending_manual"
    assert res.message == "Booking cancelled. Full deposit refund will be processed."
    assert res.appointment.status == "cancelled"
    assert res.appointment.cancelled_by == "customer"

    with pytest.raises(BookingError, match="already cancelled"):
        cancel_booking(db, booking_id=appt.id, cancelled_by="customer", now=NOW)
    with pytest.raises(NotFoundError):
        cancel_booking(db, booking_id=9999, cancelled_by="customer", now=NOW)


def test_late_moderate_and_strict_cancellations_refund_nothing(db):
    contractor = _mk_contractor(db)
    customer = _mk_customer(db)
    appt = _book(db, contractor, customer, _at(10))
    record_deposit_received(db, booking_id=appt.id)

    res = cancel_booking(db, booking_id=appt.id, cancelled_by="customer", now=_at(0))
    assert res.refund_amount == 0.0
    assert res.refund_status is None
    assert "within 24 hours" in res.message

    contractor.cancellation_policy = "strict"
    db.commit()
    appt = _book(db, contractor, customer, _at(14))
    record_deposit_received(db, booking_id=appt.id)
    res = cancel_booking(db, booking_id=appt.id, cancelled_by="customer", now=NOW)
    assert res.refund_amount == 0.0
    assert "strict" in res.message


def test_unpaid_booking_cancels_without_refund(db):
    contractor = _mk_contractor(db)
    appt = _book(db, contractor, _mk_customer(db), _at(10))
    res = cancel_booking(db, booking_id=appt.id, cancelled_by="contractor", now=NOW)
    assert res.refund_amount == 0.0
    assert res.message == "Booking cancelled successfully"


class _Gateway:
    """In-memory stand-in for StripeGateway; intents stay unpaid until settle()."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.intents: dict[str, payments.PaymentIntentResult] = {}
        self.refunds: list[tuple[str, float]] = []

    def create_payment_intent(self, *, amount: float, description: str, metadata: dict):
        pi = payments.PaymentIntentResult(
            id=f"pi_{len(self.intents) + 1}",
            client_secret="secret",
            status="requires_payment_method",
            amount_cents=payments.to_cents(amount),
            metadata={k: str(v) for k, v in metadata.items()},
        )
        self.intents[pi.id] = pi
        return pi

    def settle(self, payment_intent_id: str, **changes) -> str:
        changes.setdefault("status", "succeeded")
        self.intents[payment_intent_id] = dataclasses.replace(self.intents[payment_intent_id], **changes)
        return payment_intent_id

    def retrieve_payment_intent(self, payment_intent_id: str):
        if payment_intent_id not in self.intents:
            raise payments.PaymentError(f"No such payment_intent: '{payment_intent_id}'")
        return self.intents[payment_intent_id]

    def refund(self, *, payment_intent_id: str, amount: float):
        if self.fail:
            raise payments.PaymentError("card_declined")
        self.refunds.append((payment_intent_id, amount))
        return payments.RefundResult(id="re_1", status="succeeded", amount_cents=payments.to_cents(amount))


def _pay_deposit(db, gateway: _Gateway, appt) -> str:
    pi = gateway.settle(apply_deposit(db, booking_id=appt.id)["payment_intent_id"])
    mark_deposit_paid(db, booking_id=appt.id, payment_intent_id=pi)
    return pi


def test_gateway_refunds_and_failures(db, monkeypatch):
    contractor = _mk_contractor(db, cancellation_policy="flexible")
    customer = _mk_customer(db)

    gateway = _Gateway()
    monkeypatch.setattr("propertyflow.services.payments.get_gateway", lambda: gateway)
    appt = _book(db, contractor, customer, _at(10))
    pi = _pay_deposit(db, gateway, appt)
    assert appt.deposit_paid and appt.deposit_payment_id == pi
    res = cancel_booking(db, booking_id=appt.id, cancelled_by="customer", now=NOW)
    assert res.refund_amount == 50.0
    assert res.refund_status == "refunded"
    assert gateway.refunds == [(pi, 50.0)]

    appt = _book(db, contractor, customer, _at(14))
    _pay_deposit(db, gateway, appt)
    gateway.fail = True
    res = cancel_booking(db, booking_id=appt.id, cancelled_by="contractor", now=NOW)
    assert res.success
    assert res.refund_amount == 100.0
    assert res.refund_status == "failed"
    assert res.message.endswith(REFUND_FAILED_NOTE)
    assert res.appointment.status == "cancelled"


def test_deposit_needs_a_configured_gateway(db):
    appt = _book(db, _mk_contractor(db), _mk_customer(db), _at(10))
    with pytest.raises(BookingError) as ei:
        mark_deposit_paid(db, booking_id=appt.id, payment_intent_id="pi_made_up")
    assert ei.value.code == "PAYMENTS_DISABLED"
    assert ei.value.status_code == 503
    assert appt.deposit_paid is False


def test_deposit_is_marked_paid_only_for_a_confirmed_matching_intent(db, monkeypatch):
    contractor = _mk_contractor(db)
    customer = _mk_customer(db)
    gateway = _Gateway()
    monkeypatch.setattr("propertyflow.services.payments.get_gateway", lambda: gateway)

    other = _book(db, contractor, customer, _at(14))
    other_pi = gateway.settle(apply_deposit(db, booking_id=other.id)["payment_intent_id"])

    appt = _book(db, contractor, customer, _at(10))

    def rejected(pi: str) -> BookingError:
        with pytest.raises(BookingError) as ei:
            mark_deposit_paid(db, booking_id=appt.id, payment_intent_id=pi)
        assert appt.deposit_paid is False
        return ei.value

    # unknown to the gateway
    err = rejected("pi_made_up")
    assert (err.code, err.status_code) == ("PAYMENT_FAILED", 402)
    # paid, but for a different booking
    assert rejected(other_pi).code == "PAYMENT_MISMATCH"

    pi = apply_deposit(db, booking_id=appt.id)["payment_intent_id"]
    err = rejected(pi)
    assert (err.code, err.status_code) == ("PAYMENT_NOT_CONFIRMED", 409)
    # once an intent is opened for the booking, no other id is accepted
    assert rejected("pi_made_up").code == "PAYMENT_MISMATCH"

    gateway.settle(pi, amount_cents=100)
    assert rejected(pi).code == "PAYMENT_MISMATCH"

    gateway.settle(pi, amount_cents=payments.to_cents(100.0))
    assert mark_deposit_paid(db, booking_id=appt.id, payment_intent_id=pi).deposit_paid is True
    with pytest.raises(BookingError, match="already been paid"):
        mark_deposit_paid(db, booking_id=appt.id, payment_intent_id=pi)

    res = cancel_booking(db, booking_id=appt.id, cancelled_by="contractor", now=NOW)
    assert res.refund_status == "refunded"
    assert gateway.refunds == [(pi, 100.0)]


def test_offline_deposit_refunds_are_left_for_manual_handling(db, monkeypatch):
    contractor = _mk_contractor(db)
    appt = _book(db, contractor, _mk_customer(db), _at(10))
    gateway = _Gateway()
    monkeypatch.setattr("propertyflow.services.payments.get_gateway", lambda: gateway)

    record_deposit_received(db, booking_id=appt.id, amount=80)
    assert (appt.deposit_paid, appt.deposit_amount, appt.deposit_payment_id) == (True, 80.0, None)
    with pytest.raises(BookingError, match="already been paid"):
        record_deposit_received(db, booking_id=appt.id)

    res = cancel_booking(db, booking_id=appt.id, cancelled_by="contractor", now=NOW)
    assert res.refund_amount == 80.0
    assert res.refund_status == "pending_manual"
    assert gateway.refunds == []


def test_appointment_reminders_go_out_once(db, outbox):
    contractor = _mk_contractor(db)
    customer = _mk_customer(db)
    appt = _book(db, contractor, customer, _at(10))

    day_before = _at(10, 0, day=WED - timedelta(days=1)) - timedelta(minutes=2)
    assert appointments_needing_reminders(db, now=day_before - timedelta(hours=1)) == []
    assert [a.id for a in appointments_needing_reminders(db, now=day_before)] == [appt.id]

    assert send_appointment_reminders(db, now=day_before) == 1
    assert sorted(m["to"][0] for m in outbox) == ["cust@example.com", "fixit@example.com"]
    assert send_appointment_reminders(db, now=day_before) == 0


def _next_weekday(days_ahead: int = 3) -> date:
    d = datetime.utcnow().date() + timedelta(days=days_ahead)
    while d.weekday() >= 5:
        d += timedelta(days=1)
    return d


def test_booking_over_http(client):
    pro = {"X-User-Email": "pro@example.com"}
    cust = {"X-User-Email": "cust@example.com"}
    stranger = {"X-User-Email": "nosy@example.com"}

    r = client.put(
        "/api/contractors/me",
        json={"business_name": "Pro Plumbing", "specialties": ["plumbing"], "instant_booking_enabled": True},
        headers=pro,
    )
    assert r.status_code == 200, r.text
    contractor_id = r.json()["id"]
    assert r.json()["specialties"] == ["plumbing"]

    r = client.put(
        "/api/contractors/me/availability",
        json={"weekly_schedule": {"monday": {"start": "17:00", "end": "09:00"}}},
        headers=pro,
    )
    assert r.status_code == 400

    day = _next_weekday()
    r = client.get(f"/api/contractors/{contractor_id}/slots", params={"day": day.isoformat(), "service_type": "plumbing"}, headers=cust)
    assert r.status_code == 200
    assert r.json()

    start = datetime.combine(day, datetime.min.time()).replace(hour=10)
    r = client.post(
        "/api/contractors/bookings/instant",
        json={"contractor_id": contractor_id, "service_type": "plumbing", "start_time": start.isoformat()},
        headers=cust,
    )
    assert r.status_code == 200, r.text
    booking_id = r.json()["id"]

    r = client.post(
        "/api/contractors/bookings/instant",
        json={"contractor_id": contractor_id, "service_type": "plumbing", "start_time": start.isoformat()},
        headers=cust,
    )
    assert r.status_code == 409
    assert r.json()["code"] == "SLOT_UNAVAILABLE"

    assert client.post(f"/api/contractors/bookings/{booking_id}/cancel", json={}, headers=stranger).status_code == 404

    r = client.post(f"/api/contractors/bookings/{booking_id}/deposit", json={"amount": 50}, headers=cust)
    assert r.status_code == 503
    assert r.json()["code"] == "PAYMENTS_DISABLED"

    # a customer cannot vouch for their own deposit
    r = client.post(f"/api/contractors/bookings/{booking_id}/deposit-paid", json={"payment_intent_id": "pi_made_up"}, headers=cust)
    assert r.status_code == 503
    assert client.post(f"/api/contractors/bookings/{booking_id}/deposit-received", json={"amount": 50}, headers=cust).status_code == 403
    r = client.post(f"/api/contractors/bookings/{booking_id}/deposit-received", json={"amount": 50}, headers=pro)
    assert r.status_code == 200, r.text
    assert r.json()["deposit_paid"] is True

    r = client.post(f"/api/contractors/bookings/{booking_id}/cancel", json={"reason": "changed plans"}, headers=cust)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["success"] is True
    assert body["booking"]["status"] == "cancelled"
    assert body["booking"]["cancelled_by"] == "customer"
    assert body["refund_status"] == "pending_manual"

    mine = client.get("/api/contractors/me/appointments", headers=pro).json()
    assert mine == []

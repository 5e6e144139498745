# tests/test_scheduling_and_cancellation.py
from __future__ import annotations

from datetime import date, datetime

from propertyflow.domain.cancellation import decide_refund
from propertyflow.domain.scheduling import AvailabilityRules, BusyInterval, build_day_slots, slot_rejection

# Monday 08:00
NOW = datetime(2026, 3, 2, 8, 0)


def test_day_slots_respect_buffer_around_busy_interval():
    rules = AvailabilityRules()
    busy = [BusyInterval(start=datetime(2026, 3, 4, 11, 0), end=datetime(2026, 3, 4, 12, 0), appointment_id=1)]

    slots = build_day_slots(rules, date(2026, 3, 4), busy, now=NOW, duration_minutes=60)

    assert [s.start_time.hour for s in slots] == [9, 10, 11, 12, 13, 14, 15, 16]
    assert [s.is_available for s in slots] == [True, False, False, False, True, True, True, True]


def test_weekend_and_blocked_days_have_no_slots():
    rules = AvailabilityRules(blocked_dates=(date(2026, 3, 5),))
    assert build_day_slots(rules, date(2026, 3, 7), [], now=NOW) == []
    assert build_day_slots(rules, date(2026, 3, 5), [], now=NOW) == []


def test_slot_rejection_reasons():
    rules = AvailabilityRules(blocked_dates=(date(2026, 3, 5),))
    busy = [BusyInterval(start=datetime(2026, 3, 4, 11, 0), end=datetime(2026, 3, 4, 12, 0), appointment_id=7)]

    def why(start, end):
        return slot_rejection(rules, start, end, busy, now=NOW)

    assert why(datetime(2026, 3, 5, 10), datetime(2026, 3, 5, 11)) == "date is blocked"
    assert why(datetime(2026, 3, 2, 10), datetime(2026, 3, 2, 11)) == "not enough notice"
    assert why(datetime(2026, 6, 1, 10), datetime(2026, 6, 1, 11)) == "too far in advance"
    assert why(datetime(2026, 3, 7, 10), datetime(2026, 3, 7, 11)) == "contractor does not work this day"
    assert why(datetime(2026, 3, 4, 8), datetime(2026, 3, 4, 9)) == "outside working hours"
    assert why(datetime(2026, 3, 4, 11, 30), datetime(2026, 3, 4, 12, 30)) == "overlaps another appointment"
    assert why(datetime(2026, 3, 4, 12, 15), datetime(2026, 3, 4, 13, 15)) == "too close to another appointment"
    assert why(datetime(2026, 3, 4, 14), datetime(2026, 3, 4, 15)) is None


def test_rescheduling_ignores_its_own_interval():
    rules = AvailabilityRules()
    busy = [BusyInterval(start=datetime(2026, 3, 4, 11, 0), end=datetime(2026, 3, 4, 12, 0), appointment_id=7)]
    start, end = datetime(2026, 3, 4, 11, 30), datetime(2026, 3, 4, 12, 30)
    assert slot_rejection(rules, start, end, busy, now=NOW, exclude_id=7) is None


def test_contractor_cancellation_refunds_in_full():
    d = decide_refund(cancelled_by="contractor", deposit_amount=80, deposit_paid=True, policy="strict", hours_until_start=1)
    assert (d.amount, d.percent) == (80.0, 100)


def test_customer_cancellation_follows_policy():
    def refund(policy, hours):
        return decide_refund(
            cancelled_by="customer", deposit_amount=100, deposit_paid=True, policy=policy,
            hours_until_start=hours, cancellation_hours=24,
        )

    assert refund("flexible", 1).amount == 50.0
    assert refund("moderate", 24).amount == 100.0
    assert refund("moderate", 23.5).amount == 0.0
    assert refund("strict", 200).amount == 0.0
    assert refund("mystery", 48).percent == 100


def test_unpaid_deposit_refunds_nothing():
    d = decide_refund(cancelled_by="contractor", deposit_amount=100, deposit_paid=False, policy="flexible", hours_until_start=48)
    assert d.amount == 0.0
    assert d.reason == "no deposit paid"

# tests/test_rent_schedule_and_financials.py
from __future__ import annotations

from datetime import date, datetime

import pytest

from propertyflow.domain.financials import (
    ExpenseRow,
    PaymentRow,
    PropertySnapshot,
    build_report,
    report_to_csv,
    resolve_period,
)
from propertyflow.domain.rent_schedule import (
    add_months,
    billing_date,
    compute_late_fee,
    is_past_grace,
    next_billing_date,
    parse_reminder_days,
    reminder_offset_for,
)


def test_billing_dates_clamp_to_month_end():
    assert billing_date(2026, 2, 31) == date(2026, 2, 28)
    assert billing_date(2028, 2, 30) == date(2028, 2, 29)
    assert add_months(date(2026, 1, 31), 1) == date(2026, 2, 28)
    assert add_months(date(2026, 11, 15), 3) == date(2027, 2, 15)
    assert add_months(date(2026, 2, 28), 1, day=31) == date(2026, 3, 31)


def test_next_billing_date():
    assert next_billing_date(date(2026, 3, 3), 5) == date(2026, 3, 5)
    assert next_billing_date(date(2026, 3, 5), 5) == date(2026, 3, 5)
    assert next_billing_date(date(2026, 3, 10), 5) == date(2026, 4, 5)
    assert next_billing_date(date(2026, 12, 20), 1) == date(2027, 1, 1)


def test_reminder_days():
    assert parse_reminder_days("[1, 7, 3, 3]") == [7, 3, 1]
    assert parse_reminder_days(None) == [7, 3, 1]
    assert parse_reminder_days("[]") == [7, 3, 1]
    assert parse_reminder_days("not json") == [7, 3, 1]
    assert reminder_offset_for(date(2026, 3, 8), date(2026, 3, 1), [7, 3, 1]) == 7
    assert reminder_offset_for(date(2026, 3, 8), date(2026, 3, 2), [7, 3, 1]) is None


def test_grace_period_boundary():
    due = date(2026, 3, 1)
    assert not is_past_grace(due, 5, date(2026, 3, 6))
    assert is_past_grace(due, 5, date(2026, 3, 7))


def test_late_fee_flat_percent_and_state_cap():
    assert compute_late_fee(rent_amount=1200, fee_type="flat", fee_amount=50, state="NV") == 50.0
    assert compute_late_fee(rent_amount=1200, fee_type="percent", fee_amount=10, state="NV") == 120.0
    assert compute_late_fee(rent_amount=1200, fee_type="flat", fee_amount=100, state="FL") == 60.0


def test_resolve_period():
    q2 = resolve_period("quarterly", 2026, quarter=2)
    assert (q2.start, q2.end, q2.label) == (date(2026, 4, 1), date(2026, 6, 30), "2026-Q2")

    feb = resolve_period("monthly", 2026, month=2)
    assert (feb.start, feb.end, feb.label) == (date(2026, 2, 1), date(2026, 2, 28), "2026-02")

    no_quarter = resolve_period("quarterly", 2026)
    assert (no_quarter.period, no_quarter.start, no_quarter.end) == ("yearly", date(2026, 1, 1), date(2026, 12, 31))

    with pytest.raises(ValueError):
        resolve_period("weekly", 2026)
    with pytest.raises(ValueError):
        resolve_period("quarterly", 2026, quarter=5)


def _report():
    props = [
        PropertySnapshot(id=1, name="Maple Court", address="1 Main St", unit_count=2, occupied_units=1),
        PropertySnapshot(id=2, name="Oak House", address="2 Oak Ave", unit_count=1, occupied_units=1),
    ]
    payments = [
        PaymentRow(1, "Maple Court", "1A", date(2026, 1, 1), 1000.0, "paid"),
        PaymentRow(1, "Maple Court", "1A", date(2026, 2, 1), 1000.0, "late"),
        PaymentRow(2, "Oak House", "Main", date(2026, 1, 1), 500.0, "paid"),
        PaymentRow(1, "Maple Court", "1A", date(2025, 12, 1), 1000.0, "paid"),
        PaymentRow(2, "Oak House", "Main", date(2026, 3, 1), 500.0, "cancelled"),
    ]
    expenses = [
        ExpenseRow(1, "Maple Court", date(2026, 1, 15), 200.0, "repairs", "Water heater"),
        ExpenseRow(2, "Oak House", date(2026, 3, 3), 100.0, None),
        ExpenseRow(2, "Oak House", date(2027, 1, 3), 50.0, "utilities"),
    ]
    return build_report(
        period=resolve_period("yearly", 2026),
        properties=props,
        payments=payments,
        expenses=expenses,
        now=datetime(2026, 12, 31, 12, 0),
    )


def test_report_counts_only_paid_rent_in_period():
    r = _report()
    assert r.summary["total_income"] == 1500.0
    assert r.summary["total_expenses"] == 300.0
    assert r.summary["net_income"] == 1200.0
    assert r.summary["outstanding"] == 1000.0
    assert r.summary["total_units"] == 3

    maple, oak = r.properties
    assert (maple["income"], maple["expenses"], maple["net"], maple["occupancy_rate"]) == (1000.0, 200.0, 800.0, 50)
    assert (oak["income"], oak["expenses"], oak["net"], oak["occupancy_rate"]) == (500.0, 100.0, 400.0, 100)

    assert r.expenses_by_category == {"repairs": 200.0, "other": 100.0}
    assert len(r.monthly) == 12
    assert r.monthly[0]["income"] == 1500.0
    assert r.monthly[0]["month"] == "Jan"


def test_report_metrics():
    m = _report().metrics
    assert m["roi_pct"] == 80.0
    assert m["expense_ratio_pct"] == 20.0
    assert m["avg_monthly_income"] == 1500.0
    assert m["avg_monthly_expenses"] == 150.0
    assert m["collection_rate_pct"] == 50.0


def test_report_csv_sections():
    text = report_to_csv(_report())
    lines = text.splitlines()
    for header in ("SUMMARY", "BY PROPERTY", "MONTHLY BREAKDOWN", "EXPENSES BY CATEGORY"):
        assert header in lines
    assert "Total Income,$1500.00" in lines
    assert "Maple Court,$1000.00,$200.00,$800.00,50%" in lines
    assert "Jan 2026,$1500.00,$200.00,$1300.00" in lines
    assert "repairs,$200.00" in lines


def test_report_csv_puts_the_sign_before_the_dollar():
    lines = report_to_csv(_report()).splitlines()
    # March has Oak House's expense and no collected rent
    assert "Mar 2026,$0.00,$100.00,-$100.00" in lines
    assert not any("$-" in line for line in lines)

# propertyflow/domain/rent_schedule.py
from __future__ import annotations

import calendar
import json
from datetime import date, timedelta
from typing import List, Optional

from .jurisdictions import get_jurisdiction

DEFAULT_REMINDER_DAYS = (7, 3, 1)

# charge types that are rent for late-fee purposes
LATE_FEE_ELIGIBLE = ("rent", "first_month_rent")


def billing_date(year: int, month: int, day: int) -> date:
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(max(int(day), 1), last))


def add_months(d: date, months: int, day: Optional[int] = None) -> date:
    m = d.month - 1 + months
    y = d.year + m // 12
    return billing_date(y, m % 12 + 1, day or d.day)


def next_billing_date(today: date, day: int) -> date:
    """This month's billing day if it has not passed yet, otherwise next month's."""
    this_month = billing_date(today.year, today.month, day)
    if this_month >= today:
        return this_month
    return add_months(this_month, 1, day)


def parse_reminder_days(raw: Optional[str]) -> List[int]:
    if not raw:
        return list(DEFAULT_REMINDER_DAYS)
    try:
        vals = json.loads(raw)
    except ValueError:
        return list(DEFAULT_REMINDER_DAYS)
    out = sorted({int(v) for v in vals if int(v) >= 0}, reverse=True)
    return out or list(DEFAULT_REMINDER_DAYS)


def reminder_offset_for(due: date, today: date, offsets: List[int]) -> Optional[int]:
    days = (due - today).days
    return days if days in offsets else None


def is_past_grace(due: date, grace_days: int, today: date) -> bool:
    return today > due + timedelta(days=int(grace_days))


def compute_late_fee(*, rent_amount: float, fee_type: str, fee_amount: float, state: Optional[str]) -> float:
    """
    Flat fee or percent of rent, capped by the state's late-fee limit.
    """
    if fee_type == "percent":
        fee = float(rent_amount) * float(fee_amount) / 100.0
    else:
        fee = float(fee_amount)
    cap = get_jurisdiction(state).max_late_fee(rent_amount)
    if cap is not None:
        fee = min(fee, cap)
    return round(max(fee, 0.0), 2)

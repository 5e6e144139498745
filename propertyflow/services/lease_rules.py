# propertyflow/services/lease_rules.py
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.lease_state import OCCUPYING_STATUSES
from ..models import Lease

# statuses that still claim the unit's calendar
BLOCKING_STATUSES = ("draft",) + OCCUPYING_STATUSES


def _as_date(v: Any) -> Optional[date]:
    if v is None:
        return None
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    try:
        return date.fromisoformat(str(v))
    except ValueError:
        return None


def overlaps(a_start: date, a_end: Optional[date], b_start: date, b_end: Optional[date]) -> bool:
    """
    End dates are inclusive; a missing end date means open-ended.
    """
    a_end_eff = a_end or date.max
    b_end_eff = b_end or date.max
    return not (a_end_eff < b_start or b_end_eff < a_start)


def ensure_no_lease_overlap(
    db: Session,
    *,
    landlord_id: int,
    unit_id: int,
    start_date: Any,
    end_date: Any = None,
    ignore_lease_id: Optional[int] = None,
) -> None:
    """
    Raise ValueError if another draft, pending or active lease on the unit
    overlaps the given dates.
    """
    s = _as_date(start_date)
    e = _as_date(end_date)

    if s is None:
        raise ValueError("lease start_date is required and must be a date")
    if e is not None and e < s:
        raise ValueError("lease end_date cannot be before start_date")

    q = select(Lease).where(
        Lease.landlord_id == int(landlord_id),
        Lease.unit_id == int(unit_id),
        Lease.status.in_(BLOCKING_STATUSES),
    )
    if ignore_lease_id is not None:
        q = q.where(Lease.id != int(ignore_lease_id))

    for r in db.scalars(q.order_by(Lease.id.desc())).all():
        if overlaps(s, e, r.start_date, r.end_date):
            raise ValueError(
                f"lease dates overlap with existing lease id={int(r.id)} "
                f"({r.start_date.isoformat()} -> {(r.end_date.isoformat() if r.end_date else 'open-ended')})"
            )


def unit_has_occupying_lease(db: Session, *, unit_id: int) -> bool:
    row = db.scalar(select(Lease.id).where(Lease.unit_id == int(unit_id), Lease.status.in_(OCCUPYING_STATUSES)).limit(1))
    return row is not None

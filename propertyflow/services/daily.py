# propertyflow/services/daily.py
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from .lease_lifecycle import expire_ended_leases
from .rent import assess_late_fees, post_recurring_charges, post_rent_charges, send_rent_reminders
from .scheduler import send_appointment_reminders
from .signing import expire_stale_requests, send_signing_reminders

log = logging.getLogger(__name__)


def _counted(name: str, fn: Callable[[], int]) -> dict[str, Any]:
    n = fn()
    return {"job": name, "processed": n, "created": 0}


def run_daily(db: Session, *, today: Optional[date] = None, now: Optional[datetime] = None) -> list[dict[str, Any]]:
    """
    The once-a-day automation pass, in dependency order: charges are posted
    before reminders and late fees look at them.

    A failing job is logged and rolled back; later jobs still run.
    """
    now = now or datetime.utcnow()
    today = today or now.date()

    jobs: list[tuple[str, Callable[[], dict[str, Any]]]] = [
        ("expire_leases", lambda: _counted("expire_leases", lambda: expire_ended_leases(db, today=today))),
        ("post_rent_charges", lambda: post_rent_charges(db, today=today).as_dict()),
        ("post_recurring_charges", lambda: post_recurring_charges(db, today=today).as_dict()),
        ("send_rent_reminders", lambda: send_rent_reminders(db, today=today).as_dict()),
        ("assess_late_fees", lambda: assess_late_fees(db, today=today).as_dict()),
        ("expire_signature_requests", lambda: _counted("expire_signature_requests", lambda: expire_stale_requests(db, now=now))),
        ("send_signing_reminders", lambda: _counted("send_signing_reminders", lambda: send_signing_reminders(db, now=now))),
    ]

    out: list[dict[str, Any]] = []
    for name, fn in jobs:
        try:
            out.append(fn())
        except Exception as e:
            db.rollback()
            log.exception("daily job failed", extra={"job": name})
            out.append({"job": name, "error": str(e)})
    return out


def run_appointment_reminders(db: Session, *, now: Optional[datetime] = None) -> dict[str, Any]:
    """Runs every few minutes, separate from the daily pass."""
    return _counted("send_appointment_reminders", lambda: send_appointment_reminders(db, now=now))

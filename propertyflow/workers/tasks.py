# propertyflow/workers/tasks.py
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from ..db import SessionLocal
from ..services.daily import run_appointment_reminders, run_daily
from .celery_app import celery_app

log = logging.getLogger(__name__)


@celery_app.task(name="propertyflow.workers.tasks.run_daily_automation")
def run_daily_automation(on: Optional[str] = None) -> dict:
    """
    Beat entrypoint for the daily pass. `on` is an ISO date for replays;
    defaults to today (UTC).
    """
    today = date.fromisoformat(on) if on else None
    db = SessionLocal()
    try:
        results = run_daily(db, today=today)
    finally:
        db.close()

    failed = [r["job"] for r in results if "error" in r]
    if failed:
        log.warning("daily automation finished with failures", extra={"jobs": failed})
    return {"ok": not failed, "results": results}


@celery_app.task(name="propertyflow.workers.tasks.send_appointment_reminders")
def send_appointment_reminders() -> dict:
    db = SessionLocal()
    try:
        return run_appointment_reminders(db)
    finally:
        db.close()

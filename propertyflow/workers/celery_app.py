# propertyflow/workers/celery_app.py
from __future__ import annotations

from celery import Celery
from celery.schedules import crontab

from ..config import settings

celery_app = Celery(
    "propertyflow",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["propertyflow.workers.tasks"],
)

celery_app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,
    task_track_started=True,
    timezone="UTC",
)

celery_app.conf.task_routes = {
    "propertyflow.workers.tasks.*": {"queue": "automation"},
}

celery_app.conf.beat_schedule = {
    "daily-automation": {
        "task": "propertyflow.workers.tasks.run_daily_automation",
        "schedule": crontab(hour=6, minute=0),
    },
    "appointment-reminders": {
        "task": "propertyflow.workers.tasks.send_appointment_reminders",
        "schedule": crontab(minute="*/5"),
    },
}

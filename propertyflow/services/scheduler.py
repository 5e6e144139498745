# propertyflow/services/scheduler.py
from __future__ import annotations

import json
import logging
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.cancellation import CANCELLATION_POLICIES
from ..domain.scheduling import AvailabilityRules, BusyInterval, TimeSlot, build_day_slots, slot_rejection
from ..errors import BookingError, NotFoundError
from ..models import AppUser, ContractorAppointment, ContractorAvailability, ContractorProfile
from .notifications import send_email

log = logging.getLogger(__name__)

ACTIVE_APPOINTMENT_STATUSES = ("confirmed",)
REMINDER_LEAD = timedelta(hours=24)
REMINDER_WINDOW = timedelta(minutes=5)


# -----------------------------
# Profiles
# -----------------------------
def specialties(profile: ContractorProfile) -> list[str]:
    try:
        return [str(s) for s in json.loads(profile.specialties_json or "[]")]
    except ValueError:
        return []


def must_get_contractor(db: Session, contractor_id: int) -> ContractorProfile:
    row = db.get(ContractorProfile, int(contractor_id))
    if row is None:
        raise NotFoundError("Contractor not found")
    return row


def contractor_for_user(db: Session, user_id: int) -> Optional[ContractorProfile]:
    return db.scalar(select(ContractorProfile).where(ContractorProfile.user_id == int(user_id)))


def upsert_profile(db: Session, *, user_id: int, fields: dict[str, Any]) -> ContractorProfile:
    """Create or update the contractor profile owned by a user account."""
    profile = contractor_for_user(db, user_id)
    if profile is None:
        user = db.get(AppUser, int(user_id))
        profile = ContractorProfile(
            user_id=int(user_id),
            business_name=fields.get("business_name") or (user.display_name if user else None) or "Contractor",
            email=fields.get("email") or (user.email if user else ""),
            created_at=datetime.utcnow(),
        )
        db.add(profile)

    policy = fields.get("cancellation_policy")
    if policy is not None and policy not in CANCELLATION_POLICIES:
        raise BookingError(f"cancellation_policy must be one of {', '.join(CANCELLATION_POLICIES)}")
    if fields.get("deposit_percent") is not None and not 0 < float(fields["deposit_percent"]) <= 100:
        raise BookingError("deposit_percent must be between 0 and 100")

    for k in (
        "business_name",
        "email",
        "phone",
        "instant_booking_enabled",
        "deposit_required",
        "deposit_amount",
        "deposit_percent",
        "cancellation_policy",
        "cancellation_hours",
    ):
        if k in fields and fields[k] is not None:
            setattr(profile, k, fields[k])
    if fields.get("specialties") is not None:
        profile.specialties_json = json.dumps([str(s) for s in fields["specialties"]])
    db.commit()
    return profile


def list_contractors(db: Session, *, specialty: Optional[str] = None, instant_only: bool = False) -> list[ContractorProfile]:
    q = select(ContractorProfile)
    if instant_only:
        q = q.where(ContractorProfile.instant_booking_enabled.is_(True))
    rows = list(db.scalars(q.order_by(ContractorProfile.business_name)).all())
    if specialty:
        rows = [r for r in rows if specialty in specialties(r)]
    return rows


# -----------------------------
# Availability
# -----------------------------
def get_rules(db: Session, contractor_id: int) -> AvailabilityRules:
    row = db.scalar(select(ContractorAvailability).where(ContractorAvailability.contractor_id == int(contractor_id)))
    if row is None:
        return AvailabilityRules()
    return AvailabilityRules.from_storage(
        weekly_schedule_json=row.weekly_schedule_json,
        blocked_dates_json=row.blocked_dates_json,
        buffer_minutes=row.buffer_minutes,
        min_notice_hours=row.min_notice_hours,
        max_advance_days=row.max_advance_days,
    )


def set_availability(db: Session, *, contractor_id: int, rules: AvailabilityRules) -> ContractorAvailability:
    row = db.scalar(select(ContractorAvailability).where(ContractorAvailability.contractor_id == int(contractor_id)))
    if row is None:
        row = ContractorAvailability(contractor_id=int(contractor_id))
        db.add(row)
    row.weekly_schedule_json = rules.weekly_json()
    row.blocked_dates_json = rules.blocked_json()
    row.buffer_minutes = rules.buffer_minutes
    row.min_notice_hours = rules.min_notice_hours
    row.max_advance_days = rules.max_advance_days
    row.updated_at = datetime.utcnow()
    db.commit()
    return row


def busy_intervals(db: Session, contractor_id: int, start: datetime, end: datetime) -> list[BusyInterval]:
    rows = db.scalars(
        select(ContractorAppointment).where(
            ContractorAppointment.contractor_id == int(contractor_id),
            ContractorAppointment.status.in_(ACTIVE_APPOINTMENT_STATUSES),
            ContractorAppointment.start_time < end,
            ContractorAppointment.end_time > start,
        )
    ).all()
    return [BusyInterval(start=r.start_time, end=r.end_time, appointment_id=r.id) for r in rows]


def _busy_around(db: Session, contractor_id: int, rules: AvailabilityRules, start: datetime, end: datetime) -> list[BusyInterval]:
    buf = timedelta(minutes=rules.buffer_minutes)
    return busy_intervals(db, contractor_id, start - buf, end + buf)


def is_slot_available(
    db: Session,
    *,
    contractor_id: int,
    start: datetime,
    end: datetime,
    exclude_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> bool:
    rules = get_rules(db, contractor_id)
    busy = _busy_around(db, contractor_id, rules, start, end)
    return slot_rejection(rules, start, end, busy, now=now or datetime.utcnow(), exclude_id=exclude_id) is None


def get_available_slots(
    db: Session,
    *,
    contractor_id: int,
    day: date,
    duration_minutes: int = 60,
    now: Optional[datetime] = None,
) -> list[TimeSlot]:
    rules = get_rules(db, contractor_id)
    day_start = datetime.combine(day, datetime.min.time())
    busy = _busy_around(db, contractor_id, rules, day_start, day_start + timedelta(days=1))
    return build_day_slots(rules, day, busy, now=now or datetime.utcnow(), duration_minutes=duration_minutes)


# -----------------------------
# Appointments
# -----------------------------
def _assert_bookable(db: Session, contractor_id: int, start: datetime, end: datetime, *, now: datetime, exclude_id: Optional[int] = None) -> None:
    rules = get_rules(db, contractor_id)
    reason = slot_rejection(rules, start, end, _busy_around(db, contractor_id, rules, start, end), now=now, exclude_id=exclude_id)
    if reason is not None:
        raise BookingError(f"Time slot is not available: {reason}", code="SLOT_UNAVAILABLE", status_code=409)


def create_appointment(
    db: Session,
    *,
    contractor_id: int,
    customer_user_id: int,
    service_type: str,
    title: str,
    start_time: datetime,
    end_time: datetime,
    landlord_id: Optional[int] = None,
    description: Optional[str] = None,
    address: Optional[str] = None,
    deposit_amount: Optional[float] = None,
    now: Optional[datetime] = None,
) -> ContractorAppointment:
    now = now or datetime.utcnow()
    must_get_contractor(db, contractor_id)
    _assert_bookable(db, contractor_id, start_time, end_time, now=now)
    appt = ContractorAppointment(
        contractor_id=int(contractor_id),
        customer_user_id=int(customer_user_id),
        landlord_id=landlord_id,
        service_type=service_type,
        title=title,
        description=description,
        address=address,
        start_time=start_time,
        end_time=end_time,
        status="confirmed",
        deposit_amount=round(float(deposit_amount), 2) if deposit_amount else None,
        deposit_paid=False,
        created_at=now,
        updated_at=now,
    )
    db.add(appt)
    db.commit()
    log.info("appointment booked", extra={"landlord_id": landlord_id, "appointment_id": appt.id})
    return appt


def update_appointment(db: Session, *, appointment: ContractorAppointment, changes: dict[str, Any], now: Optional[datetime] = None) -> ContractorAppointment:
    """Reschedules are re-checked against availability, ignoring the appointment itself."""
    now = now or datetime.utcnow()
    if appointment.status != "confirmed":
        raise BookingError(f"Appointment is {appointment.status}")
    start = changes.get("start_time") or appointment.start_time
    end = changes.get("end_time") or appointment.end_time
    if start != appointment.start_time or end != appointment.end_time:
        _assert_bookable(db, appointment.contractor_id, start, end, now=now, exclude_id=appointment.id)
        appointment.start_time = start
        appointment.end_time = end
        appointment.reminder_sent_at = None
    for k in ("title", "description", "address", "service_type"):
        if changes.get(k) is not None:
            setattr(appointment, k, changes[k])
    appointment.updated_at = now
    db.commit()
    return appointment


def cancel_appointment(
    db: Session,
    *,
    appointment: ContractorAppointment,
    cancelled_by: str,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
    commit: bool = True,
) -> ContractorAppointment:
    if cancelled_by not in ("customer", "contractor"):
        raise BookingError("cancelled_by must be customer or contractor")
    if appointment.status == "cancelled":
        raise BookingError("Booking is already cancelled")
    if appointment.status == "completed":
        raise BookingError("Completed appointments cannot be cancelled")
    now = now or datetime.utcnow()
    appointment.status = "cancelled"
    appointment.cancelled_at = now
    appointment.cancelled_by = cancelled_by
    appointment.cancellation_reason = reason
    appointment.updated_at = now
    if commit:
        db.commit()
    return appointment


def complete_appointment(db: Session, *, appointment: ContractorAppointment) -> ContractorAppointment:
    if appointment.status != "confirmed":
        raise BookingError(f"Appointment is {appointment.status}")
    appointment.status = "completed"
    appointment.completed_at = datetime.utcnow()
    appointment.updated_at = appointment.completed_at
    db.commit()
    return appointment


def list_appointments(
    db: Session,
    *,
    contractor_id: Optional[int] = None,
    customer_user_id: Optional[int] = None,
    landlord_id: Optional[int] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    statuses: Iterable[str] = ("confirmed", "completed"),
) -> list[ContractorAppointment]:
    q = select(ContractorAppointment).where(ContractorAppointment.status.in_(tuple(statuses)))
    if contractor_id is not None:
        q = q.where(ContractorAppointment.contractor_id == int(contractor_id))
    if customer_user_id is not None:
        q = q.where(ContractorAppointment.customer_user_id == int(customer_user_id))
    if landlord_id is not None:
        q = q.where(ContractorAppointment.landlord_id == int(landlord_id))
    if start is not None:
        q = q.where(ContractorAppointment.end_time > start)
    if end is not None:
        q = q.where(ContractorAppointment.start_time < end)
    return list(db.scalars(q.order_by(ContractorAppointment.start_time)).all())


def appointments_needing_reminders(db: Session, *, now: Optional[datetime] = None) -> list[ContractorAppointment]:
    """Confirmed appointments starting between 24h and 24h + 5min from now, not yet reminded."""
    now = now or datetime.utcnow()
    lo = now + REMINDER_LEAD
    hi = lo + REMINDER_WINDOW
    return list(
        db.scalars(
            select(ContractorAppointment).where(
                ContractorAppointment.status == "confirmed",
                ContractorAppointment.reminder_sent_at.is_(None),
                ContractorAppointment.start_time >= lo,
                ContractorAppointment.start_time <= hi,
            )
        ).all()
    )


def send_appointment_reminders(db: Session, *, now: Optional[datetime] = None) -> int:
    now = now or datetime.utcnow()
    rows = appointments_needing_reminders(db, now=now)
    for appt in rows:
        contractor = db.get(ContractorProfile, appt.contractor_id)
        customer = db.get(AppUser, appt.customer_user_id)
        when = appt.start_time.strftime("%A, %B %d at %I:%M %p")
        for to in (customer.email if customer else None, contractor.email if contractor else None):
            if to:
                send_email(
                    to,
                    f"Reminder: {appt.title} tomorrow",
                    "Appointment reminder",
                    [f"This is a reminder of your appointment: {appt.title}.", f"When: {when}."]
                    + ([f"Where: {appt.address}."] if appt.address else []),
                )
        appt.reminder_sent_at = now
    db.commit()
    return len(rows)

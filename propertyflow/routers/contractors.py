# propertyflow/routers/contractors.py
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..db import get_db
from ..domain.scheduling import WEEKDAYS, AvailabilityRules, DaySchedule, default_weekly_schedule
from ..models import AppUser, ContractorAppointment
from ..schemas import (
    AppointmentCreate,
    AppointmentOut,
    AppointmentUpdate,
    AvailabilityIn,
    BookingCancelIn,
    BookingCreate,
    ContractorProfileIn,
    ContractorProfileOut,
    DepositIn,
    DepositPaidIn,
    TimeSlotOut,
)
from ..services.instant_booking import (
    apply_deposit,
    available_instant_slots,
    cancel_booking,
    create_booking,
    get_booking,
    mark_deposit_paid,
    record_deposit_received,
)
from ..services.scheduler import (
    complete_appointment,
    contractor_for_user,
    create_appointment,
    get_available_slots,
    get_rules,
    list_appointments,
    list_contractors,
    must_get_contractor,
    set_availability,
    update_appointment,
    upsert_profile,
)

router = APIRouter(prefix="/contractors", tags=["contractors"])


def _my_profile(db: Session, user: AppUser):
    profile = contractor_for_user(db, user.id)
    if profile is None:
        raise HTTPException(status_code=404, detail="contractor profile not found")
    return profile


def _must_see_booking(db: Session, booking_id: int, user: AppUser) -> ContractorAppointment:
    """The customer and the contractor can act on a booking; anyone else gets 404."""
    appt = get_booking(db, booking_id=booking_id)
    if appt is None:
        raise HTTPException(status_code=404, detail="booking not found")
    if appt.customer_user_id == user.id:
        return appt
    profile = contractor_for_user(db, user.id)
    if profile is not None and profile.id == appt.contractor_id:
        return appt
    raise HTTPException(status_code=404, detail="booking not found")


def _party(appt: ContractorAppointment, user: AppUser) -> str:
    return "customer" if appt.customer_user_id == user.id else "contractor"


# -------------------- Profiles --------------------

@router.get("", response_model=list[ContractorProfileOut])
def get_contractors(
    specialty: Optional[str] = Query(default=None),
    instant_only: bool = Query(default=False),
    db: Session = Depends(get_db),
    user: AppUser = Depends(get_current_user),
):
    return list_contractors(db, specialty=specialty, instant_only=instant_only)


@router.get("/me", response_model=ContractorProfileOut)
def get_my_profile(db: Session = Depends(get_db), user: AppUser = Depends(get_current_user)):
    return _my_profile(db, user)


@router.put("/me", response_model=ContractorProfileOut)
def put_my_profile(payload: ContractorProfileIn, db: Session = Depends(get_db), user: AppUser = Depends(get_current_user)):
    return upsert_profile(db, user_id=user.id, fields=payload.model_dump(exclude_unset=True))


@router.get("/me/availability")
def get_my_availability(db: Session = Depends(get_db), user: AppUser = Depends(get_current_user)):
    profile = _my_profile(db, user)
    rules = get_rules(db, profile.id)
    return {
        "weekly_schedule": {k: {"start": v.start, "end": v.end, "enabled": v.enabled} for k, v in rules.weekly.items()},
        "buffer_minutes": rules.buffer_minutes,
        "min_notice_hours": rules.min_notice_hours,
        "max_advance_days": rules.max_advance_days,
        "blocked_dates": sorted(d.isoformat() for d in rules.blocked_dates),
    }


@router.put("/me/availability")
def put_my_availability(payload: AvailabilityIn, db: Session = Depends(get_db), user: AppUser = Depends(get_current_user)):
    profile = _my_profile(db, user)
    unknown = set(payload.weekly_schedule) - set(WEEKDAYS)
    if unknown:
        raise HTTPException(status_code=400, detail=f"unknown weekday(s): {', '.join(sorted(unknown))}")

    weekly = default_weekly_schedule()
    for day, sched in payload.weekly_schedule.items():
        if sched.enabled and sched.end <= sched.start:
            raise HTTPException(status_code=400, detail=f"{day}: end must be after start")
        weekly[day] = DaySchedule(start=sched.start, end=sched.end, enabled=sched.enabled)

    rules = AvailabilityRules(
        weekly=weekly,
        buffer_minutes=payload.buffer_minutes,
        min_notice_hours=payload.min_notice_hours,
        max_advance_days=payload.max_advance_days,
        blocked_dates=tuple(payload.blocked_dates),
    )
    set_availability(db, contractor_id=profile.id, rules=rules)
    return {"ok": True}


@router.get("/me/appointments", response_model=list[AppointmentOut])
def my_contractor_appointments(
    start: Optional[datetime] = Query(default=None),
    end: Optional[datetime] = Query(default=None),
    db: Session = Depends(get_db),
    user: AppUser = Depends(get_current_user),
):
    profile = _my_profile(db, user)
    return list_appointments(db, contractor_id=profile.id, start=start, end=end)


@router.get("/{contractor_id}", response_model=ContractorProfileOut)
def get_contractor(contractor_id: int, db: Session = Depends(get_db), user: AppUser = Depends(get_current_user)):
    return must_get_contractor(db, contractor_id)


@router.get("/{contractor_id}/slots", response_model=list[TimeSlotOut])
def get_slots(
    contractor_id: int,
    day: date = Query(...),
    duration_minutes: int = Query(default=60, ge=15, le=480),
    service_type: Optional[str] = Query(default=None, description="When set, only instant-bookable slots"),
    db: Session = Depends(get_db),
    user: AppUser = Depends(get_current_user),
):
    if service_type:
        return available_instant_slots(
            db, contractor_id=contractor_id, day=day, service_type=service_type, duration_minutes=duration_minutes
        )
    must_get_contractor(db, contractor_id)
    return get_available_slots(db, contractor_id=contractor_id, day=day, duration_minutes=duration_minutes)


# -------------------- Appointments --------------------

@router.post("/appointments", response_model=AppointmentOut)
def post_appointment(payload: AppointmentCreate, db: Session = Depends(get_db), user: AppUser = Depends(get_current_user)):
    return create_appointment(db, customer_user_id=user.id, **payload.model_dump())


@router.get("/appointments/mine", response_model=list[AppointmentOut])
def my_appointments(db: Session = Depends(get_db), user: AppUser = Depends(get_current_user)):
    now = datetime.utcnow()
    return list_appointments(db, customer_user_id=user.id, start=now - timedelta(days=30))


@router.patch("/appointments/{appointment_id}", response_model=AppointmentOut)
def patch_appointment(
    appointment_id: int,
    payload: AppointmentUpdate,
    db: Session = Depends(get_db),
    user: AppUser = Depends(get_current_user),
):
    appt = _must_see_booking(db, appointment_id, user)
    return update_appointment(db, appointment=appt, changes=payload.model_dump(exclude_unset=True))


@router.post("/appointments/{appointment_id}/complete", response_model=AppointmentOut)
def post_complete(appointment_id: int, db: Session = Depends(get_db), user: AppUser = Depends(get_current_user)):
    appt = _must_see_booking(db, appointment_id, user)
    if _party(appt, user) != "contractor":
        raise HTTPException(status_code=403, detail="only the contractor can complete an appointment")
    return complete_appointment(db, appointment=appt)


# -------------------- Instant booking --------------------

@router.post("/bookings/instant", response_model=AppointmentOut)
def post_instant_booking(payload: BookingCreate, db: Session = Depends(get_db), user: AppUser = Depends(get_current_user)):
    return create_booking(db, customer_user_id=user.id, **payload.model_dump())


@router.post("/bookings/{booking_id}/cancel")
def post_cancel_booking(
    booking_id: int,
    payload: BookingCancelIn,
    db: Session = Depends(get_db),
    user: AppUser = Depends(get_current_user),
):
    appt = _must_see_booking(db, booking_id, user)
    res = cancel_booking(db, booking_id=appt.id, cancelled_by=_party(appt, user), reason=payload.reason)
    return {
        "success": res.success,
        "message": res.message,
        "refund_amount": res.refund_amount,
        "refund_status": res.refund_status,
        "booking": AppointmentOut.model_validate(res.appointment),
    }


@router.post("/bookings/{booking_id}/deposit")
def post_deposit(booking_id: int, payload: DepositIn, db: Session = Depends(get_db), user: AppUser = Depends(get_current_user)):
    appt = _must_see_booking(db, booking_id, user)
    return apply_deposit(db, booking_id=appt.id, amount=payload.amount)


@router.post("/bookings/{booking_id}/deposit-paid", response_model=AppointmentOut)
def post_deposit_paid(
    booking_id: int,
    payload: DepositPaidIn,
    db: Session = Depends(get_db),
    user: AppUser = Depends(get_current_user),
):
    appt = _must_see_booking(db, booking_id, user)
    return mark_deposit_paid(db, booking_id=appt.id, payment_intent_id=payload.payment_intent_id)


@router.post("/bookings/{booking_id}/deposit-received", response_model=AppointmentOut)
def post_deposit_received(
    booking_id: int,
    payload: DepositIn,
    db: Session = Depends(get_db),
    user: AppUser = Depends(get_current_user),
):
    """Offline deposit (cash, check); only the contractor can vouch for it."""
    appt = _must_see_booking(db, booking_id, user)
    if _party(appt, user) != "contractor":
        raise HTTPException(status_code=403, detail="only the contractor can record an offline deposit")
    return record_deposit_received(db, booking_id=appt.id, amount=payload.amount)

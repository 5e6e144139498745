# propertyflow/services/instant_booking.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..domain.cancellation import DEFAULT_CANCELLATION_HOURS, DEFAULT_POLICY, decide_refund
from ..domain.scheduling import TimeSlot
from ..errors import BookingError, NotFoundError
from ..models import ContractorAppointment, ContractorProfile
from . import payments
from .scheduler import cancel_appointment, create_appointment, get_available_slots, must_get_contractor, specialties

log = logging.getLogger(__name__)

REFUND_FAILED_NOTE = " Refund processing failed - please contact support."


@dataclass(frozen=True)
class CancellationResult:
    appointment: ContractorAppointment
    refund_amount: float
    refund_status: Optional[str]
    message: str
    success: bool = True


def available_instant_slots(
    db: Session,
    *,
    contractor_id: int,
    day: date,
    service_type: str,
    duration_minutes: int = 60,
    now: Optional[datetime] = None,
) -> list[TimeSlot]:
    """Empty unless the contractor takes instant bookings for this service type."""
    contractor = db.get(ContractorProfile, int(contractor_id))
    if contractor is None or not contractor.instant_booking_enabled:
        return []
    if service_type not in specialties(contractor):
        return []
    return get_available_slots(db, contractor_id=contractor.id, day=day, duration_minutes=duration_minutes, now=now)


def create_booking(
    db: Session,
    *,
    contractor_id: int,
    customer_user_id: int,
    service_type: str,
    start_time: datetime,
    end_time: Optional[datetime] = None,
    duration_minutes: int = 60,
    address: Optional[str] = None,
    notes: Optional[str] = None,
    deposit_amount: Optional[float] = None,
    landlord_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> ContractorAppointment:
    contractor = db.get(ContractorProfile, int(contractor_id))
    if contractor is None or not contractor.instant_booking_enabled:
        raise BookingError("Instant booking is not enabled for this contractor")
    if service_type not in specialties(contractor):
        raise BookingError("Contractor does not offer this service type")

    end_time = end_time or start_time + timedelta(minutes=duration_minutes)

    deposit = deposit_amount
    if contractor.deposit_required and not deposit:
        if contractor.deposit_amount:
            deposit = float(contractor.deposit_amount)
        elif contractor.deposit_percent:
            # the job total is unknown at booking time
            raise BookingError("Deposit amount is required for this booking")

    try:
        return create_appointment(
            db,
            contractor_id=contractor.id,
            customer_user_id=customer_user_id,
            landlord_id=landlord_id,
            service_type=service_type,
            title=f"{service_type} - Instant Booking",
            description=notes,
            address=address,
            start_time=start_time,
            end_time=end_time,
            deposit_amount=deposit,
            now=now,
        )
    except BookingError as e:
        if e.code == "SLOT_UNAVAILABLE":
            raise BookingError("Time slot is no longer available", code="SLOT_UNAVAILABLE", status_code=409) from e
        raise


def _hours_until(start: datetime, now: datetime) -> int:
    return int((start - now).total_seconds() // 3600)


def _policy_message(cancelled_by: str, policy: str, window: int, refund: float, deposit_paid: bool) -> str:
    if not deposit_paid:
        return "Booking cancelled successfully"
    if cancelled_by == "contractor":
        return "Booking cancelled by contractor. Full deposit refund will be processed."
    if policy == "flexible":
        return "Booking cancelled. 50% deposit refund will be processed per flexible cancellation policy."
    if policy == "strict":
        return "Booking cancelled. No refund available per strict cancellation policy."
    if refund > 0:
        return "Booking cancelled. Full deposit refund will be processed."
    return f"Booking cancelled. No refund available for cancellations within {window} hours per moderate cancellation policy."


def cancel_booking(
    db: Session,
    *,
    booking_id: int,
    cancelled_by: str,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> CancellationResult:
    """
    Cancel and settle the deposit under the contractor's policy.

    Refunds go through the payment gateway when one is configured; a failed
    refund is recorded and reported in the message rather than raised.
    """
    now = now or datetime.utcnow()
    appt = db.get(ContractorAppointment, int(booking_id))
    if appt is None:
        raise NotFoundError("Booking not found")
    if appt.status == "cancelled":
        raise BookingError("Booking is already cancelled")

    contractor = must_get_contractor(db, appt.contractor_id)
    policy = contractor.cancellation_policy or DEFAULT_POLICY
    window = contractor.cancellation_hours or DEFAULT_CANCELLATION_HOURS

    decision = decide_refund(
        cancelled_by=cancelled_by,
        deposit_amount=appt.deposit_amount,
        deposit_paid=appt.deposit_paid,
        policy=policy,
        hours_until_start=_hours_until(appt.start_time, now),
        cancellation_hours=window,
    )
    message = _policy_message(cancelled_by, policy, window, decision.amount, bool(appt.deposit_paid and appt.deposit_amount))

    cancel_appointment(db, appointment=appt, cancelled_by=cancelled_by, reason=reason, now=now, commit=False)

    refund_status: Optional[str] = None
    if decision.amount > 0:
        appt.refund_amount = decision.amount
        gateway = payments.get_gateway()
        if gateway is None or not appt.deposit_payment_id:
            refund_status = "pending_manual"
        else:
            try:
                gateway.refund(payment_intent_id=appt.deposit_payment_id, amount=decision.amount)
                refund_status = "refunded"
            except payments.PaymentError:
                log.exception("deposit refund failed", extra={"booking_id": appt.id})
                refund_status = "failed"
                message += REFUND_FAILED_NOTE
        appt.refund_status = refund_status

    db.commit()
    return CancellationResult(appointment=appt, refund_amount=decision.amount, refund_status=refund_status, message=message)


def apply_deposit(db: Session, *, booking_id: int, amount: Optional[float] = None) -> dict[str, Any]:
    """Open a payment intent for the booking's deposit and remember its id."""
    gateway = payments.get_gateway()
    if gateway is None:
        raise BookingError("Payments are not configured", code="PAYMENTS_DISABLED", status_code=503)
    appt = db.get(ContractorAppointment, int(booking_id))
    if appt is None:
        raise NotFoundError("Booking not found")
    if appt.deposit_paid:
        raise BookingError("Deposit has already been paid")
    amount = amount or appt.deposit_amount
    if not amount or float(amount) <= 0:
        raise BookingError("Deposit amount is required for this booking")

    contractor = must_get_contractor(db, appt.contractor_id)
    try:
        intent = gateway.create_payment_intent(
            amount=float(amount),
            description=f"Booking deposit for {contractor.business_name}",
            metadata={
                "booking_id": appt.id,
                "contractor_id": appt.contractor_id,
                "customer_id": appt.customer_user_id,
                "type": "booking_deposit",
            },
        )
    except payments.PaymentError as e:
        raise BookingError(str(e), code="PAYMENT_FAILED", status_code=402) from e

    appt.deposit_payment_id = intent.id
    appt.deposit_amount = round(float(amount), 2)
    appt.updated_at = datetime.utcnow()
    db.commit()
    return {"client_secret": intent.client_secret, "amount": round(float(amount), 2), "payment_intent_id": intent.id}


def _payment_mismatch(message: str) -> BookingError:
    return BookingError(message, code="PAYMENT_MISMATCH", status_code=409)


def mark_deposit_paid(db: Session, *, booking_id: int, payment_intent_id: str) -> ContractorAppointment:
    """
    Record a card deposit once the gateway confirms it.

    The intent must have succeeded, belong to this booking and cover the
    deposit amount; the caller's word is never enough.
    """
    gateway = payments.get_gateway()
    if gateway is None:
        raise BookingError("Payments are not configured", code="PAYMENTS_DISABLED", status_code=503)
    appt = db.get(ContractorAppointment, int(booking_id))
    if appt is None:
        raise NotFoundError("Booking not found")
    if appt.deposit_paid:
        raise BookingError("Deposit has already been paid")
    if appt.deposit_payment_id and appt.deposit_payment_id != payment_intent_id:
        raise _payment_mismatch("Payment does not match this booking")

    try:
        intent = gateway.retrieve_payment_intent(payment_intent_id)
    except payments.PaymentError as e:
        raise BookingError(str(e), code="PAYMENT_FAILED", status_code=402) from e

    if intent.status != "succeeded":
        raise BookingError("Deposit payment has not completed", code="PAYMENT_NOT_CONFIRMED", status_code=409)
    if intent.metadata.get("booking_id") != str(appt.id):
        raise _payment_mismatch("Payment does not match this booking")
    if appt.deposit_amount and intent.amount_cents != payments.to_cents(appt.deposit_amount):
        raise _payment_mismatch("Payment amount does not match the deposit")

    appt.deposit_paid = True
    appt.deposit_payment_id = intent.id
    appt.updated_at = datetime.utcnow()
    db.commit()
    return appt


def record_deposit_received(db: Session, *, booking_id: int, amount: Optional[float] = None) -> ContractorAppointment:
    """Contractor confirms a deposit taken outside the gateway (cash, check)."""
    appt = db.get(ContractorAppointment, int(booking_id))
    if appt is None:
        raise NotFoundError("Booking not found")
    if appt.deposit_paid:
        raise BookingError("Deposit has already been paid")
    amount = amount or appt.deposit_amount
    if not amount or float(amount) <= 0:
        raise BookingError("Deposit amount is required for this booking")
    appt.deposit_amount = round(float(amount), 2)
    appt.deposit_paid = True
    appt.deposit_payment_id = None
    appt.updated_at = datetime.utcnow()
    db.commit()
    return appt


def get_booking(db: Session, *, booking_id: int) -> Optional[ContractorAppointment]:
    return db.get(ContractorAppointment, int(booking_id))


def booking_to_dict(appt: ContractorAppointment) -> dict[str, Any]:
    return {
        "id": appt.id,
        "contractor_id": appt.contractor_id,
        "customer_id": appt.customer_user_id,
        "service_type": appt.service_type,
        "title": appt.title,
        "description": appt.description,
        "address": appt.address,
        "start_time": appt.start_time,
        "end_time": appt.end_time,
        "status": appt.status,
        "deposit_amount": appt.deposit_amount,
        "deposit_paid": appt.deposit_paid,
        "deposit_payment_id": appt.deposit_payment_id,
        "refund_amount": appt.refund_amount,
        "refund_status": appt.refund_status,
        "created_at": appt.created_at,
        "updated_at": appt.updated_at,
    }

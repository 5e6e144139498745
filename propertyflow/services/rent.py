# propertyflow/services/rent.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.lease_document import format_currency, format_date
from ..domain.rent_schedule import (
    LATE_FEE_ELIGIBLE,
    add_months,
    billing_date,
    compute_late_fee,
    is_past_grace,
    parse_reminder_days,
    reminder_offset_for,
)
from ..models import Landlord, Lease, Property, RecurringCharge, RentPayment, RentReminderLog, Tenant
from .notifications import send_email

log = logging.getLogger(__name__)

PAYMENT_STATUSES = ("pending", "paid", "late", "cancelled")
OPEN_STATUSES = ("pending", "late")


@dataclass(frozen=True)
class JobResult:
    job: str
    processed: int
    created: int

    def as_dict(self) -> dict[str, object]:
        return {"job": self.job, "processed": self.processed, "created": self.created}


def _charge_exists(db: Session, *, lease_id: int, charge_type: str, due_date: date) -> bool:
    row = db.scalar(
        select(RentPayment.id).where(
            RentPayment.lease_id == int(lease_id),
            RentPayment.charge_type == charge_type,
            RentPayment.due_date == due_date,
        )
    )
    return row is not None


def _rent_due_in(lease: Lease, year: int, month: int) -> Optional[date]:
    due = billing_date(year, month, lease.billing_day_of_month or 1)
    start = lease.start_date
    if due < start or (due.year, due.month) == (start.year, start.month):
        return None
    if lease.end_date is not None and due > lease.end_date:
        return None
    return due


def rent_due_dates(lease: Lease, today: date, lead_days: int = 0) -> list[date]:
    """
    Monthly rent due dates to have on the books as of `today`.

    This month's charge (unless it is the move-in month or outside the
    lease), plus next month's once its due date is within `lead_days`, so
    reminders at every offset have a charge to point at.
    """
    out: list[date] = []
    this_month = _rent_due_in(lease, today.year, today.month)
    if this_month is not None:
        out.append(this_month)
    nxt = add_months(date(today.year, today.month, 1), 1, 1)
    upcoming = _rent_due_in(lease, nxt.year, nxt.month)
    if upcoming is not None and upcoming <= today + timedelta(days=int(lead_days)):
        out.append(upcoming)
    return out


def posting_lead_days(landlord: Optional[Landlord]) -> int:
    if landlord is None or not landlord.rent_reminders_enabled:
        return 0
    return max(parse_reminder_days(landlord.reminder_days_before_json), default=0)


def post_rent_charges(db: Session, *, today: Optional[date] = None) -> JobResult:
    today = today or datetime.utcnow().date()
    leases = db.scalars(select(Lease).where(Lease.status == "active")).all()
    lead_by_landlord: dict[int, int] = {}
    created = 0
    for lease in leases:
        if lease.landlord_id not in lead_by_landlord:
            lead_by_landlord[lease.landlord_id] = posting_lead_days(db.get(Landlord, lease.landlord_id))
        for due in rent_due_dates(lease, today, lead_by_landlord[lease.landlord_id]):
            if _charge_exists(db, lease_id=lease.id, charge_type="rent", due_date=due):
                continue
            db.add(
                RentPayment(
                    landlord_id=lease.landlord_id,
                    lease_id=lease.id,
                    tenant_id=lease.tenant_id,
                    charge_type="rent",
                    description=f"Rent - {due.strftime('%B %Y')}",
                    amount=round(float(lease.rent_amount), 2),
                    due_date=due,
                    status="pending",
                )
            )
            db.flush()
            created += 1
    db.commit()
    log.info("rent charges posted: %s", created, extra={"job": "post_rent_charges"})
    return JobResult("post_rent_charges", len(leases), created)


def post_recurring_charges(db: Session, *, today: Optional[date] = None) -> JobResult:
    """Post every due occurrence of active recurring charges and advance their next post date."""
    today = today or datetime.utcnow().date()
    rows = db.scalars(
        select(RecurringCharge).where(RecurringCharge.status == "active", RecurringCharge.next_post_date <= today)
    ).all()
    created = 0
    for rc in rows:
        lease = db.get(Lease, rc.lease_id)
        if lease is None or lease.status != "active":
            continue
        while rc.status == "active" and rc.next_post_date <= today:
            due = rc.next_post_date
            if rc.end_date is not None and due > rc.end_date:
                rc.status = "ended"
                break
            if not _charge_exists(db, lease_id=rc.lease_id, charge_type=rc.charge_type, due_date=due):
                db.add(
                    RentPayment(
                        landlord_id=rc.landlord_id,
                        lease_id=rc.lease_id,
                        tenant_id=rc.tenant_id,
                        charge_type=rc.charge_type,
                        description=rc.description,
                        amount=rc.amount,
                        due_date=due,
                        status="pending",
                    )
                )
                db.flush()
                created += 1
            rc.next_post_date = add_months(due, 1, rc.day_of_month)
    db.commit()
    return JobResult("post_recurring_charges", len(rows), created)


def send_rent_reminders(db: Session, *, today: Optional[date] = None) -> JobResult:
    """
    Email the tenant when an open charge is exactly N days out for each N in
    the landlord's reminder offsets. One reminder per charge and offset.
    """
    today = today or datetime.utcnow().date()
    landlords = db.scalars(select(Landlord).where(Landlord.rent_reminders_enabled.is_(True))).all()
    processed = sent = 0
    for landlord in landlords:
        offsets = parse_reminder_days(landlord.reminder_days_before_json)
        horizon = today + timedelta(days=max(offsets))
        payments = db.scalars(
            select(RentPayment).where(
                RentPayment.landlord_id == landlord.id,
                RentPayment.status == "pending",
                RentPayment.due_date >= today,
                RentPayment.due_date <= horizon,
            )
        ).all()
        for p in payments:
            processed += 1
            offset = reminder_offset_for(p.due_date, today, offsets)
            if offset is None:
                continue
            already = db.scalar(
                select(RentReminderLog.id).where(RentReminderLog.rent_payment_id == p.id, RentReminderLog.days_before == offset)
            )
            if already is not None:
                continue
            tenant = db.get(Tenant, p.tenant_id)
            if tenant is None or not tenant.email:
                continue
            when = "today" if offset == 0 else f"in {offset} day" + ("" if offset == 1 else "s")
            send_email(
                tenant.email,
                f"Rent reminder: {format_currency(p.amount)} due {format_date(p.due_date)}",
                "Upcoming payment",
                [
                    f"Hi {tenant.full_name}, this is a reminder that {p.description or p.charge_type} of {format_currency(p.amount)} is due {when}.",
                    f"Due date: {format_date(p.due_date)}.",
                ],
            )
            db.add(RentReminderLog(landlord_id=landlord.id, rent_payment_id=p.id, days_before=offset, sent_at=datetime.utcnow()))
            sent += 1
    db.commit()
    log.info("rent reminders sent: %s", sent, extra={"job": "send_rent_reminders"})
    return JobResult("send_rent_reminders", processed, sent)


def _has_late_fee(db: Session, payment_id: int) -> bool:
    return db.scalar(select(RentPayment.id).where(RentPayment.late_fee_for_id == int(payment_id))) is not None


def assess_late_fees(db: Session, *, today: Optional[date] = None) -> JobResult:
    """
    Rent still pending after the grace period is marked late and gets one
    late-fee charge, capped by the property's state limit.
    """
    today = today or datetime.utcnow().date()
    landlords = db.scalars(select(Landlord).where(Landlord.late_fees_enabled.is_(True))).all()
    processed = created = 0
    for landlord in landlords:
        rows = db.scalars(
            select(RentPayment).where(
                RentPayment.landlord_id == landlord.id,
                RentPayment.status.in_(OPEN_STATUSES),
                RentPayment.charge_type.in_(LATE_FEE_ELIGIBLE),
                RentPayment.due_date < today,
            )
        ).all()
        for p in rows:
            processed += 1
            if not is_past_grace(p.due_date, landlord.late_fee_grace_days, today):
                continue
            p.status = "late"
            if _has_late_fee(db, p.id):
                continue
            lease = db.get(Lease, p.lease_id)
            prop = db.get(Property, lease.property_id) if lease else None
            fee = compute_late_fee(
                rent_amount=lease.rent_amount if lease else p.amount,
                fee_type=landlord.late_fee_type,
                fee_amount=landlord.late_fee_amount,
                state=prop.state if prop else None,
            )
            if fee <= 0:
                continue
            db.add(
                RentPayment(
                    landlord_id=p.landlord_id,
                    lease_id=p.lease_id,
                    tenant_id=p.tenant_id,
                    charge_type="late_fee",
                    description=f"Late Fee - {p.description or p.charge_type}",
                    amount=fee,
                    # one day past grace; unique per original due date
                    due_date=p.due_date + timedelta(days=int(landlord.late_fee_grace_days) + 1),
                    status="pending",
                    late_fee_for_id=p.id,
                )
            )
            db.flush()
            created += 1
    db.commit()
    log.info("late fees assessed: %s", created, extra={"job": "assess_late_fees"})
    return JobResult("assess_late_fees", processed, created)


def mark_paid(db: Session, *, payment: RentPayment, method: str = "manual", paid_at: Optional[datetime] = None) -> RentPayment:
    if payment.status == "paid":
        raise ValueError("payment already marked paid")
    if payment.status == "cancelled":
        raise ValueError("cannot pay a cancelled charge")
    payment.status = "paid"
    payment.paid_at = paid_at or datetime.utcnow()
    payment.payment_method = method
    db.commit()
    return payment


def cancel_charge(db: Session, *, payment: RentPayment) -> RentPayment:
    if payment.status == "paid":
        raise ValueError("cannot cancel a paid charge")
    payment.status = "cancelled"
    db.commit()
    return payment


def list_payments(
    db: Session,
    *,
    landlord_id: int,
    lease_id: Optional[int] = None,
    tenant_id: Optional[int] = None,
    status: Optional[str] = None,
    limit: int = 500,
) -> list[RentPayment]:
    q = select(RentPayment).where(RentPayment.landlord_id == int(landlord_id))
    if lease_id is not None:
        q = q.where(RentPayment.lease_id == int(lease_id))
    if tenant_id is not None:
        q = q.where(RentPayment.tenant_id == int(tenant_id))
    if status:
        q = q.where(RentPayment.status == status)
    return list(db.scalars(q.order_by(RentPayment.due_date.desc(), RentPayment.id.desc()).limit(limit)).all())

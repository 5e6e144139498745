# propertyflow/services/move_in_charges.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.rent_schedule import next_billing_date
from ..models import Landlord, Lease, RecurringCharge, RentPayment

log = logging.getLogger(__name__)

MOVE_IN_CHARGE_TYPES = ("first_month_rent", "security_deposit", "last_month_rent", "pet_deposit_annual", "cleaning_fee")


@dataclass
class MoveInChargeResult:
    created: List[RentPayment] = field(default_factory=list)
    recurring: List[RecurringCharge] = field(default_factory=list)
    skipped: bool = False

    @property
    def total_amount(self) -> float:
        return round(sum(p.amount for p in self.created), 2)


def has_move_in_charges(db: Session, *, lease_id: int) -> bool:
    row = db.scalar(
        select(RentPayment.id).where(RentPayment.lease_id == int(lease_id), RentPayment.charge_type.in_(MOVE_IN_CHARGE_TYPES)).limit(1)
    )
    return row is not None


def _months_label(months: float) -> str:
    n = int(months) if float(months).is_integer() else months
    return f"{n} month" + ("" if months == 1 else "s")


def post_move_in_charges(db: Session, *, lease: Lease, landlord: Landlord, today: Optional[date] = None) -> MoveInChargeResult:
    """
    Charges due when a lease becomes active: first month, deposit, optional
    last month, pet deposit and cleaning fee, all due on the start date;
    plus a monthly pet-rent recurring charge.

    Does nothing if the lease already has any move-in charge.
    """
    result = MoveInChargeResult()
    if has_move_in_charges(db, lease_id=lease.id):
        result.skipped = True
        return result

    rent = float(lease.rent_amount)
    due = lease.start_date or (today or date.today())

    def _charge(charge_type: str, amount: float, description: str) -> None:
        p = RentPayment(
            landlord_id=lease.landlord_id,
            lease_id=lease.id,
            tenant_id=lease.tenant_id,
            charge_type=charge_type,
            description=description,
            amount=round(float(amount), 2),
            due_date=due,
            status="pending",
        )
        db.add(p)
        result.created.append(p)

    _charge("first_month_rent", rent, "First Month Rent")

    months = float(landlord.security_deposit_months or 0)
    if months > 0:
        _charge("security_deposit", rent * months, f"Security Deposit ({_months_label(months)})")

    if landlord.last_month_rent_required:
        _charge("last_month_rent", rent, "Last Month Rent")

    if landlord.pet_deposit_enabled and landlord.pet_deposit_amount:
        _charge("pet_deposit_annual", landlord.pet_deposit_amount, "Pet Deposit")

    if landlord.cleaning_fee_enabled and landlord.cleaning_fee_amount:
        _charge("cleaning_fee", landlord.cleaning_fee_amount, "Cleaning Fee")

    if landlord.pet_rent_enabled and landlord.pet_rent_amount:
        day = int(lease.billing_day_of_month or 1)
        rc = RecurringCharge(
            landlord_id=lease.landlord_id,
            lease_id=lease.id,
            tenant_id=lease.tenant_id,
            charge_type="pet_rent",
            description="Monthly Pet Rent",
            amount=round(float(landlord.pet_rent_amount), 2),
            day_of_month=day,
            status="active",
            start_date=due,
            end_date=lease.end_date,
            next_post_date=next_billing_date(today or date.today(), day),
        )
        db.add(rc)
        result.recurring.append(rc)

    db.flush()
    log.info("move-in charges posted", extra={"lease_id": lease.id, "landlord_id": lease.landlord_id})
    return result

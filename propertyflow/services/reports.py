# propertyflow/services/reports.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.financials import (
    ExpenseRow,
    FinancialReport,
    PaymentRow,
    PropertySnapshot,
    ReportPeriod,
    build_report,
    resolve_period,
)
from ..domain.lease_data import format_address
from ..models import Expense, Lease, Property, RentPayment, Unit


def _snapshots(db: Session, landlord_id: int) -> list[PropertySnapshot]:
    props = db.scalars(select(Property).where(Property.landlord_id == int(landlord_id)).order_by(Property.name)).all()
    out = []
    for p in props:
        units = db.scalars(select(Unit).where(Unit.property_id == p.id)).all()
        out.append(
            PropertySnapshot(
                id=p.id,
                name=p.name,
                address=format_address(p.street, p.city, p.state, p.zip_code),
                unit_count=len(units),
                occupied_units=sum(1 for u in units if not u.is_available),
            )
        )
    return out


def _payments(db: Session, landlord_id: int, period: ReportPeriod) -> list[PaymentRow]:
    rows = db.execute(
        select(RentPayment, Property.id, Property.name, Unit.name)
        .join(Lease, Lease.id == RentPayment.lease_id)
        .join(Property, Property.id == Lease.property_id)
        .join(Unit, Unit.id == Lease.unit_id)
        .where(
            RentPayment.landlord_id == int(landlord_id),
            RentPayment.due_date >= period.start,
            RentPayment.due_date <= period.end,
            RentPayment.status != "cancelled",
        )
    ).all()
    return [
        PaymentRow(property_id=pid, property_name=pname, unit_name=uname, due_date=p.due_date, amount=float(p.amount), status=p.status)
        for p, pid, pname, uname in rows
    ]


def _expenses(db: Session, landlord_id: int, period: ReportPeriod) -> list[ExpenseRow]:
    rows = db.execute(
        select(Expense, Property.name)
        .join(Property, Property.id == Expense.property_id)
        .where(
            Expense.landlord_id == int(landlord_id),
            Expense.incurred_at.is_not(None),
            Expense.incurred_at >= period.start,
            Expense.incurred_at <= period.end,
        )
    ).all()
    return [
        ExpenseRow(
            property_id=e.property_id,
            property_name=pname,
            incurred_at=e.incurred_at,
            amount=float(e.amount),
            category=e.category,
            description=e.description,
        )
        for e, pname in rows
    ]


def financial_report(
    db: Session,
    *,
    landlord_id: int,
    period: str = "yearly",
    year: Optional[int] = None,
    quarter: Optional[int] = None,
    month: Optional[int] = None,
    now: Optional[datetime] = None,
) -> FinancialReport:
    rp = resolve_period(period, year, quarter, month)
    return build_report(
        period=rp,
        properties=_snapshots(db, landlord_id),
        payments=_payments(db, landlord_id, rp),
        expenses=_expenses(db, landlord_id, rp),
        now=now,
    )

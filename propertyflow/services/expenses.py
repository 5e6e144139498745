# propertyflow/services/expenses.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import Expense
from .ownership import must_get_property

EXPENSE_CATEGORIES = (
    "maintenance",
    "repairs",
    "utilities",
    "insurance",
    "property_tax",
    "mortgage",
    "management",
    "landscaping",
    "cleaning",
    "supplies",
    "legal",
    "other",
)


def record_expense(
    db: Session,
    *,
    landlord_id: int,
    property_id: int,
    amount: float,
    category: str = "other",
    description: Optional[str] = None,
    incurred_at: Optional[date] = None,
) -> Expense:
    prop = must_get_property(db, landlord_id=landlord_id, property_id=property_id)
    if amount is None or float(amount) <= 0:
        raise ValueError("amount must be greater than 0")
    row = Expense(
        landlord_id=landlord_id,
        property_id=prop.id,
        amount=round(float(amount), 2),
        category=category if category in EXPENSE_CATEGORIES else "other",
        description=description,
        incurred_at=incurred_at or datetime.utcnow().date(),
        created_at=datetime.utcnow(),
    )
    db.add(row)
    db.commit()
    return row


def list_expenses(
    db: Session,
    *,
    landlord_id: int,
    property_id: Optional[int] = None,
    category: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> list[Expense]:
    q = select(Expense).where(Expense.landlord_id == int(landlord_id))
    if property_id is not None:
        q = q.where(Expense.property_id == int(property_id))
    if category:
        q = q.where(Expense.category == category)
    if start is not None:
        q = q.where(Expense.incurred_at >= start)
    if end is not None:
        q = q.where(Expense.incurred_at <= end)
    return list(db.scalars(q.order_by(Expense.incurred_at.desc(), Expense.id.desc())).all())


def delete_expense(db: Session, *, expense: Expense) -> None:
    db.delete(expense)
    db.commit()

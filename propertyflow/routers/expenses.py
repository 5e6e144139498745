# propertyflow/routers/expenses.py
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import get_principal
from ..db import get_db
from ..domain.audit import audit_write
from ..schemas import ExpenseCreate, ExpenseOut
from ..services.expenses import EXPENSE_CATEGORIES, delete_expense, list_expenses, record_expense
from ..services.ownership import must_get_expense

router = APIRouter(prefix="/expenses", tags=["expenses"])


@router.get("/categories")
def categories():
    return list(EXPENSE_CATEGORIES)


@router.post("", response_model=ExpenseOut)
def post_expense(payload: ExpenseCreate, db: Session = Depends(get_db), p=Depends(get_principal)):
    try:
        row = record_expense(db, landlord_id=p.landlord_id, **payload.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="expense.create",
        entity_type="Expense",
        entity_id=row.id,
        after={"amount": row.amount, "category": row.category, "property_id": row.property_id},
        commit=True,
    )
    return row


@router.get("", response_model=list[ExpenseOut])
def get_expenses(
    property_id: Optional[int] = Query(default=None),
    category: Optional[str] = Query(default=None),
    start: Optional[date] = Query(default=None),
    end: Optional[date] = Query(default=None),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    return list_expenses(db, landlord_id=p.landlord_id, property_id=property_id, category=category, start=start, end=end)


@router.delete("/{expense_id}")
def remove_expense(expense_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = must_get_expense(db, landlord_id=p.landlord_id, expense_id=expense_id)
    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="expense.delete",
        entity_type="Expense",
        entity_id=row.id,
        before={"amount": row.amount, "category": row.category},
    )
    delete_expense(db, expense=row)
    return {"ok": True}

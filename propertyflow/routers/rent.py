# propertyflow/routers/rent.py
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import get_principal, require_owner
from ..db import get_db
from ..domain.audit import audit_write
from ..schemas import MarkPaidIn, RentPaymentOut
from ..services.daily import run_daily
from ..services.ownership import must_get_payment
from ..services.rent import cancel_charge, list_payments, mark_paid

router = APIRouter(prefix="/rent", tags=["rent"])


@router.get("/payments", response_model=list[RentPaymentOut])
def get_payments(
    lease_id: Optional[int] = Query(default=None),
    tenant_id: Optional[int] = Query(default=None),
    status: Optional[str] = Query(default=None),
    limit: int = Query(default=500, ge=1, le=5000),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    return list_payments(db, landlord_id=p.landlord_id, lease_id=lease_id, tenant_id=tenant_id, status=status, limit=limit)


@router.post("/payments/{payment_id}/mark-paid", response_model=RentPaymentOut)
def post_mark_paid(payment_id: int, payload: MarkPaidIn, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = must_get_payment(db, landlord_id=p.landlord_id, payment_id=payment_id)
    before = {"status": row.status}
    try:
        mark_paid(db, payment=row, method=payload.payment_method)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="rent.mark_paid",
        entity_type="RentPayment",
        entity_id=row.id,
        before=before,
        after={"status": row.status, "payment_method": row.payment_method},
        commit=True,
    )
    return row


@router.post("/payments/{payment_id}/cancel", response_model=RentPaymentOut)
def post_cancel(payment_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = must_get_payment(db, landlord_id=p.landlord_id, payment_id=payment_id)
    before = {"status": row.status}
    try:
        cancel_charge(db, payment=row)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="rent.cancel",
        entity_type="RentPayment",
        entity_id=row.id,
        before=before,
        after={"status": row.status},
        commit=True,
    )
    return row


@router.post("/run-daily")
def post_run_daily(
    on: Optional[date] = Query(default=None, description="Run as if today were this date"),
    db: Session = Depends(get_db),
    p=Depends(require_owner),
):
    """
    Manual trigger for the daily automation pass (normally run by celery beat).
    Covers every landlord, so it is owner-only.
    """
    return {"ok": True, "results": run_daily(db, today=on)}

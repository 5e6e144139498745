# propertyflow/routers/invoices.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import get_current_user, get_principal
from ..db import get_db
from ..domain.audit import audit_write
from ..models import AppUser
from ..schemas import InvoiceCreate, InvoiceOut, MarkPaidIn
from ..services.invoices import cancel_invoice, create_invoice, list_invoices, list_tenant_invoices, mark_invoice_paid
from ..services.ownership import must_get_invoice

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.post("", response_model=InvoiceOut)
def post_invoice(payload: InvoiceCreate, db: Session = Depends(get_db), p=Depends(get_principal)):
    inv = create_invoice(db, landlord_id=p.landlord_id, actor_user_id=p.user_id, **payload.model_dump())
    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="invoice.create",
        entity_type="TenantInvoice",
        entity_id=inv.id,
        after={"amount": inv.amount, "reason": inv.reason, "tenant_id": inv.tenant_id},
        commit=True,
    )
    return inv


@router.get("", response_model=list[InvoiceOut])
def get_invoices(
    status: Optional[str] = Query(default=None),
    property_id: Optional[int] = Query(default=None),
    tenant_id: Optional[int] = Query(default=None),
    limit: int = Query(default=200, ge=1, le=2000),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    return list_invoices(db, landlord_id=p.landlord_id, status=status, property_id=property_id, tenant_id=tenant_id, limit=limit)


@router.get("/mine", response_model=list[InvoiceOut])
def my_invoices(db: Session = Depends(get_db), user: AppUser = Depends(get_current_user)):
    """Invoices addressed to the signed-in tenant, across landlords."""
    return list_tenant_invoices(db, user_id=user.id)


@router.get("/{invoice_id}", response_model=InvoiceOut)
def get_invoice(invoice_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    return must_get_invoice(db, landlord_id=p.landlord_id, invoice_id=invoice_id)


@router.post("/{invoice_id}/cancel", response_model=InvoiceOut)
def post_cancel(invoice_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    inv = must_get_invoice(db, landlord_id=p.landlord_id, invoice_id=invoice_id)
    cancel_invoice(db, invoice=inv)
    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="invoice.cancel",
        entity_type="TenantInvoice",
        entity_id=inv.id,
        commit=True,
    )
    return inv


@router.post("/{invoice_id}/mark-paid", response_model=InvoiceOut)
def post_mark_paid(invoice_id: int, payload: MarkPaidIn, db: Session = Depends(get_db), p=Depends(get_principal)):
    inv = must_get_invoice(db, landlord_id=p.landlord_id, invoice_id=invoice_id)
    mark_invoice_paid(db, invoice=inv, method=payload.payment_method)
    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="invoice.mark_paid",
        entity_type="TenantInvoice",
        entity_id=inv.id,
        after={"payment_method": payload.payment_method},
        commit=True,
    )
    return inv

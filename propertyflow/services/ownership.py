# propertyflow/services/ownership.py
from __future__ import annotations

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import (
    Expense,
    Lease,
    LeaseTemplate,
    LegalDocument,
    MaintenanceTicket,
    Property,
    RentalApplication,
    RentPayment,
    Tenant,
    TenantInvoice,
    Unit,
)


def must_get_property(db: Session, *, landlord_id: int, property_id: int) -> Property:
    row = db.scalar(select(Property).where(Property.id == property_id, Property.landlord_id == landlord_id))
    if not row:
        raise HTTPException(status_code=404, detail="property not found")
    return row


def must_get_unit(db: Session, *, landlord_id: int, unit_id: int) -> Unit:
    row = db.scalar(select(Unit).where(Unit.id == unit_id, Unit.landlord_id == landlord_id))
    if not row:
        raise HTTPException(status_code=404, detail="unit not found")
    return row


def must_get_tenant(db: Session, *, landlord_id: int, tenant_id: int) -> Tenant:
    row = db.scalar(select(Tenant).where(Tenant.id == tenant_id, Tenant.landlord_id == landlord_id))
    if not row:
        raise HTTPException(status_code=404, detail="tenant not found")
    return row


def must_get_lease(db: Session, *, landlord_id: int, lease_id: int) -> Lease:
    row = db.scalar(select(Lease).where(Lease.id == lease_id, Lease.landlord_id == landlord_id))
    if not row:
        raise HTTPException(status_code=404, detail="lease not found")
    return row


def must_get_application(db: Session, *, landlord_id: int, application_id: int) -> RentalApplication:
    row = db.scalar(
        select(RentalApplication).where(RentalApplication.id == application_id, RentalApplication.landlord_id == landlord_id)
    )
    if not row:
        raise HTTPException(status_code=404, detail="application not found")
    return row


def must_get_template(db: Session, *, landlord_id: int, template_id: int) -> LeaseTemplate:
    row = db.scalar(select(LeaseTemplate).where(LeaseTemplate.id == template_id, LeaseTemplate.landlord_id == landlord_id))
    if not row:
        raise HTTPException(status_code=404, detail="lease template not found")
    return row


def must_get_document(db: Session, *, landlord_id: int, document_id: int) -> LegalDocument:
    row = db.scalar(select(LegalDocument).where(LegalDocument.id == document_id, LegalDocument.landlord_id == landlord_id))
    if not row:
        raise HTTPException(status_code=404, detail="document not found")
    return row


def must_get_payment(db: Session, *, landlord_id: int, payment_id: int) -> RentPayment:
    row = db.scalar(select(RentPayment).where(RentPayment.id == payment_id, RentPayment.landlord_id == landlord_id))
    if not row:
        raise HTTPException(status_code=404, detail="payment not found")
    return row


def must_get_invoice(db: Session, *, landlord_id: int, invoice_id: int) -> TenantInvoice:
    row = db.scalar(select(TenantInvoice).where(TenantInvoice.id == invoice_id, TenantInvoice.landlord_id == landlord_id))
    if not row:
        raise HTTPException(status_code=404, detail="invoice not found")
    return row


def must_get_expense(db: Session, *, landlord_id: int, expense_id: int) -> Expense:
    row = db.scalar(select(Expense).where(Expense.id == expense_id, Expense.landlord_id == landlord_id))
    if not row:
        raise HTTPException(status_code=404, detail="expense not found")
    return row


def must_get_ticket(db: Session, *, landlord_id: int, ticket_id: int) -> MaintenanceTicket:
    row = db.scalar(
        select(MaintenanceTicket).where(MaintenanceTicket.id == ticket_id, MaintenanceTicket.landlord_id == landlord_id)
    )
    if not row:
        raise HTTPException(status_code=404, detail="maintenance ticket not found")
    return row

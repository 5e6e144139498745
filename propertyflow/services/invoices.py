# propertyflow/services/invoices.py
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.lease_document import format_currency, format_date
from ..errors import InvoiceError
from ..models import Lease, Property, Tenant, TenantInvoice
from .events_facade import wf
from .notifications import notify, send_email

log = logging.getLogger(__name__)

INVOICE_STATUSES = ("pending", "paid", "cancelled")


def get_property_tenants(db: Session, *, landlord_id: int, property_id: int) -> list[dict[str, object]]:
    """Tenants holding an active lease at the property, one entry per lease."""
    rows = db.execute(
        select(Tenant, Lease)
        .join(Lease, Lease.tenant_id == Tenant.id)
        .where(Lease.landlord_id == int(landlord_id), Lease.property_id == int(property_id), Lease.status == "active")
        .order_by(Tenant.full_name)
    ).all()
    return [
        {"tenant_id": t.id, "full_name": t.full_name, "email": t.email, "lease_id": lease.id, "unit_id": lease.unit_id}
        for t, lease in rows
    ]


def create_invoice(
    db: Session,
    *,
    landlord_id: int,
    property_id: int,
    tenant_id: int,
    amount: float,
    reason: str,
    due_date: Optional[date],
    description: Optional[str] = None,
    lease_id: Optional[int] = None,
    actor_user_id: Optional[int] = None,
) -> TenantInvoice:
    if amount is None or float(amount) <= 0:
        raise InvoiceError("Amount must be greater than 0")
    reason = (reason or "").strip()
    if len(reason) < 3:
        raise InvoiceError("Reason must be at least 3 characters")
    if due_date is None:
        raise InvoiceError("Due date is required")

    prop = db.get(Property, int(property_id))
    if prop is None or prop.landlord_id != int(landlord_id):
        raise InvoiceError("Property not found", status_code=404)
    tenant = db.get(Tenant, int(tenant_id))
    if tenant is None or tenant.landlord_id != int(landlord_id):
        raise InvoiceError("Tenant not found", status_code=404)

    inv = TenantInvoice(
        landlord_id=landlord_id,
        property_id=prop.id,
        tenant_id=tenant.id,
        lease_id=lease_id,
        amount=round(float(amount), 2),
        reason=reason,
        description=description,
        due_date=due_date,
        status="pending",
        created_at=datetime.utcnow(),
    )
    db.add(inv)
    db.flush()
    if tenant.user_id:
        notify(
            db,
            landlord_id=landlord_id,
            user_id=tenant.user_id,
            kind="invoice",
            title="New invoice",
            message=f"{reason}: {format_currency(inv.amount)} due {format_date(due_date)}",
            metadata={"invoice_id": inv.id},
        )
    wf.emit(db, landlord_id=landlord_id, property_id=prop.id, actor_user_id=actor_user_id, event_type="invoice_created", payload={"invoice_id": inv.id})
    db.commit()

    if tenant.email:
        send_email(
            tenant.email,
            f"New invoice from {prop.name}",
            "You have a new invoice",
            [
                f"Hi {tenant.full_name}, a new invoice has been issued: {reason}.",
                f"Amount: {format_currency(inv.amount)}. Due: {format_date(due_date)}.",
                *([description] if description else []),
            ],
        )
    return inv


def list_invoices(
    db: Session,
    *,
    landlord_id: int,
    status: Optional[str] = None,
    property_id: Optional[int] = None,
    tenant_id: Optional[int] = None,
    limit: int = 200,
) -> list[TenantInvoice]:
    q = select(TenantInvoice).where(TenantInvoice.landlord_id == int(landlord_id))
    if status:
        q = q.where(TenantInvoice.status == status)
    if property_id is not None:
        q = q.where(TenantInvoice.property_id == int(property_id))
    if tenant_id is not None:
        q = q.where(TenantInvoice.tenant_id == int(tenant_id))
    return list(db.scalars(q.order_by(TenantInvoice.created_at.desc(), TenantInvoice.id.desc()).limit(limit)).all())


def list_tenant_invoices(db: Session, *, user_id: int) -> list[TenantInvoice]:
    """Invoices across landlords for the tenant records linked to a user account."""
    tenant_ids = db.scalars(select(Tenant.id).where(Tenant.user_id == int(user_id))).all()
    if not tenant_ids:
        return []
    return list(
        db.scalars(select(TenantInvoice).where(TenantInvoice.tenant_id.in_(tenant_ids)).order_by(TenantInvoice.due_date.desc())).all()
    )


def cancel_invoice(db: Session, *, invoice: TenantInvoice) -> TenantInvoice:
    if invoice.status == "paid":
        raise InvoiceError("Cannot cancel a paid invoice")
    invoice.status = "cancelled"
    db.commit()
    return invoice


def mark_invoice_paid(db: Session, *, invoice: TenantInvoice, method: str = "manual") -> TenantInvoice:
    if invoice.status == "cancelled":
        raise InvoiceError("Cannot pay a cancelled invoice")
    if invoice.status == "paid":
        raise InvoiceError("Invoice is already paid")
    invoice.status = "paid"
    invoice.paid_at = datetime.utcnow()
    invoice.payment_method = method
    db.commit()
    log.info("invoice paid", extra={"landlord_id": invoice.landlord_id, "invoice_id": invoice.id})
    return invoice

# propertyflow/services/lease_lifecycle.py
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.lease_data import LeaseTerms
from ..domain.lease_state import assert_transition
from ..errors import LeaseStateError
from ..models import Landlord, Lease, Property, SignatureRequest, Tenant, Unit
from .events_facade import wf
from .lease_audit import append_lease_event
from .lease_generation import generate_lease_document
from .lease_rules import ensure_no_lease_overlap
from .lease_templates import resolve_template_for_property
from .notifications import send_email
from .ownership import must_get_tenant, must_get_unit
from .signing import PENDING_STATUSES, create_signature_request, signing_url

log = logging.getLogger(__name__)


def create_draft_lease(
    db: Session,
    *,
    landlord_id: int,
    unit_id: int,
    tenant_id: int,
    start_date: date,
    end_date: Optional[date] = None,
    rent_amount: Optional[float] = None,
    billing_day_of_month: int = 1,
    template_id: Optional[int] = None,
    actor_user_id: Optional[int] = None,
) -> Lease:
    """Manual lease entry. Raises ValueError when the dates collide with another lease on the unit."""
    unit = must_get_unit(db, landlord_id=landlord_id, unit_id=unit_id)
    tenant = must_get_tenant(db, landlord_id=landlord_id, tenant_id=tenant_id)
    if not 1 <= int(billing_day_of_month) <= 28:
        raise ValueError("billing_day_of_month must be between 1 and 28")
    ensure_no_lease_overlap(db, landlord_id=landlord_id, unit_id=unit.id, start_date=start_date, end_date=end_date)

    now = datetime.utcnow()
    lease = Lease(
        landlord_id=landlord_id,
        property_id=unit.property_id,
        unit_id=unit.id,
        tenant_id=tenant.id,
        template_id=template_id,
        start_date=start_date,
        end_date=end_date,
        rent_amount=float(unit.rent_amount if rent_amount is None else rent_amount),
        billing_day_of_month=int(billing_day_of_month),
        status="draft",
        generated_from="manual",
        created_at=now,
        updated_at=now,
    )
    db.add(lease)
    db.flush()
    append_lease_event(
        db,
        lease=lease,
        event_type="created",
        actor=f"user:{actor_user_id}" if actor_user_id else "system",
        actor_role="landlord",
        details={"generated_from": "manual"},
    )
    wf.emit(db, landlord_id=landlord_id, property_id=lease.property_id, actor_user_id=actor_user_id, event_type="lease_created", payload={"lease_id": lease.id})
    db.commit()
    return lease


def update_draft_lease(db: Session, *, lease: Lease, changes: dict[str, Any], actor_user_id: Optional[int] = None) -> Lease:
    if lease.status != "draft":
        raise LeaseStateError(f"only draft leases can be edited (lease is {lease.status})")
    allowed = {"start_date", "end_date", "rent_amount", "billing_day_of_month", "template_id"}
    before = {k: getattr(lease, k) for k in allowed}
    for k, v in changes.items():
        if k in allowed:
            setattr(lease, k, v)
    ensure_no_lease_overlap(
        db, landlord_id=lease.landlord_id, unit_id=lease.unit_id, start_date=lease.start_date, end_date=lease.end_date, ignore_lease_id=lease.id
    )
    lease.updated_at = datetime.utcnow()
    after = {k: getattr(lease, k) for k in allowed}
    append_lease_event(
        db,
        lease=lease,
        event_type="modified",
        actor=f"user:{actor_user_id}" if actor_user_id else "system",
        actor_role="landlord",
        details={k: {"from": before[k], "to": after[k]} for k in allowed if before[k] != after[k]},
    )
    db.commit()
    return lease


def list_leases(
    db: Session,
    *,
    landlord_id: int,
    status: Optional[str] = None,
    unit_id: Optional[int] = None,
    tenant_id: Optional[int] = None,
    property_id: Optional[int] = None,
    limit: int = 200,
) -> list[Lease]:
    q = select(Lease).where(Lease.landlord_id == int(landlord_id))
    if status:
        q = q.where(Lease.status == status)
    if unit_id is not None:
        q = q.where(Lease.unit_id == int(unit_id))
    if tenant_id is not None:
        q = q.where(Lease.tenant_id == int(tenant_id))
    if property_id is not None:
        q = q.where(Lease.property_id == int(property_id))
    return list(db.scalars(q.order_by(Lease.id.desc()).limit(limit)).all())


def _void_pending_requests(db: Session, lease: Lease, reason: str) -> None:
    rows = db.scalars(
        select(SignatureRequest).where(SignatureRequest.lease_id == lease.id, SignatureRequest.status.in_(PENDING_STATUSES))
    ).all()
    for sig in rows:
        sig.status = "voided"
        append_lease_event(db, lease=lease, event_type="voided", details={"role": sig.role, "request_id": sig.id, "reason": reason})


def send_for_signature(db: Session, *, lease: Lease, actor_user_id: Optional[int] = None, now: Optional[datetime] = None) -> dict[str, Any]:
    """
    Move a draft lease to pending_signature: render its document when it has
    none yet, then issue the tenant's signing link.
    """
    now = now or datetime.utcnow()
    assert_transition(lease.status, "pending_signature")

    tenant = db.get(Tenant, lease.tenant_id)
    if not tenant or not tenant.email:
        raise ValueError("tenant has no email address")

    if lease.legal_document_id is None:
        landlord = db.get(Landlord, lease.landlord_id)
        prop = db.get(Property, lease.property_id)
        unit = db.get(Unit, lease.unit_id)
        template = resolve_template_for_property(db, landlord_id=lease.landlord_id, property_id=lease.property_id)
        terms = LeaseTerms(
            start_date=lease.start_date,
            end_date=lease.end_date,
            is_month_to_month=lease.end_date is None,
            billing_day_of_month=lease.billing_day_of_month,
        )
        generated = generate_lease_document(
            db,
            landlord=landlord,
            property=prop,
            unit=unit,
            tenant=tenant,
            terms=terms,
            template=template,
            signing_date=now.date(),
            rent_amount=lease.rent_amount,
        )
        lease.legal_document_id = generated.legal_document.id
        lease.template_id = template.id if template else lease.template_id
        if generated.document is not None:
            lease.lease_data_json = generated.data.to_json()

    lease.status = "pending_signature"
    unit = db.get(Unit, lease.unit_id)
    if unit is not None:
        unit.is_available = False
    lease.updated_at = now
    sig = create_signature_request(db, lease=lease, role="tenant", recipient_email=tenant.email, recipient_name=tenant.full_name, now=now)
    append_lease_event(
        db,
        lease=lease,
        event_type="sent_for_signature",
        actor=f"user:{actor_user_id}" if actor_user_id else "system",
        actor_role="landlord",
        details={"role": "tenant", "recipient": tenant.email},
        occurred_at=now,
    )
    wf.emit(db, landlord_id=lease.landlord_id, property_id=lease.property_id, actor_user_id=actor_user_id, event_type="lease_sent_for_signature", payload={"lease_id": lease.id})
    db.commit()

    url = signing_url(sig.token)
    send_email(
        tenant.email,
        "Your Lease is Ready to Sign",
        "Please sign your lease",
        [f"Hi {tenant.full_name}, your lease is ready for your review and signature."],
        action_url=url,
        action_label="Review and sign lease",
    )
    return {"lease_id": lease.id, "document_id": lease.legal_document_id, "signing_url": url, "signing_token": sig.token}


def terminate_lease(db: Session, *, lease: Lease, reason: Optional[str] = None, actor_user_id: Optional[int] = None) -> Lease:
    assert_transition(lease.status, "terminated")
    now = datetime.utcnow()
    lease.status = "terminated"
    lease.terminated_at = now
    lease.termination_reason = reason
    lease.updated_at = now
    unit = db.get(Unit, lease.unit_id)
    if unit is not None:
        unit.is_available = True
    append_lease_event(
        db,
        lease=lease,
        event_type="notice_sent",
        actor=f"user:{actor_user_id}" if actor_user_id else "system",
        actor_role="landlord",
        details={"action": "terminated", "reason": reason},
    )
    wf.emit(db, landlord_id=lease.landlord_id, property_id=lease.property_id, actor_user_id=actor_user_id, event_type="lease_terminated", payload={"lease_id": lease.id})
    db.commit()
    return lease


def cancel_lease(db: Session, *, lease: Lease, reason: Optional[str] = None, actor_user_id: Optional[int] = None) -> Lease:
    """Draft or pending-signature leases only; open signing links are voided and the unit released."""
    assert_transition(lease.status, "cancelled")
    _void_pending_requests(db, lease, reason or "lease cancelled")
    lease.status = "cancelled"
    lease.termination_reason = reason
    lease.updated_at = datetime.utcnow()
    unit = db.get(Unit, lease.unit_id)
    if unit is not None:
        unit.is_available = True
    wf.emit(db, landlord_id=lease.landlord_id, property_id=lease.property_id, actor_user_id=actor_user_id, event_type="lease_cancelled", payload={"lease_id": lease.id})
    db.commit()
    return lease


def expire_ended_leases(db: Session, *, today: Optional[date] = None) -> int:
    """Active fixed-term leases past their end date become expired."""
    today = today or datetime.utcnow().date()
    rows = db.scalars(select(Lease).where(Lease.status == "active", Lease.end_date.is_not(None), Lease.end_date < today)).all()
    for lease in rows:
        assert_transition(lease.status, "expired")
        lease.status = "expired"
        lease.updated_at = datetime.utcnow()
        unit = db.get(Unit, lease.unit_id)
        if unit is not None:
            unit.is_available = True
    db.commit()
    if rows:
        log.info("expired %s leases", len(rows), extra={"job": "expire_leases"})
    return len(rows)

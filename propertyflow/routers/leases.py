# propertyflow/routers/leases.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import get_principal, require_manager
from ..db import get_db
from ..domain.audit import audit_write
from ..schemas import LeaseCreate, LeaseOut, LeaseUpdate, ReasonIn, SignatureRequestOut
from ..services.lease_audit import list_lease_events, trail_to_dict, verify_lease_trail
from ..services.lease_lifecycle import (
    cancel_lease,
    create_draft_lease,
    list_leases,
    send_for_signature,
    terminate_lease,
    update_draft_lease,
)
from ..services.ownership import must_get_lease
from ..services.signing import list_requests, void_request

router = APIRouter(prefix="/leases", tags=["leases"])


@router.post("", response_model=LeaseOut)
def create_lease(payload: LeaseCreate, db: Session = Depends(get_db), p=Depends(require_manager)):
    try:
        row = create_draft_lease(db, landlord_id=p.landlord_id, actor_user_id=p.user_id, **payload.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))

    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="lease.create",
        entity_type="Lease",
        entity_id=row.id,
        after=payload.model_dump(),
        commit=True,
    )
    return row


@router.get("", response_model=list[LeaseOut])
def get_leases(
    status: Optional[str] = Query(default=None),
    unit_id: Optional[int] = Query(default=None),
    tenant_id: Optional[int] = Query(default=None),
    property_id: Optional[int] = Query(default=None),
    limit: int = Query(default=200, ge=1, le=2000),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    return list_leases(
        db,
        landlord_id=p.landlord_id,
        status=status,
        unit_id=unit_id,
        tenant_id=tenant_id,
        property_id=property_id,
        limit=limit,
    )


@router.get("/{lease_id}", response_model=LeaseOut)
def get_lease(lease_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    return must_get_lease(db, landlord_id=p.landlord_id, lease_id=lease_id)


@router.patch("/{lease_id}", response_model=LeaseOut)
def update_lease(lease_id: int, payload: LeaseUpdate, db: Session = Depends(get_db), p=Depends(require_manager)):
    row = must_get_lease(db, landlord_id=p.landlord_id, lease_id=lease_id)
    try:
        return update_draft_lease(db, lease=row, changes=payload.model_dump(exclude_unset=True), actor_user_id=p.user_id)
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/{lease_id}/send")
def send(lease_id: int, db: Session = Depends(get_db), p=Depends(require_manager)):
    row = must_get_lease(db, landlord_id=p.landlord_id, lease_id=lease_id)
    try:
        out = send_for_signature(db, lease=row, actor_user_id=p.user_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"ok": True, **out}


@router.post("/{lease_id}/terminate", response_model=LeaseOut)
def terminate(lease_id: int, payload: ReasonIn, db: Session = Depends(get_db), p=Depends(require_manager)):
    row = must_get_lease(db, landlord_id=p.landlord_id, lease_id=lease_id)
    terminate_lease(db, lease=row, reason=payload.reason, actor_user_id=p.user_id)
    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="lease.terminate",
        entity_type="Lease",
        entity_id=row.id,
        after={"reason": payload.reason},
        commit=True,
    )
    return row


@router.post("/{lease_id}/cancel", response_model=LeaseOut)
def cancel(lease_id: int, payload: ReasonIn, db: Session = Depends(get_db), p=Depends(require_manager)):
    row = must_get_lease(db, landlord_id=p.landlord_id, lease_id=lease_id)
    cancel_lease(db, lease=row, reason=payload.reason, actor_user_id=p.user_id)
    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="lease.cancel",
        entity_type="Lease",
        entity_id=row.id,
        after={"reason": payload.reason},
        commit=True,
    )
    return row


@router.get("/{lease_id}/audit-trail")
def audit_trail(lease_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    """Hash-chained signing history plus whether the chain still verifies."""
    row = must_get_lease(db, landlord_id=p.landlord_id, lease_id=lease_id)
    return {"lease_id": row.id, **trail_to_dict(list_lease_events(db, lease_id=row.id), verify_lease_trail(db, lease_id=row.id))}


@router.get("/{lease_id}/signature-requests", response_model=list[SignatureRequestOut])
def signature_requests(lease_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = must_get_lease(db, landlord_id=p.landlord_id, lease_id=lease_id)
    return list_requests(db, lease_id=row.id)


@router.post("/signature-requests/{request_id}/void", response_model=SignatureRequestOut)
def void(request_id: int, payload: ReasonIn, db: Session = Depends(get_db), p=Depends(require_manager)):
    return void_request(db, landlord_id=p.landlord_id, request_id=request_id, reason=payload.reason, actor_email=p.email)

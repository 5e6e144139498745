# propertyflow/routers/tenants.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import get_principal, require_manager
from ..db import get_db
from ..domain.audit import audit_write
from ..domain.lease_state import OCCUPYING_STATUSES
from ..models import Lease, Tenant
from ..schemas import TenantCreate, TenantOut
from ..services.ownership import must_get_tenant

router = APIRouter(prefix="/tenants", tags=["tenants"])


def _snapshot(row: Tenant) -> dict:
    return {"full_name": row.full_name, "email": row.email, "phone": row.phone, "notes": row.notes}


@router.post("", response_model=TenantOut)
def create_tenant(payload: TenantCreate, db: Session = Depends(get_db), p=Depends(get_principal)):
    data = payload.model_dump()
    if data.get("email"):
        data["email"] = data["email"].strip().lower()
    row = Tenant(landlord_id=p.landlord_id, **data)
    db.add(row)
    db.flush()

    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="tenant.create",
        entity_type="Tenant",
        entity_id=row.id,
        after=_snapshot(row),
    )
    db.commit()
    db.refresh(row)
    return row


@router.get("", response_model=list[TenantOut])
def list_tenants(
    limit: int = Query(default=100, ge=1, le=2000),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    q = select(Tenant).where(Tenant.landlord_id == p.landlord_id).order_by(desc(Tenant.id)).limit(limit)
    return list(db.scalars(q).all())


@router.get("/{tenant_id}", response_model=TenantOut)
def get_tenant(tenant_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    return must_get_tenant(db, landlord_id=p.landlord_id, tenant_id=tenant_id)


@router.patch("/{tenant_id}", response_model=TenantOut)
def update_tenant(tenant_id: int, payload: TenantCreate, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = must_get_tenant(db, landlord_id=p.landlord_id, tenant_id=tenant_id)
    before = _snapshot(row)

    for k, v in payload.model_dump(exclude_unset=True).items():
        if k == "email" and v:
            v = v.strip().lower()
        setattr(row, k, v)

    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="tenant.update",
        entity_type="Tenant",
        entity_id=row.id,
        before=before,
        after=_snapshot(row),
    )
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{tenant_id}")
def delete_tenant(tenant_id: int, db: Session = Depends(get_db), p=Depends(require_manager)):
    row = must_get_tenant(db, landlord_id=p.landlord_id, tenant_id=tenant_id)
    has_lease = db.scalar(select(Lease.id).where(Lease.tenant_id == row.id, Lease.status.in_(OCCUPYING_STATUSES)).limit(1))
    if has_lease is not None:
        raise HTTPException(status_code=409, detail="tenant has an active or pending lease")

    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="tenant.delete",
        entity_type="Tenant",
        entity_id=row.id,
        before=_snapshot(row),
    )
    db.delete(row)
    db.commit()
    return {"ok": True}

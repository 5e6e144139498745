# propertyflow/routers/properties.py
from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import get_principal, require_manager
from ..db import get_db
from ..domain.audit import audit_write
from ..models import Lease, Property, Unit
from ..schemas import PropertyCreate, PropertyOut, UnitCreate, UnitOut
from ..domain.lease_state import OCCUPYING_STATUSES
from ..services.events_facade import wf
from ..services.invoices import get_property_tenants
from ..services.lease_rules import unit_has_occupying_lease
from ..services.ownership import must_get_property, must_get_unit

router = APIRouter(prefix="/properties", tags=["properties"])


def _property_snapshot(row: Property) -> dict:
    return {
        "name": row.name,
        "street": row.street,
        "city": row.city,
        "state": row.state,
        "zip_code": row.zip_code,
        "property_type": row.property_type,
    }


@router.post("", response_model=PropertyOut)
def create_property(payload: PropertyCreate, db: Session = Depends(get_db), p=Depends(require_manager)):
    data = payload.model_dump()
    amenities = data.pop("amenities") or []
    if data.get("state"):
        data["state"] = data["state"].upper()
    row = Property(landlord_id=p.landlord_id, amenities_json=json.dumps(amenities), **data)
    db.add(row)
    db.flush()

    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="property.create",
        entity_type="Property",
        entity_id=row.id,
        after=_property_snapshot(row),
    )
    wf.emit(db, landlord_id=p.landlord_id, property_id=row.id, actor_user_id=p.user_id, event_type="property_created")
    db.commit()
    db.refresh(row)
    return row


@router.get("", response_model=list[PropertyOut])
def list_properties(
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    q = select(Property).where(Property.landlord_id == p.landlord_id).order_by(desc(Property.id)).limit(limit)
    return list(db.scalars(q).all())


@router.get("/{property_id}", response_model=PropertyOut)
def get_property(property_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    return must_get_property(db, landlord_id=p.landlord_id, property_id=property_id)


@router.patch("/{property_id}", response_model=PropertyOut)
def update_property(property_id: int, payload: PropertyCreate, db: Session = Depends(get_db), p=Depends(require_manager)):
    row = must_get_property(db, landlord_id=p.landlord_id, property_id=property_id)
    before = _property_snapshot(row)

    data = payload.model_dump(exclude_unset=True)
    if "amenities" in data:
        row.amenities_json = json.dumps(data.pop("amenities") or [])
    if data.get("state"):
        data["state"] = data["state"].upper()
    for k, v in data.items():
        setattr(row, k, v)

    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="property.update",
        entity_type="Property",
        entity_id=row.id,
        before=before,
        after=_property_snapshot(row),
    )
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{property_id}")
def delete_property(property_id: int, db: Session = Depends(get_db), p=Depends(require_manager)):
    row = must_get_property(db, landlord_id=p.landlord_id, property_id=property_id)
    active = db.scalar(
        select(Lease.id).where(Lease.property_id == row.id, Lease.status.in_(OCCUPYING_STATUSES)).limit(1)
    )
    if active is not None:
        raise HTTPException(status_code=409, detail="property has active or pending leases")

    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="property.delete",
        entity_type="Property",
        entity_id=row.id,
        before=_property_snapshot(row),
    )
    db.delete(row)
    db.commit()
    return {"ok": True}


@router.get("/{property_id}/tenants")
def property_tenants(property_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    """Tenants with an active lease on the property; used by the invoice form."""
    return get_property_tenants(db, landlord_id=p.landlord_id, property_id=property_id)


# -------------------- Units --------------------

@router.post("/{property_id}/units", response_model=UnitOut)
def create_unit(property_id: int, payload: UnitCreate, db: Session = Depends(get_db), p=Depends(require_manager)):
    prop = must_get_property(db, landlord_id=p.landlord_id, property_id=property_id)
    row = Unit(landlord_id=p.landlord_id, property_id=prop.id, **payload.model_dump())
    db.add(row)
    db.flush()

    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="unit.create",
        entity_type="Unit",
        entity_id=row.id,
        after=payload.model_dump(),
    )
    db.commit()
    db.refresh(row)
    return row


@router.get("/{property_id}/units", response_model=list[UnitOut])
def list_units(property_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    prop = must_get_property(db, landlord_id=p.landlord_id, property_id=property_id)
    return list(db.scalars(select(Unit).where(Unit.property_id == prop.id).order_by(Unit.name)).all())


@router.patch("/units/{unit_id}", response_model=UnitOut)
def update_unit(unit_id: int, payload: UnitCreate, db: Session = Depends(get_db), p=Depends(require_manager)):
    row = must_get_unit(db, landlord_id=p.landlord_id, unit_id=unit_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("is_available") and unit_has_occupying_lease(db, unit_id=row.id):
        raise HTTPException(status_code=409, detail="unit has an active or pending lease")

    before = {k: getattr(row, k) for k in changes}
    for k, v in changes.items():
        setattr(row, k, v)

    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="unit.update",
        entity_type="Unit",
        entity_id=row.id,
        before=before,
        after=changes,
    )
    db.commit()
    db.refresh(row)
    return row


@router.delete("/units/{unit_id}")
def delete_unit(unit_id: int, db: Session = Depends(get_db), p=Depends(require_manager)):
    row = must_get_unit(db, landlord_id=p.landlord_id, unit_id=unit_id)
    if unit_has_occupying_lease(db, unit_id=row.id):
        raise HTTPException(status_code=409, detail="unit has an active or pending lease")

    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="unit.delete",
        entity_type="Unit",
        entity_id=row.id,
        before={"name": row.name, "property_id": row.property_id},
    )
    db.delete(row)
    db.commit()
    return {"ok": True}

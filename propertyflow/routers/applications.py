# propertyflow/routers/applications.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import get_principal, require_manager
from ..db import get_db
from ..domain.audit import audit_write
from ..models import Landlord, Property, Unit
from ..schemas import ApplicationOut, ApplicationSubmit, ApproveIn, ApproveOut, RejectIn
from ..services.application_approval import (
    approve_application,
    is_unit_available,
    list_applications,
    reject_application,
    submit_application,
)
from ..services.ownership import must_get_application

router = APIRouter(prefix="/applications", tags=["applications"])
public_router = APIRouter(prefix="/public", tags=["public"])


@router.get("", response_model=list[ApplicationOut])
def get_applications(
    status: Optional[str] = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    return list_applications(db, landlord_id=p.landlord_id, status=status, limit=limit)


@router.get("/{application_id}", response_model=ApplicationOut)
def get_application(application_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    return must_get_application(db, landlord_id=p.landlord_id, application_id=application_id)


@router.post("/{application_id}/approve", response_model=ApproveOut)
def approve(application_id: int, payload: ApproveIn, db: Session = Depends(get_db), p=Depends(require_manager)):
    """
    Approve the application, generate the lease document and send the
    tenant a signing link. Failures come back as {"detail", "code"}.
    """
    res = approve_application(
        db,
        landlord_id=p.landlord_id,
        application_id=application_id,
        unit_id=payload.unit_id,
        lease_start_date=payload.lease_start_date,
        lease_end_date=payload.lease_end_date,
        is_month_to_month=payload.is_month_to_month,
        rent_amount=payload.rent_amount,
        billing_day_of_month=payload.billing_day_of_month,
        overrides=payload.overrides,
        actor_user_id=p.user_id,
    )
    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="application.approve",
        entity_type="RentalApplication",
        entity_id=res.application.id,
        after={"lease_id": res.lease.id, "document_id": res.document_id},
        commit=True,
    )
    return ApproveOut(
        application_id=res.application.id,
        lease_id=res.lease.id,
        document_id=res.document_id,
        signing_url=res.signing_url,
        signing_token=res.signing_token,
        warnings=list(res.warnings),
    )


@router.post("/{application_id}/reject", response_model=ApplicationOut)
def reject(application_id: int, payload: RejectIn, db: Session = Depends(get_db), p=Depends(require_manager)):
    app = reject_application(
        db,
        landlord_id=p.landlord_id,
        application_id=application_id,
        reason=payload.reason,
        actor_user_id=p.user_id,
    )
    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="application.reject",
        entity_type="RentalApplication",
        entity_id=app.id,
        after={"reason": app.admin_response},
        commit=True,
    )
    return app


# -------------------- Public listing / apply --------------------

def _landlord_by_slug(db: Session, slug: str) -> Landlord:
    row = db.scalar(select(Landlord).where(Landlord.slug == slug))
    if not row:
        raise HTTPException(status_code=404, detail="landlord not found")
    return row


@public_router.get("/{slug}/units")
def available_units(slug: str, db: Session = Depends(get_db)):
    landlord = _landlord_by_slug(db, slug)
    rows = db.execute(
        select(Unit, Property)
        .join(Property, Property.id == Unit.property_id)
        .where(Unit.landlord_id == landlord.id, Unit.is_available.is_(True))
        .order_by(Property.name, Unit.name)
    ).all()
    return [
        {
            "unit_id": u.id,
            "unit_name": u.name,
            "property_id": prop.id,
            "property_name": prop.name,
            "city": prop.city,
            "state": prop.state,
            "bedrooms": u.bedrooms,
            "bathrooms": u.bathrooms,
            "rent_amount": u.rent_amount,
        }
        for u, prop in rows
        if is_unit_available(db, u)
    ]


@public_router.post("/{slug}/applications", response_model=ApplicationOut)
def apply(slug: str, payload: ApplicationSubmit, db: Session = Depends(get_db)):
    try:
        return submit_application(db, landlord_slug=slug, **payload.model_dump())
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

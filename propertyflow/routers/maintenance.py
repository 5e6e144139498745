# propertyflow/routers/maintenance.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import get_principal
from ..db import get_db
from ..schemas import TicketAssignIn, TicketCreate, TicketOut, TicketUpdate
from ..services.maintenance import assign_appointment, create_ticket, list_tickets, update_ticket
from ..services.ownership import must_get_ticket

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.post("", response_model=TicketOut)
def post_ticket(payload: TicketCreate, db: Session = Depends(get_db), p=Depends(get_principal)):
    try:
        return create_ticket(db, landlord_id=p.landlord_id, actor_user_id=p.user_id, **payload.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=list[TicketOut])
def get_tickets(
    status: Optional[str] = Query(default=None),
    priority: Optional[str] = Query(default=None),
    unit_id: Optional[int] = Query(default=None),
    property_id: Optional[int] = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    return list_tickets(
        db,
        landlord_id=p.landlord_id,
        status=status,
        priority=priority,
        unit_id=unit_id,
        property_id=property_id,
        limit=limit,
    )


@router.get("/{ticket_id}", response_model=TicketOut)
def get_ticket(ticket_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    return must_get_ticket(db, landlord_id=p.landlord_id, ticket_id=ticket_id)


@router.patch("/{ticket_id}", response_model=TicketOut)
def patch_ticket(ticket_id: int, payload: TicketUpdate, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = must_get_ticket(db, landlord_id=p.landlord_id, ticket_id=ticket_id)
    try:
        return update_ticket(db, ticket=row, changes=payload.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{ticket_id}/assign", response_model=TicketOut)
def assign(ticket_id: int, payload: TicketAssignIn, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = must_get_ticket(db, landlord_id=p.landlord_id, ticket_id=ticket_id)
    try:
        return assign_appointment(db, ticket=row, appointment_id=payload.appointment_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

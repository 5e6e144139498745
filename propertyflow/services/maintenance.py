# propertyflow/services/maintenance.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import ContractorAppointment, MaintenanceTicket, Unit
from .events_facade import wf
from .notifications import notify
from .ownership import must_get_tenant, must_get_unit

TICKET_STATUSES = ("open", "in_progress", "on_hold", "resolved", "closed")
TICKET_PRIORITIES = ("low", "medium", "high", "emergency")


def create_ticket(
    db: Session,
    *,
    landlord_id: int,
    title: str,
    description: str,
    unit_id: Optional[int] = None,
    tenant_id: Optional[int] = None,
    priority: str = "medium",
    actor_user_id: Optional[int] = None,
) -> MaintenanceTicket:
    if priority not in TICKET_PRIORITIES:
        raise ValueError(f"priority must be one of {', '.join(TICKET_PRIORITIES)}")
    if not (title or "").strip() or not (description or "").strip():
        raise ValueError("title and description are required")
    unit = must_get_unit(db, landlord_id=landlord_id, unit_id=unit_id) if unit_id is not None else None
    if tenant_id is not None:
        must_get_tenant(db, landlord_id=landlord_id, tenant_id=tenant_id)

    now = datetime.utcnow()
    t = MaintenanceTicket(
        landlord_id=landlord_id,
        unit_id=unit.id if unit else None,
        tenant_id=tenant_id,
        title=title.strip(),
        description=description.strip(),
        status="open",
        priority=priority,
        created_at=now,
        updated_at=now,
    )
    db.add(t)
    db.flush()

    if priority == "emergency":
        where = f" in unit {unit.name}" if unit else ""
        notify(
            db,
            landlord_id=landlord_id,
            kind="maintenance",
            title="Emergency maintenance request",
            message=f"{t.title}{where}",
            action_url=f"/maintenance/{t.id}",
            metadata={"ticket_id": t.id},
        )
    wf.emit(
        db,
        landlord_id=landlord_id,
        property_id=unit.property_id if unit else None,
        actor_user_id=actor_user_id,
        event_type="maintenance_ticket_created",
        payload={"ticket_id": t.id, "priority": priority},
    )
    db.commit()
    return t


def list_tickets(
    db: Session,
    *,
    landlord_id: int,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    unit_id: Optional[int] = None,
    property_id: Optional[int] = None,
    limit: int = 200,
) -> list[MaintenanceTicket]:
    q = select(MaintenanceTicket).where(MaintenanceTicket.landlord_id == int(landlord_id))
    if status:
        q = q.where(MaintenanceTicket.status == status)
    if priority:
        q = q.where(MaintenanceTicket.priority == priority)
    if unit_id is not None:
        q = q.where(MaintenanceTicket.unit_id == int(unit_id))
    if property_id is not None:
        q = q.join(Unit, Unit.id == MaintenanceTicket.unit_id).where(Unit.property_id == int(property_id))
    return list(db.scalars(q.order_by(MaintenanceTicket.created_at.desc(), MaintenanceTicket.id.desc()).limit(limit)).all())


def update_ticket(db: Session, *, ticket: MaintenanceTicket, changes: dict[str, Any]) -> MaintenanceTicket:
    """Status moves into resolved stamp resolved_at; reopening clears it."""
    status = changes.get("status")
    if status is not None:
        if status not in TICKET_STATUSES:
            raise ValueError(f"status must be one of {', '.join(TICKET_STATUSES)}")
        if status == "resolved" and ticket.status != "resolved":
            ticket.resolved_at = datetime.utcnow()
        elif status in ("open", "in_progress", "on_hold"):
            ticket.resolved_at = None
        ticket.status = status
    priority = changes.get("priority")
    if priority is not None:
        if priority not in TICKET_PRIORITIES:
            raise ValueError(f"priority must be one of {', '.join(TICKET_PRIORITIES)}")
        ticket.priority = priority
    for k in ("title", "description"):
        if changes.get(k):
            setattr(ticket, k, changes[k])
    ticket.updated_at = datetime.utcnow()
    db.commit()
    return ticket


def assign_appointment(db: Session, *, ticket: MaintenanceTicket, appointment_id: int) -> MaintenanceTicket:
    appt = db.get(ContractorAppointment, int(appointment_id))
    if appt is None or (appt.landlord_id is not None and appt.landlord_id != ticket.landlord_id):
        raise LookupError("appointment not found")
    ticket.appointment_id = appt.id
    if ticket.status == "open":
        ticket.status = "in_progress"
    ticket.updated_at = datetime.utcnow()
    db.commit()
    return ticket

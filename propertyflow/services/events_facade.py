# propertyflow/services/events_facade.py
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import WorkflowEvent


def _loads(s: Optional[str], default: Any) -> Any:
    if not s:
        return default
    try:
        return json.loads(s)
    except ValueError:
        return default


@dataclass(frozen=True)
class WorkflowEventOut:
    id: int
    landlord_id: int
    property_id: Optional[int]
    actor_user_id: Optional[int]
    event_type: str
    payload: dict[str, Any]
    created_at: Optional[datetime]


class WorkflowFacade:
    """
    Domain events (application approved, lease executed, booking cancelled ...)
    as WorkflowEvent rows.

    emit() only flushes; the caller's transaction decides whether the event
    is kept.

        from ..services.events_facade import wf
    """

    def emit(
        self,
        db: Session,
        *,
        landlord_id: int,
        event_type: str,
        property_id: Optional[int] = None,
        actor_user_id: Optional[int] = None,
        payload: dict[str, Any] | None = None,
        created_at: Optional[datetime] = None,
    ) -> WorkflowEvent:
        if not event_type:
            raise ValueError("event_type required")

        row = WorkflowEvent(
            landlord_id=int(landlord_id),
            property_id=int(property_id) if property_id is not None else None,
            actor_user_id=actor_user_id,
            event_type=str(event_type),
            payload_json=json.dumps(payload or {}, ensure_ascii=False, default=str),
            created_at=created_at or datetime.utcnow(),
        )
        db.add(row)
        db.flush()
        return row

    def list(
        self,
        db: Session,
        *,
        landlord_id: int,
        property_id: Optional[int] = None,
        event_type: Optional[str] = None,
        limit: int = 200,
    ) -> list[WorkflowEventOut]:
        q = select(WorkflowEvent).where(WorkflowEvent.landlord_id == int(landlord_id)).order_by(WorkflowEvent.id.desc())
        if property_id is not None:
            q = q.where(WorkflowEvent.property_id == int(property_id))
        if event_type:
            q = q.where(WorkflowEvent.event_type == event_type)

        rows = db.scalars(q.limit(int(limit))).all()
        return [
            WorkflowEventOut(
                id=int(r.id),
                landlord_id=int(r.landlord_id),
                property_id=r.property_id,
                actor_user_id=r.actor_user_id,
                event_type=r.event_type,
                payload=_loads(r.payload_json, {}),
                created_at=r.created_at,
            )
            for r in rows
        ]


wf = WorkflowFacade()

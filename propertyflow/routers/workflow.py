# propertyflow/routers/workflow.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import get_principal
from ..db import get_db
from ..schemas import WorkflowEventOut
from ..services.events_facade import wf

router = APIRouter(prefix="/workflow", tags=["workflow"])


@router.get("/events", response_model=list[WorkflowEventOut])
def list_events(
    property_id: Optional[int] = Query(default=None),
    event_type: Optional[str] = Query(default=None),
    limit: int = Query(default=200, ge=1, le=500),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    return wf.list(db, landlord_id=p.landlord_id, property_id=property_id, event_type=event_type, limit=limit)

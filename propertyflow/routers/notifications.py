# propertyflow/routers/notifications.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import get_principal
from ..db import get_db
from ..schemas import MarkReadIn, NotificationOut
from ..services.notifications import list_notifications, mark_read

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationOut])
def get_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    return list_notifications(db, landlord_id=p.landlord_id, user_id=p.user_id, unread_only=unread_only, limit=limit)


@router.post("/mark-read")
def post_mark_read(payload: MarkReadIn, db: Session = Depends(get_db), p=Depends(get_principal)):
    n = mark_read(db, landlord_id=p.landlord_id, notification_ids=payload.ids)
    db.commit()
    return {"ok": True, "updated": n}

# propertyflow/domain/audit.py
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import AuditEvent


def _dumps(v: Optional[dict[str, Any]]) -> Optional[str]:
    if v is None:
        return None
    return json.dumps(v, sort_keys=True, default=str)


def audit_write(
    db: Session,
    *,
    landlord_id: int,
    actor_user_id: Optional[int],
    action: str,
    entity_type: str,
    entity_id: Any,
    before: Optional[dict[str, Any]] = None,
    after: Optional[dict[str, Any]] = None,
    commit: bool = False,
) -> AuditEvent:
    """
    Record a landlord action with before/after snapshots.

    Does not commit by default so services can bundle the audit row with
    the change it describes.
    """
    row = AuditEvent(
        landlord_id=int(landlord_id),
        actor_user_id=actor_user_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        before_json=_dumps(before),
        after_json=_dumps(after),
        created_at=datetime.utcnow(),
    )
    db.add(row)
    if commit:
        db.commit()
        db.refresh(row)
    return row


def list_audit(
    db: Session,
    *,
    landlord_id: int,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    limit: int = 200,
) -> list[AuditEvent]:
    q = select(AuditEvent).where(AuditEvent.landlord_id == int(landlord_id))
    if entity_type:
        q = q.where(AuditEvent.entity_type == entity_type)
    if entity_id is not None:
        q = q.where(AuditEvent.entity_id == str(entity_id))
    return list(db.scalars(q.order_by(AuditEvent.id.desc()).limit(int(limit))).all())

# propertyflow/services/lease_audit.py
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.audit_chain import LEASE_EVENT_TYPES, ChainVerification, canonical_payload, compute_event_hash, verify_audit_trail
from ..models import Lease, LeaseAuditEvent

log = logging.getLogger(__name__)


def _details(v: Any) -> Optional[str]:
    if v is None:
        return None
    if isinstance(v, str):
        return v
    return json.dumps(v, sort_keys=True, default=str)


def list_lease_events(db: Session, *, lease_id: int) -> list[LeaseAuditEvent]:
    return list(
        db.scalars(select(LeaseAuditEvent).where(LeaseAuditEvent.lease_id == int(lease_id)).order_by(LeaseAuditEvent.seq)).all()
    )


def append_lease_event(
    db: Session,
    *,
    lease: Lease,
    event_type: str,
    actor: str = "system",
    actor_role: str = "system",
    actor_name: Optional[str] = None,
    actor_email: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    details: Any = None,
    document_hash: Optional[str] = None,
    occurred_at: Optional[datetime] = None,
) -> LeaseAuditEvent:
    """
    Append the next link of the lease's audit chain.

    The new event's prev_hash is the current head's event_hash, and its own
    hash covers every recorded field. Flushes only.
    """
    if event_type not in LEASE_EVENT_TYPES:
        raise ValueError(f"unknown lease audit event: {event_type}")

    head = db.scalar(
        select(LeaseAuditEvent)
        .where(LeaseAuditEvent.lease_id == int(lease.id))
        .order_by(LeaseAuditEvent.seq.desc())
        .limit(1)
    )

    row = LeaseAuditEvent(
        landlord_id=int(lease.landlord_id),
        lease_id=int(lease.id),
        seq=(int(head.seq) + 1) if head else 1,
        event_type=event_type,
        actor=actor,
        actor_role=actor_role,
        actor_name=actor_name,
        actor_email=actor_email,
        ip_address=ip_address,
        user_agent=(user_agent or None) and user_agent[:500],
        details=_details(details),
        document_hash=document_hash,
        prev_hash=head.event_hash if head else None,
        occurred_at=(occurred_at or datetime.utcnow()).replace(microsecond=0),
        event_hash="",
    )
    row.event_hash = compute_event_hash(row.prev_hash, canonical_payload(row))
    db.add(row)
    db.flush()

    log.info("lease audit event %s", event_type, extra={"lease_id": lease.id})
    return row


def verify_lease_trail(db: Session, *, lease_id: int) -> ChainVerification:
    return verify_audit_trail(list_lease_events(db, lease_id=lease_id))


def trail_to_dict(events: list[LeaseAuditEvent], verification: ChainVerification) -> dict[str, Any]:
    return {
        "verified": verification.ok,
        "checked": verification.checked,
        "head_hash": verification.head_hash,
        "broken_at_seq": verification.broken_at_seq,
        "reason": verification.reason,
        "events": [
            {
                "seq": e.seq,
                "event_type": e.event_type,
                "actor": e.actor,
                "actor_role": e.actor_role,
                "actor_name": e.actor_name,
                "actor_email": e.actor_email,
                "ip_address": e.ip_address,
                "user_agent": e.user_agent,
                "details": e.details,
                "document_hash": e.document_hash,
                "prev_hash": e.prev_hash,
                "event_hash": e.event_hash,
                "occurred_at": e.occurred_at.isoformat() if e.occurred_at else None,
            }
            for e in events
        ],
    }

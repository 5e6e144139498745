# propertyflow/domain/audit_chain.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional, Protocol

from .fingerprint import fingerprint

LEASE_EVENT_TYPES = (
    "created",
    "modified",
    "sent_for_signature",
    "viewed",
    "signed",
    "countersigned",
    "executed",
    "notice_sent",
    "voided",
    "expired",
)

# fields covered by event_hash, in addition to prev_hash
HASHED_FIELDS = (
    "lease_id",
    "seq",
    "event_type",
    "actor",
    "actor_role",
    "actor_name",
    "actor_email",
    "ip_address",
    "user_agent",
    "details",
    "document_hash",
    "occurred_at",
)


class ChainedEvent(Protocol):
    lease_id: int
    seq: int
    event_type: str
    prev_hash: Optional[str]
    event_hash: str


def _norm(v: Any) -> Any:
    if isinstance(v, datetime):
        # microseconds are dropped so the hash survives DB round trips
        return v.replace(microsecond=0).isoformat()
    return v


def canonical_payload(event: Any) -> dict[str, Any]:
    return {k: _norm(getattr(event, k, None)) for k in HASHED_FIELDS}


def compute_event_hash(prev_hash: Optional[str], payload: dict[str, Any]) -> str:
    return fingerprint(prev_hash or "", {k: _norm(payload.get(k)) for k in HASHED_FIELDS})


@dataclass(frozen=True)
class ChainVerification:
    ok: bool
    checked: int
    head_hash: Optional[str] = None
    broken_at_seq: Optional[int] = None
    reason: Optional[str] = None


def verify_audit_trail(events: Iterable[Any]) -> ChainVerification:
    """
    Recompute every hash in sequence order.

    Detects edited events (hash mismatch), removed or reordered events
    (seq gap or prev_hash mismatch) and events spliced in from another lease.
    """
    rows = sorted(events, key=lambda e: int(e.seq))
    prev: Optional[str] = None
    lease_id: Optional[int] = None

    for i, e in enumerate(rows, start=1):
        if int(e.seq) != i:
            return ChainVerification(ok=False, checked=i - 1, head_hash=prev, broken_at_seq=int(e.seq), reason="sequence gap")
        if lease_id is None:
            lease_id = int(e.lease_id)
        elif int(e.lease_id) != lease_id:
            return ChainVerification(ok=False, checked=i - 1, head_hash=prev, broken_at_seq=int(e.seq), reason="foreign event")
        if (e.prev_hash or None) != prev:
            return ChainVerification(ok=False, checked=i - 1, head_hash=prev, broken_at_seq=int(e.seq), reason="prev_hash mismatch")
        expected = compute_event_hash(prev, canonical_payload(e))
        if expected != e.event_hash:
            return ChainVerification(ok=False, checked=i - 1, head_hash=prev, broken_at_seq=int(e.seq), reason="event_hash mismatch")
        prev = e.event_hash

    return ChainVerification(ok=True, checked=len(rows), head_hash=prev)

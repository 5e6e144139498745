# tests/test_audit_chain_and_lease_state.py
from __future__ import annotations

import base64
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pytest

from propertyflow.domain.audit_chain import canonical_payload, compute_event_hash, verify_audit_trail
from propertyflow.domain.lease_state import (
    assert_signature_transition,
    assert_signing_order,
    assert_transition,
    can_transition,
    decode_signature_image,
)
from propertyflow.errors import LeaseStateError, SigningError

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


@dataclass
class _Event:
    lease_id: int
    seq: int
    event_type: str
    actor: str = "system"
    actor_role: str = "system"
    actor_name: Optional[str] = None
    actor_email: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    details: Optional[str] = None
    document_hash: Optional[str] = None
    occurred_at: Optional[datetime] = None
    prev_hash: Optional[str] = None
    event_hash: str = ""


def _chain(lease_id: int, types: list[str]) -> list[_Event]:
    out: list[_Event] = []
    prev = None
    for i, t in enumerate(types, start=1):
        e = _Event(lease_id=lease_id, seq=i, event_type=t, occurred_at=datetime(2026, 1, 1, 9, i, 0, 123456))
        e.prev_hash = prev
        e.event_hash = compute_event_hash(prev, canonical_payload(e))
        prev = e.event_hash
        out.append(e)
    return out


def test_intact_chain_verifies():
    events = _chain(1, ["created", "sent_for_signature", "viewed", "signed"])
    res = verify_audit_trail(events)
    assert res.ok
    assert res.checked == 4
    assert res.head_hash == events[-1].event_hash


def test_microseconds_do_not_affect_hash():
    events = _chain(1, ["created"])
    events[0].occurred_at = events[0].occurred_at.replace(microsecond=0)
    assert verify_audit_trail(events).ok


def test_edited_event_is_detected():
    events = _chain(1, ["created", "sent_for_signature", "signed"])
    events[1].actor_email = "mallory@example.com"
    res = verify_audit_trail(events)
    assert not res.ok
    assert res.broken_at_seq == 2
    assert res.reason == "event_hash mismatch"
    assert res.checked == 1


def test_removed_event_is_detected():
    events = _chain(1, ["created", "sent_for_signature", "signed"])
    del events[1]
    res = verify_audit_trail(events)
    assert not res.ok
    assert res.reason == "sequence gap"
    assert res.broken_at_seq == 3


def test_event_from_other_lease_is_detected():
    events = _chain(1, ["created", "sent_for_signature"])
    foreign = _chain(2, ["created", "sent_for_signature"])
    res = verify_audit_trail([events[0], foreign[1]])
    assert not res.ok
    assert res.reason == "foreign event"


def test_relinked_event_is_detected():
    events = _chain(1, ["created", "sent_for_signature"])
    events[1].prev_hash = "0" * 64
    assert verify_audit_trail(events).reason == "prev_hash mismatch"


def test_lease_transitions():
    assert can_transition("draft", "pending_signature")
    assert not can_transition("pending_signature", "draft")
    assert can_transition("pending_signature", "cancelled")
    assert not can_transition("active", "draft")
    assert_transition("active", "terminated")
    with pytest.raises(LeaseStateError):
        assert_transition("cancelled", "active")


def test_signature_transitions_map_to_error_codes():
    assert_signature_transition("sent", "viewed")
    for current, code in (("signed", "ALREADY_SIGNED"), ("expired", "EXPIRED"), ("voided", "VOIDED")):
        with pytest.raises(SigningError) as ei:
            assert_signature_transition(current, "signed")
        assert ei.value.code == code


def test_landlord_cannot_sign_first():
    assert_signing_order("tenant", False)
    assert_signing_order("landlord", True)
    with pytest.raises(SigningError) as ei:
        assert_signing_order("landlord", False)
    assert ei.value.code == "TENANT_NOT_SIGNED"


def test_decode_signature_image():
    url = "data:image/png;base64," + base64.b64encode(PNG).decode()
    assert decode_signature_image(url, max_bytes=10_000) == PNG

    bad = [
        None,
        "data:image/jpeg;base64," + base64.b64encode(PNG).decode(),
        "data:image/png;base64,***",
        "data:image/png;base64," + base64.b64encode(b"GIF89a").decode(),
    ]
    for value in bad:
        with pytest.raises(SigningError) as ei:
            decode_signature_image(value, max_bytes=10_000)
        assert ei.value.code == "INVALID_SIGNATURE"

    with pytest.raises(SigningError):
        decode_signature_image(url, max_bytes=10)

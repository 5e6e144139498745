# propertyflow/domain/lease_state.py
from __future__ import annotations

import base64
import binascii
from typing import Optional

from ..errors import LeaseStateError, SigningError

LEASE_STATUSES = ("draft", "pending_signature", "active", "terminated", "expired", "cancelled")

LEASE_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "draft": ("pending_signature", "cancelled"),
    "pending_signature": ("active", "cancelled"),
    "active": ("terminated", "expired"),
    "terminated": (),
    "expired": (),
    "cancelled": (),
}

# leases in these states hold the unit
OCCUPYING_STATUSES = ("pending_signature", "active")

SIGNATURE_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "sent": ("viewed", "signed", "expired", "voided"),
    "viewed": ("signed", "expired", "voided"),
    "signed": (),
    "expired": (),
    "voided": (),
}

PNG_DATA_URL_PREFIX = "data:image/png;base64,"
_PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


def can_transition(current: str, target: str) -> bool:
    return target in LEASE_TRANSITIONS.get(current, ())


def assert_transition(current: str, target: str) -> None:
    if not can_transition(current, target):
        raise LeaseStateError(f"lease cannot move from {current} to {target}")


def assert_signature_transition(current: str, target: str) -> None:
    if target not in SIGNATURE_TRANSITIONS.get(current, ()):
        if current == "signed":
            raise SigningError("ALREADY_SIGNED", "Already signed")
        if current == "expired":
            raise SigningError("EXPIRED", "Signing link has expired")
        if current == "voided":
            raise SigningError("VOIDED", "Signing request was voided")
        raise SigningError("INVALID_REQUEST", f"signature request cannot move from {current} to {target}")


def assert_signing_order(role: str, tenant_signed: bool) -> None:
    """Tenants sign first; the landlord countersigns."""
    if role == "landlord" and not tenant_signed:
        raise SigningError("TENANT_NOT_SIGNED", "Tenant must sign before the landlord can countersign")


def decode_signature_image(data_url: Optional[str], *, max_bytes: int) -> bytes:
    """
    Validate a drawn signature sent as a PNG data URL and return the image bytes.

    The size limit applies to the data URL as received.
    """
    if not data_url or not data_url.startswith(PNG_DATA_URL_PREFIX):
        raise SigningError("INVALID_SIGNATURE", "Signature must be a PNG data URL")
    if len(data_url) > max_bytes:
        raise SigningError("INVALID_SIGNATURE", "Signature image is too large")
    try:
        raw = base64.b64decode(data_url[len(PNG_DATA_URL_PREFIX):], validate=True)
    except (binascii.Error, ValueError):
        raise SigningError("INVALID_SIGNATURE", "Signature image is not valid base64")
    if not raw.startswith(_PNG_MAGIC):
        raise SigningError("INVALID_SIGNATURE", "Signature image is not a PNG")
    return raw

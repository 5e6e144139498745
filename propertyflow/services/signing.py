# propertyflow/services/signing.py
from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.lease_document import format_currency, format_date
from ..domain.lease_render import SignatureRecord, render_html
from ..domain.lease_state import (
    assert_signature_transition,
    assert_signing_order,
    assert_transition,
    decode_signature_image,
)
from ..errors import SigningError
from ..models import Landlord, Lease, LegalDocument, Property, SignatureRequest, Tenant, Unit
from .events_facade import wf
from .lease_audit import append_lease_event
from .lease_generation import document_from_json, store_signed_pdf
from .lease_templates import signature_fields
from .move_in_charges import post_move_in_charges
from .notifications import notify, send_email
from .storage import StorageError, file_url, get_storage
from .team import landlord_contact_email

log = logging.getLogger(__name__)

PENDING_STATUSES = ("sent", "viewed")
SIGNING_DOCUMENT_URL = "/api/sign/{token}/document"


def new_token() -> str:
    return secrets.token_hex(24)


def signing_url(token: str) -> str:
    return f"{settings.app_base_url.rstrip('/')}/sign/{token}"


def create_signature_request(
    db: Session,
    *,
    lease: Lease,
    role: str,
    recipient_email: str,
    recipient_name: Optional[str] = None,
    document_id: Optional[int] = None,
    ttl_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> SignatureRequest:
    if role not in ("tenant", "landlord"):
        raise ValueError("role must be tenant or landlord")
    now = now or datetime.utcnow()
    if ttl_days is None:
        ttl_days = settings.signature_request_ttl_days if role == "tenant" else settings.landlord_signature_ttl_days
    row = SignatureRequest(
        landlord_id=lease.landlord_id,
        lease_id=lease.id,
        document_id=document_id if document_id is not None else lease.legal_document_id,
        role=role,
        recipient_name=recipient_name,
        recipient_email=recipient_email,
        token=new_token(),
        status="sent",
        expires_at=now + timedelta(days=int(ttl_days)),
        created_at=now,
    )
    db.add(row)
    db.flush()
    return row


def list_requests(db: Session, *, lease_id: int) -> list[SignatureRequest]:
    return list(db.scalars(select(SignatureRequest).where(SignatureRequest.lease_id == int(lease_id)).order_by(SignatureRequest.id)).all())


def _by_token(db: Session, token: str) -> SignatureRequest:
    sig = db.scalar(select(SignatureRequest).where(SignatureRequest.token == token))
    if sig is None:
        raise SigningError("NOT_FOUND", "Signing link not found")
    return sig


def _expire(db: Session, sig: SignatureRequest, lease: Lease) -> None:
    sig.status = "expired"
    append_lease_event(db, lease=lease, event_type="expired", details={"role": sig.role, "request_id": sig.id})
    db.commit()


def _check_open(db: Session, sig: SignatureRequest, lease: Lease, now: datetime) -> None:
    """
    Expired or voided requests raise. A pending request past its expiry is
    marked expired (and committed) before the error propagates.
    """
    if sig.status == "voided":
        raise SigningError("VOIDED", "Signing request was voided")
    if sig.status == "expired":
        raise SigningError("EXPIRED", "Signing link has expired")
    if sig.status in PENDING_STATUSES and sig.expires_at < now:
        _expire(db, sig, lease)
        raise SigningError("EXPIRED", "Signing link has expired")


def _lease_parts(db: Session, lease: Lease) -> tuple[Landlord, Property, Unit, Tenant]:
    return (
        db.get(Landlord, lease.landlord_id),
        db.get(Property, lease.property_id),
        db.get(Unit, lease.unit_id),
        db.get(Tenant, lease.tenant_id),
    )


def _summary_html(lease: Lease, landlord: Landlord, prop: Property, unit: Unit, tenant: Tenant) -> str:
    end = format_date(lease.end_date) if lease.end_date else "Month-to-Month"
    return (
        "<div class='lease-summary'>"
        f"<p><strong>Landlord:</strong> {landlord.name}</p>"
        f"<p><strong>Tenant:</strong> {tenant.full_name}</p>"
        f"<p><strong>Premises:</strong> {prop.name} - {unit.name}</p>"
        f"<p><strong>Term:</strong> {format_date(lease.start_date)} to {end}</p>"
        f"<p><strong>Monthly Rent:</strong> {format_currency(lease.rent_amount)} due on day {lease.billing_day_of_month}</p>"
        "</div>"
    )


def open_signing_session(
    db: Session,
    token: str,
    *,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """
    What the signer sees behind a signing link.

    The first open moves the request to viewed and records a viewed event.
    Uploaded PDFs return their document URL and the signer's fields; generated
    leases return the rendered HTML.
    """
    now = now or datetime.utcnow()
    sig = _by_token(db, token)
    lease = db.get(Lease, sig.lease_id)
    if lease is None:
        raise SigningError("NOT_FOUND", "Lease not found")
    _check_open(db, sig, lease, now)

    if sig.status == "sent":
        sig.status = "viewed"
        sig.viewed_at = now
        append_lease_event(
            db,
            lease=lease,
            event_type="viewed",
            actor=sig.role,
            actor_role=sig.role,
            actor_name=sig.recipient_name,
            actor_email=sig.recipient_email,
            ip_address=ip_address,
            user_agent=user_agent,
            occurred_at=now,
        )
        db.commit()

    landlord, prop, unit, tenant = _lease_parts(db, lease)
    out: dict[str, Any] = {
        "lease_id": lease.id,
        "role": sig.role,
        "status": sig.status,
        "recipient_name": sig.recipient_name,
        "recipient_email": sig.recipient_email,
        "expires_at": sig.expires_at,
        "tenant_signed": lease.tenant_signed_at is not None,
        "lease_details": {
            "landlord_name": landlord.name,
            "tenant_name": tenant.full_name,
            "property_label": f"{prop.name} - {unit.name} ({unit.unit_type})",
            "start_date": lease.start_date,
            "end_date": lease.end_date,
            "rent_amount": lease.rent_amount,
        },
    }

    doc = document_from_json(lease.lease_data_json)
    legal = db.get(LegalDocument, lease.legal_document_id) if lease.legal_document_id else None
    uploaded = legal is not None and legal.file_type == "application/pdf" and doc is None

    if uploaded:
        fields = [f for f in signature_fields(legal) if f.get("role") == sig.role]
        out.update(
            document_type="custom_pdf",
            document_name=legal.name,
            document_url=SIGNING_DOCUMENT_URL.format(token=sig.token),
            signature_fields=fields,
            lease_html=_summary_html(lease, landlord, prop, unit, tenant),
        )
    else:
        out.update(
            document_type="html_template",
            document_name=legal.name if legal else None,
            lease_html=render_html(doc) if doc else _summary_html(lease, landlord, prop, unit, tenant),
        )
    return out


def signing_document(db: Session, token: str, *, now: Optional[datetime] = None) -> tuple[bytes, str, str]:
    """(content, content_type, name) of the document behind an open signing link."""
    now = now or datetime.utcnow()
    sig = _by_token(db, token)
    lease = db.get(Lease, sig.lease_id)
    if lease is None:
        raise SigningError("NOT_FOUND", "Lease not found")
    _check_open(db, sig, lease, now)
    doc_id = sig.document_id or lease.legal_document_id
    legal = db.get(LegalDocument, doc_id) if doc_id else None
    if legal is None:
        raise SigningError("NOT_FOUND", "Document not found")
    try:
        content = get_storage().read_bytes(legal.file_key)
    except StorageError as e:
        raise SigningError("NOT_FOUND", "Document file missing") from e
    return content, legal.file_type, legal.name


def _signature_records(db: Session, lease_id: int) -> list[SignatureRecord]:
    rows = db.scalars(
        select(SignatureRequest)
        .where(SignatureRequest.lease_id == int(lease_id), SignatureRequest.status == "signed")
        .order_by(SignatureRequest.signed_at, SignatureRequest.id)
    ).all()
    return [
        SignatureRecord(
            role=r.role,
            name=r.signer_name or r.recipient_name or "",
            email=r.signer_email or r.recipient_email,
            signed_at=r.signed_at,
            ip_address=r.signer_ip,
            user_agent=r.signer_user_agent,
            signature_sha256=r.signature_sha256,
        )
        for r in rows
    ]


def sign(
    db: Session,
    token: str,
    *,
    signature_data_url: Optional[str],
    signer_name: Optional[str],
    signer_email: Optional[str],
    consent: bool,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """
    Record a signature on a pending request.

    Tenant signature: lease.tenant_signed_at, a landlord countersign request
    if none exists yet, landlord email.
    Landlord signature (only after the tenant): lease becomes active,
    move-in charges are posted, both parties get the executed notice.
    """
    now = now or datetime.utcnow()
    signer_name = (signer_name or "").strip()
    signer_email = (signer_email or "").strip().lower()
    if not signature_data_url or not signer_name or not signer_email:
        raise SigningError("INVALID_REQUEST", "Missing signature, name, or email")
    if not consent:
        raise SigningError("CONSENT_REQUIRED", "Consent to sign electronically is required")

    sig = _by_token(db, token)
    lease = db.get(Lease, sig.lease_id)
    if lease is None:
        raise SigningError("NOT_FOUND", "Lease not found")
    _check_open(db, sig, lease, now)
    assert_signature_transition(sig.status, "signed")
    if lease.status != "pending_signature":
        raise SigningError("INVALID_REQUEST", f"Lease is {lease.status}, not awaiting signatures")

    raw = decode_signature_image(signature_data_url, max_bytes=settings.max_signature_bytes)
    assert_signing_order(sig.role, lease.tenant_signed_at is not None)

    sig.status = "signed"
    sig.signed_at = now
    sig.signer_name = signer_name
    sig.signer_email = signer_email
    sig.signer_ip = ip_address
    sig.signer_user_agent = (user_agent or None) and user_agent[:500]
    sig.signature_data_url = signature_data_url
    sig.signature_sha256 = hashlib.sha256(raw).hexdigest()
    db.flush()

    landlord, prop, unit, tenant = _lease_parts(db, lease)
    legal = db.get(LegalDocument, lease.legal_document_id) if lease.legal_document_id else None
    content_hash = legal.document_hash if legal else None

    doc = document_from_json(lease.lease_data_json)
    if doc is not None:
        try:
            sig.signed_file_key, sig.document_hash = store_signed_pdf(
                landlord_id=lease.landlord_id,
                doc=doc,
                signatures=_signature_records(db, lease.id),
                content_hash=content_hash,
            )
        except Exception:
            log.exception("signed PDF could not be produced", extra={"lease_id": lease.id})
    if sig.document_hash is None:
        sig.document_hash = content_hash

    if sig.role == "tenant":
        lease.tenant_signed_at = now
        lease.updated_at = now
        append_lease_event(
            db,
            lease=lease,
            event_type="signed",
            actor="tenant",
            actor_role="tenant",
            actor_name=signer_name,
            actor_email=signer_email,
            ip_address=ip_address,
            user_agent=user_agent,
            document_hash=sig.document_hash,
            occurred_at=now,
        )
        landlord_req = db.scalar(
            select(SignatureRequest).where(
                SignatureRequest.lease_id == lease.id,
                SignatureRequest.role == "landlord",
                SignatureRequest.status.in_(PENDING_STATUSES + ("signed",)),
            )
        )
        landlord_email = landlord_contact_email(db, landlord)
        if landlord_req is None and landlord_email:
            landlord_req = create_signature_request(
                db,
                lease=lease,
                role="landlord",
                recipient_email=landlord_email,
                recipient_name=landlord.name,
                now=now,
            )
            append_lease_event(
                db,
                lease=lease,
                event_type="sent_for_signature",
                details={"role": "landlord", "recipient": landlord_email},
                occurred_at=now,
            )
        notify(
            db,
            landlord_id=lease.landlord_id,
            kind="lease",
            title="Tenant signed lease",
            message=f"{signer_name} signed the lease for {prop.name} - {unit.name}. Your countersignature is needed.",
            action_url=f"/leases/{lease.id}",
            metadata={"lease_id": lease.id},
        )
        wf.emit(db, landlord_id=lease.landlord_id, property_id=lease.property_id, event_type="lease_tenant_signed", payload={"lease_id": lease.id})
        db.commit()

        if landlord_req is not None and landlord_req.status in PENDING_STATUSES:
            send_email(
                landlord_req.recipient_email,
                "Lease ready for your signature",
                "Tenant has signed",
                [f"{signer_name} has signed the lease for {prop.name} - {unit.name}.", "Please countersign to activate the lease."],
                action_url=signing_url(landlord_req.token),
                action_label="Countersign lease",
            )
    else:
        assert_transition(lease.status, "active")
        lease.landlord_signed_at = now
        lease.status = "active"
        unit.is_available = False
        lease.updated_at = now
        append_lease_event(
            db,
            lease=lease,
            event_type="countersigned",
            actor="landlord",
            actor_role="landlord",
            actor_name=signer_name,
            actor_email=signer_email,
            ip_address=ip_address,
            user_agent=user_agent,
            document_hash=sig.document_hash,
            occurred_at=now,
        )
        append_lease_event(db, lease=lease, event_type="executed", document_hash=sig.document_hash, occurred_at=now)
        charges = post_move_in_charges(db, lease=lease, landlord=landlord, today=now.date())
        wf.emit(
            db,
            landlord_id=lease.landlord_id,
            property_id=lease.property_id,
            event_type="lease_executed",
            payload={"lease_id": lease.id, "move_in_total": charges.total_amount},
        )
        db.commit()

        link = file_url(sig.signed_file_key) if sig.signed_file_key else None
        paragraphs = [
            f"The lease for {prop.name} - {unit.name} has been signed by all parties and is now active.",
            f"Lease start: {format_date(lease.start_date)}. Monthly rent: {format_currency(lease.rent_amount)}.",
        ]
        for to in {tenant.email, landlord_contact_email(db, landlord)}:
            if to:
                send_email(to, "Lease fully executed", "Your lease is fully executed", paragraphs, action_url=link, action_label="Download signed lease")

    log.info("lease signed", extra={"lease_id": lease.id})
    return {
        "ok": True,
        "role": sig.role,
        "lease_id": lease.id,
        "lease_status": lease.status,
        "signed_at": sig.signed_at,
        "document_hash": sig.document_hash,
        "signed_document_url": file_url(sig.signed_file_key) if sig.signed_file_key else None,
    }


def void_request(db: Session, *, landlord_id: int, request_id: int, reason: Optional[str] = None, actor_email: Optional[str] = None) -> SignatureRequest:
    sig = db.scalar(select(SignatureRequest).where(SignatureRequest.id == int(request_id), SignatureRequest.landlord_id == int(landlord_id)))
    if sig is None:
        raise SigningError("NOT_FOUND", "Signature request not found")
    assert_signature_transition(sig.status, "voided")
    lease = db.get(Lease, sig.lease_id)
    sig.status = "voided"
    append_lease_event(
        db,
        lease=lease,
        event_type="voided",
        actor="landlord",
        actor_role="landlord",
        actor_email=actor_email,
        details={"role": sig.role, "request_id": sig.id, "reason": reason},
    )
    db.commit()
    return sig


def expire_stale_requests(db: Session, *, now: Optional[datetime] = None) -> int:
    now = now or datetime.utcnow()
    rows = db.scalars(
        select(SignatureRequest).where(SignatureRequest.status.in_(PENDING_STATUSES), SignatureRequest.expires_at < now)
    ).all()
    for sig in rows:
        lease = db.get(Lease, sig.lease_id)
        sig.status = "expired"
        append_lease_event(db, lease=lease, event_type="expired", details={"role": sig.role, "request_id": sig.id}, occurred_at=now)
    db.commit()
    if rows:
        log.info("expired %s signature requests", len(rows), extra={"job": "expire_signature_requests"})
    return len(rows)


def send_signing_reminders(db: Session, *, now: Optional[datetime] = None) -> int:
    """One reminder per pending request once it has waited signing_reminder_after_hours."""
    now = now or datetime.utcnow()
    cutoff = now - timedelta(hours=settings.signing_reminder_after_hours)
    rows = db.scalars(
        select(SignatureRequest).where(
            SignatureRequest.status.in_(PENDING_STATUSES),
            SignatureRequest.reminder_sent_at.is_(None),
            SignatureRequest.created_at <= cutoff,
            SignatureRequest.expires_at > now,
        )
    ).all()
    for sig in rows:
        send_email(
            sig.recipient_email,
            "Reminder: your lease is waiting for your signature",
            "Lease signature reminder",
            [
                f"Hi {sig.recipient_name or 'there'}, a lease is still waiting for your signature.",
                f"This link expires on {format_date(sig.expires_at.date())}.",
            ],
            action_url=signing_url(sig.token),
            action_label="Review and sign",
        )
        sig.reminder_sent_at = now
    db.commit()
    return len(rows)

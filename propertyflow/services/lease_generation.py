# propertyflow/services/lease_generation.py
from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional, Sequence

from sqlalchemy.orm import Session

from ..config import settings
from ..domain.fingerprint import document_hash
from ..domain.lease_data import LeaseData, LeaseTerms, build_lease_data_from_records, validate_lease_data
from ..domain.lease_document import LeaseDocument, assemble_lease
from ..domain.lease_render import SignatureRecord, render_html, render_pdf
from ..errors import LeaseGenerationError, LeaseValidationError
from ..models import Landlord, LeaseTemplate, LegalDocument, Property, Tenant, Unit
from .lease_templates import builder_config, signature_fields
from .storage import get_storage

log = logging.getLogger(__name__)

DEFAULT_SIGNATURE_FIELDS = (
    {"id": "landlord_signature", "type": "signature", "role": "landlord"},
    {"id": "landlord_date", "type": "date", "role": "landlord"},
    {"id": "tenant_signature", "type": "signature", "role": "tenant"},
    {"id": "tenant_date", "type": "date", "role": "tenant"},
)


@dataclass(frozen=True)
class GeneratedLease:
    data: LeaseData
    document: Optional[LeaseDocument]
    legal_document: LegalDocument
    html: Optional[str]
    warnings: tuple[str, ...] = ()


def _key(landlord_id: int, folder: str, ext: str) -> str:
    return f"landlords/{int(landlord_id)}/{folder}/{uuid.uuid4().hex}.{ext}"


def lease_data_for(
    *,
    landlord: Landlord,
    property: Property,
    unit: Unit,
    tenant: Tenant,
    terms: LeaseTerms,
    template: Optional[LeaseTemplate] = None,
    overrides: Optional[dict[str, Any]] = None,
    signing_date: Optional[date] = None,
    rent_amount: Optional[float] = None,
) -> tuple[LeaseData, list[str]]:
    """
    Build and validate lease data. Template builder config is applied first,
    then per-lease overrides. Raises LeaseValidationError on any error.
    """
    customizations: dict[str, Any] = {}
    if template is not None and template.template_type == "builder":
        customizations.update(builder_config(template))
    customizations.update(overrides or {})

    data = build_lease_data_from_records(
        landlord=landlord,
        property=property,
        unit=unit,
        tenant=tenant,
        terms=terms,
        customizations=customizations or None,
        signing_date=signing_date,
        default_state=settings.default_state,
        rent_amount=rent_amount,
    )
    result = validate_lease_data(data)
    if not result.ok:
        raise LeaseValidationError(result.errors)
    return data, list(result.warnings)


def render_and_store(doc: LeaseDocument, *, landlord_id: int) -> tuple[str, str, bytes, str]:
    """
    Render the lease and store it. Returns (file_key, content_type, bytes, html).

    A PDF failure falls back to storing the HTML rendition; failing to
    store either raises LeaseGenerationError.
    """
    html = render_html(doc)
    try:
        content: bytes = render_pdf(doc)
        content_type, ext = "application/pdf", "pdf"
    except Exception:
        log.exception("lease PDF render failed; storing HTML", extra={"landlord_id": landlord_id})
        content, content_type, ext = html.encode("utf-8"), "text/html", "html"

    key = _key(landlord_id, "leases", ext)
    try:
        get_storage().put_bytes(key, content, content_type=content_type)
    except Exception as e:
        log.exception("lease document storage failed", extra={"landlord_id": landlord_id})
        raise LeaseGenerationError("Failed to store lease document") from e
    return key, content_type, content, html


def generate_lease_document(
    db: Session,
    *,
    landlord: Landlord,
    property: Property,
    unit: Unit,
    tenant: Tenant,
    terms: LeaseTerms,
    template: Optional[LeaseTemplate] = None,
    overrides: Optional[dict[str, Any]] = None,
    signing_date: Optional[date] = None,
    rent_amount: Optional[float] = None,
) -> GeneratedLease:
    """
    Lease data -> validation -> document -> stored file -> LegalDocument row.

    Uploaded-PDF templates reuse the template's file as the lease document,
    keeping its configured signature fields.
    """
    data, warnings = lease_data_for(
        landlord=landlord,
        property=property,
        unit=unit,
        tenant=tenant,
        terms=terms,
        template=template,
        overrides=overrides,
        signing_date=signing_date,
        rent_amount=rent_amount,
    )

    name = f"Lease - {tenant.full_name} - {property.name} {unit.name}"

    if template is not None and template.template_type == "uploaded_pdf" and template.file_key:
        storage = get_storage()
        try:
            content = storage.read_bytes(template.file_key)
        except Exception as e:
            log.exception("uploaded lease template unreadable", extra={"landlord_id": landlord.id})
            raise LeaseGenerationError("Lease template file is missing") from e
        fields = signature_fields(template) or list(DEFAULT_SIGNATURE_FIELDS)
        legal = LegalDocument(
            landlord_id=landlord.id,
            name=name,
            doc_type="lease",
            category="generated",
            state=data.state,
            file_key=template.file_key,
            file_type="application/pdf",
            file_size=len(content),
            document_hash=document_hash(content),
            is_fields_configured=True,
            signature_fields_json=json.dumps(fields),
        )
        db.add(legal)
        db.flush()
        return GeneratedLease(data=data, document=None, legal_document=legal, html=None, warnings=tuple(warnings))

    doc = assemble_lease(data)
    key, content_type, content, html = render_and_store(doc, landlord_id=landlord.id)

    legal = LegalDocument(
        landlord_id=landlord.id,
        name=name,
        doc_type="lease",
        category="generated",
        state=data.state,
        description=f"Residential lease {doc.document_id}",
        file_key=key,
        file_type=content_type,
        file_size=len(content),
        document_hash=document_hash(content),
        is_fields_configured=True,
        signature_fields_json=json.dumps(list(DEFAULT_SIGNATURE_FIELDS)),
    )
    db.add(legal)
    db.flush()

    log.info("lease document generated", extra={"landlord_id": landlord.id})
    return GeneratedLease(data=data, document=doc, legal_document=legal, html=html, warnings=tuple(warnings))


def document_from_json(lease_data_json: Optional[str]) -> Optional[LeaseDocument]:
    if not lease_data_json:
        return None
    return assemble_lease(LeaseData.from_dict(json.loads(lease_data_json)))


def store_signed_pdf(
    *,
    landlord_id: int,
    doc: LeaseDocument,
    signatures: Sequence[SignatureRecord],
    content_hash: Optional[str],
) -> tuple[str, str]:
    """Render the lease with its signature certificate and store it. Returns (file_key, sha256)."""
    content = render_pdf(doc, signatures=signatures, content_hash=content_hash)
    key = _key(landlord_id, "signed", "pdf")
    get_storage().put_bytes(key, content, content_type="application/pdf")
    return key, document_hash(content)

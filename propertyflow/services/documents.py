# propertyflow/services/documents.py
from __future__ import annotations

import json
import uuid
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.fingerprint import document_hash
from ..models import LegalDocument
from .lease_templates import signature_fields
from .storage import file_url, get_storage

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
DOC_TYPES = ("lease", "addendum", "notice", "other")


def check_pdf(content: bytes, content_type: Optional[str]) -> None:
    """ValueError unless `content` looks like a PDF within the upload limit."""
    if not content:
        raise ValueError("file is empty")
    if len(content) > MAX_UPLOAD_BYTES:
        raise ValueError("file exceeds the 10 MB limit")
    if content_type not in (None, "", "application/pdf", "application/octet-stream") or not content.startswith(b"%PDF"):
        raise ValueError("only PDF files are accepted")


def store_pdf(landlord_id: int, folder: str, content: bytes) -> str:
    key = f"landlords/{int(landlord_id)}/{folder}/{uuid.uuid4().hex}.pdf"
    get_storage().put_bytes(key, content, content_type="application/pdf")
    return key


def upload_document(
    db: Session,
    *,
    landlord_id: int,
    name: str,
    content: bytes,
    content_type: Optional[str] = None,
    doc_type: str = "lease",
    state: Optional[str] = None,
    description: Optional[str] = None,
    is_template: bool = False,
) -> LegalDocument:
    check_pdf(content, content_type)
    if doc_type not in DOC_TYPES:
        raise ValueError(f"doc_type must be one of {', '.join(DOC_TYPES)}")
    key = store_pdf(landlord_id, "documents", content)
    row = LegalDocument(
        landlord_id=int(landlord_id),
        name=name.strip() or "Untitled document",
        doc_type=doc_type,
        category="uploaded",
        state=state.upper() if state else None,
        description=description,
        file_key=key,
        file_type="application/pdf",
        file_size=len(content),
        document_hash=document_hash(content),
        is_template=bool(is_template),
        is_fields_configured=False,
    )
    db.add(row)
    db.commit()
    return row


def configure_fields(db: Session, *, document: LegalDocument, fields: list[dict[str, Any]]) -> LegalDocument:
    roles = {f.get("role") for f in fields}
    if "tenant" not in roles:
        raise ValueError("at least one tenant signature field is required")
    document.signature_fields_json = json.dumps(fields)
    document.is_fields_configured = True
    db.commit()
    return document


def list_documents(
    db: Session,
    *,
    landlord_id: int,
    doc_type: Optional[str] = None,
    category: Optional[str] = None,
    active_only: bool = True,
) -> list[LegalDocument]:
    q = select(LegalDocument).where(LegalDocument.landlord_id == int(landlord_id))
    if doc_type:
        q = q.where(LegalDocument.doc_type == doc_type)
    if category:
        q = q.where(LegalDocument.category == category)
    if active_only:
        q = q.where(LegalDocument.is_active.is_(True))
    return list(db.scalars(q.order_by(LegalDocument.id.desc())).all())


def document_to_dict(d: LegalDocument) -> dict[str, Any]:
    return {
        "id": d.id,
        "name": d.name,
        "doc_type": d.doc_type,
        "category": d.category,
        "state": d.state,
        "description": d.description,
        "file_type": d.file_type,
        "file_size": d.file_size,
        "document_hash": d.document_hash,
        "is_template": d.is_template,
        "is_active": d.is_active,
        "is_fields_configured": d.is_fields_configured,
        "signature_fields": signature_fields(d),
        "file_url": file_url(d.file_key),
        "created_at": d.created_at,
    }

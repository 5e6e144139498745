# propertyflow/routers/documents.py
from __future__ import annotations

import mimetypes
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import get_principal, require_manager
from ..db import get_db
from ..domain.audit import audit_write
from ..models import LeaseTemplate, LegalDocument, SignatureRequest
from ..schemas import LegalDocumentOut, SignatureFieldsIn
from ..services.documents import configure_fields, document_to_dict, list_documents, upload_document
from ..services.ownership import must_get_document
from ..services.storage import StorageError, get_storage

router = APIRouter(prefix="/documents", tags=["documents"])
files_router = APIRouter(prefix="/files", tags=["files"])


@router.get("", response_model=list[LegalDocumentOut])
def get_documents(
    doc_type: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    return [document_to_dict(d) for d in list_documents(db, landlord_id=p.landlord_id, doc_type=doc_type, category=category)]


@router.post("", response_model=LegalDocumentOut)
async def upload(
    file: UploadFile = File(...),
    name: str = Form(default=""),
    doc_type: str = Form(default="lease"),
    state: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    is_template: bool = Form(default=False),
    db: Session = Depends(get_db),
    p=Depends(require_manager),
):
    content = await file.read()
    try:
        row = upload_document(
            db,
            landlord_id=p.landlord_id,
            name=name or (file.filename or ""),
            content=content,
            content_type=file.content_type,
            doc_type=doc_type,
            state=state,
            description=description,
            is_template=is_template,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="document.upload",
        entity_type="LegalDocument",
        entity_id=row.id,
        after={"name": row.name, "document_hash": row.document_hash},
        commit=True,
    )
    return document_to_dict(row)


@router.get("/{document_id}", response_model=LegalDocumentOut)
def get_document(document_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    return document_to_dict(must_get_document(db, landlord_id=p.landlord_id, document_id=document_id))


@router.get("/{document_id}/download")
def download_document(document_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    doc = must_get_document(db, landlord_id=p.landlord_id, document_id=document_id)
    try:
        content = get_storage().read_bytes(doc.file_key)
    except StorageError:
        raise HTTPException(status_code=404, detail="document file missing")
    ext = ".pdf" if doc.file_type == "application/pdf" else ".html"
    return Response(
        content=content,
        media_type=doc.file_type,
        headers={"Content-Disposition": f'attachment; filename="document-{doc.id}{ext}"'},
    )


@router.put("/{document_id}/fields", response_model=LegalDocumentOut)
def set_fields(document_id: int, payload: SignatureFieldsIn, db: Session = Depends(get_db), p=Depends(require_manager)):
    doc = must_get_document(db, landlord_id=p.landlord_id, document_id=document_id)
    try:
        configure_fields(db, document=doc, fields=[f.model_dump(exclude_none=True) for f in payload.signature_fields])
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return document_to_dict(doc)


@router.delete("/{document_id}")
def archive_document(document_id: int, db: Session = Depends(get_db), p=Depends(require_manager)):
    """Documents are archived, never removed; signed leases keep pointing at them."""
    doc = must_get_document(db, landlord_id=p.landlord_id, document_id=document_id)
    doc.is_active = False
    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="document.archive",
        entity_type="LegalDocument",
        entity_id=doc.id,
    )
    db.commit()
    return {"ok": True}


def _key_landlord(db: Session, key: str) -> Optional[int]:
    """Owning landlord for a stored key, from the row that references it."""
    doc = db.scalar(select(LegalDocument.landlord_id).where(LegalDocument.file_key == key).limit(1))
    if doc is not None:
        return int(doc)
    signed = db.scalar(select(SignatureRequest.landlord_id).where(SignatureRequest.signed_file_key == key).limit(1))
    if signed is not None:
        return int(signed)
    tpl = db.scalar(select(LeaseTemplate.landlord_id).where(LeaseTemplate.file_key == key).limit(1))
    return int(tpl) if tpl is not None else None


@files_router.get("/{key:path}")
def get_file(key: str, db: Session = Depends(get_db), p=Depends(get_principal)):
    if _key_landlord(db, key) != p.landlord_id:
        raise HTTPException(status_code=404, detail="file not found")
    try:
        content = get_storage().read_bytes(key)
    except StorageError:
        raise HTTPException(status_code=404, detail="file not found")
    media_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return Response(content=content, media_type=media_type)

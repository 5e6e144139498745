# propertyflow/routers/lease_templates.py
from __future__ import annotations

import json
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.orm import Session

from ..auth import get_principal, require_manager
from ..db import get_db
from ..domain.audit import audit_write
from ..models import LeaseTemplate
from ..schemas import AssignPropertiesIn, LeaseTemplateIn, LeaseTemplateOut, LeaseTemplateUpdate
from ..services.documents import check_pdf, store_pdf
from ..services.lease_templates import (
    assign_template_to_properties,
    assigned_property_ids,
    builder_config,
    create_template,
    delete_template,
    list_templates,
    merge_fields,
    remove_template_from_property,
    set_default_template,
    signature_fields,
    update_template,
)
from ..services.ownership import must_get_property, must_get_template

router = APIRouter(prefix="/lease-templates", tags=["lease-templates"])


def _out(db: Session, t: LeaseTemplate) -> dict[str, Any]:
    return {
        "id": t.id,
        "name": t.name,
        "description": t.description,
        "template_type": t.template_type,
        "is_default": t.is_default,
        "builder_config": builder_config(t),
        "file_key": t.file_key,
        "signature_fields": signature_fields(t),
        "merge_fields": merge_fields(t),
        "property_ids": assigned_property_ids(db, template_id=t.id),
        "created_at": t.created_at,
        "updated_at": t.updated_at,
    }


@router.get("", response_model=list[LeaseTemplateOut])
def get_templates(db: Session = Depends(get_db), p=Depends(get_principal)):
    return [_out(db, t) for t in list_templates(db, landlord_id=p.landlord_id)]


@router.post("", response_model=LeaseTemplateOut)
def post_template(payload: LeaseTemplateIn, db: Session = Depends(get_db), p=Depends(require_manager)):
    data = payload.model_dump()
    # uploaded PDFs go through /upload so the file key is always one we stored
    data.pop("file_key", None)
    if data.get("signature_fields") is not None:
        data["signature_fields"] = [f.model_dump(exclude_none=True) for f in payload.signature_fields]
    try:
        row = create_template(db, landlord_id=p.landlord_id, **data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="lease_template.create",
        entity_type="LeaseTemplate",
        entity_id=row.id,
        after={"name": row.name, "template_type": row.template_type, "is_default": row.is_default},
    )
    db.commit()
    return _out(db, row)


@router.post("/upload", response_model=LeaseTemplateOut)
async def upload_template(
    file: UploadFile = File(...),
    name: str = Form(...),
    description: Optional[str] = Form(default=None),
    signature_fields_json: Optional[str] = Form(default=None),
    is_default: bool = Form(default=False),
    db: Session = Depends(get_db),
    p=Depends(require_manager),
):
    """Upload a landlord's own PDF lease; signature fields come as a JSON list."""
    content = await file.read()
    try:
        check_pdf(content, file.content_type)
        fields = json.loads(signature_fields_json) if signature_fields_json else None
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    key = store_pdf(p.landlord_id, "templates", content)
    row = create_template(
        db,
        landlord_id=p.landlord_id,
        name=name,
        template_type="uploaded_pdf",
        description=description,
        file_key=key,
        signature_fields=fields,
        is_default=is_default,
    )
    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="lease_template.upload",
        entity_type="LeaseTemplate",
        entity_id=row.id,
        after={"name": row.name, "file_key": key},
    )
    db.commit()
    return _out(db, row)


@router.get("/{template_id}", response_model=LeaseTemplateOut)
def get_template(template_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    return _out(db, must_get_template(db, landlord_id=p.landlord_id, template_id=template_id))


@router.patch("/{template_id}", response_model=LeaseTemplateOut)
def patch_template(template_id: int, payload: LeaseTemplateUpdate, db: Session = Depends(get_db), p=Depends(require_manager)):
    row = must_get_template(db, landlord_id=p.landlord_id, template_id=template_id)
    changes = payload.model_dump(exclude_unset=True)
    if payload.signature_fields is not None:
        changes["signature_fields"] = [f.model_dump(exclude_none=True) for f in payload.signature_fields]
    try:
        update_template(db, template=row, changes=changes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="lease_template.update",
        entity_type="LeaseTemplate",
        entity_id=row.id,
        after={"fields": sorted(changes)},
    )
    db.commit()
    return _out(db, row)


@router.delete("/{template_id}")
def remove_template(template_id: int, db: Session = Depends(get_db), p=Depends(require_manager)):
    row = must_get_template(db, landlord_id=p.landlord_id, template_id=template_id)
    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="lease_template.delete",
        entity_type="LeaseTemplate",
        entity_id=row.id,
        before={"name": row.name},
    )
    delete_template(db, template=row)
    db.commit()
    return {"ok": True}


@router.post("/{template_id}/default", response_model=LeaseTemplateOut)
def make_default(template_id: int, db: Session = Depends(get_db), p=Depends(require_manager)):
    row = must_get_template(db, landlord_id=p.landlord_id, template_id=template_id)
    set_default_template(db, template=row)
    db.commit()
    return _out(db, row)


@router.post("/{template_id}/assign")
def assign(template_id: int, payload: AssignPropertiesIn, db: Session = Depends(get_db), p=Depends(require_manager)):
    row = must_get_template(db, landlord_id=p.landlord_id, template_id=template_id)
    assigned = assign_template_to_properties(db, template=row, property_ids=payload.property_ids)
    db.commit()
    return {"ok": True, "template_id": row.id, "property_ids": assigned}


@router.delete("/properties/{property_id}")
def unassign(property_id: int, db: Session = Depends(get_db), p=Depends(require_manager)):
    must_get_property(db, landlord_id=p.landlord_id, property_id=property_id)
    removed = remove_template_from_property(db, landlord_id=p.landlord_id, property_id=property_id)
    db.commit()
    return {"ok": True, "removed": removed}

# propertyflow/services/lease_templates.py
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from ..domain.lease_data import coerce_fields
from ..models import LeaseTemplate, Property, PropertyLeaseTemplate

TEMPLATE_TYPES = ("builder", "uploaded_pdf")


def _loads(s: Optional[str], default: Any) -> Any:
    if not s:
        return default
    try:
        return json.loads(s)
    except ValueError:
        return default


def builder_config(t: LeaseTemplate) -> dict[str, Any]:
    return _loads(t.builder_config_json, {})


def signature_fields(t: Any) -> list[dict[str, Any]]:
    return _loads(getattr(t, "signature_fields_json", None), [])


def merge_fields(t: LeaseTemplate) -> list[str]:
    return _loads(t.merge_fields_json, [])


def _unset_other_defaults(db: Session, *, landlord_id: int, keep_id: int) -> None:
    db.execute(
        update(LeaseTemplate)
        .where(LeaseTemplate.landlord_id == int(landlord_id), LeaseTemplate.id != int(keep_id), LeaseTemplate.is_default.is_(True))
        .values(is_default=False)
    )


def create_template(
    db: Session,
    *,
    landlord_id: int,
    name: str,
    template_type: str = "builder",
    description: Optional[str] = None,
    builder_config: Optional[dict[str, Any]] = None,
    file_key: Optional[str] = None,
    signature_fields: Optional[list[dict[str, Any]]] = None,
    merge_fields: Optional[list[str]] = None,
    is_default: bool = False,
) -> LeaseTemplate:
    if template_type not in TEMPLATE_TYPES:
        raise ValueError(f"template_type must be one of {', '.join(TEMPLATE_TYPES)}")
    if template_type == "uploaded_pdf" and not file_key:
        raise ValueError("uploaded_pdf templates need a file")
    if builder_config:
        # reject unknown lease fields up front instead of at approval time
        coerce_fields(builder_config, strict=True)

    now = datetime.utcnow()
    row = LeaseTemplate(
        landlord_id=int(landlord_id),
        name=name.strip(),
        description=description,
        template_type=template_type,
        is_default=bool(is_default),
        builder_config_json=json.dumps(builder_config or {}, sort_keys=True, default=str),
        file_key=file_key,
        signature_fields_json=json.dumps(signature_fields or []),
        merge_fields_json=json.dumps(merge_fields or []),
        created_at=now,
        updated_at=now,
    )
    db.add(row)
    db.flush()
    if row.is_default:
        _unset_other_defaults(db, landlord_id=landlord_id, keep_id=row.id)
    return row


def update_template(db: Session, *, template: LeaseTemplate, changes: dict[str, Any]) -> LeaseTemplate:
    if "name" in changes and changes["name"] is not None:
        template.name = str(changes["name"]).strip()
    if "description" in changes:
        template.description = changes["description"]
    if changes.get("builder_config") is not None:
        coerce_fields(changes["builder_config"], strict=True)
        template.builder_config_json = json.dumps(changes["builder_config"], sort_keys=True, default=str)
    if changes.get("signature_fields") is not None:
        template.signature_fields_json = json.dumps(changes["signature_fields"])
    if changes.get("merge_fields") is not None:
        template.merge_fields_json = json.dumps(changes["merge_fields"])
    if changes.get("file_key") is not None:
        template.file_key = changes["file_key"]
    if changes.get("is_default") is not None:
        template.is_default = bool(changes["is_default"])
        if template.is_default:
            _unset_other_defaults(db, landlord_id=template.landlord_id, keep_id=template.id)
    template.updated_at = datetime.utcnow()
    db.flush()
    return template


def delete_template(db: Session, *, template: LeaseTemplate) -> None:
    db.execute(delete(PropertyLeaseTemplate).where(PropertyLeaseTemplate.lease_template_id == template.id))
    db.delete(template)
    db.flush()


def list_templates(db: Session, *, landlord_id: int) -> list[LeaseTemplate]:
    """Defaults first, then newest."""
    q = (
        select(LeaseTemplate)
        .where(LeaseTemplate.landlord_id == int(landlord_id))
        .order_by(LeaseTemplate.is_default.desc(), LeaseTemplate.created_at.desc(), LeaseTemplate.id.desc())
    )
    return list(db.scalars(q).all())


def assigned_property_ids(db: Session, *, template_id: int) -> list[int]:
    return [
        int(x)
        for x in db.scalars(
            select(PropertyLeaseTemplate.property_id).where(PropertyLeaseTemplate.lease_template_id == int(template_id))
        ).all()
    ]


def assign_template_to_properties(db: Session, *, template: LeaseTemplate, property_ids: Iterable[int]) -> list[int]:
    """
    A property has at most one template; an existing assignment is replaced.

    Property ids that do not belong to the template's landlord are ignored.
    """
    ids = {int(i) for i in property_ids}
    owned = set(
        db.scalars(select(Property.id).where(Property.landlord_id == template.landlord_id, Property.id.in_(ids))).all()
    )
    for pid in sorted(owned):
        existing = db.scalar(select(PropertyLeaseTemplate).where(PropertyLeaseTemplate.property_id == pid))
        if existing:
            existing.lease_template_id = template.id
        else:
            db.add(PropertyLeaseTemplate(landlord_id=template.landlord_id, property_id=pid, lease_template_id=template.id))
    db.flush()
    return sorted(owned)


def remove_template_from_property(db: Session, *, landlord_id: int, property_id: int) -> bool:
    res = db.execute(
        delete(PropertyLeaseTemplate).where(
            PropertyLeaseTemplate.landlord_id == int(landlord_id), PropertyLeaseTemplate.property_id == int(property_id)
        )
    )
    db.flush()
    return bool(res.rowcount)


def set_default_template(db: Session, *, template: LeaseTemplate) -> LeaseTemplate:
    return update_template(db, template=template, changes={"is_default": True})


def resolve_template_for_property(db: Session, *, landlord_id: int, property_id: int) -> Optional[LeaseTemplate]:
    """Property assignment first, then the landlord default."""
    assigned = db.scalar(
        select(LeaseTemplate)
        .join(PropertyLeaseTemplate, PropertyLeaseTemplate.lease_template_id == LeaseTemplate.id)
        .where(PropertyLeaseTemplate.property_id == int(property_id), LeaseTemplate.landlord_id == int(landlord_id))
    )
    if assigned:
        return assigned
    return db.scalar(
        select(LeaseTemplate)
        .where(LeaseTemplate.landlord_id == int(landlord_id), LeaseTemplate.is_default.is_(True))
        .order_by(LeaseTemplate.id.desc())
        .limit(1)
    )

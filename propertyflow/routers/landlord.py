# propertyflow/routers/landlord.py
from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, require_manager, require_owner
from ..db import get_db
from ..domain.audit import audit_write
from ..models import Landlord
from ..schemas import LandlordSettingsOut, LandlordSettingsUpdate, MemberIn, RoleChangeIn
from ..services.team import add_member, change_role, list_members, remove_member

router = APIRouter(prefix="/landlord", tags=["landlord"])

_TEAM_ERRORS = {
    "invalid_role": (400, "role must be owner, manager or staff"),
    "already_member": (409, "user is already a member"),
    "last_owner": (409, "the last owner cannot be removed or demoted"),
}


def _team_error(e: ValueError) -> HTTPException:
    status, detail = _TEAM_ERRORS.get(str(e), (400, str(e)))
    return HTTPException(status_code=status, detail=detail)


@router.get("/settings", response_model=LandlordSettingsOut)
def get_settings(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return db.get(Landlord, p.landlord_id)


@router.patch("/settings", response_model=LandlordSettingsOut)
def update_settings(payload: LandlordSettingsUpdate, db: Session = Depends(get_db), p: Principal = Depends(require_manager)):
    row = db.get(Landlord, p.landlord_id)
    changes = payload.model_dump(exclude_unset=True)
    before = {k: getattr(row, k) for k in changes if hasattr(row, k)}

    days = changes.pop("reminder_days_before", None)
    if days is not None:
        if any(int(d) < 0 for d in days):
            raise HTTPException(status_code=400, detail="reminder days must be >= 0")
        row.reminder_days_before_json = json.dumps(sorted({int(d) for d in days}, reverse=True))
    for k, v in changes.items():
        setattr(row, k, v)

    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="landlord.settings.update",
        entity_type="Landlord",
        entity_id=row.id,
        before=before,
        after={k: getattr(row, k) for k in changes},
    )
    db.commit()
    return row


@router.get("/team")
def team(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return list_members(db, landlord_id=p.landlord_id)


@router.post("/team")
def invite_member(payload: MemberIn, db: Session = Depends(get_db), p: Principal = Depends(require_owner)):
    try:
        mem = add_member(db, landlord_id=p.landlord_id, email=payload.email, role=payload.role, display_name=payload.display_name)
    except ValueError as e:
        raise _team_error(e)
    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="team.add",
        entity_type="LandlordMembership",
        entity_id=mem.id,
        after={"user_id": mem.user_id, "role": mem.role},
    )
    db.commit()
    return {"ok": True, "user_id": mem.user_id, "role": mem.role}


@router.patch("/team/{user_id}")
def update_member_role(user_id: int, payload: RoleChangeIn, db: Session = Depends(get_db), p: Principal = Depends(require_owner)):
    try:
        mem = change_role(db, landlord_id=p.landlord_id, user_id=user_id, role=payload.role)
    except LookupError:
        raise HTTPException(status_code=404, detail="member not found")
    except ValueError as e:
        raise _team_error(e)
    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="team.role",
        entity_type="LandlordMembership",
        entity_id=mem.id,
        after={"user_id": user_id, "role": payload.role},
    )
    db.commit()
    return {"ok": True, "user_id": user_id, "role": mem.role}


@router.delete("/team/{user_id}")
def delete_member(user_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_owner)):
    try:
        remove_member(db, landlord_id=p.landlord_id, user_id=user_id)
    except LookupError:
        raise HTTPException(status_code=404, detail="member not found")
    except ValueError as e:
        raise _team_error(e)
    audit_write(
        db,
        landlord_id=p.landlord_id,
        actor_user_id=p.user_id,
        action="team.remove",
        entity_type="LandlordMembership",
        entity_id=user_id,
    )
    db.commit()
    return {"ok": True}

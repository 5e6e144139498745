# propertyflow/services/team.py
from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..models import AppUser, Landlord, LandlordMembership
from .auth_service import ensure_membership, get_or_create_user

TEAM_ROLES = ("owner", "manager", "staff")


def list_members(db: Session, *, landlord_id: int) -> list[dict[str, Any]]:
    rows = db.execute(
        select(LandlordMembership, AppUser)
        .join(AppUser, AppUser.id == LandlordMembership.user_id)
        .where(LandlordMembership.landlord_id == int(landlord_id))
        .order_by(LandlordMembership.id)
    ).all()
    return [
        {
            "membership_id": int(m.id),
            "user_id": int(u.id),
            "email": u.email,
            "display_name": u.display_name,
            "role": m.role,
            "created_at": m.created_at,
        }
        for m, u in rows
    ]


def _owner_count(db: Session, landlord_id: int) -> int:
    return int(
        db.scalar(
            select(func.count(LandlordMembership.id)).where(
                LandlordMembership.landlord_id == int(landlord_id), LandlordMembership.role == "owner"
            )
        )
        or 0
    )


def add_member(db: Session, *, landlord_id: int, email: str, role: str, display_name: Optional[str] = None) -> LandlordMembership:
    """Raises ValueError("invalid_role") / ValueError("already_member")."""
    if role not in TEAM_ROLES:
        raise ValueError("invalid_role")
    user = get_or_create_user(db, email, display_name)
    existing = db.scalar(
        select(LandlordMembership).where(LandlordMembership.landlord_id == int(landlord_id), LandlordMembership.user_id == user.id)
    )
    if existing:
        raise ValueError("already_member")
    return ensure_membership(db, landlord_id=landlord_id, user_id=user.id, role=role)


def _membership(db: Session, landlord_id: int, user_id: int) -> LandlordMembership:
    mem = db.scalar(
        select(LandlordMembership).where(LandlordMembership.landlord_id == int(landlord_id), LandlordMembership.user_id == int(user_id))
    )
    if mem is None:
        raise LookupError("member not found")
    return mem


def change_role(db: Session, *, landlord_id: int, user_id: int, role: str) -> LandlordMembership:
    if role not in TEAM_ROLES:
        raise ValueError("invalid_role")
    mem = _membership(db, landlord_id, user_id)
    if mem.role == "owner" and role != "owner" and _owner_count(db, landlord_id) <= 1:
        raise ValueError("last_owner")
    mem.role = role
    db.flush()
    return mem


def remove_member(db: Session, *, landlord_id: int, user_id: int) -> None:
    mem = _membership(db, landlord_id, user_id)
    if mem.role == "owner" and _owner_count(db, landlord_id) <= 1:
        raise ValueError("last_owner")
    db.delete(mem)
    db.flush()


def landlord_contact_email(db: Session, landlord: Landlord) -> Optional[str]:
    """Company email, else the first owner's login email."""
    if landlord.company_email:
        return landlord.company_email
    return db.scalar(
        select(AppUser.email)
        .join(LandlordMembership, LandlordMembership.user_id == AppUser.id)
        .where(LandlordMembership.landlord_id == landlord.id, LandlordMembership.role == "owner")
        .order_by(LandlordMembership.id)
        .limit(1)
    )

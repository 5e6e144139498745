# propertyflow/auth.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .middleware.request_id import bind_context
from .models import AppUser, Landlord, LandlordMembership
from .services.auth_service import decode_access_token


@dataclass(frozen=True)
class Principal:
    landlord_id: int
    landlord_slug: str
    user_id: int
    email: str
    role: str  # owner | manager | staff


ROLE_ORDER = {"staff": 1, "manager": 2, "owner": 3}


def _require_role(principal: Principal, min_role: str) -> None:
    if ROLE_ORDER.get(principal.role, 0) < ROLE_ORDER.get(min_role, 999):
        raise HTTPException(status_code=403, detail=f"Requires role >= {min_role}")


def _principal(db: Session, *, landlord_slug: str, user: AppUser) -> Principal:
    landlord = db.scalar(select(Landlord).where(Landlord.slug == landlord_slug))
    if landlord is None:
        raise HTTPException(status_code=401, detail="Unknown landlord")
    mem = db.scalar(
        select(LandlordMembership).where(LandlordMembership.landlord_id == landlord.id, LandlordMembership.user_id == user.id)
    )
    if mem is None:
        raise HTTPException(status_code=403, detail="Not a member of this landlord account")
    bind_context(landlord_id=int(landlord.id), user_id=int(user.id))
    return Principal(
        landlord_id=int(landlord.id),
        landlord_slug=str(landlord.slug),
        user_id=int(user.id),
        email=str(user.email),
        role=str(mem.role),
    )


def _dev_principal(db: Session, request: Request, landlord_slug: str) -> Principal:
    email = (request.headers.get(settings.dev_header_user_email) or "").strip().lower()
    role_hint = (request.headers.get(settings.dev_header_user_role) or "owner").strip().lower()
    if not email:
        raise HTTPException(status_code=401, detail=f"Missing {settings.dev_header_user_email} for dev auth")

    landlord = db.scalar(select(Landlord).where(Landlord.slug == landlord_slug))
    user = db.scalar(select(AppUser).where(AppUser.email == email))

    if settings.dev_auto_provision:
        now = datetime.utcnow()
        if landlord is None:
            landlord = Landlord(slug=landlord_slug, name=landlord_slug, created_at=now)
            db.add(landlord)
        if user is None:
            user = AppUser(email=email, display_name=email.split("@")[0], created_at=now)
            db.add(user)
        db.flush()
        mem = db.scalar(
            select(LandlordMembership).where(LandlordMembership.landlord_id == landlord.id, LandlordMembership.user_id == user.id)
        )
        if mem is None:
            db.add(
                LandlordMembership(
                    landlord_id=landlord.id,
                    user_id=user.id,
                    role=role_hint if role_hint in ROLE_ORDER else "owner",
                    created_at=now,
                )
            )
        db.commit()

    if landlord is None or user is None:
        raise HTTPException(status_code=401, detail="Dev auth could not provision user/landlord")
    return _principal(db, landlord_slug=landlord_slug, user=user)


def get_principal(
    request: Request,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Principal:
    """
    Auth modes, in priority order:
      1) Authorization: Bearer <jwt>  (landlord slug from the header or the token)
      2) dev headers, only when settings.auth_mode == "dev"
    """
    landlord_slug = (request.headers.get(settings.dev_header_landlord_slug) or "").strip()

    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
        try:
            claims = decode_access_token(token)
        except jwt.ExpiredSignatureError:
            raise HTTPException(status_code=401, detail="Token expired")
        except jwt.InvalidTokenError:
            raise HTTPException(status_code=401, detail="Invalid token")

        user = db.get(AppUser, int(claims.get("sub") or 0))
        if user is None:
            raise HTTPException(status_code=401, detail="Unknown user")
        return _principal(db, landlord_slug=landlord_slug or str(claims.get("ll") or ""), user=user)

    if settings.auth_mode == "dev":
        if not landlord_slug:
            raise HTTPException(status_code=401, detail=f"Missing {settings.dev_header_landlord_slug} (active landlord).")
        return _dev_principal(db, request, landlord_slug)

    raise HTTPException(status_code=401, detail="Not authenticated")


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> AppUser:
    """
    The signed-in user without a landlord context (contractors, tenants
    viewing their own invoices, customers booking work).
    """
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
        try:
            claims = decode_access_token(token)
        except jwt.ExpiredSignatureError:
            raise HTTPException(status_code=401, detail="Token expired")
        except jwt.InvalidTokenError:
            raise HTTPException(status_code=401, detail="Invalid token")
        user = db.get(AppUser, int(claims.get("sub") or 0))
        if user is None:
            raise HTTPException(status_code=401, detail="Unknown user")
        bind_context(user_id=int(user.id))
        return user

    if settings.auth_mode == "dev":
        email = (request.headers.get(settings.dev_header_user_email) or "").strip().lower()
        if not email:
            raise HTTPException(status_code=401, detail=f"Missing {settings.dev_header_user_email} for dev auth")
        user = db.scalar(select(AppUser).where(AppUser.email == email))
        if user is None and settings.dev_auto_provision:
            user = AppUser(email=email, display_name=email.split("@")[0], created_at=datetime.utcnow())
            db.add(user)
            db.commit()
        if user is None:
            raise HTTPException(status_code=401, detail="Unknown user")
        bind_context(user_id=int(user.id))
        return user

    raise HTTPException(status_code=401, detail="Not authenticated")


def require_manager(p: Principal = Depends(get_principal)) -> Principal:
    _require_role(p, "manager")
    return p


def require_owner(p: Principal = Depends(get_principal)) -> Principal:
    _require_role(p, "owner")
    return p

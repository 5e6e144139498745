# propertyflow/routers/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..schemas import LoginIn, PrincipalOut, RegisterIn, TokenOut
from ..services.auth_service import login_user, register_landlord

router = APIRouter(prefix="/auth", tags=["auth"])

_REGISTER_ERRORS = {
    "email_taken": "Email already registered",
    "slug_taken": "Landlord slug already exists",
}


@router.post("/register", response_model=TokenOut)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    """Create a user, a landlord account and the owner membership; returns a bearer token."""
    email = payload.email.strip().lower()
    if "@" not in email:
        raise HTTPException(status_code=400, detail="valid email is required")
    try:
        return register_landlord(
            db,
            email=email,
            password=payload.password,
            landlord_name=payload.landlord_name,
            landlord_slug=payload.landlord_slug,
            display_name=payload.display_name,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=_REGISTER_ERRORS.get(str(e), str(e)))


@router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    try:
        return login_user(db, email=payload.email, password=payload.password, landlord_slug=payload.landlord_slug)
    except ValueError as e:
        if str(e) == "not_a_member":
            raise HTTPException(status_code=403, detail="Not a member of this landlord account")
        raise HTTPException(status_code=401, detail="Invalid email or password")


@router.get("/me", response_model=PrincipalOut)
def me(p: Principal = Depends(get_principal)):
    return PrincipalOut(
        landlord_id=p.landlord_id,
        landlord_slug=p.landlord_slug,
        user_id=p.user_id,
        email=p.email,
        role=p.role,
    )

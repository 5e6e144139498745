# propertyflow/services/auth_service.py
from __future__ import annotations

import base64
import hashlib
import hmac
import re
import secrets
from datetime import datetime, timedelta
from typing import Any, Optional

import jwt
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..models import AppUser, Landlord, LandlordMembership

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def _now() -> datetime:
    return datetime.utcnow()


def slugify(value: str) -> str:
    return _SLUG_RE.sub("-", value.strip().lower()).strip("-")[:80] or "landlord"


def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    iters = int(settings.password_pbkdf2_iters)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iters)
    return f"pbkdf2_sha256${iters}${base64.b64encode(salt).decode()}${base64.b64encode(dk).decode()}"


def verify_password(password: str, stored: Optional[str]) -> bool:
    if not stored:
        return False
    try:
        algo, iters_s, salt_b64, dk_b64 = stored.split("$", 3)
    except ValueError:
        return False
    if algo != "pbkdf2_sha256":
        return False
    salt = base64.b64decode(salt_b64.encode())
    dk = base64.b64decode(dk_b64.encode())
    test = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, int(iters_s))
    return hmac.compare_digest(test, dk)


def create_access_token(*, user_id: int, landlord_slug: str, role: str, minutes: Optional[int] = None) -> str:
    now = _now()
    payload: dict[str, Any] = {
        "sub": str(int(user_id)),
        "ll": landlord_slug,
        "role": str(role),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=int(minutes or settings.jwt_exp_minutes))).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def decode_access_token(token: str) -> dict[str, Any]:
    """Raises jwt.InvalidTokenError (incl. ExpiredSignatureError) on bad tokens."""
    return jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])


def get_or_create_user(db: Session, email: str, display_name: Optional[str] = None) -> AppUser:
    email = email.strip().lower()
    u = db.scalar(select(AppUser).where(AppUser.email == email))
    if u:
        return u
    u = AppUser(email=email, display_name=display_name or email.split("@")[0], created_at=_now())
    db.add(u)
    db.flush()
    return u


def ensure_membership(db: Session, *, landlord_id: int, user_id: int, role: str) -> LandlordMembership:
    mem = db.scalar(
        select(LandlordMembership).where(LandlordMembership.landlord_id == int(landlord_id), LandlordMembership.user_id == int(user_id))
    )
    if mem:
        return mem
    mem = LandlordMembership(landlord_id=int(landlord_id), user_id=int(user_id), role=str(role), created_at=_now())
    db.add(mem)
    db.flush()
    return mem


def register_landlord(
    db: Session,
    *,
    email: str,
    password: str,
    landlord_name: str,
    landlord_slug: Optional[str] = None,
    display_name: Optional[str] = None,
) -> dict[str, Any]:
    """
    Create a user, a landlord account and the owner membership, and log in.

    Raises ValueError("email_taken") / ValueError("slug_taken").
    """
    email = email.strip().lower()
    if db.scalar(select(AppUser).where(AppUser.email == email, AppUser.password_hash.is_not(None))):
        raise ValueError("email_taken")

    slug = slugify(landlord_slug or landlord_name)
    if db.scalar(select(Landlord).where(Landlord.slug == slug)):
        raise ValueError("slug_taken")

    user = get_or_create_user(db, email, display_name)
    user.password_hash = hash_password(password)

    landlord = Landlord(slug=slug, name=landlord_name.strip(), company_email=email, created_at=_now())
    db.add(landlord)
    db.flush()

    ensure_membership(db, landlord_id=landlord.id, user_id=user.id, role="owner")
    db.commit()

    token = create_access_token(user_id=user.id, landlord_slug=slug, role="owner")
    return {"access_token": token, "token_type": "bearer", "landlord_slug": slug, "user_id": int(user.id), "role": "owner"}


def login_user(db: Session, *, email: str, password: str, landlord_slug: Optional[str] = None) -> dict[str, Any]:
    """
    Verify credentials and issue a token for one of the user's landlords
    (the given slug, or the first membership).
    """
    email = email.strip().lower()
    user = db.scalar(select(AppUser).where(AppUser.email == email))
    if not user or not verify_password(password, user.password_hash):
        raise ValueError("invalid_credentials")

    q = (
        select(LandlordMembership, Landlord)
        .join(Landlord, Landlord.id == LandlordMembership.landlord_id)
        .where(LandlordMembership.user_id == int(user.id))
        .order_by(LandlordMembership.id)
    )
    if landlord_slug:
        q = q.where(Landlord.slug == landlord_slug.strip())
    row = db.execute(q).first()
    if row is None:
        raise ValueError("not_a_member")
    mem, landlord = row

    token = create_access_token(user_id=user.id, landlord_slug=landlord.slug, role=mem.role)
    return {"access_token": token, "token_type": "bearer", "landlord_slug": landlord.slug, "user_id": int(user.id), "role": mem.role}

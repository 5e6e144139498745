# propertyflow/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db import SessionLocal
from ..models import Landlord, LeaseTemplate, Property, Unit
from ..services.auth_service import ensure_membership, get_or_create_user, hash_password
from ..services.lease_templates import create_template
from ..services.scheduler import upsert_profile


@dataclass(frozen=True)
class SeedResult:
    landlord_slug: str
    user_email: str
    property_id: Optional[int]
    unit_ids: list[int]
    template_id: Optional[int]
    contractor_id: Optional[int]


DEMO_BUILDER_CONFIG = {
    "rent_due_day": 1,
    "grace_period_days": 5,
    "late_fee_amount": 50,
    "pets_allowed": False,
    "smoking_allowed": False,
    "tenant_pays_utilities": ["electricity", "internet"],
    "renters_insurance_required": True,
}


def _get_or_create_landlord(db: Session, slug: str, name: str, email: str) -> Landlord:
    row = db.scalar(select(Landlord).where(Landlord.slug == slug))
    if row:
        return row
    row = Landlord(slug=slug, name=name, company_name=name, company_email=email, created_at=datetime.utcnow())
    db.add(row)
    db.flush()
    return row


def _ensure_sample_property(db: Session, landlord: Landlord, state: str) -> tuple[Property, list[Unit]]:
    prop = db.scalar(select(Property).where(Property.landlord_id == landlord.id).order_by(Property.id.asc()))
    if prop is None:
        prop = Property(
            landlord_id=landlord.id,
            name="Maple Court",
            street="120 Maple St",
            city="Reno",
            state=state,
            zip_code="89501",
            property_type="multi_family",
            created_at=datetime.utcnow(),
        )
        db.add(prop)
        db.flush()

    units = list(db.scalars(select(Unit).where(Unit.property_id == prop.id).order_by(Unit.id.asc())).all())
    if not units:
        for name, beds, rent in (("1A", 1, 1250.0), ("1B", 2, 1650.0), ("2A", 2, 1700.0)):
            u = Unit(
                landlord_id=landlord.id,
                property_id=prop.id,
                name=name,
                bedrooms=beds,
                bathrooms=1.0,
                rent_amount=rent,
                is_available=True,
                created_at=datetime.utcnow(),
            )
            db.add(u)
            units.append(u)
        db.flush()
    return prop, units


def seed_demo(
    *,
    landlord_slug: str = "demo",
    landlord_name: str = "Demo Properties",
    user_email: str = "owner@demo.local",
    password: str = "demo-password",
    state: str = "NV",
    create_sample_property: bool = True,
    create_contractor: bool = True,
) -> SeedResult:
    """Idempotent: rerunning reuses the rows a previous run created."""
    db = SessionLocal()
    try:
        landlord = _get_or_create_landlord(db, landlord_slug, landlord_name, user_email)
        user = get_or_create_user(db, user_email, "Demo Owner")
        if not user.password_hash:
            user.password_hash = hash_password(password)
        ensure_membership(db, landlord_id=landlord.id, user_id=user.id, role="owner")

        prop_id: Optional[int] = None
        unit_ids: list[int] = []
        if create_sample_property:
            prop, units = _ensure_sample_property(db, landlord, state)
            prop_id = prop.id
            unit_ids = [u.id for u in units]

        tpl = db.scalar(select(LeaseTemplate).where(LeaseTemplate.landlord_id == landlord.id, LeaseTemplate.is_default.is_(True)))
        if tpl is None:
            tpl = create_template(
                db,
                landlord_id=landlord.id,
                name="Standard residential lease",
                builder_config=DEMO_BUILDER_CONFIG,
                is_default=True,
            )
        db.commit()

        contractor_id: Optional[int] = None
        if create_contractor:
            handy = get_or_create_user(db, "handy@demo.local", "Handy Repairs")
            profile = upsert_profile(
                db,
                user_id=handy.id,
                fields={
                    "business_name": "Handy Repairs",
                    "specialties": ["plumbing", "electrical"],
                    "instant_booking_enabled": True,
                    "deposit_required": True,
                    "deposit_percent": 20.0,
                    "cancellation_policy": "moderate",
                },
            )
            contractor_id = profile.id

        return SeedResult(
            landlord_slug=landlord.slug,
            user_email=user.email,
            property_id=prop_id,
            unit_ids=unit_ids,
            template_id=tpl.id,
            contractor_id=contractor_id,
        )
    finally:
        db.close()

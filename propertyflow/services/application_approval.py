# propertyflow/services/application_approval.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..domain.lease_data import LeaseTerms
from ..domain.lease_document import format_currency, format_date
from ..domain.rent_schedule import add_months
from ..errors import ApprovalError, LeaseGenerationError, LeaseValidationError
from ..models import AppUser, Landlord, Lease, LeaseTemplate, Property, RentalApplication, Tenant, Unit
from .events_facade import wf
from .lease_audit import append_lease_event
from .lease_generation import generate_lease_document
from .lease_rules import ensure_no_lease_overlap, unit_has_occupying_lease
from .lease_templates import resolve_template_for_property
from .notifications import notify, send_email
from .signing import create_signature_request, signing_url

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApprovalResult:
    application: RentalApplication
    lease: Lease
    document_id: int
    signing_url: str
    signing_token: str
    warnings: tuple[str, ...] = ()


def is_unit_available(db: Session, unit: Optional[Unit]) -> bool:
    """Available flag set and no lease holding the unit (pending signature or active)."""
    if unit is None or not unit.is_available:
        return False
    return not unit_has_occupying_lease(db, unit_id=unit.id)


def get_template_for_approval(db: Session, *, landlord_id: int, property_id: int) -> Optional[LeaseTemplate]:
    return resolve_template_for_property(db, landlord_id=landlord_id, property_id=property_id)


def _find_or_create_tenant(db: Session, *, landlord_id: int, app: RentalApplication) -> Tenant:
    email = app.email.strip().lower()
    tenant = db.scalar(
        select(Tenant).where(Tenant.landlord_id == int(landlord_id), func.lower(Tenant.email) == email).order_by(Tenant.id)
    )
    user = db.scalar(select(AppUser).where(func.lower(AppUser.email) == email))
    if tenant is None:
        tenant = Tenant(
            landlord_id=landlord_id,
            full_name=app.full_name,
            email=email,
            phone=app.phone,
            user_id=user.id if user else None,
            created_at=datetime.utcnow(),
        )
        db.add(tenant)
        db.flush()
    elif tenant.user_id is None and user is not None:
        tenant.user_id = user.id
    return tenant


def default_lease_end(start: date) -> date:
    """One-year term ending the day before the anniversary."""
    return add_months(start, 12, start.day) - timedelta(days=1)


def approve_application(
    db: Session,
    *,
    landlord_id: int,
    application_id: int,
    unit_id: Optional[int] = None,
    lease_start_date: Optional[date] = None,
    lease_end_date: Optional[date] = None,
    is_month_to_month: bool = False,
    rent_amount: Optional[float] = None,
    billing_day_of_month: int = 1,
    overrides: Optional[dict[str, Any]] = None,
    actor_user_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> ApprovalResult:
    """
    Approve a pending application and put a generated lease in front of the
    tenant for signature.

    Everything up to the database commit either succeeds together or raises
    ApprovalError. Emails go out after the commit and never fail approval.
    """
    now = now or datetime.utcnow()

    app = db.scalar(
        select(RentalApplication).where(
            RentalApplication.id == int(application_id), RentalApplication.landlord_id == int(landlord_id)
        )
    )
    if app is None:
        raise ApprovalError("APPLICATION_NOT_FOUND", "Application not found")
    if app.status != "pending":
        raise ApprovalError("APPLICATION_NOT_PENDING", f"Application is already {app.status}")

    unit_id = unit_id or app.unit_id
    unit = db.get(Unit, int(unit_id)) if unit_id else None
    if unit is None or unit.landlord_id != int(landlord_id) or not is_unit_available(db, unit):
        raise ApprovalError("UNIT_UNAVAILABLE", "Unit is not available")
    prop = db.get(Property, unit.property_id)
    if prop is None or prop.landlord_id != int(landlord_id):
        raise ApprovalError("PROPERTY_NOT_FOUND", "Property not found")

    template = get_template_for_approval(db, landlord_id=landlord_id, property_id=prop.id)
    if template is None:
        raise ApprovalError("NO_LEASE_TEMPLATE", "No lease template is assigned to this property and no default template exists")

    landlord = db.get(Landlord, int(landlord_id))
    tenant = _find_or_create_tenant(db, landlord_id=landlord_id, app=app)
    if not tenant.email:
        raise ApprovalError("TENANT_NOT_FOUND", "Tenant has no email address")

    start = lease_start_date or app.move_in_date or now.date()
    end = None if is_month_to_month else (lease_end_date or default_lease_end(start))
    try:
        ensure_no_lease_overlap(db, landlord_id=landlord_id, unit_id=unit.id, start_date=start, end_date=end)
    except ValueError as e:
        raise ApprovalError("UNIT_UNAVAILABLE", str(e)) from e

    terms = LeaseTerms(start_date=start, end_date=end, is_month_to_month=is_month_to_month, billing_day_of_month=billing_day_of_month)
    try:
        generated = generate_lease_document(
            db,
            landlord=landlord,
            property=prop,
            unit=unit,
            tenant=tenant,
            terms=terms,
            template=template,
            overrides=overrides,
            signing_date=now.date(),
            rent_amount=rent_amount,
        )
    except LeaseValidationError as e:
        raise ApprovalError("VALIDATION_ERROR", e.message, extra={"errors": e.extra.get("errors", [])}) from e
    except LeaseGenerationError as e:
        raise ApprovalError("LEASE_GENERATION_FAILED", e.message) from e

    data = generated.data
    lease = Lease(
        landlord_id=landlord_id,
        property_id=prop.id,
        unit_id=unit.id,
        tenant_id=tenant.id,
        template_id=template.id,
        legal_document_id=generated.legal_document.id,
        application_id=app.id,
        start_date=start,
        end_date=end,
        rent_amount=data.monthly_rent,
        billing_day_of_month=billing_day_of_month,
        status="pending_signature",
        generated_from="auto",
        lease_data_json=data.to_json() if generated.document is not None else None,
        created_at=now,
        updated_at=now,
    )
    db.add(lease)
    db.flush()

    sig = create_signature_request(
        db,
        lease=lease,
        role="tenant",
        recipient_email=tenant.email,
        recipient_name=tenant.full_name,
        document_id=generated.legal_document.id,
        now=now,
    )

    app.status = "approved"
    app.unit_id = unit.id
    app.property_id = prop.id
    app.tenant_id = tenant.id
    app.decided_at = now
    unit.is_available = False

    append_lease_event(
        db,
        lease=lease,
        event_type="created",
        actor=f"user:{actor_user_id}" if actor_user_id else "system",
        actor_role="landlord" if actor_user_id else "system",
        details={"application_id": app.id, "template_id": template.id, "generated_from": "auto"},
        document_hash=generated.legal_document.document_hash,
        occurred_at=now,
    )
    append_lease_event(
        db,
        lease=lease,
        event_type="sent_for_signature",
        details={"role": "tenant", "recipient": tenant.email},
        document_hash=generated.legal_document.document_hash,
        occurred_at=now,
    )
    notify(
        db,
        landlord_id=landlord_id,
        kind="application",
        title="Application Approved",
        message=f"{app.full_name}'s application for {prop.name} - {unit.name} was approved and the lease was sent for signature.",
        action_url=f"/leases/{lease.id}",
        metadata={"application_id": app.id, "lease_id": lease.id},
    )
    wf.emit(
        db,
        landlord_id=landlord_id,
        property_id=prop.id,
        actor_user_id=actor_user_id,
        event_type="application_approved",
        payload={"application_id": app.id, "lease_id": lease.id},
    )
    db.commit()

    url = signing_url(sig.token)
    send_email(
        tenant.email,
        "Your Lease is Ready to Sign",
        "Your application was approved",
        [
            f"Hi {tenant.full_name}, your application for {prop.name} - {unit.name} has been approved.",
            f"Lease start: {format_date(start)}. Monthly rent: {format_currency(lease.rent_amount)}.",
            f"Please review and sign your lease before {format_date(sig.expires_at.date())}.",
        ],
        action_url=url,
        action_label="Review and sign lease",
    )
    log.info("application approved", extra={"application_id": app.id, "lease_id": lease.id, "landlord_id": landlord_id})

    return ApprovalResult(
        application=app,
        lease=lease,
        document_id=generated.legal_document.id,
        signing_url=url,
        signing_token=sig.token,
        warnings=generated.warnings,
    )


def reject_application(
    db: Session,
    *,
    landlord_id: int,
    application_id: int,
    reason: Optional[str] = None,
    actor_user_id: Optional[int] = None,
) -> RentalApplication:
    app = db.scalar(
        select(RentalApplication).where(
            RentalApplication.id == int(application_id), RentalApplication.landlord_id == int(landlord_id)
        )
    )
    if app is None:
        raise ApprovalError("APPLICATION_NOT_FOUND", "Application not found")
    if app.status != "pending":
        raise ApprovalError("APPLICATION_NOT_PENDING", f"Application is already {app.status}")

    app.status = "rejected"
    app.admin_response = (reason or "").strip() or "Application rejected"
    app.decided_at = datetime.utcnow()
    wf.emit(
        db,
        landlord_id=landlord_id,
        property_id=app.property_id,
        actor_user_id=actor_user_id,
        event_type="application_rejected",
        payload={"application_id": app.id},
    )
    db.commit()

    send_email(
        app.email,
        "Update on your rental application",
        "Application update",
        [f"Hi {app.full_name}, thank you for your interest.", f"Your application was not approved: {app.admin_response}"],
    )
    return app


def submit_application(
    db: Session,
    *,
    landlord_slug: str,
    unit_id: int,
    full_name: str,
    email: str,
    phone: Optional[str] = None,
    move_in_date: Optional[date] = None,
    monthly_income: Optional[float] = None,
    employment_status: Optional[str] = None,
    message: Optional[str] = None,
) -> RentalApplication:
    """Public application for an available unit; raises LookupError for unknown landlords or units."""
    landlord = db.scalar(select(Landlord).where(Landlord.slug == landlord_slug))
    if landlord is None:
        raise LookupError("landlord not found")
    unit = db.get(Unit, int(unit_id))
    if unit is None or unit.landlord_id != landlord.id:
        raise LookupError("unit not found")
    if not is_unit_available(db, unit):
        raise ApprovalError("UNIT_UNAVAILABLE", "Unit is not available")
    if not full_name.strip() or "@" not in email:
        raise ApprovalError("VALIDATION_ERROR", "Full name and a valid email are required")

    app = RentalApplication(
        landlord_id=landlord.id,
        property_id=unit.property_id,
        unit_id=unit.id,
        full_name=full_name.strip(),
        email=email.strip().lower(),
        phone=phone,
        move_in_date=move_in_date,
        monthly_income=monthly_income,
        employment_status=employment_status,
        message=message,
        status="pending",
        created_at=datetime.utcnow(),
    )
    db.add(app)
    db.flush()
    notify(
        db,
        landlord_id=landlord.id,
        kind="application",
        title="New rental application",
        message=f"{app.full_name} applied for unit {unit.name}.",
        action_url=f"/applications/{app.id}",
        metadata={"application_id": app.id, "unit_id": unit.id},
    )
    db.commit()
    return app


def list_applications(db: Session, *, landlord_id: int, status: Optional[str] = None, limit: int = 200) -> list[RentalApplication]:
    q = select(RentalApplication).where(RentalApplication.landlord_id == int(landlord_id))
    if status:
        q = q.where(RentalApplication.status == status)
    return list(db.scalars(q.order_by(RentalApplication.created_at.desc(), RentalApplication.id.desc()).limit(limit)).all())

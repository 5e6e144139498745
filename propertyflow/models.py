# propertyflow/models.py
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


# -----------------------------
# Accounts / team
# -----------------------------
class Landlord(Base):
    __tablename__ = "landlords"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    slug: Mapped[str] = mapped_column(String(80), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(160), nullable=False)

    company_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    company_address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    company_email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    company_phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    # move-in fee settings
    security_deposit_months: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    last_month_rent_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pet_deposit_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pet_deposit_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    pet_rent_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pet_rent_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    cleaning_fee_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    cleaning_fee_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # rent automation
    rent_reminders_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    reminder_days_before_json: Mapped[str] = mapped_column(String(80), nullable=False, default="[7, 3, 1]")
    late_fees_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    late_fee_grace_days: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    late_fee_type: Mapped[str] = mapped_column(String(20), nullable=False, default="flat")  # flat|percent
    late_fee_amount: Mapped[float] = mapped_column(Float, nullable=False, default=50.0)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class AppUser(Base):
    __tablename__ = "app_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class LandlordMembership(Base):
    __tablename__ = "landlord_memberships"
    __table_args__ = (UniqueConstraint("landlord_id", "user_id", name="uq_landlord_memberships_landlord_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("landlords.id"), index=True, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_users.id"), index=True, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="owner")  # owner|manager|staff
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("landlords.id"), index=True, nullable=False)
    actor_user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=True)

    action: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(80), nullable=False)

    before_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    after_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class WorkflowEvent(Base):
    __tablename__ = "workflow_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("landlords.id"), index=True, nullable=False)

    property_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("properties.id"), nullable=True, index=True)
    actor_user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=True)

    event_type: Mapped[str] = mapped_column(String(80), nullable=False, index=True)
    payload_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    landlord_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("landlords.id"), index=True, nullable=True)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), index=True, nullable=True)

    kind: Mapped[str] = mapped_column(String(60), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    action_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    metadata_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Properties / units / tenants
# -----------------------------
class Property(Base):
    __tablename__ = "properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("landlords.id"), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(160), nullable=False)
    street: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)
    zip_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    property_type: Mapped[str] = mapped_column(String(60), nullable=False, default="multi_family")
    year_built: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    amenities_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    units: Mapped[List["Unit"]] = relationship(back_populates="property", cascade="all, delete-orphan")


class Unit(Base):
    __tablename__ = "units"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("landlords.id"), nullable=False, index=True)
    property_id: Mapped[int] = mapped_column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(80), nullable=False)
    unit_type: Mapped[str] = mapped_column(String(60), nullable=False, default="apartment")
    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    bathrooms: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    rent_amount: Mapped[float] = mapped_column(Float, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    property: Mapped["Property"] = relationship(back_populates="units")


class Tenant(Base):
    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("landlords.id"), nullable=False, index=True)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=True)

    full_name: Mapped[str] = mapped_column(String(160), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class RentalApplication(Base):
    __tablename__ = "rental_applications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("landlords.id"), nullable=False, index=True)
    property_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("properties.id"), nullable=True, index=True)
    unit_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("units.id"), nullable=True, index=True)
    tenant_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=True)

    full_name: Mapped[str] = mapped_column(String(160), nullable=False)
    email: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    move_in_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    monthly_income: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    employment_status: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")  # pending|approved|rejected|withdrawn
    admin_response: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    decided_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Lease documents
# -----------------------------
class LeaseTemplate(Base):
    __tablename__ = "lease_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("landlords.id"), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(160), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    template_type: Mapped[str] = mapped_column(String(20), nullable=False, default="builder")  # builder|uploaded_pdf
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    builder_config_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    file_key: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    signature_fields_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    merge_fields_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class PropertyLeaseTemplate(Base):
    __tablename__ = "property_lease_templates"
    __table_args__ = (UniqueConstraint("property_id", name="uq_property_lease_templates_property"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("landlords.id"), nullable=False, index=True)
    property_id: Mapped[int] = mapped_column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    lease_template_id: Mapped[int] = mapped_column(Integer, ForeignKey("lease_templates.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class LegalDocument(Base):
    __tablename__ = "legal_documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("landlords.id"), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    doc_type: Mapped[str] = mapped_column(String(40), nullable=False, default="lease")  # lease|addendum|notice|other
    category: Mapped[str] = mapped_column(String(40), nullable=False, default="uploaded")  # generated|uploaded
    state: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    file_key: Mapped[str] = mapped_column(String(300), nullable=False)
    file_type: Mapped[str] = mapped_column(String(80), nullable=False, default="application/pdf")
    file_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    document_hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    is_template: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_fields_configured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    signature_fields_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class Lease(Base):
    __tablename__ = "leases"
    __table_args__ = (Index("ix_leases_landlord_unit_status", "landlord_id", "unit_id", "status"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("landlords.id"), nullable=False, index=True)
    property_id: Mapped[int] = mapped_column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    unit_id: Mapped[int] = mapped_column(Integer, ForeignKey("units.id"), nullable=False)
    tenant_id: Mapped[int] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)

    template_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("lease_templates.id"), nullable=True)
    legal_document_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("legal_documents.id"), nullable=True)
    application_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("rental_applications.id"), nullable=True)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    rent_amount: Mapped[float] = mapped_column(Float, nullable=False)
    billing_day_of_month: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    status: Mapped[str] = mapped_column(String(30), nullable=False, default="draft")
    generated_from: Mapped[str] = mapped_column(String(20), nullable=False, default="manual")  # manual|auto
    lease_data_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    tenant_signed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    landlord_signed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    terminated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    termination_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class SignatureRequest(Base):
    __tablename__ = "signature_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("landlords.id"), nullable=False, index=True)
    lease_id: Mapped[int] = mapped_column(Integer, ForeignKey("leases.id", ondelete="CASCADE"), nullable=False, index=True)
    document_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("legal_documents.id"), nullable=True)

    role: Mapped[str] = mapped_column(String(20), nullable=False)  # tenant|landlord
    recipient_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    recipient_email: Mapped[str] = mapped_column(String(200), nullable=False)

    token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="sent")  # sent|viewed|signed|expired|voided
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    viewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    signed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    reminder_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    signer_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    signer_email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    signer_ip: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    signer_user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    signature_data_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    signature_sha256: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    signed_file_key: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    document_hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class LeaseAuditEvent(Base):
    __tablename__ = "lease_audit_events"
    __table_args__ = (UniqueConstraint("lease_id", "seq", name="uq_lease_audit_events_lease_seq"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("landlords.id"), nullable=False, index=True)
    lease_id: Mapped[int] = mapped_column(Integer, ForeignKey("leases.id", ondelete="CASCADE"), nullable=False, index=True)
    seq: Mapped[int] = mapped_column(Integer, nullable=False)

    event_type: Mapped[str] = mapped_column(String(40), nullable=False)
    actor: Mapped[str] = mapped_column(String(80), nullable=False, default="system")
    actor_role: Mapped[str] = mapped_column(String(20), nullable=False, default="system")  # landlord|tenant|system
    actor_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    actor_email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    document_hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    prev_hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    event_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Money: charges, invoices, expenses
# -----------------------------
class RentPayment(Base):
    __tablename__ = "rent_payments"
    __table_args__ = (
        UniqueConstraint("lease_id", "charge_type", "due_date", name="uq_rent_payments_lease_type_due"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("landlords.id"), nullable=False, index=True)
    lease_id: Mapped[int] = mapped_column(Integer, ForeignKey("leases.id", ondelete="CASCADE"), nullable=False, index=True)
    tenant_id: Mapped[int] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)

    charge_type: Mapped[str] = mapped_column(String(40), nullable=False, default="rent")
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")  # pending|paid|late|cancelled
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    payment_method: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    late_fee_for_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("rent_payments.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class RecurringCharge(Base):
    __tablename__ = "recurring_charges"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("landlords.id"), nullable=False, index=True)
    lease_id: Mapped[int] = mapped_column(Integer, ForeignKey("leases.id", ondelete="CASCADE"), nullable=False, index=True)
    tenant_id: Mapped[int] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=False)

    charge_type: Mapped[str] = mapped_column(String(40), nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    day_of_month: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")  # active|paused|ended
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    next_post_date: Mapped[date] = mapped_column(Date, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class RentReminderLog(Base):
    __tablename__ = "rent_reminder_logs"
    __table_args__ = (UniqueConstraint("rent_payment_id", "days_before", name="uq_rent_reminder_logs_payment_offset"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("landlords.id"), nullable=False, index=True)
    rent_payment_id: Mapped[int] = mapped_column(Integer, ForeignKey("rent_payments.id", ondelete="CASCADE"), nullable=False)
    days_before: Mapped[int] = mapped_column(Integer, nullable=False)
    sent_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class TenantInvoice(Base):
    __tablename__ = "tenant_invoices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("landlords.id"), nullable=False, index=True)
    property_id: Mapped[int] = mapped_column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    tenant_id: Mapped[int] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    lease_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("leases.id"), nullable=True)

    amount: Mapped[float] = mapped_column(Float, nullable=False)
    reason: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")  # pending|paid|cancelled
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    payment_method: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class Expense(Base):
    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("landlords.id"), nullable=False, index=True)
    property_id: Mapped[int] = mapped_column(Integer, ForeignKey("properties.id"), nullable=False, index=True)

    amount: Mapped[float] = mapped_column(Float, nullable=False)
    category: Mapped[str] = mapped_column(String(60), nullable=False, default="other")
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    incurred_at: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Maintenance / contractors
# -----------------------------
class MaintenanceTicket(Base):
    __tablename__ = "maintenance_tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("landlords.id"), nullable=False, index=True)
    unit_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("units.id"), nullable=True, index=True)
    tenant_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=True)
    appointment_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("contractor_appointments.id"), nullable=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="open")
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class ContractorProfile(Base):
    __tablename__ = "contractor_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=True, unique=True)

    business_name: Mapped[str] = mapped_column(String(160), nullable=False)
    email: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    specialties_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")

    instant_booking_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deposit_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deposit_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    deposit_percent: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    cancellation_policy: Mapped[str] = mapped_column(String(20), nullable=False, default="moderate")
    cancellation_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=24)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class ContractorAvailability(Base):
    __tablename__ = "contractor_availability"
    __table_args__ = (UniqueConstraint("contractor_id", name="uq_contractor_availability_contractor"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    contractor_id: Mapped[int] = mapped_column(Integer, ForeignKey("contractor_profiles.id", ondelete="CASCADE"), nullable=False)

    weekly_schedule_json: Mapped[str] = mapped_column(Text, nullable=False)
    buffer_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    min_notice_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=24)
    max_advance_days: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    blocked_dates_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")

    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class ContractorAppointment(Base):
    __tablename__ = "contractor_appointments"
    __table_args__ = (Index("ix_contractor_appointments_contractor_start", "contractor_id", "start_time"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    contractor_id: Mapped[int] = mapped_column(Integer, ForeignKey("contractor_profiles.id"), nullable=False)
    customer_user_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=False, index=True)
    landlord_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("landlords.id"), nullable=True, index=True)

    service_type: Mapped[str] = mapped_column(String(80), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)

    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="confirmed")  # confirmed|completed|cancelled

    deposit_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    deposit_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deposit_payment_id: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    refund_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    refund_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # refunded|pending_manual|failed

    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    cancelled_by: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # customer|contractor
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    reminder_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

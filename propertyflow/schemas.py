# propertyflow/schemas.py
from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# -------------------- Auth / team --------------------

class RegisterIn(BaseModel):
    email: str
    password: str = Field(min_length=8)
    landlord_name: str
    landlord_slug: Optional[str] = None
    display_name: Optional[str] = None


class LoginIn(BaseModel):
    email: str
    password: str
    landlord_slug: Optional[str] = None


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    landlord_slug: str
    user_id: int
    role: str


class PrincipalOut(BaseModel):
    landlord_id: int
    landlord_slug: str
    user_id: int
    email: str
    role: str


class MemberIn(BaseModel):
    email: str
    role: Literal["owner", "manager", "staff"] = "staff"
    display_name: Optional[str] = None


class RoleChangeIn(BaseModel):
    role: Literal["owner", "manager", "staff"]


class LandlordSettingsOut(BaseModel):
    id: int
    slug: str
    name: str
    company_name: Optional[str] = None
    company_address: Optional[str] = None
    company_email: Optional[str] = None
    company_phone: Optional[str] = None

    security_deposit_months: float
    last_month_rent_required: bool
    pet_deposit_enabled: bool
    pet_deposit_amount: Optional[float] = None
    pet_rent_enabled: bool
    pet_rent_amount: Optional[float] = None
    cleaning_fee_enabled: bool
    cleaning_fee_amount: Optional[float] = None

    rent_reminders_enabled: bool
    reminder_days_before: list[int] = Field(default_factory=list)
    late_fees_enabled: bool
    late_fee_grace_days: int
    late_fee_type: str
    late_fee_amount: float

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="before")
    @classmethod
    def _reminder_days(cls, data: Any) -> Any:
        raw = getattr(data, "reminder_days_before_json", None)
        if raw is None:
            return data
        out = {k: getattr(data, k) for k in cls.model_fields if k != "reminder_days_before" and hasattr(data, k)}
        out["reminder_days_before"] = json.loads(raw or "[]")
        return out


class LandlordSettingsUpdate(BaseModel):
    name: Optional[str] = None
    company_name: Optional[str] = None
    company_address: Optional[str] = None
    company_email: Optional[str] = None
    company_phone: Optional[str] = None

    security_deposit_months: Optional[float] = Field(default=None, ge=0, le=12)
    last_month_rent_required: Optional[bool] = None
    pet_deposit_enabled: Optional[bool] = None
    pet_deposit_amount: Optional[float] = Field(default=None, ge=0)
    pet_rent_enabled: Optional[bool] = None
    pet_rent_amount: Optional[float] = Field(default=None, ge=0)
    cleaning_fee_enabled: Optional[bool] = None
    cleaning_fee_amount: Optional[float] = Field(default=None, ge=0)

    rent_reminders_enabled: Optional[bool] = None
    reminder_days_before: Optional[list[int]] = None
    late_fees_enabled: Optional[bool] = None
    late_fee_grace_days: Optional[int] = Field(default=None, ge=0, le=30)
    late_fee_type: Optional[Literal["flat", "percent"]] = None
    late_fee_amount: Optional[float] = Field(default=None, ge=0)


# -------------------- Properties / units / tenants --------------------

class PropertyCreate(BaseModel):
    name: str
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = Field(default=None, max_length=2)
    zip_code: Optional[str] = None
    property_type: str = "multi_family"
    year_built: Optional[int] = None
    amenities: list[str] = Field(default_factory=list)


class PropertyOut(BaseModel):
    id: int
    name: str
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    property_type: str
    year_built: Optional[int] = None
    amenities: list[str] = Field(default_factory=list)
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="before")
    @classmethod
    def _amenities(cls, data: Any) -> Any:
        if hasattr(data, "amenities_json"):
            out = {k: getattr(data, k) for k in cls.model_fields if k != "amenities" and hasattr(data, k)}
            out["amenities"] = json.loads(data.amenities_json or "[]")
            return out
        return data


class UnitCreate(BaseModel):
    name: str
    unit_type: str = "apartment"
    bedrooms: int = 1
    bathrooms: float = 1.0
    rent_amount: float = Field(gt=0)
    is_available: bool = True


class UnitOut(UnitCreate):
    id: int
    property_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TenantCreate(BaseModel):
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None


class TenantOut(TenantCreate):
    id: int
    user_id: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# -------------------- Applications --------------------

class ApplicationSubmit(BaseModel):
    unit_id: int
    full_name: str
    email: str
    phone: Optional[str] = None
    move_in_date: Optional[date] = None
    monthly_income: Optional[float] = None
    employment_status: Optional[str] = None
    message: Optional[str] = None


class ApplicationOut(BaseModel):
    id: int
    property_id: Optional[int] = None
    unit_id: Optional[int] = None
    tenant_id: Optional[int] = None
    full_name: str
    email: str
    phone: Optional[str] = None
    move_in_date: Optional[date] = None
    monthly_income: Optional[float] = None
    employment_status: Optional[str] = None
    message: Optional[str] = None
    status: str
    admin_response: Optional[str] = None
    decided_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ApproveIn(BaseModel):
    unit_id: Optional[int] = None
    lease_start_date: Optional[date] = None
    lease_end_date: Optional[date] = None
    is_month_to_month: bool = False
    rent_amount: Optional[float] = Field(default=None, gt=0)
    billing_day_of_month: int = Field(default=1, ge=1, le=28)
    overrides: Optional[dict[str, Any]] = None


class ApproveOut(BaseModel):
    ok: bool = True
    application_id: int
    lease_id: int
    document_id: int
    signing_url: str
    signing_token: str
    warnings: list[str] = Field(default_factory=list)


class RejectIn(BaseModel):
    reason: Optional[str] = None


# -------------------- Lease templates / documents --------------------

class SignatureField(BaseModel):
    id: str
    type: Literal["signature", "initials", "date", "text"] = "signature"
    role: Literal["tenant", "landlord"]
    page: Optional[int] = None
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None


class LeaseTemplateIn(BaseModel):
    name: str
    template_type: Literal["builder", "uploaded_pdf"] = "builder"
    description: Optional[str] = None
    builder_config: Optional[dict[str, Any]] = None
    file_key: Optional[str] = None
    signature_fields: Optional[list[SignatureField]] = None
    merge_fields: Optional[list[str]] = None
    is_default: bool = False


class LeaseTemplateUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    builder_config: Optional[dict[str, Any]] = None
    signature_fields: Optional[list[SignatureField]] = None
    merge_fields: Optional[list[str]] = None
    is_default: Optional[bool] = None


class LeaseTemplateOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    template_type: str
    is_default: bool
    builder_config: dict[str, Any] = Field(default_factory=dict)
    file_key: Optional[str] = None
    signature_fields: list[dict[str, Any]] = Field(default_factory=list)
    merge_fields: list[str] = Field(default_factory=list)
    property_ids: list[int] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class AssignPropertiesIn(BaseModel):
    property_ids: list[int]


class LegalDocumentOut(BaseModel):
    id: int
    name: str
    doc_type: str
    category: str
    state: Optional[str] = None
    description: Optional[str] = None
    file_type: str
    file_size: int
    document_hash: Optional[str] = None
    is_template: bool
    is_active: bool
    is_fields_configured: bool
    signature_fields: list[dict[str, Any]] = Field(default_factory=list)
    file_url: str
    created_at: datetime


class SignatureFieldsIn(BaseModel):
    signature_fields: list[SignatureField]


# -------------------- Leases / signing --------------------

class LeaseCreate(BaseModel):
    unit_id: int
    tenant_id: int
    start_date: date
    end_date: Optional[date] = None
    rent_amount: Optional[float] = Field(default=None, gt=0)
    billing_day_of_month: int = Field(default=1, ge=1, le=28)
    template_id: Optional[int] = None


class LeaseUpdate(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    rent_amount: Optional[float] = Field(default=None, gt=0)
    billing_day_of_month: Optional[int] = Field(default=None, ge=1, le=28)
    template_id: Optional[int] = None


class LeaseOut(BaseModel):
    id: int
    property_id: int
    unit_id: int
    tenant_id: int
    template_id: Optional[int] = None
    legal_document_id: Optional[int] = None
    application_id: Optional[int] = None
    start_date: date
    end_date: Optional[date] = None
    rent_amount: float
    billing_day_of_month: int
    status: str
    generated_from: str
    tenant_signed_at: Optional[datetime] = None
    landlord_signed_at: Optional[datetime] = None
    terminated_at: Optional[datetime] = None
    termination_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReasonIn(BaseModel):
    reason: Optional[str] = None


class SignatureRequestOut(BaseModel):
    id: int
    lease_id: int
    document_id: Optional[int] = None
    role: str
    recipient_name: Optional[str] = None
    recipient_email: str
    status: str
    expires_at: datetime
    viewed_at: Optional[datetime] = None
    signed_at: Optional[datetime] = None
    signer_name: Optional[str] = None
    document_hash: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SignIn(BaseModel):
    signature_data_url: Optional[str] = None
    signer_name: Optional[str] = None
    signer_email: Optional[str] = None
    consent: bool = False


# -------------------- Money --------------------

class RentPaymentOut(BaseModel):
    id: int
    lease_id: int
    tenant_id: int
    charge_type: str
    description: Optional[str] = None
    amount: float
    due_date: date
    status: str
    paid_at: Optional[datetime] = None
    payment_method: Optional[str] = None
    late_fee_for_id: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MarkPaidIn(BaseModel):
    payment_method: str = "manual"


class InvoiceCreate(BaseModel):
    property_id: int
    tenant_id: int
    amount: float
    reason: str
    due_date: Optional[date] = None
    description: Optional[str] = None
    lease_id: Optional[int] = None


class InvoiceOut(BaseModel):
    id: int
    property_id: int
    tenant_id: int
    lease_id: Optional[int] = None
    amount: float
    reason: str
    description: Optional[str] = None
    due_date: date
    status: str
    paid_at: Optional[datetime] = None
    payment_method: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ExpenseCreate(BaseModel):
    property_id: int
    amount: float = Field(gt=0)
    category: str = "other"
    description: Optional[str] = None
    incurred_at: Optional[date] = None


class ExpenseOut(ExpenseCreate):
    id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# -------------------- Maintenance / contractors --------------------

class TicketCreate(BaseModel):
    title: str
    description: str
    unit_id: Optional[int] = None
    tenant_id: Optional[int] = None
    priority: Literal["low", "medium", "high", "emergency"] = "medium"


class TicketUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[Literal["open", "in_progress", "on_hold", "resolved", "closed"]] = None
    priority: Optional[Literal["low", "medium", "high", "emergency"]] = None


class TicketAssignIn(BaseModel):
    appointment_id: int


class TicketOut(BaseModel):
    id: int
    unit_id: Optional[int] = None
    tenant_id: Optional[int] = None
    appointment_id: Optional[int] = None
    title: str
    description: str
    status: str
    priority: str
    created_at: datetime
    updated_at: datetime
    resolved_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ContractorProfileIn(BaseModel):
    business_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    specialties: Optional[list[str]] = None
    instant_booking_enabled: Optional[bool] = None
    deposit_required: Optional[bool] = None
    deposit_amount: Optional[float] = Field(default=None, ge=0)
    deposit_percent: Optional[float] = None
    cancellation_policy: Optional[Literal["flexible", "moderate", "strict"]] = None
    cancellation_hours: Optional[int] = Field(default=None, ge=0)


class ContractorProfileOut(BaseModel):
    id: int
    user_id: Optional[int] = None
    business_name: str
    email: str
    phone: Optional[str] = None
    specialties: list[str] = Field(default_factory=list)
    instant_booking_enabled: bool
    deposit_required: bool
    deposit_amount: Optional[float] = None
    deposit_percent: Optional[float] = None
    cancellation_policy: str
    cancellation_hours: int

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="before")
    @classmethod
    def _specialties(cls, data: Any) -> Any:
        if hasattr(data, "specialties_json"):
            out = {k: getattr(data, k) for k in cls.model_fields if k != "specialties" and hasattr(data, k)}
            out["specialties"] = json.loads(data.specialties_json or "[]")
            return out
        return data


class DayScheduleIn(BaseModel):
    start: str = "09:00"
    end: str = "17:00"
    enabled: bool = True

    @field_validator("start", "end")
    @classmethod
    def _hhmm(cls, v: str) -> str:
        hh, _, mm = v.partition(":")
        if not (hh.isdigit() and mm.isdigit() and 0 <= int(hh) <= 23 and 0 <= int(mm) <= 59):
            raise ValueError("time must be HH:MM")
        return f"{int(hh):02d}:{int(mm):02d}"


class AvailabilityIn(BaseModel):
    weekly_schedule: dict[str, DayScheduleIn] = Field(default_factory=dict)
    buffer_minutes: int = Field(default=30, ge=0, le=240)
    min_notice_hours: int = Field(default=24, ge=0)
    max_advance_days: int = Field(default=60, ge=1, le=365)
    blocked_dates: list[date] = Field(default_factory=list)


class TimeSlotOut(BaseModel):
    start_time: datetime
    end_time: datetime
    is_available: bool


class AppointmentCreate(BaseModel):
    contractor_id: int
    service_type: str
    title: str
    start_time: datetime
    end_time: datetime
    description: Optional[str] = None
    address: Optional[str] = None


class AppointmentUpdate(BaseModel):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    title: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None


class BookingCreate(BaseModel):
    contractor_id: int
    service_type: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_minutes: int = Field(default=60, ge=15, le=480)
    address: Optional[str] = None
    notes: Optional[str] = None
    deposit_amount: Optional[float] = Field(default=None, gt=0)


class BookingCancelIn(BaseModel):
    reason: Optional[str] = None


class DepositIn(BaseModel):
    amount: Optional[float] = Field(default=None, gt=0)


class DepositPaidIn(BaseModel):
    payment_intent_id: str


class AppointmentOut(BaseModel):
    id: int
    contractor_id: int
    customer_user_id: int
    landlord_id: Optional[int] = None
    service_type: str
    title: str
    description: Optional[str] = None
    address: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: str
    deposit_amount: Optional[float] = None
    deposit_paid: bool
    deposit_payment_id: Optional[str] = None
    refund_amount: Optional[float] = None
    refund_status: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancellation_reason: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# -------------------- Notifications / audit / workflow --------------------

class NotificationOut(BaseModel):
    id: int
    kind: str
    title: str
    message: str
    action_url: Optional[str] = None
    read_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MarkReadIn(BaseModel):
    ids: list[int]


class AuditEventOut(BaseModel):
    id: int
    actor_user_id: Optional[int] = None
    action: str
    entity_type: str
    entity_id: str
    before_json: Optional[str] = None
    after_json: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WorkflowEventOut(BaseModel):
    id: int
    property_id: Optional[int] = None
    actor_user_id: Optional[int] = None
    event_type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

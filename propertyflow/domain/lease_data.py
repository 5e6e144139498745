# propertyflow/domain/lease_data.py
from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import date, datetime
from typing import Any, Optional

from .jurisdictions import get_jurisdiction


LEASE_DEFAULTS: dict[str, Any] = {
    "grace_period_days": 5,
    "late_fee_start_day": 6,
    "late_fee_percent": 5.0,
    "deposit_return_days": 30,
    "entry_notice_hours": 24,
    "move_out_notice_days": 30,
    "renewal_notice_days": 30,
    "accepted_payment_methods": ("Online Payment Portal", "Check", "Money Order"),
    "tenant_pays_utilities": ("Electric", "Gas", "Internet", "Cable"),
    "landlord_pays_utilities": ("Water", "Sewer", "Trash"),
    "deposit_use_cases": (
        "Unpaid rent or late fees",
        "Repair of damages beyond normal wear and tear",
        "Cleaning costs to restore premises to move-in condition",
        "Replacement of unreturned keys or access devices",
        "Any other amounts owed under this lease",
    ),
    "tenant_maintenance_responsibilities": (
        "Keep premises clean and sanitary",
        "Dispose of garbage properly",
        "Replace light bulbs and batteries",
        "Report maintenance issues promptly",
        "Prevent mold growth through proper ventilation",
    ),
    "entry_reasons": (
        "Repairs and maintenance",
        "Inspections",
        "Showing to prospective tenants or buyers",
        "Emergency situations",
    ),
    "move_out_cleaning_requirements": (
        "All rooms swept and mopped/vacuumed",
        "Kitchen appliances cleaned inside and out",
        "Bathrooms cleaned and sanitized",
        "All personal belongings removed",
        "All trash removed from premises",
        "Walls free of holes and marks",
        "Windows cleaned",
    ),
}

INCLUDED_AREA_KEYWORDS = ("garage", "parking", "storage", "yard", "patio", "balcony")

# Federal lead-based paint disclosure applies to housing built before 1978
LEAD_PAINT_CUTOFF_YEAR = 1978


@dataclass(frozen=True)
class LeaseData:
    # parties
    landlord_legal_name: str
    tenant_names: tuple[str, ...]
    tenant_emails: tuple[str, ...]

    # premises
    property_address: str
    lease_start_date: date
    monthly_rent: float
    security_deposit_amount: float
    state: str
    signing_date: date

    landlord_company_name: Optional[str] = None
    landlord_address: Optional[str] = None
    landlord_email: Optional[str] = None
    landlord_phone: Optional[str] = None

    unit_number: Optional[str] = None
    property_description: Optional[str] = None
    included_areas: tuple[str, ...] = ()
    max_occupants: Optional[int] = None

    # term
    lease_end_date: Optional[date] = None
    is_month_to_month: bool = False
    auto_renewal: bool = True
    renewal_notice_days: int = LEASE_DEFAULTS["renewal_notice_days"]
    early_termination_fee: Optional[float] = None
    early_termination_notice_days: Optional[int] = None

    # rent
    rent_due_day: int = 1
    grace_period_days: int = LEASE_DEFAULTS["grace_period_days"]
    accepted_payment_methods: tuple[str, ...] = LEASE_DEFAULTS["accepted_payment_methods"]
    payment_instructions: Optional[str] = None
    bounced_check_fee: Optional[float] = None
    allow_partial_payments: bool = False

    # late fees
    late_fee_amount: Optional[float] = None
    late_fee_percent: Optional[float] = None
    late_fee_start_day: int = LEASE_DEFAULTS["late_fee_start_day"]
    max_late_fee: Optional[float] = None

    # deposit
    deposit_use_cases: tuple[str, ...] = LEASE_DEFAULTS["deposit_use_cases"]
    deposit_return_days: int = LEASE_DEFAULTS["deposit_return_days"]
    deposit_not_last_month_rent: bool = True

    # utilities
    tenant_pays_utilities: tuple[str, ...] = LEASE_DEFAULTS["tenant_pays_utilities"]
    landlord_pays_utilities: tuple[str, ...] = LEASE_DEFAULTS["landlord_pays_utilities"]
    shared_utilities_note: Optional[str] = None

    # pets
    pets_allowed: bool = False
    pet_restrictions: Optional[str] = None
    pet_deposit: Optional[float] = None
    pet_rent: Optional[float] = None
    pet_rules: Optional[str] = None

    # rules
    smoking_allowed: bool = False
    smoking_areas: Optional[str] = None
    quiet_hours_start: Optional[str] = None
    quiet_hours_end: Optional[str] = None
    parking_rules: Optional[str] = None
    guest_policy: Optional[str] = None

    # maintenance / entry
    tenant_maintenance_responsibilities: tuple[str, ...] = LEASE_DEFAULTS["tenant_maintenance_responsibilities"]
    emergency_contact_phone: Optional[str] = None
    emergency_contact_email: Optional[str] = None
    entry_notice_hours: int = LEASE_DEFAULTS["entry_notice_hours"]
    entry_reasons: tuple[str, ...] = LEASE_DEFAULTS["entry_reasons"]

    # insurance
    renters_insurance_required: bool = False
    min_insurance_coverage: Optional[float] = None

    # move-out
    move_out_notice_days: int = LEASE_DEFAULTS["move_out_notice_days"]
    move_out_cleaning_requirements: tuple[str, ...] = LEASE_DEFAULTS["move_out_cleaning_requirements"]

    # additional
    additional_terms: tuple[str, ...] = ()
    hoa_rules: Optional[str] = None

    # disclosure flags requested by the landlord on top of the state's
    lead_paint_disclosure: bool = False
    bed_bug_disclosure: bool = False
    mold_disclosure: bool = False
    radon_disclosure: bool = False
    flood_zone_disclosure: bool = False
    asbestos_disclosure: bool = False

    def to_dict(self) -> dict[str, Any]:
        return json.loads(json.dumps(asdict(self), default=_json_default))

    def to_json(self) -> str:
        return json.dumps(asdict(self), default=_json_default, sort_keys=True)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "LeaseData":
        return cls(**coerce_fields(raw, strict=True))


@dataclass(frozen=True)
class LeaseTerms:
    start_date: date
    end_date: Optional[date] = None
    is_month_to_month: bool = False
    billing_day_of_month: int = 1


@dataclass(frozen=True)
class LeaseValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _json_default(v: Any) -> Any:
    if isinstance(v, (date, datetime)):
        return v.isoformat()
    raise TypeError(f"not JSON serializable: {type(v).__name__}")


_FIELD_TYPES = {f.name: f for f in fields(LeaseData)}
_DATE_FIELDS = {"lease_start_date", "lease_end_date", "signing_date"}


def lease_data_field_names() -> set[str]:
    return set(_FIELD_TYPES)


def coerce_fields(raw: dict[str, Any], *, strict: bool = False) -> dict[str, Any]:
    """
    Normalize a dict of LeaseData values from JSON (template builder config,
    API overrides, stored lease_data_json).

    ISO strings become dates and lists become tuples. Unknown keys raise
    ValueError when strict, otherwise they are dropped.
    """
    out: dict[str, Any] = {}
    for k, v in (raw or {}).items():
        if k not in _FIELD_TYPES:
            if strict:
                raise ValueError(f"unknown lease field: {k}")
            continue
        if k in _DATE_FIELDS and isinstance(v, str):
            v = date.fromisoformat(v[:10])
        elif k in _DATE_FIELDS and isinstance(v, datetime):
            v = v.date()
        elif isinstance(v, list):
            v = tuple(str(x) for x in v)
        out[k] = v
    return out


def format_address(*parts: Optional[str]) -> str:
    return ", ".join(str(p).strip() for p in parts if p and str(p).strip())


def included_areas_from_amenities(amenities: list[str] | None) -> tuple[str, ...]:
    return tuple(a for a in (amenities or []) if any(k in a.lower() for k in INCLUDED_AREA_KEYWORDS))


def _amenities(prop: Any) -> list[str]:
    raw = getattr(prop, "amenities_json", None)
    if not raw:
        return []
    try:
        val = json.loads(raw)
    except ValueError:
        return []
    return [str(x) for x in val] if isinstance(val, list) else []


def build_lease_data_from_records(
    *,
    landlord: Any,
    property: Any,
    unit: Any,
    tenant: Any,
    terms: LeaseTerms,
    customizations: Optional[dict[str, Any]] = None,
    signing_date: Optional[date] = None,
    default_state: str = "NV",
    rent_amount: Optional[float] = None,
) -> LeaseData:
    """
    Populate a lease from the landlord, property, unit and tenant rows.

    The deposit-return period comes from the property's jurisdiction.
    `customizations` (template builder config, then per-lease overrides)
    are applied last and win over anything derived here.
    """
    state = (getattr(property, "state", None) or default_state).strip().upper()
    rules = get_jurisdiction(state)

    rent = float(unit.rent_amount if rent_amount is None else rent_amount)
    months = getattr(landlord, "security_deposit_months", None)
    months = 1.0 if months is None else float(months)

    pet_deposit_enabled = bool(getattr(landlord, "pet_deposit_enabled", False))
    pet_rent_enabled = bool(getattr(landlord, "pet_rent_enabled", False))

    year_built = getattr(property, "year_built", None)

    data = LeaseData(
        landlord_legal_name=str(landlord.name),
        landlord_company_name=getattr(landlord, "company_name", None) or None,
        landlord_address=getattr(landlord, "company_address", None) or None,
        landlord_email=getattr(landlord, "company_email", None) or None,
        landlord_phone=getattr(landlord, "company_phone", None) or None,
        tenant_names=(str(tenant.full_name),),
        tenant_emails=(str(tenant.email or ""),),
        property_address=format_address(property.street, property.city, property.state, property.zip_code),
        unit_number=str(unit.name),
        property_description=f"{unit.unit_type} unit",
        included_areas=included_areas_from_amenities(_amenities(property)),
        lease_start_date=terms.start_date,
        lease_end_date=terms.end_date,
        is_month_to_month=bool(terms.is_month_to_month or terms.end_date is None),
        auto_renewal=True,
        monthly_rent=rent,
        rent_due_day=int(terms.billing_day_of_month),
        late_fee_percent=LEASE_DEFAULTS["late_fee_percent"],
        security_deposit_amount=round(rent * months, 2),
        deposit_return_days=rules.deposit_return_days,
        deposit_not_last_month_rent=True,
        pets_allowed=pet_deposit_enabled or pet_rent_enabled,
        pet_deposit=float(getattr(landlord, "pet_deposit_amount", None) or 0) if pet_deposit_enabled else None,
        pet_rent=float(getattr(landlord, "pet_rent_amount", None) or 0) if pet_rent_enabled else None,
        lead_paint_disclosure=bool(year_built and int(year_built) < LEAD_PAINT_CUTOFF_YEAR),
        state=state,
        signing_date=signing_date or date.today(),
    )

    if customizations:
        data = replace(data, **coerce_fields(customizations))
        # a customized end date can turn a month-to-month lease into a fixed term
        if "is_month_to_month" not in customizations and "lease_end_date" in customizations:
            data = replace(data, is_month_to_month=data.lease_end_date is None)

    return data


def validate_lease_data(data: LeaseData) -> LeaseValidationResult:
    rules = get_jurisdiction(data.state)
    errors: list[str] = []
    warnings: list[str] = []

    names = [n for n in data.tenant_names if n and n.strip()]
    if not names:
        errors.append("at least one tenant is required")
    if not data.landlord_legal_name.strip():
        errors.append("landlord legal name is required")
    if not data.property_address.strip():
        errors.append("property address is required")

    if data.monthly_rent <= 0:
        errors.append("monthly rent must be greater than zero")
    if not 1 <= int(data.rent_due_day) <= 28:
        errors.append("rent due day must be between 1 and 28")

    if not data.is_month_to_month:
        if data.lease_end_date is None:
            errors.append("fixed-term lease requires an end date")
        elif data.lease_end_date <= data.lease_start_date:
            errors.append("lease end date must be after the start date")

    if data.security_deposit_amount < 0:
        errors.append("security deposit cannot be negative")
    cap = rules.max_security_deposit(data.monthly_rent)
    if cap is not None and data.security_deposit_amount > cap:
        errors.append(
            f"security deposit {data.security_deposit_amount:.2f} exceeds the {data.state} limit "
            f"of {rules.security_deposit_limit:g}x monthly rent ({cap:.2f})"
        )

    if data.deposit_return_days > rules.deposit_return_days:
        errors.append(
            f"deposit return period of {data.deposit_return_days} days exceeds the "
            f"{data.state} maximum of {rules.deposit_return_days} days"
        )

    if data.late_fee_percent is not None and rules.late_fee_limit_pct is not None:
        if data.late_fee_percent > rules.late_fee_limit_pct:
            errors.append(f"late fee of {data.late_fee_percent:g}% exceeds the {data.state} limit of {rules.late_fee_limit_pct:g}%")
    if data.late_fee_amount is not None and rules.late_fee_limit_pct is not None:
        max_fee = rules.max_late_fee(data.monthly_rent)
        if max_fee is not None and data.late_fee_amount > max_fee:
            errors.append(f"late fee of {data.late_fee_amount:.2f} exceeds the {data.state} limit of {max_fee:.2f}")

    if data.grace_period_days < 0:
        errors.append("grace period cannot be negative")

    for note in rules.notes:
        warnings.append(f"{data.state}: {note}")

    return LeaseValidationResult(errors=errors, warnings=warnings)

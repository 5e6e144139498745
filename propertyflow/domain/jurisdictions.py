# propertyflow/domain/jurisdictions.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

# Disclosure keys understood by the clause library (domain/disclosures.py)
DISCLOSURE_KEYS = (
    "lead_paint",
    "mold",
    "bed_bugs",
    "radon",
    "asbestos",
    "flood_zone",
    "sex_offender",
    "smoking_policy",
)


@dataclass(frozen=True)
class JurisdictionRules:
    """
    Landlord-tenant rules for one US state.

    `security_deposit_limit` is a multiple of monthly rent, `late_fee_limit_pct`
    a percentage of monthly rent. None means the state sets no cap we enforce.
    """

    code: str
    lead_paint: bool = True
    mold: bool = False
    bed_bugs: bool = False
    radon: bool = False
    asbestos: bool = False
    flood_zone: bool = False
    sex_offender: bool = False
    smoking_policy: bool = False
    security_deposit_limit: Optional[float] = None
    deposit_return_days: int = 30
    late_fee_limit_pct: Optional[float] = None
    notes: tuple[str, ...] = field(default_factory=tuple)

    def requires(self, key: str) -> bool:
        if key not in DISCLOSURE_KEYS:
            raise KeyError(f"unknown disclosure: {key}")
        return bool(getattr(self, key))

    def required_disclosures(self) -> List[str]:
        return [k for k in DISCLOSURE_KEYS if getattr(self, k)]

    def max_security_deposit(self, monthly_rent: float) -> Optional[float]:
        if self.security_deposit_limit is None:
            return None
        return round(float(monthly_rent) * float(self.security_deposit_limit), 2)

    def max_late_fee(self, monthly_rent: float) -> Optional[float]:
        if self.late_fee_limit_pct is None:
            return None
        return round(float(monthly_rent) * float(self.late_fee_limit_pct) / 100.0, 2)


DEFAULT_CODE = "DEFAULT"

_BUILTIN: List[JurisdictionRules] = [
    JurisdictionRules(
        code="CA",
        mold=True,
        bed_bugs=True,
        asbestos=True,
        flood_zone=True,
        sex_offender=True,
        smoking_policy=True,
        security_deposit_limit=2,
        deposit_return_days=21,
        notes=("Requires specific CA lease addendum", "Rent control may apply in some cities"),
    ),
    JurisdictionRules(
        code="NY",
        mold=True,
        bed_bugs=True,
        asbestos=True,
        flood_zone=True,
        smoking_policy=True,
        deposit_return_days=14,
        notes=("NYC has additional requirements", "Rent stabilization may apply"),
    ),
    JurisdictionRules(code="TX", flood_zone=True, deposit_return_days=30),
    JurisdictionRules(code="FL", radon=True, flood_zone=True, deposit_return_days=15, late_fee_limit_pct=5),
    JurisdictionRules(code="NV", security_deposit_limit=3, deposit_return_days=30),
    JurisdictionRules(code="AZ", bed_bugs=True, security_deposit_limit=1.5, deposit_return_days=14),
    JurisdictionRules(code="CO", radon=True, deposit_return_days=30),
    JurisdictionRules(code="WA", mold=True, sex_offender=True, smoking_policy=True, deposit_return_days=21),
    JurisdictionRules(code="OR", mold=True, flood_zone=True, smoking_policy=True, deposit_return_days=31),
    JurisdictionRules(code="IL", bed_bugs=True, radon=True, deposit_return_days=30),
    JurisdictionRules(code=DEFAULT_CODE, deposit_return_days=30),
]


class JurisdictionRegistry:
    """
    Lookup table of clause sets keyed by state code.

    Unknown states resolve to DEFAULT. Registering a code replaces any
    existing entry, so local overrides can be layered over the built-ins.
    """

    def __init__(self, rules: Optional[List[JurisdictionRules]] = None):
        self._rules: Dict[str, JurisdictionRules] = {}
        for r in rules or []:
            self.register(r)

    def register(self, rules: JurisdictionRules) -> None:
        self._rules[rules.code.strip().upper()] = replace(rules, code=rules.code.strip().upper())

    def unregister(self, code: str) -> None:
        code = code.strip().upper()
        if code == DEFAULT_CODE:
            raise ValueError("DEFAULT jurisdiction cannot be removed")
        self._rules.pop(code, None)

    def get(self, state: Optional[str]) -> JurisdictionRules:
        code = (state or "").strip().upper()
        return self._rules.get(code) or self._rules[DEFAULT_CODE]

    def is_explicit(self, state: Optional[str]) -> bool:
        return (state or "").strip().upper() in self._rules

    def codes(self) -> List[str]:
        return sorted(k for k in self._rules if k != DEFAULT_CODE)


registry = JurisdictionRegistry(_BUILTIN)


def get_jurisdiction(state: Optional[str]) -> JurisdictionRules:
    return registry.get(state)

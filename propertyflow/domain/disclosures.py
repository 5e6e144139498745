# propertyflow/domain/disclosures.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .jurisdictions import JurisdictionRules, get_jurisdiction
from .lease_data import LeaseData


@dataclass(frozen=True)
class DisclosureClause:
    key: str
    title: str
    paragraphs: tuple[str, ...] = ()
    checkboxes: tuple[str, ...] = ()
    bullets: tuple[str, ...] = ()
    landlord_initials: bool = True


# lease-data flag that forces a disclosure even where the state does not require it
_DATA_FLAGS: Dict[str, str] = {
    "lead_paint": "lead_paint_disclosure",
    "mold": "mold_disclosure",
    "bed_bugs": "bed_bug_disclosure",
    "radon": "radon_disclosure",
    "flood_zone": "flood_zone_disclosure",
    "asbestos": "asbestos_disclosure",
}

BLANK = "_______________________"


def _lead_paint(state: str, data: LeaseData) -> DisclosureClause:
    return DisclosureClause(
        key="lead_paint",
        title="LEAD-BASED PAINT DISCLOSURE (Required for Pre-1978 Housing)",
        paragraphs=(
            "Housing built before 1978 may contain lead-based paint. Lead from paint, paint chips, and dust can pose "
            "health hazards if not managed properly. Lead exposure is especially harmful to young children and pregnant women.",
        ),
        checkboxes=(
            "Landlord has no knowledge of lead-based paint and/or lead-based paint hazards in the housing.",
            f"Landlord has knowledge of lead-based paint and/or lead-based paint hazards: {BLANK}",
            "Landlord has no reports or records pertaining to lead-based paint.",
            f"Landlord has provided the following records: {BLANK}",
            'Tenant has received the EPA pamphlet "Protect Your Family From Lead in Your Home."',
            "Tenant has received all available records and reports.",
        ),
    )


def _mold(state: str, data: LeaseData) -> DisclosureClause:
    return DisclosureClause(
        key="mold",
        title="MOLD DISCLOSURE",
        checkboxes=(
            "Landlord has no knowledge of mold or mold-producing conditions at the premises.",
            f"Landlord has knowledge of the following mold conditions: {BLANK}",
        ),
        paragraphs=(
            "Tenant agrees to maintain proper ventilation, promptly report any water leaks or moisture problems, and "
            "take reasonable steps to prevent mold growth. Tenant will immediately notify Landlord of any visible mold "
            "or musty odors.",
        ),
    )


def _bed_bugs(state: str, data: LeaseData) -> DisclosureClause:
    return DisclosureClause(
        key="bed_bugs",
        title="BED BUG DISCLOSURE",
        checkboxes=(
            "Landlord has no knowledge of any bed bug infestation at the premises within the past year.",
            f"The premises has had a bed bug infestation within the past year. Details: {BLANK}",
        ),
        paragraphs=(
            "Tenant agrees to report any signs of bed bugs immediately and to cooperate fully with any inspection and "
            "treatment procedures. Tenant will not introduce used furniture or mattresses without proper inspection.",
        ),
    )


def _radon(state: str, data: LeaseData) -> DisclosureClause:
    return DisclosureClause(
        key="radon",
        title="RADON DISCLOSURE",
        paragraphs=(
            "Radon is a naturally occurring radioactive gas that can accumulate in buildings and may cause health "
            "problems. The EPA recommends testing for radon and taking action if levels exceed 4 pCi/L.",
        ),
        checkboxes=(
            "Landlord has no knowledge of radon levels at the premises.",
            f"Radon testing has been conducted. Results: {BLANK}",
        ),
    )


def _asbestos(state: str, data: LeaseData) -> DisclosureClause:
    return DisclosureClause(
        key="asbestos",
        title="ASBESTOS DISCLOSURE",
        paragraphs=(
            "Buildings constructed before 1981 may contain asbestos-containing materials. Such materials are not "
            "hazardous unless disturbed. Tenant shall not drill, sand, or otherwise disturb ceilings, flooring, "
            "insulation, or pipe wrapping.",
        ),
        checkboxes=(
            "Landlord has no knowledge of asbestos-containing materials at the premises.",
            f"Landlord has knowledge of the following asbestos-containing materials: {BLANK}",
        ),
    )


def _flood_zone(state: str, data: LeaseData) -> DisclosureClause:
    return DisclosureClause(
        key="flood_zone",
        title="FLOOD ZONE DISCLOSURE",
        checkboxes=(
            "The premises is NOT located in a designated flood zone.",
            "The premises IS located in a designated flood zone. Tenant is advised to obtain flood insurance.",
        ),
    )


def _sex_offender(state: str, data: LeaseData) -> DisclosureClause:
    return DisclosureClause(
        key="sex_offender",
        title="SEX OFFENDER REGISTRY NOTICE",
        paragraphs=(
            f"Pursuant to {state} law, information about registered sex offenders may be obtained from local law "
            "enforcement or by visiting the state's sex offender registry website. Landlord makes no representations "
            "regarding the presence of registered sex offenders in the area.",
        ),
        landlord_initials=False,
    )


def _smoking_policy(state: str, data: LeaseData) -> DisclosureClause:
    if data.smoking_allowed:
        policy = f"Smoking is permitted only in: {data.smoking_areas or 'outdoor areas only'}."
    else:
        policy = "Smoking and vaping are prohibited everywhere on the Premises."
    return DisclosureClause(
        key="smoking_policy",
        title="SMOKING POLICY DISCLOSURE",
        paragraphs=(f"{state} law requires the smoking policy for the Premises to be disclosed. {policy}",),
    )


_CLAUSES: Dict[str, Callable[[str, LeaseData], DisclosureClause]] = {
    "lead_paint": _lead_paint,
    "mold": _mold,
    "bed_bugs": _bed_bugs,
    "radon": _radon,
    "asbestos": _asbestos,
    "flood_zone": _flood_zone,
    "sex_offender": _sex_offender,
    "smoking_policy": _smoking_policy,
}


def register_clause(key: str, builder: Callable[[str, LeaseData], DisclosureClause]) -> None:
    _CLAUSES[key] = builder


def is_disclosure_included(key: str, rules: JurisdictionRules, data: LeaseData) -> bool:
    """
    A disclosure is included when the state requires it or the landlord
    opted in through the matching lease-data flag. Sex-offender and
    smoking-policy notices have no opt-in flag.
    """
    if bool(getattr(rules, key, False)):
        return True
    flag = _DATA_FLAGS.get(key)
    return bool(flag and getattr(data, flag, False))


def disclosure_clauses(data: LeaseData, rules: Optional[JurisdictionRules] = None) -> List[DisclosureClause]:
    rules = rules or get_jurisdiction(data.state)
    state = data.state
    out: List[DisclosureClause] = []
    for key, builder in _CLAUSES.items():
        if is_disclosure_included(key, rules, data):
            out.append(builder(state, data))

    if rules.notes:
        out.append(
            DisclosureClause(
                key="state_notes",
                title=f"ADDITIONAL {state} REQUIREMENTS",
                bullets=tuple(rules.notes),
                landlord_initials=False,
            )
        )
    return out

# propertyflow/domain/lease_document.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Union

from .disclosures import DisclosureClause, disclosure_clauses
from .fingerprint import fingerprint
from .jurisdictions import get_jurisdiction
from .lease_data import LeaseData


# -----------------------------
# Document model
# -----------------------------
@dataclass(frozen=True)
class Paragraph:
    text: str
    label: Optional[str] = None


@dataclass(frozen=True)
class Subheading:
    text: str


@dataclass(frozen=True)
class Bullets:
    items: tuple[str, ...]


@dataclass(frozen=True)
class KeyValueTable:
    rows: tuple[tuple[str, str], ...]


@dataclass(frozen=True)
class GridTable:
    header: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]


@dataclass(frozen=True)
class Checklist:
    items: tuple[tuple[bool, str], ...]


@dataclass(frozen=True)
class Notice:
    title: Optional[str]
    paragraphs: tuple[str, ...] = ()
    bullets: tuple[str, ...] = ()
    checkboxes: tuple[str, ...] = ()


@dataclass(frozen=True)
class SignatureLine:
    role: str  # landlord|tenant
    label: str
    name: str


Block = Union[Paragraph, Subheading, Bullets, KeyValueTable, GridTable, Checklist, Notice, SignatureLine]


@dataclass(frozen=True)
class Section:
    title: str
    blocks: tuple[Block, ...]
    number: Optional[int] = None
    page_break: bool = False
    tenant_initials: bool = True
    landlord_initials: bool = True

    @property
    def heading(self) -> str:
        return f"{self.number}. {self.title}" if self.number is not None else self.title


@dataclass(frozen=True)
class LeaseDocument:
    title: str
    preamble: str
    sections: tuple[Section, ...]
    footer: tuple[str, ...]
    state: str
    document_id: str
    disclosure_keys: tuple[str, ...] = field(default_factory=tuple)

    def section(self, title: str) -> Optional[Section]:
        for s in self.sections:
            if s.title == title:
                return s
        return None


# -----------------------------
# Formatting
# -----------------------------
_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def format_currency(amount: float) -> str:
    amt = float(amount)
    sign = "-" if amt < 0 else ""
    return f"{sign}${abs(amt):,.2f}"


def format_date(d: date) -> str:
    return f"{_MONTHS[d.month - 1]} {d.day}, {d.year}"


def ordinal(n: int) -> str:
    n = int(n)
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


# -----------------------------
# Section builders
# -----------------------------
def _parties(d: LeaseData) -> List[Block]:
    blocks: List[Block] = [Subheading("LANDLORD:"), Paragraph(d.landlord_legal_name, label="Name:")]
    if d.landlord_company_name:
        blocks.append(Paragraph(d.landlord_company_name, label="Company:"))
    if d.landlord_address:
        blocks.append(Paragraph(d.landlord_address, label="Address:"))
    if d.landlord_email:
        blocks.append(Paragraph(d.landlord_email, label="Email:"))
    if d.landlord_phone:
        blocks.append(Paragraph(d.landlord_phone, label="Phone:"))

    blocks.append(Subheading("TENANT(S):"))
    for i, name in enumerate(d.tenant_names):
        email = d.tenant_emails[i] if i < len(d.tenant_emails) else ""
        blocks.append(Paragraph(f"{name} | Email: {email}" if email else name, label="Name:"))

    blocks.append(Subheading("PREMISES:"))
    blocks.append(Paragraph(d.property_address, label="Address:"))
    if d.unit_number:
        blocks.append(Paragraph(d.unit_number, label="Unit:"))
    if d.property_description:
        blocks.append(Paragraph(d.property_description, label="Description:"))
    if d.included_areas:
        blocks.append(Paragraph(", ".join(d.included_areas), label="Included Areas:"))

    occupancy = "Only the Tenant(s) named above and their minor children may reside at the Premises."
    if d.max_occupants:
        occupancy += f" Maximum occupancy: {d.max_occupants} persons."
    occupancy += " Any additional occupants require prior written consent from Landlord."
    blocks.append(Paragraph(occupancy, label="OCCUPANCY:"))
    return blocks


def _term(d: LeaseData) -> List[Block]:
    end_text = (
        "Month-to-Month (continuing until terminated by either party with proper notice)"
        if d.is_month_to_month or d.lease_end_date is None
        else format_date(d.lease_end_date)
    )
    blocks: List[Block] = [
        Paragraph(format_date(d.lease_start_date), label="Start Date:"),
        Paragraph(end_text, label="End Date:"),
    ]
    if d.is_month_to_month:
        blocks.append(
            Paragraph(
                "This is a month-to-month tenancy. Either party may terminate this Agreement by providing "
                f"{d.move_out_notice_days} days written notice prior to the end of any rental period."
            )
        )
    elif d.auto_renewal:
        blocks.append(
            Paragraph(
                "This Lease will automatically renew on a month-to-month basis unless either party provides "
                f"{d.renewal_notice_days} days written notice prior to the end date.",
                label="Renewal:",
            )
        )
    else:
        blocks.append(
            Paragraph("This Lease will NOT automatically renew. A new agreement must be signed for continued tenancy.", label="Renewal:")
        )

    if d.early_termination_fee:
        blocks.append(
            Paragraph(
                f"Tenant may terminate this Lease early by providing {d.early_termination_notice_days or 60} days written "
                f"notice and paying an early termination fee of {format_currency(d.early_termination_fee)}. Tenant remains "
                "responsible for rent until the Premises is re-rented or the notice period expires, whichever comes first.",
                label="Early Termination:",
            )
        )
    else:
        blocks.append(
            Paragraph(
                "Tenant may not terminate this Lease early without Landlord's written consent. Tenant remains liable "
                "for all rent due through the end of the Lease term.",
                label="Early Termination:",
            )
        )
    return blocks


def _rent(d: LeaseData) -> List[Block]:
    blocks: List[Block] = [
        KeyValueTable(
            (
                ("Monthly Rent", format_currency(d.monthly_rent)),
                ("Due Date", f"The {ordinal(d.rent_due_day)} day of each month"),
                (
                    "Grace Period",
                    f"{d.grace_period_days} days (rent received by the {ordinal(d.rent_due_day + d.grace_period_days)} "
                    "is not considered late)",
                ),
                ("Accepted Payment Methods", ", ".join(d.accepted_payment_methods)),
            )
        )
    ]
    if d.payment_instructions:
        blocks.append(Paragraph(d.payment_instructions, label="Payment Instructions:"))
    if d.bounced_check_fee:
        blocks.append(
            Paragraph(
                f"A fee of {format_currency(d.bounced_check_fee)} will be charged for any returned or bounced payment.",
                label="Returned Payment Fee:",
            )
        )
    if d.allow_partial_payments:
        partial = (
            "Partial payments may be accepted at Landlord's discretion. Acceptance of partial payment does not waive "
            "Landlord's right to collect the remaining balance or pursue legal remedies."
        )
    else:
        partial = "Partial payments will NOT be accepted. Full payment of all amounts due is required."
    blocks.append(Paragraph(partial, label="Partial Payments:"))
    return blocks


def _late_fees(d: LeaseData) -> List[Block]:
    blocks: List[Block] = []
    if d.late_fee_amount or d.late_fee_percent:
        fee = format_currency(d.late_fee_amount) if d.late_fee_amount else f"{d.late_fee_percent:g}% of monthly rent"
        blocks.append(
            Paragraph(
                f"If rent is not received by the end of the grace period, a late fee of {fee} will be assessed "
                f"beginning on the {ordinal(d.late_fee_start_day)} day after the due date.",
                label="Late Fee:",
            )
        )
        max_fee = d.max_late_fee or get_jurisdiction(d.state).max_late_fee(d.monthly_rent)
        if max_fee:
            blocks.append(Paragraph(f"Maximum late fee per month: {format_currency(max_fee)} (per applicable state law)."))
    else:
        blocks.append(
            Paragraph("No late fee will be charged, however Landlord reserves all legal remedies for nonpayment.", label="Late Fee:")
        )
    blocks.append(Paragraph("If rent remains unpaid after the grace period, Landlord may:", label="Nonpayment Process:"))
    blocks.append(
        Bullets(
            (
                f"Serve a Pay or Quit notice as required by {d.state} law",
                "Report delinquency to credit bureaus",
                "Initiate eviction proceedings after proper notice period",
                "Pursue collection of all amounts owed including court costs and attorney fees where permitted by law",
            )
        )
    )
    return blocks


def _deposit(d: LeaseData) -> List[Block]:
    blocks: List[Block] = [
        Paragraph(format_currency(d.security_deposit_amount), label="Deposit Amount:"),
        Paragraph("The security deposit may be used by Landlord for:", label="Permitted Uses:"),
        Bullets(tuple(d.deposit_use_cases)),
        Paragraph(
            f"Within {d.deposit_return_days} days after Tenant vacates the Premises and returns all keys, Landlord will "
            "return the deposit minus any lawful deductions, along with an itemized statement of any deductions.",
            label="Return of Deposit:",
        ),
    ]
    if d.deposit_not_last_month_rent:
        blocks.append(
            Notice(
                "IMPORTANT:",
                (
                    "The security deposit is NOT to be used as last month's rent. Tenant must pay the final month's rent "
                    "in full. Any attempt to use the security deposit as rent is a violation of this Agreement.",
                ),
            )
        )
    blocks.append(
        Paragraph(
            "Tenant has the right to request a move-out inspection to identify any issues that may result in "
            "deductions from the security deposit.",
            label="Inspection:",
        )
    )
    return blocks


def _utilities(d: LeaseData) -> List[Block]:
    blocks: List[Block] = [
        GridTable(
            ("Tenant Pays", "Landlord Pays"),
            ((", ".join(d.tenant_pays_utilities) or "None", ", ".join(d.landlord_pays_utilities) or "None"),),
        )
    ]
    if d.shared_utilities_note:
        blocks.append(Paragraph(d.shared_utilities_note, label="Shared Utilities:"))
    blocks.append(
        Paragraph(
            "Tenant is responsible for setting up utility accounts in Tenant's name prior to move-in for all "
            "Tenant-paid utilities. Tenant must maintain these accounts throughout the tenancy and ensure final bills "
            "are paid upon move-out."
        )
    )
    blocks.append(
        Paragraph("Landlord is not responsible for any interruption of utility services due to circumstances beyond Landlord's control.")
    )
    return blocks


def _use(d: LeaseData) -> List[Block]:
    return [
        Paragraph("The Premises shall be used exclusively for residential purposes. Tenant shall not:"),
        Bullets(
            (
                "Conduct any business or commercial activity on the Premises without prior written consent",
                "Use the Premises for any illegal purpose or activity",
                "Create a nuisance or disturb the peace and quiet of neighbors",
                "Exceed the maximum occupancy limits",
                "Allow any person not named on this Lease to reside at the Premises for more than 14 consecutive days without written consent",
            )
        ),
    ]


def _prohibited(d: LeaseData) -> List[Block]:
    if d.smoking_allowed:
        smoking = (
            "Smoking and vaping are permitted only in the following designated areas: "
            f"{d.smoking_areas or 'outdoor areas only'}. Smoking inside the unit is prohibited."
        )
    else:
        smoking = (
            "Smoking and vaping are strictly prohibited anywhere on the Premises, including inside the unit, on "
            "balconies, patios, and common areas."
        )
    return [
        Paragraph("The following activities are strictly prohibited on the Premises:"),
        Bullets(
            (
                "Possession, use, manufacture, or distribution of illegal drugs or controlled substances",
                "Any illegal activity of any kind",
                "Possession of firearms or weapons in violation of applicable laws",
                "Storage of hazardous, flammable, or explosive materials",
                "Open flames, fireworks, or fire hazards (except normal cooking)",
                "Harassment, threats, or intimidation of neighbors or other tenants",
                "Excessive noise or disturbances",
                "Vandalism or destruction of property",
            )
        ),
        Paragraph(smoking, label="Smoking/Vaping:"),
        Paragraph("Violation of any prohibited activity may result in immediate termination of this Lease and eviction."),
    ]


def _maintenance(d: LeaseData) -> List[Block]:
    blocks: List[Block] = [
        Subheading("Tenant Responsibilities:"),
        Bullets(tuple(d.tenant_maintenance_responsibilities)),
        Subheading("Landlord Responsibilities:"),
        Bullets(
            (
                "Maintain the Premises in a habitable condition",
                "Make necessary repairs to structural elements, plumbing, heating, and electrical systems",
                "Comply with all applicable building and housing codes",
                "Maintain common areas in a safe and clean condition",
            )
        ),
        Subheading("Repair Requests:"),
        Paragraph(
            "Tenant must report all maintenance issues promptly through the designated maintenance request system or by contacting:"
        ),
    ]
    if d.emergency_contact_phone:
        blocks.append(Paragraph(d.emergency_contact_phone, label="Phone:"))
    if d.emergency_contact_email:
        blocks.append(Paragraph(d.emergency_contact_email, label="Email:"))
    blocks.append(
        Paragraph(
            "In case of emergency (fire, flood, gas leak, no heat in winter, etc.), Tenant should call emergency "
            "services (911) first, then contact Landlord immediately.",
            label="Emergency Repairs:",
        )
    )
    blocks.append(
        Paragraph(
            "Tenant is responsible for the cost of repairs for any damage caused by Tenant, Tenant's guests, or "
            "Tenant's negligence, beyond normal wear and tear.",
            label="Tenant-Caused Damage:",
        )
    )
    return blocks


def _alterations(d: LeaseData) -> List[Block]:
    return [
        Paragraph(
            "Tenant shall not make any alterations, additions, or improvements to the Premises without prior written "
            "consent from Landlord. This includes but is not limited to:"
        ),
        Bullets(
            (
                "Painting walls or ceilings",
                "Installing shelving, hooks, or wall-mounted items",
                "Changing locks or adding security devices",
                "Installing satellite dishes or antennas",
                "Making any structural changes",
                "Installing or removing appliances",
            )
        ),
        Paragraph(
            "Any approved alterations become the property of Landlord upon installation unless otherwise agreed in "
            "writing. Landlord may require Tenant to restore the Premises to its original condition at move-out."
        ),
    ]


def _entry(d: LeaseData) -> List[Block]:
    return [
        Paragraph(
            f"Landlord will provide at least {d.entry_notice_hours} hours advance notice before entering the Premises, "
            "except in cases of emergency.",
            label="Notice Required:",
        ),
        Paragraph("", label="Reasons for Entry:"),
        Bullets(tuple(d.entry_reasons)),
        Paragraph(
            "Landlord may enter without notice in case of emergency, including but not limited to fire, flood, gas "
            "leak, or when Landlord reasonably believes entry is necessary to prevent damage to the Premises or protect "
            "the health and safety of occupants.",
            label="Emergency Entry:",
        ),
        Paragraph("Tenant agrees to provide reasonable access during normal business hours for scheduled entries."),
    ]


def _pets(d: LeaseData) -> List[Block]:
    if not d.pets_allowed:
        return [
            Checklist(((False, "Pets are NOT allowed at the Premises."),)),
            Paragraph(
                "This includes but is not limited to dogs, cats, birds, reptiles, rodents, and fish tanks over 10 "
                "gallons. Service animals and emotional support animals with proper documentation are exempt from this policy."
            ),
        ]

    blocks: List[Block] = [Checklist(((True, "Pets ARE allowed at the Premises, subject to the following terms:"),))]
    if d.pet_restrictions:
        blocks.append(Paragraph(d.pet_restrictions, label="Restrictions:"))
    rows: list[tuple[str, str]] = []
    if d.pet_deposit:
        rows.append(("Pet Deposit", f"{format_currency(d.pet_deposit)} (refundable)"))
    if d.pet_rent:
        rows.append(("Monthly Pet Rent", f"{format_currency(d.pet_rent)} per pet"))
    if rows:
        blocks.append(KeyValueTable(tuple(rows)))
    rules = [
        "Tenant is responsible for all damage caused by pets",
        "Pets must be properly licensed and vaccinated as required by law",
        "Pets must be kept under control at all times",
        "Tenant must clean up after pets immediately",
        "Pets may not create a nuisance through excessive noise or aggressive behavior",
    ]
    if d.pet_rules:
        rules.append(d.pet_rules)
    blocks.append(Paragraph("", label="Pet Rules:"))
    blocks.append(Bullets(tuple(rules)))
    blocks.append(
        Paragraph("Landlord reserves the right to require removal of any pet that causes damage, creates a nuisance, or violates these rules.")
    )
    return blocks


def _noise(d: LeaseData) -> List[Block]:
    blocks: List[Block] = []
    if d.quiet_hours_start and d.quiet_hours_end:
        blocks.append(Paragraph(f"{d.quiet_hours_start} to {d.quiet_hours_end}", label="Quiet Hours:"))
        blocks.append(Paragraph("During quiet hours, Tenant must keep noise to a minimum and avoid activities that may disturb neighbors."))
    blocks.append(Paragraph("At all times, Tenant shall:"))
    blocks.append(
        Bullets(
            (
                "Conduct themselves in a manner that does not disturb the peace and quiet of neighbors",
                "Not engage in loud parties, music, or gatherings that create excessive noise",
                "Ensure guests comply with all noise and behavior rules",
                "Not engage in harassment, threats, or intimidating behavior toward neighbors or other tenants",
                "Comply with all local noise ordinances",
            )
        )
    )
    blocks.append(Paragraph("Repeated noise complaints may result in lease termination."))
    return blocks


def _safety(d: LeaseData) -> List[Block]:
    return [
        Paragraph("Tenant agrees to:"),
        Bullets(
            (
                "Not tamper with, disable, or remove smoke detectors, carbon monoxide detectors, or fire extinguishers",
                "Replace batteries in smoke and CO detectors as needed and notify Landlord of any malfunctions",
                "Keep all exits and pathways clear of obstructions",
                "Properly dispose of all garbage and recyclables",
                "Not store hazardous materials on the Premises",
                "Maintain proper ventilation to prevent mold growth",
                "Comply with all health and fire codes",
                "Report any safety hazards to Landlord immediately",
            )
        ),
    ]


def _insurance(d: LeaseData) -> List[Block]:
    blocks: List[Block] = []
    if d.renters_insurance_required:
        coverage = format_currency(d.min_insurance_coverage) if d.min_insurance_coverage else "$100,000"
        blocks.append(
            Paragraph(
                "Tenant must obtain and maintain renter's insurance throughout the term of this Lease with minimum "
                f"coverage of {coverage} in liability coverage.",
                label="Renter's Insurance REQUIRED:",
            )
        )
        blocks.append(Paragraph("Tenant must provide proof of insurance to Landlord:"))
        blocks.append(Bullets(("Prior to move-in", "Upon each policy renewal", "Upon Landlord's request")))
        blocks.append(Paragraph("Failure to maintain required insurance is a violation of this Lease."))
    else:
        blocks.append(
            Paragraph(
                "While not required, Landlord strongly recommends that Tenant obtain renter's insurance to protect "
                "personal belongings and provide liability coverage.",
                label="Renter's Insurance Recommended:",
            )
        )
    blocks.append(
        Notice(
            "NOTICE:",
            (
                "Landlord's insurance does NOT cover Tenant's personal property or liability. Landlord is not "
                "responsible for loss or damage to Tenant's belongings due to theft, fire, water damage, or any other cause.",
            ),
        )
    )
    return blocks


def _subletting(d: LeaseData) -> List[Block]:
    return [
        Paragraph("Tenant shall NOT sublet the Premises or assign this Lease without prior written consent from Landlord."),
        Paragraph("This includes:"),
        Bullets(
            (
                "Renting out rooms to non-approved occupants",
                "Listing the Premises on short-term rental platforms (Airbnb, VRBO, etc.)",
                "Allowing anyone not named on this Lease to reside at the Premises",
                "Transferring this Lease to another party",
            )
        ),
        Paragraph(
            "If Landlord consents to a sublet or assignment, the original Tenant remains fully responsible for all "
            "obligations under this Lease."
        ),
        Paragraph("Unauthorized subletting is grounds for immediate lease termination."),
    ]


def _default(d: LeaseData) -> List[Block]:
    return [
        Paragraph("The following constitute violations of this Lease:", label="Lease Violations:"),
        Bullets(
            (
                "Failure to pay rent or other charges when due",
                "Violation of any term or condition of this Lease",
                "Damage to the Premises beyond normal wear and tear",
                "Illegal activity on the Premises",
                "Disturbance of neighbors or other tenants",
                "Unauthorized occupants or pets",
                "Failure to maintain required insurance (if applicable)",
            )
        ),
        Paragraph(
            "For curable violations, Landlord will provide written notice specifying the violation and a reasonable "
            f"time to cure (as required by {d.state} law). If the violation is not cured within the specified time, "
            "Landlord may proceed with termination and eviction.",
            label="Notice and Cure:",
        ),
        Paragraph(
            "Repeated violations of the same or similar nature may result in lease termination without opportunity to cure.",
            label="Repeated Violations:",
        ),
        Paragraph(
            "Certain violations (illegal activity, violence, serious property damage) may result in immediate "
            "termination without opportunity to cure, as permitted by law.",
            label="Immediate Termination:",
        ),
    ]


def _move_out(d: LeaseData) -> List[Block]:
    return [
        Paragraph(f"Tenant must provide {d.move_out_notice_days} days written notice before vacating the Premises.", label="Notice Required:"),
        Paragraph("Upon vacating, Tenant must:", label="Move-Out Condition:"),
        Bullets(
            tuple(d.move_out_cleaning_requirements)
            + (
                "Return all keys, access cards, and remote controls",
                "Provide forwarding address for security deposit return",
            )
        ),
        Paragraph(
            "Tenant may request a final walkthrough inspection with Landlord to identify any issues that may result in "
            "deductions from the security deposit.",
            label="Final Walkthrough:",
        ),
        Paragraph(
            "If Tenant remains in possession after the Lease term without Landlord's consent, Tenant shall pay "
            "holdover rent at 150% of the monthly rent rate, and Landlord may pursue eviction.",
            label="Holdover:",
        ),
    ]


def _legal(d: LeaseData) -> List[Block]:
    return [
        Paragraph(
            f"This Agreement shall be governed by and construed in accordance with the laws of the State of {d.state}.",
            label="Governing Law:",
        ),
        Paragraph(
            "If any provision of this Lease is found to be invalid or unenforceable, the remaining provisions shall "
            "continue in full force and effect.",
            label="Severability:",
        ),
        Paragraph(
            "Landlord's failure to enforce any provision of this Lease shall not constitute a waiver of Landlord's "
            "right to enforce that provision in the future.",
            label="Waiver:",
        ),
        Paragraph(
            "This Lease, together with any addenda and attachments, constitutes the entire agreement between the "
            "parties. No oral agreements or representations shall be binding.",
            label="Entire Agreement:",
        ),
        Paragraph("This Lease may only be modified by a written amendment signed by both parties.", label="Amendments:"),
        Paragraph("All notices required under this Lease shall be in writing and delivered by:", label="Notices:"),
        Bullets(("Personal delivery", "Certified mail, return receipt requested", "Email to the addresses provided in this Lease")),
        Paragraph(
            "If there is more than one Tenant, all Tenants are jointly and severally liable for all obligations under this Lease.",
            label="Joint and Several Liability:",
        ),
    ]


def _additional(d: LeaseData) -> List[Block]:
    blocks: List[Block] = []
    if d.parking_rules:
        blocks.append(Paragraph(d.parking_rules, label="Parking:"))
    if d.guest_policy:
        blocks.append(Paragraph(d.guest_policy, label="Guest Policy:"))
    if d.hoa_rules:
        blocks.append(Paragraph(d.hoa_rules, label="HOA Rules:"))
    if d.additional_terms:
        blocks.append(Paragraph("", label="Additional Terms:"))
        blocks.append(Bullets(tuple(d.additional_terms)))
    return blocks


def _clause_notice(c: DisclosureClause) -> Notice:
    return Notice(c.title, paragraphs=c.paragraphs, bullets=c.bullets, checkboxes=c.checkboxes)


NUMBERED_SECTIONS = (
    ("Parties & Property", _parties),
    ("Lease Term", _term),
    ("Rent & Payment Terms", _rent),
    ("Late Fees & Nonpayment", _late_fees),
    ("Security Deposit", _deposit),
    ("Utilities & Services", _utilities),
    ("Use of the Property", _use),
    ("Prohibited Activities", _prohibited),
    ("Maintenance & Repairs", _maintenance),
    ("Alterations & Improvements", _alterations),
    ("Entry & Access", _entry),
    ("Pet Policy", _pets),
    ("Noise & Behavior", _noise),
    ("Safety & Health Rules", _safety),
    ("Insurance", _insurance),
    ("Subletting & Assignment", _subletting),
    ("Default & Violations", _default),
    ("Move-Out Terms", _move_out),
    ("Legal & Administrative Clauses", _legal),
    ("Additional Terms", _additional),
)

APP_NAME = "PropertyFlow HQ"

LEGAL_DISCLAIMER = (
    f"This lease agreement was generated using {APP_NAME}'s Lease Builder tool. By using this document, all parties "
    "acknowledge and agree to the following:",
    f"1. NOT LEGAL ADVICE: {APP_NAME} is a property management software platform, NOT a law firm. This document is "
    "provided as a tool to assist landlords and does not constitute legal advice.",
    "2. NO ATTORNEY-CLIENT RELATIONSHIP: Use of this lease builder does not create an attorney-client relationship "
    f"between any party and {APP_NAME} or any of its affiliates.",
    "3. LANDLORD RESPONSIBILITY: The landlord is solely responsible for ensuring this lease complies with all "
    "applicable federal, state, and local laws, including but not limited to fair housing laws, landlord-tenant "
    "regulations, and disclosure requirements.",
    "4. REVIEW RECOMMENDED: We strongly recommend having this lease reviewed by a licensed attorney in your "
    "jurisdiction before use.",
    "5. STATE-SPECIFIC REQUIREMENTS: While this lease builder includes state-aware provisions for {state}, laws vary "
    "significantly by locality. Additional disclosures or specific language may be required in your area.",
    '6. NO WARRANTY: This document is provided "as is" without warranty of any kind. '
    f"{APP_NAME} makes no guarantees regarding the enforceability of any provision in this lease.",
)


def assemble_lease(data: LeaseData) -> LeaseDocument:
    """
    Turn validated lease data into an ordered document model.

    Numbered sections with no content (only "Additional Terms" can be empty)
    are left out. State disclosures follow the numbered sections so that
    the signature page comes after everything the parties initial.
    """
    rules = get_jurisdiction(data.state)
    sections: List[Section] = []

    number = 0
    for title, builder in NUMBERED_SECTIONS:
        blocks = builder(data)
        if not blocks:
            continue
        number += 1
        sections.append(Section(title=title, number=number, blocks=tuple(blocks)))

    clauses = disclosure_clauses(data, rules)
    if clauses:
        disc_blocks: List[Block] = [Paragraph(f"The following disclosures are required by {data.state} law or by Landlord:")]
        disc_blocks.extend(_clause_notice(c) for c in clauses)
        sections.append(
            Section(title=f"Required Disclosures for {data.state}", blocks=tuple(disc_blocks), page_break=True)
        )

    sig_blocks: List[Block] = [
        Paragraph(
            "By signing below, the parties acknowledge that they have read, understand, and agree to all terms and "
            "conditions of this Residential Lease Agreement."
        ),
        SignatureLine(role="landlord", label="LANDLORD:", name=data.landlord_legal_name),
    ]
    multi = len(data.tenant_names) > 1
    for i, name in enumerate(data.tenant_names):
        sig_blocks.append(SignatureLine(role="tenant", label=f"TENANT {i + 1}:" if multi else "TENANT:", name=name))
    sections.append(
        Section(title="Signatures", blocks=tuple(sig_blocks), page_break=True, tenant_initials=False, landlord_initials=False)
    )

    contact_rows: list[tuple[str, str]] = [
        (
            "Landlord/Property Manager",
            data.landlord_legal_name + (f" ({data.landlord_company_name})" if data.landlord_company_name else ""),
        )
    ]
    if data.landlord_address:
        contact_rows.append(("Address", data.landlord_address))
    if data.landlord_phone:
        contact_rows.append(("Phone", data.landlord_phone))
    if data.landlord_email:
        contact_rows.append(("Email", data.landlord_email))
    if data.emergency_contact_phone:
        contact_rows.append(("Emergency Contact", data.emergency_contact_phone))
    sections.append(
        Section(
            title="Landlord Contact Information",
            blocks=(
                Paragraph(
                    "For all matters related to this lease, including maintenance requests, rent payments, and notices, contact:"
                ),
                KeyValueTable(tuple(contact_rows)),
            ),
            page_break=True,
            tenant_initials=False,
            landlord_initials=False,
        )
    )

    sections.append(
        Section(
            title="Tenant Rights Notice",
            blocks=(
                Notice(
                    "KNOW YOUR RIGHTS AS A TENANT",
                    paragraphs=(f"As a tenant in {data.state}, you have certain rights protected by law, including but not limited to:",),
                    bullets=(
                        "The right to a habitable dwelling",
                        "The right to privacy and proper notice before landlord entry",
                        "The right to have your security deposit returned (minus lawful deductions) within the time required by law",
                        "The right to be free from discrimination based on race, color, religion, sex, national origin, familial status, or disability",
                        "The right to proper notice before eviction proceedings",
                        "The right to request repairs for conditions affecting health and safety",
                    ),
                ),
                Paragraph(
                    f"For more information about tenant rights in {data.state}, contact your local housing authority or tenant rights organization."
                ),
            ),
        )
    )

    sections.append(
        Section(
            title="Legal Notice & Disclaimer",
            blocks=(
                Notice("IMPORTANT LEGAL NOTICE", paragraphs=tuple(p.replace("{state}", data.state) for p in LEGAL_DISCLAIMER)),
                Paragraph("By signing this lease, all parties confirm they have read and understood this legal notice."),
            ),
            page_break=True,
        )
    )

    document_id = fingerprint("lease", data.to_json())[:12].upper()
    footer = (
        f"{APP_NAME} - State-Aware Lease Builder",
        f"Document ID: {document_id} | Generated: {format_date(data.signing_date)} | State: {data.state}",
        "This is not a guarantee of legal validity. Consult with a licensed attorney for legal advice.",
    )

    return LeaseDocument(
        title="Residential Lease Agreement",
        preamble=(
            'THIS RESIDENTIAL LEASE AGREEMENT ("Agreement" or "Lease") is entered into on '
            f"{format_date(data.signing_date)}, by and between the parties named below."
        ),
        sections=tuple(sections),
        footer=footer,
        state=data.state,
        document_id=document_id,
        disclosure_keys=tuple(c.key for c in clauses),
    )

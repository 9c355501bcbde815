"""
Checklists per permit type.

Acceptance requirements are ordered; PROJECT_COORDINATES is always first
and is created already ACCEPTED from the approved boundary.
"""

from dataclasses import dataclass

from app.modules.applications.models import PermitType

PROJECT_COORDINATES = "PROJECT_COORDINATES"


@dataclass(frozen=True)
class ChecklistItem:
    item_type: str
    name: str
    description: str


_COORDINATES = ChecklistItem(
    PROJECT_COORDINATES,
    "Project Coordinates",
    "Approved boundary of the project area",
)
_APPLICATION_FORM = ChecklistItem(
    "APPLICATION_FORM",
    "Application Form",
    "Duly accomplished and notarized application form",
)
_SURVEY_PLAN = ChecklistItem(
    "SURVEY_PLAN",
    "Survey Plan",
    "Survey plan signed by a licensed geodetic engineer",
)
_LOCATION_MAP = ChecklistItem(
    "LOCATION_MAP",
    "Location Map",
    "Location map / sketch plan of the project area",
)
_IEE_REPORT = ChecklistItem(
    "IEE_REPORT",
    "Initial Environmental Examination",
    "IEE checklist report",
)
_EPEP = ChecklistItem(
    "EPEP",
    "Environmental Protection and Enhancement Program",
    "EPEP covering the permit term",
)
_TECHNICAL = ChecklistItem(
    "PROOF_TECHNICAL_COMPETENCE",
    "Proof of Technical Competence",
    "Résumés and licenses of the technical personnel",
)
_FINANCIAL = ChecklistItem(
    "PROOF_FINANCIAL_CAPABILITY",
    "Proof of Financial Capability",
    "Bank statements or audited financial statements",
)
_ARTICLES = ChecklistItem(
    "ARTICLES_INCORPORATION",
    "Articles of Incorporation",
    "SEC registration and articles of incorporation/partnership",
)
_OTHERS = ChecklistItem(
    "OTHER_SUPPORTING_PAPERS",
    "Other Supporting Papers",
    "Other documents required by the office",
)

ISAG_REQUIREMENTS: tuple[ChecklistItem, ...] = (
    _COORDINATES,
    _APPLICATION_FORM,
    _SURVEY_PLAN,
    _LOCATION_MAP,
    ChecklistItem("WORK_PROGRAM", "Five-Year Work Program", "Work program for five years"),
    _IEE_REPORT,
    _EPEP,
    _TECHNICAL,
    _FINANCIAL,
    _ARTICLES,
    _OTHERS,
)

CSAG_REQUIREMENTS: tuple[ChecklistItem, ...] = (
    _COORDINATES,
    _APPLICATION_FORM,
    _SURVEY_PLAN,
    _LOCATION_MAP,
    ChecklistItem("WORK_PROGRAM", "One-Year Work Program", "Work program for one year"),
    _IEE_REPORT,
    _TECHNICAL,
    _FINANCIAL,
    _ARTICLES,
    _OTHERS,
)

OTHER_DOCUMENTS: tuple[ChecklistItem, ...] = (
    ChecklistItem("ECC", "Environmental Compliance Certificate", "ECC issued by EMB"),
    ChecklistItem("LGU_ENDORSEMENT", "LGU Endorsement", "Endorsement of the host LGUs"),
    ChecklistItem("COMMUNITY_CONSENT", "Community Consent", "Consent of the host community"),
    ChecklistItem(
        "ANCESTRAL_DOMAIN_CLEARANCE",
        "Ancestral Domain Clearance",
        "NCIP certification precondition or certificate of non-overlap",
    ),
    ChecklistItem("BUSINESS_PERMIT", "Business Permit", "Current mayor's/business permit"),
)


def acceptance_checklist(permit_type: PermitType) -> tuple[ChecklistItem, ...]:
    if permit_type == PermitType.ISAG:
        return ISAG_REQUIREMENTS
    return CSAG_REQUIREMENTS

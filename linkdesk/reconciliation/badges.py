"""
Status and Badge Derivation

Pure, total mappings from statuses and analysis signals to display labels
and CSS color classes. Unknown values always fall back to a neutral style.
"""

from dataclasses import dataclass
from typing import Optional

from .models import Evidence, SiteSubmission

GREEN = "bg-green-100 text-green-800"
RED = "bg-red-100 text-red-800"
YELLOW = "bg-yellow-100 text-yellow-800"
BLUE = "bg-blue-100 text-blue-800"
PURPLE = "bg-purple-100 text-purple-700"
GRAY = "bg-gray-100 text-gray-800"
MUTED = "bg-gray-100 text-gray-600"


@dataclass(frozen=True)
class Badge:
    label: str
    color: str


_SUBMISSION_STATUS_BADGES = {
    "client_approved": Badge("Approved", GREEN),
    "client_rejected": Badge("Rejected", RED),
    "pending": Badge("Pending Review", YELLOW),
    "submitted": Badge("Submitted", BLUE),
    "approved": Badge("Approved (internal)", GREEN),
    "rejected": Badge("Rejected (internal)", RED),
}

_QUALIFICATION_STARS = {
    "high_quality": Badge("★★★", "bg-green-100 text-green-700"),
    "good_quality": Badge("★★", "bg-blue-100 text-blue-700"),
    "marginal_quality": Badge("★", "bg-yellow-100 text-yellow-700"),
}

_OVERLAP_BADGES = {
    "both": Badge("STRONGEST", PURPLE),
    "direct": Badge("VERY STRONG", "bg-green-100 text-green-700"),
    "related": Badge("DECENT", "bg-blue-100 text-blue-700"),
}

_AUTHORITY_COLORS = {
    "strong": "bg-green-100 text-green-700",
    "moderate": "bg-yellow-100 text-yellow-700",
    "weak": MUTED,
}

_DOMAIN_QUALIFICATION_BADGES = {
    "high_quality": Badge("High Quality", GREEN),
    "average_quality": Badge("Average", BLUE),
    "disqualified": Badge("Disqualified", MUTED),
}


def submission_status_badge(status: Optional[str]) -> Badge:
    """Badge for a submission review status."""
    if status in _SUBMISSION_STATUS_BADGES:
        return _SUBMISSION_STATUS_BADGES[status]
    return Badge(status or "Unknown", GRAY)


def qualification_stars(status: Optional[str]) -> Badge:
    """Star rating for a submission's qualification tier."""
    return _QUALIFICATION_STARS.get(status or "", Badge("○", MUTED))


def overlap_badge(status: Optional[str]) -> Badge:
    """Keyword overlap strength badge."""
    return _OVERLAP_BADGES.get(status or "", Badge("NO MATCH", MUTED))


def authority_badge(kind: str, tier: Optional[str]) -> Optional[Badge]:
    """
    Authority badge such as "Direct: strong".

    Returns None when there is nothing to show (missing tier or n/a).
    """
    if not tier or tier == "n/a":
        return None
    return Badge(f"{kind.capitalize()}: {tier}", _AUTHORITY_COLORS.get(tier, MUTED))


def evidence_summary(evidence: Optional[Evidence]) -> str:
    """Short evidence text, e.g. "3 direct, 2 related"."""
    if evidence is None:
        return ""
    parts = []
    if evidence.direct_count > 0:
        parts.append(f"{evidence.direct_count} direct")
    if evidence.related_count > 0:
        parts.append(f"{evidence.related_count} related")
    return ", ".join(parts)


def domain_qualification_badge(status: Optional[str]) -> Badge:
    """Badge for a bulk-analysis domain's qualification status."""
    return _DOMAIN_QUALIFICATION_BADGES.get(status or "", Badge("Pending", YELLOW))


@dataclass(frozen=True)
class SubmissionSignals:
    """Analysis signals for one submission, nested domain first, metadata second."""
    qualification_status: Optional[str]
    overlap_status: Optional[str]
    authority_direct: Optional[str]
    authority_related: Optional[str]
    evidence: Optional[Evidence]
    has_dataforseo_results: bool


def submission_signals(submission: SiteSubmission) -> SubmissionSignals:
    domain = submission.domain
    meta = submission.metadata
    return SubmissionSignals(
        qualification_status=(domain.qualification_status if domain else None) or meta.qualification_status,
        overlap_status=(domain.overlap_status if domain else None) or meta.overlap_status,
        authority_direct=(domain.authority_direct if domain else None) or meta.authority_direct,
        authority_related=(domain.authority_related if domain else None) or meta.authority_related,
        evidence=(domain.evidence if domain else None) or meta.evidence,
        has_dataforseo_results=bool(domain and domain.has_dataforseo_results) or meta.has_dataforseo_results,
    )

"""
Order Review Data Models

Typed views over the Order API payloads:
- OrderGroup: one client's slice of an order, with N requested link slots
- SiteSubmission: one candidate website suggested for a group
- SubmissionMetadata: typed extension record for analysis signals

The wire format is camelCase and loosely typed. Every model has a tolerant
`from_api()` constructor that never raises on missing or malformed fields.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# =============================================================================
# ENUMS
# =============================================================================


class SubmissionStatus(str, Enum):
    """Review status of a site submission."""
    PENDING = "pending"
    SUBMITTED = "submitted"
    APPROVED = "approved"  # Internal approval
    REJECTED = "rejected"  # Internal rejection
    CLIENT_APPROVED = "client_approved"
    CLIENT_REJECTED = "client_rejected"


class SelectionPool(str, Enum):
    """Which pool a submission sits in for its target page."""
    PRIMARY = "primary"  # Display candidate
    ALTERNATIVE = "alternative"  # Swap candidate


DEFAULT_POOL_RANK = 1


# =============================================================================
# COERCION HELPERS
# =============================================================================


def _as_str(value: Any) -> Optional[str]:
    """Return a stripped, non-empty string or None."""
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    return value or None


def _as_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def _as_float(value: Any, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        return default


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


# =============================================================================
# ORDER GROUPS
# =============================================================================


@dataclass
class TargetPage:
    """A client page that should receive a link."""
    url: Optional[str] = None
    id: Optional[str] = None
    page_id: Optional[str] = None

    @classmethod
    def from_api(cls, data: Any) -> "TargetPage":
        if isinstance(data, str):
            return cls(url=_as_str(data))
        data = _as_dict(data)
        return cls(
            url=_as_str(data.get("url")),
            id=_as_str(data.get("id")),
            page_id=_as_str(data.get("pageId")),
        )


@dataclass
class ClientRef:
    """Client summary embedded in an order group."""
    id: Optional[str] = None
    name: str = ""
    website: Optional[str] = None

    @classmethod
    def from_api(cls, data: Any) -> "ClientRef":
        data = _as_dict(data)
        return cls(
            id=_as_str(data.get("id")),
            name=_as_str(data.get("name")) or "",
            website=_as_str(data.get("website")),
        )


@dataclass
class OrderGroup:
    """
    One client within an order.

    Slot i (0 <= i < link_count) is defined by target_pages[i] and
    anchor_texts[i]. Both lists may be shorter than link_count; the slot then
    has no target page or no anchor text.
    """
    id: str
    client_id: Optional[str] = None
    client: ClientRef = field(default_factory=ClientRef)
    link_count: int = 0
    target_pages: List[TargetPage] = field(default_factory=list)
    anchor_texts: List[Optional[str]] = field(default_factory=list)
    package_type: Optional[str] = None
    package_price: Optional[float] = None
    bulk_analysis_project_id: Optional[str] = None
    group_status: Optional[str] = None

    def target_url_at(self, index: int) -> Optional[str]:
        if 0 <= index < len(self.target_pages):
            return self.target_pages[index].url
        return None

    def anchor_text_at(self, index: int) -> Optional[str]:
        if 0 <= index < len(self.anchor_texts):
            return self.anchor_texts[index]
        return None

    @property
    def slot_target_urls(self) -> List[Optional[str]]:
        """Target URL of every slot, in slot order."""
        return [self.target_url_at(i) for i in range(self.link_count)]

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "OrderGroup":
        data = _as_dict(data)
        package_price = data.get("packagePrice")
        return cls(
            id=_as_str(data.get("id")) or "",
            client_id=_as_str(data.get("clientId")),
            client=ClientRef.from_api(data.get("client")),
            link_count=max(_as_int(data.get("linkCount"), 0), 0),
            target_pages=[TargetPage.from_api(p) for p in _as_list(data.get("targetPages"))],
            anchor_texts=[_as_str(a) for a in _as_list(data.get("anchorTexts"))],
            package_type=_as_str(data.get("packageType")),
            package_price=_as_float(package_price) if package_price is not None else None,
            bulk_analysis_project_id=_as_str(data.get("bulkAnalysisProjectId")),
            group_status=_as_str(data.get("groupStatus")),
        )


# =============================================================================
# SITE SUBMISSIONS
# =============================================================================


@dataclass
class Evidence:
    """Keyword overlap evidence gathered during analysis."""
    direct_count: int = 0
    direct_median_position: Optional[float] = None
    related_count: int = 0
    related_median_position: Optional[float] = None

    @property
    def total(self) -> int:
        return self.direct_count + self.related_count

    @classmethod
    def from_api(cls, data: Any) -> Optional["Evidence"]:
        if not isinstance(data, dict):
            return None
        direct_median = data.get("direct_median_position")
        related_median = data.get("related_median_position")
        return cls(
            direct_count=_as_int(data.get("direct_count"), 0),
            direct_median_position=_as_float(direct_median) if direct_median is not None else None,
            related_count=_as_int(data.get("related_count"), 0),
            related_median_position=_as_float(related_median) if related_median is not None else None,
        )


# camelCase wire key -> attribute name
_METADATA_FIELDS = {
    "targetPageUrl": "target_page_url",
    "anchorText": "anchor_text",
    "specialInstructions": "special_instructions",
    "qualificationStatus": "qualification_status",
    "overlapStatus": "overlap_status",
    "authorityDirect": "authority_direct",
    "authorityRelated": "authority_related",
    "topicScope": "topic_scope",
    "aiReasoning": "ai_reasoning",
}


@dataclass
class SubmissionMetadata:
    """
    Typed extension record for a submission.

    Known keys get attributes; anything else lands in `extra` untouched.
    """
    target_page_url: Optional[str] = None
    anchor_text: Optional[str] = None
    special_instructions: Optional[str] = None
    qualification_status: Optional[str] = None
    overlap_status: Optional[str] = None  # direct, related, both, none
    authority_direct: Optional[str] = None  # strong, moderate, weak, n/a
    authority_related: Optional[str] = None
    topic_scope: Optional[str] = None  # short_tail, long_tail, ultra_long_tail
    ai_reasoning: Optional[str] = None
    evidence: Optional[Evidence] = None
    has_dataforseo_results: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: Any) -> "SubmissionMetadata":
        data = _as_dict(data)
        values: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in data.items():
            if key in _METADATA_FIELDS:
                values[_METADATA_FIELDS[key]] = _as_str(value)
            elif key == "evidence":
                values["evidence"] = Evidence.from_api(value)
            elif key == "hasDataForSeoResults":
                values["has_dataforseo_results"] = bool(value)
            else:
                extra[key] = value
        return cls(extra=extra, **values)


@dataclass
class SubmissionDomain:
    """Domain record nested in a submission (may carry analysis signals)."""
    id: Optional[str] = None
    domain: str = ""
    qualification_status: Optional[str] = None
    notes: Optional[str] = None
    overlap_status: Optional[str] = None
    authority_direct: Optional[str] = None
    authority_related: Optional[str] = None
    evidence: Optional[Evidence] = None
    has_dataforseo_results: bool = False

    @classmethod
    def from_api(cls, data: Any) -> Optional["SubmissionDomain"]:
        if not isinstance(data, dict):
            return None
        return cls(
            id=_as_str(data.get("id")),
            domain=_as_str(data.get("domain")) or "",
            qualification_status=_as_str(data.get("qualificationStatus")),
            notes=_as_str(data.get("notes")),
            overlap_status=_as_str(data.get("overlapStatus")),
            authority_direct=_as_str(data.get("authorityDirect")),
            authority_related=_as_str(data.get("authorityRelated")),
            evidence=Evidence.from_api(data.get("evidence")),
            has_dataforseo_results=bool(data.get("hasDataForSeoResults")),
        )


@dataclass
class SiteSubmission:
    """
    A candidate website suggested for one order group.

    The wire format carries duplicated fields (targetPageUrl vs
    metadata.targetPageUrl, status vs submissionStatus). The canonical
    properties below resolve them once so nothing downstream has to.
    """
    id: str
    order_group_id: Optional[str] = None
    domain_id: Optional[str] = None
    domain: Optional[SubmissionDomain] = None
    price: float = 0.0
    status: str = SubmissionStatus.PENDING.value
    submission_status: Optional[str] = None
    target_page_url: Optional[str] = None
    anchor_text: Optional[str] = None
    selection_pool: Optional[str] = None
    pool_rank: Optional[int] = None
    metadata: SubmissionMetadata = field(default_factory=SubmissionMetadata)
    domain_rating: Optional[int] = None
    traffic: Optional[int] = None
    client_review_notes: Optional[str] = None

    @property
    def assigned_target_url(self) -> Optional[str]:
        """Target page this submission is assigned to, if any."""
        return self.target_page_url or self.metadata.target_page_url

    @property
    def is_assigned(self) -> bool:
        return self.assigned_target_url is not None

    @property
    def review_status(self) -> str:
        """Canonical review status."""
        return self.submission_status or self.status or SubmissionStatus.PENDING.value

    @property
    def effective_anchor_text(self) -> Optional[str]:
        return self.anchor_text or self.metadata.anchor_text

    @property
    def rank(self) -> int:
        """Pool rank with the default applied (0 and missing both mean 1)."""
        return self.pool_rank or DEFAULT_POOL_RANK

    @property
    def is_primary(self) -> bool:
        return self.selection_pool == SelectionPool.PRIMARY.value

    @property
    def is_alternative(self) -> bool:
        return self.selection_pool == SelectionPool.ALTERNATIVE.value

    @property
    def is_client_rejected(self) -> bool:
        return self.review_status == SubmissionStatus.CLIENT_REJECTED.value

    @property
    def domain_name(self) -> str:
        return self.domain.domain if self.domain else ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "SiteSubmission":
        data = _as_dict(data)
        return cls(
            id=_as_str(data.get("id")) or "",
            order_group_id=_as_str(data.get("orderGroupId")),
            domain_id=_as_str(data.get("domainId")),
            domain=SubmissionDomain.from_api(data.get("domain")),
            price=_as_float(data.get("price")),
            status=_as_str(data.get("status")) or SubmissionStatus.PENDING.value,
            submission_status=_as_str(data.get("submissionStatus")),
            target_page_url=_as_str(data.get("targetPageUrl")),
            anchor_text=_as_str(data.get("anchorText")),
            selection_pool=_as_str(data.get("selectionPool")),
            pool_rank=_as_int(data.get("poolRank")),
            metadata=SubmissionMetadata.from_api(data.get("metadata")),
            domain_rating=_as_int(data.get("domainRating")),
            traffic=_as_int(data.get("traffic")),
            client_review_notes=_as_str(data.get("clientReviewNotes")),
        )


def parse_submissions(items: Any) -> List[SiteSubmission]:
    """Parse a list of submission payloads, skipping entries that are not objects."""
    return [SiteSubmission.from_api(item) for item in _as_list(items) if isinstance(item, dict)]


def parse_groups(items: Any) -> List[OrderGroup]:
    """Parse a list of order group payloads, skipping entries that are not objects."""
    return [OrderGroup.from_api(item) for item in _as_list(items) if isinstance(item, dict)]

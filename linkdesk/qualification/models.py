"""
Bulk analysis domain models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set


def _as_int(value: Any, default: int = 0) -> int:
    """Lenient int coercion for wire values ("n/a", Infinity and None read as `default`)."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


class QualificationStatus(str, Enum):
    PENDING = "pending"
    HIGH_QUALITY = "high_quality"
    AVERAGE_QUALITY = "average_quality"
    DISQUALIFIED = "disqualified"

    @classmethod
    def parse(cls, value: Any) -> "QualificationStatus":
        """Parse a wire value; unknown or empty values read as pending."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.PENDING


@dataclass
class TargetPageKeywords:
    """A client target page with its comma-separated keyword list."""
    id: str
    url: str = ""
    keywords: str = ""

    @property
    def keyword_list(self) -> List[str]:
        return [k.strip() for k in (self.keywords or "").split(",") if k.strip()]

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "TargetPageKeywords":
        return cls(
            id=str(data.get("id") or ""),
            url=data.get("url") or "",
            keywords=data.get("keywords") or "",
        )


@dataclass
class BulkAnalysisDomain:
    """A candidate domain under qualification for one client."""
    id: str
    client_id: str
    domain: str
    qualification_status: QualificationStatus = QualificationStatus.PENDING
    keyword_count: int = 0
    has_dataforseo_results: bool = False
    ai_qualification_reasoning: Optional[str] = None
    ai_qualified_at: Optional[str] = None
    was_manually_qualified: bool = False
    was_human_verified: bool = False
    target_page_ids: Set[str] = field(default_factory=set)
    notes: Optional[str] = None
    checked_by: Optional[str] = None
    checked_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.qualification_status == QualificationStatus.PENDING

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "BulkAnalysisDomain":
        return cls(
            id=str(data.get("id") or ""),
            client_id=str(data.get("clientId") or ""),
            domain=data.get("domain") or "",
            qualification_status=QualificationStatus.parse(data.get("qualificationStatus")),
            keyword_count=_as_int(data.get("keywordCount")),
            has_dataforseo_results=bool(data.get("hasDataForSeoResults")),
            ai_qualification_reasoning=data.get("aiQualificationReasoning"),
            ai_qualified_at=data.get("aiQualifiedAt"),
            was_manually_qualified=bool(data.get("wasManuallyQualified")),
            was_human_verified=bool(data.get("wasHumanVerified")),
            target_page_ids={str(i) for i in (data.get("targetPageIds") or []) if i is not None},
            notes=data.get("notes"),
            checked_by=data.get("checkedBy"),
        )

"""
DataForSEO result summaries and Ahrefs explorer links.
"""

import json
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence
from urllib.parse import quote

from .models import BulkAnalysisDomain, TargetPageKeywords, _as_int

AHREFS_ORGANIC_KEYWORDS_URL = "https://app.ahrefs.com/v2-site-explorer/organic-keywords"
AHREFS_MAX_KEYWORDS = 50
DEFAULT_POSITION_RANGE = "1-100"


@dataclass
class RankedKeyword:
    keyword: str
    position: int
    search_volume: int
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keyword": self.keyword,
            "position": self.position,
            "searchVolume": self.search_volume,
            "url": self.url,
        }


@dataclass
class DataForSeoSummary:
    total_rankings: int = 0
    avg_position: float = 0.0
    top_keywords: List[RankedKeyword] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRankings": self.total_rankings,
            "avgPosition": round(self.avg_position, 1),
            "topKeywords": [k.to_dict() for k in self.top_keywords],
        }


def summarize_dataforseo_results(
    results: Optional[Iterable[Dict[str, Any]]],
    top_n: int = 5,
) -> DataForSeoSummary:
    """
    Summarize stored ranking rows for one domain.

    Rows are used in the order the API returns them; the first `top_n` become
    top_keywords. Rows without a numeric position do not count toward the average.
    """
    rows = [r for r in (results or []) if isinstance(r, dict)]
    if not rows:
        return DataForSeoSummary()

    positions = []
    for row in rows:
        try:
            position = float(row.get("position"))
        except (TypeError, ValueError):
            continue
        if math.isfinite(position):
            positions.append(position)

    top = [
        RankedKeyword(
            keyword=row.get("keyword") or "",
            position=_as_int(row.get("position")),
            search_volume=_as_int(row.get("searchVolume")),
            url=row.get("url") or "",
        )
        for row in rows[:top_n]
    ]

    return DataForSeoSummary(
        total_rankings=len(rows),
        avg_position=sum(positions) / len(positions) if positions else 0.0,
        top_keywords=top,
    )


def build_ahrefs_url(
    domain: str,
    keywords: Sequence[str] = (),
    position_range: str = DEFAULT_POSITION_RANGE,
) -> str:
    """Ahrefs organic-keywords explorer URL for a domain, filtered to keywords."""
    clean = domain.strip()
    for prefix in ("https://", "http://"):
        if clean.startswith(prefix):
            clean = clean[len(prefix):]
    clean = clean.rstrip("/")
    target = quote(f"https://{clean}/", safe="")

    positions = f"&positions={position_range}" if position_range != DEFAULT_POSITION_RANGE else ""

    if not keywords:
        return f"{AHREFS_ORGANIC_KEYWORDS_URL}?target={target}{positions}"

    batch = ", ".join(list(keywords)[:AHREFS_MAX_KEYWORDS])
    rules = quote(json.dumps([["contains", "all"], batch, "any"], separators=(",", ":")), safe="")
    return f"{AHREFS_ORGANIC_KEYWORDS_URL}?keywordRules={rules}&target={target}{positions}"


def collect_keywords(
    domain: BulkAnalysisDomain,
    target_pages: Iterable[TargetPageKeywords],
    manual_keywords: Optional[str] = None,
) -> List[str]:
    """
    Keywords to check a domain against.

    Manual comma-separated keywords win when given. Otherwise the keywords of
    the domain's target pages are merged, keeping first-seen order.
    """
    if manual_keywords and manual_keywords.strip():
        return [k.strip() for k in manual_keywords.split(",") if k.strip()]

    seen = {}
    for page in target_pages:
        if page.id not in domain.target_page_ids:
            continue
        for keyword in page.keyword_list:
            seen.setdefault(keyword, None)
    return list(seen)

"""
Bulk analysis domain qualification.
"""

from .models import BulkAnalysisDomain, QualificationStatus, TargetPageKeywords
from .state import (
    SOURCE_AI,
    SOURCE_DROPDOWN,
    SOURCE_KEYBOARD,
    SOURCE_MANUAL,
    InvalidTransitionError,
    apply_status,
    can_transition,
)
from .keyboard import QUALIFY_KEYS, QualificationKeyboard
from .dataforseo import (
    DataForSeoSummary,
    RankedKeyword,
    build_ahrefs_url,
    collect_keywords,
    summarize_dataforseo_results,
)
from .service import QualificationService

__all__ = [
    "BulkAnalysisDomain",
    "QualificationStatus",
    "TargetPageKeywords",
    "SOURCE_AI",
    "SOURCE_DROPDOWN",
    "SOURCE_KEYBOARD",
    "SOURCE_MANUAL",
    "InvalidTransitionError",
    "apply_status",
    "can_transition",
    "QUALIFY_KEYS",
    "QualificationKeyboard",
    "DataForSeoSummary",
    "RankedKeyword",
    "build_ahrefs_url",
    "collect_keywords",
    "summarize_dataforseo_results",
    "QualificationService",
]

"""
Order Review Reconciliation

Pure functions that map a pool of site submissions onto an order's link slots.

Usage:
    from linkdesk.reconciliation import parse_groups, parse_submissions, reconcile_order

    groups = parse_groups(order["orderGroups"])
    pools = {g.id: parse_submissions(raw[g.id]) for g in groups}

    for resolved in reconcile_order(groups, pools):
        for slot in resolved.slots:
            print(slot.index, slot.display_submission, len(slot.available))
"""

from .models import (
    ClientRef,
    Evidence,
    OrderGroup,
    SelectionPool,
    SiteSubmission,
    SubmissionDomain,
    SubmissionMetadata,
    SubmissionStatus,
    TargetPage,
    parse_groups,
    parse_submissions,
)
from .indexer import PoolIndex, index_pool, matches_target
from .resolver import (
    DataIssue,
    DataIssueKind,
    GroupCounts,
    ResolvedGroup,
    ResolvedSlot,
    reconcile_group,
    reconcile_order,
    resolve_slots,
)
from .badges import (
    Badge,
    SubmissionSignals,
    authority_badge,
    domain_qualification_badge,
    evidence_summary,
    overlap_badge,
    qualification_stars,
    submission_signals,
    submission_status_badge,
)

__all__ = [
    # Models
    "ClientRef",
    "Evidence",
    "OrderGroup",
    "SelectionPool",
    "SiteSubmission",
    "SubmissionDomain",
    "SubmissionMetadata",
    "SubmissionStatus",
    "TargetPage",
    "parse_groups",
    "parse_submissions",
    # Indexer
    "PoolIndex",
    "index_pool",
    "matches_target",
    # Resolver
    "DataIssue",
    "DataIssueKind",
    "GroupCounts",
    "ResolvedGroup",
    "ResolvedSlot",
    "reconcile_group",
    "reconcile_order",
    "resolve_slots",
    # Badges
    "Badge",
    "SubmissionSignals",
    "authority_badge",
    "domain_qualification_badge",
    "evidence_summary",
    "overlap_badge",
    "qualification_stars",
    "submission_signals",
    "submission_status_badge",
]

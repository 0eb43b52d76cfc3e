"""
Slot Resolver

Turns a group and its submission pool into one resolved slot per requested
link. Each slot gets a display submission (or None) and the list of valid
alternates. The resolver never raises on malformed data; defects are
collected as DataIssue records instead.

Slot-to-primary mapping:
    Slots that share a target URL are numbered by occurrence (0, 1, 2...).
    The k-th slot for a URL displays the k-th ranked primary for that URL.
    With one primary per distinct target this is simply "the primary for my
    target"; with N slots on one target it fills them in rank order.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .indexer import index_pool, unassigned_submissions
from .models import OrderGroup, SiteSubmission, SubmissionStatus

logger = logging.getLogger(__name__)


class DataIssueKind(str, Enum):
    """Data-quality defects the resolver tolerates."""
    DUPLICATE_PRIMARY = "duplicate_primary"
    EMPTY_SLOT = "empty_slot"
    LINK_COUNT_MISMATCH = "link_count_mismatch"
    ORPHANED_SUBMISSION = "orphaned_submission"


@dataclass
class DataIssue:
    kind: DataIssueKind
    detail: str
    slot_index: Optional[int] = None
    submission_id: Optional[str] = None


@dataclass
class ResolvedSlot:
    """One requested link and the candidates that can fill it."""
    group_id: str
    index: int
    target_page_url: Optional[str]
    anchor_text: Optional[str]
    display_submission: Optional[SiteSubmission]
    available: List[SiteSubmission] = field(default_factory=list)
    matching: List[SiteSubmission] = field(default_factory=list)
    primary: List[SiteSubmission] = field(default_factory=list)

    @property
    def alternates(self) -> List[SiteSubmission]:
        """Available candidates other than the one on display."""
        display_id = self.display_submission.id if self.display_submission else None
        return [s for s in self.available if s.id != display_id]

    @property
    def is_empty(self) -> bool:
        return self.display_submission is None and not self.available


@dataclass
class GroupCounts:
    approved: int = 0
    pending: int = 0
    rejected: int = 0


@dataclass
class ResolvedGroup:
    """Reconciled view of one order group."""
    group: OrderGroup
    submissions: List[SiteSubmission]
    slots: List[ResolvedSlot]
    unassigned: List[SiteSubmission]
    orphaned: List[SiteSubmission]
    show_pool_view: bool
    counts: GroupCounts
    data_issues: List[DataIssue] = field(default_factory=list)

    @property
    def slot_assignments(self) -> Dict[int, Optional[str]]:
        """Explicit slot index -> displayed submission id mapping."""
        return {
            slot.index: slot.display_submission.id if slot.display_submission else None
            for slot in self.slots
        }

    def find_submission(self, submission_id: str) -> Optional[SiteSubmission]:
        for submission in self.submissions:
            if submission.id == submission_id:
                return submission
        return None

    def slot_for_submission(self, submission: SiteSubmission) -> Optional[ResolvedSlot]:
        """First slot whose target matches the submission's assignment."""
        for slot in self.slots:
            if slot.target_page_url == submission.assigned_target_url:
                return slot
        return None


def resolve_slots(
    group: OrderGroup,
    group_submissions: Optional[Sequence[SiteSubmission]],
) -> List[ResolvedSlot]:
    """
    Resolve every link slot of a group.

    Args:
        group: The order group (link_count drives the slot count)
        group_submissions: Submissions for this group (None is treated as empty)

    Returns:
        One ResolvedSlot per index in range(group.link_count)
    """
    submissions = list(group_submissions or [])
    occurrences: Counter = Counter()
    slots: List[ResolvedSlot] = []

    for index in range(max(group.link_count, 0)):
        target_url = group.target_url_at(index)
        pool = index_pool(submissions, target_url)

        occurrence = occurrences[target_url]
        occurrences[target_url] += 1
        display = pool.primary[occurrence] if occurrence < len(pool.primary) else None

        slots.append(ResolvedSlot(
            group_id=group.id,
            index=index,
            target_page_url=target_url,
            anchor_text=group.anchor_text_at(index),
            display_submission=display,
            available=pool.available,
            matching=pool.matching,
            primary=pool.primary,
        ))

    return slots


def count_statuses(submissions: Iterable[SiteSubmission]) -> GroupCounts:
    counts = GroupCounts()
    for submission in submissions:
        status = submission.review_status
        if status == SubmissionStatus.CLIENT_APPROVED.value:
            counts.approved += 1
        elif status == SubmissionStatus.PENDING.value:
            counts.pending += 1
        elif status == SubmissionStatus.CLIENT_REJECTED.value:
            counts.rejected += 1
    return counts


def _find_data_issues(
    group: OrderGroup,
    submissions: List[SiteSubmission],
    slots: List[ResolvedSlot],
    orphaned: List[SiteSubmission],
) -> List[DataIssue]:
    issues: List[DataIssue] = []

    if len(group.target_pages) != group.link_count:
        issues.append(DataIssue(
            kind=DataIssueKind.LINK_COUNT_MISMATCH,
            detail=f"linkCount={group.link_count} but {len(group.target_pages)} target pages",
        ))

    slots_per_target = Counter(slot.target_page_url for slot in slots)
    seen_targets = set()
    for slot in slots:
        if slot.is_empty:
            issues.append(DataIssue(
                kind=DataIssueKind.EMPTY_SLOT,
                detail=f"No submissions for slot {slot.index}",
                slot_index=slot.index,
            ))
        if slot.target_page_url in seen_targets:
            continue
        seen_targets.add(slot.target_page_url)
        if len(slot.primary) > slots_per_target[slot.target_page_url]:
            issues.append(DataIssue(
                kind=DataIssueKind.DUPLICATE_PRIMARY,
                detail=(
                    f"{len(slot.primary)} primary submissions for "
                    f"{slot.target_page_url or 'unassigned target'}"
                ),
                slot_index=slot.index,
            ))

    for submission in orphaned:
        issues.append(DataIssue(
            kind=DataIssueKind.ORPHANED_SUBMISSION,
            detail=f"Assigned to {submission.assigned_target_url}, which matches no slot",
            submission_id=submission.id,
        ))

    return issues


def reconcile_group(
    group: OrderGroup,
    group_submissions: Optional[Sequence[SiteSubmission]],
) -> ResolvedGroup:
    """Resolve slots, pools, counts and data issues for one group."""
    submissions = list(group_submissions or [])
    slots = resolve_slots(group, submissions)

    slot_targets = {slot.target_page_url for slot in slots}
    orphaned = [
        s for s in submissions
        if s.is_assigned and s.assigned_target_url not in slot_targets
    ]
    unassigned = unassigned_submissions(submissions)

    issues = _find_data_issues(group, submissions, slots, orphaned)
    if issues:
        logger.debug(f"Group {group.id}: {len(issues)} data issues")

    return ResolvedGroup(
        group=group,
        submissions=submissions,
        slots=slots,
        unassigned=unassigned,
        orphaned=orphaned,
        show_pool_view=len(submissions) > group.link_count or bool(unassigned),
        counts=count_statuses(submissions),
        data_issues=issues,
    )


def reconcile_order(
    order_groups: Sequence[OrderGroup],
    submissions_by_group: Optional[Mapping[str, Sequence[SiteSubmission]]],
) -> List[ResolvedGroup]:
    """Reconcile every group of an order against its submission pool."""
    submissions_by_group = submissions_by_group or {}
    return [
        reconcile_group(group, submissions_by_group.get(group.id))
        for group in order_groups
    ]

"""
Submission Pool Indexer

Partitions one group's submissions for a single slot target:
- matching: assigned to the slot's target page
- primary: matching, in the primary pool, not rejected, ranked
- unassigned: no target page at all (the group's shared pool)
- available: matching + unassigned, minus client-rejected

Pure and stable: input order is preserved everywhere except the rank sort,
which is itself stable.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .models import SiteSubmission


@dataclass
class PoolIndex:
    """Partition of a group's submissions relative to one target page."""
    target_page_url: Optional[str]
    matching: List[SiteSubmission] = field(default_factory=list)
    primary: List[SiteSubmission] = field(default_factory=list)
    unassigned: List[SiteSubmission] = field(default_factory=list)
    available: List[SiteSubmission] = field(default_factory=list)

    @property
    def alternatives(self) -> List[SiteSubmission]:
        """Available submissions tagged as alternatives."""
        return [s for s in self.available if s.is_alternative]


def matches_target(submission: SiteSubmission, target_page_url: Optional[str]) -> bool:
    """
    True when the submission belongs to the given target.

    A slot with no target page compares equal to a submission with no
    assignment, so untargeted slots draw from the unassigned pool.
    """
    return submission.assigned_target_url == target_page_url


def unassigned_submissions(group_submissions: Sequence[SiteSubmission]) -> List[SiteSubmission]:
    return [s for s in group_submissions if not s.is_assigned]


def rank_primaries(submissions: Sequence[SiteSubmission]) -> List[SiteSubmission]:
    """Primary-pool, non-rejected submissions ordered by pool rank."""
    primaries = [s for s in submissions if s.is_primary and not s.is_client_rejected]
    return sorted(primaries, key=lambda s: s.rank)


def index_pool(
    group_submissions: Optional[Sequence[SiteSubmission]],
    target_page_url: Optional[str],
) -> PoolIndex:
    """
    Index a group's submissions for one slot target.

    Args:
        group_submissions: All submissions for the group (None is treated as empty)
        target_page_url: The slot's target page URL, or None for an untargeted slot

    Returns:
        PoolIndex with matching, primary, unassigned and available lists
    """
    submissions = list(group_submissions or [])

    matching = [s for s in submissions if matches_target(s, target_page_url)]
    unassigned = unassigned_submissions(submissions)

    available = [
        s for s in submissions
        if (matches_target(s, target_page_url) or not s.is_assigned)
        and not s.is_client_rejected
    ]

    return PoolIndex(
        target_page_url=target_page_url,
        matching=matching,
        primary=rank_primaries(matching),
        unassigned=unassigned,
        available=available,
    )

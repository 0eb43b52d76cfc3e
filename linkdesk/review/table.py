"""
Review Table State and Row View Models

Holds the review table's UI state (which groups are expanded, which slot's
editing panel is open) and turns reconciled groups into row view models.

At most one editing panel is open at a time. Escape and clicks outside the
panel close it; both are ignored while no panel is open.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

from linkdesk.reconciliation import (
    Badge,
    GroupCounts,
    ResolvedGroup,
    ResolvedSlot,
    SiteSubmission,
    authority_badge,
    evidence_summary,
    overlap_badge,
    qualification_stars,
    submission_signals,
    submission_status_badge,
)

NO_SITES_PLACEHOLDER = "No sites available"

COLUMN_HEADERS: Dict[str, str] = {
    "client": "Client / Target Page",
    "anchor": "Anchor Text",
    "link_details": "Link Details",
    "site": "Guest Post Site",
    "price": "Price",
    "status": "Status",
    "content_status": "Content Status",
    "draft_url": "Draft URL",
    "published_url": "Published URL",
    "completion": "Completion",
    "tools": "Internal Tools",
}


@dataclass
class TablePermissions:
    can_assign_target_pages: bool = False
    can_switch_pools: bool = False
    can_approve_reject: bool = False
    can_view_internal_tools: bool = False
    can_view_pricing: bool = False
    can_edit_domain_assignments: bool = False

    @classmethod
    def for_reviewer(cls, reviewer: str) -> "TablePermissions":
        """Default permissions for a client or internal reviewer."""
        if reviewer == "internal":
            return cls(
                can_assign_target_pages=True,
                can_switch_pools=True,
                can_approve_reject=True,
                can_view_internal_tools=True,
                can_view_pricing=True,
                can_edit_domain_assignments=True,
            )
        return cls(can_switch_pools=True, can_approve_reject=True, can_view_pricing=True)


@dataclass(frozen=True)
class PanelClosed:
    pass


@dataclass(frozen=True)
class PanelOpen:
    group_id: str
    index: int


Panel = Union[PanelClosed, PanelOpen]


@dataclass
class Column:
    key: str
    header: str


@dataclass
class SubmissionCell:
    submission_id: str
    domain: str
    status_badge: Badge
    selection_pool: Optional[str]
    pool_rank: int
    price: Optional[float]
    domain_rating: Optional[int]
    traffic: Optional[int]
    suggested_for_other: bool = False
    # Analysis signals
    qualification: Optional[Badge] = None
    overlap: Optional[Badge] = None
    authority: List[Badge] = field(default_factory=list)
    evidence: str = ""
    has_dataforseo_results: bool = False


@dataclass
class SlotRow:
    group_id: str
    index: int
    target_page_url: Optional[str]
    anchor_text: Optional[str]
    display: Optional[SubmissionCell]
    alternates: List[SubmissionCell]
    placeholder: Optional[str]
    is_editing: bool

    @property
    def alternates_count(self) -> int:
        return len(self.alternates)


@dataclass
class GroupRow:
    group_id: str
    client_name: str
    link_count: int
    sites_suggested: int
    counts: GroupCounts
    expanded: bool
    slots: List[SlotRow] = field(default_factory=list)
    pool: List[SubmissionCell] = field(default_factory=list)
    show_pool_view: bool = False

    @property
    def links_label(self) -> str:
        return f"{self.link_count} link{'s' if self.link_count != 1 else ''} needed"

    @property
    def suggested_label(self) -> str:
        return f"{self.sites_suggested} site{'s' if self.sites_suggested != 1 else ''} suggested"


def _cell(
    submission: SiteSubmission,
    permissions: TablePermissions,
    slot_target: Optional[str] = None,
) -> SubmissionCell:
    suggested = submission.metadata.target_page_url
    signals = submission_signals(submission)
    authority = [
        badge for badge in (
            authority_badge("direct", signals.authority_direct),
            authority_badge("related", signals.authority_related),
        )
        if badge is not None
    ]
    return SubmissionCell(
        submission_id=submission.id,
        domain=submission.domain_name,
        status_badge=submission_status_badge(submission.review_status),
        selection_pool=submission.selection_pool,
        pool_rank=submission.rank,
        price=submission.price if permissions.can_view_pricing else None,
        domain_rating=submission.domain_rating,
        traffic=submission.traffic,
        suggested_for_other=bool(suggested) and suggested != slot_target,
        qualification=qualification_stars(signals.qualification_status),
        overlap=overlap_badge(signals.overlap_status),
        authority=authority,
        evidence=evidence_summary(signals.evidence),
        has_dataforseo_results=signals.has_dataforseo_results,
    )


class ReviewTableState:
    """Expand/collapse and editing-panel state for one review table."""

    def __init__(
        self,
        group_ids: Iterable[str],
        workflow_stage: str = "site_selection_with_sites",
        permissions: Optional[TablePermissions] = None,
    ):
        # Every group starts expanded
        self.expanded_groups = set(group_ids)
        self.workflow_stage = workflow_stage
        self.permissions = permissions or TablePermissions()
        self.panel: Panel = PanelClosed()

    # ------------------------------------------------------------------
    # Expand / collapse
    # ------------------------------------------------------------------

    def toggle_group(self, group_id: str) -> bool:
        """Flip a group's expanded flag. Returns the new value."""
        if group_id in self.expanded_groups:
            self.expanded_groups.discard(group_id)
            return False
        self.expanded_groups.add(group_id)
        return True

    def is_expanded(self, group_id: str) -> bool:
        return group_id in self.expanded_groups

    # ------------------------------------------------------------------
    # Editing panel
    # ------------------------------------------------------------------

    @property
    def is_panel_open(self) -> bool:
        return isinstance(self.panel, PanelOpen)

    def open_panel(self, group_id: str, index: int) -> None:
        self.panel = PanelOpen(group_id, index)

    def close_panel(self) -> None:
        self.panel = PanelClosed()

    def is_editing(self, group_id: str, index: int) -> bool:
        return self.panel == PanelOpen(group_id, index)

    def handle_key(self, key: str) -> bool:
        """Returns True if the key closed the panel."""
        if not self.is_panel_open or key != "Escape":
            return False
        self.close_panel()
        return True

    def handle_click(self, inside_panel: bool = False) -> bool:
        """Returns True if the click closed the panel."""
        if not self.is_panel_open or inside_panel:
            return False
        self.close_panel()
        return True

    # ------------------------------------------------------------------
    # Columns and rows
    # ------------------------------------------------------------------

    def columns(self) -> List[Column]:
        tools = ["tools"] if self.permissions.can_view_internal_tools else []
        stage = self.workflow_stage

        if stage in ("site_selection_with_sites", "post_approval"):
            keys = ["client", "link_details", "site", "status"] + tools
        elif stage == "content_creation":
            keys = ["client", "link_details", "site", "content_status", "draft_url"] + tools
        elif stage == "completed":
            keys = ["client", "link_details", "site", "published_url", "completion"]
        else:
            price = ["price"] if self.permissions.can_view_pricing else []
            keys = ["client", "anchor"] + price + tools

        return [Column(key, COLUMN_HEADERS.get(key, key)) for key in keys]

    def build_rows(self, resolved_groups: Iterable[ResolvedGroup]) -> List[GroupRow]:
        rows = []
        for resolved in resolved_groups:
            group = resolved.group
            row = GroupRow(
                group_id=group.id,
                client_name=group.client.name,
                link_count=group.link_count,
                sites_suggested=len(resolved.submissions),
                counts=resolved.counts,
                expanded=self.is_expanded(group.id),
                slots=[self._slot_row(slot) for slot in resolved.slots],
                show_pool_view=resolved.show_pool_view,
            )
            if resolved.show_pool_view:
                row.pool = [_cell(s, self.permissions) for s in resolved.unassigned]
            rows.append(row)
        return rows

    def _slot_row(self, slot: ResolvedSlot) -> SlotRow:
        display = slot.display_submission
        alternates = slot.alternates
        return SlotRow(
            group_id=slot.group_id,
            index=slot.index,
            target_page_url=slot.target_page_url,
            anchor_text=slot.anchor_text,
            display=_cell(display, self.permissions, slot.target_page_url) if display else None,
            alternates=[_cell(s, self.permissions, slot.target_page_url) for s in alternates],
            placeholder=NO_SITES_PLACEHOLDER if display is None and not alternates else None,
            is_editing=self.is_editing(slot.group_id, slot.index),
        )

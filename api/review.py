"""
API Endpoints for Order Review

Handles:
1. Review table view model for an order
2. Reviewer mutations (assign, switch pool, approve, reject)
3. Line item, order state and order delete
4. Outbound call log for an order

Every mutation is fire-and-refetch: the response is the refreshed review
view, with the outcome in `notices`.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from linkdesk.client import OrderAPIClient, OrderAPIError
from linkdesk.database import get_recent_calls
from linkdesk.reconciliation import Badge, DataIssue
from linkdesk.review import (
    REVIEWER_CLIENT,
    GroupRow,
    InvalidMutationError,
    Notice,
    OperationInProgressError,
    OrderNotFoundError,
    ReviewController,
    ReviewTableState,
    RowStateRegistry,
    SlotRow,
    SubmissionCell,
    SubmissionNotFoundError,
    TablePermissions,
)

from api.dependencies import get_order_client

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/orders",
    tags=["Review"],
)

ORDER_LIST_PATH = "/orders"

# Per-row operation state outlives the per-request controllers
row_registry = RowStateRegistry()


# =============================================================================
# REQUEST / RESPONSE MODELS
# =============================================================================

class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class BadgeResponse(BaseModel):
    label: str
    color: str


class SubmissionCellResponse(BaseModel):
    submission_id: str
    domain: str
    status: BadgeResponse
    selection_pool: Optional[str] = None
    pool_rank: int
    price: Optional[float] = None
    domain_rating: Optional[int] = None
    traffic: Optional[int] = None
    suggested_for_other: bool = False
    qualification: Optional[BadgeResponse] = None
    overlap: Optional[BadgeResponse] = None
    authority: List[BadgeResponse] = Field(default_factory=list)
    evidence: str = ""
    has_dataforseo_results: bool = False


class SlotRowResponse(BaseModel):
    index: int
    target_page_url: Optional[str] = None
    anchor_text: Optional[str] = None
    display: Optional[SubmissionCellResponse] = None
    alternates: List[SubmissionCellResponse]
    alternates_count: int
    placeholder: Optional[str] = None
    is_editing: bool = False


class CountsResponse(BaseModel):
    approved: int
    pending: int
    rejected: int


class GroupRowResponse(BaseModel):
    group_id: str
    client_name: str
    link_count: int
    links_label: str
    sites_suggested: int
    suggested_label: str
    counts: CountsResponse
    expanded: bool
    slots: List[SlotRowResponse]
    show_pool_view: bool
    pool: List[SubmissionCellResponse]
    slot_assignments: dict


class DataIssueResponse(BaseModel):
    group_id: str
    kind: str
    detail: str
    slot_index: Optional[int] = None
    submission_id: Optional[str] = None


class ColumnResponse(BaseModel):
    key: str
    header: str


class NoticeResponse(BaseModel):
    level: str
    message: str
    row_key: Optional[str] = None


class ReviewResponse(BaseModel):
    """Review table view model for one order."""
    order_id: str
    order_status: Optional[str] = None
    order_state: Optional[str] = None
    workflow_stage: str
    reviewer: str
    columns: List[ColumnResponse]
    groups: List[GroupRowResponse]
    data_issues: List[DataIssueResponse]
    notices: List[NoticeResponse] = Field(default_factory=list)
    row_states: dict = Field(default_factory=dict)


class AssignRequest(CamelModel):
    target_page_url: str = Field(..., min_length=1, alias="targetPageUrl")
    anchor_text: Optional[str] = Field(default=None, alias="anchorText")


class RejectRequest(BaseModel):
    reason: Optional[str] = None


class LineItemUpdateRequest(BaseModel):
    status: Optional[str] = None
    notes: Optional[str] = None


class StateTransitionRequest(BaseModel):
    state: str = Field(..., min_length=1)


class DeleteOrderResponse(BaseModel):
    order_id: str
    deleted: bool
    notices: List[NoticeResponse]


# =============================================================================
# SERIALIZATION
# =============================================================================

def _badge(badge: Optional[Badge]) -> Optional[BadgeResponse]:
    return BadgeResponse(label=badge.label, color=badge.color) if badge else None


def _cell(cell: SubmissionCell) -> SubmissionCellResponse:
    return SubmissionCellResponse(
        submission_id=cell.submission_id,
        domain=cell.domain,
        status=_badge(cell.status_badge),
        selection_pool=cell.selection_pool,
        pool_rank=cell.pool_rank,
        price=cell.price,
        domain_rating=cell.domain_rating,
        traffic=cell.traffic,
        suggested_for_other=cell.suggested_for_other,
        qualification=_badge(cell.qualification),
        overlap=_badge(cell.overlap),
        authority=[_badge(b) for b in cell.authority],
        evidence=cell.evidence,
        has_dataforseo_results=cell.has_dataforseo_results,
    )


def _slot(row: SlotRow) -> SlotRowResponse:
    return SlotRowResponse(
        index=row.index,
        target_page_url=row.target_page_url,
        anchor_text=row.anchor_text,
        display=_cell(row.display) if row.display else None,
        alternates=[_cell(c) for c in row.alternates],
        alternates_count=row.alternates_count,
        placeholder=row.placeholder,
        is_editing=row.is_editing,
    )


def _issue(group_id: str, issue: DataIssue) -> DataIssueResponse:
    return DataIssueResponse(
        group_id=group_id,
        kind=issue.kind.value,
        detail=issue.detail,
        slot_index=issue.slot_index,
        submission_id=issue.submission_id,
    )


def _notice(notice: Notice) -> NoticeResponse:
    return NoticeResponse(level=notice.level, message=notice.message, row_key=notice.row_key)


def build_review_response(controller: ReviewController, workflow_stage: str) -> ReviewResponse:
    table = ReviewTableState(
        [g.id for g in controller.groups],
        workflow_stage=workflow_stage,
        permissions=TablePermissions.for_reviewer(controller.reviewer),
    )
    rows: List[GroupRow] = table.build_rows(controller.resolved)
    assignments = {r.group.id: r.slot_assignments for r in controller.resolved}

    groups = [
        GroupRowResponse(
            group_id=row.group_id,
            client_name=row.client_name,
            link_count=row.link_count,
            links_label=row.links_label,
            sites_suggested=row.sites_suggested,
            suggested_label=row.suggested_label,
            counts=CountsResponse(
                approved=row.counts.approved,
                pending=row.counts.pending,
                rejected=row.counts.rejected,
            ),
            expanded=row.expanded,
            slots=[_slot(s) for s in row.slots],
            show_pool_view=row.show_pool_view,
            pool=[_cell(c) for c in row.pool],
            slot_assignments=assignments.get(row.group_id, {}),
        )
        for row in rows
    ]

    return ReviewResponse(
        order_id=controller.order_id,
        order_status=controller.order.get("status"),
        order_state=controller.order.get("state"),
        workflow_stage=workflow_stage,
        reviewer=controller.reviewer,
        columns=[{"key": c.key, "header": c.header} for c in table.columns()],
        groups=groups,
        data_issues=[
            _issue(r.group.id, issue) for r in controller.resolved for issue in r.data_issues
        ],
        notices=[_notice(n) for n in controller.notices],
        row_states={k: v.value for k, v in controller.row_states.items()},
    )


# =============================================================================
# HELPERS
# =============================================================================

def _redirect_to_order_list() -> HTTPException:
    return HTTPException(status_code=307, detail="Order not found", headers={"Location": ORDER_LIST_PATH})


def _is_missing_order(error: Exception) -> bool:
    return isinstance(error, OrderAPIError) and error.status_code == 404


async def _load_controller(order_id: str, client: OrderAPIClient, reviewer: str) -> ReviewController:
    try:
        controller = ReviewController(
            order_id, client, reviewer=reviewer, row_states=row_registry.for_order(order_id)
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        await controller.load()
    except OrderNotFoundError:
        logger.warning(f"Order {order_id} has no id in payload, redirecting to order list")
        raise _redirect_to_order_list()
    except (OrderAPIError, httpx.HTTPError, asyncio.TimeoutError) as e:
        if _is_missing_order(e):
            logger.warning(f"Order {order_id} not found upstream, redirecting to order list")
            raise _redirect_to_order_list()
        logger.error(f"Failed to load order {order_id}: {e}")
        raise HTTPException(status_code=502, detail=f"Failed to load order: {e}")
    return controller


async def _run_mutation(action: Callable[[], Awaitable[Any]]) -> None:
    """Translate controller errors into HTTP errors."""
    try:
        await action()
    except SubmissionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (InvalidMutationError, OperationInProgressError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except OrderNotFoundError:
        raise _redirect_to_order_list()
    except (OrderAPIError, httpx.HTTPError, asyncio.TimeoutError) as e:
        if _is_missing_order(e):
            raise _redirect_to_order_list()
        # The mutation went through but the refetch did not
        logger.error(f"Refetch after mutation failed: {e}")
        raise HTTPException(status_code=502, detail=f"Failed to reload order: {e}")


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/{order_id}/review", response_model=ReviewResponse)
async def get_review(
    order_id: str,
    workflow_stage: str = Query(default="site_selection_with_sites"),
    reviewer: str = Query(default=REVIEWER_CLIENT),
    client: OrderAPIClient = Depends(get_order_client),
):
    """Reconciled review table for an order."""
    controller = await _load_controller(order_id, client, reviewer)
    return build_review_response(controller, workflow_stage)


@router.post(
    "/{order_id}/groups/{group_id}/submissions/{submission_id}/assign",
    response_model=ReviewResponse,
)
async def assign_target_page(
    order_id: str,
    group_id: str,
    submission_id: str,
    request: AssignRequest,
    workflow_stage: str = Query(default="site_selection_with_sites"),
    reviewer: str = Query(default=REVIEWER_CLIENT),
    client: OrderAPIClient = Depends(get_order_client),
):
    controller = await _load_controller(order_id, client, reviewer)
    await _run_mutation(lambda: controller.assign_target_page(
        submission_id, request.target_page_url, group_id, request.anchor_text
    ))
    return build_review_response(controller, workflow_stage)


@router.post(
    "/{order_id}/groups/{group_id}/submissions/{submission_id}/switch-pool",
    response_model=ReviewResponse,
)
async def switch_pool(
    order_id: str,
    group_id: str,
    submission_id: str,
    workflow_stage: str = Query(default="site_selection_with_sites"),
    reviewer: str = Query(default=REVIEWER_CLIENT),
    client: OrderAPIClient = Depends(get_order_client),
):
    """Make an alternative the primary for its slot."""
    controller = await _load_controller(order_id, client, reviewer)
    await _run_mutation(lambda: controller.switch_pool(submission_id, group_id))
    return build_review_response(controller, workflow_stage)


@router.post(
    "/{order_id}/groups/{group_id}/submissions/{submission_id}/approve",
    response_model=ReviewResponse,
)
async def approve_submission(
    order_id: str,
    group_id: str,
    submission_id: str,
    workflow_stage: str = Query(default="site_selection_with_sites"),
    reviewer: str = Query(default=REVIEWER_CLIENT),
    client: OrderAPIClient = Depends(get_order_client),
):
    controller = await _load_controller(order_id, client, reviewer)
    await _run_mutation(lambda: controller.approve(submission_id, group_id))
    return build_review_response(controller, workflow_stage)


@router.post(
    "/{order_id}/groups/{group_id}/submissions/{submission_id}/reject",
    response_model=ReviewResponse,
)
async def reject_submission(
    order_id: str,
    group_id: str,
    submission_id: str,
    request: RejectRequest,
    workflow_stage: str = Query(default="site_selection_with_sites"),
    reviewer: str = Query(default=REVIEWER_CLIENT),
    client: OrderAPIClient = Depends(get_order_client),
):
    controller = await _load_controller(order_id, client, reviewer)
    await _run_mutation(lambda: controller.reject(submission_id, group_id, request.reason))
    return build_review_response(controller, workflow_stage)


@router.patch("/{order_id}/line-items/{item_id}", response_model=ReviewResponse)
async def update_line_item(
    order_id: str,
    item_id: str,
    request: LineItemUpdateRequest,
    workflow_stage: str = Query(default="site_selection_with_sites"),
    reviewer: str = Query(default=REVIEWER_CLIENT),
    client: OrderAPIClient = Depends(get_order_client),
):
    controller = await _load_controller(order_id, client, reviewer)
    await _run_mutation(lambda: controller.update_line_item(item_id, request.status, request.notes))
    return build_review_response(controller, workflow_stage)


@router.post("/{order_id}/state", response_model=ReviewResponse)
async def transition_state(
    order_id: str,
    request: StateTransitionRequest,
    workflow_stage: str = Query(default="site_selection_with_sites"),
    reviewer: str = Query(default=REVIEWER_CLIENT),
    client: OrderAPIClient = Depends(get_order_client),
):
    controller = await _load_controller(order_id, client, reviewer)
    await _run_mutation(lambda: controller.transition_state(request.state))
    return build_review_response(controller, workflow_stage)


@router.delete("/{order_id}", response_model=DeleteOrderResponse)
async def delete_order(
    order_id: str,
    client: OrderAPIClient = Depends(get_order_client),
):
    controller = ReviewController(order_id, client, row_states=row_registry.for_order(order_id))
    try:
        deleted = await controller.delete_order()
    except OperationInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if deleted:
        row_registry.discard(order_id)

    return DeleteOrderResponse(
        order_id=order_id,
        deleted=deleted,
        notices=[_notice(n) for n in controller.notices],
    )


@router.get("/{order_id}/calls")
def get_order_calls(
    order_id: str,
    limit: int = Query(default=50, ge=1, le=500),
):
    """Recent outbound Order API calls made for this order."""
    calls = get_recent_calls(order_id=order_id, limit=limit)
    return {"order_id": order_id, "calls": calls, "total": len(calls)}

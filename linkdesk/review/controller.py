"""
Review Controller

Loads an order and its submission pools, reconciles them, and runs reviewer
mutations against the Order API with fire-and-refetch semantics:

1. Check the precondition against the current in-memory state
2. Send the mutation and await the acknowledgement
3. Refetch the whole order and replace local state wholesale

Nothing is applied locally before the server acknowledges, so a failed
mutation needs no rollback. Operation state is tracked per row, so
mutations on different rows may run concurrently.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import httpx

from linkdesk.client import OrderAPIClient, OrderAPIError
from linkdesk.reconciliation import (
    OrderGroup,
    ResolvedGroup,
    SiteSubmission,
    SubmissionStatus,
    parse_groups,
    parse_submissions,
    reconcile_order,
)

from .errors import (
    InvalidMutationError,
    OperationInProgressError,
    OrderNotFoundError,
    SubmissionNotFoundError,
)

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 15.0

REVIEWER_CLIENT = "client"
REVIEWER_INTERNAL = "internal"

# Request failures the controller turns into error notices
_REQUEST_ERRORS = (OrderAPIError, httpx.HTTPError, asyncio.TimeoutError)


class RowState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"


@dataclass
class Notice:
    """User-facing outcome of an operation."""
    level: str  # success, error
    message: str
    row_key: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)


class RowStateRegistry:
    """
    Row state maps keyed by order id.

    The review service builds a controller per request. Handing each one the
    order's shared map keeps a loading row busy across requests.
    """

    def __init__(self):
        self._orders: Dict[str, Dict[str, RowState]] = {}

    def for_order(self, order_id: str) -> Dict[str, RowState]:
        return self._orders.setdefault(order_id, {})

    def discard(self, order_id: str) -> None:
        self._orders.pop(order_id, None)

    def clear(self) -> None:
        self._orders.clear()


class ReviewController:
    """
    Async controller for one order's review table.

    Usage:
        async with OrderAPIClient.from_settings() as client:
            controller = ReviewController("order-123", client)
            await controller.load()
            await controller.approve("sub-1", "group-1")
            for notice in controller.notices:
                print(notice.level, notice.message)
    """

    def __init__(
        self,
        order_id: str,
        client: OrderAPIClient,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        reviewer: str = REVIEWER_CLIENT,
        on_panel_close: Optional[Callable[[], None]] = None,
        row_states: Optional[Dict[str, RowState]] = None,
    ):
        if reviewer not in (REVIEWER_CLIENT, REVIEWER_INTERNAL):
            raise ValueError(f"Unknown reviewer: {reviewer}")

        self.order_id = order_id
        self.client = client
        self.request_timeout = request_timeout
        self.reviewer = reviewer
        self.on_panel_close = on_panel_close

        self.order: Dict[str, Any] = {}
        self.groups: List[OrderGroup] = []
        self.submissions_by_group: Dict[str, List[SiteSubmission]] = {}
        self.resolved: List[ResolvedGroup] = []

        # Loads are numbered when they start; an older load never replaces a newer one
        self._load_generation = 0
        self._applied_generation = 0

        # Controllers serving the same order share one map (see RowStateRegistry)
        self.row_states: Dict[str, RowState] = row_states if row_states is not None else {}
        self.notices: List[Notice] = []

    # ========================================================================
    # LOADING
    # ========================================================================

    async def load(self) -> List[ResolvedGroup]:
        """
        Fetch the order and every group's submissions, then reconcile.

        Raises:
            OrderNotFoundError: The order payload has no id
            OrderAPIError: A fetch failed
        """
        self._load_generation += 1
        generation = self._load_generation

        order = await self._bounded(self.client.get_order(self.order_id))
        if not isinstance(order, dict) or not order.get("id"):
            raise OrderNotFoundError(self.order_id)

        groups = parse_groups(order.get("orderGroups"))
        pools = await asyncio.gather(*[
            self._bounded(self.client.get_group_submissions(self.order_id, group.id))
            for group in groups
        ])

        if generation < self._applied_generation:
            logger.debug(
                f"Discarding load {generation} of order {self.order_id}: "
                f"load {self._applied_generation} already applied"
            )
            return self.resolved

        # Replace wholesale, never merge
        self._applied_generation = generation
        self.order = order
        self.groups = groups
        self.submissions_by_group = {
            group.id: parse_submissions(raw) for group, raw in zip(groups, pools)
        }
        self.resolved = reconcile_order(self.groups, self.submissions_by_group)

        logger.debug(
            f"Loaded order {self.order_id}: {len(groups)} groups, "
            f"{sum(len(s) for s in self.submissions_by_group.values())} submissions"
        )
        return self.resolved

    async def _bounded(self, awaitable: Awaitable) -> Any:
        return await asyncio.wait_for(awaitable, timeout=self.request_timeout)

    # ========================================================================
    # LOOKUPS
    # ========================================================================

    def get_group(self, group_id: str) -> Optional[ResolvedGroup]:
        for resolved in self.resolved:
            if resolved.group.id == group_id:
                return resolved
        return None

    def find_submission(self, submission_id: str, group_id: str) -> Tuple[ResolvedGroup, SiteSubmission]:
        resolved = self.get_group(group_id)
        submission = resolved.find_submission(submission_id) if resolved else None
        if submission is None:
            raise SubmissionNotFoundError(submission_id, group_id)
        return resolved, submission

    def is_busy(self, row_key: str) -> bool:
        return self.row_states.get(row_key) == RowState.LOADING

    def row_state(self, row_key: str) -> RowState:
        return self.row_states.get(row_key, RowState.IDLE)

    @property
    def errors(self) -> List[Notice]:
        return [n for n in self.notices if n.level == "error"]

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    async def assign_target_page(
        self,
        submission_id: str,
        target_page_url: str,
        group_id: str,
        anchor_text: Optional[str] = None,
    ) -> bool:
        """Assign a submission to a target page ("Assign" in the pool view)."""
        if not target_page_url:
            raise InvalidMutationError("A target page URL is required")

        _, submission = self.find_submission(submission_id, group_id)
        if submission.assigned_target_url == target_page_url:
            raise InvalidMutationError(
                f"Submission {submission_id} is already assigned to {target_page_url}"
            )

        ok = await self._mutate(
            submission_id,
            "assign target page",
            lambda: self.client.assign_target_page(
                self.order_id, group_id, submission_id, target_page_url, anchor_text
            ),
            success_message=f"Assigned {submission.domain_name or submission_id} to {target_page_url}",
        )
        if ok and self.on_panel_close is not None:
            self.on_panel_close()
        return ok

    async def switch_pool(self, submission_id: str, group_id: str) -> bool:
        """Promote an alternative to primary ("Make Primary")."""
        resolved, submission = self.find_submission(submission_id, group_id)
        if not submission.is_alternative:
            raise InvalidMutationError(
                f"Submission {submission_id} is not in the alternative pool"
            )

        slot = resolved.slot_for_submission(submission)
        target_primary_id = None
        if slot is not None and slot.display_submission is not None:
            target_primary_id = slot.display_submission.id

        return await self._mutate(
            submission_id,
            "switch pool",
            lambda: self.client.switch_pool(
                self.order_id, group_id, submission_id, target_primary_id
            ),
            success_message="Switched to primary",
        )

    async def approve(self, submission_id: str, group_id: str) -> bool:
        status = self._terminal_status(approved=True)
        _, submission = self.find_submission(submission_id, group_id)
        if submission.review_status == status:
            logger.debug(f"Submission {submission_id} already {status}, skipping")
            return True

        return await self._mutate(
            submission_id,
            "approve submission",
            lambda: self.client.update_submission(
                self.order_id, group_id, submission_id, {"status": status}
            ),
            success_message="Submission approved",
        )

    async def reject(self, submission_id: str, group_id: str, reason: Optional[str] = None) -> bool:
        """Reject a submission. The row stays; it is never deleted."""
        status = self._terminal_status(approved=False)
        self.find_submission(submission_id, group_id)

        return await self._mutate(
            submission_id,
            "reject submission",
            lambda: self.client.update_submission(
                self.order_id, group_id, submission_id, {"status": status, "notes": reason}
            ),
            success_message="Submission rejected",
        )

    async def update_line_item(
        self,
        item_id: str,
        status: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> bool:
        updates = {k: v for k, v in {"status": status, "notes": notes}.items() if v is not None}
        if not updates:
            raise InvalidMutationError("Nothing to update")

        return await self._mutate(
            f"line-item:{item_id}",
            "update line item",
            lambda: self.client.update_line_item(self.order_id, item_id, updates),
            success_message="Line item updated",
        )

    async def transition_state(self, state: str) -> bool:
        if not state:
            raise InvalidMutationError("A target state is required")
        return await self._mutate(
            f"order:{self.order_id}",
            "update order state",
            lambda: self.client.transition_state(self.order_id, state),
            success_message=f"Order moved to {state}",
        )

    async def delete_order(self) -> bool:
        """Delete the order. There is nothing left to refetch afterwards."""
        return await self._mutate(
            f"order:{self.order_id}",
            "delete order",
            lambda: self.client.delete_order(self.order_id),
            success_message="Order deleted",
            refetch=False,
        )

    def _terminal_status(self, approved: bool) -> str:
        if self.reviewer == REVIEWER_INTERNAL:
            return (SubmissionStatus.APPROVED if approved else SubmissionStatus.REJECTED).value
        return (
            SubmissionStatus.CLIENT_APPROVED if approved else SubmissionStatus.CLIENT_REJECTED
        ).value

    async def _mutate(
        self,
        row_key: str,
        action: str,
        send: Callable[[], Awaitable[Any]],
        success_message: str,
        refetch: bool = True,
    ) -> bool:
        """
        Run one mutation with per-row state and fire-and-refetch.

        Returns:
            True if the server acknowledged, False if the request failed

        Raises:
            OperationInProgressError: The row already has a request in flight
            OrderAPIError: The mutation succeeded but the refetch failed
        """
        if self.is_busy(row_key):
            raise OperationInProgressError(row_key)

        self.row_states[row_key] = RowState.LOADING
        try:
            await self._bounded(send())
        except _REQUEST_ERRORS as e:
            message = str(e) or "request timed out"
            logger.error(f"Failed to {action} ({row_key}) on order {self.order_id}: {message}")
            self.row_states[row_key] = RowState.ERROR
            self.notices.append(Notice("error", f"Failed to {action}: {message}", row_key))
            return False
        except BaseException:
            self.row_states[row_key] = RowState.IDLE
            raise

        self.row_states[row_key] = RowState.IDLE
        self.notices.append(Notice("success", success_message, row_key))
        logger.info(f"Order {self.order_id}: {action} ({row_key}) succeeded")

        if refetch:
            await self.load()
        return True

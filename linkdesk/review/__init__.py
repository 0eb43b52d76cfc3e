"""
Order review: mutations with fire-and-refetch, and the review table view models.
"""

from .errors import (
    ReviewError,
    OrderNotFoundError,
    SubmissionNotFoundError,
    InvalidMutationError,
    OperationInProgressError,
)
from .controller import (
    DEFAULT_REQUEST_TIMEOUT,
    REVIEWER_CLIENT,
    REVIEWER_INTERNAL,
    Notice,
    ReviewController,
    RowState,
    RowStateRegistry,
)
from .table import (
    NO_SITES_PLACEHOLDER,
    Column,
    GroupRow,
    PanelClosed,
    PanelOpen,
    ReviewTableState,
    SlotRow,
    SubmissionCell,
    TablePermissions,
)

__all__ = [
    "ReviewError",
    "OrderNotFoundError",
    "SubmissionNotFoundError",
    "InvalidMutationError",
    "OperationInProgressError",
    "DEFAULT_REQUEST_TIMEOUT",
    "REVIEWER_CLIENT",
    "REVIEWER_INTERNAL",
    "Notice",
    "ReviewController",
    "RowState",
    "RowStateRegistry",
    "NO_SITES_PLACEHOLDER",
    "Column",
    "GroupRow",
    "PanelClosed",
    "PanelOpen",
    "ReviewTableState",
    "SlotRow",
    "SubmissionCell",
    "TablePermissions",
]

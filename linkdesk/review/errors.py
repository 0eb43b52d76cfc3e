"""Exceptions raised by the review controller."""


class ReviewError(Exception):
    """Base class for review workflow errors."""


class OrderNotFoundError(ReviewError):
    """The order payload is missing or has no id."""

    def __init__(self, order_id: str):
        super().__init__(f"Order not found: {order_id}")
        self.order_id = order_id


class SubmissionNotFoundError(ReviewError):
    def __init__(self, submission_id: str, group_id: str = None):
        where = f" in group {group_id}" if group_id else ""
        super().__init__(f"Submission {submission_id} not found{where}")
        self.submission_id = submission_id
        self.group_id = group_id


class InvalidMutationError(ReviewError):
    """A mutation's precondition does not hold for the current state."""


class OperationInProgressError(ReviewError):
    """Another operation on the same row has not settled yet."""

    def __init__(self, row_key: str):
        super().__init__(f"Operation already in progress for {row_key}")
        self.row_key = row_key

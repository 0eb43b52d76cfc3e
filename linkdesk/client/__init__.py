"""Order API client."""

from .client import (
    CallRecord,
    OrderAPIClient,
    OrderAPIError,
    RetryConfig,
)

__all__ = [
    "CallRecord",
    "OrderAPIClient",
    "OrderAPIError",
    "RetryConfig",
]

"""
Shared FastAPI dependencies.
"""

from typing import AsyncGenerator

from linkdesk.client import OrderAPIClient
from linkdesk.database import record_call_async
from linkdesk.utils.config import get_settings


async def get_order_client() -> AsyncGenerator[OrderAPIClient, None]:
    """One Order API client per request, closed afterwards."""
    settings = get_settings()
    hook = record_call_async if settings.CALL_LOG_ENABLED else None
    client = OrderAPIClient.from_settings(call_hook=hook)
    try:
        yield client
    finally:
        await client.close()

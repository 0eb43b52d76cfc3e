"""
Database layer for the outbound call log.

Usage:
    from linkdesk.database import init_db, record_call_async

    init_db()
    client = OrderAPIClient.from_settings(call_hook=record_call_async)
"""

from .models import Base, APICallLog
from .session import (
    get_database_url,
    get_engine,
    get_db_context,
    init_db,
    check_db_connection,
    reset_engine,
)
from .repository import (
    classify_operation,
    extract_order_id,
    log_api_call,
    record_call,
    record_call_async,
    get_recent_calls,
)

__all__ = [
    "Base",
    "APICallLog",
    "get_database_url",
    "get_engine",
    "get_db_context",
    "init_db",
    "check_db_connection",
    "reset_engine",
    "classify_operation",
    "extract_order_id",
    "log_api_call",
    "record_call",
    "record_call_async",
    "get_recent_calls",
]

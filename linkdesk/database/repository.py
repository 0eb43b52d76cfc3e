"""
Repository Layer - Call Log Operations

Stores and retrieves the outbound Order API call log.
Logging is non-critical: failures are logged, never raised to the caller.
"""

import asyncio
import logging
import re
from typing import Any, Dict, List, Optional

from linkdesk.client import CallRecord

from .models import APICallLog
from .session import get_db_context

logger = logging.getLogger(__name__)

_ORDER_ID_PATTERN = re.compile(r"^/orders/(?!drafts(?:/|$))([^/?]+)")

# Last path segment -> operation name
_OPERATIONS = {
    "target-url": "assign_target_page",
    "switch": "switch_pool",
    "edit": "update_submission",
    "state": "transition_state",
    "submissions": "load_submissions",
    "check-analyzed": "check_analyzed",
    "results": "load_dataforseo_results",
    "analyze-dataforseo": "analyze_dataforseo",
}


def classify_operation(method: str, endpoint: str) -> str:
    """Name the operation behind a method + endpoint pair."""
    path = endpoint.split("?", 1)[0].rstrip("/")
    segments = [s for s in path.split("/") if s]
    last = segments[-1] if segments else ""

    if last in _OPERATIONS:
        return _OPERATIONS[last]
    if "line-items" in segments:
        return "update_line_item"
    if "drafts" in segments:
        return {"POST": "create_draft", "PUT": "update_draft"}.get(method, "list_drafts")
    if "bulk-analysis" in segments:
        return "update_domain_status"
    if segments[:1] == ["orders"] and len(segments) == 2:
        return {"GET": "load_order", "DELETE": "delete_order"}.get(method, "order")
    return f"{method.lower()}_other"


def extract_order_id(endpoint: str) -> Optional[str]:
    match = _ORDER_ID_PATTERN.match(endpoint)
    return match.group(1) if match else None


def log_api_call(
    operation: str,
    method: str,
    endpoint: str,
    request_payload: Optional[Dict[str, Any]] = None,
    http_status: Optional[int] = None,
    response_time_ms: int = 0,
    error_message: Optional[str] = None,
    order_id: Optional[str] = None,
) -> Optional[str]:
    """
    Log an Order API call for debugging and auditing.

    Returns:
        ID of the stored row, or None if logging failed
    """
    try:
        with get_db_context() as db:
            call = APICallLog(
                order_id=order_id,
                operation=operation,
                method=method,
                endpoint=endpoint,
                request_payload=request_payload,
                http_status=http_status,
                success=error_message is None,
                error_message=error_message,
                response_time_ms=response_time_ms,
            )
            db.add(call)
            db.flush()
            return call.id
    except Exception as e:
        logger.warning(f"Failed to log API call {method} {endpoint}: {e}")
        return None


def record_call(record: CallRecord) -> Optional[str]:
    """Call hook for OrderAPIClient: store a CallRecord."""
    return log_api_call(
        operation=classify_operation(record.method, record.endpoint),
        method=record.method,
        endpoint=record.endpoint,
        request_payload=record.request_payload,
        http_status=record.http_status,
        response_time_ms=record.response_time_ms,
        error_message=record.error_message,
        order_id=extract_order_id(record.endpoint),
    )


async def record_call_async(record: CallRecord) -> Optional[str]:
    """Async call hook: stores the record from a worker thread, off the event loop."""
    return await asyncio.to_thread(record_call, record)


def get_recent_calls(order_id: Optional[str] = None, limit: int = 50) -> List[Dict[str, Any]]:
    """Most recent calls first, optionally for one order."""
    with get_db_context() as db:
        query = db.query(APICallLog)
        if order_id:
            query = query.filter(APICallLog.order_id == order_id)
        calls = query.order_by(APICallLog.created_at.desc()).limit(limit).all()
        return [_call_to_dict(c) for c in calls]


def _call_to_dict(call: APICallLog) -> Dict[str, Any]:
    return {
        "id": call.id,
        "order_id": call.order_id,
        "operation": call.operation,
        "method": call.method,
        "endpoint": call.endpoint,
        "request_payload": call.request_payload,
        "http_status": call.http_status,
        "success": call.success,
        "error_message": call.error_message,
        "response_time_ms": call.response_time_ms,
        "created_at": call.created_at.isoformat() if call.created_at else None,
    }

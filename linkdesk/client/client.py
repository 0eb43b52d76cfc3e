"""
Order API Client

Async HTTP client for the Order, Bulk Analysis and Draft APIs with:
- Connection pooling
- Automatic retry with exponential backoff (idempotent methods only)
- Per-request timeout
- Optional call hook for the outbound call log
"""

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import httpx

from linkdesk.utils.config import get_settings

logger = logging.getLogger(__name__)

# POST is not retried: switch and analyze requests are not safe to repeat
_IDEMPOTENT_METHODS = {"GET", "PUT", "PATCH", "DELETE"}


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 2
    initial_delay: float = 0.5
    max_delay: float = 5.0
    exponential_base: float = 2.0
    retryable_status_codes: tuple = (429, 500, 502, 503, 504)


@dataclass
class CallRecord:
    """One completed outbound request, handed to the call hook."""
    method: str
    endpoint: str
    request_payload: Optional[Dict[str, Any]]
    http_status: Optional[int]
    response_time_ms: int
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error_message is None


class OrderAPIError(Exception):
    """Transport or API-level failure talking to the Order API."""
    def __init__(self, message: str, status_code: int = None, response: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


def _error_message(response: httpx.Response) -> str:
    """Pull the `error` field out of a failed response, if there is one."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"API request failed: {response.status_code}"


class OrderAPIClient:
    """
    Async client for the Order API.

    Usage:
        client = OrderAPIClient(base_url="https://app.example.com/api")

        order = await client.get_order("order-123")
        await client.assign_target_page("order-123", "group-1", "sub-9", "https://client.com/page")

        await client.close()
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        retry_config: Optional[RetryConfig] = None,
        max_connections: int = 20,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        call_hook: Optional[Callable[[CallRecord], Any]] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Order API root (e.g. "https://app.example.com/api")
            token: Optional bearer token
            retry_config: Retry configuration (optional)
            max_connections: Maximum concurrent connections
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests use httpx.MockTransport)
            call_hook: Called with a CallRecord after every request (awaited if it is a coroutine function)
        """
        self.base_url = base_url.rstrip("/")
        self.retry_config = retry_config or RetryConfig()
        self.call_hook = call_hook

        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(max_connections // 2, 1),
            ),
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

        self._closed = False

    @classmethod
    def from_settings(cls, **kwargs) -> "OrderAPIClient":
        """Build a client from application settings."""
        settings = get_settings()
        kwargs.setdefault("token", settings.ORDER_API_TOKEN)
        kwargs.setdefault("timeout", settings.API_TIMEOUT)
        kwargs.setdefault("retry_config", RetryConfig(max_retries=settings.API_MAX_RETRIES))
        return cls(base_url=settings.ORDER_API_BASE_URL, **kwargs)

    # ========================================================================
    # TRANSPORT
    # ========================================================================

    async def request(
        self,
        method: str,
        endpoint: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        retry: Optional[bool] = None,
    ) -> Any:
        """
        Make a request to the Order API.

        Args:
            method: HTTP method
            endpoint: Path relative to base_url (e.g. "/orders/123")
            json: JSON body
            params: Query parameters (None values are dropped)
            retry: Override the default retry policy for this method

        Returns:
            Parsed JSON body, or None for empty responses

        Raises:
            OrderAPIError: On transport failure or non-2xx response
        """
        if self._closed:
            raise OrderAPIError("Client is closed")

        method = method.upper()
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        if retry is None:
            retry = method in _IDEMPOTENT_METHODS

        if retry:
            return await self._request_with_retry(method, endpoint, json, params)
        return await self._make_request(method, endpoint, json, params)

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        json: Optional[Dict[str, Any]],
        params: Optional[Dict[str, Any]],
    ) -> Any:
        """Make a single HTTP request."""
        logger.debug(f"{method} {endpoint}")
        started = time.monotonic()
        status_code = None

        try:
            response = await self._client.request(method, endpoint, json=json, params=params)
            status_code = response.status_code

            if not response.is_success:
                raise OrderAPIError(
                    _error_message(response),
                    status_code=response.status_code,
                    response=response.text,
                )

            result = response.json() if response.content else None
            await self._record(method, endpoint, json, status_code, started)
            return result

        except OrderAPIError as e:
            await self._record(method, endpoint, json, status_code, started, str(e))
            raise
        except httpx.TimeoutException as e:
            await self._record(method, endpoint, json, status_code, started, f"timeout: {e}")
            raise
        except httpx.HTTPError as e:
            await self._record(method, endpoint, json, status_code, started, str(e))
            raise
        except ValueError as e:
            # Body was not JSON
            await self._record(method, endpoint, json, status_code, started, str(e))
            raise OrderAPIError(f"Invalid JSON response: {e}", status_code=status_code)

    async def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        json: Optional[Dict[str, Any]],
        params: Optional[Dict[str, Any]],
    ) -> Any:
        """Make request with automatic retry on failure."""
        last_exception = None
        delay = self.retry_config.initial_delay

        for attempt in range(self.retry_config.max_retries + 1):
            try:
                return await self._make_request(method, endpoint, json, params)

            except OrderAPIError as e:
                last_exception = e

                # Only retry listed status codes (429, 5xx)
                if e.status_code not in self.retry_config.retryable_status_codes:
                    raise

            except httpx.TimeoutException as e:
                last_exception = OrderAPIError(f"Request timed out: {e}")

            except httpx.HTTPError as e:
                last_exception = OrderAPIError(f"HTTP error: {e}")

            if attempt < self.retry_config.max_retries:
                logger.warning(
                    f"{method} {endpoint} failed (attempt {attempt + 1}/"
                    f"{self.retry_config.max_retries + 1}): {last_exception}. "
                    f"Retrying in {delay}s..."
                )
                await asyncio.sleep(delay)
                delay = min(
                    delay * self.retry_config.exponential_base,
                    self.retry_config.max_delay
                )

        raise last_exception

    async def _record(
        self,
        method: str,
        endpoint: str,
        payload: Optional[Dict[str, Any]],
        status_code: Optional[int],
        started: float,
        error_message: Optional[str] = None,
    ) -> None:
        if self.call_hook is None:
            return
        record = CallRecord(
            method=method,
            endpoint=endpoint,
            request_payload=payload,
            http_status=status_code,
            response_time_ms=int((time.monotonic() - started) * 1000),
            error_message=error_message,
        )
        try:
            result = self.call_hook(record)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            # The call log is non-critical
            logger.warning(f"Call hook failed for {method} {endpoint}: {e}")

    async def close(self):
        """Close the HTTP client."""
        if not self._closed:
            await self._client.aclose()
            self._closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ========================================================================
    # ORDERS
    # ========================================================================

    async def get_order(self, order_id: str) -> Dict[str, Any]:
        """Fetch an order with its embedded groups / line items."""
        result = await self.request("GET", f"/orders/{order_id}")
        # Some routes wrap the order as {"order": {...}}
        if isinstance(result, dict) and isinstance(result.get("order"), dict):
            return result["order"]
        return result or {}

    async def get_group_submissions(self, order_id: str, group_id: str) -> List[Dict[str, Any]]:
        """Fetch every site submission for one order group."""
        result = await self.request("GET", f"/orders/{order_id}/groups/{group_id}/submissions")
        if isinstance(result, dict):
            return result.get("submissions") or []
        return result or []

    async def assign_target_page(
        self,
        order_id: str,
        group_id: str,
        submission_id: str,
        target_page_url: str,
        anchor_text: Optional[str] = None,
    ) -> Any:
        return await self.request(
            "PATCH",
            f"/orders/{order_id}/groups/{group_id}/site-selections/{submission_id}/target-url",
            json={"targetPageUrl": target_page_url, "anchorText": anchor_text},
        )

    async def switch_pool(
        self,
        order_id: str,
        group_id: str,
        submission_id: str,
        target_primary_id: Optional[str] = None,
    ) -> Any:
        return await self.request(
            "POST",
            f"/orders/{order_id}/groups/{group_id}/site-selections/{submission_id}/switch",
            json={"targetPrimaryId": target_primary_id},
        )

    async def update_submission(
        self,
        order_id: str,
        group_id: str,
        submission_id: str,
        updates: Dict[str, Any],
    ) -> Any:
        return await self.request(
            "PATCH",
            f"/orders/{order_id}/groups/{group_id}/submissions/{submission_id}/edit",
            json=updates,
        )

    async def update_line_item(self, order_id: str, item_id: str, updates: Dict[str, Any]) -> Any:
        return await self.request("PATCH", f"/orders/{order_id}/line-items/{item_id}", json=updates)

    async def transition_state(self, order_id: str, state: str) -> Any:
        return await self.request("POST", f"/orders/{order_id}/state", json={"state": state})

    async def delete_order(self, order_id: str) -> Any:
        return await self.request("DELETE", f"/orders/{order_id}")

    # ========================================================================
    # BULK ANALYSIS
    # ========================================================================

    async def check_analyzed(self, client_id: str, domain_id: str) -> Dict[str, Any]:
        result = await self.request(
            "GET",
            f"/clients/{client_id}/bulk-analysis/dataforseo/check-analyzed",
            params={"domainId": domain_id},
        )
        return result or {}

    async def get_dataforseo_results(
        self,
        client_id: str,
        domain_id: str,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        result = await self.request(
            "GET",
            f"/clients/{client_id}/bulk-analysis/dataforseo/results",
            params={"domainId": domain_id, "limit": limit},
        )
        if isinstance(result, dict):
            return result.get("results") or []
        return result or []

    async def analyze_dataforseo(
        self,
        client_id: str,
        domain_id: str,
        domain: str,
        keywords: List[str],
        use_cache: bool = True,
    ) -> Dict[str, Any]:
        result = await self.request(
            "POST",
            f"/clients/{client_id}/bulk-analysis/analyze-dataforseo",
            json={
                "domainId": domain_id,
                "domain": domain,
                "keywords": keywords,
                "useCache": use_cache,
            },
        )
        return result or {}

    async def update_domain_status(
        self,
        client_id: str,
        domain_id: str,
        status: str,
        is_manual: bool = False,
        user_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Any:
        return await self.request(
            "PUT",
            f"/clients/{client_id}/bulk-analysis/{domain_id}",
            json={"status": status, "userId": user_id, "notes": notes, "isManual": is_manual},
        )

    # ========================================================================
    # DRAFTS
    # ========================================================================

    async def create_draft(self, order_data: Dict[str, Any]) -> Dict[str, Any]:
        result = await self.request("POST", "/orders/drafts", json={"orderData": order_data})
        return result or {}

    async def update_draft(self, draft_id: str, order_data: Dict[str, Any]) -> Dict[str, Any]:
        result = await self.request("PUT", f"/orders/drafts/{draft_id}", json={"orderData": order_data})
        return result or {}

    async def list_drafts(self) -> List[Dict[str, Any]]:
        result = await self.request("GET", "/orders/drafts")
        if isinstance(result, dict):
            return result.get("drafts") or []
        return result or []

"""
Pytest Configuration and Shared Fixtures

Provides an in-memory Order API (served through httpx.MockTransport),
payload builders, and common fixtures for all test modules.
"""

import asyncio
import copy
import json
from typing import Any, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio

from linkdesk.client import OrderAPIClient, RetryConfig

BASE_URL = "http://orders.test/api"


# ============================================================================
# Payload builders
# ============================================================================

def make_group(
    group_id: str = "group-1",
    link_count: int = 2,
    target_urls: Optional[List[str]] = None,
    anchor_texts: Optional[List[str]] = None,
    client_name: str = "Acme Outdoors",
) -> Dict[str, Any]:
    target_urls = ["/a", "/b"] if target_urls is None else target_urls
    return {
        "id": group_id,
        "clientId": "client-1",
        "client": {"id": "client-1", "name": client_name, "website": "https://acme.test"},
        "linkCount": link_count,
        "targetPages": [{"url": url} for url in target_urls],
        "anchorTexts": anchor_texts if anchor_texts is not None else ["best tents", "hiking boots"],
        "packageType": "better",
        "packagePrice": 279,
    }


def make_submission(
    submission_id: str,
    target_page_url: Optional[str] = None,
    selection_pool: Optional[str] = None,
    pool_rank: Optional[int] = None,
    submission_status: str = "pending",
    group_id: str = "group-1",
    **extra,
) -> Dict[str, Any]:
    payload = {
        "id": submission_id,
        "orderGroupId": group_id,
        "domainId": f"domain-{submission_id}",
        "domain": {"id": f"domain-{submission_id}", "domain": f"{submission_id}.example.com"},
        "price": 150,
        "status": "pending",
        "submissionStatus": submission_status,
        "targetPageUrl": target_page_url,
        "selectionPool": selection_pool,
        "poolRank": pool_rank,
        "metadata": {},
    }
    payload.update(extra)
    return payload


def scenario_submissions() -> List[Dict[str, Any]]:
    """s1 primary for /a, s2 primary for /b, s3 unassigned alternative."""
    return [
        make_submission("s1", "/a", "primary", 1),
        make_submission("s2", "/b", "primary", 1),
        make_submission("s3", None, "alternative"),
    ]


# ============================================================================
# In-memory Order API
# ============================================================================

class FakeOrderAPI:
    """
    Minimal stand-in for the Order API, served via httpx.MockTransport.

    Mutations change the stored payloads so a refetch sees them.
    """

    def __init__(self):
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.submissions: Dict[str, List[Dict[str, Any]]] = {}
        self.drafts: Dict[str, Dict[str, Any]] = {}
        self.domain_updates: List[Dict[str, Any]] = []
        self.line_item_updates: List[Dict[str, Any]] = []
        self.analyzed: Dict[str, bool] = {}
        self.dataforseo_results: Dict[str, List[Dict[str, Any]]] = {}
        self.requests: List[httpx.Request] = []
        self._failures: List[Dict[str, Any]] = []
        self._gates: Dict[str, asyncio.Event] = {}
        self._holds: List[Dict[str, Any]] = []

    # ---- setup helpers --------------------------------------------------

    def add_order(self, order_id: str, groups: List[Dict[str, Any]], **fields) -> None:
        self.orders[order_id] = {"id": order_id, "status": "pending_confirmation",
                                 "state": "sites_ready", "orderGroups": groups, **fields}

    def set_submissions(self, group_id: str, submissions: List[Dict[str, Any]]) -> None:
        self.submissions[group_id] = copy.deepcopy(submissions)

    def fail(self, method: str, path_suffix: str, status: int = 500,
             error: str = "Internal error", times: int = 1, after: int = 0) -> None:
        """Answer matching requests with an error, once the first `after` have passed."""
        self._failures.append({"method": method, "path": path_suffix, "status": status,
                               "error": error, "times": times, "skip": after})

    def gate(self, path_contains: str) -> asyncio.Event:
        """Hold matching requests until the returned event is set."""
        event = asyncio.Event()
        self._gates[path_contains] = event
        return event

    def hold_response(self, method: str, path_suffix: str, after: int = 0) -> asyncio.Event:
        """
        Answer one matching request now but deliver the answer late.

        The first `after` matches pass through; the next one is routed at once
        (so it reflects the state at that moment) and returned only once the
        event is set.
        """
        event = asyncio.Event()
        self._holds.append({"method": method, "path": path_suffix, "skip": after, "event": event})
        return event

    def submission(self, submission_id: str) -> Optional[Dict[str, Any]]:
        for items in self.submissions.values():
            for item in items:
                if item["id"] == submission_id:
                    return item
        return None

    def calls(self, method: str, path_contains: str = "") -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and path_contains in r.url.path]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    # ---- request handling -----------------------------------------------

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path[len("/api"):] if request.url.path.startswith("/api") else request.url.path

        for fragment, event in self._gates.items():
            if fragment in path:
                await event.wait()

        for failure in self._failures:
            if failure["times"] > 0 and failure["method"] == request.method and path.endswith(failure["path"]):
                if failure["skip"] > 0:
                    failure["skip"] -= 1
                    continue
                failure["times"] -= 1
                return httpx.Response(failure["status"], json={"error": failure["error"]})

        hold = self._take_hold(request.method, path)
        body = json.loads(request.content) if request.content else {}
        segments = [s for s in path.split("/") if s]
        response = self._route(request.method, segments, body, request.url.params)
        if hold is not None:
            await hold.wait()
        return response

    def _take_hold(self, method: str, path: str) -> Optional[asyncio.Event]:
        for hold in self._holds:
            if hold["method"] == method and path.endswith(hold["path"]):
                if hold["skip"] > 0:
                    hold["skip"] -= 1
                    continue
                self._holds.remove(hold)
                return hold["event"]
        return None

    def _route(self, method: str, seg: List[str], body: Dict[str, Any], params) -> httpx.Response:
        ok = httpx.Response(200, json={"success": True})
        not_found = httpx.Response(404, json={"error": "Not found"})

        if seg[:2] == ["orders", "drafts"]:
            if method == "GET":
                return httpx.Response(200, json={"drafts": list(self.drafts.values())})
            if method == "POST":
                draft_id = f"draft-{len(self.drafts) + 1}"
                self.drafts[draft_id] = {"id": draft_id, "orderData": body.get("orderData")}
                return httpx.Response(200, json={"draftId": draft_id})
            if method == "PUT" and len(seg) == 3 and seg[2] in self.drafts:
                self.drafts[seg[2]]["orderData"] = body.get("orderData")
                return ok
            return not_found

        if len(seg) >= 2 and seg[0] == "orders":
            order_id = seg[1]
            order = self.orders.get(order_id)
            if order is None:
                return not_found
            if len(seg) == 2:
                if method == "GET":
                    return httpx.Response(200, json={"order": order})
                if method == "DELETE":
                    del self.orders[order_id]
                    return ok
                return not_found
            if seg[2] == "state" and method == "POST":
                order["state"] = body.get("state")
                return ok
            if seg[2] == "line-items" and method == "PATCH":
                self.line_item_updates.append({"id": seg[3], **body})
                return ok
            if seg[2] == "groups":
                return self._route_group(method, seg[3], seg[4:], body)
            return not_found

        if len(seg) >= 4 and seg[0] == "clients" and seg[2] == "bulk-analysis":
            client_id = seg[1]
            rest = seg[3:]
            if rest == ["dataforseo", "check-analyzed"]:
                domain_id = params.get("domainId")
                return httpx.Response(200, json={"analyzed": self.analyzed.get(domain_id, False),
                                                 "lastAnalyzed": "2024-05-01T10:00:00Z"})
            if rest == ["dataforseo", "results"]:
                results = self.dataforseo_results.get(params.get("domainId"), [])
                limit = params.get("limit")
                if limit:
                    results = results[:int(limit)]
                return httpx.Response(200, json={"results": results})
            if rest == ["analyze-dataforseo"] and method == "POST":
                self.analyzed[body["domainId"]] = True
                return httpx.Response(200, json={"success": True, "keywordsAnalyzed": len(body["keywords"])})
            if len(rest) == 1 and method == "PUT":
                self.domain_updates.append({"clientId": client_id, "domainId": rest[0], **body})
                return ok

        return not_found

    def _route_group(self, method: str, group_id: str, rest: List[str], body: Dict[str, Any]) -> httpx.Response:
        items = self.submissions.setdefault(group_id, [])
        if rest == ["submissions"] and method == "GET":
            return httpx.Response(200, json={"submissions": copy.deepcopy(items)})

        submission = self.submission(rest[1]) if len(rest) > 1 else None
        if submission is None:
            return httpx.Response(404, json={"error": "Submission not found"})

        action = rest[-1]
        if action == "target-url" and method == "PATCH":
            submission["targetPageUrl"] = body.get("targetPageUrl")
            if body.get("anchorText"):
                submission["anchorText"] = body["anchorText"]
        elif action == "switch" and method == "POST":
            previous = self.submission(body["targetPrimaryId"]) if body.get("targetPrimaryId") else None
            rank = previous.get("poolRank") if previous else 1
            if previous:
                previous["selectionPool"] = "alternative"
            submission["selectionPool"] = "primary"
            submission["poolRank"] = rank
        elif action == "edit" and method == "PATCH":
            submission["submissionStatus"] = body.get("status")
            if body.get("notes"):
                submission["clientReviewNotes"] = body["notes"]
        else:
            return httpx.Response(404, json={"error": "Not found"})
        return httpx.Response(200, json={"success": True})


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def group_payload() -> Dict[str, Any]:
    return make_group()


@pytest.fixture
def submission_payloads() -> List[Dict[str, Any]]:
    return scenario_submissions()


@pytest.fixture
def fake_api() -> FakeOrderAPI:
    """Order API with one order (order-1) holding the two-slot scenario group."""
    api = FakeOrderAPI()
    api.add_order("order-1", [make_group()])
    api.set_submissions("group-1", scenario_submissions())
    return api


@pytest_asyncio.fixture
async def order_client(fake_api):
    client = OrderAPIClient(
        base_url=BASE_URL,
        transport=fake_api.transport(),
        retry_config=RetryConfig(max_retries=0),
    )
    yield client
    await client.close()


@pytest.fixture
def sqlite_db(tmp_path, monkeypatch):
    """Fresh SQLite call log database for one test."""
    from linkdesk.database import init_db, reset_engine

    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("POSTGRES_URL", raising=False)
    monkeypatch.setenv("SQLITE_PATH", str(tmp_path / "calls.db"))
    reset_engine()
    init_db()
    yield
    reset_engine()


# ============================================================================
# Test Markers
# ============================================================================

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests that exercise the service end to end"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )

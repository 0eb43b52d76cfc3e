"""
Draft Order Autosave

Trailing debounce over draft edits: every `schedule()` re-arms one timer and
only the latest payload is saved once edits stop for `delay` seconds.
The first save creates the draft, later saves update it by id.
Saves are serialized; at most one request is in flight per autosaver.
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx

from linkdesk.client import OrderAPIClient, OrderAPIError
from linkdesk.utils.config import get_settings

logger = logging.getLogger(__name__)

DEFAULT_AUTOSAVE_DELAY = 2.0


class SaveStatus(str, Enum):
    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


def _draft_id(result: Dict[str, Any]) -> Optional[str]:
    """The create endpoint answers {draftId}, {id} or {draft: {id}}."""
    if not isinstance(result, dict):
        return None
    draft = result.get("draft") if isinstance(result.get("draft"), dict) else {}
    value = result.get("draftId") or result.get("id") or draft.get("id")
    return str(value) if value else None


class DraftAutosaver:
    """
    Usage:
        saver = DraftAutosaver(client)
        saver.schedule({"orderGroups": [...]})   # call on every edit
        ...
        await saver.flush()                      # e.g. before navigating away
    """

    def __init__(
        self,
        client: OrderAPIClient,
        delay: float = DEFAULT_AUTOSAVE_DELAY,
        draft_id: Optional[str] = None,
    ):
        self.client = client
        self.delay = delay
        self.draft_id = draft_id

        self.status = SaveStatus.IDLE
        self.last_error: Optional[Exception] = None
        self.last_saved_at: Optional[datetime] = None
        self.save_count = 0

        self._pending: Optional[Dict[str, Any]] = None
        self._timer: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, client: OrderAPIClient, **kwargs) -> "DraftAutosaver":
        kwargs.setdefault("delay", get_settings().DRAFT_AUTOSAVE_DELAY)
        return cls(client, **kwargs)

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def schedule(self, order_data: Dict[str, Any]) -> None:
        """Queue a payload and restart the debounce window. Needs a running loop."""
        self._pending = order_data
        self._cancel_timer()
        self._timer = asyncio.get_running_loop().create_task(self._save_after_delay())

    async def flush(self) -> Optional[str]:
        """Save the pending payload now. Returns the draft id."""
        self._cancel_timer()
        await self._save_pending()
        return self.draft_id

    async def save(self, order_data: Dict[str, Any]) -> Optional[str]:
        """Replace any pending payload and save it immediately."""
        self._cancel_timer()
        self._pending = order_data
        await self._save_pending()
        return self.draft_id

    def cancel(self) -> None:
        """Drop the pending payload without saving it."""
        self._cancel_timer()
        self._pending = None

    async def list_drafts(self) -> List[Dict[str, Any]]:
        return await self.client.list_drafts()

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _save_after_delay(self) -> None:
        await asyncio.sleep(self.delay)
        # Detach so a new schedule() cannot cancel the save once it has started
        self._timer = None
        await self._save_pending()

    async def _save_pending(self) -> None:
        async with self._lock:
            order_data, self._pending = self._pending, None
            if order_data is None:
                return

            self.status = SaveStatus.SAVING
            try:
                if self.draft_id is None:
                    result = await self.client.create_draft(order_data)
                    self.draft_id = _draft_id(result)
                    logger.info(f"Created draft order {self.draft_id}")
                else:
                    await self.client.update_draft(self.draft_id, order_data)
                    logger.debug(f"Updated draft order {self.draft_id}")
            except (OrderAPIError, httpx.HTTPError) as e:
                logger.error(f"Error saving draft: {e}")
                self.status = SaveStatus.ERROR
                self.last_error = e
                return

            self.status = SaveStatus.SAVED
            self.last_error = None
            self.last_saved_at = datetime.utcnow()
            self.save_count += 1

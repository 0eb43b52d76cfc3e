"""
Tests for debounced draft autosave.
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from linkdesk.drafts import DraftAutosaver, SaveStatus

DELAY = 0.05


class TestDraftAutosaver:

    @pytest.mark.asyncio
    async def test_rapid_edits_collapse_into_one_save(self, fake_api, order_client):
        saver = DraftAutosaver(order_client, delay=DELAY)

        for i in range(5):
            saver.schedule({"orderGroups": [], "revision": i})
            await asyncio.sleep(DELAY / 5)

        await asyncio.sleep(DELAY * 4)

        assert len(fake_api.calls("POST", "/orders/drafts")) == 1
        assert saver.draft_id == "draft-1"
        assert fake_api.drafts["draft-1"]["orderData"]["revision"] == 4
        assert saver.status == SaveStatus.SAVED

    @pytest.mark.asyncio
    async def test_second_save_updates_existing_draft(self, fake_api, order_client):
        saver = DraftAutosaver(order_client, delay=DELAY)

        saver.schedule({"revision": 1})
        await asyncio.sleep(DELAY * 3)
        saver.schedule({"revision": 2})
        await asyncio.sleep(DELAY * 3)

        assert len(fake_api.calls("POST", "/orders/drafts")) == 1
        assert len(fake_api.calls("PUT", "/orders/drafts/draft-1")) == 1
        assert fake_api.drafts["draft-1"]["orderData"] == {"revision": 2}
        assert saver.save_count == 2

    @pytest.mark.asyncio
    async def test_flush_saves_immediately(self, fake_api, order_client):
        saver = DraftAutosaver(order_client, delay=10)
        saver.schedule({"revision": 1})

        draft_id = await saver.flush()

        assert draft_id == "draft-1"
        assert not saver.has_pending

    @pytest.mark.asyncio
    async def test_cancel_drops_pending(self, fake_api, order_client):
        saver = DraftAutosaver(order_client, delay=DELAY)
        saver.schedule({"revision": 1})
        saver.cancel()
        await asyncio.sleep(DELAY * 3)

        assert fake_api.calls("POST", "/orders/drafts") == []
        assert saver.draft_id is None

    @pytest.mark.asyncio
    async def test_errors_are_kept_not_raised(self, fake_api, order_client):
        fake_api.fail("POST", "/orders/drafts", status=500, error="Draft store down")
        saver = DraftAutosaver(order_client, delay=DELAY)

        saver.schedule({"revision": 1})
        await asyncio.sleep(DELAY * 3)

        assert saver.status == SaveStatus.ERROR
        assert "Draft store down" in str(saver.last_error)
        assert saver.draft_id is None

    @pytest.mark.asyncio
    async def test_list_drafts(self, fake_api, order_client):
        saver = DraftAutosaver(order_client)
        await saver.save({"revision": 1})
        drafts = await saver.list_drafts()
        assert [d["id"] for d in drafts] == ["draft-1"]

    def test_delay_from_settings(self, monkeypatch):
        from linkdesk.utils.config import get_settings

        monkeypatch.setenv("DRAFT_AUTOSAVE_DELAY", "0.5")
        get_settings.cache_clear()
        try:
            assert DraftAutosaver.from_settings(MagicMock()).delay == 0.5
            assert DraftAutosaver.from_settings(MagicMock(), delay=1).delay == 1
        finally:
            get_settings.cache_clear()

"""
Unit tests for the POS offline queue.
"""
import pytest
from unittest.mock import AsyncMock

from backend.app.services.exceptions import OfflineQueueError, RemoteUnavailableError
from backend.app.services.offline_queue import OfflineQueue
from storage import local_store

pytestmark = pytest.mark.unit

SALE = {"items": [{"item_id": "i1", "quantity": 2, "unit_price": 4.0}], "total": 8.0}


class TestOfflineQueue:
    def test_add_stamps_meta_and_persists(self, mock_remote, test_notifier):
        queue = OfflineQueue(mock_remote, store_key="q", notifier=test_notifier)

        queued = queue.add(SALE)

        assert queued["id"].startswith("OFFLINE-")
        assert "queued_at" in queued
        assert local_store.get_value("q") == [queued]
        assert test_notifier.recent()[-1]["level"] == "warning"

    def test_ids_stay_unique_within_a_millisecond(self, mock_remote, test_notifier):
        queue = OfflineQueue(mock_remote, store_key="q", notifier=test_notifier)

        ids = {queue.add(SALE)["id"] for _ in range(5)}

        assert len(ids) == 5

    def test_queue_survives_restart(self, mock_remote, test_notifier):
        OfflineQueue(mock_remote, store_key="q", notifier=test_notifier).add(SALE)

        assert len(OfflineQueue(mock_remote, store_key="q", notifier=test_notifier)) == 1

    def test_corrupt_store_starts_empty(self, mock_remote, test_notifier):
        local_store.put_value("q", "not a list")

        assert len(OfflineQueue(mock_remote, store_key="q", notifier=test_notifier)) == 0

    @pytest.mark.asyncio
    async def test_sync_replays_without_meta(self, mock_remote, test_notifier):
        queue = OfflineQueue(mock_remote, store_key="q", notifier=test_notifier)
        queue.add(SALE)

        assert await queue.sync() == (1, 0)

        mock_remote.create.assert_awaited_once_with(SALE)
        assert len(queue) == 0
        assert local_store.get_value("q") == []
        assert test_notifier.recent()[-1]["message"] == "Synced 1 offline transactions."

    @pytest.mark.asyncio
    async def test_sync_keeps_failures(self, mock_remote, test_notifier):
        mock_remote.create = AsyncMock(side_effect=[{"id": "t1"}, RemoteUnavailableError("offline"), {"id": "t3"}])
        queue = OfflineQueue(mock_remote, store_key="q", notifier=test_notifier)
        first = queue.add({**SALE, "notes": "first"})
        second = queue.add({**SALE, "notes": "second"})
        third = queue.add({**SALE, "notes": "third"})

        assert await queue.sync() == (2, 1)

        assert [q["id"] for q in queue.items()] == [second["id"]]
        assert first["id"] != third["id"]
        assert test_notifier.recent()[-1]["message"] == "Failed to sync 1 transactions. Please try again."
        assert queue.is_syncing is False

    @pytest.mark.asyncio
    async def test_synced_hook_gets_payload_and_server_reply(self, mock_remote, test_notifier):
        hook = AsyncMock()
        queue = OfflineQueue(mock_remote, store_key="q", notifier=test_notifier, on_synced=hook)
        queue.add(SALE)

        await queue.sync()

        hook.assert_awaited_once_with(SALE, {"id": "srv-42"})

    @pytest.mark.asyncio
    async def test_sync_empty_queue(self, mock_remote, test_notifier):
        queue = OfflineQueue(mock_remote, store_key="q", notifier=test_notifier)

        assert await queue.sync() == (0, 0)
        mock_remote.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_sync_refused(self, mock_remote, test_notifier):
        queue = OfflineQueue(mock_remote, store_key="q", notifier=test_notifier)
        queue.add(SALE)
        queue.is_syncing = True

        with pytest.raises(OfflineQueueError):
            await queue.sync()

    def test_clear(self, mock_remote, test_notifier):
        queue = OfflineQueue(mock_remote, store_key="q", notifier=test_notifier)
        queue.add(SALE)

        queue.clear()

        assert len(queue) == 0
        assert local_store.get_value("q") is None

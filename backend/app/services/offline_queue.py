"""
Offline queue for POS transactions.

When the document store cannot be reached, checkout payloads are parked here
under an OFFLINE-<ms> placeholder id and persisted through the local store.
`sync()` replays them in order; whatever still fails stays queued for the next
attempt.
"""
from __future__ import annotations
import copy
import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from shared.config import settings
from storage import local_store
from backend.app.services.exceptions import OfflineQueueError
from backend.app.services.notifications import Notifier, notifier as default_notifier
from backend.app.services.remote import RemoteCollection

logger = logging.getLogger(__name__)

_META_KEYS = ("id", "queued_at")

SyncedHook = Callable[[Dict[str, Any], Dict[str, Any]], Awaitable[None]]

class OfflineQueue:
    def __init__(
        self,
        remote: RemoteCollection,
        store_key: str = "offline_pos_transactions",
        notifier: Optional[Notifier] = None,
        on_synced: Optional[SyncedHook] = None,
    ):
        self.remote = remote
        self.on_synced = on_synced
        self.store_key = store_key
        self.notifier = notifier or default_notifier
        self.is_syncing = False
        self._queue: List[Dict[str, Any]] = self._load()

    def _load(self) -> List[Dict[str, Any]]:
        stored = local_store.get_value(self.store_key)
        if stored is None:
            return []
        if not isinstance(stored, list):
            logger.error(f"Failed to parse offline queue {self.store_key}; starting empty")
            return []
        return [dict(e) for e in stored if isinstance(e, dict)]

    def _save(self) -> None:
        local_store.put_value(self.store_key, self._queue)

    def __len__(self) -> int:
        return len(self._queue)

    def items(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._queue)

    def add(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        queued = {
            **copy.deepcopy(payload),
            "queued_at": datetime.now(timezone.utc).isoformat(),
            "id": f"{settings.offline_id_prefix}{int(time.time() * 1000)}",
        }
        # Two adds inside the same millisecond must not share an id
        while any(q["id"] == queued["id"] for q in self._queue):
            queued["id"] = f"{queued['id']}-{len(self._queue)}"
        self._queue.append(queued)
        self._save()
        self.notifier.warning("Transaction saved offline. Will sync when online.")
        return copy.deepcopy(queued)

    def remove(self, temp_id: str) -> bool:
        before = len(self._queue)
        self._queue = [q for q in self._queue if q.get("id") != temp_id]
        if len(self._queue) != before:
            self._save()
            return True
        return False

    async def sync(self) -> Tuple[int, int]:
        """Replay queued payloads; returns (synced, failed)."""
        if self.is_syncing:
            raise OfflineQueueError("Offline queue is already syncing")
        if not self._queue:
            return 0, 0

        self.is_syncing = True
        synced = failed = 0
        try:
            for queued in list(self._queue):
                data = {k: v for k, v in queued.items() if k not in _META_KEYS}
                try:
                    created = await self.remote.create(data)
                except Exception as e:
                    logger.error(f"Failed to sync offline transaction {queued.get('id')}: {e}")
                    failed += 1
                    continue
                self.remove(queued["id"])
                synced += 1
                if self.on_synced is not None:
                    await self.on_synced(data, created)
        finally:
            self.is_syncing = False

        if synced:
            self.notifier.success(f"Synced {synced} offline transactions.")
        if failed:
            self.notifier.error(f"Failed to sync {failed} transactions. Please try again.")
        return synced, failed

    def clear(self) -> None:
        self._queue = []
        local_store.remove_value(self.store_key)

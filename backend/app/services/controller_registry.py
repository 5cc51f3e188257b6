import logging
from typing import Any, Dict, Optional

from shared.config import settings
from backend.app.services.notifications import notifier
from backend.app.services.offline_queue import OfflineQueue
from backend.app.services.optimistic import OptimisticController
from backend.app.services.remote import InMemoryDocumentCollection
from backend.app.services.exceptions import RemoteError
from backend.app.services.sales import stock_movements

logger = logging.getLogger(__name__)

CATEGORY_DEFAULTS = {"description": "", "item_count": 0}
ITEM_DEFAULTS = {"description": "", "current_quantity": 0, "is_archived": False}

class ControllerRegistry:
    """One optimistic controller per screen, wired to its remote collection."""

    def __init__(self):
        self._initialized = False
        self.categories: Optional[OptimisticController] = None
        self.items: Optional[OptimisticController] = None
        self.offline: Optional[OfflineQueue] = None

    async def init(self, undo_window: Optional[float] = None):
        if self._initialized: return
        window = settings.undo_window_seconds if undo_window is None else undo_window

        self.category_remote = InMemoryDocumentCollection("categories")
        self.item_remote = InMemoryDocumentCollection("items")
        self.transaction_remote = InMemoryDocumentCollection("pos_transactions", order_by=None)
        self.movement_remote = InMemoryDocumentCollection("transactions", order_by=None)
        self.category_remote.set_delete_guard(self._category_in_use)

        self.categories = OptimisticController(
            "categories", self.category_remote,
            label="category", defaults=CATEGORY_DEFAULTS, undo_window=window, notifier=notifier,
        )
        self.items = OptimisticController(
            "items", self.item_remote,
            label="item",
            defaults={**ITEM_DEFAULTS, "low_stock_threshold": settings.low_stock_threshold},
            undo_window=window, notifier=notifier,
        )
        self.categories.add_remap_listener(self._repoint_items)
        self.offline = OfflineQueue(self.transaction_remote, notifier=notifier, on_synced=self.record_stock_movements)

        for controller in (self.categories, self.items):
            await controller.mount()
            logger.info(f"Mounted {controller.name}: {len(controller.collection)} entities")
        self._initialized = True

    async def _category_in_use(self, category_id: str) -> Optional[str]:
        docs = await self.item_remote.list()
        if any(d.get("category_id") == category_id for d in docs):
            return "category has items, cannot delete"
        return None

    def _repoint_items(self, temp_id: str, server_id: str) -> None:
        # Items created against a category that was still optimistic
        for item in self.items.items():
            if item.get("category_id") == temp_id:
                self.items.apply_update(item["id"], {"category_id": server_id})

    async def record_stock_movements(self, transaction: Dict[str, Any], created: Dict[str, Any]) -> int:
        """Write one stock_out movement per sold line; returns how many were recorded."""
        recorded = 0
        for movement in stock_movements(transaction, created.get("id")):
            try:
                await self.movement_remote.create(movement)
            except RemoteError as e:
                logger.error(f"Stock movement for {movement['item_id']} ({movement['reference_number']}) not recorded: {e}")
                notifier.error(f"Failed to record stock movement for {movement['item_id']}")
                continue
            recorded += 1
        return recorded

    async def close(self):
        if not self._initialized: return
        for controller in (self.categories, self.items):
            await controller.aclose()
        self._initialized = False

controller_registry = ControllerRegistry()

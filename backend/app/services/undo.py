"""
Undo window for optimistic deletes.

Idle --delete--> PendingUndo --undo--> Idle       (entity reinserted, no remote call)
                 PendingUndo --timer--> Idle      (remote delete issued)
                 PendingUndo --delete--> PendingUndo  (previous one committed now)

Only one delete waits in the window at a time. Once the commit path has started
the delete can no longer be undone.
"""
from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from backend.app.services.rollback import CollectionSnapshot

logger = logging.getLogger(__name__)

IDLE = "idle"
PENDING_UNDO = "pending_undo"

@dataclass
class PendingDelete:
    entity_id: str
    entity: Dict[str, Any]
    snapshot: CollectionSnapshot
    deadline: float = 0.0

class UndoCoordinator:
    def __init__(
        self,
        window_seconds: float,
        commit: Callable[[PendingDelete], Any],
        restore: Callable[[PendingDelete], None],
    ):
        self.window_seconds = window_seconds
        self._commit = commit
        self._restore = restore
        self._pending: Optional[PendingDelete] = None
        self._timer: Optional[asyncio.TimerHandle] = None

    @property
    def state(self) -> str:
        return PENDING_UNDO if self._pending is not None else IDLE

    @property
    def pending(self) -> Optional[PendingDelete]:
        return self._pending

    def begin(self, pending: PendingDelete) -> None:
        if self._pending is not None:
            logger.info(f"Delete of {pending.entity_id} supersedes pending delete of {self._pending.entity_id}")
            self._run_commit()
        loop = asyncio.get_running_loop()
        pending.deadline = loop.time() + self.window_seconds
        self._pending = pending
        self._timer = loop.call_later(self.window_seconds, self._on_timer)

    def undo(self, entity_id: Optional[str] = None) -> bool:
        """Cancel the pending delete. False when there is nothing (left) to undo."""
        pending = self._pending
        if pending is None:
            return False
        if entity_id is not None and entity_id != pending.entity_id:
            return False
        self._cancel_timer()
        self._pending = None
        self._restore(pending)
        logger.info(f"Undid delete of {pending.entity_id}")
        return True

    def flush(self) -> Any:
        """Commit the pending delete right now; used on teardown."""
        if self._pending is None:
            return None
        return self._run_commit()

    def _on_timer(self) -> None:
        self._timer = None
        if self._pending is not None:
            self._run_commit()

    def _run_commit(self) -> Any:
        pending = self._pending
        self._cancel_timer()
        # Back to Idle before the remote call so a late undo cannot resurrect it
        self._pending = None
        return self._commit(pending)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

"""
Generic optimistic mutation controller.

`apply_*` methods change the local collection synchronously and return at once;
the matching `reconcile_*` coroutine is scheduled on the running event loop and
either confirms the change (swapping in server ids and fields) or rolls it back
from the snapshot taken just before the change. Remote failures never escape a
reconciler: they are logged, rolled back and reported through the notifier.

Must be driven from inside a running asyncio loop.
"""
from __future__ import annotations
import asyncio
import copy
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from shared.config import settings
from storage import local_store
from backend.app.services.exceptions import EntityNotFoundError, RemoteRejectedError
from backend.app.services.langsmith_logger import traceable
from backend.app.services.local_collection import Entity, LocalCollection
from backend.app.services.notifications import Notifier, notifier as default_notifier
from backend.app.services.remote import RemoteCollection
from backend.app.services.rollback import (
    CollectionSnapshot,
    EntitySnapshot,
    reinsert_position,
    restore_fields,
    take_collection_snapshot,
    take_entity_snapshot,
)
from backend.app.services.undo import PendingDelete, UndoCoordinator

logger = logging.getLogger(__name__)

_temp_counter = itertools.count(1)

PENDING, DONE, FAILED = "pending", "done", "failed"

@dataclass
class _UpdateRecord:
    version: int
    changes: Dict[str, Any]
    snapshot: EntitySnapshot
    status: str = PENDING
    touched: Set[str] = field(default_factory=set)

    def __post_init__(self):
        self.touched = set(self.changes)

class OptimisticController:
    def __init__(
        self,
        name: str,
        remote: RemoteCollection,
        *,
        label: Optional[str] = None,
        id_key: str = "id",
        defaults: Optional[Dict[str, Any]] = None,
        undo_window: Optional[float] = None,
        notifier: Optional[Notifier] = None,
        use_cache: bool = True,
        temp_prefix: Optional[str] = None,
    ):
        self.name = name
        self.label = label or name
        self.remote = remote
        self.collection = LocalCollection(name, id_key=id_key)
        self.defaults = dict(defaults or {})
        self.notifier = notifier or default_notifier
        self.use_cache = use_cache
        self.temp_prefix = temp_prefix or settings.temp_id_prefix
        self.undo: Optional[UndoCoordinator] = None
        if undo_window:
            self.undo = UndoCoordinator(undo_window, commit=self._commit_delete, restore=self._restore_deleted)

        self._aliases: Dict[str, str] = {}
        self._pending_creates: Dict[str, asyncio.Future] = {}
        self._versions: Dict[str, int] = {}
        self._updates: Dict[str, List[_UpdateRecord]] = {}
        self._deleting: Dict[str, CollectionSnapshot] = {}
        self._remap_listeners: List[Callable[[str, str], None]] = []
        self._tasks: Set[asyncio.Task] = set()
        self.closed = False

    # ------------------------------------------------------------------ ids

    @property
    def id_key(self) -> str:
        return self.collection.id_key

    def new_temp_id(self) -> str:
        return f"{self.temp_prefix}{time.time_ns()}-{next(_temp_counter)}"

    def is_temp_id(self, entity_id: str) -> bool:
        return isinstance(entity_id, str) and entity_id.startswith(self.temp_prefix)

    def resolve_id(self, entity_id: str) -> str:
        """Server id for a reconciled temporary id, otherwise the id itself."""
        return self._aliases.get(entity_id, entity_id)

    def add_remap_listener(self, listener: Callable[[str, str], None]) -> None:
        """listener(temp_id, server_id) runs in the same step that patches the collection."""
        self._remap_listeners.append(listener)

    # ------------------------------------------------------------- reading

    def items(self) -> List[Entity]:
        return self.collection.items()

    def get(self, entity_id: str) -> Optional[Entity]:
        entity = self.collection.get(self.resolve_id(entity_id))
        return copy.deepcopy(entity) if entity is not None else None

    # ------------------------------------------------------------- applier

    def apply_create(self, payload: Dict[str, Any]) -> Entity:
        loop = asyncio.get_running_loop()
        temp_id = self.new_temp_id()
        entity = {**copy.deepcopy(self.defaults), **copy.deepcopy(payload), self.id_key: temp_id}
        body = {k: copy.deepcopy(v) for k, v in entity.items() if k != self.id_key}
        self.collection.prepend(entity)
        self._pending_creates[temp_id] = loop.create_future()
        self._spawn(self.reconcile_create(temp_id, body))
        return copy.deepcopy(entity)

    def apply_update(self, entity_id: str, partial: Dict[str, Any]) -> Entity:
        eid = self.resolve_id(entity_id)
        entity = self.collection.get(eid)
        if entity is None:
            raise EntityNotFoundError(entity_id, self.name)
        changes = copy.deepcopy(partial)
        snapshot = take_entity_snapshot(entity, eid, changes)
        version = self._versions.get(eid, 0) + 1
        self._versions[eid] = version
        self._updates.setdefault(eid, []).append(_UpdateRecord(version=version, changes=changes, snapshot=snapshot))
        entity.update(copy.deepcopy(changes))
        self._spawn(self.reconcile_update(eid, changes, snapshot, version))
        return copy.deepcopy(entity)

    def apply_delete(self, entity_id: str) -> Entity:
        eid = self.resolve_id(entity_id)
        index = self.collection.index_of(eid)
        if index < 0:
            raise EntityNotFoundError(entity_id, self.name)
        snapshot = take_collection_snapshot(list(self.collection), eid, index)
        entity = self.collection.remove(eid)
        pending = PendingDelete(entity_id=eid, entity=copy.deepcopy(entity), snapshot=snapshot)
        if self.undo is not None:
            self.undo.begin(pending)
        else:
            self._commit_delete(pending)
        return copy.deepcopy(entity)

    def undo_delete(self, entity_id: Optional[str] = None) -> bool:
        if self.undo is None:
            return False
        return self.undo.undo(self.resolve_id(entity_id) if entity_id else None)

    # ---------------------------------------------------------- reconciler

    @traceable("reconcile_create")
    async def reconcile_create(self, temp_id: str, payload: Dict[str, Any]) -> Optional[str]:
        future = self._pending_creates.get(temp_id)
        server_id: Optional[str] = None
        try:
            try:
                result = await self.remote.create(payload)
            except Exception as e:
                logger.error(f"{self.name}: create {temp_id} failed: {e}")
                self.collection.remove(temp_id)
                self._updates.pop(temp_id, None)
                self._versions.pop(temp_id, None)
                self.notifier.error(self._failure_message("create", e))
                return None

            result = dict(result or {})
            server_id = result.pop(self.id_key, None) or result.pop("id", None)
            if not server_id:
                logger.error(f"{self.name}: create {temp_id} returned no id: {result}")
                self.collection.remove(temp_id)
                self.notifier.error(f"Failed to create {self.label}")
                return None
            self._remap(temp_id, server_id, result)
            self.notifier.success(f"{self.label.capitalize()} created")
            return server_id
        finally:
            self._pending_creates.pop(temp_id, None)
            if future is not None and not future.done():
                future.set_result(server_id)

    @traceable("reconcile_update")
    async def reconcile_update(self, entity_id: str, partial: Dict[str, Any], snapshot: EntitySnapshot, version: Optional[int] = None) -> bool:
        remote_id = await self._remote_id(entity_id)
        eid = self.resolve_id(entity_id)
        record = self._find_update(eid, version)
        if remote_id is None:
            # Create never reached the server; the entity is already gone locally
            if record is not None:
                record.status = FAILED
            self._prune_updates(eid)
            return False
        try:
            server_fields = await self.remote.update(remote_id, partial)
        except Exception as e:
            logger.error(f"{self.name}: update {remote_id} failed: {e}")
            self._rollback_update(eid, partial, snapshot, record)
            self.notifier.error(self._failure_message("update", e))
            return False

        if record is not None:
            record.status = DONE
        if server_fields:
            owned = self._fields_owned_by_later_updates(eid, version)
            fresh = {k: v for k, v in dict(server_fields).items() if k != self.id_key and k not in owned}
            self.collection.patch(eid, fresh)
            for detached in self._detached_copies(eid):
                detached.update(copy.deepcopy(fresh))
        self._prune_updates(eid)
        self.notifier.success(f"{self.label.capitalize()} updated")
        return True

    @traceable("reconcile_delete")
    async def reconcile_delete(self, entity_id: str, snapshot: CollectionSnapshot) -> bool:
        self._deleting.setdefault(entity_id, snapshot)
        try:
            remote_id = await self._remote_id(entity_id)
            if remote_id is None:
                return True
            try:
                await self.remote.delete(remote_id)
            except Exception as e:
                logger.error(f"{self.name}: delete {remote_id} failed: {e}")
                self._reinsert(snapshot)
                self.notifier.error(self._failure_message("delete", e))
                return False
            self.notifier.success(f"{self.label.capitalize()} deleted")
            return True
        finally:
            self._deleting.pop(entity_id, None)
            self._deleting.pop(self.resolve_id(entity_id), None)

    # ------------------------------------------------------------ loading

    def load_cached(self) -> int:
        """Seed an empty collection from the local cache for instant first paint."""
        if not self.use_cache or len(self.collection):
            return 0
        cached = local_store.load_collection(self.name)
        self.collection.replace_all(cached)
        return len(cached)

    async def reload(self) -> bool:
        try:
            docs = await self.remote.list()
        except Exception as e:
            logger.error(f"{self.name}: reload failed: {e}")
            self.notifier.error(f"Failed to load {self.name}")
            return False

        # Keep what is still optimistic on top of the fresh server state
        hidden = set(self._deleting)
        if self.undo is not None and self.undo.pending is not None:
            hidden.add(self.undo.pending.entity_id)
        optimistic = [copy.deepcopy(e) for e in self.collection if self.collection.id_of(e) in self._pending_creates]
        fresh = [dict(d) for d in docs if d.get(self.id_key) not in hidden]
        for doc in fresh:
            for record in self._updates.get(doc.get(self.id_key), []):
                if record.status == PENDING:
                    doc.update(copy.deepcopy(record.changes))
        self.collection.replace_all(optimistic + fresh)
        if self.use_cache:
            local_store.save_collection(self.name, docs)
        return True

    async def mount(self) -> bool:
        self.load_cached()
        return await self.reload()

    # ----------------------------------------------------------- teardown

    def flush(self) -> Optional[asyncio.Task]:
        if self.undo is None:
            return None
        return self.undo.flush()

    async def settle(self) -> None:
        """Wait until every in-flight reconciliation (including ones they spawn) is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        self.flush()
        await self.settle()
        self.closed = True

    async def __aenter__(self) -> "OptimisticController":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ------------------------------------------------------------ helpers

    def _spawn(self, coro: Awaitable) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _remote_id(self, entity_id: str) -> Optional[str]:
        eid = self.resolve_id(entity_id)
        future = self._pending_creates.get(eid)
        if future is not None:
            return await asyncio.shield(future)
        if self.is_temp_id(eid):
            return None
        return eid

    def _remap(self, temp_id: str, server_id: str, server_fields: Dict[str, Any]) -> None:
        owned = self._fields_owned_by_later_updates(temp_id, None)
        fresh = {k: v for k, v in server_fields.items() if k not in owned}
        self.collection.rename(temp_id, server_id, fresh)
        self._aliases[temp_id] = server_id
        if temp_id in self._versions:
            self._versions[server_id] = self._versions.pop(temp_id)
        if temp_id in self._updates:
            records = self._updates.pop(temp_id)
            for r in records:
                r.snapshot.entity_id = server_id
            self._updates[server_id] = records
        if temp_id in self._deleting:
            self._deleting[server_id] = self._deleting.pop(temp_id)
        pending = self.undo.pending if self.undo is not None else None
        if pending is not None and pending.entity_id == temp_id:
            pending.entity_id = server_id
            pending.snapshot.entity_id = server_id
        for detached in self._detached_copies(server_id):
            detached.update(copy.deepcopy(fresh))
            detached[self.id_key] = server_id
        for listener in list(self._remap_listeners):
            try:
                listener(temp_id, server_id)
            except Exception as e:
                logger.error(f"{self.name}: id remap listener failed for {temp_id} -> {server_id}: {e}")

    def _detached_copies(self, eid: str) -> List[Entity]:
        """Copies of a removed entity that an undo or a failed delete would put back."""
        copies: List[Entity] = []
        pending = self.undo.pending if self.undo is not None else None
        if pending is not None and self.resolve_id(pending.entity_id) == eid:
            copies.append(pending.entity)
            if pending.snapshot.entity is not None:
                copies.append(pending.snapshot.entity)
        snapshot = self._deleting.get(eid)
        if snapshot is not None and snapshot.entity is not None:
            copies.append(snapshot.entity)
        return copies

    def _find_update(self, eid: str, version: Optional[int]) -> Optional[_UpdateRecord]:
        if version is None:
            return None
        for record in self._updates.get(eid, []):
            if record.version == version:
                return record
        return None

    def _fields_owned_by_later_updates(self, eid: str, version: Optional[int]) -> Set[str]:
        owned: Set[str] = set()
        for record in self._updates.get(eid, []):
            if record.status == PENDING and (version is None or record.version > version):
                owned |= record.touched
        return owned

    def _rollback_update(self, eid: str, partial: Dict[str, Any], snapshot: EntitySnapshot, record: Optional[_UpdateRecord]) -> None:
        if record is None:
            self._restore_everywhere(eid, snapshot.fields)
            return

        record.status = FAILED
        later = [r for r in self._updates.get(eid, []) if r.version > record.version and r.status != FAILED]
        restore: Dict[str, Any] = {}
        for key, before in snapshot.fields.items():
            successor = next((r for r in later if key in r.touched), None)
            if successor is None:
                restore[key] = before
            elif successor.status == PENDING:
                # The later write is still in flight; if it fails too it must land on our pre-value
                successor.snapshot.fields[key] = before
        if restore:
            self._restore_everywhere(eid, restore)
        self._prune_updates(eid)

    def _restore_everywhere(self, eid: str, fields: Dict[str, Any]) -> None:
        # An entity waiting on undo or on its remote delete must come back without the rejected change
        entity = self.collection.get(eid)
        if entity is not None:
            restore_fields(entity, fields)
        for detached in self._detached_copies(eid):
            restore_fields(detached, fields)

    def _prune_updates(self, eid: str) -> None:
        records = self._updates.get(eid)
        if records is not None and all(r.status != PENDING for r in records):
            del self._updates[eid]

    def _commit_delete(self, pending: PendingDelete) -> asyncio.Task:
        self._deleting[pending.entity_id] = pending.snapshot
        return self._spawn(self.reconcile_delete(pending.entity_id, pending.snapshot))

    def _restore_deleted(self, pending: PendingDelete) -> None:
        self._reinsert(pending.snapshot)

    def _reinsert(self, snapshot: CollectionSnapshot) -> None:
        entity = copy.deepcopy(snapshot.entity)
        if entity is None:
            return
        eid = self.resolve_id(entity[self.id_key])
        if eid in self.collection:
            return
        if self.is_temp_id(eid) and eid not in self._pending_creates:
            # Its create already failed, so there is nothing to bring back
            return
        entity[self.id_key] = eid

        def id_of(e: Entity) -> str:
            return self.resolve_id(self.collection.id_of(e))

        position = reinsert_position(snapshot, self.collection.ids(), id_of)
        self.collection.insert(position, entity)

    def _failure_message(self, op: str, error: Exception) -> str:
        if isinstance(error, RemoteRejectedError) and str(error):
            return f"Failed to {op} {self.label}: {error}"
        return f"Failed to {op} {self.label}"

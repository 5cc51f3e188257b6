"""
Remote collection clients.

The controller only needs four coroutines from a remote collection, so anything
with `list/create/update/delete` works. `InMemoryDocumentCollection` stands in
for the cloud document database in development and tests: it assigns ids and
server timestamps and can reject deletes through a guard.
"""
from __future__ import annotations
import asyncio
import copy
import logging
import secrets
import string
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from shared.config import settings
from backend.app.services.exceptions import RemoteRejectedError, RemoteUnavailableError

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_letters + string.digits

class RemoteCollection(Protocol):
    name: str

    async def list(self) -> List[Dict[str, Any]]: ...

    async def create(self, payload: Dict[str, Any]) -> Dict[str, Any]: ...

    async def update(self, entity_id: str, partial: Dict[str, Any]) -> Optional[Dict[str, Any]]: ...

    async def delete(self, entity_id: str) -> None: ...

DeleteGuard = Callable[[str], Awaitable[Optional[str]]]

def make_document_id(length: int = 20) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()

class InMemoryDocumentCollection:
    def __init__(self, name: str, latency_ms: Optional[int] = None, order_by: Optional[str] = "name"):
        self.name = name
        self.order_by = order_by
        self.latency_ms = settings.remote_latency_ms if latency_ms is None else latency_ms
        self.online = True
        self._docs: Dict[str, Dict[str, Any]] = {}
        self._delete_guard: Optional[DeleteGuard] = None

    def set_delete_guard(self, guard: Optional[DeleteGuard]) -> None:
        """guard(id) returns a rejection message, or None to allow the delete."""
        self._delete_guard = guard

    async def _round_trip(self, op: str) -> None:
        if self.latency_ms:
            await asyncio.sleep(self.latency_ms / 1000)
        if not self.online:
            raise RemoteUnavailableError(f"{self.name}.{op}: document store unreachable")

    async def list(self) -> List[Dict[str, Any]]:
        await self._round_trip("list")
        docs = [dict(d) for d in self._docs.values()]
        if self.order_by:
            docs.sort(key=lambda d: str(d.get(self.order_by, "")).lower())
        return docs

    async def get(self, entity_id: str) -> Dict[str, Any]:
        await self._round_trip("get")
        if entity_id not in self._docs:
            raise RemoteRejectedError(f"{self.name}/{entity_id} not found")
        return dict(self._docs[entity_id])

    async def create(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        await self._round_trip("create")
        doc_id = make_document_id()
        stamp = _now()
        doc = {**copy.deepcopy(payload), "id": doc_id, "created_at": stamp, "updated_at": stamp}
        self._docs[doc_id] = doc
        logger.debug(f"{self.name}: created {doc_id}")
        return {"id": doc_id, "created_at": stamp, "updated_at": stamp}

    async def update(self, entity_id: str, partial: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        await self._round_trip("update")
        if entity_id not in self._docs:
            raise RemoteRejectedError(f"{self.name}/{entity_id} not found")
        stamp = _now()
        self._docs[entity_id].update(copy.deepcopy(partial))
        self._docs[entity_id]["updated_at"] = stamp
        return {"updated_at": stamp}

    async def delete(self, entity_id: str) -> None:
        await self._round_trip("delete")
        if self._delete_guard is not None:
            reason = await self._delete_guard(entity_id)
            if reason:
                raise RemoteRejectedError(reason)
        # Deleting a missing document is a no-op, like the document database
        self._docs.pop(entity_id, None)

    def seed(self, docs: List[Dict[str, Any]]) -> None:
        for d in docs:
            doc = dict(d)
            doc.setdefault("id", make_document_id())
            self._docs[doc["id"]] = doc

    def documents(self) -> Dict[str, Dict[str, Any]]:
        return copy.deepcopy(self._docs)

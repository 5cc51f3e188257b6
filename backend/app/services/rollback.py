"""
Snapshot helpers for optimistic mutations.
Updates snapshot only the fields they touch; deletes snapshot the whole ordered
collection so the entity can go back where it was.
"""
from __future__ import annotations
import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Marks a field that did not exist before the update; restoring it removes the key.
MISSING = object()

@dataclass
class EntitySnapshot:
    entity_id: str
    fields: Dict[str, Any] = field(default_factory=dict)

@dataclass
class CollectionSnapshot:
    entities: List[Dict[str, Any]]
    entity_id: Optional[str] = None
    index: int = -1

    @property
    def entity(self) -> Optional[Dict[str, Any]]:
        if 0 <= self.index < len(self.entities):
            return self.entities[self.index]
        return None

def take_entity_snapshot(entity: Dict[str, Any], entity_id: str, changed: Dict[str, Any]) -> EntitySnapshot:
    fields = {k: copy.deepcopy(entity[k]) if k in entity else MISSING for k in changed}
    return EntitySnapshot(entity_id=entity_id, fields=fields)

def restore_fields(entity: Dict[str, Any], fields: Dict[str, Any]) -> None:
    for key, value in fields.items():
        if value is MISSING:
            entity.pop(key, None)
        else:
            entity[key] = copy.deepcopy(value)

def take_collection_snapshot(entities: List[Dict[str, Any]], entity_id: Optional[str] = None, index: int = -1) -> CollectionSnapshot:
    return CollectionSnapshot(entities=copy.deepcopy(entities), entity_id=entity_id, index=index)

def reinsert_position(snapshot: CollectionSnapshot, current_ids: List[str], id_of) -> int:
    """
    Index at which the snapshotted entity goes back into the current collection:
    right after the closest earlier neighbour that is still present, or at the
    front when none is.
    """
    if snapshot.index < 0:
        return 0
    present = {eid: pos for pos, eid in enumerate(current_ids)}
    for prior in reversed(snapshot.entities[:snapshot.index]):
        pos = present.get(id_of(prior))
        if pos is not None:
            return pos + 1
    return 0

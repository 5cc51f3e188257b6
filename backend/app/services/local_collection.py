from __future__ import annotations
import copy
from typing import Any, Callable, Dict, Iterator, List, Optional

Entity = Dict[str, Any]

def _default_id(entity: Entity) -> str:
    return entity["id"]

class LocalCollection:
    """Ordered in-memory mirror of a remote collection. Not thread-safe; owned by one controller."""

    def __init__(self, name: str, id_key: str = "id", entities: Optional[List[Entity]] = None):
        self.name = name
        self.id_key = id_key
        self._entities: List[Entity] = [dict(e) for e in (entities or [])]

    def id_of(self, entity: Entity) -> str:
        return entity[self.id_key]

    def __len__(self) -> int:
        return len(self._entities)

    def __iter__(self) -> Iterator[Entity]:
        return iter(self._entities)

    def __contains__(self, entity_id: str) -> bool:
        return self.index_of(entity_id) >= 0

    def ids(self) -> List[str]:
        return [self.id_of(e) for e in self._entities]

    def index_of(self, entity_id: str) -> int:
        for pos, e in enumerate(self._entities):
            if self.id_of(e) == entity_id:
                return pos
        return -1

    def get(self, entity_id: str) -> Optional[Entity]:
        pos = self.index_of(entity_id)
        return self._entities[pos] if pos >= 0 else None

    def items(self) -> List[Entity]:
        """Deep copy of the current state, safe to hand out to callers."""
        return copy.deepcopy(self._entities)

    def replace_all(self, entities: List[Entity]) -> None:
        self._entities = [dict(e) for e in entities]

    def prepend(self, entity: Entity) -> None:
        self._entities.insert(0, entity)

    def insert(self, index: int, entity: Entity) -> None:
        self._entities.insert(max(0, min(index, len(self._entities))), entity)

    def remove(self, entity_id: str) -> Optional[Entity]:
        pos = self.index_of(entity_id)
        if pos < 0:
            return None
        return self._entities.pop(pos)

    def patch(self, entity_id: str, fields: Dict[str, Any]) -> Optional[Entity]:
        entity = self.get(entity_id)
        if entity is not None:
            entity.update(fields)
        return entity

    def rename(self, old_id: str, new_id: str, fields: Optional[Dict[str, Any]] = None) -> Optional[Entity]:
        """Swap an id in place, keeping the entity's position."""
        entity = self.get(old_id)
        if entity is None:
            return None
        if fields:
            entity.update(fields)
        entity[self.id_key] = new_id
        return entity

    def where(self, predicate: Callable[[Entity], bool]) -> List[Entity]:
        return [copy.deepcopy(e) for e in self._entities if predicate(e)]

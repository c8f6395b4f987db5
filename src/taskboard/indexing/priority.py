"""Ordering of scheduled entities by start time."""

import bisect
from datetime import datetime
from typing import Dict, Iterator, List, Tuple

from taskboard.models.task import TaskBase

SortKey = Tuple[datetime, int]


class PriorityIndex:
    """Total order over scheduled entities by (start time, id).

    Entities without a start time are not indexed at all; callers wanting
    every entity compose this order with the unscheduled remainder.
    """

    def __init__(self) -> None:
        self._keys: List[SortKey] = []
        self._key_by_id: Dict[int, SortKey] = {}
        self._entities: Dict[int, TaskBase] = {}

    def add(self, entity: TaskBase) -> None:
        """Insert an entity, replacing any previous entry for its id.

        Args:
            entity: Entity to index; unscheduled entities are only removed
        """
        self.remove(entity.id)
        if entity.start_time is None:
            return

        key = (entity.start_time, entity.id)
        bisect.insort(self._keys, key)
        self._key_by_id[entity.id] = key
        self._entities[entity.id] = entity

    def remove(self, entity_id: int) -> None:
        """Remove the entry for an id; unknown ids are ignored."""
        key = self._key_by_id.pop(entity_id, None)
        if key is None:
            return

        position = bisect.bisect_left(self._keys, key)
        del self._keys[position]
        del self._entities[entity_id]

    def clear(self) -> None:
        self._keys.clear()
        self._key_by_id.clear()
        self._entities.clear()

    def ids(self) -> List[int]:
        """Get indexed ids in priority order."""
        return [entity_id for _, entity_id in self._keys]

    def __iter__(self) -> Iterator[TaskBase]:
        for _, entity_id in self._keys:
            yield self._entities[entity_id]

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._key_by_id

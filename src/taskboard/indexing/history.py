"""View history with unique, most-recent-last ordering."""

from typing import Dict, Iterator, List, Optional

import structlog

from taskboard.models.task import TaskBase

logger = structlog.get_logger(__name__)


class _Node:
    """Doubly linked list node holding one history snapshot."""

    __slots__ = ("entity", "prev", "next")

    def __init__(self, entity: TaskBase) -> None:
        self.entity = entity
        self.prev: Optional["_Node"] = None
        self.next: Optional["_Node"] = None


class HistoryTracker:
    """Tracks recently viewed entities, deduplicated by id.

    Entries live in a doubly linked list (oldest at the head, most recent at
    the tail) indexed by an id -> node map, so both recording and removal are
    O(1). Re-viewing an id moves its entry to the tail.
    """

    def __init__(self) -> None:
        """Initialize an empty history."""
        self._nodes: Dict[int, _Node] = {}
        self._head: Optional[_Node] = None
        self._tail: Optional[_Node] = None

    def record(self, entity: Optional[TaskBase]) -> None:
        """Record a view of an entity.

        Args:
            entity: Entity that was viewed. None is ignored.

        The stored value is a snapshot, so later changes to the caller's
        object do not leak into history.
        """
        if entity is None:
            return

        existing = self._nodes.get(entity.id)
        if existing is not None:
            self._unlink(existing)

        self._link_last(_Node(entity.snapshot()))

    def remove(self, entity_id: int) -> None:
        """Drop the entry for an id, if any.

        Args:
            entity_id: Id of the entity to forget
        """
        node = self._nodes.get(entity_id)
        if node is not None:
            self._unlink(node)
            logger.debug("history_entry_removed", entity_id=entity_id)

    def list(self) -> List[TaskBase]:
        """Get the history, oldest first.

        Returns:
            Independent snapshots of every entry
        """
        return [entity.snapshot() for entity in self._iter_entities()]

    def ids(self) -> List[int]:
        """Get the ids in history order, oldest first."""
        return [entity.id for entity in self._iter_entities()]

    def clear(self) -> None:
        """Forget every entry."""
        self._nodes.clear()
        self._head = None
        self._tail = None

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._nodes

    def _iter_entities(self) -> Iterator[TaskBase]:
        current = self._head
        while current is not None:
            yield current.entity
            current = current.next

    def _link_last(self, node: _Node) -> None:
        if self._tail is None:
            self._head = node
        else:
            self._tail.next = node
            node.prev = self._tail
        self._tail = node
        self._nodes[node.entity.id] = node

    def _unlink(self, node: _Node) -> None:
        del self._nodes[node.entity.id]

        if node.prev is not None:
            node.prev.next = node.next
        else:
            self._head = node.next

        if node.next is not None:
            node.next.prev = node.prev
        else:
            self._tail = node.prev

        node.prev = None
        node.next = None

"""In-memory store for tasks, epics and subtasks."""

import functools
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

import pydantic
import structlog

from taskboard.exceptions import (
    EntityNotFoundError,
    TaskValidationError,
    TimeConflictError,
)
from taskboard.indexing.history import HistoryTracker
from taskboard.indexing.priority import PriorityIndex
from taskboard.indexing.timeslots import TimeSlotIndex
from taskboard.models.config import TaskboardSettings
from taskboard.models.task import AnyTask, Epic, Subtask, Task, TaskBase, TaskKind
from taskboard.store.aggregator import recompute_epic
from taskboard.store.ids import IdGenerator

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable)


def _synchronized(method: F) -> F:
    """Run a manager method under the manager's lock."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


class TaskManager:
    """Owns every task, epic and subtask plus the indices kept alongside them.

    Entities are only created through the create_* factories, so id
    uniqueness and epic existence are enforced in one place. Relations are
    held purely as ids (epic -> subtask ids, subtask -> epic id). Every read
    returns a copy; callers never hold a reference into the store.

    One re-entrant lock covers the store and all indices, so each operation
    is applied as a unit.
    """

    def __init__(self, settings: Optional[TaskboardSettings] = None) -> None:
        """Initialize an empty store.

        Args:
            settings: Taskboard settings. If None, loads from environment.
        """
        self.settings = settings or TaskboardSettings()
        self._lock = threading.RLock()
        self._reset()

    def _reset(self) -> None:
        self._tasks: Dict[int, Task] = {}
        self._epics: Dict[int, Epic] = {}
        self._subtasks: Dict[int, Subtask] = {}
        self._ids = IdGenerator()
        self._history = HistoryTracker()
        self._time_slots = TimeSlotIndex.from_settings(self.settings)
        self._priority = PriorityIndex()

    def _on_change(self) -> None:
        """Hook invoked after every state change. No-op in memory."""

    # ============================================================================
    # Tasks
    # ============================================================================

    @_synchronized
    def create_task(
        self,
        name: str,
        description: str,
        *,
        duration: Optional[timedelta] = None,
        start_time: Optional[datetime] = None,
    ) -> int:
        """Create a standalone task.

        Args:
            name: Non-blank task name
            description: Task description (may be empty, not None)
            duration: Optional planned duration
            start_time: Optional scheduled start

        Returns:
            Id of the new task

        Raises:
            TaskValidationError: If name or description is invalid
            TimeConflictError: If the scheduled interval overlaps another one
        """
        task = self._build(Task, name=name, description=description,
                           duration=duration, start_time=start_time)
        self._check_conflict(task)

        task.id = self._ids.next_id()
        self._tasks[task.id] = task
        self._index(task)

        logger.info("task_created", task_id=task.id, name=name)
        self._on_change()
        return task.id

    @_synchronized
    def get_task(self, task_id: int) -> Optional[Task]:
        """Get a copy of a task and record the view in history.

        Returns:
            Copy of the task, or None if it does not exist
        """
        return self._view(self._tasks.get(task_id))

    @_synchronized
    def get_all_tasks(self) -> List[Task]:
        """Get copies of all tasks in id order (not recorded in history)."""
        return self._copies(self._tasks)

    @_synchronized
    def update_task(self, task: Task) -> None:
        """Replace the stored state of an existing task.

        Unknown ids are ignored.

        Raises:
            TaskValidationError: If task is None or not a Task
            TimeConflictError: If the new interval overlaps another entity
        """
        self._require(task, Task)
        if task.id not in self._tasks:
            logger.debug("update_skipped_unknown_id", kind="task", task_id=task.id)
            return

        self._check_conflict(task)

        updated = task.snapshot()
        self._tasks[updated.id] = updated
        self._index(updated)

        logger.info("task_updated", task_id=updated.id, status=updated.status.value)
        self._on_change()

    @_synchronized
    def delete_task(self, task_id: int) -> None:
        """Delete a task; unknown ids are ignored."""
        if self._tasks.pop(task_id, None) is None:
            return
        self._unindex(task_id)

        logger.info("task_deleted", task_id=task_id)
        self._on_change()

    @_synchronized
    def delete_all_tasks(self) -> None:
        """Delete every standalone task."""
        for task_id in list(self._tasks):
            self._unindex(task_id)
        self._tasks.clear()

        logger.info("all_tasks_deleted")
        self._on_change()

    # ============================================================================
    # Epics
    # ============================================================================

    @_synchronized
    def create_epic(self, name: str, description: str) -> int:
        """Create an epic with no subtasks.

        Returns:
            Id of the new epic

        Raises:
            TaskValidationError: If name or description is invalid
        """
        epic = self._build(Epic, name=name, description=description)

        epic.id = self._ids.next_id()
        self._epics[epic.id] = epic

        logger.info("epic_created", epic_id=epic.id, name=name)
        self._on_change()
        return epic.id

    @_synchronized
    def get_epic(self, epic_id: int) -> Optional[Epic]:
        """Get a copy of an epic and record the view in history."""
        return self._view(self._epics.get(epic_id))

    @_synchronized
    def get_all_epics(self) -> List[Epic]:
        """Get copies of all epics in id order (not recorded in history)."""
        return self._copies(self._epics)

    @_synchronized
    def update_epic(self, epic: Epic) -> None:
        """Update an epic's name and description.

        Status and timing in the argument are ignored; they are always
        derived from the epic's subtasks. Unknown ids are ignored.

        Raises:
            TaskValidationError: If epic is None or not an Epic
        """
        self._require(epic, Epic)
        stored = self._epics.get(epic.id)
        if stored is None:
            logger.debug("update_skipped_unknown_id", kind="epic", epic_id=epic.id)
            return

        stored.name = epic.name
        stored.description = epic.description
        self._refresh_epic(epic.id)

        logger.info("epic_updated", epic_id=epic.id)
        self._on_change()

    @_synchronized
    def delete_epic(self, epic_id: int) -> None:
        """Delete an epic together with all of its subtasks."""
        epic = self._epics.get(epic_id)
        if epic is None:
            return

        for subtask_id in epic.subtask_ids:
            if self._subtasks.pop(subtask_id, None) is not None:
                self._unindex(subtask_id)
        del self._epics[epic_id]
        self._unindex(epic_id)

        logger.info("epic_deleted", epic_id=epic_id, subtasks=len(epic.subtask_ids))
        self._on_change()

    @_synchronized
    def delete_all_epics(self) -> None:
        """Delete every epic and, with them, every subtask."""
        for entity_id in [*self._subtasks, *self._epics]:
            self._unindex(entity_id)
        self._subtasks.clear()
        self._epics.clear()

        logger.info("all_epics_deleted")
        self._on_change()

    # ============================================================================
    # Subtasks
    # ============================================================================

    @_synchronized
    def create_subtask(
        self,
        name: str,
        description: str,
        epic_id: int,
        *,
        duration: Optional[timedelta] = None,
        start_time: Optional[datetime] = None,
    ) -> int:
        """Create a subtask under an existing epic.

        Args:
            name: Non-blank subtask name
            description: Subtask description (may be empty, not None)
            epic_id: Id of the owning epic
            duration: Optional planned duration
            start_time: Optional scheduled start

        Returns:
            Id of the new subtask

        Raises:
            TaskValidationError: If name or description is invalid
            EntityNotFoundError: If epic_id is not an existing epic
            TimeConflictError: If the scheduled interval overlaps another one
        """
        subtask = self._build(Subtask, name=name, description=description,
                              epic_id=epic_id, duration=duration, start_time=start_time)
        epic = self._epics.get(epic_id)
        if epic is None:
            raise EntityNotFoundError("Epic", epic_id)
        self._check_conflict(subtask)

        subtask.id = self._ids.next_id()
        self._subtasks[subtask.id] = subtask
        epic.add_subtask_id(subtask.id)
        self._index(subtask)
        self._refresh_epic(epic_id)

        logger.info("subtask_created", subtask_id=subtask.id, epic_id=epic_id, name=name)
        self._on_change()
        return subtask.id

    @_synchronized
    def get_subtask(self, subtask_id: int) -> Optional[Subtask]:
        """Get a copy of a subtask and record the view in history."""
        return self._view(self._subtasks.get(subtask_id))

    @_synchronized
    def get_all_subtasks(self) -> List[Subtask]:
        """Get copies of all subtasks in id order (not recorded in history)."""
        return self._copies(self._subtasks)

    @_synchronized
    def update_subtask(self, subtask: Subtask) -> None:
        """Replace the stored state of an existing subtask.

        The owning epic is recomputed afterwards. Unknown ids are ignored.

        Raises:
            TaskValidationError: If subtask is None, not a Subtask, or names
                a different epic than the stored subtask
            TimeConflictError: If the new interval overlaps another entity
        """
        self._require(subtask, Subtask)
        stored = self._subtasks.get(subtask.id)
        if stored is None:
            logger.debug("update_skipped_unknown_id", kind="subtask", subtask_id=subtask.id)
            return
        if subtask.epic_id != stored.epic_id:
            raise TaskValidationError(
                f"Subtask {subtask.id} belongs to epic {stored.epic_id}, not {subtask.epic_id}"
            )

        self._check_conflict(subtask)

        updated = subtask.snapshot()
        self._subtasks[updated.id] = updated
        self._index(updated)
        self._refresh_epic(updated.epic_id)

        logger.info("subtask_updated", subtask_id=updated.id, status=updated.status.value)
        self._on_change()

    @_synchronized
    def delete_subtask(self, subtask_id: int) -> None:
        """Delete a subtask and detach it from its epic."""
        subtask = self._subtasks.pop(subtask_id, None)
        if subtask is None:
            return
        self._unindex(subtask_id)

        epic = self._epics.get(subtask.epic_id)
        if epic is not None:
            epic.remove_subtask_id(subtask_id)
            self._refresh_epic(epic.id)

        logger.info("subtask_deleted", subtask_id=subtask_id, epic_id=subtask.epic_id)
        self._on_change()

    @_synchronized
    def delete_all_subtasks(self) -> None:
        """Delete every subtask and reset every epic to its empty state."""
        for subtask_id in list(self._subtasks):
            self._unindex(subtask_id)
        self._subtasks.clear()

        for epic in self._epics.values():
            epic.clear_subtask_ids()
        for epic_id in list(self._epics):
            self._refresh_epic(epic_id)

        logger.info("all_subtasks_deleted")
        self._on_change()

    @_synchronized
    def get_epic_subtasks(self, epic_id: int) -> List[Subtask]:
        """Get copies of an epic's subtasks in insertion order.

        Returns:
            List of subtasks; empty for an unknown epic
        """
        epic = self._epics.get(epic_id)
        if epic is None:
            return []
        return [s.snapshot() for s in self._live_subtasks(epic)]

    @_synchronized
    def kind_of(self, entity_id: int) -> Optional[TaskKind]:
        """Get the kind of a stored entity without recording a view."""
        entity = self._find(entity_id)
        return entity.kind if entity is not None else None

    @_synchronized
    def peek(self, entity_id: int) -> Optional[AnyTask]:
        """Get a copy of any stored entity without recording a view.

        Returns:
            Copy of the task, epic or subtask, or None if it does not exist
        """
        entity = self._find(entity_id)
        return entity.snapshot() if entity is not None else None

    # ============================================================================
    # History, priority and scheduling
    # ============================================================================

    @_synchronized
    def get_history(self) -> List[AnyTask]:
        """Get recently viewed entities, oldest first."""
        return self._history.list()

    @_synchronized
    def get_prioritized_tasks(self) -> List[AnyTask]:
        """Get scheduled tasks and subtasks ordered by start time, then id.

        Unscheduled entities are not included.
        """
        return [entity.snapshot() for entity in self._priority]

    @_synchronized
    def has_time_conflict(self, entity: Optional[TaskBase]) -> bool:
        """Check whether an entity would overlap any other scheduled entity."""
        if entity is None:
            return False
        return self._time_slots.has_conflict(entity)

    @staticmethod
    def is_overlapping(first: Optional[TaskBase], second: Optional[TaskBase]) -> bool:
        """Check two entities against each other directly.

        Entities without a start time never overlap, nor does an entity with
        itself. Intervals that only touch do not overlap.
        """
        if first is None or second is None or first.id == second.id:
            return False
        if first.start_time is None or second.start_time is None:
            return False
        return first.start_time < second.end_time and second.start_time < first.end_time

    @_synchronized
    def find_next_free_slot(
        self, duration_minutes: int, search_start: datetime
    ) -> Optional[datetime]:
        """Find the earliest free time for a duration, see TimeSlotIndex."""
        return self._time_slots.find_next_free_slot(duration_minutes, search_start)

    @_synchronized
    def get_time_slot_statistics(self) -> dict:
        """Get slot usage statistics of the conflict index."""
        return self._time_slots.get_statistics()

    # ============================================================================
    # Bulk export / restore
    # ============================================================================

    @_synchronized
    def export_state(self) -> Tuple[List[AnyTask], List[int]]:
        """Get every entity plus the history order.

        Returns:
            Tuple of (copies of tasks, epics and subtasks, each group in id
            order; history ids oldest first)
        """
        entities: List[AnyTask] = [
            *self._copies(self._tasks),
            *self._copies(self._epics),
            *self._copies(self._subtasks),
        ]
        return entities, self._history.ids()

    @_synchronized
    def restore(self, entities: Iterable[AnyTask], history_ids: Iterable[int] = ()) -> None:
        """Replace all state with previously exported entities.

        Original ids are kept and the id generator moves past the largest
        one. Epic subtask lists are rebuilt from the subtasks' epic ids and
        derived epic fields are recomputed. Entities that cannot be placed
        (duplicate id, missing epic) are skipped with a warning, as are
        history ids that match no entity.

        Args:
            entities: Entities with their original ids
            history_ids: Ids in history order, oldest first
        """
        self._reset()

        pending_subtasks: List[Subtask] = []
        for entity in entities:
            if isinstance(entity, Subtask):
                pending_subtasks.append(entity)
            else:
                self._restore_one(entity)
        for subtask in pending_subtasks:
            self._restore_one(subtask)

        for epic_id in list(self._epics):
            self._refresh_epic(epic_id)

        for entity_id in history_ids:
            entity = self._find(entity_id)
            if entity is None:
                logger.warning("history_id_unknown", entity_id=entity_id)
                continue
            self._history.record(entity)

        logger.info(
            "store_restored",
            tasks=len(self._tasks),
            epics=len(self._epics),
            subtasks=len(self._subtasks),
            history=len(self._history),
        )

    def _restore_one(self, entity: AnyTask) -> None:
        if entity.id <= 0 or self._find(entity.id) is not None:
            logger.warning("restore_skipped_bad_id", entity_id=entity.id, kind=entity.kind.value)
            return

        entity = entity.snapshot()
        if isinstance(entity, Epic):
            entity.clear_subtask_ids()
            self._epics[entity.id] = entity
        elif isinstance(entity, Subtask):
            epic = self._epics.get(entity.epic_id)
            if epic is None:
                logger.warning("restore_skipped_orphan", subtask_id=entity.id, epic_id=entity.epic_id)
                return
            self._subtasks[entity.id] = entity
            epic.add_subtask_id(entity.id)
        else:
            self._tasks[entity.id] = entity

        if not isinstance(entity, Epic):
            if self._time_slots.has_conflict(entity):
                logger.warning("restored_entity_overlaps", entity_id=entity.id)
            self._index(entity)
        self._ids.advance_past(entity.id)

    # ============================================================================
    # Helpers
    # ============================================================================

    @staticmethod
    def _build(model: type, **fields) -> TaskBase:
        name = fields.get("name")
        if name is None or not str(name).strip():
            raise TaskValidationError("Name must not be empty")
        if fields.get("description") is None:
            raise TaskValidationError("Description must not be None")
        try:
            return model(**fields)
        except pydantic.ValidationError as e:
            raise TaskValidationError(str(e)) from e

    @staticmethod
    def _require(entity: Optional[TaskBase], model: type) -> None:
        if entity is None:
            raise TaskValidationError(f"{model.__name__} must not be None")
        if not isinstance(entity, model):
            raise TaskValidationError(
                f"Expected {model.__name__}, got {type(entity).__name__}"
            )

    def _check_conflict(self, entity: TaskBase) -> None:
        if self._time_slots.has_conflict(entity):
            logger.warning("time_conflict_rejected", entity_id=entity.id, name=entity.name)
            raise TimeConflictError(entity.name, entity.id or None)

    def _view(self, entity: Optional[TaskBase]):
        if entity is None:
            return None
        self._history.record(entity)
        return entity.snapshot()

    @staticmethod
    def _copies(collection: Dict[int, TaskBase]) -> list:
        return [collection[entity_id].snapshot() for entity_id in sorted(collection)]

    def _find(self, entity_id: int) -> Optional[AnyTask]:
        for collection in (self._tasks, self._epics, self._subtasks):
            entity = collection.get(entity_id)
            if entity is not None:
                return entity
        return None

    def _live_subtasks(self, epic: Epic) -> List[Subtask]:
        return [self._subtasks[i] for i in epic.subtask_ids if i in self._subtasks]

    def _refresh_epic(self, epic_id: int) -> None:
        epic = self._epics.get(epic_id)
        if epic is not None:
            self._epics[epic_id] = recompute_epic(epic, self._live_subtasks(epic))

    def _index(self, entity: TaskBase) -> None:
        self._time_slots.add(entity)
        self._priority.add(entity)

    def _unindex(self, entity_id: int) -> None:
        self._time_slots.remove(entity_id)
        self._priority.remove(entity_id)
        self._history.remove(entity_id)

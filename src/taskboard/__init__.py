"""taskboard: in-memory store for tasks, epics and subtasks."""

from taskboard.exceptions import (
    EntityNotFoundError,
    IdSpaceExhaustedError,
    PersistenceError,
    TaskboardError,
    TaskValidationError,
    TimeConflictError,
)
from taskboard.models import Epic, Subtask, Task, TaskboardSettings, TaskKind, TaskStatus
from taskboard.persistence import FileBackedTaskManager
from taskboard.store import TaskManager

__version__ = "0.1.0"

__all__ = [
    "TaskManager",
    "FileBackedTaskManager",
    "Task",
    "Epic",
    "Subtask",
    "TaskKind",
    "TaskStatus",
    "TaskboardSettings",
    "TaskboardError",
    "TaskValidationError",
    "TimeConflictError",
    "EntityNotFoundError",
    "IdSpaceExhaustedError",
    "PersistenceError",
]

"""Data models for work items and settings."""

from taskboard.models.config import TaskboardSettings
from taskboard.models.task import (
    ENTITY_TYPES,
    AnyTask,
    Epic,
    Subtask,
    Task,
    TaskBase,
    TaskKind,
    TaskStatus,
)

__all__ = [
    "Task",
    "Epic",
    "Subtask",
    "TaskBase",
    "AnyTask",
    "TaskKind",
    "TaskStatus",
    "ENTITY_TYPES",
    "TaskboardSettings",
]

"""Exceptions raised by the task store and its collaborators."""

from typing import Optional


class TaskboardError(Exception):
    """Base exception for taskboard errors"""
    pass


class TaskValidationError(TaskboardError, ValueError):
    """Raised when an entity or argument is rejected before any state changes"""
    pass


class TimeConflictError(TaskValidationError):
    """Raised when a scheduled interval overlaps another indexed interval"""

    def __init__(self, name: str, entity_id: Optional[int] = None):
        self.name = name
        self.entity_id = entity_id
        super().__init__(f"'{name}' overlaps in time with an existing entity")


class EntityNotFoundError(TaskboardError, LookupError):
    """Raised when an operation requires an entity that does not exist"""

    def __init__(self, kind: str, entity_id: int):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} with id {entity_id} not found")


class IdSpaceExhaustedError(TaskboardError, RuntimeError):
    """Raised when the id generator has no ids left to issue"""
    pass


class PersistenceError(TaskboardError, OSError):
    """Raised when the store cannot be saved to or loaded from disk"""

    def __init__(self, path, message: str):
        self.path = path
        super().__init__(f"{message}: {path}")

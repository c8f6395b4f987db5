"""Data models for tasks, epics and subtasks."""

from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Literal, Optional, Type, TypeVar, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    field_validator,
    model_validator,
)

T = TypeVar("T", bound="TaskBase")


class TaskStatus(str, Enum):
    """Lifecycle status shared by every kind of work item."""

    NEW = "NEW"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


class TaskKind(str, Enum):
    """Discriminator for the three kinds of work item."""

    TASK = "TASK"
    EPIC = "EPIC"
    SUBTASK = "SUBTASK"


class TaskBase(BaseModel):
    """Common record for all work items.

    Identity is the pair (kind, id): two snapshots of the same stored entity
    compare equal even when their other fields differ.
    """

    model_config = ConfigDict(validate_assignment=True)

    kind: TaskKind
    id: int = Field(0, ge=0, description="Store-issued id, unique across all kinds")
    name: str = Field(..., description="Non-blank display name")
    description: str = Field(..., description="Free text, may be empty")
    status: TaskStatus = Field(TaskStatus.NEW, description="Lifecycle status")
    duration: timedelta = Field(
        default_factory=timedelta, description="Planned duration, never negative"
    )
    start_time: Optional[datetime] = Field(None, description="Scheduled start")

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name must not be blank")
        return value

    @field_validator("duration", mode="before")
    @classmethod
    def _duration_default(cls, value):
        return timedelta() if value is None else value

    @field_validator("duration")
    @classmethod
    def _duration_not_negative(cls, value: timedelta) -> timedelta:
        if value < timedelta():
            raise ValueError("duration must not be negative")
        return value

    @field_validator("start_time")
    @classmethod
    def _start_time_naive(cls, value: Optional[datetime]) -> Optional[datetime]:
        # schedules are naive local time, like the CSV format
        if value is not None and value.tzinfo is not None:
            raise ValueError("start_time must not carry a timezone")
        return value

    @property
    def end_time(self) -> Optional[datetime]:
        """Start time plus duration, or None for unscheduled items."""
        if self.start_time is None:
            return None
        return self.start_time + self.duration

    @property
    def is_scheduled(self) -> bool:
        return self.start_time is not None

    def snapshot(self: T) -> T:
        """Return an independent deep copy of this entity."""
        return self.model_copy(deep=True)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, TaskBase):
            return NotImplemented
        return self.kind == other.kind and self.id == other.id

    def __hash__(self) -> int:
        return hash((self.kind, self.id))


class Task(TaskBase):
    """A standalone work item."""

    kind: Literal[TaskKind.TASK] = Field(TaskKind.TASK, frozen=True)


class Epic(TaskBase):
    """A composite work item whose status and timing come from its subtasks.

    The store owns ``subtask_ids``; status, duration and start time are
    overwritten by the aggregator whenever subtasks change.
    """

    kind: Literal[TaskKind.EPIC] = Field(TaskKind.EPIC, frozen=True)
    subtask_ids: List[int] = Field(
        default_factory=list, description="Subtask ids in insertion order"
    )

    _end_time: Optional[datetime] = PrivateAttr(default=None)

    @property
    def end_time(self) -> Optional[datetime]:
        """Latest end among the subtasks, as of the last recomputation."""
        return self._end_time

    def add_subtask_id(self, subtask_id: int) -> None:
        if subtask_id == self.id:
            raise ValueError("an epic cannot contain itself as a subtask")
        self.subtask_ids.append(subtask_id)

    def remove_subtask_id(self, subtask_id: int) -> None:
        if subtask_id in self.subtask_ids:
            self.subtask_ids.remove(subtask_id)

    def clear_subtask_ids(self) -> None:
        self.subtask_ids.clear()

    def with_derived_fields(
        self,
        status: TaskStatus,
        duration: timedelta,
        start_time: Optional[datetime],
        end_time: Optional[datetime],
    ) -> "Epic":
        """Return a copy carrying freshly derived status and timing."""
        updated = self.model_copy(
            deep=True,
            update={"status": status, "duration": duration, "start_time": start_time},
        )
        updated._end_time = end_time
        return updated


class Subtask(TaskBase):
    """A work item owned by exactly one epic."""

    kind: Literal[TaskKind.SUBTASK] = Field(TaskKind.SUBTASK, frozen=True)
    epic_id: int = Field(..., ge=0, frozen=True, description="Owning epic id")

    @model_validator(mode="after")
    def _not_its_own_epic(self) -> "Subtask":
        if self.id and self.id == self.epic_id:
            raise ValueError("subtask id must differ from its epic id")
        return self


AnyTask = Union[Task, Epic, Subtask]

ENTITY_TYPES: Dict[TaskKind, Type[TaskBase]] = {
    TaskKind.TASK: Task,
    TaskKind.EPIC: Epic,
    TaskKind.SUBTASK: Subtask,
}

"""Derivation of epic status and timing from subtasks."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

from taskboard.models.task import Epic, Subtask, TaskStatus


@dataclass(frozen=True)
class EpicAggregate:
    """Fields of an epic that are derived from its subtasks."""

    status: TaskStatus = TaskStatus.NEW
    duration: timedelta = timedelta()
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


def aggregate_subtasks(subtasks: Iterable[Subtask]) -> EpicAggregate:
    """Compute the derived epic fields for a set of subtasks.

    Status rules:
    - no subtasks, or all NEW -> NEW
    - all DONE -> DONE
    - anything else (some IN_PROGRESS, or a NEW/DONE mix) -> IN_PROGRESS

    Args:
        subtasks: The epic's current subtasks

    Returns:
        EpicAggregate with status, summed duration, earliest start, latest end
    """
    subtasks = list(subtasks)
    if not subtasks:
        return EpicAggregate()

    statuses = {subtask.status for subtask in subtasks}
    if statuses == {TaskStatus.DONE}:
        status = TaskStatus.DONE
    elif statuses == {TaskStatus.NEW}:
        status = TaskStatus.NEW
    else:
        status = TaskStatus.IN_PROGRESS

    duration = sum((subtask.duration for subtask in subtasks), timedelta())
    starts = [s.start_time for s in subtasks if s.start_time is not None]
    ends = [s.end_time for s in subtasks if s.end_time is not None]

    return EpicAggregate(
        status=status,
        duration=duration,
        start_time=min(starts) if starts else None,
        end_time=max(ends) if ends else None,
    )


def recompute_epic(epic: Epic, subtasks: Iterable[Subtask]) -> Epic:
    """Return a copy of an epic with its derived fields brought up to date.

    Neither argument is modified.
    """
    aggregate = aggregate_subtasks(subtasks)
    return epic.with_derived_fields(
        status=aggregate.status,
        duration=aggregate.duration,
        start_time=aggregate.start_time,
        end_time=aggregate.end_time,
    )

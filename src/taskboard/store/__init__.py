"""Entity store, id generation and epic aggregation."""

from taskboard.store.aggregator import EpicAggregate, aggregate_subtasks, recompute_epic
from taskboard.store.ids import IdGenerator
from taskboard.store.manager import TaskManager

__all__ = [
    "TaskManager",
    "IdGenerator",
    "EpicAggregate",
    "aggregate_subtasks",
    "recompute_epic",
]

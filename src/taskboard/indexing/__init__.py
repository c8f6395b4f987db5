"""Secondary indices kept alongside the entity store."""

from taskboard.indexing.history import HistoryTracker
from taskboard.indexing.priority import PriorityIndex
from taskboard.indexing.timeslots import TimeSlotIndex

__all__ = [
    "HistoryTracker",
    "PriorityIndex",
    "TimeSlotIndex",
]

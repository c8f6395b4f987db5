"""Time-slot occupancy index for detecting overlapping scheduled items.

The planning horizon is cut into fixed-width slots. A bitmap marks every slot
touched by an indexed interval, and each slot remembers which entities touch
it. A conflict check only visits the slots the candidate itself covers, so its
cost does not grow with the number of indexed entities.
"""

from datetime import datetime, timedelta
from typing import Dict, Optional, Set, Tuple

import structlog

from taskboard.exceptions import TaskValidationError
from taskboard.models.config import TaskboardSettings
from taskboard.models.task import TaskBase

logger = structlog.get_logger(__name__)

Interval = Tuple[datetime, datetime]


class TimeSlotIndex:
    """Bitmap-backed interval occupancy over a fixed planning horizon.

    Intervals are half-open: an item ending at 12:00 and another starting at
    12:00 do not overlap, and an interval ending exactly on a slot boundary
    does not occupy the slot after it. Slots only narrow the search; overlap
    inside a shared slot is decided on the exact intervals, so any positive
    overlap is caught and touching intervals never are.
    """

    def __init__(
        self,
        base_time: datetime,
        slot_minutes: int = 15,
        horizon_days: int = 365,
    ) -> None:
        """Initialize an empty index.

        Args:
            base_time: Start of the planning horizon
            slot_minutes: Width of one slot in minutes
            horizon_days: Length of the planning horizon in days
        """
        if slot_minutes <= 0 or horizon_days <= 0:
            raise ValueError("slot_minutes and horizon_days must be positive")

        self.base_time = base_time
        self.slot_minutes = slot_minutes
        self.slot_width = timedelta(minutes=slot_minutes)
        self.total_slots = horizon_days * 24 * 60 // slot_minutes
        self.horizon_end = base_time + self.slot_width * self.total_slots

        self._bits = bytearray((self.total_slots + 7) // 8)
        self._entity_slots: Dict[int, range] = {}
        self._intervals: Dict[int, Interval] = {}
        self._slot_owners: Dict[int, Set[int]] = {}

    @classmethod
    def from_settings(cls, settings: TaskboardSettings) -> "TimeSlotIndex":
        """Build an index from taskboard settings."""
        return cls(
            base_time=settings.base_time,
            slot_minutes=settings.slot_minutes,
            horizon_days=settings.horizon_days,
        )

    # ============================================================================
    # Index maintenance
    # ============================================================================

    def add(self, entity: TaskBase) -> None:
        """Mark the slots covered by an entity's interval.

        Entities without a start time, with zero duration, or reaching outside
        the horizon are not indexed. Re-adding an id replaces its old slots.

        Args:
            entity: Entity to index
        """
        self.remove(entity.id)

        interval = self._interval_of(entity)
        if interval is None:
            return

        slots = self._slot_range(*interval)
        if slots is None:
            logger.debug(
                "interval_outside_horizon",
                entity_id=entity.id,
                start=interval[0].isoformat(),
            )
            return

        for slot in slots:
            self._set_bit(slot)
            self._slot_owners.setdefault(slot, set()).add(entity.id)

        self._entity_slots[entity.id] = slots
        self._intervals[entity.id] = interval

    def remove(self, entity_id: int) -> None:
        """Release the slots previously recorded for an id.

        Args:
            entity_id: Id of the entity to drop; unknown ids are ignored
        """
        slots = self._entity_slots.pop(entity_id, None)
        if slots is None:
            return

        del self._intervals[entity_id]
        for slot in slots:
            owners = self._slot_owners[slot]
            owners.discard(entity_id)
            if not owners:
                del self._slot_owners[slot]
                self._clear_bit(slot)

    def clear(self) -> None:
        """Drop every indexed interval."""
        self._bits = bytearray(len(self._bits))
        self._entity_slots.clear()
        self._intervals.clear()
        self._slot_owners.clear()

    # ============================================================================
    # Queries
    # ============================================================================

    def has_conflict(self, candidate: TaskBase) -> bool:
        """Check whether a candidate overlaps any other indexed interval.

        The candidate's own id is never treated as a conflict, so an entity
        can be re-checked while its previous version is still indexed.

        Args:
            candidate: Entity with the interval to check

        Returns:
            True if some other indexed interval overlaps the candidate's
        """
        interval = self._interval_of(candidate)
        if interval is None:
            return False

        slots = self._slot_range(*interval)
        if slots is None:
            return False

        start, end = interval
        for slot in slots:
            if not self._get_bit(slot):
                continue
            for owner_id in self._slot_owners[slot]:
                if owner_id == candidate.id:
                    continue
                other_start, other_end = self._intervals[owner_id]
                if start < other_end and other_start < end:
                    return True
        return False

    def find_next_free_slot(
        self, duration_minutes: int, search_start: datetime
    ) -> Optional[datetime]:
        """Find the earliest run of free slots long enough for a duration.

        Args:
            duration_minutes: Required length in minutes
            search_start: Earliest acceptable start

        Returns:
            Slot-aligned start time not earlier than search_start, or None if
            the horizon has no such run

        Raises:
            TaskValidationError: If duration_minutes is not positive
        """
        if duration_minutes <= 0:
            raise TaskValidationError("duration_minutes must be positive")

        required = -(-duration_minutes // self.slot_minutes)
        if search_start <= self.base_time:
            first = 0
        else:
            first = -(-(search_start - self.base_time) // self.slot_width)

        run = 0
        for slot in range(first, self.total_slots):
            if self._get_bit(slot):
                run = 0
                continue
            run += 1
            if run == required:
                return self.base_time + self.slot_width * (slot - required + 1)
        return None

    def occupied_slots(self) -> int:
        """Count the slots currently marked as occupied."""
        return int.from_bytes(self._bits, "little").bit_count()

    def get_statistics(self) -> dict:
        """Get slot usage statistics.

        Returns:
            Dictionary with slot stats
        """
        occupied = self.occupied_slots()
        occupancy = occupied / self.total_slots * 100

        return {
            "total_slots": self.total_slots,
            "slot_minutes": self.slot_minutes,
            "occupied_slots": occupied,
            "indexed_entities": len(self._entity_slots),
            "occupancy": f"{occupancy:.2f}%",
        }

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entity_slots

    def __len__(self) -> int:
        return len(self._entity_slots)

    # ============================================================================
    # Helpers
    # ============================================================================

    @staticmethod
    def _interval_of(entity: TaskBase) -> Optional[Interval]:
        if entity.start_time is None or entity.duration <= timedelta():
            return None
        return entity.start_time, entity.start_time + entity.duration

    def _slot_range(self, start: datetime, end: datetime) -> Optional[range]:
        if start < self.base_time or end > self.horizon_end:
            return None
        first = (start - self.base_time) // self.slot_width
        # ceiling division: a boundary-aligned end does not take the next slot
        last = -(-(end - self.base_time) // self.slot_width)
        return range(first, last)

    def _get_bit(self, slot: int) -> bool:
        return bool(self._bits[slot >> 3] & (1 << (slot & 7)))

    def _set_bit(self, slot: int) -> None:
        self._bits[slot >> 3] |= 1 << (slot & 7)

    def _clear_bit(self, slot: int) -> None:
        self._bits[slot >> 3] &= ~(1 << (slot & 7)) & 0xFF

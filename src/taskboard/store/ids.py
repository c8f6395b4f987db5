"""Id generation shared by every kind of work item."""

from taskboard.exceptions import IdSpaceExhaustedError

MAX_ID = 2**31 - 1


class IdGenerator:
    """Issues unique, strictly increasing integer ids starting at 1."""

    def __init__(self, start: int = 1, max_id: int = MAX_ID) -> None:
        self._next = start
        self.max_id = max_id

    def next_id(self) -> int:
        """Issue the next id.

        Raises:
            IdSpaceExhaustedError: If every id up to max_id has been issued
        """
        if self._next > self.max_id:
            raise IdSpaceExhaustedError(f"No ids left to issue (max {self.max_id})")
        issued = self._next
        self._next += 1
        return issued

    def advance_past(self, used_id: int) -> None:
        """Make sure an externally assigned id is never issued again."""
        if used_id >= self._next:
            self._next = used_id + 1

    @property
    def peek(self) -> int:
        """The id the next call to next_id() would return."""
        return self._next

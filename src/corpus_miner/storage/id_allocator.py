"""Monotonic id allocator shared by all workers.

The same allocator backs project ids and content ids. Allocation is
linearizable: no two callers ever receive the same id, and ids come out in
strictly increasing order.
"""

import threading


class IdAllocator:
    """Thread-safe monotonic counter with a raisable floor."""

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError(f"Allocator start must be non-negative, got {start}")
        self._next = start
        self._lock = threading.Lock()

    @property
    def next_id(self) -> int:
        """The id the next allocate() call will return."""
        with self._lock:
            return self._next

    def allocate(self) -> int:
        """Claim the next id."""
        with self._lock:
            value = self._next
            self._next += 1
            return value

    def compare_and_set(self, expected: int, new: int) -> bool:
        """Set the counter to new only if it still holds expected."""
        with self._lock:
            if self._next != expected:
                return False
            self._next = new
            return True

    def raise_floor(self, floor: int) -> None:
        """Ensure every later allocate() returns at least floor.

        Never lowers the counter: if a concurrent allocation already moved it
        past floor, the retry loop observes that and stops.
        """
        while True:
            current = self.next_id
            if current >= floor:
                return
            if self.compare_and_set(current, floor):
                return

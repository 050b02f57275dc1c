from collections import deque
import time
from typing import Callable, Deque, Tuple


class ErrorWindow:
    """
    Unexpected errors seen over the last `window_seconds`.

    Only real faults are recorded here, never the expected 4xx auth failures.
    `/internal/ready` reports 503 while more than `limit` errors are in the
    window. Entries age out on their own, so readiness recovers once the
    burst is over.
    """

    def __init__(
        self,
        limit: int = 100,
        window_seconds: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._entries: Deque[Tuple[float, int]] = deque()
        self._total = 0

    def record(self, weight: int = 1) -> int:
        """Record `weight` errors now and return the count inside the window."""
        self.prune()
        if weight > 0:
            self._entries.append((self._clock(), weight))
            self._total += weight
        return self._total

    def prune(self) -> None:
        cutoff = self._clock() - self.window_seconds
        while self._entries and self._entries[0][0] <= cutoff:
            _, weight = self._entries.popleft()
            self._total -= weight

    @property
    def recent(self) -> int:
        self.prune()
        return self._total

    def is_ready(self) -> bool:
        return self.recent <= self.limit

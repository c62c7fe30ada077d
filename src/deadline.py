"""Per-request time budget and cancellation flag."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from src.errors import DeadlineExceeded, PipelineCancelled


class Deadline:
    """Time budget threaded through one pipeline invocation.

    Args:
        seconds: Total budget for the request. ``None`` means unbounded.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        seconds: float | None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._expires_at = None if seconds is None else clock() + seconds
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def check(self, stage: str) -> None:
        """Raise if the request was cancelled or its budget is spent."""
        if self._cancelled.is_set():
            raise PipelineCancelled(stage)
        self.remaining(stage)

    def remaining(self, stage: str) -> float | None:
        """Seconds left in the budget, or ``None`` when unbounded."""
        if self._expires_at is None:
            return None
        left = self._expires_at - self._clock()
        if left <= 0:
            raise DeadlineExceeded(stage)
        return left

    def timeout_for(self, stage: str, cap: float | None) -> float | None:
        """Timeout for one outbound call: the smaller of *cap* and what is left."""
        self.check(stage)
        left = self.remaining(stage)
        if left is None:
            return cap
        if cap is None:
            return left
        return min(cap, left)

"""
Clocks and a cooperative timer scheduler.

The frame loop is single threaded: before each frame it asks the scheduler
to fire whatever timers are due, so timer callbacks and frame processing
never overlap. Time comes from an injectable clock, which lets replayed
sessions and tests run on recorded timestamps instead of the wall clock.
"""

import heapq
import itertools
import time
from typing import Callable, List, Optional


class MonotonicClock:
    """Wall clock in milliseconds (time.monotonic)."""

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start_ms: float = 0.0):
        self._now = float(start_ms)

    def now_ms(self) -> float:
        return self._now

    def set(self, now_ms: float):
        if now_ms < self._now:
            raise ValueError(f"clock cannot go backwards ({now_ms} < {self._now})")
        self._now = float(now_ms)

    def advance(self, delta_ms: float):
        self.set(self._now + float(delta_ms))


class SchedulerError(RuntimeError):
    """The scheduler refused to arm a timer."""


class TimerHandle:
    """Returned by call_later/call_every; pass to cancel()."""

    def __init__(self, due_ms: float, callback: Callable[[], None], interval_ms: Optional[float] = None):
        self.due_ms = due_ms
        self.callback = callback
        self.interval_ms = interval_ms
        self.cancelled = False

    @property
    def periodic(self) -> bool:
        return self.interval_ms is not None


class CooperativeScheduler:

    def __init__(self, clock):
        self.clock = clock
        self._heap: List = []
        self._seq = itertools.count()
        self._closed = False

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        return self._arm(self.clock.now_ms() + max(0.0, float(delay_ms)), callback, None)

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle:
        if interval_ms <= 0:
            raise SchedulerError(f"periodic interval must be positive, got {interval_ms}")
        return self._arm(self.clock.now_ms() + float(interval_ms), callback, float(interval_ms))

    def cancel(self, handle: Optional[TimerHandle]):
        """Cancel a timer. Unknown, fired or already cancelled handles are ignored."""
        if handle is not None:
            handle.cancelled = True

    def close(self):
        """Cancel everything and refuse new timers."""
        for _, _, handle in self._heap:
            handle.cancelled = True
        self._heap.clear()
        self._closed = True

    @property
    def pending(self) -> int:
        return sum(1 for _, _, h in self._heap if not h.cancelled)

    def run_due(self, now_ms: Optional[float] = None) -> int:
        """Fire every timer due at `now_ms` (default: clock time), oldest first."""
        if now_ms is None:
            now_ms = self.clock.now_ms()
        fired = 0
        while self._heap and self._heap[0][0] <= now_ms:
            due, _, handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            if handle.periodic:
                handle.due_ms = due + handle.interval_ms
                heapq.heappush(self._heap, (handle.due_ms, next(self._seq), handle))
            handle.callback()
            fired += 1
        return fired

    def _arm(self, due_ms: float, callback, interval_ms) -> TimerHandle:
        if self._closed:
            raise SchedulerError("scheduler is closed")
        handle = TimerHandle(due_ms, callback, interval_ms)
        heapq.heappush(self._heap, (due_ms, next(self._seq), handle))
        return handle


__all__ = [
    'MonotonicClock',
    'ManualClock',
    'SchedulerError',
    'TimerHandle',
    'CooperativeScheduler',
]

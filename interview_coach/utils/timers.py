"""
Cancellable timer scheduling for session countdowns and deadlines.

Two schedulers share one interface:
- ThreadingScheduler: real time, callbacks run on daemon timer threads
- ManualScheduler: virtual clock advanced explicitly (replays and tests)
"""
import heapq
import itertools
import logging
import threading
import time
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger("timers")


class TimerHandle:
    """Handle for a scheduled callback. Cancelling guarantees the callback never runs."""

    def __init__(self, callback: Callable[[], None]):
        self._callback = callback
        self._lock = threading.Lock()
        self._cancelled = False
        self._fired = False
        self._timer: Optional[threading.Timer] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def active(self) -> bool:
        return not (self._cancelled or self._fired)

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            timer = self._timer
        if timer is not None:
            timer.cancel()

    def fire(self) -> None:
        with self._lock:
            if self._cancelled or self._fired:
                return
            self._fired = True
        self._callback()


class ThreadingScheduler:
    """Scheduler backed by threading.Timer and the monotonic clock."""

    def now(self) -> float:
        return time.monotonic()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(callback)
        timer = threading.Timer(delay, self._run, args=(handle,))
        timer.daemon = True
        handle._timer = timer
        timer.start()
        return handle

    @staticmethod
    def _run(handle: TimerHandle) -> None:
        try:
            handle.fire()
        except Exception as e:
            logger.error("Timer callback failed: %s", e)


class ManualScheduler:
    """
    Scheduler with a virtual clock.

    Nothing runs until advance() is called; due callbacks then run in
    deadline order on the calling thread, and callbacks scheduled while
    advancing run too if they fall inside the advanced window.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: List[Tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(callback)
        heapq.heappush(self._queue, (self._now + max(0.0, delay), next(self._seq), handle))
        return handle

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every callback that falls due."""
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            handle.fire()
        self._now = target
        self._drop_cancelled()

    def _drop_cancelled(self) -> None:
        live = [entry for entry in self._queue if entry[2].active]
        if len(live) != len(self._queue):
            heapq.heapify(live)
            self._queue = live

    def advance_to(self, timestamp: float) -> None:
        if timestamp > self._now:
            self.advance(timestamp - self._now)

    @property
    def pending(self) -> int:
        """Number of scheduled callbacks that are still live."""
        self._drop_cancelled()
        return len(self._queue)

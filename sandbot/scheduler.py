"""Timer backends for the polling session."""
from __future__ import annotations

import heapq
import itertools
import logging
import threading
from typing import Callable, List, Protocol, Tuple

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, fn: Callback) -> TimerHandle: ...


class ThreadScheduler:
    """Runs callbacks on daemon ``threading.Timer`` threads."""

    def call_later(self, delay: float, fn: Callback) -> threading.Timer:
        timer = threading.Timer(max(0.0, delay), _guarded(fn))
        timer.daemon = True
        timer.start()
        return timer


def _guarded(fn: Callback) -> Callback:
    def run() -> None:
        try:
            fn()
        except Exception:  # pragma: no cover - a timer must never die silently
            logger.exception("scheduled callback failed")

    return run


class ManualHandle:
    def __init__(self, scheduler: "ManualScheduler") -> None:
        self._scheduler = scheduler
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        if not self.cancelled and not self.fired:
            self.cancelled = True
            self._scheduler.cancel_count += 1


class ManualScheduler:
    """Deterministic scheduler driven by :meth:`advance`.

    Callbacks run synchronously on the caller's thread once the virtual clock
    reaches their due time.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self.armed_count = 0
        self.cancel_count = 0
        self._seq = itertools.count()
        self._queue: List[Tuple[float, int, Callback, ManualHandle]] = []

    def call_later(self, delay: float, fn: Callback) -> ManualHandle:
        handle = ManualHandle(self)
        self.armed_count += 1
        heapq.heappush(self._queue, (self.now + max(0.0, delay), next(self._seq), fn, handle))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for *_, h in self._queue if not h.cancelled)

    def advance(self, seconds: float = 0.0) -> int:
        """Move the clock forward and run every callback that became due."""
        target = self.now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, fn, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.now = max(self.now, due)
            handle.fired = True
            fn()
            ran += 1
        self.now = target
        return ran


__all__ = ["Scheduler", "TimerHandle", "ThreadScheduler", "ManualScheduler"]

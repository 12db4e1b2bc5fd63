"""Cancellable one-shot timers on the engine's single logical clock.

The queue never reads wall time. The owner advances it with run_due(now)
from frame timestamps or explicit ticks, so timers and frames are
serialized on one context.
"""

import heapq
import itertools
import logging

log = logging.getLogger("refraction")


class TimerHandle:
    def __init__(self, deadline: float, callback, name: str = ""):
        self.deadline = deadline
        self.name = name
        self._callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)


class TimerQueue:
    def __init__(self, now: float = 0.0):
        self._heap = []
        self._seq = itertools.count()
        self.now = now

    def schedule(self, delay_s: float, callback, name: str = "") -> TimerHandle:
        handle = TimerHandle(self.now + delay_s, callback, name)
        heapq.heappush(self._heap, (handle.deadline, next(self._seq), handle))
        log.debug(f"Timer '{name}' due at {handle.deadline:.3f}")
        return handle

    def run_due(self, now: float) -> int:
        """Fire every pending timer with deadline <= now, in deadline order.

        Each callback sees the clock at its own deadline, so timers it
        schedules are relative to that instant and fire in this same pass
        if already due.
        """
        fired = 0
        while self._heap and self._heap[0][0] <= now:
            deadline, _, handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            self.now = max(self.now, deadline)
            handle.fired = True
            handle._callback()
            fired += 1
        self.now = max(self.now, now)
        return fired

    def cancel_all(self):
        for _, _, handle in self._heap:
            handle.cancel()
        self._heap.clear()

    def __len__(self):
        return sum(1 for _, _, h in self._heap if h.pending)

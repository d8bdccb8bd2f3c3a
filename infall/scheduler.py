"""
Deferred-task scheduling on a virtual clock.

The engine has exactly one suspension point: the delay between the last
body dying and the population reset. It is modelled as a scheduled task
(delay + callback + cancel handle) on a clock that only moves when the
owner advances it, so a frame loop drives it with each tick's elapsed time
and tests can step it deterministically instead of waiting on wall time.
"""

import heapq
import itertools
from typing import Callable, List, Optional


class TimerHandle:
    """Cancel handle of one scheduled callback."""

    __slots__ = ("due", "callback", "_cancelled", "_fired")

    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self._cancelled = False
        self._fired = False

    def cancel(self) -> None:
        """Cancel the callback. Idempotent; no effect once fired."""
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def pending(self) -> bool:
        return not (self._cancelled or self._fired)

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "fired" if self._fired else "pending"
        return f"TimerHandle(due={self.due!r}, {state})"


class TaskScheduler:
    """
    Single-threaded scheduler on a virtual clock.

    Examples
    --------
    >>> fired = []
    >>> sched = TaskScheduler()
    >>> handle = sched.call_later(2.0, lambda: fired.append(sched.now))
    >>> _ = sched.advance(1.5)
    >>> fired
    []
    >>> _ = sched.advance(1.0)
    >>> fired
    [2.5]
    """

    def __init__(self, start: float = 0.0):
        self.now = float(start)
        self._queue: List[tuple] = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Schedule `callback` to run once `delay` clock seconds from now."""
        if delay < 0 or delay != delay:
            raise ValueError(f"delay must be non-negative, got {delay}")
        handle = TimerHandle(self.now + delay, callback)
        heapq.heappush(self._queue, (handle.due, next(self._counter), handle))
        return handle

    def advance(self, dt: float) -> int:
        """
        Move the clock forward by `dt` and run every callback now due.

        Callbacks run in due-time order (ties in scheduling order). A callback
        may schedule further tasks; those run in this call if already due.

        Returns
        -------
        int
            Number of callbacks that ran.
        """
        if dt < 0 or dt != dt:
            raise ValueError(f"dt must be non-negative, got {dt}")
        self.now += dt

        ran = 0
        while self._queue and self._queue[0][0] <= self.now:
            _, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            handle._fired = True
            handle.callback()
            ran += 1
        return ran

    @property
    def pending(self) -> int:
        """Number of scheduled callbacks that have neither fired nor been cancelled."""
        return sum(1 for _, _, handle in self._queue if handle.pending)

    def next_due(self) -> Optional[float]:
        due = [handle.due for _, _, handle in self._queue if handle.pending]
        return min(due) if due else None

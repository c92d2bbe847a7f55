"""Single-threaded timer service.

Every timed phase, feedback pause and flip-back delay in the trainer is a
one-shot timer armed on a ``TimerQueue``. Nothing fires on its own: the owner
of the queue (the pygame frame loop, or a test after advancing a fake clock)
calls :meth:`TimerQueue.pump`, which runs every due callback on the calling
thread. That keeps all state transitions on one logical task queue.

Work produced on other threads (the narrator worker) is handed back with
:meth:`TimerQueue.call_soon_threadsafe` and runs on the next pump.
"""

from __future__ import annotations

import heapq
import queue
from collections.abc import Callable
from dataclasses import dataclass, field

from .clock import Clock


@dataclass(order=True, slots=True)
class _Timer:
    due_s: float
    timer_id: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)


class TimerQueue:
    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._heap: list[_Timer] = []
        self._live: dict[int, _Timer] = {}
        self._next_id = 1
        self._inbox: queue.SimpleQueue[Callable[[], None]] = queue.SimpleQueue()

    @property
    def clock(self) -> Clock:
        return self._clock

    def now(self) -> float:
        return self._clock.now()

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> int:
        """Arm a one-shot timer and return its id."""

        timer_id = self._next_id
        self._next_id += 1
        timer = _Timer(
            due_s=self._clock.now() + max(0.0, float(delay_s)),
            timer_id=timer_id,
            callback=callback,
        )
        heapq.heappush(self._heap, timer)
        self._live[timer_id] = timer
        return timer_id

    def cancel(self, timer_id: int | None) -> bool:
        if timer_id is None:
            return False
        timer = self._live.pop(timer_id, None)
        if timer is None:
            return False
        timer.cancelled = True
        return True

    def call_soon_threadsafe(self, callback: Callable[[], None]) -> None:
        self._inbox.put(callback)

    def pending_count(self) -> int:
        return len(self._live)

    def pump(self) -> int:
        """Run handed-off callbacks and every due timer. Returns timers fired."""

        while True:
            try:
                handoff = self._inbox.get_nowait()
            except queue.Empty:
                break
            handoff()

        fired = 0
        while self._heap:
            head = self._heap[0]
            if head.cancelled:
                heapq.heappop(self._heap)
                continue
            if head.due_s > self._clock.now():
                break
            heapq.heappop(self._heap)
            self._live.pop(head.timer_id, None)
            fired += 1
            head.callback()
        return fired

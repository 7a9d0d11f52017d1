"""Cooperative timers that feed expiry events back into a session.

Nothing here spawns threads. A ``TimerQueue`` only fires callbacks when its
host calls ``run_due()`` (or ``advance()`` with a ``ManualClock``), so every
state transition happens on the host's single thread of control.
"""

from __future__ import annotations

import heapq
import itertools
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

__all__ = [
    "Clock",
    "ManualClock",
    "Scheduler",
    "TimerHandle",
    "TimerQueue",
    "monotonic_ms",
]

Clock = Callable[[], int]


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class ManualClock:
    """Deterministic millisecond clock for tests and replays."""

    def __init__(self, start_ms: int = 0) -> None:
        self._now = int(start_ms)

    def __call__(self) -> int:
        return self._now

    def advance(self, ms: int) -> int:
        if ms < 0:
            raise ValueError("Cannot move a clock backwards.")
        self._now += int(ms)
        return self._now

    def set(self, now_ms: int) -> None:
        if now_ms < self._now:
            raise ValueError("Cannot move a clock backwards.")
        self._now = int(now_ms)


@dataclass(eq=False)
class TimerHandle:
    due_ms: int
    callback: Callable[[], None] = field(repr=False)
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class Scheduler(Protocol):
    """What a session needs from its host to arm single-shot timers."""

    def call_later(
        self, delay_ms: int, callback: Callable[[], None]
    ) -> TimerHandle: ...


class TimerQueue:
    """Single-shot timers ordered by due time."""

    def __init__(self, clock: Clock = monotonic_ms) -> None:
        self.clock = clock
        self._heap: list[tuple[int, int, TimerHandle]] = []
        self._counter = itertools.count()

    def call_later(
        self, delay_ms: int, callback: Callable[[], None]
    ) -> TimerHandle:
        handle = TimerHandle(self.clock() + max(0, int(delay_ms)), callback)
        heapq.heappush(self._heap, (handle.due_ms, next(self._counter), handle))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle in self._heap if not handle.cancelled)

    def next_due_ms(self) -> Optional[int]:
        self._drop_cancelled()
        return self._heap[0][0] if self._heap else None

    def run_due(self) -> int:
        """Fire every live timer whose due time has passed; return the count."""
        fired = 0
        while True:
            self._drop_cancelled()
            if not self._heap or self._heap[0][0] > self.clock():
                return fired
            _, _, handle = heapq.heappop(self._heap)
            handle.cancelled = True
            handle.callback()
            fired += 1

    def advance(self, ms: int) -> int:
        """Step a ``ManualClock`` forward, firing timers at their due times.

        Timers armed by a callback are measured from the moment that callback
        ran, not from the end of the step.
        """
        if not isinstance(self.clock, ManualClock):
            raise TypeError("advance() requires a ManualClock.")
        target = self.clock() + int(ms)
        fired = 0
        while True:
            due = self.next_due_ms()
            if due is None or due > target:
                break
            self.clock.set(max(due, self.clock()))
            fired += self.run_due()
        self.clock.set(target)
        return fired + self.run_due()

    def _drop_cancelled(self) -> None:
        while self._heap and self._heap[0][2].cancelled:
            heapq.heappop(self._heap)

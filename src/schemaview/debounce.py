"""Debounced emission with an owned, cancellable timer handle."""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from typing import Any, Callable, List, Protocol


logger = logging.getLogger("schemaview.debounce")


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle: ...

    def now_ms(self) -> float: ...


class AsyncioScheduler:
    """Schedules callbacks on the running asyncio loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        return self._get_loop().call_later(max(0.0, delay_ms) / 1000.0, callback)

    def now_ms(self) -> float:
        return self._get_loop().time() * 1000.0


class _ManualTimer:
    def __init__(self, due_ms: float, callback: Callable[[], None]) -> None:
        self.due_ms = due_ms
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual clock: timers fire only when ``advance`` moves time past them."""

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now = float(start_ms)
        self._seq = itertools.count()
        self._queue: List[tuple] = []

    def now_ms(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _ManualTimer(self._now + max(0.0, delay_ms), callback)
        heapq.heappush(self._queue, (timer.due_ms, next(self._seq), timer))
        return timer

    def pending(self) -> int:
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)

    def advance(self, ms: float) -> None:
        self.advance_to(self._now + ms)

    def advance_to(self, target_ms: float) -> None:
        while self._queue and self._queue[0][0] <= target_ms:
            due, _, timer = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            if not timer.cancelled:
                timer.callback()
        self._now = max(self._now, target_ms)


class Debouncer:
    """Emits the latest pushed value once ``delay_ms`` passes without a new push.

    Each push cancels the pending timer, so at most one emission is ever
    pending. ``close`` cancels it for good.
    """

    def __init__(self, delay_ms: float, callback: Callable[[Any], None], scheduler: Scheduler | None = None) -> None:
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        self.delay_ms = delay_ms
        self._callback = callback
        self._scheduler = scheduler or AsyncioScheduler()
        self._handle: TimerHandle | None = None
        self._value: Any = None
        self._closed = False

    @property
    def pending(self) -> bool:
        return self._handle is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, value: Any) -> None:
        if self._closed:
            logger.debug("debounce_push_after_close")
            return
        self.cancel()
        self._value = value
        self._handle = self._scheduler.call_later(self.delay_ms, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> None:
        if self._handle is not None:
            self.cancel()
            self._emit()

    def close(self) -> None:
        self.cancel()
        self._closed = True

    def _fire(self) -> None:
        self._handle = None
        if self._closed:
            return
        self._emit()

    def _emit(self) -> None:
        value = self._value
        self._value = None
        self._callback(value)

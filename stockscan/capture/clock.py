"""Cancellable single-shot timers over asyncio or a virtual clock."""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from typing import Any, Callable, Coroutine, Protocol

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def now(self) -> float:
        ...

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        ...

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> "asyncio.Task[Any]":
        ...


def _log_task_failure(task: "asyncio.Task[Any]") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("background task %s failed: %s", task.get_name(), exc)


class AsyncioScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callback) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay), callback)

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> "asyncio.Task[Any]":
        task = self.loop.create_task(coro)
        task.add_done_callback(_log_task_failure)
        return task


class _ManualHandle:
    __slots__ = ("deadline", "callback", "cancelled")

    def __init__(self, deadline: float, callback: Callback) -> None:
        self.deadline = deadline
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual monotonic clock; time only moves through ``advance``.

    Due callbacks fire in deadline order, FIFO on ties, and callbacks armed
    while advancing fire in the same pass when they fall inside the window.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: list[tuple[float, int, _ManualHandle]] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callback) -> _ManualHandle:
        handle = _ManualHandle(round(self._now + max(0.0, delay), 9), callback)
        heapq.heappush(self._queue, (handle.deadline, next(self._counter), handle))
        return handle

    def advance(self, seconds: float) -> None:
        target = round(self._now + max(0.0, seconds), 9)
        while self._queue and self._queue[0][0] <= target:
            deadline, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = deadline
            handle.callback()
        self._now = target

    def advance_ms(self, milliseconds: float) -> None:
        self.advance(milliseconds / 1000.0)

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle in self._queue if not handle.cancelled)

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> "asyncio.Task[Any]":
        # Requires a running loop; timers stay virtual, coroutines do not.
        task = asyncio.get_running_loop().create_task(coro)
        task.add_done_callback(_log_task_failure)
        return task


class TimerSlot:
    """Holds at most one live timer for a named role."""

    def __init__(self, scheduler: Scheduler, name: str) -> None:
        self._scheduler = scheduler
        self.name = name
        self._handle: TimerHandle | None = None
        self._deadline: float | None = None

    @property
    def active(self) -> bool:
        return self._handle is not None

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def arm(self, delay_ms: float, callback: Callback) -> float:
        self.cancel()
        delay = delay_ms / 1000.0
        deadline = self._scheduler.now() + delay

        def _fire() -> None:
            self._handle = None
            self._deadline = None
            callback()

        self._handle = self._scheduler.call_later(delay, _fire)
        self._deadline = deadline
        logger.debug("%s timer armed for %sms", self.name, delay_ms)
        return deadline

    def cancel(self) -> bool:
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        self._deadline = None
        return True

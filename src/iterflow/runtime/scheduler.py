"""Scheduler implementations for the Scheduler port."""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Callable
from typing import Any


class AsyncioScheduler:
    """Defers callbacks with ``loop.call_soon``.

    Without an explicit loop the running loop is bound at construction, so
    building one outside a running loop raises ``RuntimeError`` right away.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop or asyncio.get_running_loop()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def schedule(self, callback: Callable[[], Any]) -> None:
        self._loop.call_soon(callback)


class ManualScheduler:
    """Deterministic scheduler driven by the caller, one tick at a time.

    A tick runs exactly the callbacks that were queued before it started;
    callbacks scheduled during a tick run on the next one.
    """

    def __init__(self) -> None:
        self._queue: deque[Callable[[], Any]] = deque()
        self.ticks = 0

    def schedule(self, callback: Callable[[], Any]) -> None:
        self._queue.append(callback)

    @property
    def pending(self) -> int:
        return len(self._queue)

    def tick(self) -> int:
        """Run one loop iteration and return how many callbacks ran."""
        batch = len(self._queue)
        for _ in range(batch):
            self._queue.popleft()()
        self.ticks += 1
        return batch

    def run(self, ticks: int) -> None:
        for _ in range(ticks):
            self.tick()

    def run_until_idle(self, max_ticks: int = 10_000) -> int:
        """Tick until nothing is queued. Returns the number of ticks run.

        Raises:
            RuntimeError: if callbacks are still queued after ``max_ticks``
        """
        ran = 0
        while self._queue:
            if ran >= max_ticks:
                raise RuntimeError(f"scheduler still busy after {max_ticks} ticks")
            self.tick()
            ran += 1
        return ran

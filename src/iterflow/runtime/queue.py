"""In-process asynchronous FIFO for queue-backed iteration.

    queue = AsyncQueue(scheduler)
    queue.push("glasses", "apples")
    ConcurrentIterator(queue, scheduler=scheduler).each(handle)
    queue.push("cars", "elephants")

Items pushed after iteration has started are picked up as they arrive.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from functools import partial
from typing import Any

from iterflow.kernel.ports import Scheduler


class AsyncQueue:
    """FIFO whose ``pop`` delivers items through the scheduler.

    Waiters are served oldest first; each delivery runs as its own deferred
    callback, never inside ``push`` or ``pop``.
    """

    def __init__(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler
        self._items: deque[Any] = deque()
        self._waiters: deque[Callable[[Any], Any]] = deque()

    def push(self, *items: Any) -> None:
        self._items.extend(items)
        self._drain()

    def pop(self, on_item: Callable[[Any], Any]) -> None:
        self._waiters.append(on_item)
        self._drain()

    def empty(self) -> bool:
        return not self._items

    def size(self) -> int:
        return len(self._items)

    def num_waiting(self) -> int:
        return len(self._waiters)

    def _drain(self) -> None:
        while self._items and self._waiters:
            on_item = self._waiters.popleft()
            self._scheduler.schedule(partial(on_item, self._items.popleft()))

"""asyncio bridge - run coroutine functions through a ConcurrentIterator."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from iterflow.kernel.engine import ConcurrentIterator
from iterflow.kernel.tokens import Supplier
from iterflow.runtime.scheduler import AsyncioScheduler

T = TypeVar("T")
R = TypeVar("R")
A = TypeVar("A")


class _TaskGroup:
    """Tasks started for one bridged iteration, settled into one future.

    The first failure fails ``result`` and cancels every task still running.
    Each task's outcome is read when it finishes, so failures after the
    first are retrieved instead of being reported by the loop.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, result: asyncio.Future[Any]) -> None:
        self._loop = loop
        self._result = result
        self._tasks: set[asyncio.Task[Any]] = set()

    def start(self, call: Callable[[], Awaitable[Any]], token: Supplier) -> None:
        if self._result.done():
            return
        task = self._loop.create_task(call())  # type: ignore[arg-type]
        self._tasks.add(task)
        task.add_done_callback(lambda finished: self._settle(finished, token))

    def _settle(self, task: asyncio.Task[Any], token: Supplier) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            if not self._result.done():
                self._result.cancel()
            return
        exc = task.exception()
        if self._result.done():
            return
        if exc is not None:
            self._result.set_exception(exc)
            self.cancel()
        else:
            token.supply(task.result())

    def cancel(self) -> None:
        for task in list(self._tasks):
            task.cancel()


def _check_concurrency(concurrency: int) -> None:
    if concurrency < 1:
        raise ValueError("concurrency must be >= 1")


async def amap(
    items: Any,
    fn: Callable[[T], Awaitable[R]],
    concurrency: int = 1,
) -> list[R]:
    """Await ``fn(item)`` for every item, at most ``concurrency`` at a time.

    Results come back in source order. The first exception raised by ``fn``
    is re-raised here and the calls still in flight are cancelled.
    """
    _check_concurrency(concurrency)
    loop = asyncio.get_running_loop()
    result: asyncio.Future[list[R]] = loop.create_future()
    group = _TaskGroup(loop, result)

    def step(item: T, token: Supplier) -> None:
        group.start(lambda: fn(item), token)

    def after(results: list[R]) -> None:
        if not result.done():
            result.set_result(results)

    ConcurrentIterator(items, concurrency, scheduler=AsyncioScheduler(loop)).map(step, after)
    try:
        return await result
    finally:
        group.cancel()


async def ainject(
    items: Any,
    initial: A,
    fn: Callable[[A, T], Awaitable[A]],
    concurrency: int = 1,
) -> A:
    """Fold items with ``acc = await fn(acc, item)``.

    Sequential with concurrency 1. With more, concurrent calls share one
    accumulator snapshot and the last to finish wins.
    """
    _check_concurrency(concurrency)
    loop = asyncio.get_running_loop()
    result: asyncio.Future[A] = loop.create_future()
    group = _TaskGroup(loop, result)

    def step(acc: A, item: T, token: Supplier) -> None:
        group.start(lambda: fn(acc, item), token)

    def after(acc: A) -> None:
        if not result.done():
            result.set_result(acc)

    ConcurrentIterator(items, concurrency, scheduler=AsyncioScheduler(loop)).inject(initial, step, after)
    try:
        return await result
    finally:
        group.cancel()

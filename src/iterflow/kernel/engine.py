"""Bounded-concurrency iteration engine.

Unlike a plain ``for`` loop, the end of each iteration is signaled manually
through a completion token instead of happening when the step function
returns. This lets a step start asynchronous work and finish it later:

    def fetch(url, token):
        http_get(url, on_response=lambda res: token.advance())

    ConcurrentIterator(urls, concurrency=10, scheduler=host).each(fetch)

keeps at most ten requests in flight until every url has been visited.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from iterflow.config import IteratorConfig, validate_concurrency
from iterflow.kernel.errors import SourceTransientEmpty, UsageError
from iterflow.kernel.ports import Scheduler
from iterflow.kernel.sources import SequenceSource, make_source
from iterflow.kernel.tokens import Advancer, Supplier
from iterflow.kernel.trace import Trace

logger = logging.getLogger(__name__)

# Scheduler factory used when none is injected; iterflow.runtime installs one.
_default_scheduler: Callable[[], Scheduler] | None = None

EachStep = Callable[[Any, Advancer], Any]
MapStep = Callable[[Any, Supplier], Any]
InjectStep = Callable[[Any, Any, Supplier], Any]


@dataclass(frozen=True)
class IterationStats:
    """Point-in-time view of engine counters."""

    dispatched: int = 0
    completed: int = 0
    pending: int = 0
    active_workers: int = 0
    peak_pending: int = 0
    ended: bool = False
    finished: bool = False


class ConcurrentIterator:
    """Drives a step function over a sequence with a cap on in-flight items.

    Iteration is started with ``each``, ``map`` or ``inject`` and can only be
    started once per instance.
    """

    def __init__(
        self,
        items: Any,
        concurrency: int = 1,
        *,
        scheduler: Scheduler | None = None,
        trace: Trace | None = None,
    ) -> None:
        self._source: SequenceSource = make_source(items)
        self._concurrency = validate_concurrency(concurrency)
        if scheduler is None:
            if _default_scheduler is None:
                raise UsageError("no scheduler given and no default registered", operation="init")
            scheduler = _default_scheduler()
        self._scheduler = scheduler
        self._trace = trace

        self._started = False
        self._ended = False
        self._finished = False
        self._pending = 0
        self._workers = 0
        self._dispatched = 0
        self._completed = 0
        self._peak_pending = 0
        self._step: EachStep | None = None
        self._after: Callable[[], Any] | None = None

    @classmethod
    def register_default_scheduler(cls, factory: Callable[[], Scheduler]) -> None:
        """Set the factory used when an iterator is built without a scheduler."""
        global _default_scheduler
        _default_scheduler = factory

    @classmethod
    def from_config(
        cls,
        items: Any,
        config: IteratorConfig,
        scheduler: Scheduler | None = None,
    ) -> ConcurrentIterator:
        trace = Trace() if config.trace else None
        return cls(items, config.concurrency, scheduler=scheduler, trace=trace)

    @property
    def concurrency(self) -> int:
        return self._concurrency

    @concurrency.setter
    def concurrency(self, value: int) -> None:
        """Change the limit. Raising it while running arms a new spawn loop;
        lowering it lets surplus workers retire as their items complete."""
        old = self._concurrency
        self._concurrency = validate_concurrency(value)
        logger.debug("concurrency %d -> %d", old, self._concurrency)
        if self._concurrency > old and self._started and not self._ended:
            self._spawn_workers()

    @property
    def source(self) -> SequenceSource:
        return self._source

    @property
    def trace(self) -> Trace | None:
        return self._trace

    @property
    def started(self) -> bool:
        return self._started

    @property
    def ended(self) -> bool:
        return self._ended

    @property
    def stats(self) -> IterationStats:
        return IterationStats(
            dispatched=self._dispatched,
            completed=self._completed,
            pending=self._pending,
            active_workers=self._workers,
            peak_pending=self._peak_pending,
            ended=self._ended,
            finished=self._finished,
        )

    def each(self, step: EachStep | None = None, after: Callable[[], Any] | None = None) -> ConcurrentIterator:
        """Call ``step(item, token)`` for every item.

        The step must eventually call ``token.advance()``. ``after()`` is
        invoked once, with no arguments, when the source is exhausted and
        every dispatched item has completed.
        """
        if step is None or not callable(step):
            raise UsageError("step function required for iteration", operation="each")
        if self._started or self._ended:
            raise UsageError("cannot iterate over an iterator more than once", operation="each")

        self._pending = 0
        self._workers = 0
        self._step = step
        self._after = after
        self._started = True
        try:
            self._spawn_workers()
        except Exception:
            # Nothing was armed; leave the iterator startable.
            self._started = False
            raise
        return self

    def map(self, step: MapStep | None, after: Callable[[list[Any]], Any] | None = None) -> ConcurrentIterator:
        """Collect ``token.supply(value)`` results into a list in source order.

        Items may complete in any order; each value is written at the
        position its item was dispatched from.
        """
        if step is None or not callable(step):
            raise UsageError("step function required for iteration", operation="map")
        index = 0

        def foreach(results: list[Any], item: Any, token: Supplier) -> None:
            nonlocal index
            position = index
            index += 1

            def on_done(value: Any) -> None:
                _place(results, position, value)
                token.supply(results)

            step(item, Supplier(on_done, index=position, mode="map"))

        def finish(results: list[Any]) -> None:
            if after is not None:
                after(results)

        return self._inject([], foreach, finish, mode="map")

    def inject(
        self,
        initial: Any,
        step: InjectStep | None,
        after: Callable[[Any], Any] | None = None,
    ) -> ConcurrentIterator:
        """Fold items into a shared accumulator.

        ``step(acc, item, token)`` hands back the new accumulator through
        ``token.supply(new_acc)``. With concurrency 1 this is a sequential
        fold. With higher concurrency several steps see the same
        accumulator and the last one to complete wins; values are not merged.
        """
        if step is None or not callable(step):
            raise UsageError("step function required for iteration", operation="inject")
        return self._inject(initial, step, after, mode="inject")

    def _inject(
        self,
        initial: Any,
        step: InjectStep,
        after: Callable[[Any], Any] | None,
        mode: str,
    ) -> ConcurrentIterator:
        acc = initial

        def foreach(item: Any, token: Advancer) -> None:
            def on_done(value: Any) -> None:
                nonlocal acc
                acc = value
                token.advance()

            step(acc, item, Supplier(on_done, index=token.index, mode=mode))

        def finish() -> None:
            if after is not None:
                after(acc)

        return self.each(foreach, finish)

    def _record(
        self,
        action: str,
        info: dict[str, Any] | None = None,
        parent_id: int | None = None,
        duration_ms: float | None = None,
    ) -> int | None:
        if self._trace is None:
            return None
        return self._trace.record(action, info=info, parent_id=parent_id, duration_ms=duration_ms)

    def _spawn_workers(self) -> None:
        # The only place the worker count goes up.
        def start_worker() -> None:
            if self._workers < self._concurrency and not self._ended:
                self._workers += 1
                logger.debug("spawned worker (%d/%d)", self._workers, self._concurrency)
                self._record("worker_spawn", {"workers": self._workers})
                self._process_next()
                self._scheduler.schedule(start_worker)

        self._scheduler.schedule(start_worker)

    def _retire(self) -> None:
        self._workers -= 1
        logger.debug("retired worker (%d/%d)", self._workers, self._concurrency)
        self._record("worker_retire", {"workers": self._workers})

    def _process_next(self) -> None:
        if self._ended or self._workers > self._concurrency:
            self._retire()
            return

        try:
            item, has_item = self._source.produce_next()
        except SourceTransientEmpty:
            self._record("transient_empty")
            self._scheduler.schedule(self._process_next)
            return

        if not has_item:
            self._ended = True
            logger.debug("source exhausted after %d items", self._dispatched)
            self._record("exhausted", {"dispatched": self._dispatched})
            self._retire()
            self._all_done()
            return

        index = self._dispatched
        self._dispatched += 1
        self._pending += 1
        self._peak_pending = max(self._peak_pending, self._pending)
        dispatch_id = self._record("dispatch", {"index": index})
        dispatched_at = time.perf_counter()

        def on_done() -> None:
            self._pending -= 1
            self._completed += 1
            self._record(
                "complete",
                {"index": index},
                parent_id=dispatch_id,
                duration_ms=(time.perf_counter() - dispatched_at) * 1000,
            )
            if self._ended:
                self._retire()
                self._all_done()
            else:
                self._scheduler.schedule(self._process_next)

        self._step(item, Advancer(on_done, index=index))  # type: ignore[misc]

    def _all_done(self) -> None:
        if self._finished or not self._ended or self._pending != 0:
            return
        self._finished = True
        logger.debug("iteration finished: %d items", self._completed)
        self._record("finish", {"completed": self._completed})
        if self._after is not None:
            self._after()


def _place(results: list[Any], position: int, value: Any) -> None:
    if position >= len(results):
        results.extend([None] * (position + 1 - len(results)))
    results[position] = value

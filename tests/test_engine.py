"""Tests for ConcurrentIterator.each and the worker/concurrency engine."""

import pytest

from iterflow import ConcurrentIterator, ManualScheduler, UsageError
from fakes import HeldStep, make_iterator


def drain(it: ConcurrentIterator, scheduler: ManualScheduler, step: HeldStep) -> None:
    scheduler.run_until_idle()
    while not it.stats.finished:
        step.release_all()
        scheduler.run_until_idle()


def test_each_visits_every_item_once_and_calls_after_once() -> None:
    it, scheduler = make_iterator([1, 2, 3, 4, 5], concurrency=2)
    visited = []
    done = []

    def step(item, token):
        visited.append(item)
        scheduler.schedule(token.advance)

    it.each(step, lambda: done.append(True))
    scheduler.run_until_idle()

    assert visited == [1, 2, 3, 4, 5]
    assert done == [True]
    assert it.stats.completed == 5
    assert it.stats.pending == 0


def test_each_returns_self() -> None:
    it, _ = make_iterator([1])
    assert it.each(lambda item, token: token.advance()) is it


def test_concurrency_one_waits_for_previous_token() -> None:
    it, scheduler = make_iterator(["a", "b", "c"], concurrency=1)
    step = HeldStep()
    it.each(step)

    scheduler.run_until_idle()
    assert step.seen == ["a"]

    scheduler.run(5)
    assert step.seen == ["a"]

    step.release("a")
    scheduler.run_until_idle()
    assert step.seen == ["a", "b"]

    step.release("b")
    scheduler.run_until_idle()
    assert step.seen == ["a", "b", "c"]


def test_in_flight_never_exceeds_concurrency() -> None:
    items = list(range(10))
    it, scheduler = make_iterator(items, concurrency=3)
    step = HeldStep()
    it.each(step)

    scheduler.run_until_idle()
    assert step.in_flight == 3

    drain(it, scheduler, step)
    assert step.seen == items
    assert step.peak == 3
    assert it.stats.peak_pending == 3


def test_concurrency_larger_than_source() -> None:
    it, scheduler = make_iterator([1, 2], concurrency=5)
    step = HeldStep()
    done = []
    it.each(step, lambda: done.append(True))

    scheduler.run_until_idle()
    assert step.in_flight == 2
    assert it.ended

    step.release(2)
    scheduler.run_until_idle()
    assert done == []

    step.release(1)
    assert done == [True]
    assert it.stats.active_workers == 0


def test_empty_source_calls_after_without_dispatch() -> None:
    it, scheduler = make_iterator([], concurrency=2)
    calls = []
    done = []
    it.each(lambda item, token: calls.append(item), lambda: done.append(True))

    assert done == []
    scheduler.run_until_idle()

    assert calls == []
    assert done == [True]


def test_after_is_optional() -> None:
    it, scheduler = make_iterator([1, 2])
    it.each(lambda item, token: token.advance())
    scheduler.run_until_idle()
    assert it.stats.finished


def test_increasing_concurrency_spawns_workers() -> None:
    items = list(range(9))
    it, scheduler = make_iterator(items, concurrency=1)
    step = HeldStep()
    it.each(step)

    scheduler.run_until_idle()
    step.release(0)
    scheduler.run_until_idle()
    assert step.seen == [0, 1]

    it.concurrency = 3
    scheduler.run_until_idle()
    assert step.seen == [0, 1, 2, 3]
    assert step.in_flight == 3

    drain(it, scheduler, step)
    assert step.seen == items
    assert step.peak == 3


def test_decreasing_concurrency_lets_in_flight_items_finish() -> None:
    it, scheduler = make_iterator(list(range(10)), concurrency=3)
    step = HeldStep()
    it.each(step)
    scheduler.run_until_idle()
    assert step.in_flight == 3

    it.concurrency = 1
    scheduler.run_until_idle()
    assert step.in_flight == 3
    assert not any(token.done for token in step.held.values())

    step.release(0)
    scheduler.run_until_idle()
    assert it.stats.active_workers == 2
    assert step.seen == [0, 1, 2]

    step.release(1)
    scheduler.run_until_idle()
    assert it.stats.active_workers == 1
    assert step.seen == [0, 1, 2]

    step.release(2)
    scheduler.run_until_idle()
    assert step.seen == [0, 1, 2, 3]
    assert step.in_flight == 1


def test_zero_concurrency_dispatches_nothing_until_raised() -> None:
    it, scheduler = make_iterator([1, 2], concurrency=0)
    step = HeldStep()
    it.each(step)
    scheduler.run_until_idle()
    assert step.seen == []

    it.concurrency = 2
    scheduler.run_until_idle()
    assert step.seen == [1, 2]


def test_double_completion_raises_and_after_fires_once() -> None:
    it, scheduler = make_iterator([1])
    tokens = []
    done = []
    it.each(lambda item, token: tokens.append(token), lambda: done.append(True))
    scheduler.run_until_idle()

    tokens[0].advance()
    with pytest.raises(UsageError, match="already completed"):
        tokens[0].advance()

    scheduler.run_until_idle()
    assert done == [True]

    with pytest.raises(UsageError):
        tokens[0].advance()
    assert done == [True]
    assert it.stats.completed == 1


def test_each_twice_is_a_usage_error() -> None:
    it, scheduler = make_iterator([1, 2])
    it.each(lambda item, token: token.advance())

    with pytest.raises(UsageError, match="more than once"):
        it.each(lambda item, token: token.advance())

    scheduler.run_until_idle()
    with pytest.raises(UsageError):
        it.map(lambda item, token: token.supply(item))


def test_missing_step_is_a_usage_error() -> None:
    it, _ = make_iterator([1])
    with pytest.raises(UsageError, match="step function required"):
        it.each()
    with pytest.raises(UsageError):
        it.each("not callable")  # type: ignore[arg-type]
    assert not it.started


def test_step_exception_propagates_to_scheduler() -> None:
    it, scheduler = make_iterator([1])

    def step(item, token):
        raise KeyError(item)

    it.each(step)
    with pytest.raises(KeyError):
        scheduler.run_until_idle()


def test_synchronous_advance_does_not_recurse() -> None:
    items = list(range(500))
    it, scheduler = make_iterator(items, concurrency=4)
    visited = []

    def step(item, token):
        visited.append(item)
        token.advance()

    it.each(step)
    scheduler.run_until_idle()
    assert visited == items


def test_generator_source_is_consumed_lazily() -> None:
    pulled = []

    def numbers():
        for n in range(3):
            pulled.append(n)
            yield n

    it, scheduler = make_iterator(numbers(), concurrency=1)
    step = HeldStep()
    it.each(step)
    scheduler.run_until_idle()

    assert pulled == [0]
    drain(it, scheduler, step)
    assert step.seen == [0, 1, 2]


def test_stats_snapshot() -> None:
    it, scheduler = make_iterator([1, 2, 3], concurrency=2)
    step = HeldStep()
    it.each(step)
    scheduler.run_until_idle()

    stats = it.stats
    assert stats.dispatched == 2
    assert stats.pending == 2
    assert stats.active_workers == 2
    assert not stats.ended
    assert not stats.finished


class RefusingScheduler(ManualScheduler):
    """Raises on the first schedule call, then behaves normally."""

    def __init__(self) -> None:
        super().__init__()
        self.refuse = True

    def schedule(self, callback) -> None:
        if self.refuse:
            self.refuse = False
            raise RuntimeError("host loop unavailable")
        super().schedule(callback)


def test_each_stays_startable_when_scheduling_fails() -> None:
    scheduler = RefusingScheduler()
    it = ConcurrentIterator([1, 2], scheduler=scheduler)
    visited = []

    def step(item, token):
        visited.append(item)
        token.advance()

    with pytest.raises(RuntimeError, match="host loop unavailable"):
        it.each(step)
    assert not it.started

    it.each(step)
    scheduler.run_until_idle()
    assert visited == [1, 2]
    assert it.stats.finished


def test_default_scheduler_requires_running_loop() -> None:
    with pytest.raises(RuntimeError):
        ConcurrentIterator([1, 2])


def test_missing_default_scheduler_is_a_usage_error(monkeypatch) -> None:
    import iterflow.kernel.engine as engine

    monkeypatch.setattr(engine, "_default_scheduler", None)
    with pytest.raises(UsageError, match="no scheduler"):
        ConcurrentIterator([1])

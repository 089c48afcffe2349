"""Sequence sources - supply items to the engine one at a time."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Iterable, Iterator
from typing import Any

from iterflow.kernel.errors import SourceTransientEmpty
from iterflow.kernel.ports import QueuePort

Produced = tuple[Any, bool]

_NOTHING: Produced = (None, False)


class SequenceSource(ABC):
    """
    Uniform pull interface over eager, lazy and queue-backed sequences.
    ``produce_next`` returns ``(item, True)`` or ``(None, False)`` once
    exhausted. Queue-backed sources may raise ``SourceTransientEmpty``.
    """

    @abstractmethod
    def produce_next(self) -> Produced:
        """Pull the next item from the source."""
        pass


class ArraySource(SequenceSource):
    """Eager source over a private copy of the input.

    Mutating the caller's sequence after construction has no effect.
    """

    def __init__(self, items: Iterable[Any]) -> None:
        self._items: deque[Any] = deque(items)

    def produce_next(self) -> Produced:
        if not self._items:
            return _NOTHING
        return self._items.popleft(), True

    def __len__(self) -> int:
        return len(self._items)


class LazySource(SequenceSource):
    """Source pulling from an iterator or generator on demand.

    ``None`` yielded by the generator is a real item; only
    ``StopIteration`` means exhaustion.
    """

    def __init__(self, iterable: Iterable[Any]) -> None:
        self._iterator: Iterator[Any] = iter(iterable)
        self._exhausted = False

    def produce_next(self) -> Produced:
        if self._exhausted:
            return _NOTHING
        try:
            return next(self._iterator), True
        except StopIteration:
            self._exhausted = True
            return _NOTHING


class QueueSource(SequenceSource):
    """Source backed by an asynchronous queue. Never reports exhaustion.

    An empty queue raises ``SourceTransientEmpty`` without registering a
    waiter. Otherwise a single ``pop`` is issued; the delivered item is
    buffered and handed out on this or a later pull.
    """

    def __init__(self, queue: QueuePort) -> None:
        self._queue = queue
        self._ready: deque[Any] = deque()
        self._awaiting = False

    @property
    def queue(self) -> QueuePort:
        return self._queue

    def _receive(self, item: Any) -> None:
        self._awaiting = False
        self._ready.append(item)

    def produce_next(self) -> Produced:
        if not self._ready and not self._awaiting and not self._queue.empty():
            self._awaiting = True
            self._queue.pop(self._receive)
        if self._ready:
            return self._ready.popleft(), True
        raise SourceTransientEmpty()


def make_source(items: Any) -> SequenceSource:
    """Pick the source variant for ``items``.

    Lists and tuples are copied eagerly, queues are wrapped as queue
    sources, and any other iterable is consumed lazily. Text and byte
    strings are rejected rather than iterated character by character.
    """
    if isinstance(items, SequenceSource):
        return items
    if isinstance(items, (str, bytes, bytearray)):
        raise TypeError(f"argument must be an iterable or queue, got {type(items).__name__}")
    if isinstance(items, (list, tuple)):
        return ArraySource(items)
    if isinstance(items, QueuePort):
        return QueueSource(items)
    if isinstance(items, Iterable):
        return LazySource(items)
    raise TypeError(f"argument must be an iterable or queue, got {type(items).__name__}")

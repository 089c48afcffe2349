"""Port protocols for iterflow - host capabilities the kernel depends on."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable


class Scheduler(Protocol):
    """Deferral port of the host's single-threaded loop."""

    def schedule(self, callback: Callable[[], Any]) -> None:
        """Run ``callback`` on a later loop iteration."""
        ...


@runtime_checkable
class QueuePort(Protocol):
    """
    Asynchronous FIFO queue.
    Infrastructure-level.
    Consumed by queue-backed sources only.
    """

    def push(self, *items: Any) -> None:
        """Append items to the queue."""
        ...

    def pop(self, on_item: Callable[[Any], Any]) -> None:
        """Deliver the next item to ``on_item`` once one is available."""
        ...

    def empty(self) -> bool:
        """Return True when no item is currently queued."""
        ...

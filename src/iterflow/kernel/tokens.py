"""One-shot completion tokens handed to step functions."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from iterflow.kernel.errors import UsageError


class CompletionToken:
    """A one-shot signal bound to a single dispatched item.

    A token is created fresh for every item and is never reused. Completing
    it a second time raises ``UsageError`` before the continuation runs, so
    engine counters are never touched twice for one item.
    """

    __slots__ = ("_continuation", "_done", "index", "mode")

    def __init__(self, continuation: Callable[..., Any], index: int = 0, mode: str = "each") -> None:
        self._continuation = continuation
        self._done = False
        self.index = index
        self.mode = mode

    @property
    def done(self) -> bool:
        return self._done

    def _complete(self, *args: Any) -> None:
        if self._done:
            raise UsageError(
                f"already completed this iteration (item {self.index})",
                operation="complete",
            )
        self._done = True
        self._continuation(*args)

    def __repr__(self) -> str:
        state = "done" if self._done else "pending"
        return f"<{type(self).__name__} {self.mode} index={self.index} {state}>"


class Advancer(CompletionToken):
    """Token for plain ``each`` iteration: only ``advance()`` is legal."""

    __slots__ = ()

    def advance(self) -> None:
        """Signal that the work for this item has finished."""
        self._complete()

    def supply(self, value: Any) -> None:
        raise UsageError("must call advance() on an each iterator", operation="supply")


class Supplier(CompletionToken):
    """Token for ``map`` and ``inject``: only ``supply(value)`` is legal."""

    __slots__ = ()

    def __init__(self, continuation: Callable[[Any], Any], index: int = 0, mode: str = "map") -> None:
        super().__init__(continuation, index, mode)

    def supply(self, value: Any) -> None:
        """Hand this item's value back and signal completion."""
        self._complete(value)

    def advance(self) -> None:
        raise UsageError(f"must call supply() for {self.mode} iteration", operation="advance")

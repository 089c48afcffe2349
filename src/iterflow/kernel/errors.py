"""Error types raised by the iteration kernel."""

from __future__ import annotations


class IterflowError(Exception):
    """Base class for all iterflow errors."""


class UsageError(IterflowError, RuntimeError):
    """Raised synchronously when the iterator or a token is misused.

    Covers a missing step function, a second call to ``each`` on the same
    iterator, completing a token twice, and calling the completion
    operation that the token's mode does not permit.
    """

    def __init__(self, message: str, operation: str | None = None) -> None:
        self.operation = operation
        super().__init__(message)

    def __repr__(self) -> str:
        return f"UsageError({super().__str__()!r}, operation={self.operation!r})"


class SourceTransientEmpty(IterflowError):
    """No item is ready right now, but the source is not exhausted.

    Only queue-backed sources raise this. The engine swallows it and
    re-arms the worker on the next tick.
    """

"""Runtime trace of iteration events - separate from engine state.

The engine records what it did (workers spawned and retired, items
dispatched and completed, exhaustion, the final callback) when a trace is
attached. Trace never influences scheduling decisions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass(frozen=True)
class Evidence:
    """A single recorded iteration event.

    ``parent_id`` links a ``complete`` event to the ``dispatch`` event of
    the same item.
    """

    action: str
    id: int = 0
    parent_id: int | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    info: dict[str, Any] = field(default_factory=dict)
    duration_ms: float | None = None


class Trace:
    """Append-only event log for one or more iterators.

    Performance guarantees:
    - Trace disabled → single flag check overhead
    - Evidence append is O(1)
    """

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._events: list[Evidence] = []
        self._next_id: int = 0

    def record(
        self,
        action: str,
        info: dict[str, Any] | None = None,
        parent_id: int | None = None,
        duration_ms: float | None = None,
    ) -> int | None:
        """Record an event.

        Args:
            action: What happened (e.g., "dispatch", "worker_retire")
            info: Additional context
            parent_id: Event this one belongs to
            duration_ms: Elapsed time, when meaningful

        Returns:
            Event ID for linking later events, or None if tracing disabled
        """
        if not self.enabled:
            return None

        event_id = self._next_id
        self._next_id += 1
        self._events.append(
            Evidence(
                action=action,
                id=event_id,
                parent_id=parent_id,
                info=info or {},
                duration_ms=duration_ms,
            )
        )
        return event_id

    def get_events(self) -> list[Evidence]:
        """Get all recorded events in recording order."""
        return list(self._events)

    def find(self, action: str, **info: Any) -> list[Evidence]:
        """Events with the given action whose info contains every ``info`` pair."""
        return [
            ev
            for ev in self._events
            if ev.action == action and all(ev.info.get(k) == v for k, v in info.items())
        ]

    def actions(self) -> list[str]:
        return [ev.action for ev in self._events]

    def as_tree(self) -> dict[int | None, list[int]]:
        """Map each parent_id to its child event ids."""
        tree: dict[int | None, list[int]] = {}
        for ev in self._events:
            tree.setdefault(ev.parent_id, []).append(ev.id)
        return tree

    def __len__(self) -> int:
        return len(self._events)

    def clear(self) -> None:
        self._events.clear()
        self._next_id = 0

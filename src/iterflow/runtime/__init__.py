"""Runtime layer - host collaborators for the kernel."""

from iterflow.kernel.engine import ConcurrentIterator

from .aio import ainject, amap
from .queue import AsyncQueue
from .scheduler import AsyncioScheduler, ManualScheduler

# Iterators built without a scheduler run on the current asyncio loop.
ConcurrentIterator.register_default_scheduler(AsyncioScheduler)

__all__ = [
    "AsyncioScheduler",
    "ManualScheduler",
    "AsyncQueue",
    "amap",
    "ainject",
]

from .config import IteratorConfig
from .kernel import (
    Advancer,
    CompletionToken,
    ConcurrentIterator,
    IterationStats,
    IterflowError,
    SourceTransientEmpty,
    Supplier,
    UsageError,
)
from .kernel.trace import Trace
from .runtime import AsyncioScheduler, AsyncQueue, ManualScheduler, ainject, amap

__all__ = [
    # Core
    "ConcurrentIterator",
    "IterationStats",
    "IteratorConfig",
    # Tokens
    "CompletionToken",
    "Advancer",
    "Supplier",
    # Errors
    "IterflowError",
    "UsageError",
    "SourceTransientEmpty",
    # Runtime
    "AsyncioScheduler",
    "ManualScheduler",
    "AsyncQueue",
    "amap",
    "ainject",
    # Tracing
    "Trace",
]

"""Kernel layer - sources, tokens and the iteration engine."""

from iterflow.kernel.engine import ConcurrentIterator, IterationStats
from iterflow.kernel.errors import IterflowError, SourceTransientEmpty, UsageError
from iterflow.kernel.ports import QueuePort, Scheduler
from iterflow.kernel.sources import ArraySource, LazySource, QueueSource, SequenceSource, make_source
from iterflow.kernel.tokens import Advancer, CompletionToken, Supplier
from iterflow.kernel.trace import Evidence, Trace

__all__ = [
    "ConcurrentIterator",
    "IterationStats",
    # Tokens
    "CompletionToken",
    "Advancer",
    "Supplier",
    # Sources
    "SequenceSource",
    "ArraySource",
    "LazySource",
    "QueueSource",
    "make_source",
    # Errors
    "IterflowError",
    "UsageError",
    "SourceTransientEmpty",
    # Ports
    "Scheduler",
    "QueuePort",
    # Tracing
    "Trace",
    "Evidence",
]

"""Iterator configuration."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class IteratorConfig(BaseModel):
    """Settings for a ConcurrentIterator.

    Attributes:
        concurrency: Maximum number of items in flight. Zero dispatches nothing.
        trace: Attach a fresh Trace when the iterator is built from this config.
    """

    model_config = ConfigDict(frozen=True, strict=True)

    concurrency: int = Field(default=1, ge=0)
    trace: bool = False


def validate_concurrency(value: int) -> int:
    """Check a concurrency limit, raising ``pydantic.ValidationError`` when invalid."""
    return IteratorConfig(concurrency=value).concurrency

"""Timing spans for the slow parts of a request (model call, list aggregation)."""

import time
from contextlib import contextmanager
from typing import Iterator

from app.logging import get_logger, kv

logger = get_logger(__name__)

_TIMING_PREFIX = "[TIMING]"


def format_duration(ms: int) -> str:
    """12500 -> '12.5s', 750 -> '750ms'."""
    if ms >= 1000:
        return f"{ms / 1000:.1f}s"
    return f"{ms}ms"


class Span:
    def __init__(self, name: str) -> None:
        self.name = name
        self._start = time.perf_counter()
        self.elapsed_ms: int | None = None

    def stop(self) -> int:
        if self.elapsed_ms is None:
            self.elapsed_ms = int((time.perf_counter() - self._start) * 1000)
        return self.elapsed_ms


@contextmanager
def time_span(name: str, **extra: object) -> Iterator[Span]:
    """Log elapsed time for the block, whether it returns or raises."""
    span = Span(name)
    try:
        yield span
    finally:
        elapsed = span.stop()
        logger.info(
            "%s %s elapsed_ms=%s (%s) %s",
            _TIMING_PREFIX,
            name,
            elapsed,
            format_duration(elapsed),
            kv(**extra),
        )

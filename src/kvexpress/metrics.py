from __future__ import annotations

import contextlib
import math
import os
import time
from typing import TYPE_CHECKING, TypedDict

if TYPE_CHECKING:
    from collections.abc import Generator

# Not thread-safe; kvexpress runs one apply per process.

_enabled = os.environ.get("KVEXPRESS_METRICS", "").lower() in ("1", "true", "yes")
_durations: dict[str, list[float]] = {}
_counts: dict[str, int] = {}


class MetricSummary(TypedDict):
    """Summary statistics for a single timed metric."""

    count: int
    total_ms: float
    avg_ms: float
    min_ms: float
    max_ms: float


def enable() -> None:
    """Enable metrics collection."""
    global _enabled
    _enabled = True


def disable() -> None:
    """Disable metrics collection."""
    global _enabled
    _enabled = False


def is_enabled() -> bool:
    return _enabled


def clear() -> None:
    """Clear all collected metrics."""
    _durations.clear()
    _counts.clear()


def _add(name: str, duration_ms: float) -> None:
    """Internal: add a single timing entry."""
    # Skip invalid values that would poison summary statistics
    if math.isnan(duration_ms) or math.isinf(duration_ms):
        return

    _durations.setdefault(name, []).append(duration_ms)


def incr(name: str, value: int = 1) -> None:
    """Increment a counter, e.g. ``fatal.write_file`` or ``apply.committed``."""
    if not _enabled:
        return
    _counts[name] = _counts.get(name, 0) + value


def counts() -> dict[str, int]:
    """Snapshot of all counters, sorted by name."""
    return dict(sorted(_counts.items()))


def summary() -> dict[str, MetricSummary]:
    """Summarize timings by name: count, total_ms, avg_ms, min_ms, max_ms."""
    result = dict[str, MetricSummary]()
    for name, durations in sorted(_durations.items()):
        if not durations:
            continue
        total = sum(durations)
        result[name] = MetricSummary(
            count=len(durations),
            total_ms=total,
            avg_ms=total / len(durations),
            min_ms=min(durations),
            max_ms=max(durations),
        )
    return result


@contextlib.contextmanager
def timed(name: str) -> Generator[None]:
    """Context manager to time a block of code.

    Usage:
        with metrics.timed("writer.write"):
            ...

    Metrics are only collected when enabled via KVEXPRESS_METRICS=1 or enable().
    """
    if not _enabled:
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        _add(name, duration_ms)

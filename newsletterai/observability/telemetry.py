"""
Lightweight telemetry helpers for the generation and distribution pipeline.

Nothing is shipped externally; events go to the log as structured lines and
counters/latencies are kept in memory so tests can assert instrumentation
and /health can report them.
"""

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import Iterator
from typing import Any

logger = logging.getLogger("newsletterai.telemetry")

_COUNTERS: dict[str, int] = {}
_LATENCIES: dict[str, list[float]] = {}


def log_event(event_name: str, **fields: Any) -> None:
    """
    Structured log event. Caller must ensure addresses are redacted.

    Side Effects:
        - Writes to logger (info level)
    """
    logger.info("event=%s %s", event_name, fields)


def counter(name: str, increment: int = 1) -> int:
    """
    Increment an in-memory counter and emit a debug log.

    Side Effects:
        - Modifies _COUNTERS dict (in-memory state)
    """
    value = _COUNTERS.get(name, 0) + increment
    _COUNTERS[name] = value
    logger.debug("counter=%s value=%s", name, value)
    return value


def get_counter(name: str) -> int:
    return _COUNTERS.get(name, 0)


@contextlib.contextmanager
def time_block(stage: str) -> Iterator[None]:
    """
    Time a pipeline stage and record the latency under ``<stage>_ms``.

    Side Effects:
        - Appends to _LATENCIES dict (in-memory state)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        _LATENCIES.setdefault(f"{stage}_ms", []).append(elapsed_ms)
        logger.debug("timing=%s_ms value=%.1f", stage, elapsed_ms)


def get_latency_stats(stage: str) -> dict[str, float]:
    """Get count/min/max/avg/p95 for a timed stage."""
    samples = sorted(_LATENCIES.get(f"{stage}_ms", []))
    if not samples:
        return {"count": 0, "min": 0.0, "max": 0.0, "avg": 0.0, "p95": 0.0}

    count = len(samples)
    return {
        "count": count,
        "min": samples[0],
        "max": samples[-1],
        "avg": sum(samples) / count,
        "p95": samples[min(int(count * 0.95), count - 1)],
    }


def reset() -> None:
    """Clear counters and latencies (used by tests)."""
    _COUNTERS.clear()
    _LATENCIES.clear()

"""In-process metrics for the logging runtime."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict


@dataclass
class RuntimeMetrics:
    """Runtime metrics for the logging library."""

    flush_total: int = 0 # Logger flushes handed to a dispatcher
    messages_flushed: int = 0 # Messages carried by those flushes
    dispatch_total: int = 0 # Fan-out passes over the targets
    last_dispatch_duration_ms: float = 0.0 # Duration of the last fan-out
    export_total: Dict[str, int] = field(default_factory=dict) # Successful exports by target
    export_failures: Dict[str, int] = field(default_factory=dict) # Failed exports by target
    dropped: Dict[str, int] = field(default_factory=dict) # Messages evicted from target buffers
    queue_dropped: int = 0 # Batches evicted from the background queue
    queue_depth: int = 0 # Batches waiting in the background queue

    def as_dict(self) -> dict[str, object]:
        """Return the metrics as a dictionary."""

        return {
            "flush_total": self.flush_total,
            "messages_flushed": self.messages_flushed,
            "dispatch_total": self.dispatch_total,
            "last_dispatch_duration_ms": self.last_dispatch_duration_ms,
            "export_total": dict(self.export_total),
            "export_failures": dict(self.export_failures),
            "dropped": dict(self.dropped),
            "queue_dropped": self.queue_dropped,
            "queue_depth": self.queue_depth,
        }


_LOCK = threading.RLock()
_METRICS = RuntimeMetrics()


def record_flush(batch_size: int) -> None:
    """Record a logger flush of a batch of messages."""

    with _LOCK:
        _METRICS.flush_total += 1
        _METRICS.messages_flushed += batch_size


def record_dispatch(duration_ms: float) -> None:
    """Record one fan-out pass."""

    with _LOCK:
        _METRICS.dispatch_total += 1
        _METRICS.last_dispatch_duration_ms = duration_ms


def record_export(target: str) -> None:
    with _LOCK:
        _METRICS.export_total[target] = _METRICS.export_total.get(target, 0) + 1


def record_export_failure(target: str) -> None:
    with _LOCK:
        failures = _METRICS.export_failures
        failures[target] = failures.get(target, 0) + 1


def record_drop(target: str, count: int = 1) -> None:
    """Record messages evicted from a target buffer."""

    if count <= 0:
        return

    with _LOCK:
        _METRICS.dropped[target] = _METRICS.dropped.get(target, 0) + count


def record_queue_drop() -> None:
    with _LOCK:
        _METRICS.queue_dropped += 1


def set_queue_depth(depth: int) -> None:
    """Set the depth of the background queue."""

    with _LOCK:
        _METRICS.queue_depth = depth


def reset_metrics() -> None:
    """Reset the metrics."""

    with _LOCK:
        _METRICS.flush_total = 0
        _METRICS.messages_flushed = 0
        _METRICS.dispatch_total = 0
        _METRICS.last_dispatch_duration_ms = 0.0
        _METRICS.export_total = {}
        _METRICS.export_failures = {}
        _METRICS.dropped = {}
        _METRICS.queue_dropped = 0
        _METRICS.queue_depth = 0


def get_metrics() -> RuntimeMetrics:
    """Get a snapshot of the metrics."""

    with _LOCK:
        return RuntimeMetrics(
            flush_total=_METRICS.flush_total,
            messages_flushed=_METRICS.messages_flushed,
            dispatch_total=_METRICS.dispatch_total,
            last_dispatch_duration_ms=_METRICS.last_dispatch_duration_ms,
            export_total=dict(_METRICS.export_total),
            export_failures=dict(_METRICS.export_failures),
            dropped=dict(_METRICS.dropped),
            queue_dropped=_METRICS.queue_dropped,
            queue_depth=_METRICS.queue_depth,
        )

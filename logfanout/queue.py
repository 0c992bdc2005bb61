"""Bounded batch queue with drop accounting."""

from __future__ import annotations

import collections
import threading
from typing import Deque, Optional, Tuple

from .message import Message

Batch = Tuple[Message, ...]


class BatchQueue:
    """Thread-safe FIFO of message batches dropping the oldest when full."""

    def __init__(self, capacity: int) -> None:
        """Initialize the queue with a given capacity."""

        if capacity <= 0:
            raise ValueError("Queue capacity must be positive")

        self._capacity = capacity
        self._items: Deque[Batch] = collections.deque()
        self._lock = threading.RLock()
        self._not_empty = threading.Condition(self._lock)
        self._dropped = 0

    @property
    def dropped(self) -> int:
        """Get the number of dropped batches."""

        with self._lock:
            return self._dropped

    def size(self) -> int:
        with self._lock:
            return len(self._items)

    def put(self, batch: Batch) -> Optional[Batch]:
        """Append a batch, returning the evicted batch when the queue was full."""

        with self._lock:
            dropped: Optional[Batch] = None

            if len(self._items) >= self._capacity:
                dropped = self._items.popleft()
                self._dropped += 1

            self._items.append(batch)
            self._not_empty.notify()

            return dropped

    def get(self, timeout: float) -> Optional[Batch]:
        """Pop the oldest batch, waiting up to ``timeout`` seconds."""

        with self._lock:
            if not self._items:
                self._not_empty.wait(timeout)

            if not self._items:
                return None

            return self._items.popleft()

    def drain(self) -> list[Batch]:
        """Remove and return every queued batch."""

        with self._lock:
            batches = list(self._items)
            self._items.clear()
            return batches

    def wake(self) -> None:
        with self._lock:
            self._not_empty.notify_all()

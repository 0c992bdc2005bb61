"""Fan-out of logger batches to named targets."""

from __future__ import annotations

import logging
import threading
import time
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from .errors import ConfigurationError, ExportError
from .logger import Logger
from .message import Message
from .metrics import record_dispatch, record_export_failure, record_queue_drop, set_queue_depth
from .queue import BatchQueue
from .targets.base import Target

logger = logging.getLogger(__name__)


class Dispatcher:
    """Forward every batch flushed by a :class:`Logger` to its enabled targets.

    Targets receive batches in declaration order. A failure in one target is
    logged and counted, and never stops the remaining targets.
    """

    def __init__(
        self,
        targets: Mapping[str, Target] | Iterable[Tuple[str, Target]] | None = None,
        logger: Logger | None = None,
    ) -> None:
        """Initialize the dispatcher and attach it to ``logger``."""

        self._lock = threading.RLock() # The lock for the targets
        self._targets: Dict[str, Target] = {} # Targets in declaration order
        self._closed = False

        items = targets.items() if isinstance(targets, Mapping) else (targets or ())
        for name, target in items:
            self.add_target(name, target)

        self.logger = logger if logger is not None else Logger() # Back-reference, not ownership
        self.logger.dispatcher = self

    # --------------------- logger proxies ---------------------
    @property
    def trace_level(self) -> int:
        """Call frames captured per message; proxies :attr:`Logger.trace_level`."""

        return self.logger.trace_level

    @trace_level.setter
    def trace_level(self, value: int) -> None:
        self.logger.trace_level = value

    @property
    def flush_interval(self) -> int:
        """Messages logged before a flush; proxies :attr:`Logger.flush_interval`."""

        return self.logger.flush_interval

    @flush_interval.setter
    def flush_interval(self, value: int) -> None:
        self.logger.flush_interval = value

    # --------------------- target management ---------------------
    @property
    def targets(self) -> Dict[str, Target]:
        """Snapshot of the targets, in declaration order."""

        with self._lock:
            return dict(self._targets)

    @property
    def target_names(self) -> List[str]:
        with self._lock:
            return list(self._targets)

    def add_target(self, name: str, target: Target) -> Target:
        """Register ``target`` under a unique ``name``."""

        if not isinstance(target, Target):
            raise ConfigurationError(f"target {name!r} is not a Target instance: {target!r}")

        with self._lock:
            if name in self._targets:
                raise ConfigurationError(f"Duplicate target name: {name!r}")

            target.name = name
            self._targets[name] = target

        return target

    def remove_target(self, name: str) -> Target:
        with self._lock:
            return self._targets.pop(name)

    def get_target(self, name: str) -> Target:
        with self._lock:
            return self._targets[name]

    def enable(self, name: str) -> None:
        self.get_target(name).enabled = True

    def disable(self, name: str) -> None:
        self.get_target(name).enabled = False

    # --------------------- dispatch ---------------------
    def dispatch(self, messages: Sequence[Message], final: bool) -> None:
        """Forward ``messages`` to every enabled target."""

        self._fan_out(tuple(messages), final)

    def close(self) -> None:
        """Run the final flush and release target resources, once."""

        with self._lock:
            if self._closed:
                return
            self._closed = True

        self.logger.flush(final=True)

        for name, target in self._snapshot():
            try:
                target.close()
            except Exception as exc:
                logger.error("logfanout target %s failed to close: %s", name, exc)

    # --------------------- internal helpers ---------------------
    def _snapshot(self) -> List[Tuple[str, Target]]:
        with self._lock:
            return list(self._targets.items())

    def _fan_out(self, batch: Tuple[Message, ...], final: bool) -> None:
        start = time.perf_counter()

        for name, target in self._snapshot():
            if not target.enabled:
                continue

            try:
                target.collect(batch, final)
            except ExportError as exc:
                logger.error(
                    "logfanout target %s failed to export: %s", name, exc.__cause__ or exc
                )
            except Exception as exc:
                record_export_failure(name)
                logger.exception("logfanout target %s failed to collect: %s", name, exc)

        record_dispatch((time.perf_counter() - start) * 1000.0)


class BackgroundDispatcher(Dispatcher):
    """Dispatcher that fans out non-final batches on a worker thread.

    Batches wait in a bounded queue; when it is full the oldest batch is
    dropped. The final dispatch waits for the batch the worker is fanning
    out, drains the queue and runs on the caller's thread so it completes
    before the process exits.
    """

    def __init__(
        self,
        targets: Mapping[str, Target] | Iterable[Tuple[str, Target]] | None = None,
        logger: Logger | None = None,
        *,
        queue_size: int = 64,
        poll_interval_ms: int = 200,
        stop_timeout_ms: int = 5000,
    ) -> None:
        super().__init__(targets, logger)

        self._queue = BatchQueue(queue_size) # Batches waiting for the worker
        self._poll_interval = poll_interval_ms / 1000.0 # Worker wake-up period in seconds
        self._stop_timeout = stop_timeout_ms / 1000.0 # Join timeout in seconds
        self._stop_event = threading.Event()
        self._pending = 0 # Batches queued or being fanned out by the worker
        self._idle = threading.Condition()
        self._thread = threading.Thread(
            target=self._worker,
            name="logfanout-dispatcher",
            daemon=True,
        )

        self._thread.start()

    @property
    def running(self) -> bool:
        return not self._stop_event.is_set()

    def dispatch(self, messages: Sequence[Message], final: bool) -> None:
        batch = tuple(messages)

        if final:
            self._stop_worker()
            for pending in self._queue.drain():
                self._fan_out(pending, False)
                self._done()
            set_queue_depth(0)
            self._wait_for_worker()
            self._fan_out(batch, True)
            return

        if self._stop_event.is_set():
            self._fan_out(batch, False)
            return

        with self._idle:
            self._pending += 1

        dropped = self._queue.put(batch)

        if dropped is not None:
            self._done()
            record_queue_drop()
            logger.warning(
                "logfanout dispatch queue full; dropped a batch of %d messages", len(dropped)
            )

        set_queue_depth(self._queue.size())

    def join(self, timeout: float | None = None) -> bool:
        """Wait until every queued batch has been fanned out."""

        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout)

    # --------------------- internal helpers ---------------------
    def _done(self) -> None:
        with self._idle:
            self._pending -= 1
            if self._pending <= 0:
                self._pending = 0
                self._idle.notify_all()

    def _worker(self) -> None:
        while not self._stop_event.is_set():
            batch = self._queue.get(self._poll_interval)

            if batch is None:
                continue

            try:
                set_queue_depth(self._queue.size())
                self._fan_out(batch, False)
            finally:
                self._done()

    def _stop_worker(self) -> None:
        self._stop_event.set()
        self._queue.wake()

        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=self._stop_timeout)

    def _wait_for_worker(self) -> None:
        if self._thread is threading.current_thread():
            return

        if not self.join(self._stop_timeout):
            logger.warning(
                "logfanout dispatch worker is still exporting; waiting before the final flush"
            )
            self.join()

"""Message accumulation and flush-threshold handling."""

from __future__ import annotations

import logging
import os
import sys
import threading
import time
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Mapping, Optional, Tuple

from .message import Level, Message, TraceFrame
from .metrics import record_flush

if TYPE_CHECKING:  # pragma: no cover - import cycle guard for annotations
    from .dispatcher import Dispatcher

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "application"

_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__)) + os.sep

_CONTEXT: ContextVar[Mapping[str, Any]] = ContextVar("logfanout_context", default={})


class Logger:
    """Accumulate messages and hand them to the dispatcher in batches.

    A flush happens when ``flush_interval`` messages have been logged, or
    explicitly through :meth:`flush`. The append, threshold check and buffer
    swap run under one lock, so producers logging while a batch is being
    dispatched accumulate into a fresh buffer. The final flush waits for
    batches still being dispatched by other threads, so nothing reaches the
    targets after it.
    """

    def __init__(
        self,
        *,
        flush_interval: int = 1000,
        trace_level: int = 0,
        dispatcher: Optional["Dispatcher"] = None,
    ) -> None:
        """Initialize the logger with a flush threshold and trace depth."""

        self._lock = threading.RLock() # Guards the buffer and the swap on flush
        self._idle = threading.Condition(self._lock) # Signalled when a dispatch finishes
        self._in_flight = 0 # Batches swapped out but not yet dispatched
        self._local = threading.local() # Per-thread count of dispatches in progress
        self.messages: List[Message] = [] # Messages not yet dispatched
        self.flush_interval = flush_interval # Message count triggering a flush, 0 disables
        self.trace_level = trace_level # Call frames captured per message
        self.dispatcher = dispatcher # Set when a dispatcher attaches itself
        self._closed = False
        self._warned_closed = False

    @property
    def flush_interval(self) -> int:
        return self._flush_interval

    @flush_interval.setter
    def flush_interval(self, value: int) -> None:
        if value < 0:
            raise ValueError("flush_interval must not be negative")
        self._flush_interval = int(value)

    @property
    def trace_level(self) -> int:
        return self._trace_level

    @trace_level.setter
    def trace_level(self, value: int) -> None:
        if value < 0:
            raise ValueError("trace_level must not be negative")
        self._trace_level = int(value)

    @property
    def closed(self) -> bool:
        return self._closed

    def log(
        self,
        text: Any,
        level: "Level | str" = Level.INFO,
        category: str = DEFAULT_CATEGORY,
        **metadata: Any,
    ) -> None:
        """Record one message, flushing when the threshold is reached."""

        timestamp = time.time()
        resolved = Level.parse(level)
        trace = self._capture_trace() if self._trace_level > 0 else ()

        merged: Dict[str, Any] = dict(_CONTEXT.get())
        merged.update(metadata)

        message = Message(
            text=text,
            level=resolved,
            category=category,
            timestamp=timestamp,
            trace=trace,
            metadata=merged,
        )

        batch: Tuple[Message, ...] | None = None

        with self._lock:
            if self._closed:
                if not self._warned_closed:
                    self._warned_closed = True
                    logger.warning("logfanout logger is closed; dropping late messages")
                return

            self.messages.append(message)

            if self._flush_interval > 0 and len(self.messages) >= self._flush_interval:
                batch = self._swap()
                self._in_flight += 1

        if batch is not None:
            self._dispatch_in_flight(batch)

    def error(self, text: Any, category: str = DEFAULT_CATEGORY, **metadata: Any) -> None:
        self.log(text, Level.ERROR, category, **metadata)

    def warning(self, text: Any, category: str = DEFAULT_CATEGORY, **metadata: Any) -> None:
        self.log(text, Level.WARNING, category, **metadata)

    def info(self, text: Any, category: str = DEFAULT_CATEGORY, **metadata: Any) -> None:
        self.log(text, Level.INFO, category, **metadata)

    def trace(self, text: Any, category: str = DEFAULT_CATEGORY, **metadata: Any) -> None:
        self.log(text, Level.TRACE, category, **metadata)

    def flush(self, final: bool = False) -> None:
        """Dispatch the buffered messages.

        ``final`` marks the last flush of the process: targets export whatever
        they still hold and the logger stops accepting messages. It waits for
        batches other threads are still dispatching before the final one.
        """

        with self._lock:
            if self._closed:
                return

            if not final:
                batch = self._swap()
                self._in_flight += 1
            else:
                self._closed = True
                own = getattr(self._local, "depth", 0)
                self._idle.wait_for(lambda: self._in_flight <= own)
                batch = self._swap()

        if final:
            self._dispatch(batch, final=True)
        else:
            self._dispatch_in_flight(batch)

    def get_logger(self, category: str) -> "CategoryLogger":
        return CategoryLogger(category, self)

    # --------------------- internal helpers ---------------------
    def _swap(self) -> Tuple[Message, ...]:
        batch = tuple(self.messages)
        self.messages = []
        return batch

    def _dispatch_in_flight(self, batch: Tuple[Message, ...]) -> None:
        self._local.depth = getattr(self._local, "depth", 0) + 1
        try:
            self._dispatch(batch, final=False)
        finally:
            self._local.depth -= 1
            with self._idle:
                self._in_flight -= 1
                self._idle.notify_all()

    def _dispatch(self, batch: Tuple[Message, ...], *, final: bool) -> None:
        record_flush(len(batch))

        dispatcher = self.dispatcher

        if dispatcher is None:
            if batch:
                logger.warning(
                    "logfanout logger has no dispatcher; discarding %d messages", len(batch)
                )
            return

        dispatcher.dispatch(batch, final)

    def _capture_trace(self) -> Tuple[TraceFrame, ...]:
        """Collect application call frames, skipping this package's own frames."""

        frames: List[TraceFrame] = []
        frame = sys._getframe(1)

        while frame is not None and len(frames) < self._trace_level:
            filename = frame.f_code.co_filename

            if not os.path.abspath(filename).startswith(_PACKAGE_DIR):
                frames.append(TraceFrame(filename, frame.f_lineno, frame.f_code.co_name))

            frame = frame.f_back

        return tuple(frames)


class CategoryLogger:
    """Logger facade bound to one category."""

    def __init__(self, category: str, owner: Logger) -> None:
        self.category = category # The category stamped on every message
        self._owner = owner # The logger receiving the messages

    def log(self, text: Any, level: "Level | str" = Level.INFO, **metadata: Any) -> None:
        self._owner.log(text, level, self.category, **metadata)

    def error(self, text: Any, **metadata: Any) -> None:
        self.log(text, Level.ERROR, **metadata)

    def warning(self, text: Any, **metadata: Any) -> None:
        self.log(text, Level.WARNING, **metadata)

    def info(self, text: Any, **metadata: Any) -> None:
        self.log(text, Level.INFO, **metadata)

    def trace(self, text: Any, **metadata: Any) -> None:
        self.log(text, Level.TRACE, **metadata)


@contextmanager
def logger_context(**context: Any) -> Iterator[None]:
    """Bind metadata to every message logged inside the block."""

    token = push_context(**context)
    try:
        yield
    finally:
        pop_context(token)


def push_context(**context: Any) -> Token:
    current = dict(_CONTEXT.get())
    current.update(context)
    return _CONTEXT.set(current)


def pop_context(token: Token) -> None:
    _CONTEXT.reset(token)


def get_context() -> Mapping[str, Any]:
    return dict(_CONTEXT.get())


def clear_context() -> None:
    _CONTEXT.set({})

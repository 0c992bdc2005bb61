"""Explicit logging context and the scoped resource guaranteeing the final flush."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Iterator, Mapping

from .config import LoggingSettings, load_settings, settings_from_mapping
from .dispatcher import BackgroundDispatcher, Dispatcher
from .logger import DEFAULT_CATEGORY, CategoryLogger, Logger
from .message import Level
from .registry import build_targets
from .targets.base import Target


class LoggingContext:
    """A logger and its dispatcher, built from settings and closed explicitly."""

    def __init__(self, logger: Logger, dispatcher: Dispatcher) -> None:
        self.logger = logger # The accumulating logger
        self.dispatcher = dispatcher # The dispatcher attached to the logger
        self._close_lock = threading.Lock()
        self._closed = False

    @classmethod
    def from_settings(cls, settings: LoggingSettings) -> "LoggingContext":
        """Resolve every target before any message can be logged."""

        targets = build_targets(settings)
        logger = Logger(
            flush_interval=settings.flush_interval,
            trace_level=settings.trace_level,
        )

        if settings.background:
            dispatcher: Dispatcher = BackgroundDispatcher(
                targets,
                logger,
                queue_size=settings.queue_size,
                stop_timeout_ms=settings.stop_timeout_ms,
            )
        else:
            dispatcher = Dispatcher(targets, logger)

        return cls(logger, dispatcher)

    @property
    def closed(self) -> bool:
        return self._closed

    def get_logger(self, category: str) -> CategoryLogger:
        return self.logger.get_logger(category)

    def target(self, name: str) -> Target:
        return self.dispatcher.get_target(name)

    def log(self, text: Any, level: "Level | str" = Level.INFO, category: str = DEFAULT_CATEGORY, **metadata: Any) -> None:
        self.logger.log(text, level, category, **metadata)

    def flush(self) -> None:
        """Dispatch buffered messages without ending the session."""

        self.logger.flush(final=False)

    def close(self) -> None:
        """Perform the final flush exactly once and release target resources."""

        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        self.dispatcher.close()

    def __enter__(self) -> "LoggingContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


@contextmanager
def open_logging(
    settings: LoggingSettings | Mapping[str, Any] | None = None,
) -> Iterator[LoggingContext]:
    """Yield a :class:`LoggingContext` whose final flush runs on every exit path."""

    if settings is None:
        resolved = load_settings()
    elif isinstance(settings, LoggingSettings):
        resolved = settings
    else:
        resolved = settings_from_mapping(settings)

    context = LoggingContext.from_settings(resolved)
    try:
        yield context
    finally:
        context.close()

"""Public API for the log fan-out runtime."""

from __future__ import annotations

from .config import LoggingSettings, TargetSettings, load_settings, settings_from_mapping
from .context import LoggingContext, open_logging
from .dispatcher import BackgroundDispatcher, Dispatcher
from .errors import ConfigurationError, ExportError, LogFanoutError
from .filters import matches
from .logger import (
    CategoryLogger,
    Logger,
    clear_context,
    get_context,
    logger_context,
    pop_context,
    push_context,
)
from .message import Level, Message, TraceFrame
from .metrics import get_metrics, reset_metrics
from .registry import build_targets, register_target_kind
from .targets import Target

__all__ = [
    "configure",
    "open_logging",
    "LoggingContext",
    "LoggingSettings",
    "TargetSettings",
    "load_settings",
    "settings_from_mapping",
    "Dispatcher",
    "BackgroundDispatcher",
    "Logger",
    "CategoryLogger",
    "Target",
    "Level",
    "Message",
    "TraceFrame",
    "matches",
    "build_targets",
    "register_target_kind",
    "ConfigurationError",
    "ExportError",
    "LogFanoutError",
    "get_metrics",
    "reset_metrics",
    "logger_context",
    "push_context",
    "pop_context",
    "get_context",
    "clear_context",
]


def configure(settings: LoggingSettings | None = None, **overrides) -> LoggingContext:
    """Build a logging context from settings, resolving every target up front.

    The caller owns the returned context and must ``close()`` it; prefer
    :func:`open_logging` where a ``with`` block fits.
    """

    resolved = settings or load_settings()
    if overrides:
        resolved = resolved.with_overrides(**overrides)

    return LoggingContext.from_settings(resolved)

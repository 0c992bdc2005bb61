"""Exception taxonomy for the log fan-out runtime."""

from __future__ import annotations


class LogFanoutError(Exception):
    """Base error for the logging runtime."""
    pass


class ConfigurationError(LogFanoutError):
    """A declared target or setting failed to resolve."""
    pass


class ExportError(LogFanoutError):
    """A target failed to deliver its buffer to the underlying medium."""

    def __init__(self, target: str, message: str | None = None) -> None:
        self.target = target
        super().__init__(message or f"target {target!r} failed to export")

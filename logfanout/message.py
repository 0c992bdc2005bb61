"""Log message schema: severity levels, call frames and the immutable record."""

from __future__ import annotations

import datetime as _dt
import enum
import traceback
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Tuple

from .errors import ConfigurationError


class Level(enum.IntEnum):
    """Severity of a message; a larger value is more severe."""

    TRACE = 10
    INFO = 20
    WARNING = 30
    ERROR = 40

    @classmethod
    def parse(cls, value: "Level | str") -> "Level":
        """Resolve a level from its name, case-insensitively."""

        if isinstance(value, Level):
            return value

        name = str(value).strip().upper()
        name = _LEVEL_ALIASES.get(name, name)

        try:
            return cls[name]
        except KeyError:
            raise ConfigurationError(f"Unknown log level: {value!r}") from None


_LEVEL_ALIASES = {
    "WARN": "WARNING",
    "DEBUG": "TRACE",
}


@dataclass(frozen=True)
class TraceFrame:
    """One application call frame captured with a message."""

    file: str
    line: int
    function: str

    def as_dict(self) -> Dict[str, Any]:
        return {"file": self.file, "line": self.line, "function": self.function}


def _frozen_metadata(values: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(values or {}))


@dataclass(frozen=True)
class Message:
    """Immutable record of one log event."""

    text: Any
    level: Level
    category: str
    timestamp: float
    trace: Tuple[TraceFrame, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        object.__setattr__(self, "level", Level.parse(self.level))
        object.__setattr__(self, "trace", tuple(self.trace))
        if not isinstance(self.metadata, MappingProxyType):
            object.__setattr__(self, "metadata", _frozen_metadata(self.metadata))

    @property
    def iso_timestamp(self) -> str:
        """Timestamp as ISO-8601 UTC with microseconds."""

        return (
            _dt.datetime.fromtimestamp(self.timestamp, tz=_dt.timezone.utc)
            .isoformat(timespec="microseconds")
            .replace("+00:00", "Z")
        )

    def render_text(self) -> str:
        """Return the text as a string; exceptions render with their traceback."""

        text = self.text

        if isinstance(text, BaseException):
            header = f"{type(text).__name__}: {text}"
            if text.__traceback__ is None:
                return header
            formatted = "".join(traceback.format_tb(text.__traceback__)).rstrip()
            return f"{header}\n{formatted}"

        if isinstance(text, str):
            return text

        return repr(text)

    def as_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation used by structured targets."""

        text = self.text
        if isinstance(text, (str, int, float, bool)) or text is None:
            payload: Any = text
        elif isinstance(text, (dict, list)):
            payload = text
        else:
            payload = self.render_text()

        return {
            "ts": self.iso_timestamp,
            "level": self.level.name,
            "category": self.category,
            "message": payload,
            "trace": [frame.as_dict() for frame in self.trace],
            "metadata": dict(self.metadata),
        }

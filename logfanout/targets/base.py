"""Base class for filtered, buffering log targets."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Iterable, List, Sequence, Tuple

from ..errors import ConfigurationError, ExportError
from ..filters import filter_messages, parse_levels, validate_patterns
from ..message import Level, Message
from ..metrics import record_drop, record_export, record_export_failure

DEFAULT_EXPORT_INTERVAL = 1000
DEFAULT_MAX_BUFFER_SIZE = 10000


class Target(ABC):
    """A sink receiving a filtered view of every dispatched batch.

    Each target keeps its own buffer and exports it once ``export_interval``
    messages have accumulated, or unconditionally on the final collect.
    Subclasses implement :meth:`export`; raising from it signals failure.
    """

    def __init__(
        self,
        name: str | None = None,
        *,
        enabled: bool = True,
        levels: Iterable["Level | str"] = (),
        categories: Iterable[str] = (),
        except_: Iterable[str] = (),
        export_interval: int = DEFAULT_EXPORT_INTERVAL,
        max_buffer_size: int = DEFAULT_MAX_BUFFER_SIZE,
        retain_on_failure: bool = True,
    ) -> None:
        """Initialize the target with its filters and buffering policy."""

        if export_interval < 0:
            raise ConfigurationError("export_interval must not be negative")
        if max_buffer_size < 0:
            raise ConfigurationError("max_buffer_size must not be negative")
        if 0 < max_buffer_size < export_interval:
            raise ConfigurationError(
                f"max_buffer_size ({max_buffer_size}) must not be smaller than "
                f"export_interval ({export_interval})"
            )

        self.name = name or type(self).__name__ # Name assigned by the dispatcher
        self.enabled = enabled # Gate checked by the dispatcher
        self.levels = parse_levels(levels) # Allowed levels, empty means all
        self.categories = validate_patterns(categories) # Include patterns
        self.except_ = validate_patterns(except_, field="except") # Exclude patterns
        self.export_interval = export_interval # Buffered count that triggers an export
        self.max_buffer_size = max_buffer_size # Bound on messages kept after a failed export
        self.retain_on_failure = retain_on_failure # Keep a failed batch for the next export
        self.buffer: List[Message] = []
        self._lock = threading.RLock()

    def collect(self, messages: Sequence[Message], final: bool) -> None:
        """Filter ``messages`` into the buffer and export when due."""

        with self._lock:
            self.buffer.extend(filter_messages(messages, self))

            due = self.export_interval > 0 and len(self.buffer) >= self.export_interval
            if final or due:
                self._export_buffer()

    @abstractmethod
    def export(self, messages: Tuple[Message, ...]) -> None:
        """Deliver ``messages`` to the underlying medium."""

    def close(self) -> None:
        """Release resources held by the target."""

    def format_message(self, message: Message) -> str:
        """Render one message as a text line, followed by its trace."""

        line = (
            f"{message.iso_timestamp} [{message.level.name.lower()}]"
            f"[{message.category}] {message.render_text()}"
        )

        if message.trace:
            frames = "\n".join(
                f"    in {frame.file}:{frame.line} ({frame.function})"
                for frame in message.trace
            )
            line = f"{line}\n{frames}"

        return line

    # --------------------- internal helpers ---------------------
    def _export_buffer(self) -> None:
        batch = tuple(self.buffer)
        self.buffer = []

        try:
            self.export(batch)
        except Exception as exc:
            record_export_failure(self.name)

            if self.retain_on_failure:
                self.buffer[:0] = batch
                self._enforce_bound()
            else:
                record_drop(self.name, len(batch))

            raise ExportError(self.name) from exc

        record_export(self.name)

    def _enforce_bound(self) -> None:
        limit = self.max_buffer_size
        overflow = len(self.buffer) - limit

        if limit and overflow > 0:
            del self.buffer[:overflow]
            record_drop(self.name, overflow)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} enabled={self.enabled}>"

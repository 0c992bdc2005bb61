"""File target appending formatted lines, with size-based rotation."""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Any, Tuple

from ..errors import ConfigurationError
from ..message import Message
from .base import Target


class FileTarget(Target):
    """Append formatted messages to a log file.

    When the file grows past ``max_file_size_kb`` it is rotated to
    ``<path>.1``, shifting older files up to ``max_log_files``.
    """

    def __init__(
        self,
        name: str | None = None,
        *,
        path: str | os.PathLike[str],
        max_file_size_kb: int = 10240,
        max_log_files: int = 5,
        rotate: bool = True,
        encoding: str = "utf-8",
        **options: Any,
    ) -> None:
        """Initialize the file target with a path and rotation policy."""

        super().__init__(name, **options)

        if not str(path).strip():
            raise ConfigurationError("file target requires a path")
        if max_log_files < 1:
            raise ConfigurationError("max_log_files must be at least 1")

        self.path = Path(path)
        self.max_file_size = max(1, int(max_file_size_kb)) * 1024
        self.max_log_files = int(max_log_files)
        self.rotate = rotate
        self.encoding = encoding
        self._file_lock = threading.Lock()

    def export(self, messages: Tuple[Message, ...]) -> None:
        if not messages:
            return

        text = "\n".join(self.format_message(message) for message in messages) + "\n"

        with self._file_lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)

            if self.rotate and self._size() > self.max_file_size:
                self._rotate_files()

            with self.path.open("a", encoding=self.encoding) as handle:
                handle.write(text)

    # --------------------- internal helpers ---------------------
    def _size(self) -> int:
        try:
            return self.path.stat().st_size
        except FileNotFoundError:
            return 0

    def _rotated(self, index: int) -> Path:
        return self.path.with_name(f"{self.path.name}.{index}")

    def _rotate_files(self) -> None:
        """Shift ``path.N-1`` to ``path.N`` down to ``path`` -> ``path.1``."""

        oldest = self._rotated(self.max_log_files)
        if oldest.exists():
            oldest.unlink()

        for index in range(self.max_log_files - 1, 0, -1):
            source = self._rotated(index)
            if source.exists():
                source.replace(self._rotated(index + 1))

        if self.path.exists():
            self.path.replace(self._rotated(1))

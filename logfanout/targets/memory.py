"""In-memory target useful for debugging and tests."""

from __future__ import annotations

from typing import Any, List, Tuple

from ..message import Message
from .base import Target


class MemoryTarget(Target):
    """Keep every exported batch in memory."""

    def __init__(self, name: str | None = None, **options: Any) -> None:
        super().__init__(name, **options)
        self.exports: List[Tuple[Message, ...]] = []

    def export(self, messages: Tuple[Message, ...]) -> None:
        self.exports.append(messages)

    @property
    def messages(self) -> List[Message]:
        """All exported messages, flattened in export order."""

        return [message for batch in self.exports for message in batch]

    @property
    def texts(self) -> List[Any]:
        return [message.text for message in self.messages]

"""Stream target emitting NDJSON, by default to stdout for Cloud Run ingestion."""

from __future__ import annotations

import json
import sys
import threading
from typing import Any, Dict, TextIO, Tuple

from ..message import Message
from .base import Target


class StreamTarget(Target):
    """Write structured messages to a text stream as NDJSON."""

    def __init__(
        self,
        name: str | None = None,
        *,
        stream: TextIO | None = None,
        project: str | None = None,
        **options: Any,
    ) -> None:
        """Initialize the stream target with a given stream and GCP project."""

        super().__init__(name, **options)
        self._stream = stream or sys.stdout # The stream to write to
        self._project = project # Project used to qualify trace ids
        self._write_lock = threading.Lock() # Shared streams may be written by several targets

    def export(self, messages: Tuple[Message, ...]) -> None:
        """Write one JSON line per message."""

        if not messages:
            return

        lines = "".join(
            json.dumps(self.build_payload(message), separators=(",", ":"), default=str) + "\n"
            for message in messages
        )

        with self._write_lock:
            self._stream.write(lines)
            self._stream.flush()

    def build_payload(self, message: Message) -> Dict[str, Any]:
        payload = message.as_dict()
        metadata = payload["metadata"]

        trace_id = metadata.get("trace_id")
        span_id = metadata.get("span_id")

        if trace_id and self._project:
            payload.setdefault(
                "logging.googleapis.com/trace",
                f"projects/{self._project}/traces/{trace_id}",
            )

        if span_id:
            payload.setdefault("logging.googleapis.com/spanId", span_id)

        payload.setdefault("severity", message.level.name)

        return payload

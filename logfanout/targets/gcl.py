"""Google Cloud Logging API target."""

from __future__ import annotations

import logging
from typing import Any, Tuple

from google.api_core.exceptions import GoogleAPICallError
from google.cloud import logging as gcl_logging

from ..message import Message
from .base import Target

logger = logging.getLogger(__name__)


class GoogleCloudLoggingTarget(Target):
    """Ship each exported batch to Cloud Logging as one batched write."""

    def __init__(
        self,
        name: str | None = None,
        *,
        project: str | None = None,
        log_name: str = "logfanout",
        service: str = "unknown-service",
        env: str = "local",
        **options: Any,
    ) -> None:
        """Initialize the target with a given project, log name, service, and environment."""

        super().__init__(name, **options)

        self._client = gcl_logging.Client(project=project) # The client for the target
        self._logger = self._client.logger(log_name) # The Cloud Logging logger
        self._project = project or self._client.project # The project for the target
        self._labels = {"service": service, "env": env} # Labels attached to every entry
        self._resource = gcl_logging.Resource(
            type="global", labels={"project_id": self._project}
        )

    def export(self, messages: Tuple[Message, ...]) -> None:
        if not messages:
            return

        batch = self._logger.batch()

        for message in messages:
            payload = message.as_dict()
            kwargs: dict[str, Any] = {}

            trace_id = payload["metadata"].get("trace_id")
            if trace_id:
                kwargs["trace"] = f"projects/{self._project}/traces/{trace_id}"

            span_id = payload["metadata"].get("span_id")
            if span_id:
                kwargs["span_id"] = span_id

            batch.log_struct(
                payload,
                severity=message.level.name,
                resource=self._resource,
                labels=self._labels,
                **kwargs,
            )

        try:
            batch.commit()
        except GoogleAPICallError:
            logger.error(
                "google cloud logging commit failed for %d messages", len(messages)
            )
            raise

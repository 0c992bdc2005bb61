"""Flask integration helpers for logfanout."""

from __future__ import annotations

import uuid
from typing import Any

from flask import Flask, current_app, g, request

from .context import LoggingContext
from .logger import pop_context, push_context

EXTENSION_KEY = "logfanout"


def register_flask_logging(
    app: Flask,
    context: LoggingContext,
    *,
    flush_on_teardown: bool = False,
    request_id_header: str = "X-Request-Id",
) -> None:
    """Attach ``context`` to ``app`` and bind request metadata to messages."""

    app.extensions[EXTENSION_KEY] = context

    @app.before_request
    def _logfanout_before_request() -> None:  # type: ignore[override]
        rid = (request.headers.get(request_id_header) or "").strip()
        if not rid:
            rid = uuid.uuid4().hex[:16]
        g.request_id = rid

        g._logfanout_token = push_context(
            request_id=rid,
            method=request.method,
            path=request.path,
        )

    @app.after_request
    def _logfanout_after_request(response):  # type: ignore[override]
        rid = g.get("request_id")
        if rid:
            response.headers.setdefault(request_id_header, rid)
        return response

    @app.teardown_request
    def _logfanout_teardown(_exc: Any) -> None:  # type: ignore[override]
        token = g.pop("_logfanout_token", None)
        if token is not None:
            pop_context(token)

        if flush_on_teardown and not context.closed:
            context.flush()


def current_logging() -> LoggingContext:
    """Return the logging context registered on the current app."""

    try:
        return current_app.extensions[EXTENSION_KEY]
    except KeyError:
        raise RuntimeError("logfanout is not registered on this Flask app") from None

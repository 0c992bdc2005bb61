"""Tests for the scoped logging context and context metadata propagation."""

from __future__ import annotations

import pytest

import logfanout
from logfanout.config import LoggingSettings, TargetSettings
from logfanout.context import LoggingContext, open_logging
from logfanout.dispatcher import BackgroundDispatcher
from logfanout.errors import ConfigurationError
from logfanout.logger import clear_context, get_context, logger_context, pop_context, push_context


MEMORY_CONFIG = {
    "flush_interval": 0,
    "targets": {
        "app": {"kind": "memory", "categories": ["app.*"], "export_interval": 0},
        "errors": {"kind": "memory", "levels": ["error"], "export_interval": 0},
    },
}


def test_open_logging_flushes_on_normal_exit():
    with open_logging(MEMORY_CONFIG) as logging_context:
        logging_context.log("db ok", "info", "app.db")
        logging_context.get_logger("sys.disk").error("disk full")

        app = logging_context.target("app")
        errors = logging_context.target("errors")
        assert app.exports == []

    assert logging_context.closed
    assert app.texts == ["db ok"]
    assert errors.texts == ["disk full"]


def test_open_logging_flushes_on_error_path():
    with pytest.raises(RuntimeError):
        with open_logging(MEMORY_CONFIG) as logging_context:
            logging_context.log("before crash", "info", "app.startup")
            raise RuntimeError("startup failed")

    assert logging_context.target("app").texts == ["before crash"]


def test_close_is_idempotent():
    logging_context = LoggingContext.from_settings(
        LoggingSettings(targets=(TargetSettings(name="mem", kind="memory", export_interval=0),))
    )

    logging_context.log("once")
    logging_context.close()
    logging_context.close()

    assert len(logging_context.target("mem").exports) == 1


def test_flush_keeps_context_open():
    with open_logging(MEMORY_CONFIG) as logging_context:
        logging_context.log("first", "info", "app.a")
        logging_context.flush()

        assert not logging_context.closed
        assert logging_context.target("app").buffer[0].text == "first"


def test_configuration_errors_surface_before_logging():
    with pytest.raises(ConfigurationError):
        with open_logging({"targets": {"bad": {"kind": "memory", "categories": ["*app"]}}}):
            pytest.fail("context must not open with a malformed target")


def test_background_setting_selects_background_dispatcher():
    settings = LoggingSettings(
        background=True,
        flush_interval=1,
        targets=(TargetSettings(name="mem", kind="memory", export_interval=0),),
    )

    with open_logging(settings) as logging_context:
        assert isinstance(logging_context.dispatcher, BackgroundDispatcher)
        logging_context.log("queued")

    assert logging_context.target("mem").texts == ["queued"]


def test_configure_applies_overrides():
    logging_context = logfanout.configure(
        LoggingSettings(targets=(TargetSettings(name="mem", kind="memory"),)),
        trace_level=2,
    )

    try:
        assert logging_context.dispatcher.trace_level == 2
    finally:
        logging_context.close()


def test_manual_context_tokens_can_be_cleared():
    token = push_context(trace_id="trace-123")
    assert get_context() == {"trace_id": "trace-123"}
    pop_context(token)
    assert get_context() == {}

    push_context(request_id="r-1")
    clear_context()
    assert get_context() == {}


def test_logger_context_nests():
    with logger_context(tenant="acme"):
        with logger_context(request_id="r-1"):
            assert get_context() == {"tenant": "acme", "request_id": "r-1"}
        assert get_context() == {"tenant": "acme"}
    assert get_context() == {}

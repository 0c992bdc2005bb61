"""Tests covering logger accumulation and flush thresholds."""

from __future__ import annotations

import threading
from typing import List, Tuple

import pytest

from logfanout.logger import Logger, logger_context
from logfanout.message import Level, Message
from logfanout.metrics import get_metrics


class _CaptureDispatcher:
    """Dispatcher double recording each batch."""

    def __init__(self) -> None:
        self.batches: List[Tuple[Tuple[Message, ...], bool]] = []

    def dispatch(self, messages, final):
        self.batches.append((messages, final))


@pytest.fixture
def capture():
    return _CaptureDispatcher()


def test_nth_message_triggers_flush(capture):
    logger = Logger(flush_interval=3, dispatcher=capture)

    logger.info("1")
    logger.info("2")
    assert capture.batches == []

    logger.info("3")

    assert len(capture.batches) == 1
    batch, final = capture.batches[0]
    assert [m.text for m in batch] == ["1", "2", "3"]
    assert final is False
    assert logger.messages == []


def test_flush_interval_repeats_every_n(capture):
    logger = Logger(flush_interval=2, dispatcher=capture)

    for index in range(5):
        logger.info(str(index))

    assert [[m.text for m in batch] for batch, _ in capture.batches] == [["0", "1"], ["2", "3"]]
    assert [m.text for m in logger.messages] == ["4"]


def test_zero_flush_interval_never_auto_flushes(capture):
    logger = Logger(flush_interval=0, dispatcher=capture)

    for index in range(50):
        logger.info(str(index))

    assert capture.batches == []
    assert len(logger.messages) == 50


def test_final_flush_closes_logger(capture):
    logger = Logger(flush_interval=0, dispatcher=capture)
    logger.error("boom", category="sys.disk")

    logger.flush(final=True)
    logger.info("late")
    logger.flush(final=True)

    assert len(capture.batches) == 1
    batch, final = capture.batches[0]
    assert final is True
    assert batch[0].level is Level.ERROR
    assert batch[0].category == "sys.disk"
    assert logger.closed
    assert logger.messages == []


def test_flush_records_metrics(capture):
    logger = Logger(flush_interval=2, dispatcher=capture)

    logger.info("a")
    logger.info("b")

    metrics = get_metrics()
    assert metrics.flush_total == 1
    assert metrics.messages_flushed == 2


def test_flush_without_dispatcher_discards_batch():
    logger = Logger(flush_interval=1)

    logger.info("nowhere")

    assert logger.messages == []


def test_trace_capture_skips_logging_frames(capture):
    logger = Logger(flush_interval=0, trace_level=2, dispatcher=capture)

    def _producer():
        logger.info("traced")

    _producer()

    trace = logger.messages[0].trace
    assert len(trace) == 2
    assert trace[0].function == "_producer"
    assert trace[0].file == __file__
    assert trace[1].function == "test_trace_capture_skips_logging_frames"


def test_trace_level_zero_captures_nothing(capture):
    logger = Logger(flush_interval=0, trace_level=0, dispatcher=capture)

    logger.info("plain")

    assert logger.messages[0].trace == ()


def test_context_metadata_is_attached(capture):
    logger = Logger(flush_interval=0, dispatcher=capture)

    with logger_context(request_id="req-1", tenant="acme"):
        logger.info("inside", tenant="override")

    logger.info("outside")

    inside, outside = logger.messages
    assert inside.metadata == {"request_id": "req-1", "tenant": "override"}
    assert outside.metadata == {}


def test_category_logger_stamps_category(capture):
    logger = Logger(flush_interval=0, dispatcher=capture)

    db = logger.get_logger("app.db.Connection")
    db.warning("slow query")
    db.trace("detail")

    assert [(m.category, m.level) for m in logger.messages] == [
        ("app.db.Connection", Level.WARNING),
        ("app.db.Connection", Level.TRACE),
    ]


def test_producers_logging_during_dispatch_use_fresh_buffer():
    logger = Logger(flush_interval=2)
    seen: List[Tuple[str, ...]] = []

    class _ReentrantDispatcher:
        def dispatch(self, messages, final):
            seen.append(tuple(m.text for m in messages))
            if len(seen) == 1:
                logger.info("during-dispatch")

    logger.dispatcher = _ReentrantDispatcher()

    logger.info("a")
    logger.info("b")

    assert seen == [("a", "b")]
    assert [m.text for m in logger.messages] == ["during-dispatch"]


def test_concurrent_logging_loses_nothing(capture):
    logger = Logger(flush_interval=7, dispatcher=capture)

    def _worker(prefix: str) -> None:
        for index in range(100):
            logger.info(f"{prefix}-{index}")

    threads = [threading.Thread(target=_worker, args=(str(n),)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    logger.flush(final=True)

    texts = [m.text for batch, _ in capture.batches for m in batch]
    assert len(texts) == 400
    assert len(set(texts)) == 400
    assert all(len(batch) == 7 for batch, final in capture.batches if not final)


@pytest.mark.parametrize("attribute", ["flush_interval", "trace_level"])
def test_negative_settings_are_rejected(attribute):
    logger = Logger()

    with pytest.raises(ValueError):
        setattr(logger, attribute, -1)


def test_final_flush_waits_for_batches_still_being_dispatched():
    from logfanout.dispatcher import Dispatcher
    from logfanout.targets.memory import MemoryTarget

    entered = threading.Event()
    release = threading.Event()

    class _GatedTarget(MemoryTarget):
        def collect(self, messages, final):
            if not final:
                entered.set()
                release.wait(timeout=5)
            super().collect(messages, final)

    target = _GatedTarget(export_interval=0)
    logger = Logger(flush_interval=1)
    Dispatcher({"gated": target}, logger)

    producer = threading.Thread(target=logger.info, args=("a",))
    producer.start()
    assert entered.wait(timeout=5)

    closer = threading.Thread(target=logger.flush, kwargs={"final": True})
    closer.start()
    closer.join(timeout=0.2)
    assert closer.is_alive()

    release.set()
    producer.join(timeout=5)
    closer.join(timeout=5)

    assert not closer.is_alive()
    assert target.texts == ["a"]
    assert target.buffer == []

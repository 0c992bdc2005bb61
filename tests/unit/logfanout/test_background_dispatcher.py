"""Tests covering the queued background dispatcher."""

from __future__ import annotations

import threading

import pytest

from logfanout.dispatcher import BackgroundDispatcher
from logfanout.logger import Logger
from logfanout.metrics import get_metrics
from logfanout.queue import BatchQueue
from logfanout.targets.memory import MemoryTarget


@pytest.fixture
def background():
    created = []

    def _make(targets, **kwargs):
        dispatcher = BackgroundDispatcher(targets, Logger(flush_interval=0), **kwargs)
        created.append(dispatcher)
        return dispatcher

    yield _make

    for dispatcher in created:
        dispatcher.close()


def test_non_final_batches_are_fanned_out_by_worker(background, make_message):
    target = MemoryTarget(export_interval=1)
    dispatcher = background({"mem": target}, poll_interval_ms=10)

    dispatcher.dispatch((make_message("a"),), final=False)
    dispatcher.dispatch((make_message("b"),), final=False)

    assert dispatcher.join(timeout=5)
    assert target.texts == ["a", "b"]


def test_final_dispatch_drains_queue_on_caller_thread(background, make_message):
    gate = threading.Event()
    target = MemoryTarget(export_interval=0)

    class _SlowTarget(MemoryTarget):
        def collect(self, messages, final):
            gate.wait(timeout=5)
            super().collect(messages, final)

    slow = _SlowTarget(export_interval=0)
    dispatcher = background({"slow": slow, "mem": target}, poll_interval_ms=10)

    dispatcher.dispatch((make_message("queued-1"),), final=False)
    dispatcher.dispatch((make_message("queued-2"),), final=False)
    gate.set()
    dispatcher.dispatch((make_message("last"),), final=True)

    assert not dispatcher.running
    assert target.texts == ["queued-1", "queued-2", "last"]
    assert len(target.exports) == 1


def test_dispatch_after_stop_runs_synchronously(background, make_message):
    target = MemoryTarget(export_interval=1)
    dispatcher = background({"mem": target})

    dispatcher.dispatch((), final=True)
    dispatcher.dispatch((make_message("late"),), final=False)

    assert target.texts == ["late"]


def test_batch_queue_drops_oldest_when_full(make_message):
    queue = BatchQueue(2)
    first, second, third = ((make_message(str(i)),) for i in range(3))

    assert queue.put(first) is None
    assert queue.put(second) is None
    assert queue.put(third) is first

    assert queue.dropped == 1
    assert queue.drain() == [second, third]
    assert queue.get(timeout=0.0) is None


def test_full_queue_records_drop_metric(make_message):
    gate = threading.Event()

    class _Blocking(MemoryTarget):
        def collect(self, messages, final):
            gate.wait(timeout=5)
            super().collect(messages, final)

    dispatcher = BackgroundDispatcher(
        {"blocking": _Blocking(export_interval=0)},
        Logger(flush_interval=0),
        queue_size=1,
        poll_interval_ms=10,
    )

    try:
        for index in range(5):
            dispatcher.dispatch((make_message(str(index)),), final=False)
        assert get_metrics().queue_dropped >= 3
    finally:
        gate.set()
        dispatcher.close()


def test_queue_capacity_must_be_positive():
    with pytest.raises(ValueError):
        BatchQueue(0)


def test_final_dispatch_waits_for_batch_in_worker(background, make_message):
    entered = threading.Event()
    release = threading.Event()

    class _GatedTarget(MemoryTarget):
        def collect(self, messages, final):
            if not final:
                entered.set()
                release.wait(timeout=5)
            super().collect(messages, final)

    target = _GatedTarget(export_interval=0)
    dispatcher = background({"gated": target}, poll_interval_ms=10, stop_timeout_ms=10)

    dispatcher.dispatch((make_message("in-worker"),), final=False)
    assert entered.wait(timeout=5)

    closer = threading.Thread(
        target=dispatcher.dispatch, args=((make_message("last"),), True)
    )
    closer.start()
    closer.join(timeout=0.2)
    assert closer.is_alive()

    release.set()
    closer.join(timeout=5)

    assert not closer.is_alive()
    assert target.texts == ["in-worker", "last"]
    assert len(target.exports) == 1

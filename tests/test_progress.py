"""Tests for progress reporters."""

import threading

from conftest import RecordingReporter
from contentgen.pipeline.progress import CompositeReporter, QueuedReporter
from contentgen.schemas.models import StageStatus


def test_queued_reporter_keeps_order():
    sink = RecordingReporter()
    reporter = QueuedReporter(sink)
    for progress in (0, 25, 100):
        reporter.on_stage_update("sess_1", "setup", StageStatus.PROCESSING, progress, progress)
    reporter.close()

    assert [e[2] for e in sink.events] == [0, 25, 100]


def test_queued_reporter_returns_while_sink_is_busy():
    release = threading.Event()
    sink = RecordingReporter()

    class BusySink:
        def on_stage_update(self, *args):
            release.wait(timeout=5)
            sink.on_stage_update(*args)

    reporter = QueuedReporter(BusySink())
    reporter.on_stage_update("sess_1", "setup", StageStatus.COMPLETED, 100, 10)
    reporter.on_stage_update("sess_1", "keyword-research", StageStatus.PROCESSING, 25, 12)
    assert sink.events == []

    release.set()
    reporter.flush()
    assert [e[0] for e in sink.events] == ["setup", "keyword-research"]
    reporter.close()


def test_queued_reporter_survives_sink_errors():
    sink = RecordingReporter()
    calls = []

    class FlakySink:
        def on_stage_update(self, *args):
            calls.append(args)
            if len(calls) == 1:
                raise RuntimeError("display gone")
            sink.on_stage_update(*args)

    reporter = QueuedReporter(FlakySink())
    reporter.on_stage_update("sess_1", "setup", StageStatus.PROCESSING, 25, 2)
    reporter.on_stage_update("sess_1", "setup", StageStatus.COMPLETED, 100, 10)
    reporter.close()

    assert len(calls) == 2
    assert sink.events == [("setup", StageStatus.COMPLETED, 100, 10)]


def test_queued_reporter_drops_events_when_full():
    release = threading.Event()
    entered = threading.Event()
    sink = RecordingReporter()

    class BusySink:
        def on_stage_update(self, *args):
            entered.set()
            release.wait(timeout=5)
            sink.on_stage_update(*args)

    reporter = QueuedReporter(BusySink(), maxsize=1)
    reporter.on_stage_update("sess_1", "setup", StageStatus.PROCESSING, 25, 2)
    assert entered.wait(timeout=5)
    reporter.on_stage_update("sess_1", "setup", StageStatus.COMPLETED, 100, 10)
    reporter.on_stage_update("sess_1", "keyword-research", StageStatus.PROCESSING, 25, 12)

    release.set()
    reporter.close()
    assert [e[1] for e in sink.events] == [StageStatus.PROCESSING, StageStatus.COMPLETED]


def test_composite_reporter_isolates_failures():
    sink = RecordingReporter()

    class Broken:
        def on_stage_update(self, *args):
            raise RuntimeError("boom")

    CompositeReporter(Broken(), sink).on_stage_update(
        "sess_1", "setup", StageStatus.COMPLETED, 100, 10
    )
    assert sink.events == [("setup", StageStatus.COMPLETED, 100, 10)]

"""Tests for the generation service (submit / poll / result / cancel)."""

import threading
from types import SimpleNamespace

import pytest

from conftest import FailingStore, FakeGateway, RecordingReporter, wait_for
from contentgen.errors import InvalidRequest, NotReady, PipelineFailure, ProviderError, SessionNotFound
from contentgen.pipeline import GenerationService
from contentgen.providers.images import OpenAIImageClient
from contentgen.schemas.models import SessionStatus, StageStatus
from contentgen.sessions.store import InMemorySessionStore


@pytest.fixture
def make_service():
    services = []

    def _make(gateway=None, **kwargs):
        service = GenerationService(gateway or FakeGateway(), **kwargs)
        services.append(service)
        return service

    yield _make
    for service in services:
        service.shutdown()


def _finished(service, session_id):
    snapshot = service.poll(session_id)
    return snapshot if snapshot.status.is_terminal else None


def _blocking_gateway(method="research_keywords"):
    """Gateway that parks inside ``method`` until ``release`` is set."""
    entered = threading.Event()
    release = threading.Event()

    def hook(name):
        if name == method:
            entered.set()
            release.wait(timeout=5)

    return FakeGateway(on_call=hook), entered, release


def test_submit_returns_estimate_before_running(make_service):
    gateway, entered, release = _blocking_gateway()
    service = make_service(gateway, store=InMemorySessionStore())
    submission = service.submit({"seed_topics": ["AI automation"]})

    assert submission.session_id.startswith("sess_")
    assert submission.ephemeral is False
    assert submission.estimate.total == pytest.approx(0.675)
    assert len(submission.estimate.items) == 5
    release.set()
    wait_for(lambda: _finished(service, submission.session_id))


def test_submit_poll_result(make_service, make_request):
    service = make_service(store=InMemorySessionStore())
    submission = service.submit(make_request())

    snapshot = wait_for(lambda: _finished(service, submission.session_id))
    assert snapshot.status == SessionStatus.COMPLETED
    assert snapshot.progress == 100
    assert [s.stage_id for s in snapshot.stages][0] == "setup"
    assert all(s.status == StageStatus.COMPLETED for s in snapshot.stages)

    artifact = service.result(submission.session_id)
    assert artifact.title == "AI Automation Guide"


def test_invalid_request_is_rejected_before_a_session_exists(make_service):
    gateway = FakeGateway()
    service = make_service(gateway)
    with pytest.raises(InvalidRequest):
        service.submit({"seed_topics": ["  ", ""]})
    with pytest.raises(InvalidRequest):
        service.submit({"seed_topics": ["ok"], "image_count": 9})
    with pytest.raises(InvalidRequest, match="unknown stage"):
        service.submit({"seed_topics": ["ok"], "enabled": {"translation": False}})
    with pytest.raises(InvalidRequest):
        service.run({"industry": "SaaS"})
    assert gateway.calls == []


def test_unknown_session(make_service):
    service = make_service(store=InMemorySessionStore())
    with pytest.raises(SessionNotFound):
        service.poll("sess_missing")
    with pytest.raises(SessionNotFound):
        service.result("sess_missing")
    assert service.cancel("sess_missing") is False


def test_result_not_ready_while_running(make_service):
    gateway, entered, release = _blocking_gateway()
    service = make_service(gateway)
    submission = service.submit({"seed_topics": ["AI automation"]})

    assert entered.wait(timeout=5)
    snapshot = service.poll(submission.session_id)
    assert snapshot.status == SessionStatus.RUNNING
    assert snapshot.progress >= 10
    with pytest.raises(NotReady):
        service.result(submission.session_id)

    release.set()
    wait_for(lambda: _finished(service, submission.session_id))
    assert service.result(submission.session_id).title == "AI Automation Guide"


def test_result_of_failed_session_raises_pipeline_failure(make_service):
    gateway = FakeGateway(fail={"generate_article": ProviderError("content policy")})
    service = make_service(gateway)
    submission = service.submit({"seed_topics": ["AI automation"]})

    snapshot = wait_for(lambda: _finished(service, submission.session_id))
    assert snapshot.status == SessionStatus.FAILED
    assert snapshot.failed_stage == "article-generation"
    with pytest.raises(PipelineFailure) as exc_info:
        service.result(submission.session_id)
    assert exc_info.value.stage_id == "article-generation"
    assert exc_info.value.message == "content policy"


def test_cancel_running_session(make_service):
    gateway, entered, release = _blocking_gateway()
    service = make_service(gateway)
    submission = service.submit({"seed_topics": ["AI automation"]})

    assert entered.wait(timeout=5)
    assert service.cancel(submission.session_id) is True
    release.set()

    snapshot = wait_for(lambda: _finished(service, submission.session_id))
    assert snapshot.status == SessionStatus.FAILED
    assert snapshot.error == "cancelled"
    assert gateway.calls == ["research_keywords"]
    assert service.cancel(submission.session_id) is False


def test_concurrent_sessions_are_independent(make_service):
    service = make_service(max_workers=3)
    topics = ["AI automation", "Data pipelines", "Cloud costs"]
    submissions = [service.submit({"seed_topics": [t]}) for t in topics]

    assert len({s.session_id for s in submissions}) == 3
    for submission, topic in zip(submissions, topics):
        snapshot = wait_for(lambda: _finished(service, submission.session_id))
        assert snapshot.status == SessionStatus.COMPLETED
        assert snapshot.progress == 100


def test_storage_outage_gives_ephemeral_sessions(make_service):
    service = make_service(store=FailingStore())
    submission = service.submit({"seed_topics": ["AI automation"]})

    assert submission.ephemeral is True
    assert submission.session_id.startswith("ephemeral-")
    snapshot = wait_for(lambda: _finished(service, submission.session_id))
    assert snapshot.status == SessionStatus.COMPLETED
    with pytest.raises(SessionNotFound):
        service.poll("sess_elsewhere")


def test_poll_falls_back_to_store(make_service):
    store = InMemorySessionStore()
    first = make_service(store=store)
    session = first.run({"seed_topics": ["AI automation"]})

    second = make_service(store=store)
    snapshot = second.poll(session.id)
    assert snapshot.status == SessionStatus.COMPLETED
    assert second.result(session.id).title == "AI Automation Guide"


def test_snapshots_are_copies(make_service):
    service = make_service()
    submission = service.submit({"seed_topics": ["AI automation"]})
    wait_for(lambda: _finished(service, submission.session_id))

    snapshot = service.poll(submission.session_id)
    snapshot.stages[0].status = StageStatus.FAILED
    assert service.poll(submission.session_id).stages[0].status == StageStatus.COMPLETED


def test_synchronous_run(make_service, make_request):
    service = make_service()
    session = service.run(make_request(enabled={"image-generation": False}))
    assert session.status == SessionStatus.COMPLETED
    assert session.stage("image-generation").status == StageStatus.SKIPPED
    assert session.artifact.images == []


class _ParkedImages:
    """Fake OpenAI images API whose first call waits for ``release``."""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()
        self.calls = []

    def generate(self, **kwargs):
        self.calls.append(kwargs)
        if len(self.calls) == 1:
            self.entered.set()
            self.release.wait(timeout=5)
        return SimpleNamespace(data=[SimpleNamespace(url=f"https://img.test/{len(self.calls)}.png")])


class _ImageAdapterGateway(FakeGateway):
    def __init__(self):
        super().__init__()
        self.images = _ParkedImages()
        self._adapter = OpenAIImageClient(SimpleNamespace(images=self.images))

    def generate_images(self, context):
        with self._lock:
            self.calls.append("generate_images")
        return self._adapter.generate_images(context)


def test_cancel_reaches_image_generation_in_progress(make_service):
    gateway = _ImageAdapterGateway()
    service = make_service(gateway)
    submission = service.submit({"seed_topics": ["AI automation"], "image_count": 6})

    assert gateway.images.entered.wait(timeout=5)
    assert service.cancel(submission.session_id) is True
    gateway.images.release.set()

    snapshot = wait_for(lambda: _finished(service, submission.session_id))
    images = next(s for s in snapshot.stages if s.stage_id == "image-generation")
    assert images.status == StageStatus.FAILED
    assert images.error == "cancelled"
    assert len(gateway.images.calls) == 1
    assert "review_quality" not in gateway.calls


def test_finished_snapshots_are_bounded(make_service):
    service = make_service(store=InMemorySessionStore(), max_snapshots=3)
    session_ids = []
    for i in range(8):
        session_id = service.submit({"seed_topics": [f"topic {i}"]}).session_id
        wait_for(lambda: _finished(service, session_id))
        session_ids.append(session_id)

    assert len(service._snapshots) <= 3
    assert session_ids[0] not in service._snapshots
    # dropped sessions are read back from the store
    assert service.poll(session_ids[0]).status == SessionStatus.COMPLETED
    assert service.result(session_ids[0]).title == "AI Automation Guide"


def test_running_sessions_are_never_dropped(make_service):
    gateway, entered, release = _blocking_gateway()
    service = make_service(gateway, max_workers=2, max_snapshots=1)
    first = service.submit({"seed_topics": ["AI automation"]})
    assert entered.wait(timeout=5)
    second = service.submit({"seed_topics": ["Data pipelines"]})

    assert service.poll(first.session_id).status == SessionStatus.RUNNING
    assert service.poll(second.session_id).status in (SessionStatus.CREATED, SessionStatus.RUNNING)
    release.set()
    wait_for(lambda: _finished(service, first.session_id))


def test_history_newest_first(make_service):
    store = InMemorySessionStore()
    first = make_service(store=store)
    older = first.run({"seed_topics": ["AI automation"]})

    service = make_service(store=store)
    newer = service.run({"seed_topics": ["Data pipelines"], "content_type": "blog"})

    rows = service.history(limit=10)
    assert [r.session_id for r in rows] == [newer.id, older.id]
    assert rows[0].primary_topic == "Data pipelines"
    assert rows[0].content_type.value == "blog"
    assert rows[0].title == "AI Automation Guide"
    assert rows[0].status == SessionStatus.COMPLETED
    assert len(service.history(limit=1)) == 1


def test_history_survives_store_outage(make_service):
    service = make_service(store=FailingStore())
    session = service.run({"seed_topics": ["AI automation"]})

    rows = service.history()
    assert [r.session_id for r in rows] == [session.id]
    assert rows[0].ephemeral is True


def test_slow_reporter_does_not_hold_up_the_pipeline(make_service):
    release = threading.Event()
    sink = RecordingReporter()

    class SlowReporter:
        def on_stage_update(self, *args):
            release.wait(timeout=5)
            sink.on_stage_update(*args)

    service = make_service(reporter=SlowReporter())
    session = service.run({"seed_topics": ["AI automation"]})
    assert session.status == SessionStatus.COMPLETED
    assert sink.events == []

    release.set()
    service.shutdown()
    assert len(sink.events) == 20
    assert sink.events[-1][3] == 100

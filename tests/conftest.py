"""Pytest configuration and shared fixtures."""

import threading
import time

import pytest

from contentgen.errors import StorageError
from contentgen.schemas.models import GenerationRequest
from contentgen.schemas.provider_schemas import (
    ArticleDraft,
    ContentStrategy,
    ImageDescriptor,
    ImageSet,
    KeywordAnalysis,
    KeywordMetric,
    KeywordResearch,
    MarketResearch,
    OutlineSection,
    QualityReport,
    SerpAnalysis,
    SerpResult,
)
from contentgen.seo.metrics import score_content

ARTICLE_HTML = (
    "<h1>AI Automation Guide</h1>\n\n"
    "<p>AI automation helps teams move faster. AI automation reduces manual work.</p>\n\n"
    "<h2>What is AI automation?</h2>\n\n<p>It is software that decides and acts.</p>\n\n"
    "<h2>Benefits</h2>\n\n<p>Lower cost. Faster delivery. AI automation scales.</p>\n\n"
    "<h2>Getting started</h2>\n\n<p>Pick one process and measure it.</p>\n"
)


class FakeGateway:
    """In-process ProviderGateway returning canned results.

    ``fail`` maps a gateway method name to the exception it should raise;
    ``on_call`` is invoked with the method name before the result is returned.
    """

    def __init__(self, fail=None, on_call=None):
        self.fail = dict(fail or {})
        self.on_call = on_call
        self.calls: list[str] = []
        self.requests: dict = {}
        self._lock = threading.Lock()

    def _call(self, name, request, result):
        with self._lock:
            self.calls.append(name)
            self.requests[name] = request
        if self.on_call is not None:
            self.on_call(name)
        exc = self.fail.get(name)
        if exc is not None:
            raise exc
        return result

    def research_keywords(self, query):
        return self._call(
            "research_keywords",
            query,
            KeywordResearch(
                seed=query.seed,
                keywords=[
                    KeywordMetric(
                        keyword="ai automation tools",
                        search_volume=5000,
                        keyword_difficulty=20,
                        opportunity_score=2500,
                    )
                ],
                total_search_volume=5000,
                average_difficulty=20,
            ),
        )

    def analyze_keywords(self, query):
        return self._call(
            "analyze_keywords",
            query,
            KeywordAnalysis(primary_keywords=["ai automation"], content_gaps=["pricing"]),
        )

    def analyze_serp(self, query):
        return self._call(
            "analyze_serp",
            query,
            SerpAnalysis(
                keyword=query.keyword,
                results=[SerpResult(position=1, title="Top", url="https://example.com/a", domain="example.com")],
                top_domains=["example.com"],
                questions=["What is AI automation?"],
            ),
        )

    def research_market(self, query):
        return self._call(
            "research_market",
            query,
            MarketResearch(summary="Growing market", key_insights=["Market grows 30% a year"]),
        )

    def plan_content(self, context):
        return self._call(
            "plan_content",
            context,
            ContentStrategy(
                title="AI Automation Guide",
                hook="Automation is here",
                sections=[OutlineSection(heading="What is AI automation?", key_points=["Definition"])],
                call_to_action="Book a call",
                focus_keywords=["ai automation"],
            ),
        )

    def generate_article(self, context):
        return self._call(
            "generate_article",
            context,
            ArticleDraft(
                title="AI Automation Guide",
                content=ARTICLE_HTML,
                meta_description="Everything about AI automation.",
                excerpt="AI automation helps teams move faster.",
                seo_tags=["ai automation"],
                categories=["AI & Technology"],
                call_to_actions=["Book a call"],
            ),
        )

    def score_content(self, context):
        return self._call("score_content", context, score_content(context.content, context.keywords))

    def generate_images(self, context):
        return self._call(
            "generate_images",
            context,
            ImageSet(
                images=[ImageDescriptor(id="featured-image", url="https://img.example/1.png")],
                success_count=1,
            ),
        )

    def review_quality(self, context):
        return self._call(
            "review_quality",
            context,
            QualityReport(score=85, passed=True, recommendations=["Add a case study"]),
        )


class FailingStore:
    """Session store whose create and/or update raise StorageError."""

    def __init__(self, fail_create=True, fail_update=True):
        self.fail_create = fail_create
        self.fail_update = fail_update
        self.updates = 0

    def create(self, session):
        if self.fail_create:
            raise StorageError("database unreachable")
        return "sess_fixed"

    def update(self, session):
        self.updates += 1
        if self.fail_update:
            raise StorageError("database unreachable")

    def get(self, session_id):
        raise StorageError("database unreachable")

    def list_recent(self, limit=20):
        raise StorageError("database unreachable")


class RecordingReporter:
    def __init__(self):
        self.events: list[tuple] = []

    def on_stage_update(self, session_id, stage_id, status, progress, aggregate):
        self.events.append((stage_id, status, progress, aggregate))


def wait_for(predicate, timeout=5.0):
    """Poll ``predicate`` until it returns truthy or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        value = predicate()
        if value:
            return value
        time.sleep(0.01)
    raise AssertionError("condition not met in time")


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def make_request():
    def _make(**overrides):
        data = {"seed_topics": ["AI automation"]}
        data.update(overrides)
        return GenerationRequest(**data)

    return _make

"""Core pipeline models: request, stage descriptors, session state, artifact."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from contentgen.schemas.provider_schemas import (
    ArticleMetrics,
    ImageDescriptor,
    KeywordAnalytics,
    QualityReport,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContentType(str, Enum):
    PILLAR = "pillar"
    BLOG = "blog"
    WHITEPAPER = "whitepaper"
    CASE_STUDY = "case-study"
    GUIDE = "guide"
    COMPARISON = "comparison"


class StageStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in (StageStatus.COMPLETED, StageStatus.FAILED, StageStatus.SKIPPED)


class SessionStatus(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.FAILED)


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

class GenerationRequest(BaseModel):
    """Everything a pipeline run needs.

    Frozen, with tuple sequences; sessions hold their own deep copy so the
    caller cannot edit a request under a running pipeline.
    """

    model_config = ConfigDict(frozen=True)

    seed_topics: tuple[str, ...]
    industry: str = "AI Consulting"
    target_audience: str = "Enterprise Decision Makers"
    content_type: ContentType = ContentType.PILLAR
    content_length: str = "5000+"
    writing_style: str = "authoritative"
    # Stage id -> enabled. Missing ids are enabled.
    enabled: dict[str, bool] = Field(default_factory=dict)
    custom_instructions: str = ""
    readability_target: str = "grade-8"
    include_call_to_actions: bool = True
    min_search_volume: int = Field(default=1000, ge=0)
    max_keyword_difficulty: int = Field(default=50, ge=0, le=100)
    competitor_domains: tuple[str, ...] = ()
    location: str = "United States"
    language: str = "English"
    image_count: int = Field(default=5, ge=1, le=6)

    @field_validator("seed_topics")
    @classmethod
    def _non_empty_seeds(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        seeds = tuple(s.strip() for s in v if s and s.strip())
        if not seeds:
            raise ValueError("at least one seed topic is required")
        return seeds

    @field_validator("enabled")
    @classmethod
    def _known_stages(cls, v: dict[str, bool]) -> dict[str, bool]:
        from contentgen.pipeline.registry import stage_ids

        unknown = sorted(set(v) - set(stage_ids()))
        if unknown:
            raise ValueError(f"unknown stage id(s): {', '.join(unknown)}")
        return dict(v)

    @field_validator("competitor_domains")
    @classmethod
    def _clean_domains(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(d.strip().lower() for d in v if d and d.strip())

    def is_enabled(self, stage_id: str) -> bool:
        return self.enabled.get(stage_id, True)

    @property
    def primary_topic(self) -> str:
        return self.seed_topics[0]


# ---------------------------------------------------------------------------
# Stage registry entries and per-stage state
# ---------------------------------------------------------------------------

class StageDescriptor(BaseModel):
    """Static description of one pipeline stage."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    optional: bool = True
    depends_on: frozenset[str] = frozenset()
    # Earlier stages whose payloads are passed along when they completed
    inputs: tuple[str, ...] = ()
    capability: str | None = None
    weight: int = Field(default=10, ge=0, le=100)
    start_progress: int = Field(default=25, ge=0, le=99)


class StageResult(BaseModel):
    stage_id: str
    status: StageStatus = StageStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    payload: dict[str, Any] | None = None
    error: str | None = None
    retryable: bool | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None


class CostLineItem(BaseModel):
    stage_id: str
    capability: str
    unit_cost: float
    included: bool


class CostEstimate(BaseModel):
    items: list[CostLineItem] = Field(default_factory=list)
    total: float = 0.0


# ---------------------------------------------------------------------------
# Artifact
# ---------------------------------------------------------------------------

class SeoMetadata(BaseModel):
    tags: list[str] = Field(default_factory=list)
    meta_description: str = ""
    categories: list[str] = Field(default_factory=list)


class SerpInsights(BaseModel):
    top_domains: list[str] = Field(default_factory=list)
    questions: list[str] = Field(default_factory=list)


class GeneratedArtifact(BaseModel):
    """Final deliverable: the article plus whatever enrichments completed."""

    title: str
    body: str
    excerpt: str = ""
    seo: SeoMetadata = Field(default_factory=SeoMetadata)
    metrics: ArticleMetrics | None = None
    images: list[ImageDescriptor] = Field(default_factory=list)
    keyword_analytics: KeywordAnalytics | None = None
    serp_insights: SerpInsights | None = None
    market_insights: list[str] = Field(default_factory=list)
    quality: QualityReport | None = None
    call_to_actions: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class Session(BaseModel):
    """One end-to-end pipeline run. Owned and mutated by its orchestrator."""

    id: str
    request: GenerationRequest
    # Insertion order = registry order
    stages: dict[str, StageResult] = Field(default_factory=dict)
    progress: int = Field(default=0, ge=0, le=100)
    status: SessionStatus = SessionStatus.CREATED
    estimated_cost: float = 0.0
    cost_items: list[CostLineItem] = Field(default_factory=list)
    ephemeral: bool = False
    failed_stage: str | None = None
    error: str | None = None
    artifact: GeneratedArtifact | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def stage(self, stage_id: str) -> StageResult:
        return self.stages[stage_id]

    def touch(self) -> None:
        self.updated_at = utcnow()


# ---------------------------------------------------------------------------
# Service responses
# ---------------------------------------------------------------------------

class Submission(BaseModel):
    """Returned by submit: available before any stage has run."""

    session_id: str
    estimate: CostEstimate
    ephemeral: bool = False


class SessionSnapshot(BaseModel):
    session_id: str
    status: SessionStatus
    progress: int
    stages: list[StageResult] = Field(default_factory=list)
    estimated_cost: float = 0.0
    failed_stage: str | None = None
    error: str | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_session(cls, session: Session) -> "SessionSnapshot":
        return cls(
            session_id=session.id,
            status=session.status,
            progress=session.progress,
            stages=[r.model_copy() for r in session.stages.values()],
            estimated_cost=session.estimated_cost,
            failed_stage=session.failed_stage,
            error=session.error,
            updated_at=session.updated_at,
        )


class SessionSummary(BaseModel):
    """One row of the generation history."""

    session_id: str
    status: SessionStatus
    progress: int
    primary_topic: str
    content_type: ContentType
    title: str | None = None
    estimated_cost: float = 0.0
    failed_stage: str | None = None
    ephemeral: bool = False
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_session(cls, session: Session) -> "SessionSummary":
        return cls(
            session_id=session.id,
            status=session.status,
            progress=session.progress,
            primary_topic=session.request.primary_topic,
            content_type=session.request.content_type,
            title=session.artifact.title if session.artifact else None,
            estimated_cost=session.estimated_cost,
            failed_stage=session.failed_stage,
            ephemeral=session.ephemeral,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )

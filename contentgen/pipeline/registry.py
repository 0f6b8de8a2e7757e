"""Stage registry: the fixed, ordered list of pipeline stages.

Order, dependencies and progress weights are static. The only thing a
deployment can change is which stages are mandatory (see
``build_registry``); a mandatory stage that fails ends the session.
"""

from __future__ import annotations

from typing import Iterable

from contentgen.schemas.models import StageDescriptor

SETUP = "setup"
KEYWORD_RESEARCH = "keyword-research"
KEYWORD_ANALYSIS = "advanced-keyword-analysis"
SERP_ANALYSIS = "serp-analysis"
MARKET_RESEARCH = "perplexity-research"
CONTENT_STRATEGY = "content-strategy"
ARTICLE_GENERATION = "article-generation"
SEO_OPTIMIZATION = "seo-optimization"
IMAGE_GENERATION = "image-generation"
QUALITY_ASSURANCE = "quality-assurance"

DEFAULT_MANDATORY = frozenset({SETUP, CONTENT_STRATEGY, ARTICLE_GENERATION})

_STAGES: tuple[StageDescriptor, ...] = (
    StageDescriptor(
        id=SETUP,
        name="System Setup",
        description="Initialize generation request and validate parameters",
        weight=10,
        start_progress=25,
    ),
    StageDescriptor(
        id=KEYWORD_RESEARCH,
        name="Keyword Research",
        description="Keyword analysis with real search volume data",
        depends_on=frozenset({SETUP}),
        capability="dataforseo",
        weight=10,
        start_progress=30,
    ),
    StageDescriptor(
        id=KEYWORD_ANALYSIS,
        name="Advanced Keyword Analysis",
        description="AI-powered keyword expansion and opportunity scoring",
        depends_on=frozenset({SETUP}),
        inputs=(KEYWORD_RESEARCH,),
        capability="keyword-analysis",
        weight=10,
        start_progress=50,
    ),
    StageDescriptor(
        id=SERP_ANALYSIS,
        name="SERP Analysis",
        description="Competitor analysis and content gap identification",
        depends_on=frozenset({SETUP}),
        capability="serp",
        weight=10,
        start_progress=40,
    ),
    StageDescriptor(
        id=MARKET_RESEARCH,
        name="Market Research",
        description="Real-time market research and trend analysis",
        depends_on=frozenset({SETUP}),
        capability="perplexity",
        weight=10,
        start_progress=60,
    ),
    StageDescriptor(
        id=CONTENT_STRATEGY,
        name="Content Strategy",
        description="Content planning and outline generation",
        depends_on=frozenset({SETUP}),
        inputs=(KEYWORD_RESEARCH, KEYWORD_ANALYSIS, SERP_ANALYSIS, MARKET_RESEARCH),
        capability="strategy",
        weight=10,
        start_progress=70,
    ),
    StageDescriptor(
        id=ARTICLE_GENERATION,
        name="Article Generation",
        description="Long-form article creation",
        depends_on=frozenset({CONTENT_STRATEGY}),
        inputs=(KEYWORD_RESEARCH, SERP_ANALYSIS, MARKET_RESEARCH),
        capability="generation",
        weight=15,
        start_progress=30,
    ),
    StageDescriptor(
        id=SEO_OPTIMIZATION,
        name="SEO Optimization",
        description="Content scoring for search engine ranking",
        depends_on=frozenset({ARTICLE_GENERATION}),
        inputs=(KEYWORD_RESEARCH, SERP_ANALYSIS),
        capability="seo-scoring",
        weight=10,
        start_progress=80,
    ),
    StageDescriptor(
        id=IMAGE_GENERATION,
        name="Image Generation",
        description="Image creation for article enhancement",
        depends_on=frozenset({ARTICLE_GENERATION}),
        inputs=(KEYWORD_RESEARCH,),
        capability="images",
        weight=10,
        start_progress=50,
    ),
    StageDescriptor(
        id=QUALITY_ASSURANCE,
        name="Quality Assurance",
        description="Final review and optimization recommendations",
        depends_on=frozenset({ARTICLE_GENERATION}),
        inputs=(KEYWORD_RESEARCH, SEO_OPTIMIZATION, IMAGE_GENERATION),
        capability="quality",
        weight=5,
        start_progress=90,
    ),
)


def _validate(registry: tuple[StageDescriptor, ...]) -> None:
    seen: set[str] = set()
    for stage in registry:
        if stage.id in seen:
            raise ValueError(f"Duplicate stage id: {stage.id}")
        missing = (set(stage.depends_on) | set(stage.inputs)) - seen
        if missing:
            raise ValueError(
                f"Stage '{stage.id}' refers to stages that do not precede it: {sorted(missing)}"
            )
        seen.add(stage.id)
    total = sum(s.weight for s in registry)
    if total != 100:
        raise ValueError(f"Stage weights must sum to 100, got {total}")


def build_registry(mandatory: Iterable[str] | None = None) -> tuple[StageDescriptor, ...]:
    """Return the stage list with ``mandatory`` as the set of non-optional stages.

    ``None`` keeps the built-in mandatory set (setup, content-strategy,
    article-generation).
    """
    required = DEFAULT_MANDATORY if mandatory is None else frozenset(mandatory)
    unknown = required - {s.id for s in _STAGES}
    if unknown:
        raise ValueError(f"Unknown stage id(s): {sorted(unknown)}")
    registry = tuple(
        s.model_copy(update={"optional": s.id not in required}) for s in _STAGES
    )
    _validate(registry)
    return registry


_DEFAULT_REGISTRY = build_registry()


def stages() -> tuple[StageDescriptor, ...]:
    """The default ordered stage registry."""
    return _DEFAULT_REGISTRY


def stage_ids(registry: tuple[StageDescriptor, ...] | None = None) -> list[str]:
    return [s.id for s in (registry or _DEFAULT_REGISTRY)]


def get_stage(
    stage_id: str, registry: tuple[StageDescriptor, ...] | None = None
) -> StageDescriptor:
    for s in registry or _DEFAULT_REGISTRY:
        if s.id == stage_id:
            return s
    raise KeyError(stage_id)

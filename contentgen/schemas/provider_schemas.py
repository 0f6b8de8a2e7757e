"""Request and result models exchanged with the Provider Gateway.

One request/result pair per capability. Results are stored on the session
as plain JSON (``model_dump(mode="json")``) and re-validated when a later
stage consumes them.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Keyword research (DataForSEO)
# ---------------------------------------------------------------------------

class KeywordMetric(BaseModel):
    keyword: str
    search_volume: int = 0
    keyword_difficulty: int = Field(default=0, ge=0, le=100)
    cpc: float = 0.0
    competition: str = "unknown"
    search_intent: str = "informational"
    opportunity_score: int = 0


class KeywordQuery(BaseModel):
    seed: str
    location: str = "United States"
    language: str = "English"
    min_search_volume: int = 0
    max_keyword_difficulty: int = 100


class KeywordResearch(BaseModel):
    seed: str
    keywords: list[KeywordMetric] = Field(default_factory=list)
    total_search_volume: int = 0
    average_difficulty: int = 0


class KeywordAnalytics(BaseModel):
    """Summary figures shown next to the generated article."""

    total_keywords: int = 0
    high_opportunity_keywords: int = 0
    quick_win_keywords: int = 0
    average_search_volume: int = 0
    average_difficulty: int = 0
    competition_level: str = "Low"


# ---------------------------------------------------------------------------
# Advanced keyword analysis (LLM)
# ---------------------------------------------------------------------------

class KeywordAnalysisQuery(BaseModel):
    seed_topics: list[str]
    industry: str = ""
    target_audience: str = ""
    min_search_volume: int = 0
    max_keyword_difficulty: int = 100
    competitor_domains: list[str] = Field(default_factory=list)
    research: KeywordResearch | None = None


class KeywordAnalysis(BaseModel):
    primary_keywords: list[str] = Field(default_factory=list)
    long_tail_keywords: list[str] = Field(default_factory=list)
    question_keywords: list[str] = Field(default_factory=list)
    quick_wins: list[str] = Field(default_factory=list)
    content_gaps: list[str] = Field(default_factory=list)
    clusters: dict[str, list[str]] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# SERP analysis (DataForSEO)
# ---------------------------------------------------------------------------

class SerpQuery(BaseModel):
    keyword: str
    location: str = "United States"
    language: str = "English"
    device: str = "desktop"
    depth: int = 20
    competitors: list[str] = Field(default_factory=list)


class SerpResult(BaseModel):
    position: int
    title: str = ""
    url: str = ""
    domain: str = ""
    snippet: str = ""


class SerpAnalysis(BaseModel):
    keyword: str
    results: list[SerpResult] = Field(default_factory=list)
    top_domains: list[str] = Field(default_factory=list)
    competitor_positions: dict[str, int] = Field(default_factory=dict)
    questions: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Market research (Perplexity)
# ---------------------------------------------------------------------------

class MarketResearchQuery(BaseModel):
    topic: str
    keywords: list[str] = Field(default_factory=list)
    industry: str = ""
    target_audience: str = ""


class MarketResearch(BaseModel):
    summary: str = ""
    key_insights: list[str] = Field(default_factory=list)
    sources: list[str] = Field(default_factory=list)
    full_text: str = ""


# ---------------------------------------------------------------------------
# Content strategy (LLM)
# ---------------------------------------------------------------------------

class StrategyContext(BaseModel):
    seed_topics: list[str]
    content_type: str
    target_audience: str = ""
    industry: str = ""
    writing_style: str = ""
    content_length: str = ""
    custom_instructions: str = ""
    keyword_research: KeywordResearch | None = None
    keyword_analysis: KeywordAnalysis | None = None
    serp: SerpAnalysis | None = None
    market_research: MarketResearch | None = None


class OutlineSection(BaseModel):
    heading: str
    subheadings: list[str] = Field(default_factory=list)
    key_points: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    word_count_target: int = 400


class ContentStrategy(BaseModel):
    title: str
    hook: str = ""
    problem_statement: str = ""
    solution_preview: str = ""
    sections: list[OutlineSection] = Field(default_factory=list)
    conclusion_summary: str = ""
    call_to_action: str = ""
    estimated_word_count: int = 3000
    meta_description: str = ""
    focus_keywords: list[str] = Field(default_factory=list)
    fallback: bool = False  # True when built without a usable model response


# ---------------------------------------------------------------------------
# Article generation (LLM)
# ---------------------------------------------------------------------------

class ArticleContext(BaseModel):
    seed_topics: list[str]
    content_type: str
    content_length: str = ""
    writing_style: str = ""
    target_audience: str = ""
    industry: str = ""
    custom_instructions: str = ""
    readability_target: str = ""
    include_call_to_actions: bool = True
    strategy: ContentStrategy | None = None
    keyword_research: KeywordResearch | None = None
    serp: SerpAnalysis | None = None
    market_research: MarketResearch | None = None


class ArticleDraft(BaseModel):
    title: str
    content: str
    meta_description: str = ""
    excerpt: str = ""
    seo_tags: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    call_to_actions: list[str] = Field(default_factory=list)
    fallback: bool = False


# ---------------------------------------------------------------------------
# SEO scoring
# ---------------------------------------------------------------------------

class SeoContext(BaseModel):
    title: str = ""
    content: str
    keywords: list[str] = Field(default_factory=list)
    serp: SerpAnalysis | None = None


class ArticleMetrics(BaseModel):
    word_count: int = 0
    readability_score: int = 0
    seo_score: int = 0
    keyword_density: dict[str, float] = Field(default_factory=dict)
    heading_structure: dict[str, int] = Field(default_factory=dict)
    reading_time: int = 0  # minutes
    sentence_count: int = 0
    paragraph_count: int = 0


class SeoReport(BaseModel):
    metrics: ArticleMetrics
    recommendations: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Image generation
# ---------------------------------------------------------------------------

class ImageContext(BaseModel):
    title: str
    content: str = ""
    keywords: list[str] = Field(default_factory=list)
    image_count: int = Field(default=5, ge=1, le=6)
    # threading.Event of the owning session; checked before every image
    cancel_event: Any = Field(default=None, exclude=True, repr=False)

    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


class ImageDescriptor(BaseModel):
    id: str
    url: str
    alt_text: str = ""
    position: str = "featured"
    kind: str = "featured"
    prompt: str = ""
    fallback: bool = False
    error: str | None = None


class ImageSet(BaseModel):
    images: list[ImageDescriptor] = Field(default_factory=list)
    success_count: int = 0
    failed_count: int = 0


# ---------------------------------------------------------------------------
# Quality assurance (LLM)
# ---------------------------------------------------------------------------

class QualityContext(BaseModel):
    article: ArticleDraft
    keywords: list[str] = Field(default_factory=list)
    seo: SeoReport | None = None
    images: ImageSet | None = None


class QualityReport(BaseModel):
    score: int = Field(default=0, ge=0, le=100)
    passed: bool = False
    issues: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


def dump_payload(result: BaseModel) -> dict[str, Any]:
    """Serialize a provider result for storage on a StageResult."""
    return result.model_dump(mode="json")

"""Stage handlers: build each capability request from earlier payloads.

A handler receives only the payloads of *completed* stages listed in its
descriptor's ``depends_on`` and ``inputs``; anything else is invisible.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from pydantic import BaseModel

from contentgen.errors import ProviderError
from contentgen.pipeline import registry as r
from contentgen.providers.base import ProviderGateway
from contentgen.providers.llm_content import keyword_list
from contentgen.schemas.models import GenerationRequest, Session, StageDescriptor, StageStatus
from contentgen.schemas.provider_schemas import (
    ArticleContext,
    ArticleDraft,
    ContentStrategy,
    ImageContext,
    ImageSet,
    KeywordAnalysis,
    KeywordAnalysisQuery,
    KeywordQuery,
    KeywordResearch,
    MarketResearch,
    MarketResearchQuery,
    QualityContext,
    QualityReport,
    SeoContext,
    SeoReport,
    SerpAnalysis,
    SerpQuery,
    StrategyContext,
    dump_payload,
)

M = TypeVar("M", bound=BaseModel)

IMAGE_CONTEXT_CHARS = 2000


@dataclass
class StageContext:
    request: GenerationRequest
    session_id: str
    payloads: dict[str, dict[str, Any]] = field(default_factory=dict)
    cancel_event: threading.Event | None = None

    def get(self, stage_id: str, model: type[M]) -> M | None:
        data = self.payloads.get(stage_id)
        return model.model_validate(data) if data is not None else None

    def require_article(self, capability: str) -> ArticleDraft:
        article = self.get(r.ARTICLE_GENERATION, ArticleDraft)
        if article is None:
            raise ProviderError("no generated article to work on", capability=capability)
        return article

    def keywords(self, limit: int = 10) -> list[str]:
        return keyword_list(
            self.request.seed_topics,
            self.get(r.KEYWORD_RESEARCH, KeywordResearch),
            self.get(r.KEYWORD_ANALYSIS, KeywordAnalysis),
            limit=limit,
        )


def collect_inputs(descriptor: StageDescriptor, session: Session) -> dict[str, dict[str, Any]]:
    """Payloads of completed dependencies and soft inputs."""
    wanted = set(descriptor.depends_on) | set(descriptor.inputs)
    return {
        sid: result.payload
        for sid, result in session.stages.items()
        if sid in wanted and result.status == StageStatus.COMPLETED and result.payload is not None
    }


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def _setup(gateway: ProviderGateway, ctx: StageContext) -> dict[str, Any]:
    req = ctx.request
    return {
        "primary_topic": req.primary_topic,
        "seed_topics": list(req.seed_topics),
        "content_type": req.content_type.value,
        "content_length": req.content_length,
        "enabled_stages": [sid for sid in r.stage_ids() if req.is_enabled(sid)],
    }


def _keyword_research(gateway: ProviderGateway, ctx: StageContext) -> KeywordResearch:
    req = ctx.request
    return gateway.research_keywords(
        KeywordQuery(
            seed=req.primary_topic,
            location=req.location,
            language=req.language,
            min_search_volume=req.min_search_volume,
            max_keyword_difficulty=req.max_keyword_difficulty,
        )
    )


def _keyword_analysis(gateway: ProviderGateway, ctx: StageContext) -> KeywordAnalysis:
    req = ctx.request
    return gateway.analyze_keywords(
        KeywordAnalysisQuery(
            seed_topics=list(req.seed_topics),
            industry=req.industry,
            target_audience=req.target_audience,
            min_search_volume=req.min_search_volume,
            max_keyword_difficulty=req.max_keyword_difficulty,
            competitor_domains=list(req.competitor_domains),
            research=ctx.get(r.KEYWORD_RESEARCH, KeywordResearch),
        )
    )


def _serp_analysis(gateway: ProviderGateway, ctx: StageContext) -> SerpAnalysis:
    req = ctx.request
    return gateway.analyze_serp(
        SerpQuery(
            keyword=req.primary_topic,
            location=req.location,
            language=req.language,
            competitors=list(req.competitor_domains),
        )
    )


def _market_research(gateway: ProviderGateway, ctx: StageContext) -> MarketResearch:
    req = ctx.request
    return gateway.research_market(
        MarketResearchQuery(
            topic=req.primary_topic,
            keywords=list(req.seed_topics),
            industry=req.industry,
            target_audience=req.target_audience,
        )
    )


def _content_strategy(gateway: ProviderGateway, ctx: StageContext) -> ContentStrategy:
    req = ctx.request
    return gateway.plan_content(
        StrategyContext(
            seed_topics=list(req.seed_topics),
            content_type=req.content_type.value,
            target_audience=req.target_audience,
            industry=req.industry,
            writing_style=req.writing_style,
            content_length=req.content_length,
            custom_instructions=req.custom_instructions,
            keyword_research=ctx.get(r.KEYWORD_RESEARCH, KeywordResearch),
            keyword_analysis=ctx.get(r.KEYWORD_ANALYSIS, KeywordAnalysis),
            serp=ctx.get(r.SERP_ANALYSIS, SerpAnalysis),
            market_research=ctx.get(r.MARKET_RESEARCH, MarketResearch),
        )
    )


def _article_generation(gateway: ProviderGateway, ctx: StageContext) -> ArticleDraft:
    req = ctx.request
    return gateway.generate_article(
        ArticleContext(
            seed_topics=list(req.seed_topics),
            content_type=req.content_type.value,
            content_length=req.content_length,
            writing_style=req.writing_style,
            target_audience=req.target_audience,
            industry=req.industry,
            custom_instructions=req.custom_instructions,
            readability_target=req.readability_target,
            include_call_to_actions=req.include_call_to_actions,
            strategy=ctx.get(r.CONTENT_STRATEGY, ContentStrategy),
            keyword_research=ctx.get(r.KEYWORD_RESEARCH, KeywordResearch),
            serp=ctx.get(r.SERP_ANALYSIS, SerpAnalysis),
            market_research=ctx.get(r.MARKET_RESEARCH, MarketResearch),
        )
    )


def _seo_optimization(gateway: ProviderGateway, ctx: StageContext) -> SeoReport:
    article = ctx.require_article("seo-scoring")
    return gateway.score_content(
        SeoContext(
            title=article.title,
            content=article.content,
            keywords=ctx.keywords(limit=5),
            serp=ctx.get(r.SERP_ANALYSIS, SerpAnalysis),
        )
    )


def _image_generation(gateway: ProviderGateway, ctx: StageContext) -> ImageSet:
    article = ctx.require_article("images")
    return gateway.generate_images(
        ImageContext(
            title=article.title,
            content=article.content[:IMAGE_CONTEXT_CHARS],
            keywords=ctx.keywords(limit=5),
            image_count=ctx.request.image_count,
            cancel_event=ctx.cancel_event,
        )
    )


def _quality_assurance(gateway: ProviderGateway, ctx: StageContext) -> QualityReport:
    article = ctx.require_article("quality")
    return gateway.review_quality(
        QualityContext(
            article=article,
            keywords=ctx.keywords(limit=5),
            seo=ctx.get(r.SEO_OPTIMIZATION, SeoReport),
            images=ctx.get(r.IMAGE_GENERATION, ImageSet),
        )
    )


Handler = Callable[[ProviderGateway, StageContext], Any]

HANDLERS: dict[str, Handler] = {
    r.SETUP: _setup,
    r.KEYWORD_RESEARCH: _keyword_research,
    r.KEYWORD_ANALYSIS: _keyword_analysis,
    r.SERP_ANALYSIS: _serp_analysis,
    r.MARKET_RESEARCH: _market_research,
    r.CONTENT_STRATEGY: _content_strategy,
    r.ARTICLE_GENERATION: _article_generation,
    r.SEO_OPTIMIZATION: _seo_optimization,
    r.IMAGE_GENERATION: _image_generation,
    r.QUALITY_ASSURANCE: _quality_assurance,
}


def run_stage(gateway: ProviderGateway, descriptor: StageDescriptor, ctx: StageContext) -> dict[str, Any]:
    """Run one stage's handler and return its JSON payload."""
    result = HANDLERS[descriptor.id](gateway, ctx)
    return dump_payload(result) if isinstance(result, BaseModel) else result

"""Default Provider Gateway: composes the concrete adapters."""

from __future__ import annotations

import logging

from openai import OpenAI

from contentgen.config import Settings, get_settings
from contentgen.errors import ProviderError
from contentgen.llm import get_provider
from contentgen.providers.dataforseo import DataForSEOClient
from contentgen.providers.http import HttpTransport
from contentgen.providers.images import OpenAIImageClient
from contentgen.providers.llm_content import LLMContentClient
from contentgen.providers.perplexity import PerplexityClient
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
)
from contentgen.seo.metrics import score_content

logger = logging.getLogger(__name__)


class LocalSeoScorer:
    """Deterministic content scoring; no network."""

    def score_content(self, context: SeoContext) -> SeoReport:
        return score_content(context.content, context.keywords)


class DefaultProviderGateway:
    """Routes each capability to its adapter.

    An adapter left as None means the capability is not configured; calling
    it raises a non-retryable ProviderError.
    """

    def __init__(
        self,
        dataforseo: DataForSEOClient | None = None,
        perplexity: PerplexityClient | None = None,
        content: LLMContentClient | None = None,
        images: OpenAIImageClient | None = None,
        scorer: LocalSeoScorer | None = None,
        transport: HttpTransport | None = None,
    ):
        self._dataforseo = dataforseo
        self._perplexity = perplexity
        self._content = content
        self._images = images
        self._scorer = scorer or LocalSeoScorer()
        self._transport = transport

    @staticmethod
    def _require(adapter, capability: str):
        if adapter is None:
            raise ProviderError(f"{capability} is not configured", capability=capability)
        return adapter

    def research_keywords(self, query: KeywordQuery) -> KeywordResearch:
        return self._require(self._dataforseo, "dataforseo").research_keywords(query)

    def analyze_keywords(self, query: KeywordAnalysisQuery) -> KeywordAnalysis:
        return self._require(self._content, "keyword-analysis").analyze_keywords(query)

    def analyze_serp(self, query: SerpQuery) -> SerpAnalysis:
        return self._require(self._dataforseo, "serp").analyze_serp(query)

    def research_market(self, query: MarketResearchQuery) -> MarketResearch:
        return self._require(self._perplexity, "perplexity").research_market(query)

    def plan_content(self, context: StrategyContext) -> ContentStrategy:
        return self._require(self._content, "strategy").plan_content(context)

    def generate_article(self, context: ArticleContext) -> ArticleDraft:
        return self._require(self._content, "generation").generate_article(context)

    def score_content(self, context: SeoContext) -> SeoReport:
        return self._scorer.score_content(context)

    def generate_images(self, context: ImageContext) -> ImageSet:
        return self._require(self._images, "images").generate_images(context)

    def review_quality(self, context: QualityContext) -> QualityReport:
        return self._require(self._content, "quality").review_quality(context)

    def close(self) -> None:
        if self._transport is not None:
            self._transport.close()


def get_gateway(settings: Settings | None = None) -> DefaultProviderGateway:
    """Build the gateway from configuration, leaving unconfigured capabilities empty."""
    settings = settings or get_settings()
    timeouts = settings.timeouts
    transport = HttpTransport()

    dataforseo = None
    if settings.dataforseo_login and settings.dataforseo_password:
        dataforseo = DataForSEOClient(
            settings.dataforseo_login,
            settings.dataforseo_password,
            transport,
            base_url=settings.dataforseo_base_url,
            keyword_timeout=timeouts["dataforseo"],
            serp_timeout=timeouts["serp"],
        )
    else:
        logger.warning("DataForSEO credentials not set; keyword research and SERP analysis disabled")

    perplexity = None
    if settings.perplexity_api_key:
        perplexity = PerplexityClient(
            settings.perplexity_api_key,
            transport,
            base_url=settings.perplexity_base_url,
            model=settings.contentgen_perplexity_model,
            timeout=timeouts["perplexity"],
        )
    else:
        logger.warning("PERPLEXITY_API_KEY not set; market research disabled")

    content = None
    provider_name = settings.contentgen_llm_provider.lower()
    if provider_name == "anthropic" and settings.anthropic_api_key:
        llm = get_provider(
            "anthropic",
            api_key=settings.anthropic_api_key,
            model=settings.contentgen_anthropic_model,
            timeout=timeouts["generation"],
        )
        content = LLMContentClient(llm, timeouts)
    elif provider_name != "anthropic" and settings.openai_api_key:
        llm = get_provider(
            "openai",
            api_key=settings.openai_api_key,
            model=settings.contentgen_openai_model,
            timeout=timeouts["generation"],
        )
        content = LLMContentClient(llm, timeouts)
    else:
        logger.warning("No API key for LLM provider %r; text generation disabled", provider_name)

    images = None
    if settings.openai_api_key:
        images = OpenAIImageClient(
            OpenAI(api_key=settings.openai_api_key, timeout=timeouts["images"], max_retries=0),
            model=settings.contentgen_image_model,
            timeout=timeouts["images"],
        )
    else:
        logger.warning("OPENAI_API_KEY not set; image generation disabled")

    return DefaultProviderGateway(
        dataforseo=dataforseo,
        perplexity=perplexity,
        content=content,
        images=images,
        transport=transport,
    )

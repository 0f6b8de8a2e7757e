"""Provider Gateway protocol: one method per external capability.

Every method either returns its typed result or raises
``contentgen.errors.ProviderError``. Implementations must be safe to share
between concurrently running sessions.
"""

from typing import Protocol

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


class ProviderGateway(Protocol):
    def research_keywords(self, query: KeywordQuery) -> KeywordResearch: ...

    def analyze_keywords(self, query: KeywordAnalysisQuery) -> KeywordAnalysis: ...

    def analyze_serp(self, query: SerpQuery) -> SerpAnalysis: ...

    def research_market(self, query: MarketResearchQuery) -> MarketResearch: ...

    def plan_content(self, context: StrategyContext) -> ContentStrategy: ...

    def generate_article(self, context: ArticleContext) -> ArticleDraft: ...

    def score_content(self, context: SeoContext) -> SeoReport: ...

    def generate_images(self, context: ImageContext) -> ImageSet: ...

    def review_quality(self, context: QualityContext) -> QualityReport: ...

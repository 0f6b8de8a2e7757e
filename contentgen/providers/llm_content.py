"""LLM-backed capabilities: keyword analysis, strategy, article, QA review.

Works with any ``LLMProvider`` (OpenAI or Anthropic). SDK exceptions are
classified into ``ProviderError``; unparseable model output falls back to
the deterministic outline / plain-text article for strategy and article.
"""

from __future__ import annotations

import logging

import anthropic
import openai
from pydantic import BaseModel

from contentgen.errors import ProviderError
from contentgen.llm.base import LLMProvider, extract_json
from contentgen.prompts import render_prompt
from contentgen.schemas.provider_schemas import (
    ArticleContext,
    ArticleDraft,
    ContentStrategy,
    KeywordAnalysis,
    KeywordAnalysisQuery,
    KeywordResearch,
    QualityContext,
    QualityReport,
    StrategyContext,
)
from contentgen.seo.fallbacks import (
    article_from_text,
    basic_outline,
    complete_article,
    target_word_count,
)

logger = logging.getLogger(__name__)

_RETRYABLE_SDK_ERRORS = (
    openai.RateLimitError,
    openai.APIConnectionError,
    openai.InternalServerError,
    anthropic.RateLimitError,
    anthropic.APIConnectionError,
    anthropic.InternalServerError,
)

_STRATEGY_SYSTEM = (
    "You are an expert content strategist and SEO specialist. "
    "Create comprehensive, high-ranking article outlines."
)
_ARTICLE_SYSTEM = (
    "You are a senior content strategist and SEO writer. You write comprehensive, "
    "authoritative long-form content that answers search intent completely."
)
_ANALYST_SYSTEM = "You are an SEO keyword research analyst. Respond only with JSON."
_EDITOR_SYSTEM = "You are a meticulous editor. Respond only with JSON."

QA_CONTENT_CHARS = 12000


def sdk_error_to_provider_error(exc: Exception, capability: str) -> ProviderError:
    """Classify an OpenAI/Anthropic SDK exception."""
    if isinstance(exc, (openai.APITimeoutError, anthropic.APITimeoutError)):
        return ProviderError("request timed out", retryable=True, capability=capability)
    if isinstance(exc, _RETRYABLE_SDK_ERRORS):
        return ProviderError(f"{type(exc).__name__}: {exc}", retryable=True, capability=capability)
    status = getattr(exc, "status_code", None)
    retryable = isinstance(status, int) and status >= 500
    return ProviderError(f"{type(exc).__name__}: {exc}", retryable=retryable, capability=capability)


def keyword_list(
    seed_topics: list[str],
    research: KeywordResearch | None = None,
    analysis: KeywordAnalysis | None = None,
    limit: int = 10,
) -> list[str]:
    """Seeds first, then analysed primary keywords, then researched volume leaders."""
    out: list[str] = []
    candidates = list(seed_topics)
    if analysis:
        candidates += analysis.primary_keywords
    if research:
        candidates += [k.keyword for k in research.keywords]
    for kw in candidates:
        kw = kw.strip()
        if kw and kw.lower() not in (o.lower() for o in out):
            out.append(kw)
    return out[:limit]


class LLMContentClient:
    def __init__(
        self,
        llm: LLMProvider,
        timeouts: dict[str, float] | None = None,
    ):
        self._llm = llm
        self._timeouts = timeouts or {}

    def _complete(self, prompt: str, *, capability: str, system: str, **kwargs) -> str:
        timeout = self._timeouts.get(capability, 120.0)
        try:
            return self._llm.complete(prompt, system=system, timeout=timeout, **kwargs)
        except (openai.OpenAIError, anthropic.AnthropicError) as e:
            raise sdk_error_to_provider_error(e, capability) from e

    def _parse(self, raw: str, schema: type[BaseModel], capability: str) -> BaseModel:
        try:
            data = extract_json(raw)
            return schema.model_validate(data)
        except ValueError as e:
            raise ProviderError(f"unparseable model output: {e}", capability=capability) from e

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    def analyze_keywords(self, query: KeywordAnalysisQuery) -> KeywordAnalysis:
        raw = self._complete(
            render_prompt("keyword_analysis.j2", query=query),
            capability="keyword-analysis",
            system=_ANALYST_SYSTEM,
            temperature=0.3,
        )
        return self._parse(raw, KeywordAnalysis, "keyword-analysis")

    def plan_content(self, context: StrategyContext) -> ContentStrategy:
        keywords = keyword_list(
            context.seed_topics, context.keyword_research, context.keyword_analysis
        )
        raw = self._complete(
            render_prompt("content_strategy.j2", ctx=context, keywords=keywords),
            capability="strategy",
            system=_STRATEGY_SYSTEM,
            temperature=0.7,
        )
        try:
            strategy = self._parse(raw, ContentStrategy, "strategy")
        except ProviderError as e:
            logger.warning("Outline response unusable (%s); using basic outline", e.message)
            return basic_outline(context)
        if not strategy.sections:
            logger.warning("Outline response had no sections; using basic outline")
            return basic_outline(context)
        return strategy

    def generate_article(self, context: ArticleContext) -> ArticleDraft:
        keywords = keyword_list(context.seed_topics, context.keyword_research)
        if context.strategy:
            keywords = keyword_list(keywords + context.strategy.focus_keywords)
        raw = self._complete(
            render_prompt(
                "article.j2",
                ctx=context,
                keywords=keywords,
                word_count=target_word_count(context.content_length),
            ),
            capability="generation",
            system=_ARTICLE_SYSTEM,
            temperature=0.7,
            max_tokens=8192,
        )
        if not raw.strip():
            raise ProviderError("model returned no content", capability="generation")
        try:
            draft = self._parse(raw, ArticleDraft, "generation")
        except ProviderError as e:
            logger.warning("Article response was not JSON (%s); keeping raw text", e.message)
            return article_from_text(raw, context)
        return complete_article(draft, context)

    def review_quality(self, context: QualityContext) -> QualityReport:
        content = context.article.content
        if len(content) > QA_CONTENT_CHARS:
            content = content[:QA_CONTENT_CHARS] + "\n[...truncated]"
        raw = self._complete(
            render_prompt("quality_review.j2", ctx=context, content=content),
            capability="quality",
            system=_EDITOR_SYSTEM,
            temperature=0.2,
        )
        return self._parse(raw, QualityReport, "quality")

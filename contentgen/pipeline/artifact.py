"""Assemble the final GeneratedArtifact from completed stage payloads."""

from __future__ import annotations

from contentgen.pipeline import registry as r
from contentgen.schemas.models import (
    GeneratedArtifact,
    SeoMetadata,
    SerpInsights,
    Session,
    StageStatus,
)
from contentgen.schemas.provider_schemas import (
    ArticleDraft,
    ContentStrategy,
    ImageSet,
    KeywordResearch,
    MarketResearch,
    QualityReport,
    SeoReport,
    SerpAnalysis,
)
from contentgen.seo.metrics import summarize_keywords


def _completed(session: Session, stage_id: str, model):
    result = session.stages.get(stage_id)
    if result is None or result.status != StageStatus.COMPLETED or result.payload is None:
        return None
    return model.model_validate(result.payload)


def outline_markdown(strategy: ContentStrategy) -> str:
    """Render a content strategy as a Markdown outline."""
    lines = [f"# {strategy.title}", ""]
    if strategy.hook:
        lines += [strategy.hook, ""]
    if strategy.problem_statement:
        lines += [strategy.problem_statement, ""]
    for section in strategy.sections:
        lines.append(f"## {section.heading}")
        lines += [f"### {sub}" for sub in section.subheadings]
        lines += [f"- {point}" for point in section.key_points]
        lines.append("")
    if strategy.conclusion_summary:
        lines += ["## Conclusion", strategy.conclusion_summary, ""]
    if strategy.call_to_action:
        lines.append(strategy.call_to_action)
    return "\n".join(lines).strip() + "\n"


def _dedupe(items: list[str]) -> list[str]:
    out: list[str] = []
    for item in items:
        if item and item not in out:
            out.append(item)
    return out


def assemble_artifact(session: Session) -> GeneratedArtifact:
    article = _completed(session, r.ARTICLE_GENERATION, ArticleDraft)
    strategy = _completed(session, r.CONTENT_STRATEGY, ContentStrategy)
    seo = _completed(session, r.SEO_OPTIMIZATION, SeoReport)
    images = _completed(session, r.IMAGE_GENERATION, ImageSet)
    research = _completed(session, r.KEYWORD_RESEARCH, KeywordResearch)
    serp = _completed(session, r.SERP_ANALYSIS, SerpAnalysis)
    market = _completed(session, r.MARKET_RESEARCH, MarketResearch)
    quality = _completed(session, r.QUALITY_ASSURANCE, QualityReport)

    if article is not None:
        title, body, excerpt = article.title, article.content, article.excerpt
        seo_meta = SeoMetadata(
            tags=article.seo_tags,
            meta_description=article.meta_description,
            categories=article.categories,
        )
        ctas = article.call_to_actions
    elif strategy is not None:
        # Article generation was switched off: deliver the outline.
        title, body, excerpt = strategy.title, outline_markdown(strategy), strategy.hook
        seo_meta = SeoMetadata(
            tags=strategy.focus_keywords, meta_description=strategy.meta_description
        )
        ctas = [strategy.call_to_action] if strategy.call_to_action else []
    else:
        title, body, excerpt = session.request.primary_topic, "", ""
        seo_meta = SeoMetadata(tags=list(session.request.seed_topics))
        ctas = []

    recommendations = (seo.recommendations if seo else []) + (
        quality.recommendations if quality else []
    )
    return GeneratedArtifact(
        title=title,
        body=body,
        excerpt=excerpt,
        seo=seo_meta,
        metrics=seo.metrics if seo else None,
        images=images.images if images else [],
        keyword_analytics=summarize_keywords(research) if research else None,
        serp_insights=(
            SerpInsights(top_domains=serp.top_domains, questions=serp.questions) if serp else None
        ),
        market_insights=market.key_insights if market else [],
        quality=quality,
        call_to_actions=ctas if session.request.include_call_to_actions else [],
        recommendations=_dedupe(recommendations),
    )

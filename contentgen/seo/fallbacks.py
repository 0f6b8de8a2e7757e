"""Fallback content used when a model answers with something unparseable.

The outline fallback is a generic three-section plan built from the seed
topic; the article fallback keeps the model's raw text as the body and
derives the surrounding metadata. Both are flagged ``fallback=True`` so the
artifact's provenance stays visible.
"""

from __future__ import annotations

import re

from contentgen.schemas.provider_schemas import (
    ArticleContext,
    ArticleDraft,
    ContentStrategy,
    OutlineSection,
    StrategyContext,
)

_TITLE_PREFIX_RE = re.compile(r"^#+\s*")


def basic_outline(context: StrategyContext) -> ContentStrategy:
    topic = context.seed_topics[0]
    return ContentStrategy(
        title=f"Complete Guide to {topic}",
        hook=f"Discover how {topic} can transform your business",
        problem_statement=f"Many businesses struggle with implementing {topic} effectively",
        solution_preview="This guide provides actionable strategies and best practices",
        sections=[
            OutlineSection(
                heading=f"What is {topic}?",
                subheadings=["Definition and Overview", "Key Components", "How It Works"],
                key_points=["Core concepts", "Basic principles"],
                keywords=[topic, f"{topic} definition"],
                word_count_target=400,
            ),
            OutlineSection(
                heading=f"Benefits of {topic}",
                subheadings=["Business Advantages", "Cost Savings", "Efficiency Gains"],
                key_points=["Quantifiable benefits", "ROI considerations"],
                keywords=[f"{topic} benefits", f"{topic} advantages"],
                word_count_target=500,
            ),
            OutlineSection(
                heading=f"How to Implement {topic}",
                subheadings=["Planning Phase", "Execution Steps", "Best Practices"],
                key_points=["Step-by-step process", "Common pitfalls", "Success factors"],
                keywords=[f"{topic} implementation", f"how to {topic}"],
                word_count_target=600,
            ),
        ],
        conclusion_summary=f"Key takeaways about {topic}",
        call_to_action="Start implementing these strategies today",
        estimated_word_count=3000,
        meta_description=(
            f"Comprehensive guide to {topic}. Learn implementation strategies, "
            "benefits, and best practices."
        ),
        focus_keywords=[topic, f"{topic} guide"],
        fallback=True,
    )


def _default_categories(content_type: str) -> list[str]:
    return ["AI & Technology" if content_type == "blog" else "Business Solutions"]


def _excerpt(text: str, limit: int = 150) -> str:
    flat = " ".join(text.split())
    if len(flat) <= limit:
        return flat
    return flat[:limit].rstrip() + "..."


def article_from_text(text: str, context: ArticleContext) -> ArticleDraft:
    """Wrap raw model text as an article when it was not valid JSON."""
    topic = context.seed_topics[0]
    first_line = next((ln.strip() for ln in text.splitlines() if ln.strip()), "")
    title = _TITLE_PREFIX_RE.sub("", first_line).replace('"', "").strip()
    if not title:
        title = context.strategy.title if context.strategy else f"Complete Guide to {topic}"
    return ArticleDraft(
        title=title,
        content=text,
        meta_description=f"Learn everything about {topic}. Expert insights and practical strategies.",
        excerpt=_excerpt(text),
        seo_tags=context.seed_topics[:5],
        categories=_default_categories(context.content_type),
        call_to_actions=(
            ["Contact us for consultation", "Get started today"]
            if context.include_call_to_actions
            else []
        ),
        fallback=True,
    )


def complete_article(draft: ArticleDraft, context: ArticleContext) -> ArticleDraft:
    """Fill metadata the model left empty."""
    topic = context.seed_topics[0]
    updates: dict = {}
    if not draft.title.strip():
        updates["title"] = context.strategy.title if context.strategy else f"Complete Guide to {topic}"
    if not draft.meta_description.strip():
        updates["meta_description"] = (
            context.strategy.meta_description
            if context.strategy and context.strategy.meta_description
            else f"Discover {topic} strategies and best practices. Expert insights for success."
        )
    if not draft.seo_tags:
        updates["seo_tags"] = context.seed_topics[:5]
    if not draft.categories:
        updates["categories"] = _default_categories(context.content_type)
    if not draft.excerpt.strip():
        updates["excerpt"] = _excerpt(draft.content)
    return draft.model_copy(update=updates) if updates else draft


def target_word_count(content_length: str, floor: int = 2500) -> int:
    """Parse a length class such as '5000+' or '1500-2500' into a word target."""
    match = re.search(r"(\d+)", content_length or "")
    n = int(match.group(1)) if match else 3000
    return max(n, floor)

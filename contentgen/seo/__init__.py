"""Deterministic SEO metrics and fallback content."""

from contentgen.seo.fallbacks import article_from_text, basic_outline, complete_article
from contentgen.seo.metrics import analyze_content, score_content, summarize_keywords

__all__ = [
    "analyze_content",
    "article_from_text",
    "basic_outline",
    "complete_article",
    "score_content",
    "summarize_keywords",
]

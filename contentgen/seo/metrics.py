"""Deterministic content metrics: word count, readability, SEO score, density.

Pure functions over article HTML/Markdown text. Used by the local SEO
scorer and by keyword-research summaries.
"""

from __future__ import annotations

import math
import re

from contentgen.schemas.provider_schemas import (
    ArticleMetrics,
    KeywordAnalytics,
    KeywordResearch,
    SeoReport,
)

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_VOWEL_RE = re.compile(r"[aeiouAEIOU]")
_HTML_HEADING_RE = re.compile(r"<h([1-6])[^>]*>", re.IGNORECASE)
_MD_HEADING_RE = re.compile(r"^(#{1,6})\s+\S", re.MULTILINE)

WORDS_PER_MINUTE = 200


def count_words(content: str) -> int:
    return len(content.split())


def count_sentences(content: str) -> int:
    return len([s for s in _SENTENCE_SPLIT_RE.split(content) if s.strip()])


def count_paragraphs(content: str) -> int:
    return len([p for p in content.split("\n\n") if p.strip()])


def reading_time(content: str) -> int:
    """Minutes at 200 words per minute, rounded up."""
    return math.ceil(count_words(content) / WORDS_PER_MINUTE)


def readability_score(content: str) -> int:
    """Flesch reading-ease approximation clamped to 0-100.

    Syllables are approximated by counting vowels.
    """
    sentences = count_sentences(content)
    words = count_words(content)
    if sentences == 0 or words == 0:
        return 0
    syllables = len(_VOWEL_RE.findall(content))
    score = 206.835 - 1.015 * (words / sentences) - 84.6 * (syllables / words)
    return max(0, min(100, round(score)))


def _occurrences(content_lower: str, keyword: str) -> int:
    kw = keyword.strip().lower()
    if not kw:
        return 0
    return len(re.findall(re.escape(kw), content_lower))


def keyword_density(content: str, keywords: list[str]) -> dict[str, float]:
    """Occurrences per 100 words, one decimal."""
    words = count_words(content)
    if words == 0:
        return {k: 0.0 for k in keywords}
    lower = content.lower()
    return {k: round(_occurrences(lower, k) / words * 100, 1) for k in keywords}


def heading_structure(content: str) -> dict[str, int]:
    """Count h1..h6 in HTML or Markdown headings."""
    counts = {f"h{i}": 0 for i in range(1, 7)}
    for level in _HTML_HEADING_RE.findall(content):
        counts[f"h{level}"] += 1
    for hashes in _MD_HEADING_RE.findall(content):
        counts[f"h{len(hashes)}"] += 1
    return counts


def seo_score(content: str, keywords: list[str]) -> int:
    """Additive 0-100 score: keyword presence, length, heading depth."""
    score = 0
    lower = content.lower()
    for kw in keywords:
        n = _occurrences(lower, kw)
        if n > 0:
            score += 20
        if n >= 3:
            score += 10
    words = count_words(content)
    if words >= 1500:
        score += 20
    if words >= 3000:
        score += 10
    headings = heading_structure(content)
    top_level = headings["h1"] + headings["h2"] + headings["h3"]
    if top_level >= 3:
        score += 15
    if top_level >= 6:
        score += 10
    return min(100, score)


def analyze_content(content: str, keywords: list[str]) -> ArticleMetrics:
    return ArticleMetrics(
        word_count=count_words(content),
        readability_score=readability_score(content),
        seo_score=seo_score(content, keywords),
        keyword_density=keyword_density(content, keywords),
        heading_structure=heading_structure(content),
        reading_time=reading_time(content),
        sentence_count=count_sentences(content),
        paragraph_count=count_paragraphs(content),
    )


def seo_recommendations(metrics: ArticleMetrics) -> list[str]:
    recs: list[str] = []
    if metrics.seo_score < 70:
        recs.append("Improve keyword optimization and distribution")
    if metrics.readability_score < 60:
        recs.append("Simplify sentence structure for better readability")
    if metrics.word_count < 2000:
        recs.append("Consider expanding content for better search performance")
    if metrics.heading_structure.get("h2", 0) < 3:
        recs.append("Add more H2 headings to improve content structure")
    return recs


def score_content(content: str, keywords: list[str]) -> SeoReport:
    metrics = analyze_content(content, keywords)
    return SeoReport(metrics=metrics, recommendations=seo_recommendations(metrics))


# ---------------------------------------------------------------------------
# Keyword research summaries
# ---------------------------------------------------------------------------

_TRANSACTIONAL = frozenset({"buy", "purchase", "order", "download", "get", "free", "trial"})
_COMMERCIAL = frozenset({"best", "top", "review", "reviews", "compare", "vs", "price", "pricing", "cost"})
_WORD_RE = re.compile(r"[a-z0-9]+")


def classify_search_intent(keyword: str) -> str:
    words = set(_WORD_RE.findall(keyword.lower()))
    if words & _TRANSACTIONAL:
        return "transactional"
    if words & _COMMERCIAL:
        return "commercial"
    return "informational"


def opportunity_score(search_volume: int, difficulty: int) -> int:
    return round(search_volume / max(difficulty, 1) * 10)


def summarize_keywords(research: KeywordResearch) -> KeywordAnalytics:
    kws = research.keywords
    n = len(kws)
    avg_difficulty = research.average_difficulty
    if avg_difficulty > 60:
        level = "High"
    elif avg_difficulty > 30:
        level = "Medium"
    else:
        level = "Low"
    return KeywordAnalytics(
        total_keywords=n,
        high_opportunity_keywords=sum(1 for k in kws if k.opportunity_score >= 70),
        quick_win_keywords=sum(1 for k in kws if k.keyword_difficulty <= 30),
        average_search_volume=round(sum(k.search_volume for k in kws) / n) if n else 0,
        average_difficulty=avg_difficulty,
        competition_level=level,
    )

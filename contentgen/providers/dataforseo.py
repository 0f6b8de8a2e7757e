"""DataForSEO adapter: keyword volumes and organic SERP results."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from contentgen.errors import ProviderError
from contentgen.providers.http import HttpTransport
from contentgen.schemas.provider_schemas import (
    KeywordMetric,
    KeywordQuery,
    KeywordResearch,
    SerpAnalysis,
    SerpQuery,
    SerpResult,
)
from contentgen.seo.metrics import classify_search_intent, opportunity_score

logger = logging.getLogger(__name__)

_OK = 20000
MAX_KEYWORDS = 50


def _difficulty(item: dict[str, Any]) -> int:
    index = item.get("competition_index")
    if isinstance(index, (int, float)):
        return max(0, min(100, round(index)))
    competition = item.get("competition")
    if isinstance(competition, (int, float)):
        return max(0, min(100, round(competition * 100)))
    return 0


def _competition_label(item: dict[str, Any], difficulty: int) -> str:
    label = item.get("competition_level") or item.get("competition")
    if isinstance(label, str) and label:
        return label.lower()
    if difficulty > 60:
        return "high"
    if difficulty > 30:
        return "medium"
    return "low"


def _to_metric(item: dict[str, Any]) -> KeywordMetric | None:
    keyword = (item.get("keyword") or "").strip()
    if not keyword:
        return None
    volume = int(item.get("search_volume") or 0)
    difficulty = _difficulty(item)
    return KeywordMetric(
        keyword=keyword,
        search_volume=volume,
        keyword_difficulty=difficulty,
        cpc=float(item.get("cpc") or 0.0),
        competition=_competition_label(item, difficulty),
        search_intent=classify_search_intent(keyword),
        opportunity_score=opportunity_score(volume, difficulty),
    )


def _matches(domain: str, competitor: str) -> bool:
    return domain == competitor or domain.endswith("." + competitor)


class DataForSEOClient:
    """Keyword data (Google Ads endpoint) and SERP data (organic live advanced)."""

    def __init__(
        self,
        login: str,
        password: str,
        transport: HttpTransport,
        base_url: str = "https://api.dataforseo.com/v3",
        keyword_timeout: float = 30.0,
        serp_timeout: float = 45.0,
    ):
        self._auth = httpx.BasicAuth(login, password)
        self._transport = transport
        self._base = base_url.rstrip("/")
        self._keyword_timeout = keyword_timeout
        self._serp_timeout = serp_timeout

    def _task_result(self, data: Any, capability: str) -> list[dict[str, Any]]:
        tasks = data.get("tasks") if isinstance(data, dict) else None
        if not tasks:
            raise ProviderError("no tasks in response", capability=capability)
        task = tasks[0]
        code = task.get("status_code", _OK)
        if code != _OK:
            raise ProviderError(
                f"task error {code}: {task.get('status_message', '')}",
                retryable=code >= 50000,
                capability=capability,
            )
        return task.get("result") or []

    def research_keywords(self, query: KeywordQuery) -> KeywordResearch:
        data = self._transport.post_json(
            f"{self._base}/keywords_data/google_ads/keywords_for_keywords/live",
            [
                {
                    "keywords": [query.seed],
                    "location_name": query.location,
                    "language_name": query.language,
                    "sort_by": "search_volume",
                }
            ],
            capability="dataforseo",
            timeout=self._keyword_timeout,
            auth=self._auth,
        )
        items = self._task_result(data, "dataforseo")
        metrics = [m for m in (_to_metric(i) for i in items) if m is not None]
        kept = [
            m
            for m in metrics
            if m.search_volume >= query.min_search_volume
            and m.keyword_difficulty <= query.max_keyword_difficulty
        ]
        kept.sort(key=lambda m: m.search_volume, reverse=True)
        kept = kept[:MAX_KEYWORDS]
        logger.info(
            "Keyword research for %r: %d returned, %d within thresholds",
            query.seed, len(metrics), len(kept),
        )
        return KeywordResearch(
            seed=query.seed,
            keywords=kept,
            total_search_volume=sum(m.search_volume for m in kept),
            average_difficulty=round(sum(m.keyword_difficulty for m in kept) / len(kept)) if kept else 0,
        )

    def analyze_serp(self, query: SerpQuery) -> SerpAnalysis:
        data = self._transport.post_json(
            f"{self._base}/serp/google/organic/live/advanced",
            [
                {
                    "keyword": query.keyword,
                    "location_name": query.location,
                    "language_name": query.language,
                    "device": query.device,
                    "depth": query.depth,
                }
            ],
            capability="serp",
            timeout=self._serp_timeout,
            auth=self._auth,
        )
        result = self._task_result(data, "serp")
        items = (result[0].get("items") or []) if result else []

        results: list[SerpResult] = []
        questions: list[str] = []
        for item in items:
            kind = item.get("type")
            if kind == "organic":
                results.append(
                    SerpResult(
                        position=int(item.get("rank_absolute") or len(results) + 1),
                        title=item.get("title") or "",
                        url=item.get("url") or "",
                        domain=(item.get("domain") or "").lower(),
                        snippet=item.get("description") or "",
                    )
                )
            elif kind == "people_also_ask":
                for q in item.get("items") or []:
                    title = (q.get("title") or "").strip()
                    if title:
                        questions.append(title)

        top_domains: list[str] = []
        for r in results:
            if r.domain and r.domain not in top_domains:
                top_domains.append(r.domain)

        positions: dict[str, int] = {}
        for competitor in query.competitors:
            hits = [r.position for r in results if _matches(r.domain, competitor)]
            if hits:
                positions[competitor] = min(hits)

        return SerpAnalysis(
            keyword=query.keyword,
            results=results,
            top_domains=top_domains[:10],
            competitor_positions=positions,
            questions=questions,
        )

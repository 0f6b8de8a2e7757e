"""Perplexity adapter: online market research through chat completions."""

from __future__ import annotations

import re

from contentgen.errors import ProviderError
from contentgen.prompts import render_prompt
from contentgen.providers.http import HttpTransport
from contentgen.schemas.provider_schemas import MarketResearch, MarketResearchQuery

_BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+(.+)$", re.MULTILINE)
_URL_RE = re.compile(r"https?://[^\s)\]>\"']+")

SUMMARY_CHARS = 500
MAX_INSIGHTS = 8


def extract_insights(text: str) -> list[str]:
    """Bullet and numbered-list lines, markdown emphasis stripped."""
    insights = []
    for line in _BULLET_RE.findall(text):
        clean = line.replace("**", "").strip()
        if len(clean) > 15:
            insights.append(clean)
    return insights[:MAX_INSIGHTS]


def extract_sources(text: str) -> list[str]:
    seen: list[str] = []
    for url in _URL_RE.findall(text):
        url = url.rstrip(".,;")
        if url not in seen:
            seen.append(url)
    return seen


class PerplexityClient:
    def __init__(
        self,
        api_key: str,
        transport: HttpTransport,
        base_url: str = "https://api.perplexity.ai",
        model: str = "llama-3.1-sonar-small-128k-online",
        timeout: float = 60.0,
    ):
        self._headers = {"Authorization": f"Bearer {api_key}"}
        self._transport = transport
        self._url = f"{base_url.rstrip('/')}/chat/completions"
        self._model = model
        self._timeout = timeout

    def research_market(self, query: MarketResearchQuery) -> MarketResearch:
        data = self._transport.post_json(
            self._url,
            {
                "model": self._model,
                "messages": [
                    {
                        "role": "system",
                        "content": (
                            "You are a professional research analyst. Provide factual research "
                            "with current market data, trends, and insights."
                        ),
                    },
                    {"role": "user", "content": render_prompt("market_research.j2", query=query)},
                ],
                "temperature": 0.2,
                "max_tokens": 2000,
            },
            capability="perplexity",
            timeout=self._timeout,
            headers=self._headers,
        )
        try:
            text = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError("unexpected response shape", capability="perplexity") from e
        if not text.strip():
            raise ProviderError("empty research response", capability="perplexity")

        citations = data.get("citations") if isinstance(data, dict) else None
        sources = [c for c in citations if isinstance(c, str)] if citations else extract_sources(text)
        summary = text if len(text) <= SUMMARY_CHARS else text[:SUMMARY_CHARS].rstrip() + "..."
        return MarketResearch(
            summary=summary,
            key_insights=extract_insights(text),
            sources=sources,
            full_text=text,
        )

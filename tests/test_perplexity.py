"""Tests for the Perplexity market-research adapter."""

import json

import httpx
import pytest

from contentgen.errors import ProviderError
from contentgen.providers.http import HttpTransport
from contentgen.providers.perplexity import PerplexityClient, extract_insights, extract_sources
from contentgen.schemas.provider_schemas import MarketResearchQuery

RESEARCH_TEXT = """## Market overview
The CRM market is consolidating quickly.

- **Market size**: CRM spending reached $70B in 2024
- Short line
1. Adoption among SMBs grew 18% year over year
2) AI assistants are now bundled in most suites
* See https://www.gartner.com/crm-report, and https://www.gartner.com/crm-report.
"""


def _client(handler):
    transport = HttpTransport(httpx.Client(transport=httpx.MockTransport(handler)))
    return PerplexityClient("pplx-key", transport, base_url="https://pplx.test")


def _reply(content, **extra):
    body = {"choices": [{"message": {"role": "assistant", "content": content}}]}
    body.update(extra)
    return body


def test_extract_insights():
    insights = extract_insights(RESEARCH_TEXT)
    assert insights[0] == "Market size: CRM spending reached $70B in 2024"
    assert "Short line" not in insights
    assert "Adoption among SMBs grew 18% year over year" in insights
    assert "AI assistants are now bundled in most suites" in insights


def test_extract_insights_is_capped():
    text = "\n".join(f"- Insight number {i} with enough detail" for i in range(20))
    assert len(extract_insights(text)) == 8


def test_extract_sources_dedupes():
    assert extract_sources(RESEARCH_TEXT) == ["https://www.gartner.com/crm-report"]


def test_research_market():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_reply(RESEARCH_TEXT))

    query = MarketResearchQuery(topic="CRM", keywords=["crm software"], industry="SaaS")
    result = _client(handler).research_market(query)

    assert seen["auth"] == "Bearer pplx-key"
    assert seen["path"] == "/chat/completions"
    user_prompt = seen["body"]["messages"][1]["content"]
    assert 'research on "CRM" for the SaaS industry' in user_prompt
    assert "crm software" in user_prompt
    assert result.full_text == RESEARCH_TEXT
    assert result.summary == RESEARCH_TEXT
    assert result.sources == ["https://www.gartner.com/crm-report"]
    assert len(result.key_insights) == 4


def test_citations_take_precedence():
    citations = ["https://a.example/1", "https://b.example/2"]
    body = _reply("- A long enough insight line", citations=citations)
    result = _client(lambda r: httpx.Response(200, json=body)).research_market(
        MarketResearchQuery(topic="CRM")
    )
    assert result.sources == citations


def test_long_summary_is_truncated():
    text = "word " * 300
    result = _client(lambda r: httpx.Response(200, json=_reply(text))).research_market(
        MarketResearchQuery(topic="CRM")
    )
    assert result.summary.endswith("...")
    assert len(result.summary) <= 503


@pytest.mark.parametrize("body", [{"choices": []}, {"unexpected": True}, _reply("   ")])
def test_bad_responses_are_provider_errors(body):
    with pytest.raises(ProviderError) as exc_info:
        _client(lambda r: httpx.Response(200, json=body)).research_market(MarketResearchQuery(topic="CRM"))
    assert exc_info.value.capability == "perplexity"
    assert exc_info.value.retryable is False


def test_rate_limit_is_retryable():
    with pytest.raises(ProviderError) as exc_info:
        _client(lambda r: httpx.Response(429, json={"error": "slow down"})).research_market(
            MarketResearchQuery(topic="CRM")
        )
    assert exc_info.value.retryable is True

"""LLM adapter layer: OpenAI and Anthropic behind a common protocol."""

from contentgen.llm.anthropic_provider import AnthropicProvider
from contentgen.llm.base import LLMProvider, extract_json
from contentgen.llm.openai_provider import OpenAIProvider


def get_provider(provider_name: str, **kwargs: object) -> LLMProvider:
    """Return the configured LLM provider. provider_name: 'openai' | 'anthropic'."""
    if provider_name.lower() == "anthropic":
        return AnthropicProvider(**kwargs)
    return OpenAIProvider(**kwargs)


__all__ = ["LLMProvider", "OpenAIProvider", "AnthropicProvider", "extract_json", "get_provider"]

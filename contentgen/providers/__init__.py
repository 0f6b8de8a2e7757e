"""Provider Gateway: protocol plus the DataForSEO / Perplexity / LLM / image adapters."""

from contentgen.providers.base import ProviderGateway
from contentgen.providers.gateway import DefaultProviderGateway, LocalSeoScorer, get_gateway
from contentgen.providers.http import HttpTransport

__all__ = [
    "DefaultProviderGateway",
    "HttpTransport",
    "LocalSeoScorer",
    "ProviderGateway",
    "get_gateway",
]

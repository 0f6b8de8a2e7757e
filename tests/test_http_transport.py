"""Tests for the shared HTTP transport."""

import json

import httpx
import pytest

from contentgen.errors import ProviderError
from contentgen.providers.http import HttpTransport


def _transport(handler):
    return HttpTransport(httpx.Client(transport=httpx.MockTransport(handler)))


def test_post_json_round_trip():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"ok": True})

    transport = _transport(handler)
    result = transport.post_json(
        "https://api.example.com/x", [{"a": 1}], capability="serp", timeout=5, auth=("u", "p")
    )
    assert result == {"ok": True}
    assert seen["body"] == [{"a": 1}]
    assert seen["auth"].startswith("Basic ")


@pytest.mark.parametrize(
    "status, retryable",
    [(400, False), (401, False), (404, False), (429, True), (500, True), (503, True)],
)
def test_http_status_classification(status, retryable):
    transport = _transport(lambda request: httpx.Response(status, text="nope"))
    with pytest.raises(ProviderError) as exc_info:
        transport.post_json("https://api.example.com/x", {}, capability="perplexity", timeout=5)
    err = exc_info.value
    assert err.retryable is retryable
    assert err.capability == "perplexity"
    assert err.message.startswith(f"HTTP {status}")


def test_timeout_is_retryable():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(ProviderError) as exc_info:
        _transport(handler).post_json("https://api.example.com/x", {}, capability="serp", timeout=45)
    assert exc_info.value.retryable is True
    assert exc_info.value.message == "timed out after 45s"


def test_connection_error_is_retryable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ProviderError) as exc_info:
        _transport(handler).post_json("https://api.example.com/x", {}, capability="serp", timeout=5)
    assert exc_info.value.retryable is True
    assert "ConnectError" in exc_info.value.message


def test_invalid_json_is_not_retryable():
    transport = _transport(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(ProviderError) as exc_info:
        transport.post_json("https://api.example.com/x", {}, capability="serp", timeout=5)
    assert exc_info.value.retryable is False

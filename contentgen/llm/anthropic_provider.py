"""Anthropic Messages API implementation."""

from typing import Any

from anthropic import Anthropic


class AnthropicProvider:
    """Anthropic messages completion. SDK exceptions propagate unchanged."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-3-5-sonnet-20241022",
        timeout: float = 120.0,
        client: Anthropic | None = None,
    ):
        self._client = client or Anthropic(api_key=api_key, timeout=timeout, max_retries=0)
        self._model = model

    def complete(self, prompt: str, **kwargs: Any) -> str:
        extra: dict[str, Any] = {}
        if kwargs.get("system"):
            extra["system"] = kwargs["system"]
        for key in ("temperature", "timeout"):
            if key in kwargs:
                extra[key] = kwargs[key]
        response = self._client.messages.create(
            model=kwargs.get("model") or self._model,
            max_tokens=kwargs.get("max_tokens", 4096),
            messages=[{"role": "user", "content": prompt}],
            **extra,
        )
        return response.content[0].text if response.content else ""


"""OpenAI chat completions implementation."""

from typing import Any

from openai import OpenAI


class OpenAIProvider:
    """OpenAI chat completion.

    SDK exceptions propagate unchanged; the gateway classifies them.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o",
        timeout: float = 120.0,
        client: OpenAI | None = None,
    ):
        self._client = client or OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self._model = model

    def complete(self, prompt: str, **kwargs: Any) -> str:
        system = kwargs.pop("system", None)
        messages = [{"role": "user", "content": prompt}]
        if system:
            messages.insert(0, {"role": "system", "content": system})
        response = self._client.chat.completions.create(
            model=kwargs.pop("model", None) or self._model,
            messages=messages,
            **kwargs,
        )
        msg = response.choices[0].message
        return msg.content or ""

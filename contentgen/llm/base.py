"""Abstract LLM provider protocol."""

import json
import re
from typing import Any, Protocol

_FENCE_OPEN_RE = re.compile(r"^```\w*\n?")
_FENCE_CLOSE_RE = re.compile(r"\n?```\s*$")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


class LLMProvider(Protocol):
    """Protocol for LLM backends (OpenAI, Anthropic)."""

    def complete(self, prompt: str, **kwargs: Any) -> str:
        """Return raw text completion."""
        ...


def strip_code_fence(raw: str) -> str:
    text = raw.strip()
    if text.startswith("```"):
        text = _FENCE_OPEN_RE.sub("", text)
        text = _FENCE_CLOSE_RE.sub("", text)
    return text.strip()


def extract_json(raw: str) -> Any:
    """Parse the JSON object in a model reply, tolerating fences and chatter.

    Raises ``json.JSONDecodeError`` (a ``ValueError``) when nothing parses.
    """
    text = strip_code_fence(raw)
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        match = _OBJECT_RE.search(text)
        if not match:
            raise
        return json.loads(match.group(0))

"""Shared HTTP transport for the REST-based adapters.

A single ``httpx.Client`` (thread-safe, pooled) is shared by every adapter
and every session. Failures are translated into ``ProviderError`` with a
retryable flag: timeouts, connection problems, 429 and 5xx are retryable,
any other status or an unparseable body is not.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from contentgen.errors import ProviderError

logger = logging.getLogger(__name__)


class HttpTransport:
    def __init__(self, client: httpx.Client | None = None, max_connections: int = 20):
        self._client = client or httpx.Client(
            follow_redirects=True,
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max_connections // 2,
            ),
        )

    def post_json(
        self,
        url: str,
        payload: Any,
        *,
        capability: str,
        timeout: float,
        headers: dict[str, str] | None = None,
        auth: httpx.Auth | tuple[str, str] | None = None,
    ) -> Any:
        """POST ``payload`` as JSON and return the decoded JSON response."""
        logger.debug("POST %s (%s, timeout=%ss)", url, capability, timeout)
        try:
            response = self._client.post(
                url, json=payload, headers=headers, auth=auth, timeout=timeout
            )
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise ProviderError(
                f"timed out after {timeout:.0f}s", retryable=True, capability=capability
            ) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise ProviderError(
                f"HTTP {status}: {e.response.text[:200]}",
                retryable=status == 429 or status >= 500,
                capability=capability,
            ) from e
        except httpx.RequestError as e:
            raise ProviderError(
                f"{type(e).__name__}: {e}", retryable=True, capability=capability
            ) from e
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError("response was not valid JSON", capability=capability) from e

    def close(self) -> None:
        self._client.close()

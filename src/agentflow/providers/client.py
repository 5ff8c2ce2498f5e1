"""Live HTTP client for provider generation endpoints."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from agentflow.errors import ProviderError
from agentflow.providers.models import ContentType, ProviderConfig, ProviderRequest, ProviderResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_MAX_RETRIES = 1
DEFAULT_USER_AGENT = "agentflow/0.1 (+content-orchestrator)"


class ProviderClient(Protocol):
    """Protocol implemented by live provider transports."""

    async def generate(self, provider: ProviderConfig, request: ProviderRequest) -> ProviderResponse:
        """Perform one live generation call."""


class HttpProviderClient:
    """POST generation requests to ``{base_url}/v1/{type}`` with bearer auth.

    Expected response body is a JSON object with ``content`` for text requests
    or ``url`` for image/video requests, plus optional ``metadata``.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = httpx.Timeout(timeout_seconds, connect=10.0)
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            headers={"User-Agent": user_agent},
            transport=transport or httpx.AsyncHTTPTransport(retries=max_retries),
            follow_redirects=True,
        )

    async def generate(self, provider: ProviderConfig, request: ProviderRequest) -> ProviderResponse:
        if not provider.base_url:
            raise ProviderError(provider.id, f"Provider {provider.name} has no base URL configured")

        url = f"{provider.base_url.rstrip('/')}/v1/{request.type.value}"
        body: dict[str, Any] = {
            "model": request.model,
            "prompt": request.prompt,
            "payload": request.payload,
            "options": request.options,
        }
        try:
            response = await self._client.post(
                url,
                json=body,
                headers={"Authorization": f"Bearer {provider.api_key}"},
            )
        except httpx.TimeoutException as error:
            logger.warning("Timeout calling provider %s at %s", provider.id, url)
            raise ProviderError(provider.id, f"Provider {provider.name} timed out") from error
        except httpx.HTTPError as error:
            logger.warning("HTTP error calling provider %s: %s", provider.id, error)
            raise ProviderError(provider.id, f"Provider {provider.name} request failed: {error}") from error

        if not response.is_success:
            raise ProviderError(
                provider.id,
                f"Provider {provider.name} returned HTTP {response.status_code}",
            )
        try:
            data = response.json()
        except ValueError as error:
            raise ProviderError(provider.id, f"Provider {provider.name} returned non-JSON body") from error
        return _parse_response_body(provider, request, data)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> HttpProviderClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()


def _parse_response_body(
    provider: ProviderConfig,
    request: ProviderRequest,
    data: Any,
) -> ProviderResponse:
    if not isinstance(data, dict):
        raise ProviderError(provider.id, f"Provider {provider.name} returned a non-object body")
    metadata = data.get("metadata")
    metadata = dict(metadata) if isinstance(metadata, dict) else {}

    if request.type is ContentType.TEXT:
        content = data.get("content")
        if not isinstance(content, str):
            raise ProviderError(provider.id, f"Provider {provider.name} response is missing text")
        return ProviderResponse(content=content, metadata=metadata)

    locator = data.get("url")
    if not isinstance(locator, str) or not locator:
        raise ProviderError(provider.id, f"Provider {provider.name} response is missing url")
    return ProviderResponse(url=locator, metadata=metadata)

"""Prioritized provider pool with rate limiting, failover and mock mode."""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Iterable
from typing import Any

from agentflow.errors import ProviderError, ProviderExhaustedError
from agentflow.providers.client import HttpProviderClient, ProviderClient
from agentflow.providers.models import (
    ContentType,
    InvocationMode,
    ProviderConfig,
    ProviderRequest,
    ProviderResponse,
)
from agentflow.providers.rate_limit import ProviderRateLimiter

logger = logging.getLogger(__name__)


class ProviderManager:
    """Dispatch content requests to the first provider that can serve them.

    The provider list is fixed at construction: disabled entries are dropped and
    the rest are ordered by ascending priority. Live mode requires at least one
    provider with a credential that is not flagged mock.
    """

    def __init__(
        self,
        providers: Iterable[ProviderConfig],
        *,
        rate_limiter: ProviderRateLimiter | None = None,
        client: ProviderClient | None = None,
    ) -> None:
        self.providers: tuple[ProviderConfig, ...] = tuple(
            sorted(
                (provider for provider in providers if provider.enabled),
                key=lambda provider: provider.priority,
            ),
        )
        self.rate_limiter = rate_limiter or ProviderRateLimiter()
        self._client = client
        self.mode = (
            InvocationMode.REAL
            if any(provider.has_credential and not provider.mock for provider in self.providers)
            else InvocationMode.MOCK
        )

    @property
    def client(self) -> ProviderClient:
        if self._client is None:
            self._client = HttpProviderClient()
        return self._client

    async def invoke(
        self,
        request: ProviderRequest,
        *,
        mode: InvocationMode | None = None,
    ) -> ProviderResponse:
        """Return the first successful provider response.

        ``mode`` overrides the pool mode for one call; forcing ``real`` on a pool
        without credentials fails every provider.
        """

        if not self.providers:
            raise ProviderExhaustedError("No providers available")

        effective_mode = mode or self.mode
        attempted: list[str] = []
        last_index = len(self.providers) - 1
        for index, provider in enumerate(self.providers):
            attempted.append(provider.id)
            await self.rate_limiter.acquire(provider.id)
            try:
                if effective_mode is InvocationMode.MOCK or provider.mock:
                    return mock_response(provider, request)
                if not provider.has_credential:
                    raise ProviderError(provider.id, f"Provider {provider.name} missing API key")
                response = await self.client.generate(provider, request)
            except Exception as error:
                if index == last_index:
                    logger.error(
                        "All providers failed for %s request (tried %s): %s",
                        request.type.value,
                        ", ".join(attempted),
                        error,
                    )
                    raise ProviderExhaustedError(
                        f"All providers failed for {request.type.value} request: {error}",
                        attempted=attempted,
                    ) from error
                logger.warning("Provider %s failed, trying next: %s", provider.id, error)
                continue
            response.metadata = {**response.metadata, "provider": provider.id, "mode": "real"}
            return response

        raise ProviderExhaustedError("No providers available", attempted=attempted)

    async def aclose(self) -> None:
        client = self._client
        if isinstance(client, HttpProviderClient):
            await client.aclose()


def mock_response(provider: ProviderConfig, request: ProviderRequest) -> ProviderResponse:
    """Deterministic synthetic response embedding provider id and request parameters."""

    prompt = request.prompt if request.prompt is not None else "N/A"
    if request.type is ContentType.TEXT:
        return ProviderResponse(
            content=f"Mock {provider.name} response for {request.model}: {prompt}",
            metadata={"provider": provider.id, "mode": "mock", "model": request.model},
        )

    digest = _request_digest(provider, request)
    if request.type is ContentType.IMAGE:
        return ProviderResponse(
            url=f"/mock/{provider.id}/{digest}.png",
            metadata={
                "provider": provider.id,
                "mode": "mock",
                "model": request.model,
                "description": request.prompt,
            },
        )
    return ProviderResponse(
        url=f"/mock/{provider.id}/{digest}.mp4",
        metadata={
            "provider": provider.id,
            "mode": "mock",
            "model": request.model,
            "frames": request.payload.get("frames", 0),
        },
    )


def _request_digest(provider: ProviderConfig, request: ProviderRequest) -> str:
    material: dict[str, Any] = {
        "provider": provider.id,
        "type": request.type.value,
        "model": request.model,
        "prompt": request.prompt,
        "payload": request.payload,
    }
    encoded = json.dumps(material, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()[:16]

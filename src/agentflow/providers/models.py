"""Provider descriptors and request/response shapes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ContentType(str, Enum):
    """Generated content kinds."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"


class InvocationMode(str, Enum):
    """Global provider mode: live calls or deterministic synthetic responses."""

    REAL = "real"
    MOCK = "mock"


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """One configured content-generation backend."""

    id: str
    name: str
    priority: int
    api_key: str | None = None
    mock: bool = False
    enabled: bool = True
    models: tuple[str, ...] = ()
    base_url: str | None = None

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)


@dataclass(slots=True)
class ProviderRequest:
    """Content request routed through the provider pool."""

    type: ContentType
    model: str
    prompt: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    options: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ProviderResponse:
    """Provider result: ``content`` for text, ``url`` locator for image/video."""

    content: str | None = None
    url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def provider_id(self) -> str | None:
        value = self.metadata.get("provider")
        return value if isinstance(value, str) else None

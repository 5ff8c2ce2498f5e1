"""Runtime configuration for the orchestrator and provider pool."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from agentflow.errors import ConfigurationError
from agentflow.providers.models import InvocationMode, ProviderConfig

SUPPORTED_LOCALES = ("en", "ru")
DEFAULT_ESCALATION_AGENT = "human-gate-agent"
DEFAULT_PROVIDERS: tuple[ProviderConfig, ...] = (
    ProviderConfig(id="local-mock", name="Local Mock", priority=100, mock=True),
)


@dataclass(slots=True)
class ExecutorSettings:
    """Graph walk, retry and escalation settings."""

    max_attempts: int = 3
    escalation_agent: str = DEFAULT_ESCALATION_AGENT
    node_timeout_seconds: float | None = None
    locale: str = "en"
    mode: InvocationMode | None = None


@dataclass(slots=True)
class ProviderSettings:
    """Provider pool, rate limit and live-call settings."""

    providers_file: Path | None = None
    rate_limit_per_minute: int = 60
    rate_limit_pause_seconds: float = 0.1
    rate_limit_blocking: bool = False
    request_timeout_seconds: float = 60.0


@dataclass(slots=True)
class StorageSettings:
    """Artifact and publish directories."""

    artifacts_dir: Path = Path(".agentflow/artifacts")
    publish_dir: Path = Path(".agentflow/published")


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    db_path: Path = Path(".agentflow.db")
    executor: ExecutorSettings = field(default_factory=ExecutorSettings)
    providers: ProviderSettings = field(default_factory=ProviderSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with sane defaults for local development."""

        providers_file = os.getenv("AGENTFLOW_PROVIDERS_FILE", "").strip()
        node_timeout = os.getenv("AGENTFLOW_NODE_TIMEOUT_SECONDS", "").strip()
        mode = os.getenv("AGENTFLOW_MODE", "").strip().lower()
        settings = cls(
            db_path=db_path or Path(os.getenv("AGENTFLOW_DB_PATH", ".agentflow.db")),
            executor=ExecutorSettings(
                max_attempts=_env_int("AGENTFLOW_MAX_ATTEMPTS", 3),
                escalation_agent=os.getenv(
                    "AGENTFLOW_ESCALATION_AGENT",
                    DEFAULT_ESCALATION_AGENT,
                ).strip(),
                node_timeout_seconds=_parse_float("AGENTFLOW_NODE_TIMEOUT_SECONDS", node_timeout)
                if node_timeout
                else None,
                locale=os.getenv("AGENTFLOW_LOCALE", "en").strip().lower(),
                mode=_parse_mode(mode) if mode else None,
            ),
            providers=ProviderSettings(
                providers_file=Path(providers_file) if providers_file else None,
                rate_limit_per_minute=_env_int("AGENTFLOW_RATE_LIMIT_PER_MINUTE", 60),
                rate_limit_pause_seconds=_env_float("AGENTFLOW_RATE_LIMIT_PAUSE_SECONDS", 0.1),
                rate_limit_blocking=_env_bool("AGENTFLOW_RATE_LIMIT_BLOCKING", default=False),
                request_timeout_seconds=_env_float("AGENTFLOW_PROVIDER_TIMEOUT_SECONDS", 60.0),
            ),
            storage=StorageSettings(
                artifacts_dir=Path(
                    os.getenv("AGENTFLOW_ARTIFACTS_DIR", ".agentflow/artifacts"),
                ),
                publish_dir=Path(os.getenv("AGENTFLOW_PUBLISH_DIR", ".agentflow/published")),
            ),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        """Raise configuration error for out-of-range values."""

        if self.executor.max_attempts <= 0:
            raise ConfigurationError("AGENTFLOW_MAX_ATTEMPTS must be > 0.")
        if not self.executor.escalation_agent:
            raise ConfigurationError("AGENTFLOW_ESCALATION_AGENT must not be empty.")
        if self.executor.node_timeout_seconds is not None and self.executor.node_timeout_seconds <= 0:
            raise ConfigurationError("AGENTFLOW_NODE_TIMEOUT_SECONDS must be > 0.")
        if self.executor.locale not in SUPPORTED_LOCALES:
            raise ConfigurationError(
                f"Unsupported AGENTFLOW_LOCALE: {self.executor.locale!r}. "
                f"Use one of {SUPPORTED_LOCALES}.",
            )
        if self.providers.rate_limit_per_minute <= 0:
            raise ConfigurationError("AGENTFLOW_RATE_LIMIT_PER_MINUTE must be > 0.")
        if self.providers.rate_limit_pause_seconds < 0:
            raise ConfigurationError("AGENTFLOW_RATE_LIMIT_PAUSE_SECONDS must be >= 0.")
        if self.providers.request_timeout_seconds <= 0:
            raise ConfigurationError("AGENTFLOW_PROVIDER_TIMEOUT_SECONDS must be > 0.")

    def load_providers(self) -> tuple[ProviderConfig, ...]:
        """Provider descriptors from the configured file or the built-in mock provider."""

        if self.providers.providers_file is None:
            return DEFAULT_PROVIDERS
        return load_provider_configs(self.providers.providers_file)


def load_provider_configs(path: Path) -> tuple[ProviderConfig, ...]:
    """Parse a JSON provider-descriptor list, keeping file order."""

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as error:
        raise ConfigurationError(f"Provider config file not found: {path}") from error
    except json.JSONDecodeError as error:
        raise ConfigurationError(f"Provider config file is not valid JSON: {path}: {error}") from error
    return parse_provider_configs(raw)


PROVIDER_FIELDS = frozenset(
    {
        "id",
        "name",
        "priority",
        "apiKey",
        "api_key",
        "apiKeyEnv",
        "api_key_env",
        "mock",
        "enabled",
        "models",
        "baseUrl",
        "base_url",
    },
)


def parse_provider_configs(raw: Any) -> tuple[ProviderConfig, ...]:
    """Validate decoded provider descriptors."""

    if not isinstance(raw, list):
        raise ConfigurationError("Provider config must be a JSON list of provider objects.")

    providers: list[ProviderConfig] = []
    seen: set[str] = set()
    for index, entry in enumerate(raw):
        provider = _parse_provider(entry, index=index)
        if provider.id in seen:
            raise ConfigurationError(f"Duplicate provider id: {provider.id!r}")
        seen.add(provider.id)
        providers.append(provider)
    return tuple(providers)


def _parse_provider(entry: Any, *, index: int) -> ProviderConfig:  # noqa: PLR0912
    if not isinstance(entry, dict):
        raise ConfigurationError(f"Provider #{index} must be an object, got {type(entry).__name__}")

    provider_id = entry.get("id")
    if not isinstance(provider_id, str) or not provider_id.strip():
        raise ConfigurationError(f"Provider #{index} is missing a non-empty 'id'.")
    provider_id = provider_id.strip()

    unknown = sorted(set(entry) - PROVIDER_FIELDS)
    if unknown:
        raise ConfigurationError(f"Provider {provider_id!r} has unknown fields: {', '.join(unknown)}")

    name = entry.get("name", provider_id)
    if not isinstance(name, str) or not name.strip():
        raise ConfigurationError(f"Provider {provider_id!r} has an invalid 'name'.")

    priority = entry.get("priority")
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise ConfigurationError(f"Provider {provider_id!r} must declare an integer 'priority'.")

    for flag in ("mock", "enabled"):
        if flag in entry and not isinstance(entry[flag], bool):
            raise ConfigurationError(f"Provider {provider_id!r} field {flag!r} must be a boolean.")

    api_key = entry.get("apiKey", entry.get("api_key"))
    api_key_env = entry.get("apiKeyEnv", entry.get("api_key_env"))
    if api_key_env is not None:
        if not isinstance(api_key_env, str) or not api_key_env.strip():
            raise ConfigurationError(f"Provider {provider_id!r} has an invalid 'apiKeyEnv'.")
        api_key = os.getenv(api_key_env.strip()) or api_key
    if api_key is not None and not isinstance(api_key, str):
        raise ConfigurationError(f"Provider {provider_id!r} field 'apiKey' must be a string.")

    models = entry.get("models", [])
    if not isinstance(models, list) or not all(isinstance(model, str) for model in models):
        raise ConfigurationError(f"Provider {provider_id!r} field 'models' must be a string list.")

    base_url = entry.get("baseUrl", entry.get("base_url"))
    if base_url is not None:
        if not isinstance(base_url, str):
            raise ConfigurationError(f"Provider {provider_id!r} field 'baseUrl' must be a string.")
        _validate_base_url(provider_id, base_url)

    return ProviderConfig(
        id=provider_id,
        name=name.strip(),
        priority=priority,
        api_key=(api_key.strip() or None) if api_key else None,
        mock=entry.get("mock", False),
        enabled=entry.get("enabled", True),
        models=tuple(models),
        base_url=base_url.strip() if base_url else None,
    )


def _validate_base_url(provider_id: str, value: str) -> None:
    parsed = urlparse(value.strip())
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ConfigurationError(
            f"Invalid base URL for provider {provider_id!r}: "
            f"{value!r}. Expected an absolute URL with http:// or https:// scheme.",
        )


def _parse_mode(value: str) -> InvocationMode:
    try:
        return InvocationMode(value)
    except ValueError as error:
        raise ConfigurationError(f"Invalid AGENTFLOW_MODE: {value!r}. Use real or mock.") from error


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as error:
        raise ConfigurationError(f"Invalid integer value for {name}: {value!r}") from error


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return _parse_float(name, value)


def _parse_float(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as error:
        raise ConfigurationError(f"Invalid numeric value for {name}: {value!r}") from error


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigurationError(f"Invalid boolean value for {name}: {value!r}")

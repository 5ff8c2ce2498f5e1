"""Use-case services wiring repository, providers, agents and executor."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from agentflow.agents.catalog import build_default_registry
from agentflow.config import Settings
from agentflow.orchestrator.artifacts import ArtifactStorage
from agentflow.orchestrator.executor import TaskExecutor
from agentflow.orchestrator.models import (
    ContentType,
    InvocationMode,
    TaskExecutionSummary,
    TaskView,
)
from agentflow.orchestrator.planner import PlanGenerator
from agentflow.orchestrator.registry import AgentRegistry
from agentflow.orchestrator.repository import OrchestratorRepository
from agentflow.providers.client import HttpProviderClient, ProviderClient
from agentflow.providers.manager import ProviderManager
from agentflow.providers.rate_limit import ProviderRateLimiter


@dataclass(slots=True)
class CreateTask:
    """High-level command to plan and persist a task."""

    topic: str
    content_types: tuple[ContentType, ...]
    tone: str | None = None


class OrchestratorService:
    """Create tasks from briefs and drain their graphs."""

    def __init__(
        self,
        *,
        repository: OrchestratorRepository,
        providers: ProviderManager,
        registry: AgentRegistry,
        executor: TaskExecutor,
    ) -> None:
        self.repository = repository
        self.providers = providers
        self.registry = registry
        self.executor = executor
        self.planner = PlanGenerator(providers)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        repository: OrchestratorRepository,
        client: ProviderClient | None = None,
    ) -> OrchestratorService:
        """Build the service graph once; provider config is read here and never reloaded."""

        providers = ProviderManager(
            settings.load_providers(),
            rate_limiter=ProviderRateLimiter(
                calls_per_window=settings.providers.rate_limit_per_minute,
                pause_seconds=settings.providers.rate_limit_pause_seconds,
                blocking=settings.providers.rate_limit_blocking,
            ),
            client=client
            or HttpProviderClient(timeout_seconds=settings.providers.request_timeout_seconds),
        )
        registry = build_default_registry(
            repository=repository,
            publish_dir=settings.storage.publish_dir,
            escalation_agent=settings.executor.escalation_agent,
        )
        executor = TaskExecutor(
            repository=repository,
            registry=registry,
            providers=providers,
            storage=ArtifactStorage(repository, settings.storage.artifacts_dir),
            max_attempts=settings.executor.max_attempts,
            escalation_agent=settings.executor.escalation_agent,
            node_timeout_seconds=settings.executor.node_timeout_seconds,
            locale=settings.executor.locale,
            mode=settings.executor.mode,
        )
        return cls(repository=repository, providers=providers, registry=registry, executor=executor)

    async def create_task(self, command: CreateTask) -> TaskView:
        plan = await self.planner.generate_plan(
            command.topic,
            command.content_types,
            tone=command.tone,
        )
        return self.repository.create_task(plan)

    async def run_task(
        self,
        task_id: str,
        *,
        mode: InvocationMode | None = None,
        locale: str | None = None,
    ) -> TaskExecutionSummary:
        return await self.executor.execute_task(task_id, mode=mode, locale=locale)

    async def aclose(self) -> None:
        await self.providers.aclose()


def parse_content_types(values: Sequence[str]) -> tuple[ContentType, ...]:
    """Parse CLI/user content type names, keeping first-seen order."""

    parsed: list[ContentType] = []
    for value in values:
        for part in value.split(","):
            token = part.strip().lower()
            if not token:
                continue
            try:
                content_type = ContentType(token)
            except ValueError as error:
                raise ValueError(
                    f"Unsupported content type: {token!r}. Use text, image, or video.",
                ) from error
            if content_type not in parsed:
                parsed.append(content_type)
    return tuple(parsed)

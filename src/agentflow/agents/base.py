"""Agent capability contract and execution context."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from agentflow.orchestrator.models import InvocationMode, RunView, TaskView

if TYPE_CHECKING:
    from agentflow.orchestrator.artifacts import ArtifactStorage
    from agentflow.orchestrator.run_logger import RunLogger
    from agentflow.providers.manager import ProviderManager


@dataclass(slots=True)
class AgentContext:
    """Collaborators handed to every agent call."""

    task: TaskView
    run: RunView
    providers: ProviderManager
    storage: ArtifactStorage
    logger: RunLogger
    mode: InvocationMode
    locale: str = "en"


@dataclass(frozen=True, slots=True)
class AgentManifest:
    """Descriptive metadata for a registered capability."""

    name: str
    kind: str
    description: str = ""
    version: str = "1.0.0"


class Agent(Protocol):
    """Uniform capability: produce an output mapping from payload and context or raise."""

    async def execute(
        self,
        payload: dict[str, Any],
        context: AgentContext,
    ) -> dict[str, Any] | None:
        """Run one attempt."""


def dependency_outputs(payload: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    """Dependency outputs from the payload in plan order."""

    dependencies = payload.get("dependencies")
    if not isinstance(dependencies, Mapping):
        return []
    return [value for value in dependencies.values() if isinstance(value, Mapping)]


def first_dependency_text(payload: Mapping[str, Any]) -> str | None:
    for output in dependency_outputs(payload):
        text = output.get("text")
        if isinstance(text, str):
            return text
    return None

"""Capability registry mapping agent names to implementations."""

from __future__ import annotations

import inspect
from dataclasses import dataclass

from agentflow.agents.base import Agent, AgentManifest
from agentflow.errors import AgentNotFoundError, MalformedAgentError


@dataclass(slots=True)
class _Entry:
    agent: object
    manifest: AgentManifest


class AgentRegistry:
    """Name-keyed agents with manifests; lookups fail with execution errors."""

    def __init__(self) -> None:
        self._entries: dict[str, _Entry] = {}

    def register(
        self,
        name: str,
        agent: object,
        *,
        kind: str | None = None,
        description: str = "",
        version: str = "1.0.0",
    ) -> None:
        if not name:
            raise ValueError("Agent name must be non-empty")
        self._entries[name] = _Entry(
            agent=agent,
            manifest=AgentManifest(
                name=name,
                kind=kind or name.removesuffix("-agent"),
                description=description,
                version=version,
            ),
        )

    def get_manifest(self, name: str) -> AgentManifest | None:
        entry = self._entries.get(name)
        return entry.manifest if entry is not None else None

    def list_manifests(self) -> list[AgentManifest]:
        return [entry.manifest for entry in self._entries.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def load(self, name: str) -> Agent:
        """Return the agent registered under ``name``."""

        entry = self._entries.get(name)
        if entry is None:
            raise AgentNotFoundError(name)
        execute = getattr(entry.agent, "execute", None)
        if execute is None or not inspect.iscoroutinefunction(execute):
            raise MalformedAgentError(name)
        return entry.agent  # type: ignore[return-value]

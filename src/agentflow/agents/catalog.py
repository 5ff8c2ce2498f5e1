"""Built-in agent catalog."""

from __future__ import annotations

from pathlib import Path

from agentflow.agents.diagnostic import DiagnosticAgent
from agentflow.agents.guard import GuardAgent
from agentflow.agents.human_gate import HUMAN_GATE_AGENT, HumanGateAgent
from agentflow.agents.image import ImageAgent
from agentflow.agents.uploader import UploaderAgent
from agentflow.agents.video import VideoAgent
from agentflow.agents.writer import WriterAgent
from agentflow.orchestrator.registry import AgentRegistry
from agentflow.orchestrator.repository import OrchestratorRepository


def build_default_registry(
    *,
    repository: OrchestratorRepository,
    publish_dir: Path,
    escalation_agent: str = HUMAN_GATE_AGENT,
) -> AgentRegistry:
    """Register every built-in capability under its plan-facing name."""

    registry = AgentRegistry()
    registry.register(
        "writer-agent",
        WriterAgent(),
        kind="writer",
        description="Generates marketing copy through the provider pool.",
    )
    registry.register(
        "image-agent",
        ImageAgent(),
        kind="image",
        description="Generates an image for the topic and stores it as an artifact.",
    )
    registry.register(
        "video-agent",
        VideoAgent(),
        kind="video",
        description="Builds a video storyboard from upstream text and images.",
    )
    registry.register(
        "guard-agent",
        GuardAgent(),
        kind="guard",
        description="Checks upstream text against forbidden and required patterns.",
    )
    registry.register(
        "uploader-agent",
        UploaderAgent(publish_dir),
        kind="uploader",
        description="Publishes upstream image and video artifacts.",
    )
    registry.register(
        escalation_agent,
        HumanGateAgent(),
        kind="human_gate",
        description="Approves a node after automated retries are exhausted.",
    )
    registry.register(
        "diagnostic-agent",
        DiagnosticAgent(repository),
        kind="diagnostic",
        description="Summarizes runs and logs of a task into a report.",
    )
    return registry

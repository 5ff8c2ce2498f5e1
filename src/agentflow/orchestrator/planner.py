"""Plan suppliers: static template builder and provider-backed generative planner."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from uuid import uuid4

from agentflow.errors import ConfigurationError
from agentflow.orchestrator.models import ContentType, InvocationMode, Plan, PlanNode
from agentflow.orchestrator.plan import plan_from_dict
from agentflow.providers.manager import ProviderManager
from agentflow.providers.models import ProviderRequest

logger = logging.getLogger(__name__)

PLANNER_MODEL = "gpt-4o-mini"


def build_default_plan(
    topic: str,
    content_types: Sequence[ContentType],
    *,
    tone: str | None = None,
) -> Plan:
    """Template graph: writer -> guard, image, video, then an uploader over everything."""

    requested = tuple(dict.fromkeys(content_types))
    if not requested:
        raise ConfigurationError("At least one content type is required to build a plan.")

    nodes: list[PlanNode] = []
    writer_id: str | None = None
    if ContentType.TEXT in requested:
        writer_id = _node_id("writer")
        nodes.append(
            PlanNode(
                id=writer_id,
                agent="writer-agent",
                kind="writer",
                input={"topic": topic, "tone": tone or "neutral", "format": "article"},
            ),
        )
        nodes.append(
            PlanNode(
                id=_node_id("guard"),
                agent="guard-agent",
                kind="guard",
                input={"field": "text"},
                depends_on=(writer_id,),
            ),
        )

    image_id: str | None = None
    if ContentType.IMAGE in requested:
        image_id = _node_id("image")
        nodes.append(
            PlanNode(
                id=image_id,
                agent="image-agent",
                kind="image",
                input={"description": f"Visualize: {topic}"},
                depends_on=(writer_id,) if writer_id else (),
            ),
        )

    if ContentType.VIDEO in requested:
        nodes.append(
            PlanNode(
                id=_node_id("video"),
                agent="video-agent",
                kind="video",
                input={"scriptDependsOn": writer_id, "imageDependsOn": image_id},
                depends_on=tuple(node_id for node_id in (writer_id, image_id) if node_id),
            ),
        )

    nodes.append(
        PlanNode(
            id=_node_id("uploader"),
            agent="uploader-agent",
            kind="uploader",
            depends_on=tuple(node.id for node in nodes),
        ),
    )
    return Plan(nodes=tuple(nodes), description=f"Plan for {topic}", content_types=requested)


class PlanGenerator:
    """Ask the provider pool for a JSON plan; fall back to the template on any failure."""

    def __init__(self, providers: ProviderManager, *, model: str = PLANNER_MODEL) -> None:
        self.providers = providers
        self.model = model

    async def generate_plan(
        self,
        topic: str,
        content_types: Sequence[ContentType],
        *,
        tone: str | None = None,
    ) -> Plan:
        if self.providers.mode is InvocationMode.REAL:
            try:
                return await self._generate(topic, content_types)
            except Exception as error:  # noqa: BLE001
                logger.warning("LLM plan generation failed, falling back to template: %s", error)
        return build_default_plan(topic, content_types, tone=tone)

    async def _generate(self, topic: str, content_types: Sequence[ContentType]) -> Plan:
        requested = ", ".join(content_type.value for content_type in content_types)
        response = await self.providers.invoke(
            ProviderRequest(
                type=ContentType.TEXT,
                model=self.model,
                prompt=(
                    "System: design a DAG plan for marketing content. Respond JSON.\n"
                    f"User: {topic} | content: {requested}"
                ),
            ),
        )
        if not response.content:
            raise ValueError("empty planner response")
        raw = json.loads(response.content)
        if not isinstance(raw, dict):
            raise ValueError("planner response is not a JSON object")
        raw.setdefault("contentTypes", [content_type.value for content_type in content_types])
        raw.setdefault("description", f"Plan for {topic}")
        return plan_from_dict(raw)


def _node_id(prefix: str) -> str:
    return f"{prefix}-{uuid4()}"

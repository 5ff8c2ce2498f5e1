"""Text generation agent."""

from __future__ import annotations

from typing import Any

from agentflow.agents.base import AgentContext
from agentflow.orchestrator.models import ContentType, InvocationMode
from agentflow.providers.models import ProviderRequest

WRITER_MODEL = "gpt-4o-mini"


class WriterAgent:
    """Ask the provider pool for marketing copy on a topic."""

    def __init__(self, *, model: str = WRITER_MODEL) -> None:
        self.model = model

    async def execute(self, payload: dict[str, Any], context: AgentContext) -> dict[str, Any]:
        topic = str(payload.get("topic", ""))
        tone = str(payload.get("tone", "neutral"))
        text_format = str(payload.get("format", "article"))

        context.logger.info("Generating text", {"topic": topic, "tone": tone, "format": text_format})
        response = await context.providers.invoke(
            ProviderRequest(
                type=ContentType.TEXT,
                model=self.model,
                prompt=f"Create a {text_format} about {topic} in a {tone} tone.",
                options={"locale": context.locale},
            ),
            mode=context.mode,
        )

        text = response.content
        if text is None:
            text = f"Mock content for {topic}" if context.mode is InvocationMode.MOCK else ""
        context.logger.info("Text generation complete", {"chars": len(text)})
        return {"text": text, "meta": response.metadata}

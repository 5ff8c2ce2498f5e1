"""Image generation agent."""

from __future__ import annotations

from typing import Any

from agentflow.agents.base import AgentContext, first_dependency_text
from agentflow.orchestrator.models import ContentType
from agentflow.providers.models import ProviderRequest

IMAGE_MODEL = "stable-diffusion-xl"


class ImageAgent:
    """Generate an image from a description plus upstream text and store it."""

    def __init__(self, *, model: str = IMAGE_MODEL, size: str = "1024x1024") -> None:
        self.model = model
        self.size = size

    async def execute(self, payload: dict[str, Any], context: AgentContext) -> dict[str, Any]:
        description = str(payload.get("description") or "Marketing visual")
        dependency_text = first_dependency_text(payload)
        prompt = f"{description}. Base on: {dependency_text}" if dependency_text else description

        context.logger.info("Generating image", {"description": prompt})
        response = await context.providers.invoke(
            ProviderRequest(
                type=ContentType.IMAGE,
                model=self.model,
                prompt=prompt,
                payload={"size": self.size},
            ),
            mode=context.mode,
        )

        # The provider returns a locator only; store a placeholder keyed to it.
        placeholder = f"Image placeholder for {prompt}\nsource: {response.url}\n"
        artifact = await context.storage.save_artifact(
            context.run.run_id,
            ContentType.IMAGE,
            placeholder,
            "png",
            {**response.metadata, "source_url": response.url},
        )
        context.logger.info("Image generated", {"path": artifact.path})
        return {"imagePath": artifact.path, "metadata": artifact.metadata}

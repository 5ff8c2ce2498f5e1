"""Video storyboard agent."""

from __future__ import annotations

import json
from typing import Any

from agentflow.agents.base import AgentContext, dependency_outputs, first_dependency_text
from agentflow.orchestrator.models import ContentType


class VideoAgent:
    """Compose a storyboard from upstream script and images and store it as a video artifact."""

    async def execute(self, payload: dict[str, Any], context: AgentContext) -> dict[str, Any]:
        script = first_dependency_text(payload)
        images = [
            output["imagePath"]
            for output in dependency_outputs(payload)
            if isinstance(output.get("imagePath"), str)
        ]
        storyboard = {
            "script": script or "No script provided",
            "images": images,
            "soundtrack": payload.get("soundtrack", "uplifting"),
        }

        artifact = await context.storage.save_artifact(
            context.run.run_id,
            ContentType.VIDEO,
            json.dumps(storyboard, ensure_ascii=False, indent=2),
            "mp4",
            {"simulated": True, "frames": len(images)},
        )
        context.logger.info("Video artifact created", {"path": artifact.path})
        return {"videoPath": artifact.path, "storyboard": storyboard}

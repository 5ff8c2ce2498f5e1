"""Publishing agent that collects upstream media artifacts."""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path
from typing import Any

from agentflow.agents.base import AgentContext, dependency_outputs


class UploaderAgent:
    """Copy image and video artifacts produced upstream into ``publish_dir``."""

    def __init__(self, publish_dir: Path) -> None:
        self.publish_dir = publish_dir

    async def execute(self, payload: dict[str, Any], context: AgentContext) -> dict[str, Any]:
        self.publish_dir.mkdir(parents=True, exist_ok=True)
        published: list[str] = []
        for output in dependency_outputs(payload):
            artifact_path = output.get("imagePath") or output.get("videoPath")
            if not isinstance(artifact_path, str):
                continue
            source = Path(artifact_path)
            if not source.is_file():
                context.logger.warn("Artifact missing on disk", {"path": artifact_path})
                continue
            destination = self.publish_dir / source.name
            await asyncio.to_thread(shutil.copyfile, source, destination)
            published.append(str(destination))

        context.logger.info("Uploader collected artifacts", {"count": len(published)})
        return {"published": published}

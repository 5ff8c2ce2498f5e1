"""On-disk artifact storage with durable artifact records."""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Any
from uuid import uuid4

from agentflow.orchestrator.models import ArtifactView, ContentType
from agentflow.orchestrator.repository import OrchestratorRepository

_UNSAFE_EXTENSION_CHARS = re.compile(r"[^a-zA-Z0-9.]")


class ArtifactStorage:
    """Write generated content under ``root`` and register it against its run."""

    def __init__(self, repository: OrchestratorRepository, root: Path) -> None:
        self.repository = repository
        self.root = root

    async def save_artifact(
        self,
        run_id: str,
        content_type: ContentType,
        content: bytes | str,
        extension: str,
        metadata: dict[str, Any] | None = None,
    ) -> ArtifactView:
        safe_extension = _UNSAFE_EXTENSION_CHARS.sub("", extension).strip(".") or "dat"
        self.root.mkdir(parents=True, exist_ok=True)
        file_path = (self.root / f"{run_id}-{uuid4()}.{safe_extension}").resolve()
        data = content.encode("utf-8") if isinstance(content, str) else content
        await asyncio.to_thread(file_path.write_bytes, data)
        return self.repository.add_artifact(
            run_id=run_id,
            content_type=content_type,
            path=str(file_path),
            size_bytes=len(data),
            metadata=metadata,
        )

"""Structured per-run logger persisted alongside run records."""

from __future__ import annotations

import json
import logging
from typing import Any

from agentflow.orchestrator.models import LogLevel
from agentflow.orchestrator.repository import OrchestratorRepository

logger = logging.getLogger(__name__)

_PYTHON_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class RunLogger:
    """Write ``info``/``warn``/``error`` entries for one run and mirror them to logging."""

    def __init__(self, repository: OrchestratorRepository, run_id: str) -> None:
        self.repository = repository
        self.run_id = run_id

    def info(self, message: str, meta: dict[str, Any] | None = None) -> None:
        self._write(LogLevel.INFO, message, meta)

    def warn(self, message: str, meta: dict[str, Any] | None = None) -> None:
        self._write(LogLevel.WARN, message, meta)

    def error(self, message: str, meta: dict[str, Any] | None = None) -> None:
        self._write(LogLevel.ERROR, message, meta)

    def _write(self, level: LogLevel, message: str, meta: dict[str, Any] | None) -> None:
        self.repository.add_log(run_id=self.run_id, level=level, message=message, details=meta)
        if meta:
            logger.log(
                _PYTHON_LEVELS[level],
                "[run %s] %s | %s",
                self.run_id,
                message,
                json.dumps(meta, ensure_ascii=False, sort_keys=True, default=str),
            )
        else:
            logger.log(_PYTHON_LEVELS[level], "[run %s] %s", self.run_id, message)

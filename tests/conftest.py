"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from agentflow.orchestrator.repository import OrchestratorRepository

_AGENTFLOW_ENV = (
    "AGENTFLOW_DB_PATH",
    "AGENTFLOW_ARTIFACTS_DIR",
    "AGENTFLOW_PUBLISH_DIR",
    "AGENTFLOW_PROVIDERS_FILE",
    "AGENTFLOW_RATE_LIMIT_PER_MINUTE",
    "AGENTFLOW_RATE_LIMIT_PAUSE_SECONDS",
    "AGENTFLOW_RATE_LIMIT_BLOCKING",
    "AGENTFLOW_PROVIDER_TIMEOUT_SECONDS",
    "AGENTFLOW_MAX_ATTEMPTS",
    "AGENTFLOW_ESCALATION_AGENT",
    "AGENTFLOW_LOCALE",
    "AGENTFLOW_MODE",
    "AGENTFLOW_NODE_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def _clean_agentflow_env(monkeypatch):
    """Keep developer shell settings out of tests."""
    for name in _AGENTFLOW_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def repository(tmp_path: Path):
    repo = OrchestratorRepository(tmp_path / "agentflow.db")
    repo.init_schema()
    yield repo
    repo.close()

"""Diagnostic agent summarizing a task's runs and logs into a report artifact."""

from __future__ import annotations

from typing import Any

from agentflow.agents.base import AgentContext
from agentflow.orchestrator.models import ContentType, RunStatus
from agentflow.orchestrator.repository import OrchestratorRepository

RECENT_LOG_LIMIT = 10


class DiagnosticAgent:
    """Write a markdown report of run statuses, retries and recent logs for a task."""

    def __init__(self, repository: OrchestratorRepository) -> None:
        self.repository = repository

    async def execute(self, payload: dict[str, Any], context: AgentContext) -> dict[str, Any]:
        task_id = str(payload.get("taskId") or context.task.task_id)
        runs = [run for run in self.repository.list_runs(task_id=task_id) if run.run_id != context.run.run_id]
        logs = self.repository.list_task_logs(task_id=task_id)

        failing = [run for run in runs if run.status is RunStatus.FAILED]
        retries = sum(max(0, run.attempts - 1) for run in runs)
        lines = [
            "# Verification Report",
            "",
            f"## Task {task_id} diagnostics",
            f"- Total nodes: {len(runs)}",
            f"- Failures: {len(failing)}",
            f"- Retries: {retries}",
            "",
            "### Runs",
        ]
        lines.extend(
            f"- {run.node_id} ({run.agent_name}): {run.status.value}, attempts={run.attempts}"
            + (f", error={run.error}" if run.error else "")
            for run in runs
        )
        lines.extend(["", "### Recent logs"])
        lines.extend(f"- [{entry.level.value}] {entry.message}" for entry in logs[-RECENT_LOG_LIMIT:])

        artifact = await context.storage.save_artifact(
            context.run.run_id,
            ContentType.TEXT,
            "\n".join(lines) + "\n",
            "md",
            {"report": "diagnostics", "task_id": task_id},
        )
        context.logger.info("Diagnostic report written", {"path": artifact.path})
        return {"reportPath": artifact.path, "failures": len(failing), "retries": retries}

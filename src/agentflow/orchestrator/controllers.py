"""Controllers for orchestrator CLI commands."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from agentflow.agents.catalog import build_default_registry
from agentflow.config import Settings
from agentflow.errors import GraphStagnationError
from agentflow.orchestrator.models import InvocationMode, TaskStatus
from agentflow.orchestrator.repository import OrchestratorRepository
from agentflow.orchestrator.services import CreateTask, OrchestratorService, parse_content_types


@dataclass(slots=True)
class TaskCreateCommand:
    """CLI input for task creation."""

    db_path: Path | None
    topic: str
    content_types: tuple[str, ...]
    tone: str | None = None


@dataclass(slots=True)
class TaskRunCommand:
    """CLI input for task execution."""

    db_path: Path | None
    task_id: str
    mode: str | None = None
    locale: str | None = None


@dataclass(slots=True)
class TaskInspectCommand:
    """CLI input for task inspection, logs and artifacts."""

    db_path: Path | None
    task_id: str


@dataclass(slots=True)
class TaskListCommand:
    db_path: Path | None
    status: str | None
    limit: int


@dataclass(slots=True)
class TaskRunResult:
    """Execution report to render in CLI."""

    lines: list[str]
    success: bool


class OrchestratorCliController:
    """Coordinates task creation, execution and inspection CLI operations."""

    def create_task(self, command: TaskCreateCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        content_types = parse_content_types(command.content_types)
        with _service(settings) as service:
            task = asyncio.run(
                _create(
                    service,
                    CreateTask(topic=command.topic, content_types=content_types, tone=command.tone),
                ),
            )

        lines = [
            f"Task created: task_id={task.task_id} status={task.status.value} "
            f"nodes={len(task.plan.nodes)}",
        ]
        lines.extend(
            f"  {node.id} agent={node.agent} depends_on={','.join(node.depends_on) or '-'}"
            for node in task.plan.nodes
        )
        return lines

    def run_task(self, command: TaskRunCommand) -> TaskRunResult:
        settings = Settings.from_env(db_path=command.db_path)
        mode = InvocationMode(command.mode) if command.mode else None
        with _service(settings) as service:
            try:
                summary = asyncio.run(
                    _run(service, command.task_id, mode=mode, locale=command.locale),
                )
            except GraphStagnationError as error:
                return TaskRunResult(
                    lines=[f"Task {command.task_id} failed: {error}"],
                    success=False,
                )
            runs = service.repository.list_runs(task_id=command.task_id)

        lines = [f"Task {summary.task_id} finished: status={summary.status.value}"]
        lines.extend(
            f"  {run.node_id} agent={run.agent_name} status={run.status.value} "
            f"attempts={run.attempts}" + (f" error={run.error}" if run.error else "")
            for run in runs
        )
        if summary.error:
            lines.append(f"Error: {summary.error}")
        return TaskRunResult(lines=lines, success=summary.status is TaskStatus.COMPLETED)

    def inspect_task(self, command: TaskInspectCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            details = repository.get_task_details(task_id=command.task_id)
        if details is None:
            raise ValueError(f"Task not found: {command.task_id}")

        task = details.task
        lines = [
            f"task_id={task.task_id}",
            f"status={task.status.value}",
            f"description={task.plan.description}",
            f"created_at={task.created_at.isoformat()}",
            f"updated_at={task.updated_at.isoformat()}",
            "runs:",
        ]
        for run in details.runs:
            lines.append(
                f"  {run.node_id} run_id={run.run_id} agent={run.agent_name} "
                f"status={run.status.value} attempts={run.attempts}",
            )
            if run.error:
                lines.append(f"    error={run.error}")
        return lines

    def task_logs(self, command: TaskInspectCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            repository.require_task(task_id=command.task_id)
            logs = repository.list_task_logs(task_id=command.task_id)
        if not logs:
            return ["No logs recorded."]
        return [
            f"{entry.created_at.isoformat()} [{entry.level.value}] run={entry.run_id} "
            f"{entry.message}"
            + (f" {json.dumps(entry.details, ensure_ascii=False, sort_keys=True)}" if entry.details else "")
            for entry in logs
        ]

    def task_artifacts(self, command: TaskInspectCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            repository.require_task(task_id=command.task_id)
            artifacts = repository.list_task_artifacts(task_id=command.task_id)
        if not artifacts:
            return ["No artifacts stored."]
        return [
            f"{artifact.artifact_id} type={artifact.content_type.value} "
            f"size={artifact.size_bytes} path={artifact.path}"
            for artifact in artifacts
        ]

    def list_tasks(self, command: TaskListCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        status = TaskStatus(command.status) if command.status else None
        with _repository(settings) as repository:
            tasks = repository.list_tasks(status=status, limit=command.limit)
        if not tasks:
            return ["No tasks found."]
        return [
            f"{task.task_id} status={task.status.value} nodes={len(task.plan.nodes)} "
            f"created_at={task.created_at.isoformat()} {task.plan.description}"
            for task in tasks
        ]

    def list_providers(self) -> list[str]:
        settings = Settings.from_env()
        providers = settings.load_providers()
        lines = []
        for provider in sorted(providers, key=lambda item: item.priority):
            flags = []
            if not provider.enabled:
                flags.append("disabled")
            if provider.mock:
                flags.append("mock")
            if not provider.has_credential:
                flags.append("no-credential")
            lines.append(
                f"{provider.id} name={provider.name} priority={provider.priority}"
                + (f" [{', '.join(flags)}]" if flags else ""),
            )
        live = any(
            provider.enabled and provider.has_credential and not provider.mock
            for provider in providers
        )
        lines.append(f"mode={InvocationMode.REAL.value if live else InvocationMode.MOCK.value}")
        return lines

    def list_agents(self, db_path: Path | None) -> list[str]:
        settings = Settings.from_env(db_path=db_path)
        with _repository(settings) as repository:
            registry = build_default_registry(
                repository=repository,
                publish_dir=settings.storage.publish_dir,
                escalation_agent=settings.executor.escalation_agent,
            )
            manifests = registry.list_manifests()
        return [
            f"{manifest.name} kind={manifest.kind} version={manifest.version} "
            f"{manifest.description}"
            for manifest in manifests
        ]


async def _create(service: OrchestratorService, command: CreateTask):
    try:
        return await service.create_task(command)
    finally:
        await service.aclose()


async def _run(
    service: OrchestratorService,
    task_id: str,
    *,
    mode: InvocationMode | None,
    locale: str | None,
):
    try:
        return await service.run_task(task_id, mode=mode, locale=locale)
    finally:
        await service.aclose()


@contextmanager
def _repository(settings: Settings) -> Iterator[OrchestratorRepository]:
    repository = OrchestratorRepository(settings.db_path)
    repository.init_schema()
    try:
        yield repository
    finally:
        repository.close()


@contextmanager
def _service(settings: Settings) -> Iterator[OrchestratorService]:
    with _repository(settings) as repository:
        yield OrchestratorService.from_settings(settings, repository=repository)

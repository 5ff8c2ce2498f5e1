"""Task graph executor with bounded retries and human-gate escalation."""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from agentflow.agents.base import AgentContext
from agentflow.agents.human_gate import HUMAN_GATE_AGENT
from agentflow.errors import AgentExecutionError, EscalationError, GraphStagnationError
from agentflow.orchestrator.artifacts import ArtifactStorage
from agentflow.orchestrator.models import (
    InvocationMode,
    PlanNode,
    RunStatus,
    RunView,
    TaskExecutionSummary,
    TaskStatus,
    TaskView,
)
from agentflow.orchestrator.plan import node_to_dict
from agentflow.orchestrator.registry import AgentRegistry
from agentflow.orchestrator.repository import OrchestratorRepository
from agentflow.orchestrator.run_logger import RunLogger
from agentflow.providers.manager import ProviderManager

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
ESCALATION_MESSAGE = "Automated retries exhausted"


@dataclass(slots=True)
class NodeOutcome:
    ok: bool
    output: dict[str, Any] | None = None
    error: str | None = None


@dataclass(slots=True)
class _ExecutionScope:
    task: TaskView
    mode: InvocationMode
    locale: str


class TaskExecutor:
    """Walk a task's plan in dependency order until every node completes.

    Each scan pass visits pending nodes in declaration order and runs those
    whose dependencies already have outputs. A pass that runs nothing while
    nodes remain pending means the graph can never resolve.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        repository: OrchestratorRepository,
        registry: AgentRegistry,
        providers: ProviderManager,
        storage: ArtifactStorage,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        escalation_agent: str = HUMAN_GATE_AGENT,
        node_timeout_seconds: float | None = None,
        locale: str = "en",
        mode: InvocationMode | None = None,
    ) -> None:
        if max_attempts <= 0:
            raise ValueError("max_attempts must be > 0")
        self.repository = repository
        self.registry = registry
        self.providers = providers
        self.storage = storage
        self.max_attempts = max_attempts
        self.escalation_agent = escalation_agent
        self.node_timeout_seconds = node_timeout_seconds
        self.locale = locale
        self.mode = mode

    async def execute_task(
        self,
        task_id: str,
        *,
        mode: InvocationMode | None = None,
        locale: str | None = None,
    ) -> TaskExecutionSummary:
        """Execute every node of the task's plan.

        Returns a summary with ``completed`` or ``failed`` status. Raises
        ``GraphStagnationError`` after marking the task failed when the graph
        cannot make progress.
        """

        task = self.repository.require_task(task_id=task_id)
        plan = task.plan
        scope = _ExecutionScope(
            task=task,
            mode=mode or self.mode or self.providers.mode,
            locale=locale or self.locale,
        )

        self.repository.update_task_status(task_id=task_id, status=TaskStatus.RUNNING)
        runs = self.repository.create_runs(task_id=task_id, plan=plan)
        logger.info(
            "Task %s started: nodes=%d mode=%s",
            task_id,
            len(plan.nodes),
            scope.mode.value,
        )

        results: dict[str, dict[str, Any]] = {}
        pending = set(plan.node_ids)
        while pending:
            progressed = False
            for node in plan.nodes:
                if node.id not in pending:
                    continue
                if any(dependency not in results for dependency in node.depends_on):
                    continue

                outcome = await self._execute_node(
                    node=node,
                    run=runs[node.id],
                    results=results,
                    scope=scope,
                )
                if not outcome.ok or outcome.output is None:
                    self.repository.update_task_status(task_id=task_id, status=TaskStatus.FAILED)
                    logger.error("Task %s failed at node %s: %s", task_id, node.id, outcome.error)
                    return TaskExecutionSummary(
                        task_id=task_id,
                        status=TaskStatus.FAILED,
                        outputs=results,
                        failed_node_id=node.id,
                        error=outcome.error,
                    )
                results[node.id] = outcome.output
                pending.discard(node.id)
                progressed = True

            if not progressed:
                self.repository.update_task_status(task_id=task_id, status=TaskStatus.FAILED)
                unresolved = [node_id for node_id in plan.node_ids if node_id in pending]
                logger.error("Task %s stagnated with pending nodes: %s", task_id, unresolved)
                raise GraphStagnationError(task_id, unresolved)

        self.repository.update_task_status(task_id=task_id, status=TaskStatus.COMPLETED)
        logger.info("Task %s completed", task_id)
        return TaskExecutionSummary(task_id=task_id, status=TaskStatus.COMPLETED, outputs=results)

    async def _execute_node(
        self,
        *,
        node: PlanNode,
        run: RunView,
        results: Mapping[str, dict[str, Any]],
        scope: _ExecutionScope,
    ) -> NodeOutcome:
        run_logger = RunLogger(self.repository, run.run_id)
        payload: dict[str, Any] = {
            **copy.deepcopy(node.input),
            "dependencies": {dependency: results[dependency] for dependency in node.depends_on},
        }

        attempts = 0
        last_error = ""
        while attempts < self.max_attempts:
            attempts += 1
            self.repository.mark_run_running(run_id=run.run_id, attempts=attempts)
            try:
                output = await self._invoke_agent(
                    agent_name=node.agent,
                    payload=payload,
                    run_id=run.run_id,
                    run_logger=run_logger,
                    scope=scope,
                )
            except Exception as error:  # noqa: BLE001
                last_error = _describe_error(error)
                run_logger.error("Execution failed", {"error": last_error, "attempt": attempts})
                if attempts < self.max_attempts:
                    self.repository.record_run_error(
                        run_id=run.run_id,
                        error=last_error,
                        attempts=attempts,
                    )
                continue

            self.repository.update_run(
                run_id=run.run_id,
                status=RunStatus.COMPLETED,
                error=None,
                attempts=attempts,
            )
            return NodeOutcome(ok=True, output=output)

        self.repository.update_run(
            run_id=run.run_id,
            status=RunStatus.FAILED,
            error=last_error,
            attempts=attempts,
        )
        logger.warning(
            "Node %s of task %s exhausted %d attempts; escalating",
            node.id,
            scope.task.task_id,
            attempts,
        )
        return await self._escalate(
            node=node,
            run=run,
            results=results,
            scope=scope,
            attempts=attempts,
            run_logger=run_logger,
        )

    async def _escalate(  # noqa: PLR0913
        self,
        *,
        node: PlanNode,
        run: RunView,
        results: Mapping[str, dict[str, Any]],
        scope: _ExecutionScope,
        attempts: int,
        run_logger: RunLogger,
    ) -> NodeOutcome:
        if self.escalation_agent not in self.registry:
            error = EscalationError(node.id, f"escalation agent {self.escalation_agent} unavailable")
            run_logger.error("Escalation unavailable", {"agent": self.escalation_agent})
            self.repository.record_run_error(run_id=run.run_id, error=str(error), attempts=attempts)
            return NodeOutcome(ok=False, error=str(error))

        payload = {
            "failedNode": copy.deepcopy(node_to_dict(node)),
            "partial": dict(results.get(node.id, {})),
            "message": ESCALATION_MESSAGE,
        }
        try:
            output = await self._invoke_agent(
                agent_name=self.escalation_agent,
                payload=payload,
                run_id=run.run_id,
                run_logger=run_logger,
                scope=scope,
            )
        except Exception as error:  # noqa: BLE001
            escalation_error = EscalationError(node.id, _describe_error(error))
            run_logger.error("Escalation failed", {"error": escalation_error.reason})
            self.repository.record_run_error(
                run_id=run.run_id,
                error=str(escalation_error),
                attempts=attempts,
            )
            return NodeOutcome(ok=False, error=str(escalation_error))

        self.repository.update_run(
            run_id=run.run_id,
            status=RunStatus.COMPLETED,
            error=None,
            attempts=attempts + 1,
        )
        run_logger.info("Escalation resolved node", {"agent": self.escalation_agent})
        return NodeOutcome(ok=True, output=output)

    async def _invoke_agent(
        self,
        *,
        agent_name: str,
        payload: dict[str, Any],
        run_id: str,
        run_logger: RunLogger,
        scope: _ExecutionScope,
    ) -> dict[str, Any]:
        agent = self.registry.load(agent_name)
        run_record = self.repository.get_run(run_id=run_id)
        if run_record is None:
            raise AgentExecutionError(f"Run record {run_id} missing")

        context = AgentContext(
            task=scope.task,
            run=run_record,
            providers=self.providers,
            storage=self.storage,
            logger=run_logger,
            mode=scope.mode,
            locale=scope.locale,
        )
        call = agent.execute(payload, context)
        if self.node_timeout_seconds is None:
            output = await call
        else:
            try:
                output = await asyncio.wait_for(call, timeout=self.node_timeout_seconds)
            except TimeoutError as error:
                raise AgentExecutionError(
                    f"Agent {agent_name} timed out after {self.node_timeout_seconds}s",
                ) from error

        if output is None:
            return {}
        if not isinstance(output, Mapping):
            raise AgentExecutionError(
                f"Agent {agent_name} returned {type(output).__name__}, expected a mapping",
            )
        return dict(output)


def _describe_error(error: BaseException) -> str:
    message = str(error).strip()
    return message or type(error).__name__

from __future__ import annotations

import asyncio
from pathlib import Path

import allure
import pytest

from agentflow.agents.human_gate import HUMAN_GATE_AGENT, HumanGateAgent
from agentflow.errors import AgentExecutionError, GraphStagnationError
from agentflow.orchestrator.artifacts import ArtifactStorage
from agentflow.orchestrator.executor import TaskExecutor
from agentflow.orchestrator.models import (
    LogLevel,
    Plan,
    PlanNode,
    RunStatus,
    TaskStatus,
)
from agentflow.orchestrator.registry import AgentRegistry
from agentflow.providers.manager import ProviderManager
from agentflow.providers.models import ProviderConfig

pytestmark = [
    allure.epic("Task Orchestration"),
    allure.feature("Graph Execution, Retries, Escalation"),
]


class RecordingAgent:
    def __init__(self, trace: list[str] | None = None) -> None:
        self.trace = trace if trace is not None else []
        self.payloads: list[dict] = []

    async def execute(self, payload, context):
        self.trace.append(context.run.node_id)
        self.payloads.append(payload)
        return {"node": context.run.node_id, "deps": sorted(payload["dependencies"])}


class FlakyAgent:
    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0

    async def execute(self, payload, context):
        self.calls += 1
        if self.calls <= self.failures:
            raise AgentExecutionError(f"boom {self.calls}")
        return {"ok": True, "call": self.calls}


class BrokenGate:
    async def execute(self, payload, context):
        raise RuntimeError("reviewer offline")


class RecordingGate:
    def __init__(self) -> None:
        self.payloads: list[dict] = []

    async def execute(self, payload, context):
        self.payloads.append(payload)
        return {"approved": True}


class MutatingAgent:
    async def execute(self, payload, context):
        payload["brief"]["tags"].append("mutated")
        raise AgentExecutionError("rejected")


class SlowAgent:
    async def execute(self, payload, context):
        await asyncio.sleep(5)
        return {"late": True}


class ListAgent:
    async def execute(self, payload, context):
        return ["not", "a", "mapping"]


def _executor(repository, tmp_path: Path, registry: AgentRegistry, **kwargs) -> TaskExecutor:
    providers = ProviderManager(
        [ProviderConfig(id="local", name="Local", priority=1, mock=True)],
    )
    return TaskExecutor(
        repository=repository,
        registry=registry,
        providers=providers,
        storage=ArtifactStorage(repository, tmp_path / "artifacts"),
        **kwargs,
    )


def _attempt_errors(repository, run_id: str) -> list[str]:
    return [
        entry.details["error"]
        for entry in repository.list_logs(run_id=run_id)
        if entry.message == "Execution failed"
    ]


def _chain_plan(agent: str = "flaky-agent") -> Plan:
    return Plan(
        nodes=(
            PlanNode(id="draft", agent=agent),
            PlanNode(id="publish", agent="echo-agent", depends_on=("draft",)),
        ),
    )


def test_execute_task_runs_nodes_after_their_dependencies(repository, tmp_path: Path) -> None:
    trace: list[str] = []
    agent = RecordingAgent(trace)
    registry = AgentRegistry()
    registry.register("echo-agent", agent)
    plan = Plan(
        nodes=(
            PlanNode(id="c", agent="echo-agent", depends_on=("b",), input={"channel": "blog"}),
            PlanNode(id="a", agent="echo-agent"),
            PlanNode(id="b", agent="echo-agent", depends_on=("a",)),
        ),
    )
    task = repository.create_task(plan)

    summary = asyncio.run(_executor(repository, tmp_path, registry).execute_task(task.task_id))

    assert summary.status is TaskStatus.COMPLETED
    assert trace == ["a", "b", "c"]
    assert summary.outputs["c"] == {"node": "c", "deps": ["b"]}
    c_payload = agent.payloads[2]
    assert c_payload["channel"] == "blog"
    assert c_payload["dependencies"] == {"b": {"node": "b", "deps": ["a"]}}

    stored = repository.require_task(task_id=task.task_id)
    assert stored.status is TaskStatus.COMPLETED
    runs = repository.list_runs(task_id=task.task_id)
    assert [run.node_id for run in runs] == ["c", "a", "b"]
    assert all(run.status is RunStatus.COMPLETED for run in runs)
    assert all(run.attempts == 1 for run in runs)
    assert all(run.ended_at is not None for run in runs)


def test_failing_node_recovers_within_attempt_budget(repository, tmp_path: Path) -> None:
    flaky = FlakyAgent(failures=2)
    registry = AgentRegistry()
    registry.register("flaky-agent", flaky)
    registry.register("echo-agent", RecordingAgent())
    task = repository.create_task(_chain_plan())

    summary = asyncio.run(_executor(repository, tmp_path, registry).execute_task(task.task_id))

    assert summary.status is TaskStatus.COMPLETED
    assert flaky.calls == 3
    draft = repository.list_runs(task_id=task.task_id)[0]
    assert draft.status is RunStatus.COMPLETED
    assert draft.attempts == 3
    assert draft.error is None

    failures = [entry for entry in repository.list_logs(run_id=draft.run_id) if entry.level is LogLevel.ERROR]
    assert [entry.message for entry in failures] == ["Execution failed", "Execution failed"]
    assert [entry.details["attempt"] for entry in failures] == [1, 2]
    assert failures[0].details["error"] == "boom 1"


def test_exhausted_node_is_escalated_to_human_gate(repository, tmp_path: Path) -> None:
    flaky = FlakyAgent(failures=99)
    downstream = RecordingAgent()
    registry = AgentRegistry()
    registry.register("flaky-agent", flaky)
    registry.register("echo-agent", downstream)
    registry.register(HUMAN_GATE_AGENT, HumanGateAgent())
    task = repository.create_task(_chain_plan())

    summary = asyncio.run(_executor(repository, tmp_path, registry).execute_task(task.task_id))

    assert summary.status is TaskStatus.COMPLETED
    assert flaky.calls == 3
    draft, publish = repository.list_runs(task_id=task.task_id)
    assert draft.status is RunStatus.COMPLETED
    assert draft.attempts == 4
    assert draft.error is None
    assert publish.status is RunStatus.COMPLETED

    feedback = summary.outputs["draft"]["humanFeedback"]
    assert feedback["approved"] is True
    assert feedback["notes"] == "Mock human approval applied."
    assert "draft" in downstream.payloads[0]["dependencies"]

    messages = [entry.message for entry in repository.list_logs(run_id=draft.run_id)]
    assert "Human gate triggered" in messages
    assert "Escalation resolved node" in messages


def test_escalation_payload_describes_failed_node(repository, tmp_path: Path) -> None:
    gate = RecordingGate()
    registry = AgentRegistry()
    registry.register("flaky-agent", FlakyAgent(failures=99))
    registry.register("echo-agent", RecordingAgent())
    registry.register("review-agent", gate)
    task = repository.create_task(_chain_plan())

    executor = _executor(repository, tmp_path, registry, escalation_agent="review-agent")
    summary = asyncio.run(executor.execute_task(task.task_id))

    assert summary.status is TaskStatus.COMPLETED
    assert len(gate.payloads) == 1
    payload = gate.payloads[0]
    assert payload["failedNode"]["id"] == "draft"
    assert payload["failedNode"]["agent"] == "flaky-agent"
    assert payload["partial"] == {}
    assert payload["message"] == "Automated retries exhausted"


def test_task_fails_when_escalation_agent_is_missing(repository, tmp_path: Path) -> None:
    registry = AgentRegistry()
    registry.register("flaky-agent", FlakyAgent(failures=99))
    registry.register("echo-agent", RecordingAgent())
    task = repository.create_task(_chain_plan())

    summary = asyncio.run(_executor(repository, tmp_path, registry).execute_task(task.task_id))

    assert summary.status is TaskStatus.FAILED
    assert summary.failed_node_id == "draft"
    assert repository.require_task(task_id=task.task_id).status is TaskStatus.FAILED
    draft, publish = repository.list_runs(task_id=task.task_id)
    assert draft.status is RunStatus.FAILED
    assert draft.attempts == 3
    assert draft.error == (
        f"Escalation failed for node draft: escalation agent {HUMAN_GATE_AGENT} unavailable"
    )
    assert _attempt_errors(repository, draft.run_id) == ["boom 1", "boom 2", "boom 3"]
    assert publish.status is RunStatus.PENDING
    assert publish.attempts == 0


def test_task_fails_when_escalation_raises(repository, tmp_path: Path) -> None:
    registry = AgentRegistry()
    registry.register("flaky-agent", FlakyAgent(failures=99))
    registry.register("echo-agent", RecordingAgent())
    registry.register(HUMAN_GATE_AGENT, BrokenGate())
    task = repository.create_task(_chain_plan())

    summary = asyncio.run(_executor(repository, tmp_path, registry).execute_task(task.task_id))

    assert summary.status is TaskStatus.FAILED
    assert summary.error is not None
    assert "reviewer offline" in summary.error
    draft = repository.list_runs(task_id=task.task_id)[0]
    assert draft.status is RunStatus.FAILED
    assert draft.attempts == 3
    assert draft.error == "Escalation failed for node draft: reviewer offline"


def test_unregistered_agent_counts_as_attempt_failure(repository, tmp_path: Path) -> None:
    registry = AgentRegistry()
    task = repository.create_task(Plan(nodes=(PlanNode(id="only", agent="ghost-agent"),)))

    summary = asyncio.run(_executor(repository, tmp_path, registry).execute_task(task.task_id))

    assert summary.status is TaskStatus.FAILED
    run = repository.list_runs(task_id=task.task_id)[0]
    assert run.attempts == 3
    assert _attempt_errors(repository, run.run_id) == ["Agent ghost-agent not found"] * 3
    assert (run.error or "").startswith("Escalation failed for node only")


def test_cycle_marks_task_failed_and_raises(repository, tmp_path: Path) -> None:
    agent = RecordingAgent()
    registry = AgentRegistry()
    registry.register("echo-agent", agent)
    plan = Plan(
        nodes=(
            PlanNode(id="a", agent="echo-agent", depends_on=("b",)),
            PlanNode(id="b", agent="echo-agent", depends_on=("a",)),
            PlanNode(id="free", agent="echo-agent"),
        ),
    )
    task = repository.create_task(plan)

    with pytest.raises(GraphStagnationError) as exc_info:
        asyncio.run(_executor(repository, tmp_path, registry).execute_task(task.task_id))

    assert exc_info.value.pending_node_ids == ("a", "b")
    assert agent.trace == ["free"]
    assert repository.require_task(task_id=task.task_id).status is TaskStatus.FAILED
    statuses = {run.node_id: run.status for run in repository.list_runs(task_id=task.task_id)}
    assert statuses == {
        "a": RunStatus.PENDING,
        "b": RunStatus.PENDING,
        "free": RunStatus.COMPLETED,
    }


def test_node_timeout_is_an_attempt_failure(repository, tmp_path: Path) -> None:
    registry = AgentRegistry()
    registry.register("slow-agent", SlowAgent())
    task = repository.create_task(Plan(nodes=(PlanNode(id="slow", agent="slow-agent"),)))

    executor = _executor(
        repository,
        tmp_path,
        registry,
        max_attempts=1,
        node_timeout_seconds=0.01,
    )
    summary = asyncio.run(executor.execute_task(task.task_id))

    assert summary.status is TaskStatus.FAILED
    run = repository.list_runs(task_id=task.task_id)[0]
    assert run.attempts == 1
    [attempt_error] = _attempt_errors(repository, run.run_id)
    assert "timed out" in attempt_error


def test_non_mapping_output_is_rejected(repository, tmp_path: Path) -> None:
    registry = AgentRegistry()
    registry.register("list-agent", ListAgent())
    task = repository.create_task(Plan(nodes=(PlanNode(id="bad", agent="list-agent"),)))

    summary = asyncio.run(
        _executor(repository, tmp_path, registry, max_attempts=2).execute_task(task.task_id),
    )

    assert summary.status is TaskStatus.FAILED
    run = repository.list_runs(task_id=task.task_id)[0]
    assert run.attempts == 2
    assert all("expected a mapping" in error for error in _attempt_errors(repository, run.run_id))


def test_rerun_resets_previous_runs(repository, tmp_path: Path) -> None:
    flaky = FlakyAgent(failures=3)
    registry = AgentRegistry()
    registry.register("flaky-agent", flaky)
    registry.register("echo-agent", RecordingAgent())
    task = repository.create_task(_chain_plan())
    executor = _executor(repository, tmp_path, registry)

    first = asyncio.run(executor.execute_task(task.task_id))
    second = asyncio.run(executor.execute_task(task.task_id))

    assert first.status is TaskStatus.FAILED
    assert second.status is TaskStatus.COMPLETED
    runs = repository.list_runs(task_id=task.task_id)
    assert len(runs) == 2
    assert runs[0].attempts == 1
    assert runs[0].status is RunStatus.COMPLETED


def test_executor_rejects_non_positive_attempt_budget(repository, tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="max_attempts"):
        _executor(repository, tmp_path, AgentRegistry(), max_attempts=0)


def test_agent_mutation_does_not_leak_into_plan_node(repository, tmp_path: Path) -> None:
    gate = RecordingGate()
    registry = AgentRegistry()
    registry.register("mutating-agent", MutatingAgent())
    registry.register(HUMAN_GATE_AGENT, gate)
    task = repository.create_task(
        Plan(nodes=(PlanNode(id="draft", agent="mutating-agent", input={"brief": {"tags": ["coffee"]}}),)),
    )

    summary = asyncio.run(_executor(repository, tmp_path, registry).execute_task(task.task_id))

    assert summary.status is TaskStatus.COMPLETED
    [payload] = gate.payloads
    assert payload["failedNode"]["input"] == {"brief": {"tags": ["coffee"]}}

"""Domain models for plans, tasks, runs and artifacts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from agentflow.providers.models import ContentType, InvocationMode

__all__ = [
    "ArtifactView",
    "ContentType",
    "InvocationMode",
    "LogLevel",
    "Plan",
    "PlanNode",
    "RunLogView",
    "RunStatus",
    "RunView",
    "TaskDetails",
    "TaskExecutionSummary",
    "TaskStatus",
    "TaskView",
]


class TaskStatus(str, Enum):
    """Durable task lifecycle states."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class RunStatus(str, Enum):
    """Durable per-node run states."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class LogLevel(str, Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class PlanNode:
    """One graph node bound to an agent capability and its static input."""

    id: str
    agent: str
    input: dict[str, Any] = field(default_factory=dict)
    depends_on: tuple[str, ...] = ()
    kind: str | None = None


@dataclass(frozen=True, slots=True)
class Plan:
    """Immutable task graph: nodes in declaration order plus dependency edges."""

    nodes: tuple[PlanNode, ...]
    description: str = ""
    content_types: tuple[ContentType, ...] = ()

    @property
    def node_ids(self) -> tuple[str, ...]:
        return tuple(node.id for node in self.nodes)

    def node(self, node_id: str) -> PlanNode:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(node_id)


@dataclass(slots=True)
class TaskView:
    """Readable task view for executor and CLI."""

    task_id: str
    plan: Plan
    status: TaskStatus
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class RunView:
    """Execution record for one node within one task."""

    run_id: str
    task_id: str
    node_id: str
    agent_name: str
    status: RunStatus
    error: str | None
    attempts: int
    started_at: datetime
    ended_at: datetime | None


@dataclass(slots=True)
class RunLogView:
    """Persisted run log entry."""

    log_id: int
    run_id: str
    level: LogLevel
    message: str
    created_at: datetime
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ArtifactView:
    """Stored generated-content item owned by a run."""

    artifact_id: str
    run_id: str
    content_type: ContentType
    path: str
    size_bytes: int
    created_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class TaskDetails:
    """Task with its runs in plan order."""

    task: TaskView
    runs: list[RunView]


@dataclass(slots=True)
class TaskExecutionSummary:
    """Outcome of one executor pass over a task graph."""

    task_id: str
    status: TaskStatus
    outputs: dict[str, dict[str, Any]] = field(default_factory=dict)
    failed_node_id: str | None = None
    error: str | None = None

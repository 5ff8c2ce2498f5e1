"""Error taxonomy shared by the executor, registry and provider layer."""

from __future__ import annotations

from collections.abc import Sequence


class AgentflowError(RuntimeError):
    """Base class for orchestrator runtime errors."""


class AgentExecutionError(AgentflowError):
    """Agent attempt failed; recorded on the run and retried within budget."""


class AgentNotFoundError(AgentExecutionError):
    """No capability is registered under the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Agent {name} not found")
        self.name = name


class MalformedAgentError(AgentExecutionError):
    """Registered capability does not expose a callable ``execute``."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Agent {name} missing execute function")
        self.name = name


class GraphStagnationError(AgentflowError):
    """A scan pass executed no node while unresolved nodes remain."""

    def __init__(self, task_id: str, pending_node_ids: Sequence[str]) -> None:
        pending = ", ".join(pending_node_ids)
        super().__init__(
            f"No executable nodes remaining for task {task_id}; "
            f"DAG may contain a cycle or an unreachable producer (pending: {pending})",
        )
        self.task_id = task_id
        self.pending_node_ids = tuple(pending_node_ids)


class EscalationError(AgentflowError):
    """Human gate is unavailable or failed for an exhausted node."""

    def __init__(self, node_id: str, reason: str) -> None:
        super().__init__(f"Escalation failed for node {node_id}: {reason}")
        self.node_id = node_id
        self.reason = reason


class ProviderError(AgentflowError):
    """One provider could not serve a request."""

    def __init__(self, provider_id: str, message: str) -> None:
        super().__init__(message)
        self.provider_id = provider_id


class ProviderExhaustedError(AgentExecutionError):
    """Every configured provider failed for one invocation."""

    def __init__(self, message: str, *, attempted: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.attempted = tuple(attempted)


class ConfigurationError(ValueError):
    """Malformed provider, plan, or settings definition."""


class PlanValidationError(ConfigurationError):
    """Plan violates node-id or dependency invariants."""


class TaskNotFoundError(LookupError):
    """Requested task id does not exist."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id

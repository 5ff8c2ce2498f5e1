"""Escalation agent invoked when a node exhausts its retries."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from agentflow.agents.base import AgentContext
from agentflow.orchestrator.models import InvocationMode
from agentflow.storage.database import utc_now

HUMAN_GATE_AGENT = "human-gate-agent"

_NOTES = {
    ("en", InvocationMode.MOCK): "Mock human approval applied.",
    ("en", InvocationMode.REAL): "Awaiting real human interaction (simulated).",
    ("ru", InvocationMode.MOCK): "Применено тестовое одобрение человеком.",
    ("ru", InvocationMode.REAL): "Ожидается решение человека (симуляция).",
}


class HumanGateAgent:
    """Approve the failed node's partial output so the graph can proceed."""

    async def execute(self, payload: dict[str, Any], context: AgentContext) -> dict[str, Any]:
        failed_node = payload.get("failedNode")
        partial = payload.get("partial")
        context.logger.warn(
            "Human gate triggered",
            {"failedNode": failed_node, "message": payload.get("message")},
        )

        notes = _NOTES.get((context.locale, context.mode), _NOTES[("en", context.mode)])
        result = dict(partial) if isinstance(partial, Mapping) else {}
        result["humanFeedback"] = {
            "notes": notes,
            "approved": True,
            "timestamp": utc_now().isoformat(),
        }
        return result

"""Plan validation and JSON mapping."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from agentflow.errors import PlanValidationError
from agentflow.orchestrator.models import ContentType, Plan, PlanNode


def validate_plan(plan: Plan) -> Plan:
    """Check unique node ids and that every dependency names another node."""

    if not plan.nodes:
        raise PlanValidationError("Plan must contain at least one node.")
    seen: set[str] = set()
    for node in plan.nodes:
        if not node.id:
            raise PlanValidationError("Plan node id must be non-empty.")
        if node.id in seen:
            raise PlanValidationError(f"Duplicate plan node id: {node.id!r}")
        seen.add(node.id)
        if not node.agent:
            raise PlanValidationError(f"Plan node {node.id!r} has no agent.")
    for node in plan.nodes:
        for dependency in node.depends_on:
            if dependency == node.id:
                raise PlanValidationError(f"Plan node {node.id!r} depends on itself.")
            if dependency not in seen:
                raise PlanValidationError(
                    f"Plan node {node.id!r} depends on unknown node {dependency!r}.",
                )
    return plan


def plan_to_dict(plan: Plan) -> dict[str, Any]:
    """Serialize with the camelCase keys used by plan suppliers."""

    return {
        "description": plan.description,
        "contentTypes": [content_type.value for content_type in plan.content_types],
        "nodes": [node_to_dict(node) for node in plan.nodes],
    }


def node_to_dict(node: PlanNode) -> dict[str, Any]:
    return {
        "id": node.id,
        "agent": node.agent,
        "type": node.kind,
        "input": node.input,
        "dependsOn": list(node.depends_on),
    }


def plan_from_dict(raw: Mapping[str, Any]) -> Plan:
    """Build and validate a plan from decoded JSON."""

    nodes_raw = raw.get("nodes")
    if not isinstance(nodes_raw, list):
        raise PlanValidationError("Plan 'nodes' must be a list.")

    nodes = tuple(_node_from_dict(entry, index=index) for index, entry in enumerate(nodes_raw))
    description = raw.get("description", "")
    if not isinstance(description, str):
        raise PlanValidationError("Plan 'description' must be a string.")

    content_types_raw = raw.get("contentTypes", raw.get("content_types", []))
    if not isinstance(content_types_raw, list):
        raise PlanValidationError("Plan 'contentTypes' must be a list.")
    try:
        content_types = tuple(ContentType(value) for value in content_types_raw)
    except ValueError as error:
        raise PlanValidationError(f"Unsupported plan content type: {error}") from error

    return validate_plan(
        Plan(nodes=nodes, description=description, content_types=content_types),
    )


def plan_to_json(plan: Plan) -> str:
    return json.dumps(plan_to_dict(plan), ensure_ascii=False, sort_keys=True)


def plan_from_json(payload: str) -> Plan:
    try:
        raw = json.loads(payload)
    except json.JSONDecodeError as error:
        raise PlanValidationError(f"Plan JSON is invalid: {error}") from error
    if not isinstance(raw, dict):
        raise PlanValidationError("Plan JSON must be an object.")
    return plan_from_dict(raw)


def _node_from_dict(entry: Any, *, index: int) -> PlanNode:
    if not isinstance(entry, Mapping):
        raise PlanValidationError(f"Plan node #{index} must be an object.")
    node_id = entry.get("id")
    agent = entry.get("agent")
    if not isinstance(node_id, str) or not node_id:
        raise PlanValidationError(f"Plan node #{index} is missing 'id'.")
    if not isinstance(agent, str) or not agent:
        raise PlanValidationError(f"Plan node {node_id!r} is missing 'agent'.")

    node_input = entry.get("input") or {}
    if not isinstance(node_input, Mapping):
        raise PlanValidationError(f"Plan node {node_id!r} 'input' must be an object.")

    depends_raw = entry.get("dependsOn", entry.get("depends_on")) or []
    if not isinstance(depends_raw, list) or not all(isinstance(dep, str) for dep in depends_raw):
        raise PlanValidationError(f"Plan node {node_id!r} 'dependsOn' must be a list of ids.")

    kind = entry.get("type", entry.get("kind"))
    return PlanNode(
        id=node_id,
        agent=agent,
        input=dict(node_input),
        depends_on=tuple(dict.fromkeys(depends_raw)),
        kind=kind if isinstance(kind, str) else None,
    )

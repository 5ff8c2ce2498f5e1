from __future__ import annotations

import allure
import pytest

from agentflow.errors import ConfigurationError, PlanValidationError
from agentflow.orchestrator.models import ContentType, Plan, PlanNode
from agentflow.orchestrator.plan import (
    plan_from_dict,
    plan_from_json,
    plan_to_dict,
    plan_to_json,
    validate_plan,
)
from agentflow.orchestrator.planner import build_default_plan

pytestmark = [
    allure.epic("Task Orchestration"),
    allure.feature("Plan Model & Template Builder"),
]


def _plan() -> Plan:
    return Plan(
        nodes=(
            PlanNode(id="writer-1", agent="writer-agent", kind="writer", input={"topic": "Coffee"}),
            PlanNode(id="guard-1", agent="guard-agent", depends_on=("writer-1",)),
        ),
        description="Plan for Coffee",
        content_types=(ContentType.TEXT,),
    )


def test_plan_json_preserves_nodes_and_edges() -> None:
    plan = _plan()

    restored = plan_from_json(plan_to_json(plan))

    assert restored == plan
    assert restored.node_ids == ("writer-1", "guard-1")
    assert restored.node("guard-1").depends_on == ("writer-1",)


def test_plan_dict_uses_camel_case_keys() -> None:
    raw = plan_to_dict(_plan())

    assert raw["contentTypes"] == ["text"]
    assert raw["nodes"][1] == {
        "id": "guard-1",
        "agent": "guard-agent",
        "type": None,
        "input": {},
        "dependsOn": ["writer-1"],
    }


def test_plan_from_dict_accepts_snake_case_and_deduplicates_dependencies() -> None:
    plan = plan_from_dict(
        {
            "content_types": ["text", "image"],
            "nodes": [
                {"id": "a", "agent": "writer-agent", "kind": "writer"},
                {"id": "b", "agent": "image-agent", "depends_on": ["a", "a"]},
            ],
        },
    )

    assert plan.content_types == (ContentType.TEXT, ContentType.IMAGE)
    assert plan.node("a").kind == "writer"
    assert plan.node("b").depends_on == ("a",)


@pytest.mark.parametrize(
    ("nodes", "message"),
    [
        ((), "at least one node"),
        (
            (PlanNode(id="a", agent="writer-agent"), PlanNode(id="a", agent="guard-agent")),
            "Duplicate plan node id",
        ),
        ((PlanNode(id="a", agent="writer-agent", depends_on=("missing",)),), "unknown node"),
        ((PlanNode(id="a", agent="writer-agent", depends_on=("a",)),), "depends on itself"),
        ((PlanNode(id="a", agent=""),), "has no agent"),
    ],
)
def test_validate_plan_rejects_malformed_graphs(nodes, message: str) -> None:
    with pytest.raises(PlanValidationError, match=message):
        validate_plan(Plan(nodes=nodes))


def test_validate_plan_allows_cycles() -> None:
    plan = Plan(
        nodes=(
            PlanNode(id="a", agent="writer-agent", depends_on=("b",)),
            PlanNode(id="b", agent="guard-agent", depends_on=("a",)),
        ),
    )

    assert validate_plan(plan) is plan


def test_plan_from_json_rejects_invalid_payloads() -> None:
    with pytest.raises(PlanValidationError, match="invalid"):
        plan_from_json("{nodes:")
    with pytest.raises(PlanValidationError, match="must be an object"):
        plan_from_json("[]")
    with pytest.raises(PlanValidationError, match="content type"):
        plan_from_dict({"contentTypes": ["audio"], "nodes": [{"id": "a", "agent": "x"}]})


def test_default_plan_for_all_content_types() -> None:
    plan = build_default_plan(
        "Autumn launch",
        (ContentType.TEXT, ContentType.IMAGE, ContentType.VIDEO),
        tone="playful",
    )

    assert [node.agent for node in plan.nodes] == [
        "writer-agent",
        "guard-agent",
        "image-agent",
        "video-agent",
        "uploader-agent",
    ]
    writer, guard, image, video, uploader = plan.nodes
    assert writer.input == {"topic": "Autumn launch", "tone": "playful", "format": "article"}
    assert guard.depends_on == (writer.id,)
    assert image.depends_on == (writer.id,)
    assert video.depends_on == (writer.id, image.id)
    assert uploader.depends_on == (writer.id, guard.id, image.id, video.id)
    assert plan.description == "Plan for Autumn launch"
    assert validate_plan(plan) is plan


def test_default_plan_for_image_only() -> None:
    plan = build_default_plan("Logo", (ContentType.IMAGE,))

    image, uploader = plan.nodes
    assert image.agent == "image-agent"
    assert image.depends_on == ()
    assert uploader.depends_on == (image.id,)


def test_default_plan_requires_content_types() -> None:
    with pytest.raises(ConfigurationError, match="At least one content type"):
        build_default_plan("Nothing", ())

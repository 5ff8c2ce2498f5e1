from __future__ import annotations

import asyncio
import json

import allure

from agentflow.errors import ProviderError
from agentflow.orchestrator.models import ContentType
from agentflow.orchestrator.planner import PlanGenerator
from agentflow.providers.manager import ProviderManager
from agentflow.providers.models import ProviderConfig, ProviderRequest, ProviderResponse

pytestmark = [
    allure.epic("Task Orchestration"),
    allure.feature("Generative Planning"),
]


class CannedClient:
    def __init__(self, content: str | None = None, error: Exception | None = None) -> None:
        self.content = content
        self.error = error
        self.requests: list[ProviderRequest] = []

    async def generate(self, provider: ProviderConfig, request: ProviderRequest) -> ProviderResponse:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return ProviderResponse(content=self.content)


def _live_manager(client: CannedClient) -> ProviderManager:
    return ProviderManager(
        [ProviderConfig(id="live", name="Live", priority=1, api_key="secret")],
        client=client,
    )


def test_mock_pool_uses_template_plan() -> None:
    planner = PlanGenerator(
        ProviderManager([ProviderConfig(id="local", name="Local", priority=1, mock=True)]),
    )

    plan = asyncio.run(planner.generate_plan("Coffee", (ContentType.TEXT,)))

    assert [node.agent for node in plan.nodes] == ["writer-agent", "guard-agent", "uploader-agent"]


def test_real_pool_uses_generated_plan() -> None:
    client = CannedClient(
        content=json.dumps(
            {
                "nodes": [
                    {"id": "copy", "agent": "writer-agent", "input": {"topic": "Coffee"}},
                    {"id": "check", "agent": "guard-agent", "dependsOn": ["copy"]},
                ],
            },
        ),
    )

    plan = asyncio.run(PlanGenerator(_live_manager(client)).generate_plan("Coffee", (ContentType.TEXT,)))

    assert plan.node_ids == ("copy", "check")
    assert plan.content_types == (ContentType.TEXT,)
    assert plan.description == "Plan for Coffee"
    assert "Coffee" in (client.requests[0].prompt or "")


def test_invalid_generated_plan_falls_back_to_template() -> None:
    client = CannedClient(content=json.dumps({"nodes": [{"id": "x", "agent": "a", "dependsOn": ["y"]}]}))

    plan = asyncio.run(
        PlanGenerator(_live_manager(client)).generate_plan("Coffee", (ContentType.IMAGE,)),
    )

    assert [node.agent for node in plan.nodes] == ["image-agent", "uploader-agent"]


def test_provider_failure_falls_back_to_template() -> None:
    client = CannedClient(error=ProviderError("live", "down"))

    plan = asyncio.run(
        PlanGenerator(_live_manager(client)).generate_plan("Coffee", (ContentType.TEXT,)),
    )

    assert plan.nodes[0].agent == "writer-agent"
    assert len(client.requests) == 1


def test_non_json_response_falls_back_to_template() -> None:
    client = CannedClient(content="Here is your plan: writer then guard")

    plan = asyncio.run(
        PlanGenerator(_live_manager(client)).generate_plan("Coffee", (ContentType.TEXT,)),
    )

    assert plan.nodes[0].agent == "writer-agent"

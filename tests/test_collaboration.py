"""Tests for the collaboration coordinator."""

from unittest.mock import AsyncMock

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from careflow.agents.registry import AgentRegistry, create_default_registry
from careflow.config import get_settings
from careflow.llm.generation import GenerationClient
from careflow.schemas.models import AgentCapability
from careflow.services.collaboration import CollaborationCoordinator

from conftest import StubAgent


@pytest.fixture
def synthesis_client():
    client = GenerationClient(llm=FakeListChatModel(responses=["unused"]))
    client.complete = AsyncMock(return_value="Synthesized plan")
    return client


def registry_of(*agents):
    return AgentRegistry(agents)


class TestCoordinate:
    """Tests for CollaborationCoordinator.coordinate."""

    @pytest.mark.asyncio
    async def test_all_agents_contribute(self, synthesis_client):
        triage = StubAgent(AgentCapability.TRIAGE, agent_id="A", confidence=0.8)
        scheduling = StubAgent(AgentCapability.SCHEDULING, agent_id="B", confidence=0.6)
        coordinator = CollaborationCoordinator(registry_of(triage, scheduling), synthesis_client)

        collaboration = await coordinator.coordinate(["A", "B"], "stroke pathway")

        assert collaboration.participating_agents == ["A", "B"]
        assert [c.agent_id for c in collaboration.contributions] == ["A", "B"]
        assert collaboration.result.text == "Synthesized plan"
        assert collaboration.result.contribution_count == 2
        assert collaboration.result.confidence == pytest.approx(0.7)
        assert collaboration.shared_data == {"A": "stroke pathway", "B": "stroke pathway"}
        assert collaboration.completed_at is not None

    @pytest.mark.asyncio
    async def test_synthesis_prompt_lists_contributions(self, synthesis_client):
        agent = StubAgent(AgentCapability.TRIAGE, agent_id="A")
        coordinator = CollaborationCoordinator(registry_of(agent), synthesis_client)

        await coordinator.coordinate(["A"], "night shift staffing")

        user_prompt = synthesis_client.complete.call_args.args[1]
        assert "Goal: night shift staffing" in user_prompt
        assert "Agent 1 (A):\nA on night shift staffing" in user_prompt

    @pytest.mark.asyncio
    async def test_failure_aborts_by_default(self, synthesis_client):
        good = StubAgent(AgentCapability.TRIAGE, agent_id="A")
        bad = StubAgent(
            AgentCapability.SCHEDULING, agent_id="B",
            raise_on_contribute=RuntimeError("calendar offline"),
        )
        coordinator = CollaborationCoordinator(registry_of(good, bad), synthesis_client)

        with pytest.raises(RuntimeError, match="calendar offline"):
            await coordinator.coordinate(["A", "B"], "goal")

        synthesis_client.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_isolated_failure_is_dropped(self, synthesis_client):
        good = StubAgent(AgentCapability.TRIAGE, agent_id="A", confidence=0.9)
        bad = StubAgent(
            AgentCapability.SCHEDULING, agent_id="B",
            raise_on_contribute=RuntimeError("calendar offline"),
        )
        coordinator = CollaborationCoordinator(
            registry_of(good, bad), synthesis_client, isolate_failures=True
        )

        collaboration = await coordinator.coordinate(["A", "B"], "goal")

        assert [c.agent_id for c in collaboration.contributions] == ["A"]
        assert collaboration.result.confidence == pytest.approx(0.9)

    @pytest.mark.asyncio
    async def test_isolation_from_settings(self, synthesis_client, monkeypatch):
        monkeypatch.setenv("CAREFLOW_COLLABORATION_ISOLATE_FAILURES", "true")
        get_settings.cache_clear()
        bad = StubAgent(AgentCapability.TRIAGE, agent_id="A", raise_on_contribute=ValueError())
        coordinator = CollaborationCoordinator(registry_of(bad), synthesis_client)

        collaboration = await coordinator.coordinate(["A"], "goal")

        assert collaboration.contributions == []
        assert collaboration.result.confidence == 0.0

    @pytest.mark.asyncio
    async def test_slow_agent_times_out(self, synthesis_client):
        fast = StubAgent(AgentCapability.TRIAGE, agent_id="fast")
        slow = StubAgent(AgentCapability.SCHEDULING, agent_id="slow", delay=1.0)
        coordinator = CollaborationCoordinator(
            registry_of(fast, slow), synthesis_client,
            isolate_failures=True, contribution_timeout=0.05,
        )

        collaboration = await coordinator.coordinate(["fast", "slow"], "goal")

        assert [c.agent_id for c in collaboration.contributions] == ["fast"]

    @pytest.mark.asyncio
    async def test_unknown_agents_are_skipped(self, synthesis_client):
        agent = StubAgent(AgentCapability.TRIAGE, agent_id="A")
        coordinator = CollaborationCoordinator(registry_of(agent), synthesis_client)

        collaboration = await coordinator.coordinate(["ghost", "A"], "goal")

        assert collaboration.participating_agents == ["A"]
        assert collaboration.result.contribution_count == 1

    @pytest.mark.asyncio
    async def test_no_agents(self, synthesis_client):
        coordinator = CollaborationCoordinator(AgentRegistry(), synthesis_client)

        collaboration = await coordinator.coordinate(["ghost"], "goal")

        assert collaboration.contributions == []
        assert collaboration.result.contribution_count == 0
        assert collaboration.result.confidence == 0.0

    @pytest.mark.asyncio
    async def test_with_default_agents(self):
        client = GenerationClient(llm=FakeListChatModel(responses=["Combined plan"]))
        coordinator = CollaborationCoordinator(create_default_registry(client), client)

        collaboration = await coordinator.coordinate(
            ["TriageAgent", "DocumentationAgent"], "discharge planning"
        )

        assert collaboration.result.text == "Combined plan"
        assert collaboration.result.confidence == pytest.approx((0.92 + 0.95) / 2)
        assert set(collaboration.shared_data) == {"TriageAgent", "DocumentationAgent"}

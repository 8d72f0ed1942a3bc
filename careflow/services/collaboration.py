"""
Collaboration Coordinator
=========================

Fans a goal out to several agents at once and synthesizes their
contributions into one answer.

FLOW:

    goal ──► ┌────────┐  ┌────────┐  ┌────────┐
             │agent A │  │agent B │  │agent C │   (concurrent)
             └───┬────┘  └───┬────┘  └───┬────┘
                 └──── barrier join ─────┘
                            │
                     ┌──────▼──────┐
                     │  Synthesis  │ ──► one LLM call
                     └──────┬──────┘
                            │
                      Collaboration

All participating agents share one workspace dict for the duration
of the call.

FAILURE HANDLING:
- Default: any agent failure fails the whole collaboration
- isolate_failures=True: a failed agent is logged and left out
- contribution_timeout: bounds each agent call; a timeout is a failure
"""

import asyncio
import logging
from typing import Any, Optional

from careflow.agents.base_agent import BaseAgent
from careflow.agents.registry import AgentRegistry
from careflow.config import get_settings
from careflow.errors import PartialFailure
from careflow.llm.generation import GenerationClient
from careflow.schemas.models import (
    Collaboration,
    CollaborationResult,
    Contribution,
    SamplingParams,
    utcnow,
)

logger = logging.getLogger(__name__)


SYNTHESIS_SYSTEM_PROMPT = """You are a coordinator who synthesizes contributions from several AI agents.
Combine the contributions into one coherent, useful result.
Point out overlapping information and potential conflicts."""


class CollaborationCoordinator:
    """
    Concurrent fan-out / fan-in over registered agents.

    Usage:
        coordinator = CollaborationCoordinator(registry, GenerationClient())
        collaboration = await coordinator.coordinate(
            ["TriageAgent", "SchedulingAgent"],
            "Plan care for an incoming stroke patient",
        )
        collaboration.result.text
    """

    def __init__(
        self,
        registry: AgentRegistry,
        generation_client: Optional[GenerationClient] = None,
        isolate_failures: Optional[bool] = None,
        contribution_timeout: Optional[float] = None,
    ):
        """
        Args:
            registry: Where agent ids are resolved
            generation_client: LLM used for synthesis
            isolate_failures: Drop failed contributions instead of failing (settings default)
            contribution_timeout: Seconds per agent call (settings default, None = no limit)
        """
        settings = get_settings()
        self._registry = registry
        self._generation = generation_client or GenerationClient()
        self._isolate_failures = (
            settings.collaboration_isolate_failures
            if isolate_failures is None else isolate_failures
        )
        self._timeout = (
            contribution_timeout
            if contribution_timeout is not None else settings.collaboration_timeout
        )
        self._sampling = SamplingParams(temperature=0.2, max_tokens=2000)

    async def coordinate(self, agent_ids: list[str], goal: str) -> Collaboration:
        """
        Run one collaboration.

        Args:
            agent_ids: Agents to involve (unknown ids are skipped)
            goal: What the agents should work towards

        Returns:
            Completed Collaboration with the synthesized result

        Raises:
            Exception: Whatever a participating agent raised, unless
                failures are isolated
            ExternalServiceError: If synthesis fails
        """
        agents: list[BaseAgent] = []
        for agent_id in agent_ids:
            agent = self._registry.get(agent_id)
            if agent is None:
                logger.warning(f"Skipping unknown agent: {agent_id}")
                continue
            agents.append(agent)

        collaboration = Collaboration(
            goal=goal,
            participating_agents=[agent.agent_id for agent in agents],
        )
        workspace: dict[str, Any] = collaboration.shared_data

        logger.info(
            f"Starting collaboration {collaboration.id} with {len(agents)} agents"
        )

        outcomes = await asyncio.gather(
            *(self._contribute(agent, goal, workspace) for agent in agents),
            return_exceptions=self._isolate_failures,
        )

        contributions: list[Contribution] = []
        for agent, outcome in zip(agents, outcomes):
            if isinstance(outcome, BaseException):
                failure = PartialFailure(
                    f"{agent.agent_id} failed: {type(outcome).__name__}: {outcome}",
                    fallback="missing contribution",
                )
                logger.warning(failure.message)
                continue
            contributions.append(outcome)

        collaboration.contributions = contributions
        collaboration.result = await self._synthesize(contributions, goal)
        collaboration.completed_at = utcnow()

        logger.info(
            f"Collaboration {collaboration.id} completed with "
            f"{len(contributions)} contributions"
        )
        return collaboration

    async def _contribute(
        self,
        agent: BaseAgent,
        goal: str,
        workspace: dict[str, Any],
    ) -> Contribution:
        call = agent.contribute_to_collaboration(goal, workspace)
        if self._timeout is None:
            return await call
        return await asyncio.wait_for(call, timeout=self._timeout)

    async def _synthesize(
        self,
        contributions: list[Contribution],
        goal: str,
    ) -> CollaborationResult:
        contributions_text = "\n\n".join(
            f"Agent {i + 1} ({c.agent_id}):\n{c.text}"
            for i, c in enumerate(contributions)
        )
        user_prompt = (
            f"Goal: {goal}\n\n"
            f"Agent contributions:\n{contributions_text}\n\n"
            "Synthesize the contributions into one complete result."
        )

        text = await self._generation.complete(
            SYNTHESIS_SYSTEM_PROMPT, user_prompt, self._sampling
        )

        confidence = (
            sum(c.confidence for c in contributions) / len(contributions)
            if contributions else 0.0
        )

        return CollaborationResult(
            text=text,
            contribution_count=len(contributions),
            confidence=confidence,
        )
